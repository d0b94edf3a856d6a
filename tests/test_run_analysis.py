import json
import os
from types import SimpleNamespace
from unittest.mock import MagicMock

import geopandas as gpd
import pytest
from shapely.geometry import box

import gee_config
import run_analysis
from scripts import utils


def test_parse_args_defaults():
    args = run_analysis.parse_args([])
    assert not args.no_export
    assert not args.wait
    assert not args.no_figures
    assert args.verify is None


def test_verify_mode_checks_shapefile(tmp_path, monkeypatch):
    path = tmp_path / 'rice.shp'
    gpd.GeoDataFrame({'class': [0]}, geometry=[box(0, 0, 1, 1)], crs='EPSG:4326').to_file(path)
    monkeypatch.setattr(run_analysis, 'initialize', MagicMock(side_effect=AssertionError))
    assert run_analysis.main(['--verify', str(path)]) is None


def test_missing_assets_fail_before_initialize(monkeypatch):
    monkeypatch.setattr(utils, 'ASSETS', {k: None for k in gee_config.ASSET_ENV_VARS})
    init = MagicMock()
    monkeypatch.setattr(run_analysis, 'initialize', init)
    with pytest.raises(RuntimeError, match='AOI_ASSET'):
        run_analysis.main([])
    init.assert_not_called()


def test_run_pipeline_chains_stages(monkeypatch):
    composite, classified, classifier = MagicMock(), MagicMock(), MagicMock()
    training, validation = MagicMock(), MagicMock()
    assets = {'aoi': MagicMock(), 'aoi_ricefield': MagicMock(),
              'ricefield': MagicMock(), 'non_ricefield': MagicMock()}
    metrics = {
        'overall_accuracy': 0.885714, 'kappa': 0.755459,
        'confusion_matrix': [[40, 5], [3, 22]], 'class_order': [0, 1],
        'consumers_accuracy': [0.93, 0.81], 'producers_accuracy': [0.89, 0.88],
        'f1_score': [0.91, 0.85],
    }
    calls = []

    def record(name, result):
        def _fn(*args, **kwargs):
            calls.append((name, args, kwargs))
            return result
        return SimpleNamespace(main=_fn)

    monkeypatch.setattr(run_analysis, 'preprocessing_mod',
                        record('prep', (composite, {'n_images': 41})))
    monkeypatch.setattr(run_analysis, 'training_mod',
                        record('samples', (training, validation,
                                           {'n_training': 70, 'n_validation': 30})))
    monkeypatch.setattr(run_analysis, 'classification_mod',
                        record('classify', (classifier, classified,
                                            {'feature_importance': None, 'class_areas_ha': {}})))
    monkeypatch.setattr(run_analysis, 'accuracy_mod', record('accuracy', (metrics, None)))
    monkeypatch.setattr(run_analysis, 'export_mod',
                        record('export', SimpleNamespace(id='TASK123')))
    monkeypatch.setattr(run_analysis, 'visualization_mod', record('figures', []))

    summary = run_analysis.run_pipeline(assets, export=True, wait=False, figures=False)

    assert [c[0] for c in calls] == ['prep', 'samples', 'classify', 'accuracy', 'export']
    assert calls[2][1] == (composite, training, assets['aoi_ricefield'])
    assert calls[3][1] == (validation, classifier)
    assert summary['overall_accuracy'] == 0.8857
    assert summary['export_task_id'] == 'TASK123'
    with open(os.path.join(gee_config.OUTPUT_DIR, 'classification_metrics.json')) as f:
        assert json.load(f)['n_training'] == 70
