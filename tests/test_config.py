from unittest.mock import MagicMock

import pytest

import gee_config


def test_workflow_parameters():
    assert gee_config.COLLECTION_ID == 'LANDSAT/LC09/C02/T1_L2'
    assert gee_config.DATE_RANGE == ('2023-01-01', '2023-12-31')
    assert gee_config.QA_PIXEL_BITMASK == 0b11111
    assert gee_config.SPLIT_THRESHOLD == 0.7
    assert gee_config.SAMPLE_SCALE == 30
    assert gee_config.RF_PARAMS == {'numberOfTrees': 100}
    assert gee_config.EXPORT_CLASS == 0
    assert gee_config.EXPORT_FILE_FORMAT == 'SHP'


def test_classification_palette_matches_classes():
    assert gee_config.CLASSIFICATION_VIS['palette'] == ['green', 'red']
    assert gee_config.CLASSES[gee_config.EXPORT_CLASS]['name'] == 'Rice field'


def test_missing_assets():
    assets = {'aoi': 'a', 'aoi_ricefield': None, 'ricefield': 'r', 'non_ricefield': None}
    assert gee_config.missing_assets(assets) == ['AOI_RICEFIELD_ASSET', 'NON_RICEFIELD_ASSET']


def test_initialize_uses_project(monkeypatch):
    fake_ee = MagicMock()
    monkeypatch.setattr(gee_config, 'ee', fake_ee)
    monkeypatch.setattr(gee_config, 'GEE_PROJECT_ID', 'my-project')
    gee_config.initialize()
    fake_ee.Initialize.assert_called_once_with(project='my-project')


def test_initialize_reraises(monkeypatch, capsys):
    fake_ee = MagicMock()
    fake_ee.Initialize.side_effect = Exception('Please authorize access to Earth Engine')
    monkeypatch.setattr(gee_config, 'ee', fake_ee)
    with pytest.raises(Exception, match='authorize'):
        gee_config.initialize()
    assert 'GEE error' in capsys.readouterr().out
