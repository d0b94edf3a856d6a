from types import SimpleNamespace
from unittest.mock import MagicMock

import geopandas as gpd
import pytest
from shapely.geometry import Point, box

import gee_config
from scripts import utils
from fakes import FakeFeatureCollection, FakeTask


@pytest.fixture
def export(stage):
    return stage('05_vector_export')


def test_polygons_from_classification_band(export, monkeypatch):
    fake_ee = MagicMock()
    monkeypatch.setattr(export, 'ee', fake_ee)
    classified, geometry = MagicMock(), MagicMock()

    export.classification_to_polygons(classified, geometry)

    classified.select.assert_called_once_with('classification')
    classified.select.return_value.reduceToVectors.assert_called_once_with(
        geometry=geometry,
        reducer=fake_ee.Reducer.countEvery.return_value,
        scale=30,
        geometryType='polygon',
        eightConnected=False,
        labelProperty='class',
    )


def test_only_rice_field_polygons_survive_filter(export, fake_ee, monkeypatch):
    monkeypatch.setattr(export, 'ee', fake_ee)
    polygons = FakeFeatureCollection(
        [{'class': c, 'count': n} for c, n in [(0, 12), (1, 40), (0, 3), (1, 7), (0, 1)]])

    rice = export.filter_class(polygons)

    assert [f['class'] for f in rice.features] == [0, 0, 0]
    assert [f['count'] for f in rice.features] == [12, 3, 1]


def test_export_class_polygons_writes_shapefile_to_drive(export, monkeypatch):
    monkeypatch.setattr(export, 'ee', MagicMock())
    utils_ee = MagicMock()
    monkeypatch.setattr(utils, 'ee', utils_ee)

    task = export.export_class_polygons(MagicMock(), MagicMock())

    kwargs = utils_ee.batch.Export.table.toDrive.call_args.kwargs
    assert kwargs['description'] == 'Classification_Result_2023'
    assert kwargs['folder'] == gee_config.EXPORT_FOLDER
    assert kwargs['fileFormat'] == 'SHP'
    task.start.assert_called_once_with()


def test_main_skips_export(export):
    assert export.main(MagicMock(), MagicMock(), export=False) is None


@pytest.fixture
def no_sleep(export, monkeypatch):
    clock = {'t': 0.0}

    def sleep(seconds):
        clock['t'] += seconds

    monkeypatch.setattr(export, 'time', SimpleNamespace(
        sleep=sleep, monotonic=lambda: clock['t']))
    return clock


def test_wait_for_task_completes(export, no_sleep):
    task = FakeTask(['READY', 'RUNNING', 'COMPLETED'])
    status = export.wait_for_task(task, poll_seconds=10)
    assert status['state'] == 'COMPLETED'
    assert task.calls == 3
    assert no_sleep['t'] == 20


def test_wait_for_task_failure_raises(export, no_sleep):
    task = FakeTask(['RUNNING', 'FAILED'], error_message='Export too large')
    with pytest.raises(RuntimeError, match='FAILED: Export too large'):
        export.wait_for_task(task, poll_seconds=10)


def test_wait_for_task_cancelled_raises(export, no_sleep):
    with pytest.raises(RuntimeError, match='CANCELLED'):
        export.wait_for_task(FakeTask(['CANCELLED']))


def test_wait_for_task_timeout(export, no_sleep):
    with pytest.raises(TimeoutError):
        export.wait_for_task(FakeTask(['RUNNING']), poll_seconds=60, timeout=150)


def _write_shp(tmp_path, classes, geoms=None, name='Classification_Result_2023.shp'):
    geoms = geoms or [box(i, 0, i + 1, 1) for i in range(len(classes))]
    gdf = gpd.GeoDataFrame({'class': classes, 'count': [1] * len(classes)},
                           geometry=geoms, crs='EPSG:4326')
    path = tmp_path / name
    gdf.to_file(path)
    return path


def test_verify_shapefile_accepts_rice_only(export, tmp_path):
    path = _write_shp(tmp_path, [0, 0, 0])
    assert export.verify_shapefile(path) == 3


def test_verify_shapefile_rejects_other_class(export, tmp_path):
    path = _write_shp(tmp_path, [0, 1])
    with pytest.raises(ValueError, match=r'unexpected classes \[1\]'):
        export.verify_shapefile(path)


def test_verify_shapefile_rejects_points(export, tmp_path):
    path = _write_shp(tmp_path, [0, 0], geoms=[Point(0, 0), Point(1, 1)], name='pts.shp')
    with pytest.raises(ValueError, match='non-polygon'):
        export.verify_shapefile(path)


def test_verify_shapefile_requires_class_attribute(export, tmp_path):
    gdf = gpd.GeoDataFrame({'label': [0]}, geometry=[box(0, 0, 1, 1)], crs='EPSG:4326')
    path = tmp_path / 'nolabel.shp'
    gdf.to_file(path)
    with pytest.raises(ValueError, match="missing 'class'"):
        export.verify_shapefile(path)
