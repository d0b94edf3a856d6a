import importlib

import pytest

import gee_config
from fakes import fake_ee_module


@pytest.fixture(autouse=True)
def _tmp_outputs(tmp_path, monkeypatch):
    # keep logs and outputs of the stages out of the repository
    monkeypatch.setattr(gee_config, 'OUTPUT_DIR', str(tmp_path / 'outputs'))
    monkeypatch.setattr(gee_config, 'FIGURE_DIR', str(tmp_path / 'outputs' / 'figures'))
    monkeypatch.setattr(gee_config, 'LOG_PATH', str(tmp_path / 'logs' / 'pipeline.log'))
    yield


@pytest.fixture
def fake_ee():
    return fake_ee_module()


@pytest.fixture
def stage():
    """Load a numbered stage module, e.g. stage('02_training_samples')."""
    def _load(name):
        return importlib.import_module(f'scripts.{name}')
    return _load
