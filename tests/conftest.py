"""
Shared fixtures for TaskTracker tests
"""

import logging

import pytest
import yaml

from task_tracker import TaskTracker


def write_config(tmp_path, **storage):
    """Write a config file pointing the task file into tmp_path"""
    config = {
        'storage': {'path': str(tmp_path / 'nowfile'), **storage},
        'logging': {'level': 'DEBUG'},
    }
    config_path = tmp_path / 'config.yaml'
    config_path.write_text(yaml.safe_dump(config))
    return config_path


@pytest.fixture
def config_path(tmp_path):
    return write_config(tmp_path)


@pytest.fixture
def tracker(config_path):
    return TaskTracker(config_path=str(config_path))


@pytest.fixture
def home(tmp_path, monkeypatch):
    """Point the home directory at tmp_path so defaults land there"""
    monkeypatch.setenv('HOME', str(tmp_path))
    return tmp_path


@pytest.fixture(autouse=True)
def fresh_logger():
    """Drop handlers bound to a previous test's captured stderr"""
    logger = logging.getLogger("TaskTracker")
    logger.handlers.clear()
    yield
    logger.handlers.clear()
