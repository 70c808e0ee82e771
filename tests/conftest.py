"""Pytest configuration for featuretree."""
import os
import tempfile

import pytest

from featuretree.base.config import FeatureTreeConfig, LogConfig, StorageConfig, set_config
from featuretree.data.db import Database
from featuretree.server.state import ApplicationState
from featuretree.tree.models import forest_from_list
from featuretree.tree.store import TreeStore


def pytest_configure():
    # Keep anything that falls back to FeatureTreeConfig.from_env() out of $HOME
    os.environ.setdefault("FEATURETREE_DATA_DIR", tempfile.mkdtemp(prefix="featuretree-tests-"))
    os.environ.setdefault("FEATURETREE_LOG_FILE", "false")


@pytest.fixture(autouse=True)
def config(tmp_path):
    """Fresh config, status database and app state per test."""
    cfg = FeatureTreeConfig(
        storage=StorageConfig(base_dir=tmp_path),
        log=LogConfig(file_enabled=False),
    )
    set_config(cfg)
    Database.reset_instance()
    ApplicationState.reset()
    yield cfg
    Database.reset_instance()
    ApplicationState.reset()


@pytest.fixture
def forest():
    """
    A (1/1)
      A1 (5/5)
      A2 (3/3)
    B (0/0)
    """
    return forest_from_list([
        {
            "id": "A",
            "name": "A",
            "frequency": 1,
            "damage": 1,
            "children": [
                {"id": "A1", "name": "A1", "frequency": 5, "damage": 5},
                {"id": "A2", "name": "A2", "frequency": 3, "damage": 3},
            ],
        },
        {"id": "B", "name": "B"},
    ])


class MemoryPersistence:
    """Persistence adapter that records every save."""

    def __init__(self, initial=None, fail=False):
        self.saved = []
        self.initial = initial
        self.fail = fail

    def load(self):
        return self.initial

    def save(self, forest):
        if self.fail:
            return False
        self.saved.append(forest)
        return True


@pytest.fixture
def persistence():
    return MemoryPersistence()


@pytest.fixture
def store(forest, persistence):
    return TreeStore(persistence, forest)


@pytest.fixture
def failing_persistence():
    return MemoryPersistence(fail=True)
