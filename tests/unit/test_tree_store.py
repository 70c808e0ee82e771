"""TreeStore: commit, persist and notify."""

import unittest

import pytest

from featuretree.errors import FeatureTreeError
from featuretree.tree import queries
from featuretree.tree.models import FeatureStatus
from featuretree.tree.store import TreeStore


def test_changes_are_persisted_and_emitted(store, persistence):
    seen = []
    store.tree_changed.connect(seen.append)

    node = store.add("New", parent_id="B")

    assert queries.find_by_id(store.snapshot, node.id) is not None
    assert persistence.saved == [store.snapshot]
    assert seen == [store.snapshot]


def test_noop_commands_do_not_persist(store, persistence):
    assert store.update("missing", name="x") is False
    assert store.delete("missing") is False
    assert store.swap_siblings("A1", "B") is False
    assert store.update("A1", name="A1") is False
    assert persistence.saved == []


def test_failed_structural_edit_commits_nothing(store, persistence):
    before = store.snapshot
    with pytest.raises(FeatureTreeError):
        store.move("A", "A2")
    assert store.snapshot is before
    assert persistence.saved == []


def test_failed_save_keeps_memory_authoritative(forest, failing_persistence):
    store = TreeStore(failing_persistence, forest)
    assert store.set_status("A1", FeatureStatus.FAILED) is True
    assert queries.find_by_id(store.snapshot, "A1").status is FeatureStatus.FAILED


def test_raising_save_is_logged_not_propagated(forest):
    class Exploding:
        def load(self):
            return None

        def save(self, forest):
            raise OSError("disk full")

    store = TreeStore(Exploding(), forest)
    assert store.toggle_expand("A") is True


def test_failing_observer_does_not_block_others(store):
    seen = []

    def broken(_):
        raise RuntimeError("boom")

    store.tree_changed.connect(broken)
    store.tree_changed.connect(seen.append)
    store.delete("B")
    assert len(seen) == 1


class TestStoreSnapshots(unittest.TestCase):
    def setUp(self):
        self.store = TreeStore()

    def test_snapshot_is_immutable_tuple(self):
        self.store.add("root")
        snap = self.store.snapshot
        self.assertIsInstance(snap, tuple)
        self.store.add("second")
        self.assertEqual(len(snap), 1)
        self.assertEqual(len(self.store.snapshot), 2)

    def test_without_persistence(self):
        node = self.store.add("root")
        self.assertTrue(self.store.move(self.store.add("child").id, node.id))
        self.assertEqual(len(self.store.snapshot[0].children), 1)

    def test_replace_same_forest_is_noop(self):
        self.store.add("root")
        self.assertFalse(self.store.replace(self.store.snapshot))
