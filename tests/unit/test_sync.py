"""Status sync: merge on load, local-first writes, remote failures."""

import asyncio

import pytest

from featuretree.data.db import Database
from featuretree.tree import queries
from featuretree.tree.models import FeatureStatus, forest_from_list
from featuretree.tree.store import TreeStore
from featuretree.tree.sync import DatabaseStatusSource, StatusSync, load_workspace, merge_statuses


class FakeSource:
    def __init__(self, statuses=None, fetch_error=None, set_failures=0):
        self.statuses = dict(statuses or {})
        self.fetch_error = fetch_error
        self.set_failures = set_failures
        self.calls = []

    async def fetch_all(self):
        if self.fetch_error:
            raise self.fetch_error
        return dict(self.statuses)

    async def set_status(self, feature_id, status):
        self.calls.append((feature_id, status))
        if self.set_failures:
            self.set_failures -= 1
            raise ConnectionError("status service down")
        self.statuses[feature_id] = status


@pytest.fixture
def xy_forest():
    return forest_from_list([{"id": "X", "name": "X", "status": "pass"}, {"id": "Z", "name": "Z"}])


def test_merge_overwrites_known_and_ignores_unknown(xy_forest):
    merged = merge_statuses(xy_forest, {"X": FeatureStatus.FAILED, "Y": FeatureStatus.PASS})
    assert queries.find_by_id(merged, "X").status is FeatureStatus.FAILED
    assert not queries.contains(merged, "Y")
    assert queries.count_nodes(merged) == 2


def test_merge_keeps_nodes_not_in_mapping(xy_forest):
    merged = merge_statuses(xy_forest, {"Z": FeatureStatus.PASS})
    assert queries.find_by_id(merged, "X").status is FeatureStatus.PASS
    assert queries.find_by_id(merged, "Z").status is FeatureStatus.PASS


def test_merge_null_clears_status(xy_forest):
    merged = merge_statuses(xy_forest, {"X": None})
    assert queries.find_by_id(merged, "X").status is None


def test_merge_without_changes_is_identity(xy_forest):
    assert merge_statuses(xy_forest, {}) is xy_forest
    assert merge_statuses(xy_forest, {"X": FeatureStatus.PASS}) is xy_forest


def test_merge_reaches_nested_nodes(forest):
    merged = merge_statuses(forest, {"A2": FeatureStatus.FAILED})
    assert queries.find_by_id(merged, "A2").status is FeatureStatus.FAILED
    assert merged[1] is forest[1]


async def test_load_merges_and_persists(xy_forest, persistence):
    store = TreeStore(persistence, xy_forest)
    sync = StatusSync(store, FakeSource({"X": FeatureStatus.FAILED, "Y": FeatureStatus.PASS}))

    await sync.load()

    assert queries.find_by_id(store.snapshot, "X").status is FeatureStatus.FAILED
    assert persistence.saved == [store.snapshot]


async def test_load_failure_keeps_local_forest(xy_forest, persistence):
    store = TreeStore(persistence, xy_forest)
    sync = StatusSync(store, FakeSource(fetch_error=ConnectionError("offline")))

    result = await sync.load()

    assert result is xy_forest
    assert persistence.saved == []


async def test_set_status_is_local_first(xy_forest):
    store = TreeStore(None, xy_forest)
    source = FakeSource()
    sync = StatusSync(store, source)

    assert sync.set_status("Z", FeatureStatus.FAILED) is True
    # Committed before the notification has run
    assert queries.find_by_id(store.snapshot, "Z").status is FeatureStatus.FAILED

    await sync.drain()
    assert source.calls == [("Z", FeatureStatus.FAILED)]


async def test_remote_failure_is_retried_then_accepted(xy_forest):
    store = TreeStore(None, xy_forest)
    source = FakeSource(set_failures=10)
    sync = StatusSync(store, source, retry_attempts=3, retry_backoff=0)

    sync.set_status("X", FeatureStatus.FAILED)
    await sync.drain()

    assert len(source.calls) == 3
    assert queries.find_by_id(store.snapshot, "X").status is FeatureStatus.FAILED


async def test_remote_recovers_within_retries(xy_forest):
    store = TreeStore(None, xy_forest)
    source = FakeSource(set_failures=1)
    sync = StatusSync(store, source, retry_attempts=3, retry_backoff=0)

    sync.set_status("X", None)
    await sync.drain()

    assert len(source.calls) == 2
    assert source.statuses == {"X": None}


def test_set_status_without_event_loop(xy_forest):
    store = TreeStore(None, xy_forest)
    source = FakeSource()
    sync = StatusSync(store, source)

    assert sync.set_status("X", "failed") is True
    assert source.calls == []


async def test_database_source_round_trip(tmp_path):
    db = Database(str(tmp_path / "status.db"))
    source = DatabaseStatusSource(db)

    await source.set_status("f1", FeatureStatus.PASS)
    await source.set_status("f2", None)

    assert await source.fetch_all() == {"f1": FeatureStatus.PASS, "f2": None}


async def test_load_workspace_seeds_empty_store(persistence):
    store = TreeStore(persistence)
    forest = await load_workspace(store, persistence, seed=True)
    assert queries.contains(forest, "test-1-1")
    assert persistence.saved


async def test_load_workspace_prefers_persisted_forest(xy_forest, persistence):
    persistence.initial = xy_forest
    store = TreeStore(persistence)
    sync = StatusSync(store, FakeSource({"Z": FeatureStatus.PASS}))

    forest = await load_workspace(store, persistence, sync)

    assert [n.id for n in forest] == ["X", "Z"]
    assert queries.find_by_id(forest, "Z").status is FeatureStatus.PASS


async def test_concurrent_notifications_all_delivered(forest):
    store = TreeStore(None, forest)
    source = FakeSource()
    sync = StatusSync(store, source)

    for fid in ("A", "A1", "A2"):
        sync.set_status(fid, FeatureStatus.PASS)
    await asyncio.wait_for(sync.drain(), timeout=5)

    assert sorted(f for f, _ in source.calls) == ["A", "A1", "A2"]
