"""Feature tree editor API backed by a seeded workspace."""

import pytest
from fastapi.testclient import TestClient

from featuretree.server.api import create_app
from featuretree.server.state import get_state
from featuretree.tree import queries


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setattr("featuretree.server.api.setup_logging", lambda config: None)
    with TestClient(create_app()) as client:
        yield client


def find(features, feature_id):
    for node in features:
        if node["id"] == feature_id:
            return node
        found = find(node["children"], feature_id)
        if found:
            return found
    return None


def test_empty_workspace_is_seeded(client):
    features = client.get("/api/tree").json()["features"]
    assert [f["id"] for f in features] == ["test-1", "test-2", "test-3", "test-4"]
    assert find(features, "test-1-1")["status"] == "pass"


def test_view_rows(client):
    rows = {r["id"]: r for r in client.get("/api/tree/view").json()}
    assert rows["test-1-1"]["weight"] == 544
    assert rows["test-1"]["contribution"] is None
    assert rows["test-1-1"]["depth"] == 1


def test_create_update_delete(client):
    resp = client.post("/api/tree/features", json={"name": "  Search  ", "frequency": 15, "parentId": "test-4"})
    assert resp.status_code == 201
    feature = resp.json()["feature"]
    assert feature["name"] == "Search"
    assert feature["frequency"] == 10
    assert feature["parentId"] == "test-4"

    resp = client.patch(f"/api/tree/features/{feature['id']}", json={"damage": 3, "description": "find things"})
    assert resp.json()["changed"] is True
    node = client.get(f"/api/tree/features/{feature['id']}").json()
    assert node["damage"] == 3
    assert node["contribution"] == 100.0

    assert client.delete("/api/tree/features/test-4").status_code == 400
    resp = client.delete("/api/tree/features/test-4", params={"confirm": "true"})
    assert resp.json()["changed"] is True
    assert client.get(f"/api/tree/features/{feature['id']}").status_code == 404


def test_empty_name_rejected(client):
    resp = client.post("/api/tree/features", json={"name": "   "})
    assert resp.status_code == 400
    assert resp.json()["code"] == "VALIDATION_002"

    resp = client.patch("/api/tree/features/test-4", json={"name": ""})
    assert resp.status_code == 400
    assert resp.json()["code"] == "VALIDATION_002"
    assert client.get("/api/tree/features/test-4").json()["name"] == "API Documentation"

    resp = client.post("/api/tree/features", json={"name": "ok", "frequency": "lots", "damage": []})
    assert resp.status_code == 201


def test_add_under_unknown_parent(client):
    resp = client.post("/api/tree/features", json={"name": "x", "parentId": "ghost"})
    assert resp.status_code == 404
    assert resp.json()["code"] == "TREE_001"


def test_move_and_cycle_rejection(client):
    resp = client.post("/api/tree/move", json={"featureId": "test-1", "newParentId": "test-1-2"})
    assert resp.status_code == 409
    assert resp.json()["code"] == "TREE_003"

    resp = client.post("/api/tree/move", json={"featureId": "test-4", "newParentId": "test-2"})
    assert resp.json()["changed"] is True
    assert find(resp.json()["features"], "test-4")["parentId"] == "test-2"


def test_swap_toggle_and_drop(client):
    resp = client.post("/api/tree/swap", json={"firstId": "test-2-1", "secondId": "test-2-2"})
    children = find(resp.json()["features"], "test-2")["children"]
    assert [c["id"] for c in children] == ["test-2-2", "test-2-1"]

    assert client.post("/api/tree/swap", json={"firstId": "test-2-1", "secondId": "test-3"}).json()["changed"] is False

    resp = client.post("/api/tree/features/test-2/toggle")
    assert find(resp.json()["features"], "test-2")["expanded"] is False

    check = client.post("/api/tree/drop/check", json={"sourceId": "test-3", "targetId": "test-3-1", "mode": "move"})
    assert check.json()["allowed"] is False
    resp = client.post("/api/tree/drop", json={"sourceId": "test-3", "targetId": "test-3-1", "mode": "move"})
    assert resp.status_code == 409
    assert resp.json()["code"] == "TREE_003"

    resp = client.post("/api/tree/drop", json={"sourceId": "test-3", "targetId": "test-3", "mode": "move"})
    assert resp.status_code == 409
    assert resp.json()["code"] == "TREE_002"

    # Unknown source stays a plain no-op
    resp = client.post("/api/tree/drop", json={"sourceId": "ghost", "targetId": "test-3", "mode": "move"})
    assert resp.status_code == 200
    assert resp.json()["changed"] is False


def test_status_write_reaches_status_table(client):
    resp = client.put("/api/tree/features/test-1-3/status", json={"status": "failed"})
    assert resp.json()["changed"] is True
    assert find(resp.json()["features"], "test-1-3")["status"] == "failed"

    client.portal.call(get_state().sync.drain)
    assert client.get("/api/features/status/test-1-3").json()["status"] == "failed"


def test_invalid_status_write(client):
    resp = client.put("/api/tree/features/test-1-3/status", json={"status": "green"})
    assert resp.status_code == 400
    assert resp.json()["code"] == "VALIDATION_003"


def test_changes_survive_restart(monkeypatch):
    monkeypatch.setattr("featuretree.server.api.setup_logging", lambda config: None)
    with TestClient(create_app()) as client:
        client.post("/api/tree/features", json={"name": "Persisted"})

    from featuretree.data.db import Database
    from featuretree.server.state import ApplicationState

    ApplicationState.reset()
    Database.reset_instance()
    with TestClient(create_app()) as client:
        names = [f["name"] for f in client.get("/api/tree").json()["features"]]
    assert names[-1] == "Persisted"


def test_backup_export_import(client):
    key = client.post("/api/tree/backups").json()["key"]
    assert client.get("/api/tree/backups").json()["backups"][0]["key"] == key

    document = client.get("/api/tree/export").json()
    client.delete("/api/tree/features/test-1", params={"confirm": "true"})
    assert not queries.contains(get_state().store.snapshot, "test-1")

    resp = client.post("/api/tree/import", json=document)
    assert resp.json()["changed"] is True
    assert queries.contains(get_state().store.snapshot, "test-1")

    resp = client.post(f"/api/tree/backups/{key}/restore")
    assert resp.status_code == 200
    assert client.post("/api/tree/backups/backup_0/restore").status_code == 404

    assert client.post("/api/tree/import", json={"bogus": True}).json()["code"] == "STORAGE_002"
    assert client.get("/api/tree/stats").json()["totalFeatures"] == 11


def test_revision_counts_committed_changes(client):
    start = client.get("/api/config").json()["revision"]

    client.post("/api/tree/features", json={"name": "Counted"})
    assert client.get("/api/config").json()["revision"] == start + 1

    # No-ops are not commits
    client.post("/api/tree/swap", json={"firstId": "test-1", "secondId": "test-1-1"})
    client.post("/api/tree/features/ghost/toggle")
    assert client.get("/api/config").json()["revision"] == start + 1
