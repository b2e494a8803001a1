"""Tests for the REST API — routes exercised through FastAPI's TestClient."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from fastapi.testclient import TestClient

from isoworld.api.app import create_app
from isoworld.api.session import WorldSession
from isoworld.storage.chunk_store import ChunkStore
from tests.helpers.world_fixtures import CountingGenerator, FlakyBackend, make_config

API = "/api/v1"


def _client(backend=None):
    config = make_config()
    store = ChunkStore(backend if backend is not None else FlakyBackend(), chunk_size=config.chunk_size)
    session = WorldSession(config, store=store, generator=CountingGenerator())
    return TestClient(create_app(session=session)), session


@pytest.fixture
def client():
    test_client, _ = _client()
    with test_client as c:
        yield c


class TestWorldRoutes:

    def test_status_after_startup(self, client):
        body = client.get(f"{API}/world").json()
        assert body["world_id"] == "test-world"
        assert body["resident"] == 25
        assert body["dirty"] == 25
        assert body["tracked"] == [0, 0]
        assert [0, 0] in body["active_chunks"]

    def test_move_actor(self, client):
        resp = client.post(f"{API}/actor/move", json={"x": 80, "y": 0})
        assert resp.status_code == 200
        body = resp.json()
        assert body["center"] == [5, 0]
        assert [0, 0] in body["evicted"]
        assert [5, 2] in body["generated"]
        assert body["resident"] == 25

    def test_save_and_list(self, client):
        resp = client.post(f"{API}/world/save")
        assert resp.status_code == 200
        assert resp.json()["saved"] == 25
        worlds = client.get(f"{API}/worlds").json()
        assert worlds[0]["world_id"] == "test-world"
        assert worlds[0]["chunk_count"] == 25
        assert worlds[0]["last_saved_at"] is not None

    def test_load_without_save_is_noop(self, client):
        assert client.post(f"{API}/world/load").json()["status"] == "noop"

    def test_load_restores_saved_tile(self, client):
        client.patch(f"{API}/tiles/3/3", json={"walkable": False})
        client.post(f"{API}/world/save")
        client.patch(f"{API}/tiles/3/3", json={"walkable": True})
        assert client.post(f"{API}/world/load").json()["status"] == "ok"
        assert client.get(f"{API}/tiles/3/3").json()["walkable"] is False

    def test_clear(self, client):
        client.post(f"{API}/world/save")
        body = client.post(f"{API}/world/clear").json()
        assert body["message"] == "Removed 26 stored record(s)."
        assert client.get(f"{API}/worlds").json() == []

    def test_generate(self, client):
        resp = client.post(f"{API}/world/generate", json={"seed": 3, "clear_storage": True})
        assert resp.status_code == 200
        assert client.get(f"{API}/world").json()["seed"] == 3

    def test_save_failure_is_503(self):
        backend = FlakyBackend()
        test_client, _ = _client(backend)
        with test_client as c:
            backend.fail_writes = True
            resp = c.post(f"{API}/world/save")
            assert resp.status_code == 503
            backend.fail_writes = False


class TestTileRoutes:

    def test_get_tile(self, client):
        body = client.get(f"{API}/tiles/-3/4").json()
        assert (body["x"], body["y"]) == (-3, 4)
        assert body["terrain_type"] == "grass"
        assert body["occupancy"] == "empty"

    def test_tile_not_resident(self, client):
        assert client.get(f"{API}/tiles/5000/5000").status_code == 404

    def test_patch_tile(self, client):
        resp = client.patch(f"{API}/tiles/3/3", json={"walkable": False, "structure_id": "wall"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["walkable"] is False
        assert body["occupancy"] == "structure"

    def test_patch_requires_fields(self, client):
        assert client.patch(f"{API}/tiles/0/0", json={}).status_code == 422

    def test_get_chunk(self, client):
        body = client.get(f"{API}/chunks/-1/0").json()
        assert body["origin"] == [-16, 0]
        assert len(body["tiles"]) == 256
        assert body["dirty"] is True


class TestCoordRoutes:

    def test_grid_to_world(self, client):
        body = client.get(f"{API}/coords/grid-to-world", params={"x": 1, "y": 0}).json()
        assert body["world"] == {"x": 32.0, "y": 16.0}
        assert body["chunk"] == [0, 0]

    def test_world_to_grid(self, client):
        body = client.get(f"{API}/coords/world-to-grid", params={"x": 32, "y": 0}).json()
        assert body["grid"] == {"x": 0.5, "y": -0.5}
        assert body["snapped_tile"] == [1, 0]
        assert body["containing_tile"] == [0, -1]
        assert body["chunk"] == [0, -1]


class TestMiscRoutes:

    def test_config(self, client):
        body = client.get(f"{API}/config").json()
        assert body["chunk_size"] == 16
        assert body["load_distance"] == 2
        assert body["storage_backend"] == "memory"

    def test_events(self, client):
        client.post(f"{API}/actor/move", json={"x": 160, "y": 0})
        events = client.get(f"{API}/events", params={"limit": 2000}).json()
        categories = {e["category"] for e in events}
        assert {"generate", "evict"} <= categories
        recent = client.get(f"{API}/events", params={"since_tick": 2}).json()
        assert recent
        assert all(e["tick"] >= 2 for e in recent)

    def test_session_released_after_shutdown(self):
        test_client, session = _client()
        with test_client:
            assert session.started
        assert not session.started
