"""Tests for the HTTP API."""

import asyncio
import json

import pytest
from fastapi.testclient import TestClient

from prompt_mix.app import create_app
from prompt_mix.storage import MemoryStorage
from prompt_mix.store import MixStore


@pytest.fixture
def store():
    clock = iter(range(1000, 100000, 100))
    s = MixStore(MemoryStorage(), clock=lambda: next(clock))
    s.initialize()
    return s


@pytest.fixture
def client(store):
    with TestClient(create_app(store)) as c:
        yield c


def new_mix(client, title="Neon Alley", **extra):
    body = {"title": title, "url": "https://e.com/n.jpg", "prompt": "neon rain"}
    body.update(extra)
    resp = client.post("/api/mixes", json=body)
    assert resp.status_code == 201
    return resp.json()


class TestMixes:
    def test_seeded_list(self, client):
        data = client.get("/api/mixes").json()
        assert [m["id"] for m in data] == ["1", "2"]

    def test_create_and_get(self, client):
        created = new_mix(client, negativePrompt="blurry")
        assert created["negativePrompt"] == "blurry"
        fetched = client.get(f"/api/mixes/{created['id']}").json()
        assert fetched == created

    def test_get_unknown(self, client):
        assert client.get("/api/mixes/nope").status_code == 404

    def test_search_and_sort(self, client):
        new_mix(client, title="Aardvark Dawn", prompt="sunrise")
        data = client.get("/api/mixes", params={"search": "", "sort": "a-z"}).json()
        assert data[0]["title"] == "Aardvark Dawn"
        data = client.get("/api/mixes", params={"search": "VALLEY"}).json()
        assert [m["id"] for m in data] == ["2"]

    def test_update_keeps_identity(self, client):
        created = new_mix(client)
        resp = client.put(f"/api/mixes/{created['id']}",
                          json={"title": "Renamed", "url": "u", "prompt": "p"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["title"] == "Renamed"
        assert body["createdAt"] == created["createdAt"]

    def test_update_unknown(self, client):
        resp = client.put("/api/mixes/nope", json={"title": "x", "url": "u"})
        assert resp.status_code == 404

    def test_delete(self, client):
        assert client.delete("/api/mixes/1").json() == {"deleted": True}
        assert client.delete("/api/mixes/1").json() == {"deleted": False}
        assert [m["id"] for m in client.get("/api/mixes").json()] == ["2"]

    def test_gallery(self, client):
        data = client.get("/api/gallery", params={"view": "list", "search": "zzz"}).json()
        assert data["layout"] == "gallery-list"
        assert data["empty"] is True
        assert data["searching"] is True
        data = client.get("/api/gallery").json()
        assert data["layout"] == "gallery-grid"
        assert data["mixes"][1]["lightboxIndex"] == 1


class TestLibrary:
    def test_rename_and_theme(self, client):
        client.put("/api/library/name", json={"name": "Renders"})
        assert client.post("/api/library/theme/toggle").json() == {"theme": "dark"}
        assert client.get("/api/library").json() == {"name": "Renders", "theme": "dark", "count": 2}


class TestTransfer:
    def test_export_download(self, client):
        client.put("/api/library/name", json={"name": "My Renders"})
        resp = client.get("/api/export")
        assert resp.status_code == 200
        assert "2-My-Renders-" in resp.headers["content-disposition"]
        doc = resp.json()
        assert doc["title"] == "My Renders"
        assert doc["version"] == 1
        assert len(doc["mixes"]) == 2

    def test_import(self, client):
        payload = {"title": "Shared", "mixes": [
            {"id": "1", "title": "dup"},
            {"id": "z", "title": "Zen Garden", "createdAt": 5},
        ]}
        resp = client.post("/api/import", content=json.dumps(payload))
        assert resp.status_code == 200
        body = resp.json()
        assert body["added"] == 1
        assert body["duplicates"] == 1
        assert body["message"].startswith("Import Successful!")
        assert client.get("/api/library").json()["name"] == "Shared"

    def test_import_rejected(self, client):
        resp = client.post("/api/import", content='{"mixes": [], "title": "Foo"}')
        assert resp.status_code == 400
        detail = resp.json()["detail"]
        assert detail["kind"] == "empty"
        assert client.get("/api/library").json()["name"] == ""

    def test_import_bad_json(self, client):
        resp = client.post("/api/import", content="{nope")
        assert resp.status_code == 400
        assert resp.json()["detail"]["kind"] == "parse"


class RecordingStorage(MemoryStorage):
    """Notes whether each write ran on a thread with a running event loop."""

    def __init__(self):
        super().__init__()
        self.writes_on_loop = []

    def set_item(self, key, value):
        try:
            asyncio.get_running_loop()
            self.writes_on_loop.append(True)
        except RuntimeError:
            self.writes_on_loop.append(False)
        super().set_item(key, value)


class TestBlockingWrites:
    @pytest.fixture
    def storage(self):
        return RecordingStorage()

    @pytest.fixture
    def client(self, storage):
        s = MixStore(storage)
        s.initialize()
        storage.writes_on_loop.clear()
        with TestClient(create_app(s)) as c:
            yield c

    def test_mutations_write_off_the_event_loop(self, client, storage):
        mix = new_mix(client)
        client.put(f"/api/mixes/{mix['id']}", json={"title": "T", "url": "u", "prompt": "p"})
        client.put("/api/library/name", json={"name": "Renders"})
        client.post("/api/library/theme/toggle")
        client.delete(f"/api/mixes/{mix['id']}")
        assert len(storage.writes_on_loop) == 5
        assert not any(storage.writes_on_loop)

    def test_import_writes_off_the_event_loop(self, client, storage):
        document = json.dumps([{"id": "n1", "url": "u", "title": "New", "prompt": "p", "createdAt": 1}])
        assert client.post("/api/import", content=document).status_code == 200
        assert storage.writes_on_loop == [False]
