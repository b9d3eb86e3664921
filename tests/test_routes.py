"""Integration tests — hit actual FastAPI routes via Starlette TestClient."""

import asyncio
import os
import sqlite3

import pytest
from starlette.testclient import TestClient

import app.main as main_module
from app.database import DB_NAME, db_connect
from app.main import create_app
from app.models.source import SourceCreate
from app.routes.health import APP_VERSION

PLAYLIST_A = '#EXTM3U\n#EXTINF:-1 tvg-logo="http://l/a.png" group-title="News",CNN\nhttp://a/1\nhttp://a/2'
PLAYLIST_B = "#EXTM3U\n#EXTINF:-1,Movies\nhttp://b/1"


@pytest.fixture()
def client(data_dir, upstream, monkeypatch):
    monkeypatch.delenv("SOURCE_MANAGER_PASSWORD", raising=False)
    app = create_app(data_dir, transport=upstream.transport)
    with TestClient(app) as c:
        yield c


def _add_source(client, name, url):
    r = client.post("/api/sources", json={"name": name, "url": url})
    assert r.status_code == 200
    return r.json()["source"]


@pytest.fixture()
def two_sources(client, upstream):
    upstream.add("http://up/a.m3u", PLAYLIST_A)
    upstream.add("http://up/b.m3u", PLAYLIST_B)
    _add_source(client, "A", "http://up/a.m3u")
    _add_source(client, "B", "http://up/b.m3u")


# -------------------------------------------------------------------
# Health
# -------------------------------------------------------------------

def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok", "version": APP_VERSION}


# -------------------------------------------------------------------
# Sources API
# -------------------------------------------------------------------

def test_sources_crud(client):
    r = client.get("/api/sources")
    assert r.status_code == 200
    assert r.json()["sources"] == []

    src = _add_source(client, "Test source", "http://example.com/list.m3u")
    assert src["is_active"] is True

    r = client.get(f"/api/sources/{src['id']}")
    assert r.json()["source"]["url"] == "http://example.com/list.m3u"

    r = client.put(f"/api/sources/{src['id']}", json={"name": "Updated", "is_active": False})
    assert r.status_code == 200
    assert r.json()["source"]["name"] == "Updated"
    assert r.json()["source"]["is_active"] is False

    r = client.delete(f"/api/sources/{src['id']}")
    assert r.status_code == 200
    assert client.get("/api/sources").json()["sources"] == []


def test_duplicate_source_url_conflict(client):
    _add_source(client, "One", "http://example.com/list.m3u")
    r = client.post("/api/sources", json={"name": "Two", "url": "http://example.com/list.m3u"})
    assert r.status_code == 409
    assert "already exists" in r.json()["error"]


def test_invalid_source_rejected(client):
    r = client.post("/api/sources", json={"name": "", "url": "http://example.com/list.m3u"})
    assert r.status_code == 422
    r = client.post("/api/sources", json={"name": "x", "url": "example.com"})
    assert r.status_code == 422


def test_unknown_source_404(client):
    assert client.get("/api/sources/missing").status_code == 404
    assert client.put("/api/sources/missing", json={"name": "x"}).status_code == 404
    assert client.delete("/api/sources/missing").status_code == 404


def test_verify_password(client):
    r = client.post("/api/sources/verify-password", json={"password": "s3cret"})
    assert r.status_code == 200
    assert r.json() == {"success": True, "valid": True}

    r = client.post("/api/sources/verify-password", json={"password": "wrong"})
    assert r.json() == {"success": True, "valid": False}


# -------------------------------------------------------------------
# Aggregate endpoint
# -------------------------------------------------------------------

def test_aggregate_json(client, two_sources):
    r = client.get("/api/aggregate")
    assert r.status_code == 200
    assert "charset=utf-8" in r.headers["content-type"]

    data = r.json()
    assert data["success"] is True
    assert data["totalChannels"] == 3
    assert data["lastUpdated"]
    assert data["sources"] == [
        {"name": "A", "url": "http://up/a.m3u", "channelCount": 2},
        {"name": "B", "url": "http://up/b.m3u", "channelCount": 1},
    ]
    assert data["channels"][0] == {
        "name": "CNN",
        "url": "http://a/1",
        "group": "News",
        "logo": "http://l/a.png",
        "source": "A",
    }
    # optional fields are omitted, not null
    assert data["channels"][1] == {"name": "Channel 2", "url": "http://a/2", "source": "A"}


def test_aggregate_m3u(client, two_sources):
    r = client.get("/api/aggregate?format=m3u")
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("audio/x-mpegurl")
    assert 'filename="aggregated.m3u"' in r.headers["content-disposition"]
    assert r.text.split("\n") == [
        "#EXTM3U",
        '#EXTINF:-1 tvg-logo="http://l/a.png" group-title="News",CNN [A]',
        "http://a/1",
        "#EXTINF:-1,Channel 2 [A]",
        "http://a/2",
        "#EXTINF:-1,Movies [B]",
        "http://b/1",
    ]


def test_cached_snapshot_served_without_fetching(client, upstream, two_sources):
    first = client.get("/api/aggregate").json()
    fetches = len(upstream.requests)
    assert fetches == 2

    # upstream changes are invisible until a refresh
    upstream.add("http://up/b.m3u", PLAYLIST_B + "\nhttp://b/2")
    second = client.get("/api/aggregate?refresh=false").json()

    assert len(upstream.requests) == fetches
    assert second == first


def test_refresh_true_always_refetches(client, upstream, two_sources):
    client.get("/api/aggregate")
    upstream.add("http://up/b.m3u", PLAYLIST_B + "\nhttp://b/2")

    data = client.get("/api/aggregate?refresh=true").json()

    assert len(upstream.requests) == 4
    assert data["totalChannels"] == 4
    assert data["sources"][1]["channelCount"] == 2

    # the refreshed snapshot is now the cached one
    assert client.get("/api/aggregate").json()["totalChannels"] == 4
    assert len(upstream.requests) == 4


def test_inactive_source_excluded(client, upstream, two_sources):
    sources = client.get("/api/sources").json()["sources"]
    client.put(f"/api/sources/{sources[0]['id']}", json={"is_active": False})

    data = client.get("/api/aggregate?refresh=true").json()
    assert [s["name"] for s in data["sources"]] == ["B"]
    assert data["totalChannels"] == 1


def test_failing_source_degrades(client, upstream):
    upstream.fail("http://up/a.m3u")
    upstream.add("http://up/b.m3u", PLAYLIST_B)
    _add_source(client, "A", "http://up/a.m3u")
    _add_source(client, "B", "http://up/b.m3u")

    data = client.get("/api/aggregate").json()
    assert data["success"] is True
    assert [s["channelCount"] for s in data["sources"]] == [0, 1]


def test_no_sources_empty_playlist(client):
    data = client.get("/api/aggregate").json()
    assert data["success"] is True
    assert data["totalChannels"] == 0
    assert data["channels"] == []

    r = client.get("/aggregate-m3u?format=m3u")
    assert r.text == "#EXTM3U"


def test_aggregate_failure_is_structured(client):
    def broken():
        raise sqlite3.OperationalError("database is locked")

    client.app.state.source_service.list_active_sources = broken

    r = client.get("/api/aggregate?refresh=true")
    assert r.status_code == 500
    assert r.json() == {"success": False, "error": "database is locked"}


def test_aggregate_succeeds_when_cache_write_fails(client, data_dir, two_sources):
    conn = db_connect(os.path.join(data_dir, DB_NAME))
    try:
        conn.execute("CREATE TRIGGER fail_channels BEFORE INSERT ON aggregated_channels BEGIN SELECT RAISE(ABORT, 'disk full'); END")
        conn.execute("CREATE TRIGGER fail_meta BEFORE INSERT ON aggregation_metadata BEGIN SELECT RAISE(ABORT, 'disk full'); END")
        conn.commit()
    finally:
        conn.close()

    r = client.get("/api/aggregate?refresh=true")
    assert r.status_code == 200
    data = r.json()
    assert data["success"] is True
    assert data["totalChannels"] == 3
    assert client.get("/api/cache/status").json()["cached"] is False


def test_cors_preflight(client):
    r = client.options(
        "/api/aggregate",
        headers={
            "Origin": "http://player.example",
            "Access-Control-Request-Method": "GET",
            "Access-Control-Request-Headers": "apikey",
        },
    )
    assert r.status_code == 200
    assert r.headers["access-control-allow-origin"] == "*"


# -------------------------------------------------------------------
# Cache API
# -------------------------------------------------------------------

def test_cache_status_and_clear(client, two_sources):
    r = client.get("/api/cache/status")
    assert r.status_code == 200
    assert r.json()["cached"] is False

    client.get("/api/aggregate")
    status = client.get("/api/cache/status").json()
    assert status["cached"] is True
    assert status["total_channels"] == 3
    assert status["ttl_seconds"] == 3600

    r = client.post("/api/cache/clear")
    assert r.status_code == 200
    assert client.get("/api/cache/status").json()["cached"] is False


def test_cache_refresh_trigger(client):
    r = client.post("/api/cache/refresh")
    assert r.status_code == 200
    assert r.json()["status"] == "refresh_started"


# -------------------------------------------------------------------
# UI page serves HTML
# -------------------------------------------------------------------

def test_index_page(client, two_sources):
    r = client.get("/")
    assert r.status_code == 200
    assert "text/html" in r.headers["content-type"]
    assert "http://up/a.m3u" in r.text


# -------------------------------------------------------------------
# Background refresh loop
# -------------------------------------------------------------------

def test_background_refresh_populates_cache(data_dir, upstream, monkeypatch):
    monkeypatch.setattr(main_module, "INITIAL_REFRESH_DELAY", 0)
    upstream.add("http://up/b.m3u", PLAYLIST_B)
    app = create_app(data_dir, transport=upstream.transport)
    app.state.source_service.create_source(SourceCreate(name="B", url="http://up/b.m3u"))

    async def run():
        task = asyncio.create_task(main_module.background_refresh_loop(app))
        for _ in range(50):
            await asyncio.sleep(0.02)
            if app.state.cache_service.status()["cached"]:
                break
        task.cancel()
        await task
        await app.state.http_client.close()

    asyncio.run(run())

    status = app.state.cache_service.status()
    assert status["cached"] is True
    assert status["total_channels"] == 1
