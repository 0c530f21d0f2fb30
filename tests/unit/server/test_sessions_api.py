import asyncio
import time

import pytest
from fastapi.testclient import TestClient

from mysql_session_store.server.dependencies import set_session_store
from mysql_session_store.store import MySQLSessionStore


def _seed(store: MySQLSessionStore) -> None:
    now = int(time.time() * 1000)

    async def _populate() -> None:
        await store.create_table()
        await store.set("fresh", {"cookie": {"expires": now + 600_000}, "passport": {"user": "alice"}})
        await store.set("other", {"cookie": {"expires": now + 600_000}, "passport": {"user": "bob"}})
        await store.set("stale", {"cookie": {"expires": now - 600_000}, "passport": {"user": "alice"}})

    asyncio.run(_populate())


@pytest.fixture
def store(tmp_path):
    db_path = tmp_path / "sessions_api.db"
    return MySQLSessionStore({"driver": "sqlite", "database": str(db_path)}, env={})


@pytest.fixture
def client(store):
    _seed(store)
    set_session_store(store)

    from mysql_session_store.server.app import app

    with TestClient(app) as test_client:
        yield test_client

    set_session_store(None)


def test_stats_and_expired_listing(client: TestClient):
    response = client.get("/api/sessions/stats")
    assert response.status_code == 200
    assert response.json() == {"active": 2, "expired": 1}

    response = client.get("/api/sessions/expired")
    assert response.status_code == 200
    sessions = response.json()["sessions"]
    assert [session["session_id"] for session in sessions] == ["stale"]
    assert sessions[0]["user"] == "alice"


def test_clear_expired_sessions(client: TestClient):
    response = client.delete("/api/sessions/expired")
    assert response.status_code == 200
    assert response.json()["success"] is True

    assert client.get("/api/sessions/stats").json() == {"active": 2, "expired": 0}


def test_destroy_session_and_user(client: TestClient):
    response = client.delete("/api/sessions/ids/fresh")
    assert response.status_code == 200
    assert client.get("/api/sessions/stats").json() == {"active": 1, "expired": 1}

    response = client.delete("/api/sessions/users/alice")
    assert response.status_code == 200
    assert client.get("/api/sessions/stats").json() == {"active": 1, "expired": 0}

    # destroying an unknown id still succeeds
    assert client.delete("/api/sessions/ids/unknown").status_code == 200


def test_store_failure_maps_to_service_unavailable(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("")
    broken = MySQLSessionStore({"driver": "sqlite", "database": str(blocker / "db.sqlite")}, env={})
    set_session_store(broken)

    from mysql_session_store.server.app import app

    try:
        with TestClient(app) as test_client:
            response = test_client.get("/api/sessions/stats")
    finally:
        set_session_store(None)

    assert response.status_code == 503
    assert "No open database connection" in response.json()["detail"]


def test_session_named_expired_can_be_destroyed(client: TestClient, store: MySQLSessionStore):
    now = int(time.time() * 1000)
    asyncio.run(store.set("expired", {"cookie": {"expires": now + 600_000}}))
    assert client.get("/api/sessions/stats").json() == {"active": 3, "expired": 1}

    response = client.delete("/api/sessions/ids/expired")

    assert response.status_code == 200
    assert client.get("/api/sessions/stats").json() == {"active": 2, "expired": 1}
