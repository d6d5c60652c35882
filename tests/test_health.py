import logging
from unittest.mock import MagicMock

from fastapi.testclient import TestClient
from pymongo.errors import ServerSelectionTimeoutError

from database import StoreContext, get_store
from main import create_app


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"ok": True}


def test_health_db_reports_counts(client):
    response = client.get("/health/db")
    assert response.status_code == 200
    assert response.json() == {
        "status": "connected",
        "database": "test_lessons",
        "collections": {"lessons": 10, "orders": 0},
    }


def test_health_db_hides_driver_error(store):
    broken = MagicMock(spec=StoreContext)
    broken.ping.side_effect = ServerSelectionTimeoutError("no servers at 10.0.0.1")
    app = create_app(store)
    app.dependency_overrides[get_store] = lambda: broken

    response = TestClient(app).get("/health/db")

    assert response.status_code == 500
    assert response.json() == {"status": "disconnected", "error": "Database unavailable"}


def test_unknown_route_uses_error_shape(client):
    response = client.get("/nope")
    assert response.status_code == 404
    assert "error" in response.json()


def test_lifespan_closes_store(store):
    store.close = MagicMock()
    with TestClient(create_app(store)) as client:
        assert client.get("/health").status_code == 200
    store.close.assert_called_once()


def test_unhandled_error_logged_once(store, caplog):
    broken = MagicMock()
    broken.lessons.find.side_effect = RuntimeError("unexpected")
    app = create_app(store)
    app.dependency_overrides[get_store] = lambda: broken

    with caplog.at_level(logging.INFO):
        response = TestClient(app, raise_server_exceptions=False).get("/lessons")

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}
    assert len([r for r in caplog.records if r.exc_info]) == 1
