import pytest
from fastapi import status

from overtime_api.dependencies import store_scope


def test_health_check(client):
    """Test the /health endpoint returns 200 and ok status."""
    response = client.get("/health")
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["status"] == "ok"
    assert "version" in data
    assert "timestamp" in data


def test_readiness_check(client):
    """Test the /readiness endpoint pings the storage backend."""
    response = client.get("/readiness")
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["status"] == "ready"
    assert data["components"]["database"] == "postgresql"


def test_readiness_reports_unavailable_storage(client, monkeypatch):
    from overtime_api.storage.sqlalchemy_store import SqlAlchemyStore
    monkeypatch.setattr(SqlAlchemyStore, "health_check", lambda self: False)
    response = client.get("/readiness")
    assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
    assert response.json()["success"] is False


def test_root_endpoint(client):
    response = client.get("/")
    assert response.status_code == 200
    assert "Overtime" in response.json()["message"]


def test_correlation_id_is_echoed(client):
    response = client.get("/health", headers={"X-Request-ID": "trace-abc"})
    assert response.headers["X-Request-ID"] == "trace-abc"


def test_store_scope_yields_working_store():
    with store_scope() as store:
        assert store.health_check() is True
