"""Tests for health check endpoints."""
from authz.core.exceptions import StorageUnavailable


def test_health_check(client):
    """Test basic health check endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.data == b"ok"
    assert response.content_type.startswith("text/plain")


def test_readiness_check(client):
    """Readiness runs a round-trip query against the store."""
    response = client.get("/ready")
    assert response.status_code == 200
    assert response.data == b"ready"


def test_readiness_fails_when_storage_down(app, client, monkeypatch):
    def broken_ping():
        raise StorageUnavailable("Database unreachable")

    monkeypatch.setattr(app.extensions["authz"], "ping", broken_ping)

    response = client.get("/ready")
    assert response.status_code == 503
    assert response.content_type.startswith("text/plain")


def test_health_needs_no_identity(client):
    assert client.get("/health", headers={}).status_code == 200
