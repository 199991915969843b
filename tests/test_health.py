"""
tests/test_health.py -- Integration tests for GET /api/health.

Covers:
  - 200 response with status, version, and components fields
  - components.database reports 'ok' when the store answers, 'error' when it does not
  - No authentication required
  - Host headers outside Settings.allowed_hosts are rejected
"""

from __future__ import annotations

from unittest.mock import patch

from sqlalchemy.exc import OperationalError

from core.config import Settings


def test_health_returns_200_with_components(api_client):
    """Health endpoint returns 200 with status, version, and components."""
    resp = api_client.get("/api/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "healthy"
    assert "version" in data
    assert data["components"]["app"] == "ok"
    assert data["components"]["database"] == "ok"


def test_health_reports_database_error(api_client):
    store = api_client.app.state.identity_store
    with patch.object(store, "ping", side_effect=OperationalError("SELECT 1", {}, Exception("gone"))):
        data = api_client.get("/api/health").json()
    assert data["components"]["database"] == "error"


def test_health_no_auth_required(api_client):
    resp = api_client.get("/api/health", headers={})
    assert resp.status_code == 200


def test_unexpected_host_header_rejected(api_client):
    resp = api_client.get("/api/health", headers={"host": "evil.example.com"})
    assert resp.status_code == 400


def test_default_allowed_hosts_exclude_test_host(monkeypatch):
    """Only the test environment adds TestClient's host; the default list is local hosts."""
    monkeypatch.delenv("ALLOWED_HOSTS", raising=False)
    settings = Settings(debug=True, _env_file=None)
    assert "testserver" not in settings.allowed_hosts
    assert "localhost" in settings.allowed_hosts
