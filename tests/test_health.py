"""
tests/test_health.py -- Integration tests for GET /api/v1/health.

Covers:
  - 200 response with status and version fields
  - No authentication required
"""

from __future__ import annotations

from api.main import VERSION


def test_health_returns_200_with_version(api_client):
    """Health endpoint returns 200 with status and version."""
    client, _token, _ = api_client
    resp = client.get("/api/v1/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "ok"
    assert data["version"] == VERSION


def test_health_no_auth_required(api_client):
    """Health endpoint is accessible without any authentication headers."""
    client, _, _ = api_client
    # Explicitly make request with no auth headers
    resp = client.get("/api/v1/health", headers={})
    assert resp.status_code == 200
    assert "www-authenticate" not in resp.headers


def test_health_with_trailing_slash_is_still_public(api_client):
    """The allow-list matches /api/v1/health/ too; the router then answers 404, not the gate 401."""
    client, _, _ = api_client
    resp = client.get("/api/v1/health/", follow_redirects=False)
    assert resp.status_code != 401
