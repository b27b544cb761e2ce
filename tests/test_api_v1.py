from __future__ import annotations

from unittest.mock import patch


def test_health(client):
    resp = client.get("/v1/health")
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "ok"
    assert body["version"] == "0.1.0"


def test_env_check_requires_token(client):
    assert client.get("/v1/admin/env-check").status_code == 401


def test_env_check_requires_admin_scope(client, owner_headers):
    resp = client.get("/v1/admin/env-check", headers=owner_headers)
    assert resp.status_code == 403


@patch("tubely.api.v1.routes_admin.tool_available")
def test_env_check_reports_tools(mock_available, client, admin_headers):
    mock_available.side_effect = lambda binary: binary == "ffmpeg"

    resp = client.get("/v1/admin/env-check", headers=admin_headers)

    assert resp.status_code == 200
    assert resp.json() == {"ffmpeg": True, "ffprobe": False}


def test_dev_token_disabled_outside_development(client):
    resp = client.post("/v1/admin/dev-token", json={"user_id": "user-1"})
    assert resp.status_code == 403


def test_openapi_lists_upload_route(client):
    paths = client.get("/openapi.json").json()["paths"]
    assert "/v1/videos/{video_id}/upload" in paths
    assert "/v1/thumbnails/{video_id}" in paths
