"""Tests for the /v1/health endpoint."""


def test_health_returns_ok_json(app_client):
    resp = app_client.get("/v1/health")
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("application/json")
    assert resp.json() == {"status": "ok"}


def test_health_is_not_treated_as_an_image_request(app_client):
    app_client.get("/v1/health")
    app_client.get("/v1/stats")
    assert app_client.app.state.renderer.calls == 0
    assert app_client.app.state.coordinator.stats().misses == 0


def test_health_has_no_image_cache_headers(app_client):
    resp = app_client.get("/v1/health")
    assert "etag" not in resp.headers
    assert "immutable" not in resp.headers.get("cache-control", "")
