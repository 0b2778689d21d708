"""
Tests for request metrics recording and the /metrics endpoint.
"""
from fastapi.testclient import TestClient

from app.auth.dependencies import PUBLIC
from app.core.security import create_access_token
from app.hello.router import register_routes
from app.metrics.registry import RequestMetrics


def sample(app, name, route, status_code="200", method="GET"):
    labels = {"method": method, "route": route, "status_code": status_code}
    return app.state.metrics.registry.get_sample_value(name, labels)


def test_request_to_root_is_recorded(app, client):
    client.get("/")

    assert sample(app, "http_requests_total", "/") == 1.0
    assert sample(app, "http_request_duration_seconds_count", "/") == 1.0
    assert sample(app, "http_request_duration_seconds_sum", "/") > 0


def test_counter_accumulates(app, client):
    for _ in range(3):
        client.get("/v1")

    assert sample(app, "http_requests_total", "/v1") == 3.0


def test_health_and_metrics_are_not_recorded(app, client):
    client.get("/health")
    client.get("/metrics")

    assert sample(app, "http_requests_total", "/health") is None
    assert sample(app, "http_requests_total", "/metrics") is None


def test_status_code_label(app, client):
    client.get("/v1/me")

    assert sample(app, "http_requests_total", "/v1/me", status_code="401") == 1.0


def test_authenticated_request_is_recorded(app, client):
    token = create_access_token({"sub": "u"}, app.state.settings.JWT_SECRET)
    client.get("/v1/me", headers={"Authorization": f"Bearer {token}"})

    assert sample(app, "http_requests_total", "/v1/me") == 1.0


def test_route_template_preferred_over_raw_path(app):
    """Path parameters must not explode label cardinality."""
    def get_item(item_id: int) -> dict:
        return {"id": item_id}

    app.add_api_route("/v1/items/{item_id}", get_item, methods=["GET"], openapi_extra=PUBLIC)

    with TestClient(app) as client:
        client.get("/v1/items/1")
        client.get("/v1/items/2")

    assert sample(app, "http_requests_total", "/v1/items/{item_id}") == 2.0
    assert sample(app, "http_requests_total", "/v1/items/1") is None


def test_route_label_includes_prefix(app):
    register_routes(app, prefix="/v2")
    token = create_access_token({"sub": "u"}, app.state.settings.JWT_SECRET)

    with TestClient(app) as client:
        client.get("/v2/me", headers={"Authorization": f"Bearer {token}"})

    assert sample(app, "http_requests_total", "/v2/me") == 1.0
    assert sample(app, "http_requests_total", "/me") is None


def test_unmatched_route_falls_back_to_raw_path(app, client):
    client.get("/nope")

    assert sample(app, "http_requests_total", "/nope", status_code="404") == 1.0


def test_metrics_endpoint_exposition(client):
    client.get("/")

    response = client.get("/metrics")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    body = response.text
    assert "http_request_duration_seconds_bucket" in body
    assert 'http_requests_total{method="GET",route="/",status_code="200"} 1.0' in body
    assert "target_info" in body


def test_metrics_endpoint_is_public(client):
    assert client.get("/metrics", headers={"Authorization": "Bearer garbage"}).status_code == 200


def test_registries_are_isolated_per_instance():
    first = RequestMetrics()
    second = RequestMetrics()

    first.observe("GET", "/", 200, 0.01)

    labels = {"method": "GET", "route": "/", "status_code": "200"}
    assert first.registry.get_sample_value("http_requests_total", labels) == 1.0
    assert second.registry.get_sample_value("http_requests_total", labels) is None
