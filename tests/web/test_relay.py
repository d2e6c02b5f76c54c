"""
Tests for the submission relay and the liveness endpoints.
"""

import httpx
import pytest
from fastapi.testclient import TestClient

from fine_survey.web.app import app
from fine_survey.web.relay import FORWARD_FAILED, get_sink_client


@pytest.fixture
def relay_client():
    """TestClient whose outbound sink calls go to the given handler."""
    def _make(sink):
        async def sink_client():
            async with httpx.AsyncClient(transport=sink.transport) as client:
                yield client

        app.dependency_overrides[get_sink_client] = sink_client
        return TestClient(app)

    yield _make
    app.dependency_overrides.clear()


def test_root_reports_running():
    response = TestClient(app).get("/")
    assert response.status_code == 200
    assert "running" in response.text


def test_health():
    response = TestClient(app).get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_forwards_body_and_returns_sink_text(relay_client, sink):
    client = relay_client(sink)
    body = b'{"name":"X"}'

    response = client.post("/api/survey", content=body, headers={"Content-Type": "application/json"})

    assert response.status_code == 200
    assert response.text == "OK"
    assert len(sink.requests) == 1
    forwarded = sink.requests[0]
    assert str(forwarded.url) == "https://sink.test/exec"
    assert forwarded.content == body
    assert forwarded.headers["content-type"] == "application/json"


def test_sink_error_status_still_relayed(relay_client, make_sink):
    sink = make_sink(text="Script error", status_code=500)
    client = relay_client(sink)

    response = client.post("/api/survey", json={"name": "X"})

    assert response.status_code == 200
    assert response.text == "Script error"


def test_unreachable_sink_returns_500(relay_client, make_sink):
    sink = make_sink(error=httpx.ConnectError("name resolution failed"))
    client = relay_client(sink)

    response = client.post("/api/survey", json={"name": "X"})

    assert response.status_code == 500
    data = response.json()
    assert data["error"] == FORWARD_FAILED
    assert "name resolution failed" in data["details"]


def test_body_is_not_validated(relay_client, sink):
    client = relay_client(sink)

    response = client.post("/api/survey", json={"anything": [1, 2, 3]})

    assert response.status_code == 200
    assert len(sink.requests) == 1


def test_cors_allows_any_origin(relay_client, sink):
    client = relay_client(sink)

    response = client.options(
        "/api/survey",
        headers={
            "Origin": "https://survey.example.com",
            "Access-Control-Request-Method": "POST",
        },
    )

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] in ("*", "https://survey.example.com")
