"""Unit tests for the text parsing API.

Tests cover:
- Health check endpoints
- Parse and validate envelopes
- Request validation
- Prometheus metrics endpoint
"""

from unittest.mock import patch

import pytest
from fastapi import status
from fastapi.testclient import TestClient

from textparser.api.main import app, settings


@pytest.fixture
def client() -> TestClient:
    """Create test client."""
    return TestClient(app)


def test_health_check(client: TestClient) -> None:
    """Test health check endpoint."""
    response = client.get("/health")

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["status"] == "healthy"
    assert data["service"] == "text-parsing-api"
    assert "version" in data


def test_readiness_check(client: TestClient) -> None:
    """Test readiness check endpoint."""
    response = client.get("/ready")

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["ready"] is True


def test_parse_success(client: TestClient) -> None:
    """Test parsing a valid message."""
    response = client.post(
        "/api/v1/text/parse",
        json={"content": "<expense><total>35,000</total></expense> at <vendor>Cafe</vendor>"},
    )

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["success"] is True
    assert body["errors"] == []
    assert body["message"] == "Text parsed successfully"

    data = body["data"]
    assert data["isValid"] is True
    assert data["xmlBlocks"][0]["tagName"] == "expense"
    assert data["taggedFields"] == {
        "total": "35,000",
        "vendor": "Cafe",
        "cost_centre": "UNKNOWN",
    }
    assert data["calculations"] == {
        "totalIncludingTax": 35000.0,
        "taxAmount": 4565.22,
        "totalExcludingTax": 30434.78,
        "taxRate": 15.0,
    }


def test_parse_rejected(client: TestClient) -> None:
    """Test that validation failures return 400 with the errors."""
    response = client.post(
        "/api/v1/text/parse",
        json={"content": "<expense><cost_centre>DEV632</cost_centre></expense>"},
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    body = response.json()
    assert body["success"] is False
    assert body["errors"] == ["Missing required <total> tag"]
    assert body["data"]["isValid"] is False
    assert body["data"]["errors"] == body["errors"]
    assert body["message"] == "Text parsing failed validation"


@pytest.mark.parametrize("payload", [{"content": ""}, {"content": "   "}, {}])
def test_parse_requires_content(client: TestClient, payload: dict[str, str]) -> None:
    """Test that blank content is rejected by the API layer."""
    response = client.post("/api/v1/text/parse", json=payload)

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    body = response.json()
    assert body["success"] is False
    assert body["errors"] == ["Content is required"]
    assert body["data"] is None


def test_parse_content_too_large(client: TestClient) -> None:
    """Test that oversized content is rejected."""
    with patch.object(settings, "max_content_length", 10):
        response = client.post("/api/v1/text/parse", json={"content": "<total>1000</total>"})

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "maximum length" in response.json()["errors"][0]


def test_parse_invalid_body(client: TestClient) -> None:
    """Test that a non-string content field fails request validation."""
    response = client.post("/api/v1/text/parse", json={"content": ["not", "text"]})

    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


def test_parse_unexpected_error(client: TestClient) -> None:
    """Test that unexpected failures return a generic 500 envelope."""
    with patch(
        "textparser.api.main.parsing_service.parse",
        side_effect=RuntimeError("secret internals"),
    ):
        response = client.post("/api/v1/text/parse", json={"content": "<total>1</total>"})

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    body = response.json()
    assert body["success"] is False
    assert body["errors"] == ["An unexpected error occurred"]
    assert "secret" not in response.text


def test_validate_valid_content(client: TestClient) -> None:
    """Test structural validation of well-formed content."""
    response = client.post("/api/v1/text/validate", json={"content": "<vendor>Cafe</vendor>"})

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["success"] is True
    assert body["data"] == {"isValid": True, "errors": []}
    assert body["message"] == "Content is valid"


def test_validate_invalid_content(client: TestClient) -> None:
    """Test that structural problems are reported with a 200 envelope."""
    response = client.post("/api/v1/text/validate", json={"content": "<a><b>"})

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["data"] == {"isValid": False, "errors": ["Unclosed tag detected: a, b"]}
    assert body["message"] == "Content validation failed"


def test_validate_requires_content(client: TestClient) -> None:
    """Test that blank content is rejected by the validate endpoint."""
    response = client.post("/api/v1/text/validate", json={"content": ""})

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["errors"] == ["Content is required"]


def test_parse_metrics_recorded(client: TestClient) -> None:
    """Test that parse outcomes are counted."""
    from textparser.api import metrics

    initial_success = metrics.parse_requests_total.labels(outcome="success")._value.get()
    initial_rejected = metrics.parse_requests_total.labels(outcome="rejected")._value.get()

    client.post("/api/v1/text/parse", json={"content": "<total>10</total>"})
    client.post("/api/v1/text/parse", json={"content": "no tags"})

    assert metrics.parse_requests_total.labels(outcome="success")._value.get() == (
        initial_success + 1
    )
    assert metrics.parse_requests_total.labels(outcome="rejected")._value.get() == (
        initial_rejected + 1
    )


def test_cors_preflight(client: TestClient) -> None:
    """Test that the UI origin is allowed to call the API."""
    response = client.options(
        "/api/v1/text/parse",
        headers={
            "Origin": "http://localhost:3000",
            "Access-Control-Request-Method": "POST",
        },
    )

    assert response.status_code == status.HTTP_200_OK
    assert response.headers["access-control-allow-origin"] == "http://localhost:3000"


def test_metrics_endpoint(client: TestClient) -> None:
    """Test Prometheus metrics endpoint."""
    client.get("/health")

    response = client.get("/metrics")

    assert response.status_code == status.HTTP_200_OK
    content_type = response.headers["content-type"]
    assert "openmetrics-text" in content_type or "text/plain" in content_type
    assert "http_requests_total" in response.text


@pytest.mark.parametrize(
    ("path", "payload"),
    [
        ("/api/textparser/parse", {"content": "<total>1150</total>"}),
        ("/api/textparser/validate", {"content": "<total>1150</total>"}),
    ],
)
def test_ui_paths_served(client: TestClient, path: str, payload: dict[str, str]) -> None:
    """Test that the browser UI's endpoint paths reach the same handlers."""
    response = client.post(path, json=payload)

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["success"] is True


def test_ui_health_path(client: TestClient) -> None:
    """Test health check under the UI's path prefix."""
    response = client.get("/api/textparser/health")

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["status"] == "healthy"
