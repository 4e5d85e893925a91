"""Tests for the evaluation API health endpoint."""

from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from supplier_eval.api.main import create_app


@pytest.fixture
def client() -> TestClient:
    """Create a test client over the default (environment-built) application."""
    app = create_app()
    return TestClient(app)


def test_health_returns_200(client: TestClient) -> None:
    """GET /health returns 200 OK without credentials."""
    response = client.get("/health")
    assert response.status_code == 200


def test_health_body(client: TestClient) -> None:
    """GET /health reports status, time, version, store and tracing mode."""
    data = client.get("/health").json()

    assert data["status"] == "ok"
    assert data["version"] == "1.0.0"
    assert data["store"] == "memory"
    assert data["tracing"] is False
    datetime.fromisoformat(data["time"])


def test_health_reports_sql_store(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    """The store field follows SUPPLIER_EVAL_DATABASE_URL at request time."""
    monkeypatch.setenv("SUPPLIER_EVAL_DATABASE_URL", "sqlite:///unused.db")

    assert client.get("/health").json()["store"] == "sql"


def test_health_echoes_provided_request_id(client: TestClient) -> None:
    """GET /health with X-Request-Id header echoes it back."""
    response = client.get("/health", headers={"X-Request-Id": "req-eval-0042"})

    assert response.headers["X-Request-Id"] == "req-eval-0042"


@pytest.mark.parametrize("header_value", [None, "", "   "])
def test_health_generates_request_id(client: TestClient, header_value: str | None) -> None:
    """A UUID request id is generated when the header is absent or blank."""
    headers = {"X-Request-Id": header_value} if header_value is not None else {}

    request_id = client.get("/health", headers=headers).headers["X-Request-Id"]

    assert len(request_id) == 36
    assert request_id.count("-") == 4
