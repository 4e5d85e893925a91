"""Tests for the evaluation API error envelope and exception handling.

Tests cover:
A) 401 error envelope + request_id correlation
B) Domain errors keep their machine-readable code (404 / 409)
C) Malformed bodies return 422 REQUEST_VALIDATION_FAILED
D) Audit fail-closed surfaces as a generic 500 (no internals)
E) Unhandled exceptions return 500 with a safe message
"""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

import pytest
from fastapi.testclient import TestClient

from supplier_eval.api.error_model import get_error_code_for_status
from supplier_eval.api.main import create_app
from supplier_eval.models.extraction import PricingSummary, SupplierExtraction
from supplier_eval.models.opportunity import Requirement, SupplierResponse
from supplier_eval.persistence.memory import InMemoryEvaluationSource
from supplier_eval.services.evaluation import EvaluationService

TENANT = "tenant-a"
OPP = "opp-1"
API_KEY = "test-key-3f9a1c2e"
ENVELOPE_KEYS = {"code", "message", "details", "request_id"}


def _seed(source: InMemoryEvaluationSource) -> None:
    source.register_opportunity(TENANT, OPP, [Requirement(requirement_id="R1", title="Uptime")])
    source.put_response(
        TENANT,
        OPP,
        SupplierResponse(
            supplier_id="acme",
            submitted=True,
            extraction=SupplierExtraction(pricing=PricingSummary(total_cost=1000.0)),
        ),
    )


class _FailingAuditSink:
    def emit(self, event: dict[str, Any]) -> None:
        raise OSError("/var/log/supplier-eval/audit.jsonl: read-only file system")


@pytest.fixture
def api_keys(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(
        "SUPPLIER_EVAL_API_KEYS_JSON",
        json.dumps({API_KEY: {"tenant_id": TENANT, "actor_id": "svc-procurement"}}),
    )


@pytest.fixture
def make_client(
    api_keys: None,
    source: InMemoryEvaluationSource,
    make_service: Callable[..., EvaluationService],
) -> Callable[..., TestClient]:
    _seed(source)

    def _make(**overrides: object) -> TestClient:
        app = create_app(service=make_service(**overrides))
        return TestClient(app, raise_server_exceptions=False)

    return _make


class TestErrorEnvelope401:
    """Test A: 401 error envelope + request_id correlation."""

    def test_missing_key(self, make_client: Callable[..., TestClient]) -> None:
        response = make_client().post(f"/v1/opportunities/{OPP}/comparison/run")

        assert response.status_code == 401
        body = response.json()
        assert set(body) == ENVELOPE_KEYS
        assert body["code"] == "UNAUTHORIZED"
        assert body["message"] == "Missing API key"
        assert body["request_id"] == response.headers["X-Request-Id"]

    def test_unknown_key(self, make_client: Callable[..., TestClient]) -> None:
        response = make_client().post(
            f"/v1/opportunities/{OPP}/comparison/run",
            headers={"X-Eval-API-Key": "not-a-key"},
        )

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid API key"

    def test_no_registry_fails_closed(
        self, make_client: Callable[..., TestClient], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        client = make_client()
        monkeypatch.delenv("SUPPLIER_EVAL_API_KEYS_JSON")

        response = client.post(
            f"/v1/opportunities/{OPP}/comparison/run", headers={"X-Eval-API-Key": API_KEY}
        )

        assert response.status_code == 401

    def test_provided_request_id_used_in_envelope(
        self, make_client: Callable[..., TestClient]
    ) -> None:
        response = make_client().post(
            f"/v1/opportunities/{OPP}/comparison/run", headers={"X-Request-Id": "req-401"}
        )

        assert response.json()["request_id"] == "req-401"
        assert response.headers["X-Request-Id"] == "req-401"


class TestDomainErrors:
    """Test B: domain errors map to status codes and keep their codes."""

    def test_unknown_opportunity_is_404(self, make_client: Callable[..., TestClient]) -> None:
        response = make_client().post(
            "/v1/opportunities/opp-404/comparison/run", headers={"X-Eval-API-Key": API_KEY}
        )

        assert response.status_code == 404
        body = response.json()
        assert body["code"] == "NOT_FOUND"
        assert body["details"] == {"opportunity_id": "opp-404"}

    def test_version_conflict_is_409_with_versions(
        self, make_client: Callable[..., TestClient]
    ) -> None:
        response = make_client().put(
            f"/v1/opportunities/{OPP}/suppliers/acme/overrides/R1",
            headers={"X-Eval-API-Key": API_KEY},
            json={"score": 70, "reason": "Panel review", "expected_version": 3},
        )

        assert response.status_code == 409
        body = response.json()
        assert body["code"] == "CONCURRENCY_CONFLICT"
        assert body["details"] == {"expected_version": 3, "actual_version": 0}


class TestRequestValidation:
    """Test C: malformed requests."""

    def test_missing_field(self, make_client: Callable[..., TestClient]) -> None:
        response = make_client().put(
            f"/v1/opportunities/{OPP}/suppliers/acme/overrides/R1",
            headers={"X-Eval-API-Key": API_KEY},
            json={"score": 70},
        )

        assert response.status_code == 422
        body = response.json()
        assert body["code"] == "REQUEST_VALIDATION_FAILED"
        assert {"field": "reason", "message": "Field required"} in body["details"]["errors"]

    def test_invalid_json(self, make_client: Callable[..., TestClient]) -> None:
        response = make_client().put(
            f"/v1/opportunities/{OPP}/suppliers/acme/overrides/R1",
            headers={"X-Eval-API-Key": API_KEY, "Content-Type": "application/json"},
            content=b"{",
        )

        assert response.status_code == 422
        assert set(response.json()) == ENVELOPE_KEYS

    def test_bad_query_parameter(self, make_client: Callable[..., TestClient]) -> None:
        response = make_client().get(
            f"/v1/opportunities/{OPP}/scoring-matrix",
            headers={"X-Eval-API-Key": API_KEY},
            params={"category": "astrology"},
        )

        assert response.status_code == 422
        assert response.json()["details"]["errors"][0]["field"] == "category"


class TestInternalErrors:
    """Tests D and E: 500 responses never expose internals."""

    def test_audit_failure_is_generic_500(self, make_client: Callable[..., TestClient]) -> None:
        client = make_client(audit_sink=_FailingAuditSink())

        response = client.post(
            f"/v1/opportunities/{OPP}/comparison/run", headers={"X-Eval-API-Key": API_KEY}
        )

        assert response.status_code == 500
        body = response.json()
        assert body["code"] == "INTERNAL_ERROR"
        assert body["message"] == "An internal error occurred"
        assert "read-only" not in response.text
        assert body["request_id"] == response.headers["X-Request-Id"]

    def test_unhandled_exception(
        self, make_client: Callable[..., TestClient], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        client = make_client()
        service = client.app.state.evaluation_service

        def boom(*args: object, **kwargs: object) -> None:
            raise RuntimeError("connection string postgres://admin:hunter2@db")

        monkeypatch.setattr(service, "run_comparison", boom)

        response = client.post(
            f"/v1/opportunities/{OPP}/comparison/run", headers={"X-Eval-API-Key": API_KEY}
        )

        assert response.status_code == 500
        assert response.json()["code"] == "INTERNAL_ERROR"
        assert "hunter2" not in response.text


def test_error_code_for_unmapped_status() -> None:
    assert get_error_code_for_status(404) == "NOT_FOUND"
    assert get_error_code_for_status(418) == "ERROR"
