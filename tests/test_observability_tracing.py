"""Tests for the OpenTelemetry tracing baseline.

- Tracing OFF by default, ON via SUPPLIER_EVAL_OTEL_ENABLED=1
- Service operations emit spans carrying tenant/opportunity/supplier ids
- Span attributes never carry justification or comment text
- Tests use the in-memory exporter (no external collector required)

The SDK provider is process-global, so once a test installs it, it stays
installed for the rest of the session; tests only assert on spans they clear
and produce themselves.
"""

from __future__ import annotations

from collections.abc import Callable

import pytest

from supplier_eval.models.extraction import PricingSummary, SupplierExtraction
from supplier_eval.models.opportunity import Requirement, SupplierResponse
from supplier_eval.observability.tracing import (
    clear_test_spans,
    configure_tracing,
    get_current_trace_id,
    get_test_spans,
    start_span,
)
from supplier_eval.persistence.memory import InMemoryEvaluationSource
from supplier_eval.services.evaluation import EvaluationService

TENANT = "tenant-a"
OPP = "opp-1"


@pytest.fixture
def capture_spans(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SUPPLIER_EVAL_OTEL_ENABLED", "1")
    monkeypatch.setenv("SUPPLIER_EVAL_OTEL_TEST_CAPTURE", "1")
    assert configure_tracing() is True
    clear_test_spans()


def _seed(source: InMemoryEvaluationSource) -> None:
    source.register_opportunity(TENANT, OPP, [Requirement(requirement_id="R1", title="Uptime")])
    for supplier_id, price in (("acme", 1000.0), ("globex", 2000.0)):
        source.put_response(
            TENANT,
            OPP,
            SupplierResponse(
                supplier_id=supplier_id,
                submitted=True,
                extraction=SupplierExtraction(pricing=PricingSummary(total_cost=price)),
            ),
        )


class TestTracingConfiguration:
    def test_disabled_by_default(self) -> None:
        assert configure_tracing() is False

    def test_no_trace_id_outside_span(self) -> None:
        assert get_current_trace_id() is None

    @pytest.mark.usefixtures("capture_spans")
    def test_enabled_is_idempotent(self) -> None:
        assert configure_tracing() is True


@pytest.mark.usefixtures("capture_spans")
class TestServiceSpans:
    """Spans emitted by service operations."""

    def test_comparison_span(
        self, source: InMemoryEvaluationSource, make_service: Callable[..., EvaluationService]
    ) -> None:
        _seed(source)

        make_service().run_comparison(TENANT, OPP)

        [span] = [s for s in get_test_spans() if s.name == "evaluation.run_comparison"]
        assert span.attributes is not None
        assert span.attributes["supplier_eval.tenant_id"] == TENANT
        assert span.attributes["supplier_eval.opportunity_id"] == OPP

    def test_override_span_excludes_justification(
        self, source: InMemoryEvaluationSource, make_service: Callable[..., EvaluationService]
    ) -> None:
        _seed(source)

        make_service().apply_override(
            TENANT,
            OPP,
            "acme",
            "R1",
            score=80.0,
            reason="Confidential pricing note",
            actor_id="buyer-1",
        )

        [span] = [s for s in get_test_spans() if s.name == "evaluation.apply_override"]
        assert span.attributes is not None
        assert span.attributes["supplier_eval.supplier_id"] == "acme"
        assert span.attributes["supplier_eval.requirement_id"] == "R1"
        assert "Confidential pricing note" not in [str(v) for v in span.attributes.values()]

    def test_trace_id_inside_span(self) -> None:
        with start_span("evaluation.test", supplier_id=None):
            trace_id = get_current_trace_id()

        assert trace_id is not None
        assert len(trace_id) == 32
        [span] = [s for s in get_test_spans() if s.name == "evaluation.test"]
        assert span.attributes is not None
        assert "supplier_eval.supplier_id" not in span.attributes
