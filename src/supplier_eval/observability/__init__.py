"""Tracing for evaluation operations."""

from supplier_eval.observability.tracing import (
    clear_test_spans,
    configure_tracing,
    get_current_trace_id,
    get_test_spans,
    instrument_fastapi,
    is_tracing_enabled,
    start_span,
)

__all__ = [
    "clear_test_spans",
    "configure_tracing",
    "get_current_trace_id",
    "get_test_spans",
    "instrument_fastapi",
    "is_tracing_enabled",
    "start_span",
]
