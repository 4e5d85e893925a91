"""OpenTelemetry tracing for the evaluation engine.

Service operations always open spans through the ``opentelemetry-api``
tracer; they are no-ops until an SDK provider is installed here.

Environment Variables:
    SUPPLIER_EVAL_OTEL_ENABLED: "1" installs an SDK provider (default: disabled)
    SUPPLIER_EVAL_OTEL_SERVICE_NAME: service.name resource attribute
        (default: "supplier-eval")
    SUPPLIER_EVAL_OTEL_TEST_CAPTURE: "1" exports to memory instead of the console

Span attributes carry tenant, opportunity and supplier ids only; never
justification text, comments or API keys.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Final

from opentelemetry import trace

if TYPE_CHECKING:
    from opentelemetry.sdk.trace import ReadableSpan, TracerProvider

logger = logging.getLogger(__name__)

OTEL_ENABLED_ENV: Final[str] = "SUPPLIER_EVAL_OTEL_ENABLED"
OTEL_SERVICE_NAME_ENV: Final[str] = "SUPPLIER_EVAL_OTEL_SERVICE_NAME"
OTEL_TEST_CAPTURE_ENV: Final[str] = "SUPPLIER_EVAL_OTEL_TEST_CAPTURE"

_TRACER_NAME: Final[str] = "supplier_eval"

_tracer_provider: TracerProvider | None = None
_test_exporter: Any = None


def _get_env_bool(key: str) -> bool:
    return os.environ.get(key, "").strip().lower() in ("1", "true", "yes")


def is_tracing_enabled() -> bool:
    return _get_env_bool(OTEL_ENABLED_ENV)


def configure_tracing() -> bool:
    """Install an SDK tracer provider when tracing is enabled.

    Idempotent. Configuration failures are logged and leave the no-op tracer
    in place.

    Returns:
        True if a provider is installed, False otherwise.
    """
    global _tracer_provider, _test_exporter

    if not is_tracing_enabled():
        logger.debug("OpenTelemetry tracing disabled (%s not set)", OTEL_ENABLED_ENV)
        return False
    if _tracer_provider is not None:
        return True

    try:
        from opentelemetry.sdk.resources import Resource
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import ConsoleSpanExporter, SimpleSpanProcessor
        from opentelemetry.sdk.trace.export.in_memory_span_exporter import (
            InMemorySpanExporter,
        )

        service_name = os.environ.get(OTEL_SERVICE_NAME_ENV, "").strip() or "supplier-eval"
        provider = TracerProvider(resource=Resource.create({"service.name": service_name}))
        test_capture = _get_env_bool(OTEL_TEST_CAPTURE_ENV)
        if test_capture:
            _test_exporter = InMemorySpanExporter()
            provider.add_span_processor(SimpleSpanProcessor(_test_exporter))
        else:
            provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))

        trace.set_tracer_provider(provider)
        _tracer_provider = provider
        logger.info(
            "OpenTelemetry tracing configured: service=%s, exporter=%s",
            service_name,
            "in-memory" if test_capture else "console",
        )
        return True
    except Exception as e:
        logger.error("Failed to configure OpenTelemetry tracing: %s", e)
        return False


@contextmanager
def start_span(name: str, **attributes: Any) -> Iterator[Any]:
    """Open a span on the engine tracer; ``None`` attribute values are skipped."""
    tracer = trace.get_tracer(_TRACER_NAME)
    with tracer.start_as_current_span(name) as span:
        for key, value in attributes.items():
            if value is not None:
                span.set_attribute(f"supplier_eval.{key}", value)
        yield span


def instrument_fastapi(app: Any) -> None:
    """Instrument a FastAPI application when tracing is enabled.

    Requires the ``otel`` extra; a missing instrumentation package is logged.
    """
    if not is_tracing_enabled():
        return
    try:
        from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

        FastAPIInstrumentor.instrument_app(app, excluded_urls="health")
        logger.debug("FastAPI instrumented with OpenTelemetry")
    except Exception as e:
        logger.warning("Failed to instrument FastAPI: %s", e)


def get_current_trace_id() -> str | None:
    """Hex trace id of the active span, or None outside a recorded span."""
    ctx = trace.get_current_span().get_span_context()
    if not ctx.is_valid:
        return None
    return format(ctx.trace_id, "032x")


def get_test_spans() -> list[ReadableSpan]:
    """Spans captured with SUPPLIER_EVAL_OTEL_TEST_CAPTURE=1, else an empty list."""
    if _test_exporter is None:
        return []
    return list(_test_exporter.get_finished_spans())


def clear_test_spans() -> None:
    if _test_exporter is not None:
        _test_exporter.clear()
