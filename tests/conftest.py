"""Pytest configuration and fixtures for supplier evaluation tests.

This module provides common fixtures shared by the service, store and API
tests: a deterministic clock, in-memory source/store/audit sink, and a
service factory wired to them.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import pytest

from supplier_eval.audit.sink import InMemoryAuditSink
from supplier_eval.config import EngineConfig
from supplier_eval.persistence.db import clear_in_memory_evaluation_store
from supplier_eval.persistence.memory import InMemoryEvaluationSource, InMemoryEvaluationStore
from supplier_eval.services.evaluation import EvaluationService

TEST_EPOCH = datetime(2026, 3, 2, 9, 0, 0, tzinfo=UTC)


class TickingClock:
    """Thread-safe clock that moves forward one second on every read.

    Every service write gets a distinct, strictly increasing timestamp, so
    "written after the snapshot" is always observable.
    """

    def __init__(self, start: datetime = TEST_EPOCH, step_seconds: float = 1.0) -> None:
        self._now = start
        self._step = timedelta(seconds=step_seconds)
        self._lock = threading.Lock()

    def __call__(self) -> datetime:
        with self._lock:
            self._now += self._step
            return self._now

    def advance(self, seconds: float) -> None:
        with self._lock:
            self._now += timedelta(seconds=seconds)


@pytest.fixture(autouse=True)
def isolate_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep tests independent of the developer's environment and shared state."""
    for var in (
        "SUPPLIER_EVAL_DATABASE_URL",
        "SUPPLIER_EVAL_API_KEYS_JSON",
        "SUPPLIER_EVAL_AUDIT_LOG_PATH",
        "SUPPLIER_EVAL_OTEL_ENABLED",
        "SUPPLIER_EVAL_OTEL_SERVICE_NAME",
        "SUPPLIER_EVAL_OTEL_TEST_CAPTURE",
        "SUPPLIER_EVAL_MATRIX_TTL_SECONDS",
        "SUPPLIER_EVAL_VARIANCE_MEDIUM",
        "SUPPLIER_EVAL_VARIANCE_HIGH",
        "SUPPLIER_EVAL_MUST_HAVE_MIN_SCORE",
        "SUPPLIER_EVAL_READY_THRESHOLD",
        "SUPPLIER_EVAL_CONDITIONAL_THRESHOLD",
        "SUPPLIER_EVAL_NEUTRAL_METRIC_SCORE",
        "SUPPLIER_EVAL_MUST_HAVE_FAIL_BEHAVIOR",
    ):
        monkeypatch.delenv(var, raising=False)
    clear_in_memory_evaluation_store()


@pytest.fixture
def clock() -> TickingClock:
    return TickingClock()


@pytest.fixture
def audit_sink() -> InMemoryAuditSink:
    """Provide in-memory audit sink for test verification."""
    return InMemoryAuditSink()


@pytest.fixture
def source() -> InMemoryEvaluationSource:
    return InMemoryEvaluationSource()


@pytest.fixture
def store() -> InMemoryEvaluationStore:
    return InMemoryEvaluationStore()


@pytest.fixture
def make_service(
    source: InMemoryEvaluationSource,
    store: InMemoryEvaluationStore,
    audit_sink: InMemoryAuditSink,
    clock: TickingClock,
) -> Callable[..., EvaluationService]:
    """Factory for an EvaluationService over the shared in-memory fixtures."""

    def _make(**overrides: object) -> EvaluationService:
        kwargs: dict[str, object] = {
            "source": source,
            "store": store,
            "audit_sink": audit_sink,
            "config": EngineConfig(),
            "clock": clock,
        }
        kwargs.update(overrides)
        return EvaluationService(**kwargs)  # type: ignore[arg-type]

    return _make
