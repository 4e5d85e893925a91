"""Audit trail for evaluation state changes.

Every state-changing evaluation operation emits exactly one event. Sinks are
append-only and fail closed: an emission failure raises AuditSinkError and the
caller must not report success.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Final, Protocol, runtime_checkable

logger = logging.getLogger(__name__)

AUDIT_LOG_PATH_ENV: Final[str] = "SUPPLIER_EVAL_AUDIT_LOG_PATH"
DEFAULT_AUDIT_LOG_PATH: Final[str] = "./var/audit/audit_events.jsonl"

EVENT_COMPARISON_COMPLETED: Final[str] = "evaluation.comparison.completed"
EVENT_MATRIX_RECOMPUTED: Final[str] = "evaluation.matrix.recomputed"
EVENT_OVERRIDE_APPLIED: Final[str] = "evaluation.override.applied"
EVENT_OVERRIDE_CLEARED: Final[str] = "evaluation.override.cleared"
EVENT_SCORES_REGENERATED: Final[str] = "evaluation.scores.regenerated"
EVENT_READINESS_CLASSIFIED: Final[str] = "evaluation.readiness.classified"
EVENT_COMMENT_ADDED: Final[str] = "evaluation.comment.added"


class AuditSinkError(Exception):
    """Raised when an audit event cannot be recorded."""

    pass


@runtime_checkable
class AuditSink(Protocol):
    def emit(self, event: dict[str, Any]) -> None:
        """Record one event.

        Raises:
            AuditSinkError: If the event could not be recorded.
        """
        ...


def build_audit_event(
    event_type: str,
    *,
    tenant_id: str,
    opportunity_id: str,
    timestamp: datetime,
    actor_id: str | None = None,
    **data: Any,
) -> dict[str, Any]:
    """Assemble an event dict with the common envelope fields."""
    return {
        "event_type": event_type,
        "timestamp": timestamp.isoformat(),
        "tenant_id": tenant_id,
        "opportunity_id": opportunity_id,
        "actor_id": actor_id,
        **data,
    }


def _serialize(event: dict[str, Any]) -> str:
    try:
        return json.dumps(event, sort_keys=True, separators=(",", ":"))
    except (TypeError, ValueError) as e:
        raise AuditSinkError(f"Failed to serialize audit event: {e}") from e


class JsonlFileAuditSink:
    """Append-only JSONL file sink, one compact sorted-key line per event.

    Args:
        file_path: Log file; defaults to SUPPLIER_EVAL_AUDIT_LOG_PATH, then
            DEFAULT_AUDIT_LOG_PATH. Parent directories are created on first emit.
    """

    def __init__(self, file_path: str | Path | None = None) -> None:
        if file_path is None:
            file_path = os.environ.get(AUDIT_LOG_PATH_ENV) or DEFAULT_AUDIT_LOG_PATH
        self._file_path = Path(file_path)
        self._lock = threading.Lock()

    @property
    def file_path(self) -> Path:
        return self._file_path

    def emit(self, event: dict[str, Any]) -> None:
        line = _serialize(event) + "\n"
        with self._lock:
            try:
                self._file_path.parent.mkdir(parents=True, exist_ok=True)
                with open(self._file_path, mode="a", encoding="utf-8") as f:
                    f.write(line)
            except OSError as e:
                raise AuditSinkError(
                    f"Failed to write audit event to {self._file_path}: {e}"
                ) from e


class InMemoryAuditSink:
    """Audit sink that keeps JSON-normalized events in memory. For tests and the CLI."""

    def __init__(self) -> None:
        self._events: list[dict[str, Any]] = []
        self._lock = threading.Lock()

    def emit(self, event: dict[str, Any]) -> None:
        normalized = json.loads(_serialize(event))
        with self._lock:
            self._events.append(normalized)

    @property
    def events(self) -> list[dict[str, Any]]:
        with self._lock:
            return list(self._events)

    def events_of_type(self, event_type: str) -> list[dict[str, Any]]:
        return [e for e in self.events if e["event_type"] == event_type]

    def clear(self) -> None:
        with self._lock:
            self._events.clear()


def get_audit_sink() -> AuditSink:
    """Return the configured audit sink (JSONL file)."""
    return JsonlFileAuditSink()
