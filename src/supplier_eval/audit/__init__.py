"""Append-only audit trail for evaluation state changes."""

from supplier_eval.audit.sink import (
    EVENT_COMMENT_ADDED,
    EVENT_COMPARISON_COMPLETED,
    EVENT_MATRIX_RECOMPUTED,
    EVENT_OVERRIDE_APPLIED,
    EVENT_OVERRIDE_CLEARED,
    EVENT_READINESS_CLASSIFIED,
    EVENT_SCORES_REGENERATED,
    AuditSink,
    AuditSinkError,
    InMemoryAuditSink,
    JsonlFileAuditSink,
    build_audit_event,
    get_audit_sink,
)

__all__ = [
    "AuditSink",
    "AuditSinkError",
    "EVENT_COMMENT_ADDED",
    "EVENT_COMPARISON_COMPLETED",
    "EVENT_MATRIX_RECOMPUTED",
    "EVENT_OVERRIDE_APPLIED",
    "EVENT_OVERRIDE_CLEARED",
    "EVENT_READINESS_CLASSIFIED",
    "EVENT_SCORES_REGENERATED",
    "InMemoryAuditSink",
    "JsonlFileAuditSink",
    "build_audit_event",
    "get_audit_sink",
]
