"""Tests for audit sinks (fail-closed JSONL file sink and in-memory sink)."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path

import pytest

from supplier_eval.audit.sink import (
    EVENT_OVERRIDE_APPLIED,
    AuditSinkError,
    InMemoryAuditSink,
    JsonlFileAuditSink,
    build_audit_event,
    get_audit_sink,
)

TIMESTAMP = datetime(2026, 3, 2, 9, 30, tzinfo=UTC)


def _make_event(**data: object) -> dict[str, object]:
    return build_audit_event(
        EVENT_OVERRIDE_APPLIED,
        tenant_id="tenant-a",
        opportunity_id="opp-1",
        timestamp=TIMESTAMP,
        actor_id="buyer-1",
        **data,
    )


class TestBuildAuditEvent:
    def test_envelope_fields(self) -> None:
        event = _make_event(supplier_id="acme", variance=50.0)

        assert event == {
            "event_type": "evaluation.override.applied",
            "timestamp": "2026-03-02T09:30:00+00:00",
            "tenant_id": "tenant-a",
            "opportunity_id": "opp-1",
            "actor_id": "buyer-1",
            "supplier_id": "acme",
            "variance": 50.0,
        }


class TestJsonlFileAuditSink:
    """Append-only JSONL sink."""

    def test_appends_one_line_per_event(self, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "audit.jsonl"
        sink = JsonlFileAuditSink(file_path=path)

        sink.emit(_make_event(supplier_id="acme"))
        sink.emit(_make_event(supplier_id="globex"))

        lines = path.read_text(encoding="utf-8").splitlines()
        assert [json.loads(line)["supplier_id"] for line in lines] == ["acme", "globex"]

    def test_lines_are_compact_sorted_json(self, tmp_path: Path) -> None:
        path = tmp_path / "audit.jsonl"

        JsonlFileAuditSink(file_path=path).emit({"b": 1, "a": 2})

        assert path.read_text(encoding="utf-8") == '{"a":2,"b":1}\n'

    def test_unwritable_path_fails_closed(self, tmp_path: Path) -> None:
        blocker = tmp_path / "not-a-directory"
        blocker.write_text("", encoding="utf-8")
        sink = JsonlFileAuditSink(file_path=blocker / "audit.jsonl")

        with pytest.raises(AuditSinkError, match="Failed to write audit event"):
            sink.emit(_make_event())

    def test_unserializable_event_fails_closed(self, tmp_path: Path) -> None:
        sink = JsonlFileAuditSink(file_path=tmp_path / "audit.jsonl")

        with pytest.raises(AuditSinkError, match="serialize"):
            sink.emit(_make_event(payload=object()))

    def test_path_from_environment(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        path = tmp_path / "env-audit.jsonl"
        monkeypatch.setenv("SUPPLIER_EVAL_AUDIT_LOG_PATH", str(path))

        sink = get_audit_sink()

        assert isinstance(sink, JsonlFileAuditSink)
        assert sink.file_path == path


class TestInMemoryAuditSink:
    def test_events_are_json_normalized(self) -> None:
        sink = InMemoryAuditSink()

        sink.emit(_make_event(levels=("high", "low")))

        assert sink.events[0]["levels"] == ["high", "low"]

    def test_filter_and_clear(self) -> None:
        sink = InMemoryAuditSink()
        sink.emit(_make_event())
        sink.emit({"event_type": "evaluation.comment.added"})

        assert len(sink.events_of_type(EVENT_OVERRIDE_APPLIED)) == 1

        sink.clear()
        assert sink.events == []
