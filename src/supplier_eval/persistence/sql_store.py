"""SQLAlchemy-backed EvaluationStore.

All derived state lives in one ``evaluation_snapshots`` table keyed by
(tenant_id, opportunity_id, kind, record_key):

- kind ``matrix``: record_key '' (one snapshot per opportunity)
- kind ``breakdown`` / ``readiness`` / ``scores``: record_key = supplier_id
- kind ``comment``: record_key = comment_id

Versioned kinds (matrix, scores) are written with compare-and-set:
``INSERT`` for the first write, ``UPDATE ... WHERE version = :expected``
afterwards. Timestamps are stored as fixed-width ISO-8601 UTC strings so they
order lexicographically on every backend.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Final, TypeVar

from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from supplier_eval.errors import ConcurrencyConflictError
from supplier_eval.models.matrix import ScoringMatrix
from supplier_eval.models.metrics import ComparisonBreakdown
from supplier_eval.models.readiness import ReadinessResult
from supplier_eval.models.scores import EvaluatorComment, RequirementScore, ScoreSet
from supplier_eval.persistence.serialization import (
    SCHEMA_VERSION,
    SchemaVersionError,
    dump_model,
    dump_scores,
    load_model,
    load_scores,
)

if TYPE_CHECKING:
    from sqlalchemy import Connection, Engine

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

KIND_MATRIX: Final[str] = "matrix"
KIND_BREAKDOWN: Final[str] = "breakdown"
KIND_READINESS: Final[str] = "readiness"
KIND_SCORES: Final[str] = "scores"
KIND_COMMENT: Final[str] = "comment"

_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS evaluation_snapshots (
    tenant_id VARCHAR(128) NOT NULL,
    opportunity_id VARCHAR(128) NOT NULL,
    kind VARCHAR(32) NOT NULL,
    record_key VARCHAR(128) NOT NULL,
    supplier_id VARCHAR(128) NOT NULL DEFAULT '',
    schema_version INTEGER NOT NULL,
    version INTEGER NOT NULL,
    payload TEXT NOT NULL,
    updated_at VARCHAR(40) NOT NULL,
    PRIMARY KEY (tenant_id, opportunity_id, kind, record_key)
)
"""

_SELECT_ONE = """
SELECT schema_version, version, payload, updated_at
FROM evaluation_snapshots
WHERE tenant_id = :tenant_id AND opportunity_id = :opportunity_id
  AND kind = :kind AND record_key = :record_key
"""

_INSERT = """
INSERT INTO evaluation_snapshots
    (tenant_id, opportunity_id, kind, record_key, supplier_id,
     schema_version, version, payload, updated_at)
VALUES
    (:tenant_id, :opportunity_id, :kind, :record_key, :supplier_id,
     :schema_version, :version, :payload, :updated_at)
"""


def _to_iso(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%S.%f+00:00")


def _from_iso(value: str) -> datetime:
    return datetime.fromisoformat(value)


class SqlEvaluationStore:
    """Tenant-scoped EvaluationStore over a SQLAlchemy engine.

    Args:
        engine: SQLAlchemy Engine (Postgres in production, SQLite in tests).
    """

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def ensure_schema(self) -> None:
        """Create the snapshot table if it does not exist."""
        with self._engine.begin() as conn:
            conn.execute(text(_CREATE_TABLE))

    def _fetch(
        self, conn: Connection, tenant_id: str, opportunity_id: str, kind: str, record_key: str
    ) -> Any:
        return conn.execute(
            text(_SELECT_ONE),
            {
                "tenant_id": tenant_id,
                "opportunity_id": opportunity_id,
                "kind": kind,
                "record_key": record_key,
            },
        ).fetchone()

    def _current_version(
        self, tenant_id: str, opportunity_id: str, kind: str, record_key: str
    ) -> int:
        with self._engine.connect() as conn:
            row = self._fetch(conn, tenant_id, opportunity_id, kind, record_key)
        return int(row.version) if row is not None else 0

    def _compare_and_set(
        self,
        *,
        tenant_id: str,
        opportunity_id: str,
        kind: str,
        record_key: str,
        supplier_id: str,
        payload: str,
        expected_version: int,
        updated_at: datetime,
        conflict_message: str,
    ) -> int:
        new_version = expected_version + 1
        params = {
            "tenant_id": tenant_id,
            "opportunity_id": opportunity_id,
            "kind": kind,
            "record_key": record_key,
            "supplier_id": supplier_id,
            "schema_version": SCHEMA_VERSION,
            "version": new_version,
            "expected": expected_version,
            "payload": payload,
            "updated_at": _to_iso(updated_at),
        }
        try:
            with self._engine.begin() as conn:
                if expected_version == 0:
                    conn.execute(text(_INSERT), params)
                    written = 1
                else:
                    result = conn.execute(
                        text(
                            """
                            UPDATE evaluation_snapshots
                            SET schema_version = :schema_version, version = :version,
                                payload = :payload, updated_at = :updated_at
                            WHERE tenant_id = :tenant_id
                              AND opportunity_id = :opportunity_id
                              AND kind = :kind AND record_key = :record_key
                              AND version = :expected
                            """
                        ),
                        params,
                    )
                    written = result.rowcount
        except IntegrityError:
            written = 0
        if written != 1:
            actual = self._current_version(tenant_id, opportunity_id, kind, record_key)
            raise ConcurrencyConflictError(
                conflict_message, expected_version=expected_version, actual_version=actual
            )
        return new_version

    def _overwrite(
        self,
        *,
        tenant_id: str,
        opportunity_id: str,
        kind: str,
        record_key: str,
        supplier_id: str,
        payload: str,
    ) -> None:
        params = {
            "tenant_id": tenant_id,
            "opportunity_id": opportunity_id,
            "kind": kind,
            "record_key": record_key,
            "supplier_id": supplier_id,
            "schema_version": SCHEMA_VERSION,
            "version": 1,
            "payload": payload,
            "updated_at": _to_iso(datetime.now(UTC)),
        }
        update = text(
            """
            UPDATE evaluation_snapshots
            SET schema_version = :schema_version, version = version + 1,
                payload = :payload, updated_at = :updated_at
            WHERE tenant_id = :tenant_id AND opportunity_id = :opportunity_id
              AND kind = :kind AND record_key = :record_key
            """
        )
        with self._engine.begin() as conn:
            if conn.execute(update, params).rowcount == 1:
                return
        try:
            with self._engine.begin() as conn:
                conn.execute(text(_INSERT), params)
        except IntegrityError:
            with self._engine.begin() as conn:
                conn.execute(update, params)

    def _load_one(
        self, model_type: type[M], tenant_id: str, opportunity_id: str, kind: str, record_key: str
    ) -> M | None:
        with self._engine.connect() as conn:
            row = self._fetch(conn, tenant_id, opportunity_id, kind, record_key)
        if row is None:
            return None
        try:
            return load_model(model_type, row.payload, int(row.schema_version))
        except SchemaVersionError as e:
            logger.warning(
                "Discarding unreadable %s record for opportunity %s: %s",
                kind,
                opportunity_id,
                e,
            )
            return None

    def get_matrix(self, tenant_id: str, opportunity_id: str) -> ScoringMatrix | None:
        return self._load_one(ScoringMatrix, tenant_id, opportunity_id, KIND_MATRIX, "")

    def save_matrix(self, tenant_id: str, matrix: ScoringMatrix, *, expected_version: int) -> None:
        self._compare_and_set(
            tenant_id=tenant_id,
            opportunity_id=matrix.opportunity_id,
            kind=KIND_MATRIX,
            record_key="",
            supplier_id="",
            payload=dump_model(matrix),
            expected_version=expected_version,
            updated_at=matrix.meta.generated_at,
            conflict_message=f"Scoring matrix for {matrix.opportunity_id} changed concurrently",
        )

    def get_breakdown(
        self, tenant_id: str, opportunity_id: str, supplier_id: str
    ) -> ComparisonBreakdown | None:
        return self._load_one(
            ComparisonBreakdown, tenant_id, opportunity_id, KIND_BREAKDOWN, supplier_id
        )

    def save_breakdown(
        self, tenant_id: str, opportunity_id: str, breakdown: ComparisonBreakdown
    ) -> None:
        self._overwrite(
            tenant_id=tenant_id,
            opportunity_id=opportunity_id,
            kind=KIND_BREAKDOWN,
            record_key=breakdown.supplier_id,
            supplier_id=breakdown.supplier_id,
            payload=dump_model(breakdown),
        )

    def get_readiness(
        self, tenant_id: str, opportunity_id: str, supplier_id: str
    ) -> ReadinessResult | None:
        return self._load_one(
            ReadinessResult, tenant_id, opportunity_id, KIND_READINESS, supplier_id
        )

    def save_readiness(self, tenant_id: str, opportunity_id: str, result: ReadinessResult) -> None:
        self._overwrite(
            tenant_id=tenant_id,
            opportunity_id=opportunity_id,
            kind=KIND_READINESS,
            record_key=result.supplier_id,
            supplier_id=result.supplier_id,
            payload=dump_model(result),
        )

    def get_score_set(
        self, tenant_id: str, opportunity_id: str, supplier_id: str
    ) -> ScoreSet | None:
        """Load a supplier's score set, upgrading older payload layouts.

        Raises:
            SchemaVersionError: The stored scores cannot be read. Score sets hold
                buyer overrides, so they are never silently discarded.
        """
        with self._engine.connect() as conn:
            row = self._fetch(conn, tenant_id, opportunity_id, KIND_SCORES, supplier_id)
        if row is None:
            return None
        return ScoreSet(
            opportunity_id=opportunity_id,
            supplier_id=supplier_id,
            scores=load_scores(row.payload, int(row.schema_version)),
            version=int(row.version),
            updated_at=_from_iso(row.updated_at),
        )

    def save_score_set(
        self,
        tenant_id: str,
        opportunity_id: str,
        supplier_id: str,
        scores: list[RequirementScore],
        *,
        expected_version: int,
        now: datetime,
    ) -> ScoreSet:
        version = self._compare_and_set(
            tenant_id=tenant_id,
            opportunity_id=opportunity_id,
            kind=KIND_SCORES,
            record_key=supplier_id,
            supplier_id=supplier_id,
            payload=dump_scores(scores),
            expected_version=expected_version,
            updated_at=now,
            conflict_message=f"Scores for supplier {supplier_id} changed concurrently",
        )
        return ScoreSet(
            opportunity_id=opportunity_id,
            supplier_id=supplier_id,
            scores=list(scores),
            version=version,
            updated_at=now,
        )

    def last_score_write_at(self, tenant_id: str, opportunity_id: str) -> datetime | None:
        with self._engine.connect() as conn:
            row = conn.execute(
                text(
                    """
                    SELECT MAX(updated_at) AS last_write
                    FROM evaluation_snapshots
                    WHERE tenant_id = :tenant_id AND opportunity_id = :opportunity_id
                      AND kind = :kind
                    """
                ),
                {"tenant_id": tenant_id, "opportunity_id": opportunity_id, "kind": KIND_SCORES},
            ).fetchone()
        if row is None or row.last_write is None:
            return None
        return _from_iso(row.last_write)

    def add_comment(
        self, tenant_id: str, opportunity_id: str, comment: EvaluatorComment
    ) -> None:
        with self._engine.begin() as conn:
            conn.execute(
                text(_INSERT),
                {
                    "tenant_id": tenant_id,
                    "opportunity_id": opportunity_id,
                    "kind": KIND_COMMENT,
                    "record_key": comment.comment_id,
                    "supplier_id": comment.supplier_id,
                    "schema_version": SCHEMA_VERSION,
                    "version": 1,
                    "payload": dump_model(comment),
                    "updated_at": _to_iso(comment.created_at),
                },
            )

    def list_comments(
        self, tenant_id: str, opportunity_id: str, supplier_id: str
    ) -> list[EvaluatorComment]:
        with self._engine.connect() as conn:
            rows = conn.execute(
                text(
                    """
                    SELECT schema_version, payload
                    FROM evaluation_snapshots
                    WHERE tenant_id = :tenant_id AND opportunity_id = :opportunity_id
                      AND kind = :kind AND supplier_id = :supplier_id
                    ORDER BY updated_at, record_key
                    """
                ),
                {
                    "tenant_id": tenant_id,
                    "opportunity_id": opportunity_id,
                    "kind": KIND_COMMENT,
                    "supplier_id": supplier_id,
                },
            ).fetchall()
        return [
            load_model(EvaluatorComment, row.payload, int(row.schema_version)) for row in rows
        ]
