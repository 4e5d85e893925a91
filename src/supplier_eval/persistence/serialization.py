"""Persisted payload encoding with schema versioning.

Every stored record carries the schema version it was written with. Readers
accept the current version and upgrade older ones here; nothing outside this
module knows about historical layouts.

Schema history:
    1: score lists stored as camelCase dicts (``requirementId``, ``autoScore``,
       ``buyerOverride``) without a scoring method.
    2: pydantic ``model_dump(mode="json")`` of the current models.
"""

from __future__ import annotations

import json
from typing import Any, Final, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from supplier_eval.models.scores import RequirementScore, ScoreLevel, ScoringMethod

SCHEMA_VERSION: Final[int] = 2

M = TypeVar("M", bound=BaseModel)


class SchemaVersionError(ValueError):
    """Raised when a stored payload cannot be read by this version of the code."""

    pass


def dump_model(model: BaseModel) -> str:
    """Encode one model at the current schema version."""
    return json.dumps(model.model_dump(mode="json"), sort_keys=True)


def dump_scores(scores: list[RequirementScore]) -> str:
    """Encode a score list at the current schema version."""
    return json.dumps([s.model_dump(mode="json") for s in scores], sort_keys=True)


def _check_version(schema_version: int, *, oldest: int) -> None:
    if schema_version > SCHEMA_VERSION:
        raise SchemaVersionError(
            f"Payload schema version {schema_version} is newer than supported "
            f"version {SCHEMA_VERSION}"
        )
    if schema_version < oldest:
        raise SchemaVersionError(f"Payload schema version {schema_version} is not readable")


def load_model(model_type: type[M], payload: str, schema_version: int) -> M:
    """Decode one model.

    Only current-version payloads are readable for snapshot records; they are
    derived data and are recomputed when unreadable.

    Raises:
        SchemaVersionError: Unsupported version or payload that fails validation.
    """
    _check_version(schema_version, oldest=SCHEMA_VERSION)
    try:
        return model_type.model_validate(json.loads(payload))
    except (json.JSONDecodeError, PydanticValidationError) as e:
        raise SchemaVersionError(f"Unreadable {model_type.__name__} payload: {e}") from e


def load_scores(payload: str, schema_version: int) -> list[RequirementScore]:
    """Decode a score list, upgrading version 1 payloads.

    Raises:
        SchemaVersionError: Unsupported version or payload that fails validation.
    """
    _check_version(schema_version, oldest=1)
    try:
        entries = json.loads(payload)
        if schema_version == 1:
            entries = [upgrade_score_entry_v1(entry) for entry in entries]
        return [RequirementScore.model_validate(entry) for entry in entries]
    except (ValueError, KeyError, TypeError) as e:
        raise SchemaVersionError(f"Unreadable score payload: {e}") from e


def upgrade_score_entry_v1(entry: dict[str, Any]) -> dict[str, Any]:
    """Convert a version 1 camelCase score entry to the version 2 layout.

    Version 1 did not record the scoring method: entries without a response
    become ``missing``, everything else ``qualitative_heuristic``.
    """
    auto = entry["autoScore"]
    level = ScoreLevel(str(auto.get("scoreLevel", "missing")).lower())
    method = ScoringMethod.QUALITATIVE_HEURISTIC
    if level == ScoreLevel.MISSING:
        method = ScoringMethod.MISSING
    upgraded: dict[str, Any] = {
        "requirement_id": entry["requirementId"],
        "auto_score": {
            "raw_score": auto.get("rawScore", 0.0),
            "rationale": auto.get("rationale", ""),
            "score_level": level.value,
            "method": method.value,
            "failed_must_have": bool(auto.get("failedMustHave", False)),
        },
        "buyer_override": None,
    }
    override = entry.get("buyerOverride")
    if override:
        upgraded["buyer_override"] = {
            "override_score": override["overrideScore"],
            "override_reason": override["overrideReason"],
            "overridden_at": override["overriddenAt"],
            "overridden_by_user_id": override["overriddenByUserId"],
        }
    return upgraded
