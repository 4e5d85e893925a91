"""Domain error taxonomy for the supplier evaluation engine.

Every error carries a machine-readable ``code`` so the HTTP layer and the CLI
can map it without inspecting message text:

- ValidationError: caller supplied something malformed (never retried)
- NotFoundError: an opportunity, supplier or requirement id does not resolve
- NoDataError: well-formed request but nothing to compute over
- ReadinessNotApplicableError: readiness asked for a supplier with no submitted response
- ConcurrencyConflictError: an optimistic write lost a race; refetch and retry
"""

from __future__ import annotations

from typing import Any


class EvaluationError(Exception):
    """Base class for all evaluation engine errors.

    Attributes:
        code: Machine-readable error code.
        message: Human-readable message.
        details: Optional structured context (ids, offending values).
    """

    code = "EVALUATION_ERROR"

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(EvaluationError):
    """Out-of-range override, blank justification, bad filters or a zero-sum weight vector."""

    code = "VALIDATION_ERROR"


class NotFoundError(EvaluationError):
    """Opportunity, supplier or requirement id does not resolve."""

    code = "NOT_FOUND"


class NoDataError(EvaluationError):
    """Nothing to compute over (no submitted responses, no requirements)."""

    code = "NO_DATA"


class ReadinessNotApplicableError(NoDataError):
    """Readiness cannot be classified because the supplier has not submitted a response."""

    code = "READINESS_NOT_APPLICABLE"


class ConcurrencyConflictError(EvaluationError):
    """A versioned write was based on stale state.

    Attributes:
        expected_version: Version the caller based its write on.
        actual_version: Version currently stored.
    """

    code = "CONCURRENCY_CONFLICT"

    def __init__(self, message: str, *, expected_version: int, actual_version: int) -> None:
        super().__init__(
            message,
            details={"expected_version": expected_version, "actual_version": actual_version},
        )
        self.expected_version = expected_version
        self.actual_version = actual_version
