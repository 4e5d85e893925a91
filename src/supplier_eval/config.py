"""Engine configuration for supplier evaluation.

All thresholds that drive a testable contract live here as data, never as
constants buried in scoring code. Values load from environment variables with a
``SUPPLIER_EVAL_`` prefix and are validated on construction (fail closed).

Environment variables:
    SUPPLIER_EVAL_MATRIX_TTL_SECONDS: Scoring matrix staleness window (default: 900)
    SUPPLIER_EVAL_VARIANCE_MEDIUM: Variance at or above which the level is medium (default: 10)
    SUPPLIER_EVAL_VARIANCE_HIGH: Variance above which the level is high (default: 25)
    SUPPLIER_EVAL_MUST_HAVE_MIN_SCORE: Minimum effective score for a must-have (default: 50)
    SUPPLIER_EVAL_READY_THRESHOLD: Lowest readiness score labelled READY (default: 80)
    SUPPLIER_EVAL_CONDITIONAL_THRESHOLD: Lowest score labelled CONDITIONAL (default: 60)
    SUPPLIER_EVAL_NEUTRAL_METRIC_SCORE: Normalized score for unknown metrics (default: 50)
    SUPPLIER_EVAL_MUST_HAVE_FAIL_BEHAVIOR: "zero_score" or "disqualify" (default: zero_score)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Final

logger = logging.getLogger(__name__)

ENV_MATRIX_TTL_SECONDS: Final[str] = "SUPPLIER_EVAL_MATRIX_TTL_SECONDS"
ENV_VARIANCE_MEDIUM: Final[str] = "SUPPLIER_EVAL_VARIANCE_MEDIUM"
ENV_VARIANCE_HIGH: Final[str] = "SUPPLIER_EVAL_VARIANCE_HIGH"
ENV_MUST_HAVE_MIN_SCORE: Final[str] = "SUPPLIER_EVAL_MUST_HAVE_MIN_SCORE"
ENV_READY_THRESHOLD: Final[str] = "SUPPLIER_EVAL_READY_THRESHOLD"
ENV_CONDITIONAL_THRESHOLD: Final[str] = "SUPPLIER_EVAL_CONDITIONAL_THRESHOLD"
ENV_NEUTRAL_METRIC_SCORE: Final[str] = "SUPPLIER_EVAL_NEUTRAL_METRIC_SCORE"
ENV_MUST_HAVE_FAIL_BEHAVIOR: Final[str] = "SUPPLIER_EVAL_MUST_HAVE_FAIL_BEHAVIOR"

DEFAULT_MATRIX_TTL_SECONDS: Final[int] = 900
DEFAULT_VARIANCE_MEDIUM: Final[float] = 10.0
DEFAULT_VARIANCE_HIGH: Final[float] = 25.0
DEFAULT_MUST_HAVE_MIN_SCORE: Final[float] = 50.0
DEFAULT_READY_THRESHOLD: Final[float] = 80.0
DEFAULT_CONDITIONAL_THRESHOLD: Final[float] = 60.0
DEFAULT_NEUTRAL_METRIC_SCORE: Final[float] = 50.0

DEFAULT_CATEGORY_WEIGHTS: Final[dict[str, float]] = {
    "functional": 1.0,
    "commercial": 0.9,
    "legal": 0.95,
    "security": 1.0,
    "operational": 0.8,
    "other": 0.6,
}


class ConfigError(Exception):
    """Raised when engine configuration is invalid."""


class MustHaveFailBehavior(StrEnum):
    """What the auto-scorer does with a must-have requirement that scores too low."""

    ZERO_SCORE = "zero_score"
    DISQUALIFY = "disqualify"


@dataclass(frozen=True)
class ReadinessPolicy:
    """Penalty and strength rules for the readiness classifier.

    Attributes:
        neutral_base_score: Base score when neither coverage nor mandatory status is known.
        critical_gap_penalty: Per unresolved critical/high compliance finding.
        unmet_critical_mandatory_penalty: Per critical mandatory requirement not met.
        compliance_critical_below: Compliance score below this is a critical issue.
        compliance_critical_penalty: Penalty applied for a critical compliance score.
        compliance_conditional_below: Compliance score below this is a conditional factor.
        compliance_conditional_penalty: Penalty applied for a conditional compliance score.
        compliance_strength_at: Compliance score at or above this is a strength.
        high_risk_penalty: Per high or critical severity risk flag.
        high_risk_critical_count: From this many high risks on they are a critical issue.
        medium_risk_limit: More medium risks than this draws a penalty.
        medium_risk_penalty: Penalty for exceeding the medium risk limit.
        hidden_fee_penalty: Penalty when any hidden fee is high or critical severity.
        coverage_strength_at: Coverage percentage at or above this is a strength.
        not_addressed_limit: More unaddressed requirements than this draws a penalty.
        not_addressed_penalty: Penalty for exceeding the unaddressed limit.
    """

    neutral_base_score: float = 60.0
    critical_gap_penalty: float = 15.0
    unmet_critical_mandatory_penalty: float = 10.0
    compliance_critical_below: float = 50.0
    compliance_critical_penalty: float = 10.0
    compliance_conditional_below: float = 70.0
    compliance_conditional_penalty: float = 5.0
    compliance_strength_at: float = 85.0
    high_risk_penalty: float = 10.0
    high_risk_critical_count: int = 3
    medium_risk_limit: int = 3
    medium_risk_penalty: float = 5.0
    hidden_fee_penalty: float = 5.0
    coverage_strength_at: float = 90.0
    not_addressed_limit: int = 5
    not_addressed_penalty: float = 10.0

    def __post_init__(self) -> None:
        """Validate penalties are non-negative and bands are ordered."""
        for name in (
            "critical_gap_penalty",
            "unmet_critical_mandatory_penalty",
            "compliance_critical_penalty",
            "compliance_conditional_penalty",
            "high_risk_penalty",
            "medium_risk_penalty",
            "hidden_fee_penalty",
            "not_addressed_penalty",
        ):
            if getattr(self, name) < 0:
                raise ConfigError(f"ReadinessPolicy.{name} must be >= 0, got {getattr(self, name)}")
        if not 0 <= self.neutral_base_score <= 100:
            raise ConfigError(
                f"ReadinessPolicy.neutral_base_score must be in [0, 100], "
                f"got {self.neutral_base_score}"
            )
        if not (
            self.compliance_critical_below
            <= self.compliance_conditional_below
            <= self.compliance_strength_at
        ):
            raise ConfigError(
                "ReadinessPolicy compliance bands must be ordered critical <= conditional <= "
                "strength"
            )
        if (
            self.high_risk_critical_count < 1
            or self.medium_risk_limit < 0
            or self.not_addressed_limit < 0
        ):
            raise ConfigError("ReadinessPolicy risk counts must be positive")


@dataclass(frozen=True)
class EngineConfig:
    """Evaluation engine configuration (immutable).

    Attributes:
        matrix_ttl_seconds: Scoring matrix snapshots older than this are stale.
        variance_medium_threshold: Variance >= this is MEDIUM (below is LOW).
        variance_high_threshold: Variance > this is HIGH.
        must_have_min_score: Effective score a must-have needs to pass.
        ready_threshold: Readiness score >= this is READY.
        conditional_threshold: Readiness score >= this (and below ready) is CONDITIONAL.
        neutral_metric_score: Normalized value for a supplier whose metric is unknown.
        pass_score_threshold: Auto score >= this is a PASS level.
        partial_score_threshold: Auto score >= this (and below pass) is a PARTIAL level.
        scoring_scale: Upper bound for numbers read out of answer text.
        must_have_fail_behavior: Whether a failing must-have auto score is zeroed.
        category_weights: Requirement category multipliers for the weighted matrix score.
        readiness: Readiness penalty policy.
    """

    matrix_ttl_seconds: int = DEFAULT_MATRIX_TTL_SECONDS
    variance_medium_threshold: float = DEFAULT_VARIANCE_MEDIUM
    variance_high_threshold: float = DEFAULT_VARIANCE_HIGH
    must_have_min_score: float = DEFAULT_MUST_HAVE_MIN_SCORE
    ready_threshold: float = DEFAULT_READY_THRESHOLD
    conditional_threshold: float = DEFAULT_CONDITIONAL_THRESHOLD
    neutral_metric_score: float = DEFAULT_NEUTRAL_METRIC_SCORE
    pass_score_threshold: float = 80.0
    partial_score_threshold: float = 40.0
    scoring_scale: float = 100.0
    must_have_fail_behavior: MustHaveFailBehavior = MustHaveFailBehavior.ZERO_SCORE
    category_weights: dict[str, float] = field(
        default_factory=lambda: dict(DEFAULT_CATEGORY_WEIGHTS)
    )
    readiness: ReadinessPolicy = field(default_factory=ReadinessPolicy)

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.matrix_ttl_seconds <= 0:
            raise ConfigError(
                f"{ENV_MATRIX_TTL_SECONDS} must be a positive integer, "
                f"got {self.matrix_ttl_seconds}"
            )
        if not 0 <= self.variance_medium_threshold <= self.variance_high_threshold:
            raise ConfigError(
                f"Variance thresholds must satisfy 0 <= medium <= high, got "
                f"medium={self.variance_medium_threshold} high={self.variance_high_threshold}"
            )
        if not 0 <= self.conditional_threshold <= self.ready_threshold <= 100:
            raise ConfigError(
                f"Readiness thresholds must satisfy 0 <= conditional <= ready <= 100, got "
                f"conditional={self.conditional_threshold} ready={self.ready_threshold}"
            )
        if not 0 <= self.partial_score_threshold <= self.pass_score_threshold <= 100:
            raise ConfigError("Score level thresholds must satisfy 0 <= partial <= pass <= 100")
        for name in ("must_have_min_score", "neutral_metric_score"):
            value = getattr(self, name)
            if not 0 <= value <= 100:
                raise ConfigError(f"EngineConfig.{name} must be in [0, 100], got {value}")
        if self.scoring_scale <= 0:
            raise ConfigError(f"EngineConfig.scoring_scale must be > 0, got {self.scoring_scale}")
        for category, weight in self.category_weights.items():
            if weight < 0:
                raise ConfigError(f"Category weight for '{category}' must be >= 0, got {weight}")

    def category_weight(self, category: str) -> float:
        """Weight multiplier for a requirement category (1.0 when unlisted)."""
        return self.category_weights.get(category, 1.0)


def _parse_positive_int(env_var: str, default: int) -> int:
    """Parse a positive integer from an environment variable.

    Raises:
        ConfigError: If the value is set but not a positive integer.
    """
    raw = os.environ.get(env_var, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise ConfigError(f"{env_var} must be a positive integer, got '{raw}'") from e
    if value <= 0:
        raise ConfigError(f"{env_var} must be a positive integer, got {value}")
    return value


def _parse_score(env_var: str, default: float) -> float:
    """Parse a number in [0, 100] from an environment variable.

    Raises:
        ConfigError: If the value is set but not a number in range.
    """
    raw = os.environ.get(env_var, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError as e:
        raise ConfigError(f"{env_var} must be a number, got '{raw}'") from e
    if not 0 <= value <= 100:
        raise ConfigError(f"{env_var} must be in [0, 100], got {value}")
    return value


def _parse_fail_behavior(env_var: str) -> MustHaveFailBehavior:
    raw = os.environ.get(env_var, "").strip().lower()
    if not raw:
        return MustHaveFailBehavior.ZERO_SCORE
    try:
        return MustHaveFailBehavior(raw)
    except ValueError as e:
        allowed = sorted(b.value for b in MustHaveFailBehavior)
        raise ConfigError(f"{env_var} must be one of {allowed}, got '{raw}'") from e


def load_engine_config() -> EngineConfig:
    """Load engine configuration from environment variables.

    Returns:
        EngineConfig with validated values.

    Raises:
        ConfigError: If any value is malformed or the thresholds are inconsistent.
    """
    config = EngineConfig(
        matrix_ttl_seconds=_parse_positive_int(ENV_MATRIX_TTL_SECONDS, DEFAULT_MATRIX_TTL_SECONDS),
        variance_medium_threshold=_parse_score(ENV_VARIANCE_MEDIUM, DEFAULT_VARIANCE_MEDIUM),
        variance_high_threshold=_parse_score(ENV_VARIANCE_HIGH, DEFAULT_VARIANCE_HIGH),
        must_have_min_score=_parse_score(ENV_MUST_HAVE_MIN_SCORE, DEFAULT_MUST_HAVE_MIN_SCORE),
        ready_threshold=_parse_score(ENV_READY_THRESHOLD, DEFAULT_READY_THRESHOLD),
        conditional_threshold=_parse_score(
            ENV_CONDITIONAL_THRESHOLD, DEFAULT_CONDITIONAL_THRESHOLD
        ),
        neutral_metric_score=_parse_score(ENV_NEUTRAL_METRIC_SCORE, DEFAULT_NEUTRAL_METRIC_SCORE),
        must_have_fail_behavior=_parse_fail_behavior(ENV_MUST_HAVE_FAIL_BEHAVIOR),
    )
    logger.debug(
        "Loaded engine config: ttl=%ss ready=%s conditional=%s",
        config.matrix_ttl_seconds,
        config.ready_threshold,
        config.conditional_threshold,
    )
    return config
