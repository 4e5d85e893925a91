"""Rule-based requirement auto-scorer.

Scoring order for one (requirement, supplier) cell:
1. A coverage finding for the requirement decides the score
   (fully addressed 100, partially addressed 50, not addressed 0, not applicable).
2. Otherwise the supplier's structured answer is scored by the requirement's
   scoring type (numeric, weighted, pass/fail, qualitative).
3. Otherwise the cell is MISSING with a raw score of 0.

Must-have requirements scoring below the configured minimum are flagged
``failed_must_have`` and, under the zero_score policy, zeroed.

A failure while scoring one cell yields an ERROR cell; it never aborts the
rest of the supplier's scores.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from supplier_eval.config import EngineConfig, MustHaveFailBehavior
from supplier_eval.models.extraction import CoverageStatus, SupplierExtraction
from supplier_eval.models.opportunity import Requirement, ScoringType
from supplier_eval.models.scores import AutoScore, RequirementScore, ScoreLevel, ScoringMethod

logger = logging.getLogger(__name__)

_NUMBER_PATTERN = re.compile(r"\d[\d,]*(?:\.\d+)?")
_MIN_SUBSTANTIVE_LENGTH = 10
_NEGATIVE_ANSWERS = frozenset({"no", "n/a"})
_QUALITATIVE_FALLBACK_SCORE = 50.0

_FINDING_SCORES: dict[CoverageStatus, tuple[float, ScoreLevel]] = {
    CoverageStatus.FULLY_ADDRESSED: (100.0, ScoreLevel.PASS),
    CoverageStatus.PARTIALLY_ADDRESSED: (50.0, ScoreLevel.PARTIAL),
    CoverageStatus.NOT_ADDRESSED: (0.0, ScoreLevel.FAIL),
    CoverageStatus.NOT_APPLICABLE: (100.0, ScoreLevel.NOT_APPLICABLE),
}


@runtime_checkable
class SemanticScorer(Protocol):
    """Optional hook for scoring qualitative answers (e.g. a language model)."""

    def score(self, requirement: Requirement, answer_text: str) -> tuple[float, str]:
        """Return (score 0-100, reasoning) for a free-text answer."""
        ...


def level_for_score(score: float, config: EngineConfig) -> ScoreLevel:
    """Map a 0-100 score onto PASS / PARTIAL / FAIL."""
    if score >= config.pass_score_threshold:
        return ScoreLevel.PASS
    if score >= config.partial_score_threshold:
        return ScoreLevel.PARTIAL
    return ScoreLevel.FAIL


def _first_number(text: str, scale: float) -> float | None:
    match = _NUMBER_PATTERN.search(text)
    if match is None:
        return None
    return min(float(match.group(0).replace(",", "")), scale)


def _is_substantive(text: str) -> bool:
    return len(text) > _MIN_SUBSTANTIVE_LENGTH


class AutoScorer:
    """Deterministic auto-scorer for requirement cells.

    Args:
        config: Engine configuration (thresholds, must-have policy, scale).
        semantic_scorer: Optional qualitative scorer; failures fall back to the
            length heuristic.
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        *,
        semantic_scorer: SemanticScorer | None = None,
    ) -> None:
        self._config = config or EngineConfig()
        self._semantic_scorer = semantic_scorer

    def score_requirement(
        self, requirement: Requirement, extraction: SupplierExtraction
    ) -> AutoScore:
        """Auto-score one requirement for one supplier.

        Args:
            requirement: Requirement definition.
            extraction: The supplier's parsed extraction.

        Returns:
            AutoScore with raw score, level, method and rationale.
        """
        finding = extraction.finding_for(requirement.requirement_id, requirement.reference_key)
        if finding is not None:
            raw, level = _FINDING_SCORES[finding.status]
            rationale = finding.notes or f"Coverage finding: {finding.status.value}"
            return self._apply_must_have(
                requirement, raw, level, ScoringMethod.COVERAGE_FINDING, rationale
            )

        answer = extraction.answer_for(requirement.requirement_id)
        text = answer.text.strip() if answer is not None else ""
        if not text:
            return self._apply_must_have(
                requirement,
                0.0,
                ScoreLevel.MISSING,
                ScoringMethod.MISSING,
                "Requirement not addressed in response",
            )

        raw, method, rationale = self._score_answer(requirement, text)
        return self._apply_must_have(
            requirement, raw, level_for_score(raw, self._config), method, rationale
        )

    def score_supplier(
        self, requirements: Sequence[Requirement], extraction: SupplierExtraction
    ) -> list[RequirementScore]:
        """Fresh auto scores (no overrides) for every requirement, in requirement order."""
        return [
            RequirementScore(
                requirement_id=req.requirement_id,
                auto_score=self._score_cell(req, extraction),
            )
            for req in requirements
        ]

    def _score_cell(self, requirement: Requirement, extraction: SupplierExtraction) -> AutoScore:
        try:
            return self.score_requirement(requirement, extraction)
        except Exception as exc:
            logger.warning(
                "Auto-scoring failed for requirement %s: %s",
                requirement.requirement_id,
                exc,
            )
            return AutoScore(
                raw_score=0.0,
                rationale=f"Scoring error: {type(exc).__name__}",
                score_level=ScoreLevel.ERROR,
                method=ScoringMethod.ERROR,
                failed_must_have=requirement.must_have,
            )

    def _score_answer(
        self, requirement: Requirement, text: str
    ) -> tuple[float, ScoringMethod, str]:
        scale = self._config.scoring_scale
        scoring_type = requirement.scoring_type

        if scoring_type == ScoringType.NUMERIC:
            number = _first_number(text, scale)
            if number is None:
                return 0.0, ScoringMethod.NUMERIC, "No numeric value found in answer"
            return _to_percent(number, scale), ScoringMethod.NUMERIC, f"Numeric answer {number:g}"

        if scoring_type == ScoringType.WEIGHTED:
            number = _first_number(text, scale)
            if number is not None:
                return (
                    _to_percent(number, scale),
                    ScoringMethod.WEIGHTED,
                    f"Numeric answer {number:g}",
                )
            if _is_substantive(text):
                return 100.0, ScoringMethod.WEIGHTED, "Substantive answer without numeric value"
            return 0.0, ScoringMethod.WEIGHTED, "Answer too short to score"

        if scoring_type == ScoringType.PASS_FAIL:
            if _is_substantive(text) and text.lower() not in _NEGATIVE_ANSWERS:
                return 100.0, ScoringMethod.PASS_FAIL, "Answer satisfies requirement"
            return 0.0, ScoringMethod.PASS_FAIL, "Answer does not satisfy requirement"

        return self._score_qualitative(requirement, text)

    def _score_qualitative(
        self, requirement: Requirement, text: str
    ) -> tuple[float, ScoringMethod, str]:
        if self._semantic_scorer is not None:
            try:
                score, reasoning = self._semantic_scorer.score(requirement, text)
                return max(0.0, min(100.0, float(score))), ScoringMethod.SEMANTIC, reasoning
            except Exception as exc:
                logger.warning(
                    "Semantic scoring failed for requirement %s, using heuristic: %s",
                    requirement.requirement_id,
                    exc,
                )
        if _is_substantive(text):
            return (
                _QUALITATIVE_FALLBACK_SCORE,
                ScoringMethod.QUALITATIVE_HEURISTIC,
                "Substantive answer pending reviewer assessment",
            )
        return 0.0, ScoringMethod.QUALITATIVE_HEURISTIC, "Answer too short to assess"

    def _apply_must_have(
        self,
        requirement: Requirement,
        raw: float,
        level: ScoreLevel,
        method: ScoringMethod,
        rationale: str,
    ) -> AutoScore:
        failed = (
            requirement.must_have
            and level != ScoreLevel.NOT_APPLICABLE
            and raw < self._config.must_have_min_score
        )
        if failed and self._config.must_have_fail_behavior == MustHaveFailBehavior.ZERO_SCORE:
            raw = 0.0
            if level in (ScoreLevel.PASS, ScoreLevel.PARTIAL):
                level = ScoreLevel.FAIL
        return AutoScore(
            raw_score=raw,
            rationale=rationale,
            score_level=level,
            method=method,
            failed_must_have=failed,
        )


def _to_percent(number: float, scale: float) -> float:
    return max(0.0, min(100.0, 100.0 * number / scale))
