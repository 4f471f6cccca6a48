"""Confidence scoring for proposed actions.

Estimates how safe it is to apply a suggestion before it is applied.
Five independent stages feed a single score:

1. Pattern match against stored, weighted signatures
2. Tiered risk assessment
3. Complexity estimate
4. Similarity to past successful outcomes
5. Working-context signals (files, commands, errors, user experience)

Each stage degrades to a neutral contribution on error, and the engine as
a whole falls back to a fixed medium-confidence answer rather than
raising.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Any, Literal

from loguru import logger

from paramind.models.pattern_store import VALID_OUTCOMES, PatternStore, WritablePatternStore
from paramind.utils.complexity import ComplexityResult, analyze_complexity
from paramind.utils.errors import PatternStoreError
from paramind.utils.risk import RiskAssessment, RiskLevel, assess_risk
from paramind.utils.scoring import (
    SIMILARITY_THRESHOLD,
    clamp,
    count_occurrences,
    word_set_similarity,
)

ConfidenceLevel = Literal["very_low", "low", "medium", "high", "very_high"]
ExperienceLevel = Literal["beginner", "intermediate", "advanced"]

BASE_CONFIDENCE = 0.5
MIN_SCORE = 0.05
MAX_SCORE = 0.95
MAX_CONTEXT_ADJUSTMENT = 0.3
LEARNING_RATE = 0.1

_TEST_COMMAND_RE = re.compile(r"test|jest|cypress|pytest")
_GIT_COMMAND_RE = re.compile(r"git\s+(commit|push)")

# Where a recorded outcome pulls a matching pattern's success rate
_OUTCOME_TARGETS = {"success": 1.0, "partial": 0.5, "failure": 0.0}


@dataclass
class ConfidenceContext:
    """A suggestion plus whatever is known about the situation it applies to."""

    suggestion_text: str
    experiment_type: str | None = None
    current_files: list[str] = field(default_factory=list)
    recent_commands: list[str] = field(default_factory=list)
    error_context: str | None = None
    user_experience_level: ExperienceLevel | None = None


@dataclass(frozen=True)
class PatternMatch:
    """A stored pattern that matched the suggestion."""

    name: str
    description: str
    success_rate: float
    confidence: float
    weight: float
    match_strength: float


@dataclass(frozen=True)
class HistoricalAnalysis:
    """How the suggestion compares with past successful outcomes."""

    similar_count: int = 0
    bonus: float = 0.0
    success_rate: float = 0.5


@dataclass(frozen=True)
class ContextAdjustment:
    """Net effect of working-context signals."""

    adjustment: float = 0.0
    reasons: tuple[str, ...] = ()


@dataclass
class AdjustmentFactors:
    """Per-stage contributions reported alongside the score."""

    pattern_match: float = 0.0
    complexity: float = 0.0
    risk: float = 0.0
    historical: float = 0.0
    context: float = 0.0

    def to_dict(self) -> dict[str, float]:
        """Convert to dictionary."""
        return {
            "pattern_match": round(self.pattern_match, 4),
            "complexity": round(self.complexity, 4),
            "risk": round(self.risk, 4),
            "historical": round(self.historical, 4),
            "context": round(self.context, 4),
        }


@dataclass
class ConfidenceAnalysis:
    """Result of scoring a suggestion."""

    score: float
    level: ConfidenceLevel
    risk_level: RiskLevel
    reasoning: list[str] = field(default_factory=list)
    historical_match: bool = False
    similar_experiment_count: int = 0
    matched_pattern_names: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)
    adjustment_factors: AdjustmentFactors = field(default_factory=AdjustmentFactors)

    @classmethod
    def fallback(cls) -> ConfidenceAnalysis:
        """Neutral answer used when analysis cannot run at all."""
        return cls(
            score=0.5,
            level="medium",
            risk_level="medium",
            reasoning=["Unable to analyze - using default confidence"],
            recommendations=["Proceed with caution - analysis unavailable"],
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "score": self.score,
            "level": self.level,
            "risk_level": self.risk_level,
            "reasoning": list(self.reasoning),
            "historical_match": self.historical_match,
            "similar_experiment_count": self.similar_experiment_count,
            "matched_pattern_names": list(self.matched_pattern_names),
            "recommendations": list(self.recommendations),
            "adjustment_factors": self.adjustment_factors.to_dict(),
        }


def confidence_level(score: float) -> ConfidenceLevel:
    """Map a score onto its named level."""
    if score >= 0.8:
        return "very_high"
    if score >= 0.65:
        return "high"
    if score >= 0.35:
        return "medium"
    if score >= 0.2:
        return "low"
    return "very_low"


def _file_extension(path: str) -> str:
    return PurePath(path).suffix


class ConfidenceScoringEngine:
    """Scores suggestions from heuristics and stored history.

    The engine holds no per-call state, so one instance can serve
    concurrent callers.

    Usage:
        engine = ConfidenceScoringEngine(store=SQLitePatternStore())
        analysis = engine.analyze_text("Add a unit test for the parser")
        print(analysis.score, analysis.level)

    """

    def __init__(self, store: PatternStore | None = None, *, history_limit: int = 100) -> None:
        self.store = store
        self.history_limit = history_limit

    # -------------------------------------------------------------------------
    # Stages
    # -------------------------------------------------------------------------

    def match_patterns(self, text: str) -> list[PatternMatch]:
        """Stored patterns whose matcher occurs in text, in store order."""
        if self.store is None:
            return []
        try:
            patterns = self.store.get_patterns()
        except Exception as e:
            logger.error(f"Failed to load confidence patterns: {e}")
            return []

        matches: list[PatternMatch] = []
        for pattern in patterns:
            try:
                occurrences = count_occurrences(pattern.matcher, text)
                if occurrences == 0:
                    continue
                matches.append(
                    PatternMatch(
                        name=pattern.name,
                        description=pattern.description,
                        success_rate=float(pattern.success_rate),
                        confidence=float(pattern.success_rate) * float(pattern.weight),
                        weight=float(pattern.weight),
                        match_strength=min(1.0, occurrences * 0.2),
                    )
                )
            except re.error as e:
                logger.warning(f"Invalid regex in pattern {pattern.name}: {e}")
            except Exception as e:
                logger.warning(f"Skipping malformed pattern {pattern.name}: {e}")
        return matches

    def assess_risk(self, text: str) -> RiskAssessment:
        """Risk stage; neutral (low, 0.0) on error."""
        try:
            return assess_risk(text)
        except Exception as e:
            logger.error(f"Risk assessment failed: {e}")
            return RiskAssessment(risk_level="low", risk_score=0.0)

    def analyze_complexity(self, text: str) -> ComplexityResult:
        """Complexity stage; neutral (base score, simple) on error."""
        try:
            return analyze_complexity(text)
        except Exception as e:
            logger.error(f"Complexity analysis failed: {e}")
            return ComplexityResult(complexity_score=0.2, difficulty="simple", factors=())

    def analyze_history(self, text: str) -> HistoricalAnalysis:
        """Compare text with recent successful outcomes."""
        if self.store is None:
            return HistoricalAnalysis()
        try:
            outcomes = self.store.get_outcomes(outcome="success", limit=self.history_limit)
        except Exception as e:
            logger.error(f"Failed to analyze historical similarity: {e}")
            return HistoricalAnalysis()

        similar = [
            o for o in outcomes if word_set_similarity(text, o.suggestion_text) > SIMILARITY_THRESHOLD
        ]
        if not similar:
            return HistoricalAnalysis()

        successes = sum(1 for o in similar if o.outcome == "success")
        return HistoricalAnalysis(
            similar_count=len(similar),
            bonus=min(0.3, len(similar) * 0.05),
            success_rate=successes / len(similar),
        )

    def analyze_context(self, context: ConfidenceContext) -> ContextAdjustment:
        """Adjustment from the caller's working context, clamped to +/-0.3."""
        reasons: list[str] = []
        adjustment = 0.0

        if context.current_files:
            extensions = {ext for ext in map(_file_extension, context.current_files) if ext}
            if len(extensions) == 1:
                adjustment += 0.1
                reasons.append("Working with consistent file types")
            elif len(extensions) > 5:
                adjustment -= 0.1
                reasons.append("Working with many different file types")

        if context.recent_commands:
            if any(_TEST_COMMAND_RE.search(cmd) for cmd in context.recent_commands):
                adjustment += 0.1
                reasons.append("Recent testing activity detected")
            if any(_GIT_COMMAND_RE.search(cmd) for cmd in context.recent_commands):
                adjustment += 0.05
                reasons.append("Recent version control activity")

        if context.error_context:
            adjustment -= 0.1
            reasons.append("Error context present - higher uncertainty")

        if context.user_experience_level == "beginner":
            adjustment -= 0.1
            reasons.append("Beginner user - recommend extra caution")
        elif context.user_experience_level == "advanced":
            adjustment += 0.05
            reasons.append("Advanced user - slightly higher confidence")

        return ContextAdjustment(
            adjustment=clamp(adjustment, -MAX_CONTEXT_ADJUSTMENT, MAX_CONTEXT_ADJUSTMENT),
            reasons=tuple(reasons),
        )

    # -------------------------------------------------------------------------
    # Combination
    # -------------------------------------------------------------------------

    @staticmethod
    def combine(
        matches: list[PatternMatch],
        risk: RiskAssessment,
        complexity: ComplexityResult,
        history: HistoricalAnalysis,
        context: ContextAdjustment,
    ) -> float:
        """Fold the stage outputs into a score within [0.05, 0.95]."""
        score = BASE_CONFIDENCE

        if matches:
            pattern_confidence = sum(m.confidence * m.match_strength for m in matches) / len(matches)
            score += (pattern_confidence - 0.5) * 0.6

        score -= risk.risk_score * 0.4
        score -= (complexity.complexity_score - 0.2) * 0.3

        score += history.bonus
        if history.success_rate > 0.5:
            score += (history.success_rate - 0.5) * 0.2

        score += context.adjustment
        return clamp(score, MIN_SCORE, MAX_SCORE)

    @staticmethod
    def _pattern_adjustment(matches: list[PatternMatch]) -> float:
        if not matches:
            return 0.0
        return sum(m.confidence for m in matches) / len(matches) - 0.5

    @staticmethod
    def _reasoning(
        matches: list[PatternMatch],
        risk: RiskAssessment,
        complexity: ComplexityResult,
        history: HistoricalAnalysis,
        context: ContextAdjustment,
    ) -> list[str]:
        lines: list[str] = []
        if matches:
            lines.append(f"Matched {len(matches)} known patterns")
            avg_success = sum(m.success_rate for m in matches) / len(matches)
            lines.append(f"Average pattern success rate: {round(avg_success * 100)}%")

        lines.append(f"Risk assessment: {risk.risk_level}")
        lines.append(f"Complexity: {complexity.difficulty}")
        lines.extend(risk.risk_factors)

        if history.similar_count > 0:
            lines.append(f"Found {history.similar_count} similar past experiments")
            lines.append(f"Historical success rate: {round(history.success_rate * 100)}%")
        else:
            lines.append("No similar historical experiments found")

        lines.extend(context.reasons)
        return lines

    @staticmethod
    def _recommendations(
        score: float,
        risk: RiskAssessment,
        complexity: ComplexityResult,
        matches: list[PatternMatch],
    ) -> list[str]:
        recommendations: list[str] = []
        if score >= 0.8:
            recommendations.append("High confidence - safe to proceed")
        elif score >= 0.6:
            recommendations.append("Good confidence - recommended with review")
        elif score >= 0.4:
            recommendations.append("Medium confidence - proceed with caution")
        else:
            recommendations.append("Low confidence - consider manual implementation")

        if risk.risk_level == "high":
            recommendations.append("High risk detected - strongly recommend sandbox testing")
        recommendations.extend(risk.mitigations)

        if complexity.difficulty == "very_complex":
            recommendations.append("Complex operation - break into smaller steps")

        if not matches:
            recommendations.append("No historical patterns - proceed carefully")

        return recommendations

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def analyze_confidence(self, context: ConfidenceContext) -> ConfidenceAnalysis:
        """Score a suggestion in its context.

        Never raises: a failure outside the individual stages returns
        ``ConfidenceAnalysis.fallback()``.
        """
        try:
            text = context.suggestion_text
            logger.debug(f"Starting confidence analysis for suggestion: {text[:100]}...")

            matches = self.match_patterns(text)
            risk = self.assess_risk(text)
            complexity = self.analyze_complexity(text)
            history = self.analyze_history(text)
            adjustment = self.analyze_context(context)

            raw_score = self.combine(matches, risk, complexity, history, adjustment)

            analysis = ConfidenceAnalysis(
                score=round(raw_score, 2),
                level=confidence_level(raw_score),
                risk_level=risk.risk_level,
                reasoning=self._reasoning(matches, risk, complexity, history, adjustment),
                historical_match=history.similar_count > 0,
                similar_experiment_count=history.similar_count,
                matched_pattern_names=[m.name for m in matches],
                recommendations=self._recommendations(raw_score, risk, complexity, matches),
                adjustment_factors=AdjustmentFactors(
                    pattern_match=self._pattern_adjustment(matches),
                    complexity=complexity.complexity_score,
                    risk=risk.risk_score,
                    historical=history.bonus,
                    context=adjustment.adjustment,
                ),
            )
            logger.info(
                f"Confidence analysis complete: {round(raw_score * 100)}% ({analysis.level})"
            )
            return analysis
        except Exception as e:
            logger.error(f"Failed to analyze confidence: {e}")
            return ConfidenceAnalysis.fallback()

    def analyze_text(self, suggestion_text: str, **context_fields: Any) -> ConfidenceAnalysis:
        """Convenience wrapper building the ConfidenceContext from keywords."""
        return self.analyze_confidence(
            ConfidenceContext(suggestion_text=suggestion_text, **context_fields)
        )

    def record_outcome(
        self,
        suggestion_text: str,
        outcome: str,
        experiment_type: str | None = None,
    ) -> list[str]:
        """Record how applying a suggestion turned out and learn from it.

        Appends the outcome to the store and nudges the success rate of
        every matching pattern toward the observed result. A pattern that
        cannot be updated is logged and skipped once the outcome is stored.

        Returns:
            Names of the patterns whose success rate was updated.

        Raises:
            ValueError: If outcome is not success, failure or partial.
            PatternStoreError: If there is no writable store or the
                outcome could not be appended.

        """
        if outcome not in VALID_OUTCOMES:
            raise ValueError(
                f"Invalid outcome: {outcome}. Must be one of {', '.join(sorted(VALID_OUTCOMES))}"
            )
        store = self.store
        if not isinstance(store, WritablePatternStore):
            raise PatternStoreError("No writable pattern store configured")

        try:
            store.record_outcome(suggestion_text, outcome, experiment_type)
        except Exception as e:
            logger.error(f"Failed to record outcome: {e}")
            raise PatternStoreError(f"Failed to record outcome: {e}") from e

        try:
            patterns = store.get_patterns()
        except Exception as e:
            logger.error(f"Failed to load patterns after recording outcome: {e}")
            return []

        target = _OUTCOME_TARGETS[outcome]
        updated: list[str] = []
        for pattern in patterns:
            try:
                if count_occurrences(pattern.matcher, suggestion_text) == 0:
                    continue
                current = float(pattern.success_rate)
                new_rate = clamp(current + LEARNING_RATE * (target - current), 0.0, 1.0)
                store.update_success_rate(pattern.id, new_rate)
            except re.error:
                continue
            except Exception as e:
                logger.warning(f"Failed to update pattern {pattern.name}: {e}")
                continue
            updated.append(pattern.name)

        logger.debug(f"Recorded {outcome} outcome, updated {len(updated)} patterns")
        return updated
