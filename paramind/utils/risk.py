"""Tiered risk assessment for proposed actions.

Three fixed signature tiers classify a suggestion. The highest matched
high/medium weight sets the risk score; matched low-risk signatures pull
it back down. The tiers are kept literal so scores stay comparable with
previously recorded analyses.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

from paramind.utils.scoring import Signature, clamp

RiskLevel = Literal["low", "medium", "high"]

HIGH_RISK_SIGNATURES: tuple[Signature, ...] = (
    Signature.compile(r"delete|remove|drop|destroy|rm\s+-rf", 0.9, "Destructive operation"),
    Signature.compile(
        r"database.*migration|schema.*change|alter\s+table", 0.8, "Database schema change"
    ),
    Signature.compile(r"production|deploy|live|release", 0.7, "Production environment"),
    Signature.compile(
        r"security.*change|auth.*modify|permission.*update", 0.8, "Security modification"
    ),
    Signature.compile(r"sudo|root|admin|elevated", 0.6, "Elevated privileges"),
    Signature.compile(r"config.*server|system.*config", 0.6, "System configuration"),
)

MEDIUM_RISK_SIGNATURES: tuple[Signature, ...] = (
    Signature.compile(r"refactor|restructure|reorganize", 0.6, "Code refactoring"),
    Signature.compile(r"dependency|package.*install|npm.*add", 0.5, "Dependency change"),
    Signature.compile(r"config.*change|settings.*update", 0.4, "Configuration change"),
    Signature.compile(r"api.*endpoint|route.*add", 0.4, "API modification"),
    Signature.compile(r"build.*config|webpack|babel", 0.5, "Build configuration"),
)

LOW_RISK_SIGNATURES: tuple[Signature, ...] = (
    Signature.compile(r"comment|documentation|readme", 0.1, "Documentation"),
    Signature.compile(r"test|spec|jest|cypress", 0.2, "Testing"),
    Signature.compile(r"style|css|styling|appearance", 0.2, "Styling"),
    Signature.compile(r"log|debug|console", 0.2, "Logging/debugging"),
    Signature.compile(r"ui.*component|interface.*element", 0.3, "UI component"),
)

HIGH_RISK_THRESHOLD = 0.6
MEDIUM_RISK_THRESHOLD = 0.3


@dataclass(frozen=True)
class RiskAssessment:
    """Result of the risk stage."""

    risk_level: RiskLevel
    risk_score: float
    risk_factors: tuple[str, ...] = ()
    mitigations: tuple[str, ...] = field(default=())

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "risk_level": self.risk_level,
            "risk_score": round(self.risk_score, 3),
            "risk_factors": list(self.risk_factors),
            "mitigations": list(self.mitigations),
        }


def classify_risk(score: float) -> RiskLevel:
    """Map a risk score onto its level."""
    if score > HIGH_RISK_THRESHOLD:
        return "high"
    if score > MEDIUM_RISK_THRESHOLD:
        return "medium"
    return "low"


def risk_mitigations(risk_level: RiskLevel, factors: tuple[str, ...]) -> tuple[str, ...]:
    """Suggest mitigations for a risk level and its contributing factors."""
    mitigations: list[str] = []

    if risk_level == "high":
        mitigations.append("Create a backup before proceeding")
        mitigations.append("Test in a development environment first")
        mitigations.append("Have a rollback plan ready")
    elif risk_level == "medium":
        mitigations.append("Review changes carefully before applying")
        mitigations.append("Consider running tests after changes")

    if any("Database" in f for f in factors):
        mitigations.append("Backup database before schema changes")
    if any("Production" in f for f in factors):
        mitigations.append("Use blue-green deployment strategy")

    return tuple(mitigations)


def assess_risk(text: str) -> RiskAssessment:
    """Assess how risky applying a suggestion would be.

    Args:
        text: Suggestion text to assess.

    Returns:
        RiskAssessment with a score clamped into [0, 1].

    Example:
        >>> assess_risk("drop the users table").risk_level
        'high'

    """
    factors: list[str] = []
    score = 0.0

    for signature in HIGH_RISK_SIGNATURES:
        if signature.matches(text):
            factors.append(signature.reason)
            score = max(score, signature.weight)

    # Medium tier only matters while nothing high-risk has been found
    if score < HIGH_RISK_THRESHOLD:
        for signature in MEDIUM_RISK_SIGNATURES:
            if signature.matches(text):
                factors.append(signature.reason)
                score = max(score, signature.weight)

    for signature in LOW_RISK_SIGNATURES:
        if signature.matches(text):
            factors.append(f"Low risk: {signature.reason}")
            score = max(0.0, score - signature.weight)

    score = clamp(score, 0.0, 1.0)
    level = classify_risk(score)
    factor_tuple = tuple(factors)
    return RiskAssessment(
        risk_level=level,
        risk_score=score,
        risk_factors=factor_tuple,
        mitigations=risk_mitigations(level, factor_tuple),
    )
