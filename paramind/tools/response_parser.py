"""Extraction of solution, confidence and reasoning steps from model output.

The rules are fixed label matches rather than structured output so any
plain-text completion can be scored. Anything that cannot be located
falls back to a usable default instead of failing the path.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

DEFAULT_CONFIDENCE = 50
MAX_FALLBACK_STEPS = 5

_SOLUTION_RE = re.compile(
    r"solution[:\s]+(.+?)(?:\n\n|\n(?:confidence|potential issues)|\Z)",
    re.IGNORECASE | re.DOTALL,
)
_CONFIDENCE_RE = re.compile(r"confidence[:\s]+(\d+)", re.IGNORECASE)
_REASONING_RE = re.compile(r"reasoning[:\s]+(.+?)(?:\n\nsolution|\Z)", re.IGNORECASE | re.DOTALL)
_NUMBERED_STEP_RE = re.compile(r"(?:^|\n)\d+\.\s+")


@dataclass
class ParsedResponse:
    """Structured view of a model response."""

    solution: str
    confidence: int
    reasoning_steps: list[str] = field(default_factory=list)


def extract_solution(response: str) -> str:
    """Text after the first ``solution`` label, else the whole trimmed response."""
    match = _SOLUTION_RE.search(response)
    if match:
        solution = match.group(1).strip()
        if solution:
            return solution
    return response.strip()


def extract_confidence(response: str) -> int:
    """First integer after a ``confidence`` label, clamped to [0, 100].

    Example:
        >>> extract_confidence("Confidence: 140")
        100

    """
    match = _CONFIDENCE_RE.search(response)
    if match:
        return max(0, min(100, int(match.group(1))))
    return DEFAULT_CONFIDENCE


def _split_steps(text: str) -> list[str]:
    return [step.strip() for step in _NUMBERED_STEP_RE.split(text) if step.strip()]


def extract_reasoning(response: str) -> list[str]:
    """Numbered steps from the ``reasoning`` section.

    Without a reasoning label the whole response is split the same way and
    only the first few steps are kept.
    """
    match = _REASONING_RE.search(response)
    if match:
        return _split_steps(match.group(1))
    return _split_steps(response)[:MAX_FALLBACK_STEPS]


def parse_response(response: str) -> ParsedResponse:
    """Apply every extraction rule to a response."""
    return ParsedResponse(
        solution=extract_solution(response),
        confidence=extract_confidence(response),
        reasoning_steps=extract_reasoning(response),
    )
