"""Reasoning strategy catalog.

A strategy is a named way of attacking a problem: a prompt template fed
to the model plus a voting weight reflecting how much its answers are
trusted. The catalog is immutable and versioned so that recorded
sessions can be traced back to the weights they were voted with.
"""

from __future__ import annotations

import os
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any

import orjson
from loguru import logger

from paramind.utils.errors import ConfigException, UnknownStrategyError

MIN_WEIGHT = 0.9
MAX_WEIGHT = 1.3

BUILTIN_VERSION = "2025.1"


@dataclass(frozen=True)
class ReasoningStrategy:
    """A single reasoning approach."""

    id: str
    name: str
    description: str
    prompt_template: str
    weight: float

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "prompt_template": self.prompt_template,
            "weight": self.weight,
        }


BUILTIN_STRATEGIES: tuple[ReasoningStrategy, ...] = (
    ReasoningStrategy(
        id="analytical",
        name="Analytical Decomposition",
        description="Break down the problem into smaller, manageable components",
        prompt_template=(
            "Analyze this problem by breaking it down into its smallest components. "
            "Identify each part, understand how they interact, and solve them "
            "individually before combining the solutions."
        ),
        weight=1.2,
    ),
    ReasoningStrategy(
        id="pattern_matching",
        name="Pattern Recognition",
        description="Find similar problems that have been solved before",
        prompt_template=(
            "Search for similar problems in the codebase and documentation. Identify "
            "patterns that match this issue and adapt existing solutions to fit the "
            "current context."
        ),
        weight=1.1,
    ),
    ReasoningStrategy(
        id="first_principles",
        name="First Principles",
        description="Build the solution from fundamental concepts",
        prompt_template=(
            "Start from the most basic truths and build up the solution step by step. "
            "Question every assumption and derive the answer from fundamental principles."
        ),
        weight=1.3,
    ),
    ReasoningStrategy(
        id="reverse_engineering",
        name="Reverse Engineering",
        description="Work backwards from the desired outcome",
        prompt_template=(
            "Start with the desired end result and work backwards. What needs to be "
            "true for this to work? Trace the requirements back to the current state."
        ),
        weight=1.0,
    ),
    ReasoningStrategy(
        id="lateral_thinking",
        name="Lateral Thinking",
        description="Explore unconventional and creative approaches",
        prompt_template=(
            "Think outside the box. What unconventional approaches could solve this? "
            "Consider solutions from other domains and creative workarounds."
        ),
        weight=0.9,
    ),
    ReasoningStrategy(
        id="domain_expert",
        name="Domain Expertise",
        description="Apply deep domain-specific knowledge",
        prompt_template=(
            "Apply expert knowledge of the specific technology stack and domain. Use "
            "best practices, common patterns, and domain-specific optimizations."
        ),
        weight=1.2,
    ),
    ReasoningStrategy(
        id="error_analysis",
        name="Error Analysis",
        description="Focus on what could go wrong and prevent it",
        prompt_template=(
            "Identify all possible failure modes and edge cases. Focus on error "
            "prevention, handling, and recovery. Build a robust solution that handles "
            "all error scenarios."
        ),
        weight=1.1,
    ),
    ReasoningStrategy(
        id="performance_first",
        name="Performance Optimization",
        description="Prioritize efficiency and speed",
        prompt_template=(
            "Focus on performance and efficiency. Consider time complexity, space "
            "complexity, and resource usage. Optimize for speed and scalability."
        ),
        weight=1.0,
    ),
    ReasoningStrategy(
        id="user_centric",
        name="User Experience",
        description="Consider the end-user perspective",
        prompt_template=(
            "Think from the user's perspective. What would provide the best user "
            "experience? Consider usability, accessibility, and user expectations."
        ),
        weight=0.9,
    ),
    ReasoningStrategy(
        id="security_focused",
        name="Security Analysis",
        description="Identify and address security concerns",
        prompt_template=(
            "Analyze security implications. Identify potential vulnerabilities, attack "
            "vectors, and security best practices. Build a secure solution."
        ),
        weight=1.1,
    ),
)

DEFAULT_STRATEGY_IDS: tuple[str, ...] = (
    "analytical",
    "pattern_matching",
    "first_principles",
    "domain_expert",
)


class StrategyCatalog:
    """Immutable, versioned registry of reasoning strategies.

    Usage:
        catalog = StrategyCatalog.builtin()
        strategy = catalog.get("analytical")
        strategies = catalog.require(["analytical", "security_focused"])

    """

    def __init__(
        self,
        strategies: Iterable[ReasoningStrategy],
        *,
        version: str,
        default_ids: Iterable[str],
    ) -> None:
        """Build a catalog, validating weights, ids and defaults.

        Raises:
            ConfigException: If the strategy set is inconsistent.

        """
        by_id: dict[str, ReasoningStrategy] = {}
        for strategy in strategies:
            if strategy.id in by_id:
                raise ConfigException(f"Duplicate strategy id: {strategy.id}")
            if not MIN_WEIGHT <= strategy.weight <= MAX_WEIGHT:
                raise ConfigException(
                    f"Strategy {strategy.id} weight {strategy.weight} outside "
                    f"[{MIN_WEIGHT}, {MAX_WEIGHT}]"
                )
            by_id[strategy.id] = strategy

        defaults = tuple(default_ids)
        missing = [sid for sid in defaults if sid not in by_id]
        if missing:
            raise ConfigException(f"Default strategies not in catalog: {', '.join(missing)}")
        if not defaults:
            raise ConfigException("Catalog must declare at least one default strategy")

        self._strategies = MappingProxyType(by_id)
        self._version = version
        self._default_ids = defaults

    @classmethod
    def builtin(cls) -> StrategyCatalog:
        """The built-in ten-strategy catalog."""
        return cls(BUILTIN_STRATEGIES, version=BUILTIN_VERSION, default_ids=DEFAULT_STRATEGY_IDS)

    @classmethod
    def from_file(cls, path: str | Path) -> StrategyCatalog:
        """Load a catalog from a JSON document.

        Expected layout::

            {"version": "...", "default_strategies": ["..."],
             "strategies": [{"id", "name", "description", "prompt", "weight"}]}

        Raises:
            ConfigException: If the file is unreadable or invalid.

        """
        path = Path(path).expanduser()
        try:
            data = orjson.loads(path.read_bytes())
        except OSError as e:
            raise ConfigException(f"Cannot read strategy catalog {path}: {e}") from e
        except orjson.JSONDecodeError as e:
            raise ConfigException(f"Invalid JSON in strategy catalog {path}: {e}") from e

        if not isinstance(data, dict) or not isinstance(data.get("strategies"), list):
            raise ConfigException(f"Strategy catalog {path} must contain a 'strategies' list")

        try:
            strategies = [
                ReasoningStrategy(
                    id=str(item["id"]),
                    name=str(item["name"]),
                    description=str(item.get("description", "")),
                    prompt_template=str(item["prompt"]),
                    weight=float(item["weight"]),
                )
                for item in data["strategies"]
            ]
        except (KeyError, TypeError, ValueError) as e:
            raise ConfigException(f"Malformed strategy entry in {path}: {e}") from e

        catalog = cls(
            strategies,
            version=str(data.get("version", "custom")),
            default_ids=data.get("default_strategies") or [s.id for s in strategies[:4]],
        )
        logger.info(f"Loaded strategy catalog {catalog.version} from {path} ({len(catalog)} strategies)")
        return catalog

    @property
    def version(self) -> str:
        """Catalog version string."""
        return self._version

    @property
    def default_ids(self) -> tuple[str, ...]:
        """Strategies used when a caller selects none."""
        return self._default_ids

    def get(self, strategy_id: str) -> ReasoningStrategy | None:
        """Look up a strategy, returning None when missing."""
        return self._strategies.get(strategy_id)

    def require(self, strategy_ids: Iterable[str]) -> list[ReasoningStrategy]:
        """Resolve ids to strategies in the given order.

        Raises:
            UnknownStrategyError: Carrying every id missing from the catalog.

        """
        ids = list(strategy_ids)
        missing = [sid for sid in ids if sid not in self]
        if missing:
            raise UnknownStrategyError(missing)
        return [self._strategies[sid] for sid in ids]

    def weight_of(self, strategy_id: str) -> float:
        """Voting weight for a strategy, 1.0 when it is not in the catalog."""
        strategy = self._strategies.get(strategy_id)
        return strategy.weight if strategy is not None else 1.0

    def __contains__(self, strategy_id: object) -> bool:
        return strategy_id in self._strategies

    def __iter__(self) -> Iterator[ReasoningStrategy]:
        return iter(self._strategies.values())

    def __len__(self) -> int:
        return len(self._strategies)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "version": self._version,
            "default_strategies": list(self._default_ids),
            "strategies": [s.to_dict() for s in self._strategies.values()],
        }


def load_catalog(path: str | Path | None = None) -> StrategyCatalog:
    """Return the catalog from path or STRATEGY_CATALOG_PATH, else the built-in one."""
    source = path or os.getenv("STRATEGY_CATALOG_PATH")
    if source:
        return StrategyCatalog.from_file(source)
    return StrategyCatalog.builtin()
