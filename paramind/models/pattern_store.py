"""Persistent pattern and outcome storage for confidence scoring.

Stores weighted pattern signatures and the history of suggestion
outcomes in SQLite. The confidence engine reads through the
PatternStore protocol and writes recorded outcomes through
WritablePatternStore.

Schema Design:
- confidence_patterns: one row per signature (regex matcher, success rate, weight)
- outcome_history: append-only log of suggestion outcomes
- Thread-safe for concurrent access
"""

from __future__ import annotations

import os
import sqlite3
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Literal, Protocol, runtime_checkable

from loguru import logger

Outcome = Literal["success", "failure", "partial"]
VALID_OUTCOMES: frozenset[str] = frozenset({"success", "failure", "partial"})

# Default database location
DEFAULT_DB_PATH = Path.home() / ".paramind" / "patterns.db"

# Allowed base directories for database files (security: prevent path traversal)
# Users can override via PARAMIND_ALLOWED_DB_DIRS env var (colon-separated)
_DEFAULT_ALLOWED_DIRS = [
    Path.home() / ".paramind",
    Path.home() / ".local" / "share" / "paramind",
    Path("/tmp"),  # nosec B108 - intentionally allowed for dev/testing
    Path.cwd(),
]


def _get_allowed_db_dirs() -> list[Path]:
    """Get list of allowed directories for database files."""
    env_dirs = os.getenv("PARAMIND_ALLOWED_DB_DIRS")
    if env_dirs:
        return [Path(d).expanduser().resolve() for d in env_dirs.split(":") if d]
    return [d.resolve() for d in _DEFAULT_ALLOWED_DIRS]


def validate_db_path(db_path: Path | str) -> Path:
    """Validate and sanitize database path to prevent path traversal.

    Args:
        db_path: Proposed database path.

    Returns:
        Validated, resolved Path object.

    Raises:
        ValueError: If path is outside allowed directories or contains traversal.

    """
    if str(db_path) == ":memory:":
        return Path(":memory:")

    path_str = str(db_path)
    if ".." in path_str or path_str.startswith("/etc"):
        raise ValueError(f"Invalid database path: suspicious pattern detected in '{db_path}'")

    path = Path(db_path).expanduser().resolve()

    allowed_dirs = _get_allowed_db_dirs()
    is_allowed = any(
        path == allowed_dir or allowed_dir in path.parents for allowed_dir in allowed_dirs
    )
    if not is_allowed:
        allowed_list = ", ".join(str(d) for d in allowed_dirs)
        raise ValueError(
            f"Database path '{path}' is outside allowed directories. "
            f"Allowed: {allowed_list}. "
            f"Set PARAMIND_ALLOWED_DB_DIRS to add custom directories."
        )

    return path


@dataclass
class PatternSignature:
    """A stored pattern with its observed success rate."""

    id: str
    name: str
    description: str
    matcher: str
    success_rate: float = 0.5
    weight: float = 1.0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "matcher": self.matcher,
            "success_rate": self.success_rate,
            "weight": self.weight,
        }


@dataclass
class OutcomeRecord:
    """A past suggestion and how applying it turned out."""

    id: str
    suggestion_text: str
    outcome: Outcome
    experiment_type: str | None = None
    created_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "suggestion_text": self.suggestion_text,
            "experiment_type": self.experiment_type,
            "outcome": self.outcome,
            "created_at": self.created_at.isoformat(),
        }


@runtime_checkable
class PatternStore(Protocol):
    """Read access the confidence engine needs."""

    def get_patterns(self) -> list[PatternSignature]: ...

    def get_outcomes(self, outcome: str | None = "success", limit: int = 100) -> list[OutcomeRecord]: ...


@runtime_checkable
class WritablePatternStore(PatternStore, Protocol):
    """A PatternStore that can also learn from recorded outcomes."""

    def record_outcome(
        self, suggestion_text: str, outcome: str, experiment_type: str | None = None
    ) -> OutcomeRecord: ...

    def update_success_rate(self, pattern_id: str, success_rate: float) -> bool: ...


class SQLitePatternStore:
    """Thread-safe SQLite store for pattern signatures and outcome history.

    Usage:
        with SQLitePatternStore(":memory:") as store:
            store.add_pattern("db_migration", r"migration", success_rate=0.7)
            patterns = store.get_patterns()

    """

    def __init__(self, db_path: Path | str | None = None) -> None:
        """Initialize pattern store.

        Args:
            db_path: Path to SQLite database. If None, uses default path.
                    Use ":memory:" for in-memory database (testing).

        Raises:
            ValueError: If db_path is outside allowed directories.

        """
        if db_path is None:
            self.db_path = DEFAULT_DB_PATH
        else:
            self.db_path = validate_db_path(db_path)

        self._lock = threading.RLock()
        self._connection: sqlite3.Connection | None = None
        self._init_db()

    def __enter__(self) -> SQLitePatternStore:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _get_connection(self) -> sqlite3.Connection:
        """Get or create database connection."""
        if self._connection is None:
            if str(self.db_path) != ":memory:":
                self.db_path.parent.mkdir(parents=True, exist_ok=True)

            self._connection = sqlite3.connect(
                str(self.db_path),
                check_same_thread=False,  # We handle threading ourselves
                timeout=30.0,
            )
            self._connection.row_factory = sqlite3.Row
        return self._connection

    def _init_db(self) -> None:
        """Initialize database schema."""
        with self._lock:
            conn = self._get_connection()
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS confidence_patterns (
                    id TEXT PRIMARY KEY,
                    pattern_name TEXT NOT NULL UNIQUE,
                    pattern_description TEXT DEFAULT '',
                    pattern_regex TEXT NOT NULL,
                    success_rate REAL DEFAULT 0.5,
                    pattern_weight REAL DEFAULT 1.0,
                    updated_at TEXT DEFAULT CURRENT_TIMESTAMP
                );

                CREATE TABLE IF NOT EXISTS outcome_history (
                    id TEXT PRIMARY KEY,
                    suggestion_text TEXT NOT NULL,
                    experiment_type TEXT,
                    outcome TEXT NOT NULL,
                    created_at TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_outcome_outcome
                    ON outcome_history(outcome);
                CREATE INDEX IF NOT EXISTS idx_outcome_created
                    ON outcome_history(created_at);
                """
            )
            conn.commit()

    @staticmethod
    def _row_to_pattern(row: sqlite3.Row) -> PatternSignature:
        return PatternSignature(
            id=row["id"],
            name=row["pattern_name"],
            description=row["pattern_description"] or "",
            matcher=row["pattern_regex"],
            success_rate=row["success_rate"],
            weight=row["pattern_weight"],
        )

    def add_pattern(
        self,
        name: str,
        matcher: str,
        *,
        description: str = "",
        success_rate: float = 0.5,
        weight: float = 1.0,
    ) -> PatternSignature:
        """Insert or replace a pattern signature by name.

        Raises:
            ValueError: If success_rate is outside [0, 1].

        """
        if not 0.0 <= success_rate <= 1.0:
            raise ValueError(f"success_rate must be within [0, 1], got {success_rate}")

        with self._lock:
            conn = self._get_connection()
            row = conn.execute(
                "SELECT id FROM confidence_patterns WHERE pattern_name = ?", (name,)
            ).fetchone()
            pattern_id = row["id"] if row else f"pat_{uuid.uuid4().hex[:12]}"
            conn.execute(
                """
                INSERT OR REPLACE INTO confidence_patterns (
                    id, pattern_name, pattern_description, pattern_regex,
                    success_rate, pattern_weight, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    pattern_id,
                    name,
                    description,
                    matcher,
                    success_rate,
                    weight,
                    datetime.now().isoformat(),
                ),
            )
            conn.commit()

        return PatternSignature(
            id=pattern_id,
            name=name,
            description=description,
            matcher=matcher,
            success_rate=success_rate,
            weight=weight,
        )

    def get_patterns(self) -> list[PatternSignature]:
        """All pattern signatures, highest success rate first."""
        with self._lock:
            conn = self._get_connection()
            cursor = conn.execute(
                """
                SELECT * FROM confidence_patterns
                WHERE pattern_regex IS NOT NULL
                ORDER BY success_rate DESC, pattern_name ASC
                """
            )
            return [self._row_to_pattern(row) for row in cursor.fetchall()]

    def update_success_rate(self, pattern_id: str, success_rate: float) -> bool:
        """Set a pattern's success rate (clamped into [0, 1]).

        Returns:
            True if the pattern exists.

        """
        value = max(0.0, min(1.0, success_rate))
        with self._lock:
            conn = self._get_connection()
            cursor = conn.execute(
                "UPDATE confidence_patterns SET success_rate = ?, updated_at = ? WHERE id = ?",
                (value, datetime.now().isoformat(), pattern_id),
            )
            conn.commit()
            return cursor.rowcount > 0

    def record_outcome(
        self,
        suggestion_text: str,
        outcome: str,
        experiment_type: str | None = None,
    ) -> OutcomeRecord:
        """Append an outcome to the history.

        Raises:
            ValueError: If outcome is not success, failure or partial.

        """
        if outcome not in VALID_OUTCOMES:
            raise ValueError(
                f"Invalid outcome: {outcome}. Must be one of {', '.join(sorted(VALID_OUTCOMES))}"
            )

        record = OutcomeRecord(
            id=f"out_{uuid.uuid4().hex[:12]}",
            suggestion_text=suggestion_text,
            outcome=outcome,  # type: ignore[arg-type]
            experiment_type=experiment_type,
        )
        with self._lock:
            conn = self._get_connection()
            conn.execute(
                """
                INSERT INTO outcome_history (
                    id, suggestion_text, experiment_type, outcome, created_at
                ) VALUES (?, ?, ?, ?, ?)
                """,
                (
                    record.id,
                    record.suggestion_text,
                    record.experiment_type,
                    record.outcome,
                    record.created_at.isoformat(),
                ),
            )
            conn.commit()
        return record

    def get_outcomes(self, outcome: str | None = "success", limit: int = 100) -> list[OutcomeRecord]:
        """Most recent outcome records, optionally filtered by outcome.

        Args:
            outcome: Outcome to filter by, or None for all.
            limit: Maximum records to return.

        """
        with self._lock:
            conn = self._get_connection()

            query = "SELECT * FROM outcome_history WHERE 1=1"
            params: list[Any] = []
            if outcome:
                query += " AND outcome = ?"
                params.append(outcome)
            query += " ORDER BY created_at DESC, rowid DESC LIMIT ?"
            params.append(limit)

            cursor = conn.execute(query, params)
            return [
                OutcomeRecord(
                    id=row["id"],
                    suggestion_text=row["suggestion_text"],
                    experiment_type=row["experiment_type"],
                    outcome=row["outcome"],
                    created_at=datetime.fromisoformat(row["created_at"]),
                )
                for row in cursor.fetchall()
            ]

    def get_statistics(self) -> dict[str, Any]:
        """Get overall pattern and outcome statistics."""
        with self._lock:
            conn = self._get_connection()

            pattern_row = conn.execute(
                """
                SELECT COUNT(*) AS pattern_count, AVG(success_rate) AS avg_success_rate
                FROM confidence_patterns
                """
            ).fetchone()

            outcome_counts = {name: 0 for name in sorted(VALID_OUTCOMES)}
            for row in conn.execute(
                "SELECT outcome, COUNT(*) AS n FROM outcome_history GROUP BY outcome"
            ):
                outcome_counts[row["outcome"]] = row["n"]

            total = sum(outcome_counts.values())
            return {
                "pattern_count": pattern_row["pattern_count"],
                "avg_success_rate": pattern_row["avg_success_rate"] or 0.0,
                "total_outcomes": total,
                "outcomes": outcome_counts,
                "success_rate": outcome_counts["success"] / total if total > 0 else 0.0,
                "db_path": str(self.db_path),
            }

    def close(self) -> None:
        """Close database connection."""
        with self._lock:
            if self._connection:
                self._connection.close()
                self._connection = None
                logger.debug(f"Closed pattern store at {self.db_path}")
