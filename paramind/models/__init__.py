"""Model clients and storage adapters."""

from .executor import AIExecutor, ExecutionResult, LLMExecutor
from .llm_client import LLMClient
from .pattern_store import (
    OutcomeRecord,
    PatternSignature,
    PatternStore,
    SQLitePatternStore,
    WritablePatternStore,
    validate_db_path,
)

__all__ = [
    "AIExecutor",
    "ExecutionResult",
    "LLMClient",
    "LLMExecutor",
    "OutcomeRecord",
    "PatternSignature",
    "PatternStore",
    "SQLitePatternStore",
    "WritablePatternStore",
    "validate_db_path",
]
