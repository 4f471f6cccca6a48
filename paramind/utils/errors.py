"""Custom exceptions for Paramind."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any


class ParamindException(Exception):
    """Base exception for Paramind."""

    pass


class ReasoningException(ParamindException):
    """Raised when a reasoning session cannot be started or run."""

    pass


class UnknownStrategyError(ReasoningException):
    """Raised when requested strategy ids are not in the catalog."""

    def __init__(self, strategy_ids: Iterable[str]) -> None:
        self.strategy_ids = tuple(strategy_ids)
        super().__init__(f"Unknown strategy: {', '.join(self.strategy_ids)}")


class InvalidTransitionError(ReasoningException):
    """Raised when a path or session state change would move backwards."""

    def __init__(self, entity: str, current: str, target: str) -> None:
        self.entity = entity
        self.current = current
        self.target = target
        super().__init__(f"Invalid {entity} transition: {current} -> {target}")


class LLMException(ParamindException):
    """Raised during LLM API calls."""

    pass


class ConfigException(ParamindException):
    """Raised during configuration issues."""

    pass


class PatternStoreError(ParamindException):
    """Raised when an outcome cannot be written to the pattern store."""

    pass


class SessionNotFoundError(ParamindException):
    """Raised when a session ID is not found."""

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        super().__init__(f"Session not found: {session_id}")


class ToolExecutionError(Exception):
    """Raised when tool execution fails in MCP context.

    Provides structured error information that can be returned
    to the LLM client in a parseable format.
    """

    def __init__(
        self,
        tool_name: str,
        error_message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize tool execution error.

        Args:
            tool_name: Name of the tool that failed.
            error_message: Human-readable error message.
            details: Optional dictionary with additional error details.

        """
        self.tool_name = tool_name
        self.error_message = error_message
        self.details = details or {}
        super().__init__(f"Tool {tool_name} failed: {error_message}")

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error": True,
            "tool": self.tool_name,
            "message": self.error_message,
            "details": self.details,
        }
