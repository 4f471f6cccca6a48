"""Structured logging utilities for Paramind.

Provides a consistent logging setup with:
- Structured JSON logging for production
- Human-readable format for development
- Context injection for trace, session, path and strategy ids
- Log level configuration from environment/config
- Automatic redaction of sensitive data

Context ids live in ContextVars, so each asyncio task (one per reasoning
path) logs with its own session, path and strategy.
"""

from __future__ import annotations

import json
import os
import sys
from collections.abc import Generator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any

from loguru import logger

if TYPE_CHECKING:
    from loguru import Record

# Context variables for request tracking
_trace_id: ContextVar[str | None] = ContextVar("trace_id", default=None)
_session_id: ContextVar[str | None] = ContextVar("session_id", default=None)
_path_id: ContextVar[str | None] = ContextVar("path_id", default=None)
_strategy_id: ContextVar[str | None] = ContextVar("strategy_id", default=None)


class LogFormat(str, Enum):
    """Supported log output formats."""

    JSON = "json"
    TEXT = "text"


class LogLevel(str, Enum):
    """Supported log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


# Sensitive keys to redact from logs. Plain "token" would match token usage counts.
SENSITIVE_KEYS = frozenset(
    {
        "api_key",
        "apikey",
        "api-key",
        "password",
        "secret",
        "access_token",
        "bearer",
        "authorization",
        "credential",
        "private_key",
        "privatekey",
        "openai_api_key",
    }
)


def redact_sensitive(data: dict[str, Any], depth: int = 0) -> dict[str, Any]:
    """Recursively redact sensitive values from a dictionary.

    Args:
        data: Dictionary to redact.
        depth: Current recursion depth (prevents infinite recursion).

    Returns:
        Dictionary with sensitive values replaced with "[REDACTED]".

    """
    if depth > 10:
        return data

    normalized_keys = {k.replace("_", "").replace("-", "") for k in SENSITIVE_KEYS}
    result: dict[str, Any] = {}
    for key, value in data.items():
        key_lower = key.lower().replace("_", "").replace("-", "")
        if any(sensitive in key_lower for sensitive in normalized_keys):
            result[key] = "[REDACTED]"
        elif isinstance(value, dict):
            result[key] = redact_sensitive(value, depth + 1)
        elif isinstance(value, list):
            result[key] = [
                redact_sensitive(item, depth + 1) if isinstance(item, dict) else item
                for item in value
            ]
        else:
            result[key] = value
    return result


def current_context() -> dict[str, str]:
    """Return the logging context ids that are set for the current task."""
    context: dict[str, str] = {}
    if trace_id := _trace_id.get():
        context["trace_id"] = trace_id
    if session_id := _session_id.get():
        context["session_id"] = session_id
    if path_id := _path_id.get():
        context["path_id"] = path_id
    if strategy_id := _strategy_id.get():
        context["strategy_id"] = strategy_id
    return context


def json_serializer(record: Record) -> str:
    """Serialize log record to JSON format.

    Args:
        record: Loguru record dictionary.

    Returns:
        JSON string representation of the log entry.

    """
    log_entry: dict[str, Any] = {
        "timestamp": datetime.now(UTC).isoformat(),
        "level": record["level"].name,
        "message": record["message"],
        "module": record["name"],
        "function": record["function"],
        "line": record["line"],
    }
    log_entry.update(current_context())

    if record.get("extra"):
        log_entry["extra"] = redact_sensitive(dict(record["extra"]))

    if record["exception"]:
        exc_info = record["exception"]
        log_entry["exception"] = {
            "type": exc_info.type.__name__ if exc_info.type else None,
            "value": str(exc_info.value) if exc_info.value else None,
            "traceback": exc_info.traceback is not None,
        }

    return json.dumps(log_entry, default=str, ensure_ascii=False)


def text_format(record: Record) -> str:
    """Format log record as human-readable text.

    Args:
        record: Loguru record dictionary.

    Returns:
        Format string for console output.

    """
    context_parts = []
    if trace_id := _trace_id.get():
        context_parts.append(f"trace={trace_id[:8]}")
    if session_id := _session_id.get():
        context_parts.append(f"sess={session_id[:11]}")
    if strategy_id := _strategy_id.get():
        context_parts.append(f"strategy={strategy_id}")

    # Escape braces: the returned string is used as a loguru format template
    context = f"[{' '.join(context_parts)}] " if context_parts else ""
    context = context.replace("{", "{{").replace("}", "}}")

    return (
        "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
        "<level>{level: <8}</level> | "
        "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
        f"{context}"
        "<level>{message}</level>\n{exception}"
    )


def _json_sink(message: Any) -> None:
    sys.stderr.write(json_serializer(message.record) + "\n")


def configure_logging(
    level: LogLevel | str | None = None,
    log_format: LogFormat | str | None = None,
    log_file: str | Path | None = None,
) -> None:
    """Configure loguru sinks for the process.

    Reads configuration from environment variables if not specified:
    - LOG_LEVEL: Minimum log level (DEBUG, INFO, WARNING, ERROR)
    - LOG_FORMAT: Output format (json, text)
    - LOG_FILE: Optional file path for log output

    Args:
        level: Minimum log level.
        log_format: Output format (json or text).
        log_file: Optional file path for log output.

    """
    resolved_level = LogLevel(str(level or os.getenv("LOG_LEVEL", "INFO")).upper())
    resolved_format = LogFormat(str(log_format or os.getenv("LOG_FORMAT", "text")).lower())
    resolved_file = log_file or os.getenv("LOG_FILE")

    # MCP stdio transport owns stdout, so every sink writes to stderr or a file
    logger.remove()

    if resolved_format == LogFormat.JSON:
        logger.add(_json_sink, level=resolved_level.value)
    else:
        logger.add(sys.stderr, format=text_format, level=resolved_level.value, colorize=True)

    if resolved_file:
        log_path = Path(resolved_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_path,
            format="{message}",
            level=resolved_level.value,
            serialize=True,
            rotation="100 MB",
            retention="7 days",
            compression="gz",
        )


@contextmanager
def log_context(
    trace_id: str | None = None,
    session_id: str | None = None,
    path_id: str | None = None,
    strategy_id: str | None = None,
) -> Generator[None, None, None]:
    """Scope logging context ids to a block.

    Example:
        with log_context(session_id="pr_abc", strategy_id="analytical"):
            logger.info("Calling executor")  # carries session and strategy

    """
    tokens = []
    if trace_id:
        tokens.append(_trace_id.set(trace_id))
    if session_id:
        tokens.append(_session_id.set(session_id))
    if path_id:
        tokens.append(_path_id.set(path_id))
    if strategy_id:
        tokens.append(_strategy_id.set(strategy_id))
    try:
        yield
    finally:
        for token in reversed(tokens):
            token.var.reset(token)
