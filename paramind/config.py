"""Paramind configuration.

Centralized configuration management with environment variable support
and Docker secrets integration.

Usage:
    from paramind.config import get_config
    print(get_config().llm.model)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from loguru import logger


def _get_env(key: str, default: str = "") -> str:
    """Get environment variable, treating empty string as unset.

    Also checks Docker secrets path for sensitive values.
    """
    secrets_path = f"/run/secrets/{key.lower()}"
    if os.path.isfile(secrets_path):
        try:
            with Path(secrets_path).open() as f:
                value = f.read().strip()
                if value:
                    return value
        except OSError as e:
            logger.debug(f"Could not read secret {secrets_path}: {e}")

    value = os.getenv(key, default)
    return value if value else default


def _get_env_int(key: str, default: int) -> int:
    """Get environment variable as integer."""
    value = os.getenv(key)
    if value:
        try:
            return int(value)
        except ValueError:
            logger.warning(f"Invalid integer for {key}: {value}, using default {default}")
    return default


def _get_env_float(key: str, default: float) -> float:
    """Get environment variable as float."""
    value = os.getenv(key)
    if value:
        try:
            return float(value)
        except ValueError:
            logger.warning(f"Invalid number for {key}: {value}, using default {default}")
    return default


@dataclass(frozen=True)
class ServerConfig:
    """Server runtime configuration."""

    name: str = field(default_factory=lambda: _get_env("SERVER_NAME", "Paramind-MCP"))
    transport: str = field(default_factory=lambda: _get_env("SERVER_TRANSPORT", "stdio"))
    host: str = field(default_factory=lambda: _get_env("SERVER_HOST", "127.0.0.1"))
    port: int = field(default_factory=lambda: _get_env_int("SERVER_PORT", 8000))


@dataclass(frozen=True)
class SessionConfig:
    """Reasoning session retention."""

    retention_minutes: int = field(
        default_factory=lambda: _get_env_int("SESSION_RETENTION_MINUTES", 60)
    )
    cleanup_interval_seconds: int = field(
        default_factory=lambda: _get_env_int("CLEANUP_INTERVAL_SECONDS", 60)
    )


@dataclass(frozen=True)
class LLMConfig:
    """Model endpoint configuration."""

    model: str = field(default_factory=lambda: _get_env("LLM_MODEL", "gpt-4o-mini"))
    base_url: str = field(default_factory=lambda: _get_env("OPENAI_BASE_URL", ""))
    timeout_seconds: int = field(default_factory=lambda: _get_env_int("LLM_TIMEOUT_SECONDS", 60))
    max_retries: int = field(default_factory=lambda: _get_env_int("LLM_MAX_RETRIES", 3))
    max_tokens: int = field(default_factory=lambda: _get_env_int("LLM_MAX_TOKENS", 2000))
    temperature: float = field(default_factory=lambda: _get_env_float("LLM_TEMPERATURE", 0.7))


@dataclass(frozen=True)
class StoreConfig:
    """Pattern and outcome history storage."""

    db_path: str = field(
        default_factory=lambda: _get_env("PARAMIND_DB_PATH", "~/.paramind/patterns.db")
    )
    history_limit: int = field(default_factory=lambda: _get_env_int("HISTORY_LIMIT", 100))

    def get_validated_db_path(self) -> str:
        """Validate and return the pattern DB path (CWE-22 mitigation)."""
        from paramind.models.pattern_store import validate_db_path

        if self.db_path == ":memory:":
            return self.db_path

        try:
            return str(validate_db_path(self.db_path))
        except ValueError as e:
            logger.error(f"Invalid PARAMIND_DB_PATH: {e}")
            logger.warning("Falling back to in-memory pattern store")
            return ":memory:"


@dataclass(frozen=True)
class StrategyConfig:
    """Strategy catalog source."""

    catalog_path: str = field(default_factory=lambda: _get_env("STRATEGY_CATALOG_PATH", ""))


@dataclass(frozen=True)
class InputLimitsConfig:
    """Input size limits (CWE-400 mitigation)."""

    max_problem_size: int = field(default_factory=lambda: _get_env_int("MAX_PROBLEM_SIZE", 50000))
    max_suggestion_size: int = field(
        default_factory=lambda: _get_env_int("MAX_SUGGESTION_SIZE", 20000)
    )


@dataclass(frozen=True)
class Config:
    """Root configuration object."""

    server: ServerConfig = field(default_factory=ServerConfig)
    session: SessionConfig = field(default_factory=SessionConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    strategies: StrategyConfig = field(default_factory=StrategyConfig)
    input_limits: InputLimitsConfig = field(default_factory=InputLimitsConfig)

    def to_dict(self) -> dict[str, Any]:
        """Convert config to dictionary (for logging/debugging)."""
        return {
            "server": {
                "name": self.server.name,
                "transport": self.server.transport,
                "host": self.server.host,
                "port": self.server.port,
            },
            "session": {
                "retention_minutes": self.session.retention_minutes,
                "cleanup_interval_seconds": self.session.cleanup_interval_seconds,
            },
            "llm": {
                "model": self.llm.model,
                "base_url": self.llm.base_url or None,
                "timeout_seconds": self.llm.timeout_seconds,
                "max_retries": self.llm.max_retries,
                "max_tokens": self.llm.max_tokens,
                "temperature": self.llm.temperature,
            },
            "store": {
                "db_path": self.store.db_path,
                "history_limit": self.store.history_limit,
            },
            "strategies": {
                "catalog_path": self.strategies.catalog_path or None,
            },
            "input_limits": {
                "max_problem_size": self.input_limits.max_problem_size,
                "max_suggestion_size": self.input_limits.max_suggestion_size,
            },
        }


# Global config instance (lazy-loaded)
_config: Config | None = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config


def reload_config() -> Config:
    """Reload configuration (for testing)."""
    global _config
    _config = Config()
    return _config
