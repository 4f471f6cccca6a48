"""Paramind MCP Server.

FastMCP 2.0 implementation exposing parallel reasoning and confidence
scoring as tools.

Tools:
1. start_reasoning - Fan a problem out to several reasoning strategies
2. get_reasoning_session - Session progress and final answer
3. cancel_reasoning - Stop a running session
4. list_strategies - Available reasoning strategies
5. analyze_confidence - Score a proposed action before applying it
6. record_outcome - Feed back how an applied suggestion turned out
7. status - Server status

Run with: paramind
Or: python -m paramind.server
"""

# Note: We intentionally do NOT use `from __future__ import annotations` here
# because it causes issues with Pydantic/FastMCP type resolution at decorator time.

import asyncio
import sys
from datetime import timedelta
from typing import Any, Literal

import orjson
from dotenv import load_dotenv
from fastmcp import Context, FastMCP
from loguru import logger

from paramind.config import get_config
from paramind.models.executor import LLMExecutor
from paramind.models.llm_client import LLMClient
from paramind.models.pattern_store import SQLitePatternStore
from paramind.tools.confidence_engine import ConfidenceScoringEngine
from paramind.tools.orchestrator import ReasoningOrchestrator
from paramind.tools.reasoning_types import SessionState
from paramind.tools.strategies import load_catalog
from paramind.utils.errors import (
    ParamindException,
    PatternStoreError,
    SessionNotFoundError,
    ToolExecutionError,
)
from paramind.utils.logging import configure_logging

# Load environment variables from .env file (for local development)
load_dotenv()

VERSION = "0.1.0"

TriggeredBy = Literal["manual", "auto", "escalation"]
OutcomeStr = Literal["success", "failure", "partial"]
ExperienceStr = Literal["beginner", "intermediate", "advanced"]


def _json(data: dict[str, Any] | None, *, indent: bool = True) -> str:
    """Serialize data to JSON string with proper typing.

    Type-safe wrapper around orjson.dumps that returns str.
    """
    if data is None:
        data = {}
    opts = orjson.OPT_INDENT_2 if indent else 0
    result: bytes = orjson.dumps(data, option=opts, default=str)
    return result.decode("utf-8")


def _too_large(field_name: str, value: str, max_size: int) -> dict[str, Any] | None:
    """Size check for free-text inputs (CWE-400 prevention)."""
    if len(value) <= max_size:
        return None
    return {
        "error": "input_too_large",
        "field": field_name,
        "max_size": max_size,
        "actual_size": len(value),
        "message": f"{field_name} exceeds maximum size ({max_size:,} chars)",
    }


# =============================================================================
# Managers
# =============================================================================

_orchestrator: ReasoningOrchestrator | None = None
_confidence_engine: ConfidenceScoringEngine | None = None
_pattern_store: SQLitePatternStore | None = None


def get_pattern_store() -> SQLitePatternStore:
    """Get or create the pattern store from configuration."""
    global _pattern_store
    if _pattern_store is None:
        _pattern_store = SQLitePatternStore(get_config().store.get_validated_db_path())
    return _pattern_store


def get_orchestrator() -> ReasoningOrchestrator:
    """Get or create the reasoning orchestrator.

    Raises:
        LLMException: If no model API key is configured.

    """
    global _orchestrator
    if _orchestrator is None:
        config = get_config()
        client = LLMClient(
            base_url=config.llm.base_url or None,
            model=config.llm.model,
            timeout=config.llm.timeout_seconds,
            max_retries=config.llm.max_retries,
            max_tokens=config.llm.max_tokens,
            temperature=config.llm.temperature,
        )
        _orchestrator = ReasoningOrchestrator(
            LLMExecutor(client),
            catalog=load_catalog(config.strategies.catalog_path or None),
        )
    return _orchestrator


def get_confidence_engine() -> ConfidenceScoringEngine:
    """Get or create the confidence scoring engine."""
    global _confidence_engine
    if _confidence_engine is None:
        _confidence_engine = ConfidenceScoringEngine(
            get_pattern_store(), history_limit=get_config().store.history_limit
        )
    return _confidence_engine


def set_managers(
    orchestrator: ReasoningOrchestrator | None = None,
    confidence_engine: ConfidenceScoringEngine | None = None,
) -> None:
    """Install pre-built managers (tests, embedding)."""
    global _orchestrator, _confidence_engine
    if orchestrator is not None:
        _orchestrator = orchestrator
    if confidence_engine is not None:
        _confidence_engine = confidence_engine


def reset_managers() -> None:
    """Drop all managers so the next call rebuilds them (for testing)."""
    global _orchestrator, _confidence_engine, _pattern_store
    _orchestrator = None
    _confidence_engine = None
    if _pattern_store is not None:
        _pattern_store.close()
        _pattern_store = None


# =============================================================================
# Automatic Session Cleanup
# =============================================================================

_cleanup_task: asyncio.Task[None] | None = None


async def _cleanup_ended_sessions() -> None:
    """Background task removing sessions past their retention window."""
    session_config = get_config().session
    max_age = timedelta(minutes=session_config.retention_minutes)
    interval = session_config.cleanup_interval_seconds
    logger.info(
        f"Session cleanup task started (retention={session_config.retention_minutes}m, "
        f"interval={interval}s)"
    )

    while True:
        try:
            await asyncio.sleep(interval)

            if _orchestrator is None:
                continue
            removed = await _orchestrator.cleanup(max_age)
            if removed:
                logger.info(f"Cleaned up {len(removed)} ended sessions: {removed}")

        except asyncio.CancelledError:
            logger.info("Session cleanup task cancelled")
            break
        except Exception as e:
            logger.error(f"Error in cleanup task: {e}")
            # Continue running despite errors


def _start_cleanup_task() -> None:
    """Start the background cleanup task if not already running."""
    global _cleanup_task
    try:
        loop = asyncio.get_running_loop()
        if _cleanup_task is None or _cleanup_task.done():
            _cleanup_task = loop.create_task(_cleanup_ended_sessions())
            logger.debug("Cleanup task scheduled")
    except RuntimeError:
        logger.debug("No event loop available, cleanup task will start with server")


def _stop_cleanup_task() -> None:
    """Stop the background cleanup task."""
    global _cleanup_task
    if _cleanup_task is not None and not _cleanup_task.done():
        _cleanup_task.cancel()
        _cleanup_task = None
        logger.debug("Cleanup task stopped")


# =============================================================================
# Initialize FastMCP Server
# =============================================================================

mcp = FastMCP(
    name=get_config().server.name,
    instructions="""Paramind MCP Server - parallel reasoning and confidence scoring.

=== PARALLEL REASONING ===

1. list_strategies() - See available reasoning strategies and their voting weights
2. start_reasoning(problem, strategy_ids?) - Run several strategies concurrently
   Set wait=true to block until voting has finished.
3. get_reasoning_session(session_id) - Poll progress, paths, final_solution
4. cancel_reasoning(session_id) - Stop a running session

The final solution is picked by weighted majority vote:
each completed path votes for its answer with weight x confidence / 100.

=== CONFIDENCE SCORING ===

5. analyze_confidence(suggestion_text, ...) - How safe is it to apply this?
   Returns score (0.05-0.95), level, risk_level, reasoning, recommendations
6. record_outcome(suggestion_text, outcome) - success | failure | partial
   Improves future scores for similar suggestions

7. status() - Server status and session counts
""",
)


# =============================================================================
# TOOL 1-4: PARALLEL REASONING
# =============================================================================


@mcp.tool
async def start_reasoning(
    problem: str,
    strategy_ids: list[str] | None = None,
    triggered_by: TriggeredBy = "manual",
    previous_attempts: int | None = None,
    complexity: float | None = None,
    wait: bool = False,
    timeout_seconds: float | None = None,
    ctx: Context | None = None,
) -> str:
    """Start a parallel reasoning session.

    Args:
        problem: Problem statement sent to every strategy (required)
        strategy_ids: Strategies to run (default: analytical, pattern_matching,
            first_principles, domain_expert)
        triggered_by: manual | auto | escalation
        previous_attempts: How many times this problem was attempted before
        complexity: Caller's complexity estimate for the problem
        wait: Block until the session has finished voting
        timeout_seconds: Maximum time to wait when wait=true

    Returns:
        JSON session with id, state, paths and (when finished) final_solution

    """
    try:
        size_error = _too_large("problem", problem, get_config().input_limits.max_problem_size)
        if size_error:
            return _json(size_error, indent=False)

        orchestrator = get_orchestrator()
        _start_cleanup_task()

        session = await orchestrator.start_session(
            problem,
            strategy_ids,
            metadata={
                "triggered_by": triggered_by,
                "previous_attempts": previous_attempts,
                "complexity": complexity,
            },
        )
        if ctx:
            await ctx.info(
                f"Reasoning with {len(session.paths)} strategies (session {session.id})"
            )

        if wait:
            session = await orchestrator.wait_for_session(session.id, timeout_seconds)

        return _json(session.to_dict())

    except TimeoutError:
        error = ToolExecutionError(
            "start_reasoning",
            "Timed out waiting for session",
            {"timeout_seconds": timeout_seconds},
        )
        return _json(error.to_dict(), indent=False)
    except ParamindException as e:
        error = ToolExecutionError("start_reasoning", str(e), {"type": type(e).__name__})
        logger.warning(f"start_reasoning rejected: {e}")
        return _json(error.to_dict(), indent=False)
    except Exception as e:
        error = ToolExecutionError("start_reasoning", str(e), {"type": type(e).__name__})
        logger.error(f"Unexpected error: {e}")
        return _json(error.to_dict(), indent=False)


@mcp.tool
async def get_reasoning_session(session_id: str) -> str:
    """Get the current state of a reasoning session.

    Args:
        session_id: Session ID returned by start_reasoning

    Returns:
        JSON session including per-path progress and voting result

    """
    try:
        session = await get_orchestrator().get_session(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return _json(session.to_dict())
    except ParamindException as e:
        error = ToolExecutionError("get_reasoning_session", str(e), {"type": type(e).__name__})
        return _json(error.to_dict(), indent=False)
    except Exception as e:
        error = ToolExecutionError("get_reasoning_session", str(e), {"type": type(e).__name__})
        logger.error(f"Unexpected error: {e}")
        return _json(error.to_dict(), indent=False)


@mcp.tool
async def cancel_reasoning(session_id: str) -> str:
    """Cancel a running reasoning session.

    Args:
        session_id: Session ID returned by start_reasoning

    Returns:
        JSON with cancelled=true if the session was running

    """
    try:
        cancelled = await get_orchestrator().cancel_session(session_id)
        return _json({"session_id": session_id, "cancelled": cancelled}, indent=False)
    except Exception as e:
        error = ToolExecutionError("cancel_reasoning", str(e), {"type": type(e).__name__})
        logger.error(f"Unexpected error: {e}")
        return _json(error.to_dict(), indent=False)


@mcp.tool
async def list_strategies() -> str:
    """List the available reasoning strategies.

    Returns:
        JSON with catalog version, default strategies and every strategy's weight

    """
    try:
        return _json(get_orchestrator().catalog.to_dict())
    except Exception as e:
        error = ToolExecutionError("list_strategies", str(e), {"type": type(e).__name__})
        logger.error(f"Unexpected error: {e}")
        return _json(error.to_dict(), indent=False)


# =============================================================================
# TOOL 5-6: CONFIDENCE SCORING
# =============================================================================


@mcp.tool
async def analyze_confidence(
    suggestion_text: str,
    experiment_type: str | None = None,
    current_files: list[str] | None = None,
    recent_commands: list[str] | None = None,
    error_context: str | None = None,
    user_experience_level: ExperienceStr | None = None,
) -> str:
    """Score how safe it is to apply a suggestion.

    Args:
        suggestion_text: The proposed action (required)
        experiment_type: Category of the change, if known
        current_files: Files currently being worked on
        recent_commands: Recently run shell commands
        error_context: Error being addressed, if any
        user_experience_level: beginner | intermediate | advanced

    Returns:
        JSON with score, level, risk_level, reasoning, recommendations

    """
    try:
        size_error = _too_large(
            "suggestion_text", suggestion_text, get_config().input_limits.max_suggestion_size
        )
        if size_error:
            return _json(size_error, indent=False)

        analysis = get_confidence_engine().analyze_text(
            suggestion_text,
            experiment_type=experiment_type,
            current_files=current_files or [],
            recent_commands=recent_commands or [],
            error_context=error_context,
            user_experience_level=user_experience_level,
        )
        return _json(analysis.to_dict())
    except Exception as e:
        error = ToolExecutionError("analyze_confidence", str(e), {"type": type(e).__name__})
        logger.error(f"Unexpected error: {e}")
        return _json(error.to_dict(), indent=False)


@mcp.tool
async def record_outcome(
    suggestion_text: str,
    outcome: OutcomeStr,
    experiment_type: str | None = None,
) -> str:
    """Record how applying a suggestion turned out.

    Args:
        suggestion_text: The suggestion that was applied (required)
        outcome: success | failure | partial
        experiment_type: Category of the change, if known

    Returns:
        JSON with the patterns whose success rate was updated

    """
    try:
        size_error = _too_large(
            "suggestion_text", suggestion_text, get_config().input_limits.max_suggestion_size
        )
        if size_error:
            return _json(size_error, indent=False)

        updated = get_confidence_engine().record_outcome(suggestion_text, outcome, experiment_type)
        return _json({"recorded": True, "outcome": outcome, "updated_patterns": updated})
    except ValueError as e:
        error = ToolExecutionError("record_outcome", str(e))
        return _json(error.to_dict(), indent=False)
    except PatternStoreError as e:
        error = ToolExecutionError(
            "record_outcome", str(e), {"type": type(e).__name__, "recorded": False}
        )
        return _json(error.to_dict(), indent=False)
    except Exception as e:
        error = ToolExecutionError("record_outcome", str(e), {"type": type(e).__name__})
        logger.error(f"Unexpected error: {e}")
        return _json(error.to_dict(), indent=False)


# =============================================================================
# TOOL 7: STATUS
# =============================================================================


@mcp.tool
async def status() -> str:
    """Get server status.

    Returns:
        JSON with server info, session counts by state and configuration

    """
    try:
        config = get_config()
        sessions: dict[str, int] = {state.value: 0 for state in SessionState}
        catalog_version: str | None = None
        if _orchestrator is not None:
            for session in await _orchestrator.list_sessions():
                sessions[session.state.value] += 1
            catalog_version = _orchestrator.catalog.version

        return _json(
            {
                "server": {
                    "name": config.server.name,
                    "transport": config.server.transport,
                    "version": VERSION,
                    "tools": [
                        "start_reasoning",
                        "get_reasoning_session",
                        "cancel_reasoning",
                        "list_strategies",
                        "analyze_confidence",
                        "record_outcome",
                        "status",
                    ],
                },
                "sessions": sessions,
                "strategy_catalog": catalog_version,
                "pattern_store": _pattern_store.get_statistics() if _pattern_store else None,
                "config": config.to_dict(),
            }
        )
    except Exception as e:
        error = ToolExecutionError("status", str(e), {"type": type(e).__name__})
        logger.error(f"Unexpected error: {e}")
        return _json(error.to_dict(), indent=False)


# =============================================================================
# SERVER ENTRY POINT
# =============================================================================


async def _serve() -> None:
    server = get_config().server
    _start_cleanup_task()
    try:
        if server.transport == "stdio":
            await mcp.run_async(transport="stdio")
        elif server.transport == "http":
            await mcp.run_async(transport="streamable-http", host=server.host, port=server.port)
        elif server.transport == "sse":
            await mcp.run_async(transport="sse", host=server.host, port=server.port)
        else:
            logger.warning(f"Unknown transport '{server.transport}', falling back to stdio")
            await mcp.run_async(transport="stdio")
    finally:
        _stop_cleanup_task()
        if _orchestrator is not None:
            await _orchestrator.shutdown()


def main() -> None:
    """Run the Paramind MCP server."""
    configure_logging()
    config = get_config()
    logger.info(f"Starting {config.server.name} (transport: {config.server.transport})")

    if sys.platform == "win32":
        asyncio.run(_serve())
    else:
        import uvloop

        uvloop.run(_serve())


if __name__ == "__main__":
    main()
