"""Retry policy for model calls.

tenacity handles both plain and coroutine callables, so one decorator
covers the sync helpers and the async client.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, TypeVar

from loguru import logger
from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

F = TypeVar("F", bound=Callable[..., Any])


def _callable_name(fn: Any) -> str:
    return getattr(fn, "__qualname__", None) or getattr(fn, "__name__", None) or repr(fn)


def _log_retry(state: RetryCallState) -> None:
    error = state.outcome.exception() if state.outcome else None
    delay = state.next_action.sleep if state.next_action else 0.0
    logger.warning(
        f"{_callable_name(state.fn)} failed (attempt {state.attempt_number}): {error}; "
        f"retrying in {delay:.1f}s"
    )


def retry_with_backoff(
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    give_up_on: tuple[type[BaseException], ...] = (),
) -> Callable[[F], F]:
    """Retry a callable with exponential backoff, re-raising the last error.

    Args:
        max_attempts: Total attempts including the first call.
        base_delay: Initial delay between attempts in seconds.
        max_delay: Upper bound for any single delay.
        retry_on: Exception types worth retrying.
        give_up_on: Exception types that fail immediately even when they
            are subclasses of something in retry_on (bad credentials,
            rejected requests).

    Example:
        @retry_with_backoff(max_attempts=3, give_up_on=(AuthenticationError,))
        async def complete(prompt: str) -> str:
            return await api.generate(prompt)

    """

    def should_retry(error: BaseException) -> bool:
        return isinstance(error, retry_on) and not isinstance(error, give_up_on)

    def decorator(func: F) -> F:
        policy = retry(
            stop=stop_after_attempt(max_attempts),
            wait=wait_exponential(multiplier=base_delay, min=base_delay, max=max_delay),
            retry=retry_if_exception(should_retry),
            before_sleep=_log_retry,
            reraise=True,
        )
        return policy(func)  # type: ignore[no-any-return]

    return decorator
