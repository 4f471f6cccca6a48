"""AI execution boundary used by reasoning paths.

A path hands its prompt and its own cancellation signal to an executor
and gets back text plus token usage. Executors report failures in the
result instead of raising so a broken call only fails its own path.
"""

from __future__ import annotations

import asyncio
import contextlib
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from loguru import logger

from paramind.tools.reasoning_types import CANCELLED_ERROR

if TYPE_CHECKING:
    from paramind.models.llm_client import LLMClient


@dataclass
class ExecutionResult:
    """What a single model call produced."""

    response_text: str = ""
    tokens_used: int = 0
    error: str | None = None

    @property
    def ok(self) -> bool:
        """True when the call succeeded and returned non-blank text."""
        return self.error is None and bool(self.response_text.strip())


@runtime_checkable
class AIExecutor(Protocol):
    """Anything that can answer a prompt while honouring a cancel signal."""

    async def execute(self, prompt: str, cancel: asyncio.Event) -> ExecutionResult: ...


class LLMExecutor:
    """Executor backed by LLMClient.

    The model call races the cancel signal; whichever finishes first wins
    and the loser is cancelled.
    """

    def __init__(self, client: LLMClient, *, system_prompt: str | None = None) -> None:
        self.client = client
        self.system_prompt = system_prompt

    async def execute(self, prompt: str, cancel: asyncio.Event) -> ExecutionResult:
        """Run one completion unless cancel is set first."""
        if cancel.is_set():
            return ExecutionResult(error=CANCELLED_ERROR)

        call = asyncio.ensure_future(
            self.client.generate_async(prompt, system_prompt=self.system_prompt)
        )
        stop = asyncio.ensure_future(cancel.wait())
        try:
            done, _ = await asyncio.wait({call, stop}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (call, stop):
                if not task.done():
                    task.cancel()
                    with contextlib.suppress(asyncio.CancelledError):
                        await task

        if call not in done:
            logger.debug("Model call abandoned after cancellation")
            return ExecutionResult(error=CANCELLED_ERROR)

        exc = call.exception()
        if exc is not None:
            return ExecutionResult(error=str(exc) or type(exc).__name__)

        text, tokens = call.result()
        return ExecutionResult(response_text=text, tokens_used=tokens)
