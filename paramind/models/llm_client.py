"""LLM client wrapper with retry logic and timeout protection."""

from __future__ import annotations

import os
import re
from typing import Any

from loguru import logger
from openai import (
    AsyncOpenAI,
    AuthenticationError,
    BadRequestError,
    NotFoundError,
    PermissionDeniedError,
)

from paramind.utils.errors import LLMException
from paramind.utils.retry import retry_with_backoff

# Patterns that identify reasoning models needing higher token limits
REASONING_MODEL_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"minimax", re.IGNORECASE),
    re.compile(r"deepseek", re.IGNORECASE),
    re.compile(r"qwen", re.IGNORECASE),
    re.compile(r"\bo1\b", re.IGNORECASE),
    re.compile(r"reasoning", re.IGNORECASE),
    re.compile(r"think", re.IGNORECASE),
]

# Request errors that will not succeed on a second try
NON_RETRYABLE_ERRORS: tuple[type[Exception], ...] = (
    AuthenticationError,
    BadRequestError,
    NotFoundError,
    PermissionDeniedError,
)

_THINK_RE = re.compile(r"<think>\s*(.*?)\s*</think>\s*(.*)", re.DOTALL | re.IGNORECASE)


class LLMClient:
    """Async wrapper around an OpenAI-compatible chat endpoint.

    This client provides:
    - Automatic retry with exponential backoff
    - Timeout protection on all calls
    - Token usage reporting alongside the text
    - Auto-detection of reasoning models with token multiplier

    Example:
        client = LLMClient(model="gpt-4o-mini")
        text, tokens = await client.generate_async("What is 2+2?")

    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        model: str = "gpt-4o-mini",
        timeout: int = 60,
        max_retries: int = 3,
        max_tokens: int = 2000,
        temperature: float = 0.7,
    ) -> None:
        """Initialize LLM client.

        Args:
            api_key: OpenAI API key. If None, reads from OPENAI_API_KEY env var.
            base_url: Optional custom API base URL for OpenAI-compatible endpoints.
            model: Model name to use for completions.
            timeout: Request timeout in seconds.
            max_retries: Maximum attempts for failed requests.
            max_tokens: Default response token limit.
            temperature: Default sampling temperature.

        Raises:
            LLMException: If API key is not provided and not in environment.

        """
        api_key = api_key or os.getenv("OPENAI_API_KEY")
        if not api_key:
            raise LLMException("OPENAI_API_KEY environment variable not set")

        self.model = model
        self.timeout = timeout
        self.max_retries = max_retries
        self.max_tokens = max_tokens
        self.temperature = temperature

        self._is_reasoning_model = self._detect_reasoning_model(model)
        # Reasoning models need ~3x tokens for their chain of thought
        self._token_multiplier = 3.0 if self._is_reasoning_model else 1.0

        self.async_client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url if base_url else None,
            timeout=timeout,
        )

        # Retry budget is per instance, so wrap at construction time
        self._complete = retry_with_backoff(
            max_attempts=max(1, max_retries),
            base_delay=1.0,
            give_up_on=NON_RETRYABLE_ERRORS,
        )(self._complete_once)

        logger.info(
            f"LLM client initialized with model: {model} "
            f"(token multiplier: {self._token_multiplier}x, retries: {max_retries})"
        )

    @staticmethod
    def _detect_reasoning_model(model_name: str) -> bool:
        """Detect if model is a reasoning model based on name patterns."""
        return any(pattern.search(model_name) for pattern in REASONING_MODEL_PATTERNS)

    def _scale_tokens(self, max_tokens: int) -> int:
        """Scale max_tokens by the reasoning multiplier."""
        return int(max_tokens * self._token_multiplier)

    async def _complete_once(self, params: dict[str, Any]) -> tuple[str, int]:
        response = await self.async_client.chat.completions.create(**params)

        content: str | None = None
        if response.choices:
            content = response.choices[0].message.content
        else:
            logger.warning(f"No choices in response from {self.model}")

        tokens = 0
        if getattr(response, "usage", None) is not None:
            tokens = response.usage.total_tokens or 0

        return self._strip_think_tags(content or ""), tokens

    async def generate_async(
        self,
        prompt: str,
        max_tokens: int | None = None,
        temperature: float | None = None,
        system_prompt: str | None = None,
    ) -> tuple[str, int]:
        """Generate text using the LLM.

        Args:
            prompt: User prompt.
            max_tokens: Maximum tokens in response (client default if None).
            temperature: Sampling temperature (client default if None).
            system_prompt: Optional system message to set context.

        Returns:
            Tuple of (generated text, total tokens reported by the API).

        Raises:
            LLMException: If generation fails after retries.

        """
        messages: list[dict[str, str]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        params: dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "max_tokens": self._scale_tokens(max_tokens or self.max_tokens),
            "temperature": self.temperature if temperature is None else temperature,
        }

        logger.debug(f"Sending async request to {self.model} with {len(prompt)} char prompt")
        try:
            return await self._complete(params)
        except Exception as e:
            logger.error(f"Async LLM generation failed: {e}")
            raise LLMException(f"Async generation failed: {e!s}") from e

    def estimate_tokens(self, text: str) -> int:
        """Rough token count estimation (1 token ≈ 4 characters)."""
        return len(text) // 4

    @staticmethod
    def _strip_think_tags(content: str) -> str:
        """Drop a leading <think>...</think> block some reasoning models emit.

        If nothing follows the block, the thinking content itself is returned.
        """
        match = _THINK_RE.search(content)
        if not match:
            return content
        answer = match.group(2).strip()
        return answer or match.group(1).strip()
