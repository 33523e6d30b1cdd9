"""Backoff for transient backend failures.

The LLM service wraps each provider call in ``RetryHandler.execute`` so
a rate limit or a 5xx is retried a few times before the provider is
given up on and the chain moves to the fallback.
"""

import asyncio
import random
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar

import structlog

from booking_intake.models.llm import RetryConfig

logger = structlog.get_logger()

T = TypeVar("T")


def backoff_delay(config: RetryConfig, attempt: int, hint: Optional[float] = None) -> float:
    """Seconds to sleep before retry number ``attempt + 1``.

    A positive server hint (retry-after) replaces the exponential base.
    The result is jittered and capped at ``max_delay_seconds``.
    """
    base = hint if hint and hint > 0 else config.base_delay_seconds * 2**attempt
    spread = base * config.jitter_factor
    return min(max(base + random.uniform(-spread, spread), 0.0), config.max_delay_seconds)


class RetryHandler:
    """Runs an async call until it succeeds or the attempts run out."""

    def __init__(self, config: RetryConfig) -> None:
        self.config = config

    async def execute(
        self,
        func: Callable[[], Awaitable[T]],
        retryable_exceptions: Tuple[Type[Exception], ...],
        label: str = "backend_call",
    ) -> T:
        """Await ``func()``; retry only on ``retryable_exceptions``.

        Raises:
            Exception: The error of the last attempt, or any
                non-retryable error immediately
        """
        for attempt in range(self.config.max_attempts):
            try:
                return await func()
            except retryable_exceptions as e:
                if attempt + 1 >= self.config.max_attempts:
                    raise
                delay = backoff_delay(self.config, attempt, getattr(e, "retry_after", None))
                logger.warning(
                    "backend_call_retrying",
                    label=label,
                    attempt=attempt + 1,
                    max_attempts=self.config.max_attempts,
                    error_type=type(e).__name__,
                    delay_seconds=round(delay, 3),
                )
                await asyncio.sleep(delay)
        raise RuntimeError("max_attempts must be at least 1")
