"""Anthropic (Claude) provider."""

import time
from datetime import datetime, timezone
from typing import Any, Optional

import structlog

from booking_intake.services.llm.exceptions import LLMProviderError
from booking_intake.services.llm.providers.base import LLMProvider, LLMResponse

logger = structlog.get_logger()


class AnthropicProvider(LLMProvider):
    """Claude via the async Messages API."""

    RETRYABLE_PATTERNS = LLMProvider.RETRYABLE_PATTERNS + ("overloaded", "529")

    def __init__(self, api_key: str, model: str = "claude-3-5-sonnet-20241022"):
        """
        Raises:
            LLMProviderError: If the anthropic package is not installed
        """
        self._model = model
        self._client: Any = None

        try:
            from anthropic import AsyncAnthropic

            self._client = AsyncAnthropic(api_key=api_key)
        except ImportError:
            raise LLMProviderError(
                "anthropic package not installed. Run: pip install anthropic",
                provider="anthropic",
            )

    @property
    def name(self) -> str:
        return "anthropic"

    @property
    def model(self) -> str:
        return self._model

    async def generate(
        self,
        prompt: str,
        system: Optional[str] = None,
        max_tokens: int = 4096,
        temperature: float = 0.0,
    ) -> LLMResponse:
        start_time = time.time()

        request: dict = {
            "model": self._model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system:
            request["system"] = system

        try:
            response = await self._client.messages.create(**request)
        except Exception as e:
            raise self._classify_error(e)

        latency_ms = (time.time() - start_time) * 1000
        content = "".join(
            getattr(block, "text", "") for block in (response.content or [])
        )

        logger.debug(
            "anthropic_generate_success",
            model=self._model,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            latency_ms=latency_ms,
        )

        return LLMResponse(
            content=content,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            model=self._model,
            provider=self.name,
            latency_ms=latency_ms,
            finish_reason=response.stop_reason,
            timestamp=datetime.now(timezone.utc),
        )
