"""Google (Gemini) provider."""

import time
from datetime import datetime, timezone
from typing import Any, Optional

import structlog

from booking_intake.services.llm.exceptions import LLMProviderError
from booking_intake.services.llm.providers.base import LLMProvider, LLMResponse

logger = structlog.get_logger()


class GoogleProvider(LLMProvider):
    """Gemini via google-genai, with JSON response mode."""

    RATE_LIMIT_PATTERNS = LLMProvider.RATE_LIMIT_PATTERNS + ("resource_exhausted",)
    RETRYABLE_PATTERNS = LLMProvider.RETRYABLE_PATTERNS + ("unavailable",)
    AUTH_PATTERNS = LLMProvider.AUTH_PATTERNS + ("api_key", "permission_denied")

    def __init__(self, api_key: str, model: str = "gemini-2.0-flash"):
        """
        Raises:
            LLMProviderError: If google-genai package is not installed
        """
        self._model = model
        self._client: Any = None

        try:
            from google import genai

            self._client = genai.Client(api_key=api_key)
        except ImportError:
            raise LLMProviderError(
                "google-genai package not installed. Run: pip install google-genai",
                provider="google",
            )

    @property
    def name(self) -> str:
        return "google"

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

        try:
            from google.genai import types

            response = await self._client.aio.models.generate_content(
                model=self._model,
                contents=prompt,
                config=types.GenerateContentConfig(
                    system_instruction=system,
                    temperature=temperature,
                    max_output_tokens=max_tokens,
                    response_mime_type="application/json",
                ),
            )
        except Exception as e:
            raise self._classify_error(e)

        latency_ms = (time.time() - start_time) * 1000
        content = getattr(response, "text", None) or ""

        usage = getattr(response, "usage_metadata", None)
        input_tokens = getattr(usage, "prompt_token_count", 0) or 0
        output_tokens = getattr(usage, "candidates_token_count", 0) or 0

        logger.debug(
            "google_generate_success",
            model=self._model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            latency_ms=latency_ms,
        )

        return LLMResponse(
            content=content,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            model=self._model,
            provider=self.name,
            latency_ms=latency_ms,
            finish_reason=self._get_finish_reason(response),
            timestamp=datetime.now(timezone.utc),
        )

    def _get_finish_reason(self, response: Any) -> Optional[str]:
        candidates = getattr(response, "candidates", None)
        if candidates:
            reason = getattr(candidates[0], "finish_reason", None)
            if reason is not None:
                return str(reason)
        return None
