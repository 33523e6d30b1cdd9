"""Abstract LLM provider interface.

- LLMResponse: standardized response dataclass
- LLMProvider: abstract base class for all providers
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Sequence

from booking_intake.services.llm.exceptions import (
    AuthenticationError,
    ContentFilterError,
    ContextLengthExceededError,
    LLMProviderError,
    ModelNotFoundError,
    ProviderUnavailableError,
    RateLimitError,
)


@dataclass
class LLMResponse:
    """Standardized response from any LLM provider.

    Attributes:
        content: The generated text content
        input_tokens: Number of input tokens consumed
        output_tokens: Number of output tokens generated
        model: The model identifier used
        provider: The provider name (anthropic, google)
        latency_ms: Request latency in milliseconds
        finish_reason: Why generation stopped (stop, length, etc.)
        timestamp: When the response was received
    """

    content: str
    input_tokens: int
    output_tokens: int
    model: str
    provider: str
    latency_ms: float
    finish_reason: Optional[str] = None
    timestamp: Optional[datetime] = None

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


class LLMProvider(ABC):
    """Abstract base class for LLM providers.

    Implementations:
        - AnthropicProvider: Claude models
        - GoogleProvider: Gemini models
    """

    RATE_LIMIT_PATTERNS: Sequence[str] = (
        "429",
        "rate limit",
        "rate_limit",
        "ratelimit",
        "too many requests",
        "quota exceeded",
    )
    RETRYABLE_PATTERNS: Sequence[str] = (
        "timeout",
        "timed out",
        "connection",
        "temporary",
        "internal server",
        "502",
        "503",
        "504",
    )
    AUTH_PATTERNS: Sequence[str] = ("authentication", "401", "invalid api key")

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name (e.g., 'anthropic', 'google')."""
        pass  # pragma: no cover - abstract method, always overridden

    @property
    @abstractmethod
    def model(self) -> str:
        pass  # pragma: no cover - abstract method, always overridden

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        system: Optional[str] = None,
        max_tokens: int = 4096,
        temperature: float = 0.0,
    ) -> LLMResponse:
        """Generate a JSON answer for ``prompt``.

        Raises:
            LLMProviderError: Base class for all provider errors
            RateLimitError: When rate limit is exceeded
            AuthenticationError: When API key is invalid
            ProviderUnavailableError: When provider is temporarily down
        """
        pass  # pragma: no cover - abstract method, always overridden

    def _classify_error(self, error: Exception) -> LLMProviderError:
        """Map an SDK exception onto the provider error hierarchy."""
        if isinstance(error, LLMProviderError):
            return error
        error_str = str(error).lower()

        if any(pattern in error_str for pattern in self.AUTH_PATTERNS):
            return AuthenticationError(str(error), provider=self.name)

        if "content" in error_str and ("filter" in error_str or "policy" in error_str):
            return ContentFilterError(str(error), provider=self.name)

        if "context" in error_str and "length" in error_str:
            return ContextLengthExceededError(str(error), provider=self.name)

        if "404" in error_str and "model" in error_str:
            return ModelNotFoundError(str(error), model=self.model, provider=self.name)

        if any(pattern in error_str for pattern in self.RATE_LIMIT_PATTERNS):
            return RateLimitError(
                str(error),
                retry_after=self._extract_retry_after(error),
                provider=self.name,
            )

        if any(pattern in error_str for pattern in self.RETRYABLE_PATTERNS):
            return ProviderUnavailableError(str(error), provider=self.name)

        return LLMProviderError(str(error), provider=self.name)

    def _extract_retry_after(self, error: Exception) -> Optional[float]:
        retry_after = getattr(error, "retry_after", None)
        if retry_after is not None:
            return float(retry_after)
        response = getattr(error, "response", None)
        headers = getattr(response, "headers", None)
        if headers:
            value = headers.get("Retry-After")
            if value:
                try:
                    return float(value)
                except ValueError:
                    return None
        return None
