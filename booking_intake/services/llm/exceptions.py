"""LLM provider exception hierarchy.

- LLMProviderError: base class for all provider errors
- RateLimitError: rate limit exceeded (retryable with backoff)
- AuthenticationError: invalid API credentials
- ContentFilterError: content blocked by safety filters
- ProviderUnavailableError: provider temporarily unavailable (retryable)
- ModelNotFoundError / ContextLengthExceededError: not retryable
"""

from typing import Optional


class LLMProviderError(Exception):
    """Base exception for all LLM provider errors."""

    def __init__(self, message: str, provider: Optional[str] = None):
        self.provider = provider
        super().__init__(message)


class RateLimitError(LLMProviderError):
    """Provider rate limit exceeded; wait ``retry_after`` seconds if given."""

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        retry_after: Optional[float] = None,
        provider: Optional[str] = None,
    ):
        self.retry_after = retry_after
        super().__init__(
            f"{message}. Retry after: {retry_after}s" if retry_after else message,
            provider=provider,
        )


class AuthenticationError(LLMProviderError):
    """API key is invalid or revoked. Not retryable."""

    def __init__(
        self,
        message: str = "API authentication failed",
        provider: Optional[str] = None,
    ):
        super().__init__(message, provider=provider)


class ContentFilterError(LLMProviderError):
    """Content blocked by safety filters. Not retryable with the same input."""

    def __init__(
        self,
        message: str = "Content blocked by safety filters",
        provider: Optional[str] = None,
    ):
        super().__init__(message, provider=provider)


class ProviderUnavailableError(LLMProviderError):
    """Server errors (500, 502, 503, 504) and connection failures. Retryable."""

    def __init__(
        self,
        message: str = "Provider temporarily unavailable",
        provider: Optional[str] = None,
    ):
        super().__init__(message, provider=provider)


class ModelNotFoundError(LLMProviderError):
    """The configured model does not exist for this account or region."""

    def __init__(
        self,
        message: str = "Model not found",
        model: Optional[str] = None,
        provider: Optional[str] = None,
    ):
        self.model = model
        super().__init__(
            f"{message}: {model}" if model else message,
            provider=provider,
        )


class ContextLengthExceededError(LLMProviderError):
    """Input exceeds the model's context window. Chunk smaller."""

    def __init__(
        self,
        message: str = "Context length exceeded",
        provider: Optional[str] = None,
    ):
        super().__init__(message, provider=provider)
