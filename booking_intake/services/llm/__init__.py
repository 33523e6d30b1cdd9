"""LLM backend package.

- LLMService: provider selection with retry and fallback
- PromptBuilder: fixed-schema prompts per field group
- ResponseParser: validated decode into Decoded | Degraded
"""

from booking_intake.services.llm.service import LLMService
from booking_intake.services.llm.prompt_builder import FieldGroupName, PromptBuilder
from booking_intake.services.llm.response_parser import (
    Decoded,
    Degraded,
    DecodeResult,
    ResponseParser,
)
from booking_intake.services.llm.providers.base import LLMProvider, LLMResponse
from booking_intake.services.llm.exceptions import (
    LLMProviderError,
    RateLimitError,
    AuthenticationError,
    ContentFilterError,
    ProviderUnavailableError,
    ModelNotFoundError,
    ContextLengthExceededError,
)

__all__ = [
    "LLMService",
    "PromptBuilder",
    "FieldGroupName",
    "ResponseParser",
    "Decoded",
    "Degraded",
    "DecodeResult",
    "LLMProvider",
    "LLMResponse",
    "LLMProviderError",
    "RateLimitError",
    "AuthenticationError",
    "ContentFilterError",
    "ProviderUnavailableError",
    "ModelNotFoundError",
    "ContextLengthExceededError",
]
