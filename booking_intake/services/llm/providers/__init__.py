"""LLM provider implementations."""

from booking_intake.services.llm.providers.base import LLMProvider, LLMResponse
from booking_intake.services.llm.providers.anthropic import AnthropicProvider
from booking_intake.services.llm.providers.google import GoogleProvider

__all__ = [
    "LLMProvider",
    "LLMResponse",
    "AnthropicProvider",
    "GoogleProvider",
]
