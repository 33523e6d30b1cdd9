"""LLM backend configuration models

This module defines the data structures for:
- Provider configuration (Claude/Gemini)
- Retry behaviour for transient provider failures
- An optional fallback provider

Credentials are optional: a backend with no API key is a valid,
constructible configuration and simply degrades structuring to empty,
zero-confidence candidates.
"""

from pydantic import BaseModel, Field, field_validator, ConfigDict
from typing import Literal, Optional

PLACEHOLDER_KEYS = {"YOUR_API_KEY", "PLACEHOLDER", "", "None", "none", "null"}


def _normalize_api_key(v: Optional[str]) -> Optional[str]:
    """Treat placeholders and unsubstituted ``${VAR}`` markers as no key."""
    if v is None:
        return None
    v = v.strip()
    if v in PLACEHOLDER_KEYS or (v.startswith("${") and v.endswith("}")):
        return None
    return v


def _check_model(provider: Optional[str], model: str) -> str:
    if provider == "anthropic" and not model.startswith("claude"):
        raise ValueError(f"Anthropic provider requires Claude model, got: {model}")
    if provider == "google" and model.startswith("claude"):
        raise ValueError(f"Google provider cannot use Claude model: {model}")
    return model


class RetryConfig(BaseModel):
    """Configuration for retry logic with exponential backoff"""

    max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Maximum attempts (1 initial + N-1 retries)",
    )
    base_delay_seconds: float = Field(
        default=1.0,
        gt=0.0,
        le=60.0,
        description="Base delay for exponential backoff",
    )
    max_delay_seconds: float = Field(
        default=20.0,
        gt=0.0,
        le=300.0,
        description="Maximum delay cap",
    )
    jitter_factor: float = Field(
        default=0.1,
        ge=0.0,
        le=0.5,
        description="Jitter factor for randomization",
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "max_attempts": 3,
                "base_delay_seconds": 1.0,
                "max_delay_seconds": 20.0,
                "jitter_factor": 0.1,
            }
        }
    )


class FallbackProviderConfig(BaseModel):
    """Secondary provider used when the primary fails.

    The ``improve`` operation tries the fallback first, giving the
    reviewer a second opinion from a different model.
    """

    enabled: bool = Field(default=False, description="Whether fallback is enabled")
    provider: Literal["anthropic", "google"] = Field(
        description="Fallback provider type"
    )
    model: str = Field(description="Fallback model name")
    api_key: Optional[str] = Field(
        default=None, description="API key for the fallback provider"
    )

    @field_validator("api_key")
    @classmethod
    def validate_api_key(cls, v: Optional[str]) -> Optional[str]:
        return _normalize_api_key(v)

    @field_validator("model")
    @classmethod
    def validate_model(cls, v: str, info) -> str:
        """Validate model name matches provider"""
        return _check_model(info.data.get("provider"), v)


class LLMConfig(BaseModel):
    """Structured-extraction backend configuration

    Supports both Anthropic (Claude) and Google (Gemini) providers.

    Security Note:
    - API keys must be loaded from environment variables (``${VAR}``)
    - Never hardcode API keys in configuration files
    """

    provider: Literal["anthropic", "google"] = Field(
        default="google", description="LLM provider to use"
    )
    model: str = Field(default="gemini-2.0-flash", description="Model identifier")
    api_key: Optional[str] = Field(
        default=None, description="API key (from environment variable)"
    )
    max_tokens: int = Field(
        default=4096, gt=0, le=200000, description="Maximum output tokens per request"
    )
    temperature: float = Field(
        default=0.0,
        ge=0.0,
        le=1.0,
        description="Sampling temperature (0.0 = deterministic)",
    )
    retry: RetryConfig = Field(
        default_factory=RetryConfig, description="Retry configuration"
    )
    fallback: Optional[FallbackProviderConfig] = Field(
        default=None, description="Fallback provider configuration"
    )

    @field_validator("api_key")
    @classmethod
    def validate_api_key(cls, v: Optional[str]) -> Optional[str]:
        return _normalize_api_key(v)

    @field_validator("model")
    @classmethod
    def validate_model(cls, v: str, info) -> str:
        """Validate model name matches provider"""
        return _check_model(info.data.get("provider"), v)

    @property
    def has_credentials(self) -> bool:
        if self.api_key:
            return True
        return bool(self.fallback and self.fallback.enabled and self.fallback.api_key)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "provider": "google",
                "model": "gemini-2.0-flash",
                "api_key": "${GEMINI_API_KEY}",
                "max_tokens": 4096,
                "temperature": 0.0,
            }
        }
    )
