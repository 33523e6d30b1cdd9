"""LLM service: provider selection, retry and fallback.

The service owns the provider instances built from an explicit
LLMConfig. It never reads credentials from the environment; a config
without an API key yields a service that reports ``is_available`` as
False and raises BackendUnavailableError on use.
"""

import time
from typing import Dict, List, Optional, Tuple

import structlog

from booking_intake.models.llm import LLMConfig
from booking_intake.observability.metrics import LLM_REQUEST_DURATION, LLM_REQUESTS
from booking_intake.services.llm.exceptions import (
    LLMProviderError,
    ProviderUnavailableError,
    RateLimitError,
)
from booking_intake.services.llm.providers.anthropic import AnthropicProvider
from booking_intake.services.llm.providers.base import LLMProvider, LLMResponse
from booking_intake.services.llm.providers.google import GoogleProvider
from booking_intake.utils.exceptions import (
    AllProvidersFailedError,
    BackendUnavailableError,
)
from booking_intake.utils.retry import RetryHandler

logger = structlog.get_logger()

RETRYABLE_EXCEPTIONS = (RateLimitError, ProviderUnavailableError)


def create_provider(provider_name: str, api_key: str, model: str) -> LLMProvider:
    if provider_name == "anthropic":
        return AnthropicProvider(api_key=api_key, model=model)
    if provider_name == "google":
        return GoogleProvider(api_key=api_key, model=model)
    raise LLMProviderError(f"Unknown provider: {provider_name}", provider=provider_name)


class LLMService:
    """Thin orchestrator over a primary and an optional fallback provider."""

    def __init__(
        self,
        config: Optional[LLMConfig] = None,
        primary: Optional[LLMProvider] = None,
        fallback: Optional[LLMProvider] = None,
    ):
        """
        Args:
            config: Backend configuration; None means no credentials
            primary: Pre-built primary provider (tests, custom clients)
            fallback: Pre-built fallback provider
        """
        self.config = config or LLMConfig()
        self.retry_handler = RetryHandler(self.config.retry)
        self.primary = primary or self._build_primary()
        self.fallback = fallback or self._build_fallback()

        logger.info(
            "llm_service_initialized",
            provider=self.primary.name if self.primary else None,
            model=self.primary.model if self.primary else None,
            fallback=self.fallback.name if self.fallback else None,
        )

    def _build_primary(self) -> Optional[LLMProvider]:
        if not self.config.api_key:
            logger.warning("llm_credentials_missing", provider=self.config.provider)
            return None
        try:
            return create_provider(
                self.config.provider, self.config.api_key, self.config.model
            )
        except LLMProviderError as e:
            logger.warning(
                "llm_provider_init_failed", provider=self.config.provider, error=str(e)
            )
            return None

    def _build_fallback(self) -> Optional[LLMProvider]:
        fallback_config = self.config.fallback
        if not fallback_config or not fallback_config.enabled:
            return None
        if not fallback_config.api_key:
            logger.warning("fallback_api_key_not_found", provider=fallback_config.provider)
            return None
        try:
            provider = create_provider(
                fallback_config.provider, fallback_config.api_key, fallback_config.model
            )
        except LLMProviderError as e:
            logger.warning(
                "fallback_provider_init_failed",
                provider=fallback_config.provider,
                error=str(e),
            )
            return None
        logger.info(
            "fallback_provider_initialized",
            provider=fallback_config.provider,
            model=fallback_config.model,
        )
        return provider

    @property
    def is_available(self) -> bool:
        return self.primary is not None or self.fallback is not None

    def _chain(self, prefer_fallback: bool) -> List[Tuple[str, LLMProvider]]:
        chain = [("primary", self.primary), ("fallback", self.fallback)]
        if prefer_fallback:
            chain.reverse()
        return [(role, provider) for role, provider in chain if provider is not None]

    async def generate(
        self,
        prompt: str,
        system: Optional[str] = None,
        prefer_fallback: bool = False,
    ) -> LLMResponse:
        """Send ``prompt`` to the first provider that answers.

        Args:
            prompt: User prompt with the document text embedded
            system: Optional system instruction
            prefer_fallback: Try the fallback provider first (improve passes)

        Raises:
            BackendUnavailableError: No provider is configured
            AllProvidersFailedError: Every configured provider failed
        """
        chain = self._chain(prefer_fallback)
        if not chain:
            raise BackendUnavailableError("No LLM credentials configured")

        provider_errors: Dict[str, Exception] = {}
        for role, provider in chain:
            start_time = time.time()

            async def call_provider(provider: LLMProvider = provider) -> LLMResponse:
                return await provider.generate(
                    prompt=prompt,
                    system=system,
                    max_tokens=self.config.max_tokens,
                    temperature=self.config.temperature,
                )

            try:
                response = await self.retry_handler.execute(
                    call_provider,
                    retryable_exceptions=RETRYABLE_EXCEPTIONS,
                    label=f"{role}:{provider.name}",
                )
            except LLMProviderError as e:
                LLM_REQUESTS.labels(provider=provider.name, status="failed").inc()
                provider_errors[f"{role}:{provider.name}"] = e
                logger.warning(
                    "llm_provider_failed",
                    role=role,
                    provider=provider.name,
                    error_type=type(e).__name__,
                    error=str(e),
                )
                continue

            LLM_REQUEST_DURATION.labels(provider=provider.name).observe(
                time.time() - start_time
            )
            LLM_REQUESTS.labels(provider=provider.name, status="success").inc()
            logger.debug(
                "llm_request_completed",
                role=role,
                provider=provider.name,
                model=response.model,
                tokens=response.total_tokens,
            )
            return response

        raise AllProvidersFailedError(provider_errors)
