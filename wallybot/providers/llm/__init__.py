import logging
from typing import Dict, Optional, Type

from ...config import Settings, settings as default_settings
from .base import (
    LLMMessage,
    LLMProvider,
    LLMProviderAPIError,
    LLMProviderAuthError,
    LLMProviderError,
    LLMProviderRateLimitError,
    LLMResponse,
)
from .anthropic import AnthropicProvider
from .openai import OpenAIProvider

PROVIDER_ALIAS_MAP: Dict[str, str] = {
    "claude": "anthropic",
    "gpt": "openai",
}

# Registry of available LLM providers
PROVIDER_REGISTRY: Dict[str, Type[LLMProvider]] = {
    "anthropic": AnthropicProvider,
    "openai": OpenAIProvider,
}

logger = logging.getLogger(__name__)

DEFAULT_MODELS: Dict[str, str] = {
    "anthropic": "claude-3-5-haiku-latest",
    "openai": "gpt-4o-mini",
}


def canonical_provider_name(name: str) -> str:
    """Normalize provider aliases to their canonical identifier."""

    return PROVIDER_ALIAS_MAP.get(name.lower(), name.lower())


class LLMProviderFactory:
    """Factory for creating LLM provider instances."""

    @staticmethod
    def create_provider(
        provider_name: str,
        api_key: str,
        model: Optional[str] = None,
        **kwargs,
    ) -> LLMProvider:
        provider_key = canonical_provider_name(provider_name)
        if provider_key not in PROVIDER_REGISTRY:
            available_providers = ", ".join(PROVIDER_REGISTRY.keys())
            raise ValueError(
                f"Unsupported provider '{provider_name}'. "
                f"Available providers: {available_providers}"
            )

        provider_class = PROVIDER_REGISTRY[provider_key]
        return provider_class(api_key=api_key, model=model or DEFAULT_MODELS[provider_key], **kwargs)


def get_llm_provider(settings: Optional[Settings] = None) -> Optional[LLMProvider]:
    """Build the configured LLM provider, or ``None`` when the provider is unknown or has no API key.

    Without a provider the intent service runs on local heuristics only.
    """
    settings = settings or default_settings
    provider_key = canonical_provider_name(settings.llm_provider)

    if provider_key == "anthropic":
        api_key = settings.anthropic_api_key
        extra = {"timeout": settings.request_timeout_seconds}
    elif provider_key == "openai":
        api_key = settings.openai_api_key
        extra = {"base_url": settings.openai_base_url, "timeout": settings.request_timeout_seconds}
    else:
        logger.warning("Unsupported LLM provider '%s', running without an LLM", settings.llm_provider)
        return None

    if not api_key:
        return None

    return LLMProviderFactory.create_provider(
        provider_name=provider_key,
        api_key=api_key,
        model=settings.llm_model or None,
        **extra,
    )


__all__ = [
    "LLMProvider",
    "LLMMessage",
    "LLMResponse",
    "LLMProviderError",
    "LLMProviderAPIError",
    "LLMProviderAuthError",
    "LLMProviderRateLimitError",
    "AnthropicProvider",
    "OpenAIProvider",
    "LLMProviderFactory",
    "get_llm_provider",
    "PROVIDER_REGISTRY",
    "DEFAULT_MODELS",
    "canonical_provider_name",
]
