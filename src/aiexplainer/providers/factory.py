"""Resolve provider keys to adapter instances."""

import logging
from typing import Optional

import httpx

from ..config import Settings
from ..pricing import CostStrategy
from . import registry
from .base import ProviderAdapter
from .claude_provider import ClaudeProvider
from .gemini_provider import GeminiProvider
from .openai_provider import OpenAIProvider
from .openrouter_provider import OpenRouterProvider

logger = logging.getLogger(__name__)

_provider_classes: dict[str, type[ProviderAdapter]] = {
    "openai": OpenAIProvider,
    "claude": ClaudeProvider,
    "openrouter": OpenRouterProvider,
    "gemini": GeminiProvider,
}

# Instances built with default arguments only
_providers: dict[str, ProviderAdapter] = {}


def get_provider(
    provider_key: str,
    config: Optional[dict] = None,
    http_client: Optional[httpx.Client] = None,
    cost_strategy: Optional[CostStrategy] = None,
) -> ProviderAdapter:
    """Return the adapter for ``provider_key``.

    Unknown keys resolve to the default provider (OpenAI) instead of failing,
    so a broken provider setting does not take the feature down.
    """
    if provider_key not in _provider_classes:
        logger.warning(
            f"Unknown provider '{provider_key}', falling back to '{registry.DEFAULT_PROVIDER_KEY}'"
        )
        provider_key = registry.DEFAULT_PROVIDER_KEY

    provider_class = _provider_classes[provider_key]
    if config is None and http_client is None and cost_strategy is None:
        if provider_key not in _providers:
            _providers[provider_key] = provider_class()
        return _providers[provider_key]

    return provider_class(config=config, cost_strategy=cost_strategy, http_client=http_client)


def provider_config_from_settings(settings: Settings) -> dict:
    """Adapter configuration derived from application settings."""
    return {
        "max_tokens": settings.max_tokens,
        "temperature": settings.temperature,
        "timeout": settings.request_timeout,
        "test_timeout": settings.test_request_timeout,
        "site_url": settings.site_url,
        "site_name": settings.site_name,
    }


def get_current_provider(
    settings: Settings, http_client: Optional[httpx.Client] = None
) -> ProviderAdapter:
    return get_provider(
        settings.api_provider,
        config=provider_config_from_settings(settings),
        http_client=http_client,
    )


def get_available_providers() -> dict[str, str]:
    return registry.get_available_providers()


def is_provider_available(provider_key: str) -> bool:
    return provider_key in _provider_classes and registry.provider_exists(provider_key)


def register_provider(provider_key: str, provider_class: type[ProviderAdapter]):
    """Register an additional adapter class under ``provider_key``."""
    _provider_classes[provider_key] = provider_class
    _providers.pop(provider_key, None)


def clear_cache():
    _providers.clear()
