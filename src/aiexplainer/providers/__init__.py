"""AI provider adapters."""

from .base import ProviderAdapter, SYSTEM_MESSAGE
from .openai_provider import OpenAIProvider
from .claude_provider import ClaudeProvider
from .gemini_provider import GeminiProvider
from .openrouter_provider import OpenRouterProvider
from .factory import (
    get_provider,
    get_current_provider,
    provider_config_from_settings,
    clear_cache,
)
from .registry import (
    PROVIDERS,
    DEFAULT_PROVIDER_KEY,
    get_available_providers,
    get_provider_models_for_admin,
)

__all__ = [
    "ProviderAdapter",
    "SYSTEM_MESSAGE",
    "OpenAIProvider",
    "ClaudeProvider",
    "GeminiProvider",
    "OpenRouterProvider",
    "get_provider",
    "get_current_provider",
    "provider_config_from_settings",
    "clear_cache",
    "PROVIDERS",
    "DEFAULT_PROVIDER_KEY",
    "get_available_providers",
    "get_provider_models_for_admin",
]
