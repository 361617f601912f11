"""Provider descriptors: the single source for which providers and models exist.

Both the adapters and the admin UI read models from here so the two never
disagree. Order is significant and drives dropdown order.
"""

from typing import Any, Optional

from ..models import ModelInfo, ProviderDescriptor

DEFAULT_PROVIDER_KEY = "openai"

PROVIDERS: dict[str, ProviderDescriptor] = {
    "openai": ProviderDescriptor(
        key="openai",
        display_name="OpenAI",
        api_endpoint="https://api.openai.com/v1/chat/completions",
        api_key_prefix="sk-",
        default_model="gpt-5.1",
        models=(
            ModelInfo(id="gpt-5.1", label="GPT-5.1", max_tokens=128000, cost_per_1k_tokens=0.005),
        ),
    ),
    "claude": ProviderDescriptor(
        key="claude",
        display_name="Claude",
        api_endpoint="https://api.anthropic.com/v1/messages",
        api_key_prefix="sk-ant-",
        default_model="claude-haiku-4-5",
        models=(
            ModelInfo(
                id="claude-haiku-4-5",
                label="Claude Haiku 4.5",
                max_tokens=200000,
                cost_per_1k_tokens=0.00025,
            ),
        ),
    ),
    "openrouter": ProviderDescriptor(
        key="openrouter",
        display_name="OpenRouter",
        api_endpoint="https://openrouter.ai/api/v1/chat/completions",
        api_key_prefix="sk-or-",
        default_model="anthropic/claude-3.5-sonnet",
        models=(
            ModelInfo(
                id="anthropic/claude-3.5-sonnet",
                label="Claude 3.5 Sonnet",
                max_tokens=200000,
                cost_per_1k_tokens=0.003,
            ),
        ),
    ),
    "gemini": ProviderDescriptor(
        key="gemini",
        display_name="Google Gemini",
        api_endpoint="https://generativelanguage.googleapis.com/v1beta/models",
        api_key_prefix="AIza",
        api_key_min_length=39,
        api_key_max_length=39,
        default_model="gemini-2.5-flash",
        models=(
            ModelInfo(
                id="gemini-2.5-flash",
                label="Gemini 2.5 Flash",
                max_tokens=1048576,
                cost_per_1k_tokens=0.00015,
            ),
        ),
    ),
}


def get_provider_config(provider_key: str) -> Optional[ProviderDescriptor]:
    return PROVIDERS.get(provider_key)


def provider_exists(provider_key: str) -> bool:
    return provider_key in PROVIDERS


def get_available_providers() -> dict[str, str]:
    """Provider key -> display name, in registry order."""
    return {key: descriptor.display_name for key, descriptor in PROVIDERS.items()}


def get_provider_models(provider_key: str) -> tuple[ModelInfo, ...]:
    descriptor = get_provider_config(provider_key)
    return descriptor.models if descriptor else ()


def get_provider_models_for_admin(provider_key: str) -> list[dict[str, str]]:
    """Ordered ``{id, label}`` pairs for the model dropdown. Never re-sorted."""
    return [{"id": model.id, "label": model.label} for model in get_provider_models(provider_key)]


def model_exists(provider_key: str, model_id: str) -> bool:
    return any(model.id == model_id for model in get_provider_models(provider_key))


def get_model_config(provider_key: str, model_id: str) -> Optional[ModelInfo]:
    for model in get_provider_models(provider_key):
        if model.id == model_id:
            return model
    return None


def get_default_model(provider_key: str) -> str:
    descriptor = get_provider_config(provider_key) or PROVIDERS[DEFAULT_PROVIDER_KEY]
    return descriptor.default_model


def get_all_models() -> dict[str, dict[str, Any]]:
    """Every model keyed by ``"provider:model"``."""
    all_models = {}
    for provider_key, descriptor in PROVIDERS.items():
        for model in descriptor.models:
            all_models[f"{provider_key}:{model.id}"] = {
                "provider": provider_key,
                "provider_name": descriptor.display_name,
                "model": model.id,
                "label": model.label,
                "max_tokens": model.max_tokens,
                "cost_per_1k_tokens": model.cost_per_1k_tokens,
                "temperature": model.temperature,
            }
    return all_models


def get_api_key_validation(provider_key: str) -> dict[str, Any]:
    descriptor = get_provider_config(provider_key)
    if descriptor is None:
        return {"prefix": "", "min_length": 10, "max_length": 200}
    return {
        "prefix": descriptor.api_key_prefix,
        "min_length": descriptor.api_key_min_length,
        "max_length": descriptor.api_key_max_length,
    }


def get_js_config() -> dict[str, dict[str, Any]]:
    """Payload consumed by the admin provider picker."""
    return {
        provider_key: {
            "name": descriptor.display_name,
            "models": get_provider_models_for_admin(provider_key),
            "default_model": descriptor.default_model,
            "api_key_prefix": descriptor.api_key_prefix,
        }
        for provider_key, descriptor in PROVIDERS.items()
    }
