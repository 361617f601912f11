"""Token pricing and cost calculation per provider."""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

logger = logging.getLogger(__name__)

# Conservative rate used when no strategy exists for a provider ($ per 1K tokens)
FALLBACK_RATE_PER_1K = 0.002


@dataclass(frozen=True)
class ProviderPricing:
    """Price list for one provider.

    All rates are USD per 1K tokens. ``fee_percent`` is a platform fee layered
    on top of the nominal rate (OpenRouter charges 5.5%).
    """

    rates_per_1k: Mapping[str, float]
    default_rate_per_1k: float
    fee_percent: float = 0.0

    def rate_for(self, model: str) -> float:
        """Nominal per-1K rate for a model, falling back to the default rate."""
        return self.rates_per_1k.get(model, self.default_rate_per_1k)


PricingTable = Dict[str, ProviderPricing]


OPENROUTER_FEE = 0.055

DEFAULT_PRICING: PricingTable = {
    "openai": ProviderPricing(
        rates_per_1k={"gpt-5.1": 0.005},  # $0.005 per 1K tokens
        default_rate_per_1k=0.005,
    ),
    "claude": ProviderPricing(
        rates_per_1k={"claude-haiku-4-5": 1.25 / 1000},  # $1.25 per 1M tokens
        default_rate_per_1k=1.25 / 1000,
    ),
    "gemini": ProviderPricing(
        rates_per_1k={"gemini-2.5-flash": 0.000075},  # $0.075 per 1M tokens (combined)
        default_rate_per_1k=0.000075,
    ),
    "openrouter": ProviderPricing(
        rates_per_1k={
            # Free models
            "meta-llama/llama-3.2-3b-instruct:free": 0.0,
            "microsoft/phi-3-mini-128k-instruct:free": 0.0,
            "google/gemma-2-9b-it:free": 0.0,
            # Premium models, base price before the OpenRouter fee
            "anthropic/claude-3.5-sonnet": 0.003,
            "anthropic/claude-3-haiku": 0.00025,
            "openai/gpt-4o-mini": 0.00015,
            "openai/gpt-4o": 0.0025,
            "openai/gpt-3.5-turbo": 0.0005,
            "google/gemini-pro-1.5": 0.00125,
            "google/gemini-flash-1.5": 0.000075,
            "meta-llama/llama-3.2-90b-instruct": 0.0009,
            "mistralai/mistral-7b-instruct": 0.00025,
            "cohere/command-r-plus": 0.003,
        },
        default_rate_per_1k=0.001,
        fee_percent=OPENROUTER_FEE,
    ),
}


class CostStrategy:
    """Maps (tokens, model) to an estimated USD cost for one provider."""

    def __init__(self, provider_key: str, pricing: ProviderPricing):
        self.provider_key = provider_key
        self.pricing = pricing

    @property
    def strategy_name(self) -> str:
        return f"{self.provider_key}_cost_strategy"

    def get_cost_per_1k(self, model: str) -> float:
        """Effective per-1K rate including any platform fee."""
        return self.pricing.rate_for(model) * (1 + self.pricing.fee_percent)

    def calculate_cost(
        self,
        tokens_used: int,
        model: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> float:
        """Estimate the cost of a call in USD.

        Unknown models are priced at the provider's default rate.
        """
        if tokens_used <= 0:
            return 0.0
        return (tokens_used / 1000) * self.get_cost_per_1k(model)

    def get_cost_per_token(self, model: str) -> float:
        return self.get_cost_per_1k(model) / 1000

    def is_free_model(self, model: str) -> bool:
        return self.get_cost_per_1k(model) <= 0.0

    def get_pricing_info(self, model: str) -> Dict[str, Any]:
        """Describe a model's price for display."""
        cost_per_1k = self.get_cost_per_1k(model)
        is_free = cost_per_1k <= 0.0
        return {
            "cost_per_1k_tokens": cost_per_1k,
            "cost_per_token": cost_per_1k / 1000,
            "is_free": is_free,
            "currency": "USD",
            "model": model,
            "provider": self.provider_key,
            "formatted_cost": "Free" if is_free else f"${cost_per_1k:.6f} per 1K tokens",
        }


class CostCalculator:
    """Registry of cost strategies keyed by provider."""

    def __init__(self, pricing: Optional[PricingTable] = None):
        self._strategies: dict[str, CostStrategy] = {}
        for provider_key, provider_pricing in (DEFAULT_PRICING if pricing is None else pricing).items():
            self.register_strategy(provider_key, CostStrategy(provider_key, provider_pricing))

    def register_strategy(self, provider_key: str, strategy: CostStrategy):
        self._strategies[provider_key] = strategy

    def get_strategy(self, provider_key: str) -> Optional[CostStrategy]:
        return self._strategies.get(provider_key)

    def get_all_strategies(self) -> dict[str, CostStrategy]:
        return dict(self._strategies)

    def calculate_cost(self, provider_key: str, tokens_used: int, model: str) -> float:
        strategy = self.get_strategy(provider_key)
        if strategy is None:
            logger.warning(f"No cost strategy for provider '{provider_key}', using fallback rate")
            return max(0, tokens_used) / 1000 * FALLBACK_RATE_PER_1K
        return strategy.calculate_cost(tokens_used, model)

    def is_free_model(self, provider_key: str, model: str) -> bool:
        strategy = self.get_strategy(provider_key)
        if strategy is None:
            return False
        return strategy.is_free_model(model)

    def get_pricing_info(self, provider_key: str, model: str) -> Dict[str, Any]:
        strategy = self.get_strategy(provider_key)
        if strategy is None:
            return {
                "cost_per_1k_tokens": FALLBACK_RATE_PER_1K,
                "is_free": False,
                "currency": "USD",
                "notes": "Pricing information not available",
                "formatted_cost": f"${FALLBACK_RATE_PER_1K:.6f} per 1K tokens",
            }
        return strategy.get_pricing_info(model)


def get_default_strategy(provider_key: str) -> CostStrategy:
    """Build the production strategy for a provider."""
    pricing = DEFAULT_PRICING.get(provider_key)
    if pricing is None:
        pricing = ProviderPricing(rates_per_1k={}, default_rate_per_1k=FALLBACK_RATE_PER_1K)
    return CostStrategy(provider_key, pricing)
