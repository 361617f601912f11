"""Tests for pricing and cost strategies."""

import pytest

from aiexplainer.pricing import (
    CostCalculator,
    CostStrategy,
    DEFAULT_PRICING,
    FALLBACK_RATE_PER_1K,
    OPENROUTER_FEE,
    ProviderPricing,
    get_default_strategy,
)
from aiexplainer.providers import registry


class TestCostStrategy:
    """Test per-provider cost strategies."""

    def test_zero_and_negative_tokens_cost_nothing(self):
        strategy = get_default_strategy("openai")
        assert strategy.calculate_cost(0, "gpt-5.1") == 0.0
        assert strategy.calculate_cost(-10, "gpt-5.1") == 0.0

    def test_known_model_rate(self):
        """Test OpenAI gpt-5.1 at $0.005 per 1K tokens."""
        strategy = get_default_strategy("openai")
        assert strategy.calculate_cost(1000, "gpt-5.1") == pytest.approx(0.005)

    def test_claude_rate_per_million(self):
        """Test Claude Haiku at $1.25 per million tokens."""
        strategy = get_default_strategy("claude")
        assert strategy.calculate_cost(1_000_000, "claude-haiku-4-5") == pytest.approx(1.25)

    def test_unknown_model_uses_default_rate(self):
        strategy = CostStrategy("x", ProviderPricing({"a": 0.01}, default_rate_per_1k=0.02))
        assert strategy.calculate_cost(1000, "b") == pytest.approx(0.02)

    def test_openrouter_fee_multiplier(self):
        """Test that 2000 tokens at $0.001/1K plus 5.5% cost 0.00211."""
        strategy = CostStrategy(
            "openrouter",
            ProviderPricing({"m": 0.001}, default_rate_per_1k=0.001, fee_percent=0.055),
        )
        assert strategy.calculate_cost(2000, "m") == pytest.approx(2 * 0.001 * 1.055)

    def test_openrouter_default_table_has_fee(self):
        assert DEFAULT_PRICING["openrouter"].fee_percent == OPENROUTER_FEE
        strategy = get_default_strategy("openrouter")
        assert strategy.get_cost_per_1k("anthropic/claude-3.5-sonnet") == pytest.approx(0.003 * 1.055)

    def test_free_model_detection(self):
        strategy = get_default_strategy("openrouter")
        assert strategy.is_free_model("google/gemma-2-9b-it:free") is True
        assert strategy.is_free_model("openai/gpt-4o") is False

    def test_cost_per_token(self):
        strategy = get_default_strategy("openai")
        assert strategy.get_cost_per_token("gpt-5.1") == pytest.approx(0.000005)

    def test_pricing_info(self):
        """Test display pricing for free and paid models."""
        strategy = get_default_strategy("openrouter")

        free = strategy.get_pricing_info("meta-llama/llama-3.2-3b-instruct:free")
        assert free["is_free"] is True
        assert free["formatted_cost"] == "Free"
        assert free["currency"] == "USD"

        paid = get_default_strategy("openai").get_pricing_info("gpt-5.1")
        assert paid["is_free"] is False
        assert paid["formatted_cost"] == "$0.005000 per 1K tokens"

    def test_strategy_name(self):
        assert get_default_strategy("gemini").strategy_name == "gemini_cost_strategy"

    def test_unknown_provider_strategy_uses_fallback(self):
        strategy = get_default_strategy("nope")
        assert strategy.calculate_cost(1000, "any") == pytest.approx(FALLBACK_RATE_PER_1K)


class TestCostCalculator:
    """Test the strategy registry."""

    def test_has_strategy_for_every_provider(self):
        calculator = CostCalculator()
        assert set(calculator.get_all_strategies()) == set(registry.PROVIDERS)

    def test_every_registry_model_is_priced(self):
        """Test that every registry model resolves to a rate."""
        calculator = CostCalculator()
        for key in registry.PROVIDERS:
            for model in registry.get_provider_models(key):
                assert calculator.calculate_cost(key, 1000, model.id) >= 0

    def test_unknown_provider_falls_back(self):
        calculator = CostCalculator()
        assert calculator.calculate_cost("mystery", 1000, "m") == pytest.approx(FALLBACK_RATE_PER_1K)
        assert calculator.is_free_model("mystery", "m") is False
        assert calculator.get_pricing_info("mystery", "m")["cost_per_1k_tokens"] == FALLBACK_RATE_PER_1K

    def test_custom_pricing_table(self):
        """Test that an injected table replaces the defaults."""
        calculator = CostCalculator({"openai": ProviderPricing({}, default_rate_per_1k=1.0)})

        assert calculator.calculate_cost("openai", 2000, "gpt-5.1") == pytest.approx(2.0)
        assert calculator.get_strategy("claude") is None

    def test_register_strategy(self):
        calculator = CostCalculator({})
        calculator.register_strategy("local", CostStrategy("local", ProviderPricing({}, 0.0)))

        assert calculator.is_free_model("local", "anything") is True
