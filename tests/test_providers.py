"""Tests for the provider adapters."""

import httpx
import pytest

from aiexplainer.models import RequestOptions
from aiexplainer.pricing import CostStrategy, ProviderPricing
from aiexplainer.providers import (
    ClaudeProvider,
    GeminiProvider,
    OpenAIProvider,
    OpenRouterProvider,
    SYSTEM_MESSAGE,
)
from aiexplainer.providers.claude_provider import API_VERSION
from aiexplainer.providers.openrouter_provider import TEST_MODEL

from conftest import CLAUDE_KEY, GEMINI_KEY, OPENAI_KEY, OPENROUTER_KEY

ALL_ADAPTERS = [OpenAIProvider, ClaudeProvider, GeminiProvider, OpenRouterProvider]


def json_response(status_code: int, payload) -> httpx.Response:
    return httpx.Response(status_code, json=payload)


class TestCommonBehaviour:
    """Behaviour shared by every adapter."""

    @pytest.mark.parametrize("adapter_class", ALL_ADAPTERS)
    def test_zero_tokens_cost_nothing(self, adapter_class):
        """Test that calculate_cost(0, model) is 0 for every model."""
        adapter = adapter_class()
        for model in adapter.get_models():
            assert adapter.calculate_cost(0, model["id"]) == 0
        assert adapter.calculate_cost(0, "unknown-model") == 0

    @pytest.mark.parametrize("adapter_class", ALL_ADAPTERS)
    def test_default_config(self, adapter_class):
        """Test default request settings."""
        adapter = adapter_class()
        assert adapter.get_max_tokens() == 150
        assert adapter.get_timeout() == 10
        assert adapter.get_config("temperature") == 0.7

    @pytest.mark.parametrize("adapter_class", ALL_ADAPTERS)
    def test_unauthorized_disables_plugin(self, adapter_class):
        """Test that HTTP 401 yields api_key_invalid with the disable flag."""
        adapter = adapter_class()
        result = adapter.parse_response(json_response(401, {"error": {"message": "bad key"}}), "m")

        assert result.success is False
        assert result.error_kind == "api_key_invalid"
        assert result.disable_plugin is True

    @pytest.mark.parametrize("adapter_class", ALL_ADAPTERS)
    def test_generic_server_error_is_not_quota(self, adapter_class):
        """Test that a 500 without quota wording is a generic vendor error."""
        adapter = adapter_class()
        payload = {"error": {"message": "Internal server error"}}

        assert adapter.is_quota_exceeded_error(500, payload) is False

        result = adapter.parse_response(json_response(500, payload), "m")
        assert result.success is False
        assert result.error_kind == "vendor_error"
        assert result.disable_plugin is False
        assert "Internal server error" not in result.error

    @pytest.mark.parametrize("adapter_class", ALL_ADAPTERS)
    def test_invalid_json_body(self, adapter_class):
        """Test that a 200 with a non-JSON body is reported as an invalid response."""
        adapter = adapter_class()
        result = adapter.parse_response(httpx.Response(200, text="<html>oops</html>"), "m")

        assert result.success is False
        assert result.error == "Invalid API response format."

    @pytest.mark.parametrize("adapter_class", ALL_ADAPTERS)
    def test_missing_text_in_success_payload(self, adapter_class):
        """Test that a well-formed payload without text is a failure, not an exception."""
        adapter = adapter_class()
        result = adapter.parse_response(json_response(200, {"unexpected": True}), "m")

        assert result.success is False
        assert result.error == "No explanation received from API."

    @pytest.mark.parametrize("adapter_class", ALL_ADAPTERS)
    def test_transport_failure_becomes_result(self, adapter_class):
        """Test that connection errors never escape request_explanation."""

        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = httpx.Client(transport=httpx.MockTransport(handler))
        adapter = adapter_class(http_client=client)
        result = adapter.request_explanation("key", "prompt", adapter.descriptor.default_model)

        assert result.success is False
        assert result.error_kind == "transport_error"

    @pytest.mark.parametrize("adapter_class", ALL_ADAPTERS)
    def test_timeout_becomes_transport_error(self, adapter_class):
        """Test that a timeout is classified as a transport error."""

        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        client = httpx.Client(transport=httpx.MockTransport(handler))
        adapter = adapter_class(http_client=client)
        result = adapter.request_explanation("key", "prompt", adapter.descriptor.default_model)

        assert result.error_kind == "transport_error"

    @pytest.mark.parametrize("adapter_class", ALL_ADAPTERS)
    def test_models_come_from_registry(self, adapter_class):
        """Test that adapters list the registry's models."""
        adapter = adapter_class()
        assert adapter.get_models()
        assert all(set(model) == {"id", "label"} for model in adapter.get_models())

    def test_injected_pricing_is_used(self):
        """Test that a fixture price list replaces the production one."""
        strategy = CostStrategy("openai", ProviderPricing({"fixture": 1.0}, default_rate_per_1k=2.0))
        adapter = OpenAIProvider(cost_strategy=strategy)

        assert adapter.calculate_cost(500, "fixture") == pytest.approx(0.5)
        assert adapter.calculate_cost(500, "other") == pytest.approx(1.0)

    def test_request_options_override_defaults(self, make_client, openai_success_payload):
        """Test that per-call options win over configured defaults."""
        client, transport = make_client(payload=openai_success_payload)
        adapter = OpenAIProvider(http_client=client)

        adapter.request_explanation(
            OPENAI_KEY, "prompt", "gpt-5.1", RequestOptions(max_tokens=42, temperature=0.1)
        )

        assert transport.last_body["max_tokens"] == 42
        assert transport.last_body["temperature"] == 0.1


class TestOpenAIProvider:
    """Tests for the OpenAI adapter."""

    def test_identity(self):
        adapter = OpenAIProvider()
        assert adapter.get_name() == "OpenAI"
        assert adapter.get_key() == "openai"

    def test_parse_success(self, openai_success_payload):
        """Test extraction of text and total_tokens."""
        result = OpenAIProvider().parse_response(json_response(200, openai_success_payload), "gpt-5.1")

        assert result.success is True
        assert result.explanation == "Hello"
        assert result.tokens_used == 5
        assert result.cost_usd == pytest.approx(5 / 1000 * 0.005)

    def test_request_wire_format(self, make_client, openai_success_payload):
        """Test URL, bearer auth and body shape."""
        client, transport = make_client(payload=openai_success_payload)
        OpenAIProvider(http_client=client).request_explanation(OPENAI_KEY, "Explain X", "gpt-5.1")

        request = transport.last_request
        assert str(request.url) == "https://api.openai.com/v1/chat/completions"
        assert request.headers["Authorization"] == f"Bearer {OPENAI_KEY}"
        body = transport.last_body
        assert body["model"] == "gpt-5.1"
        assert body["messages"] == [
            {"role": "system", "content": SYSTEM_MESSAGE},
            {"role": "user", "content": "Explain X"},
        ]
        assert body["max_tokens"] == 150
        assert body["temperature"] == 0.7

    def test_insufficient_quota_type(self):
        """Test that insufficient_quota is a quota stop."""
        payload = {"error": {"type": "insufficient_quota", "message": "You exceeded your current quota"}}
        result = OpenAIProvider().parse_response(json_response(429, payload), "gpt-5.1")

        assert result.error_kind == "quota_exceeded"
        assert result.disable_plugin is True
        assert "OpenAI error: You exceeded your current quota" in result.error

    def test_plain_rate_limit_is_not_quota(self):
        """Test that rate-limit wording without billing terms is transient."""
        payload = {"error": {"type": "requests", "message": "Rate limit reached for requests"}}
        assert OpenAIProvider().is_quota_exceeded_error(429, payload) is False

    def test_forbidden_is_quota(self):
        assert OpenAIProvider().is_quota_exceeded_error(403, {}) is True

    @pytest.mark.parametrize(
        "key,valid",
        [
            (OPENAI_KEY, True),
            ("sk-proj-abcdefghijklmnopqrstuvwxyz", True),
            ("pk-test1234567890abcdefghij", False),
            ("sk-short", False),
            ("sk-has spaces in the key value", False),
            ("", False),
            (None, False),
        ],
    )
    def test_validate_api_key(self, key, valid):
        assert OpenAIProvider().validate_api_key(key) is valid


class TestClaudeProvider:
    """Tests for the Claude adapter."""

    def test_parse_success_trims_and_uses_output_tokens(self, claude_success_payload):
        """Test extraction of content[0].text and usage.output_tokens."""
        result = ClaudeProvider().parse_response(
            json_response(200, claude_success_payload), "claude-haiku-4-5"
        )

        assert result.success is True
        assert result.explanation == "Hello from Claude"
        assert result.tokens_used == 7

    def test_request_wire_format(self, make_client, claude_success_payload):
        """Test the x-api-key and pinned anthropic-version headers and top-level system field."""
        client, transport = make_client(payload=claude_success_payload)
        ClaudeProvider(http_client=client).request_explanation(
            CLAUDE_KEY, "Explain X", "claude-haiku-4-5"
        )

        request = transport.last_request
        assert str(request.url) == "https://api.anthropic.com/v1/messages"
        assert request.headers["x-api-key"] == CLAUDE_KEY
        assert request.headers["anthropic-version"] == API_VERSION
        assert "Authorization" not in request.headers
        body = transport.last_body
        assert body["system"] == SYSTEM_MESSAGE
        assert body["messages"] == [{"role": "user", "content": "Explain X"}]
        assert body["max_tokens"] == 150

    def test_insufficient_credits_at_403_is_quota(self):
        """Test the documented Claude quota classification."""
        payload = {"error": {"type": "insufficient_credits", "message": "Your credit balance is too low"}}
        assert ClaudeProvider().is_quota_exceeded_error(403, payload) is True

    def test_credit_keyword_is_quota(self):
        payload = {"error": {"type": "invalid_request_error", "message": "Credit balance exhausted"}}
        assert ClaudeProvider().is_quota_exceeded_error(400, payload) is True

    def test_quota_message_includes_vendor_text(self):
        payload = {"error": {"type": "insufficient_credits", "message": "Your credit balance is too low"}}
        message = ClaudeProvider().get_quota_exceeded_message(payload)

        assert message.startswith("Claude API usage limit exceeded.")
        assert "Claude error: Your credit balance is too low" in message

    @pytest.mark.parametrize(
        "key,valid",
        [
            (CLAUDE_KEY, True),
            (OPENAI_KEY, False),
            ("sk-ant-", False),
        ],
    )
    def test_validate_api_key(self, key, valid):
        """Test that keys must start with sk-ant-."""
        assert ClaudeProvider().validate_api_key(key) is valid


class TestGeminiProvider:
    """Tests for the Gemini adapter."""

    def test_request_url_embeds_model_and_key(self):
        """Test the templated endpoint with the key as a query parameter."""
        url = GeminiProvider().build_request_url("AIzaXXXX", "gemini-2.5-flash")
        assert url == (
            "https://generativelanguage.googleapis.com/v1beta/models/"
            "gemini-2.5-flash:generateContent?key=AIzaXXXX"
        )

    def test_request_wire_format(self, make_client, gemini_success_payload):
        """Test that the key is only in the URL and the body uses generationConfig."""
        client, transport = make_client(payload=gemini_success_payload)
        GeminiProvider(http_client=client).request_explanation(
            GEMINI_KEY, "Explain X", "gemini-2.5-flash", {"max_tokens": 60, "temperature": 0.2}
        )

        request = transport.last_request
        assert request.url.path == "/v1beta/models/gemini-2.5-flash:generateContent"
        assert request.url.params["key"] == GEMINI_KEY
        assert "Authorization" not in request.headers
        assert transport.last_body == {
            "contents": [{"parts": [{"text": "Explain X"}]}],
            "generationConfig": {"temperature": 0.2, "maxOutputTokens": 60},
        }

    def test_parse_success(self, gemini_success_payload):
        result = GeminiProvider().parse_response(
            json_response(200, gemini_success_payload), "gemini-2.5-flash"
        )

        assert result.explanation == "Hello from Gemini"
        assert result.tokens_used == 9

    def test_resource_exhausted_is_quota(self):
        payload = {"error": {"code": 429, "message": "Resource has been exhausted", "status": "RESOURCE_EXHAUSTED"}}
        result = GeminiProvider().parse_response(json_response(429, payload), "gemini-2.5-flash")

        assert result.error_kind == "quota_exceeded"
        assert result.error.startswith("Google Gemini API quota exceeded.")
        assert "Google error: Resource has been exhausted" in result.error

    @pytest.mark.parametrize(
        "key,valid",
        [
            (GEMINI_KEY, True),
            ("AIza" + "B" * 34, False),
            ("AIza" + "B" * 36, False),
            ("BIza" + "B" * 35, False),
        ],
    )
    def test_validate_api_key(self, key, valid):
        """Test that keys must be exactly 39 characters starting with AIza."""
        assert GeminiProvider().validate_api_key(key) is valid

    def test_key_test_bad_request_message(self, make_client):
        client, _ = make_client(status_code=400, payload={"error": {"message": "API key not valid"}})
        result = GeminiProvider(http_client=client).test_api_key(GEMINI_KEY)

        assert result.success is False
        assert "Google AI Studio" in result.message


class TestOpenRouterProvider:
    """Tests for the OpenRouter adapter."""

    def test_attribution_headers(self, make_client, openrouter_success_payload):
        """Test the HTTP-Referer and X-Title headers."""
        client, transport = make_client(payload=openrouter_success_payload)
        adapter = OpenRouterProvider(
            config={"site_url": "https://blog.example", "site_name": "My Blog"}, http_client=client
        )
        adapter.request_explanation(OPENROUTER_KEY, "Explain X", "anthropic/claude-3.5-sonnet")

        request = transport.last_request
        assert str(request.url) == "https://openrouter.ai/api/v1/chat/completions"
        assert request.headers["Authorization"] == f"Bearer {OPENROUTER_KEY}"
        assert request.headers["HTTP-Referer"] == "https://blog.example"
        assert request.headers["X-Title"] == "My Blog - AI Explainer"
        assert transport.last_body["messages"][1] == {"role": "user", "content": "Explain X"}

    def test_cost_includes_platform_fee(self):
        """Test that 2000 tokens at $0.001/1K with a 5.5% fee cost 0.00211."""
        adapter = OpenRouterProvider()
        assert adapter.calculate_cost(2000, "some/unlisted-model") == pytest.approx(0.00211)

    def test_free_models_cost_nothing(self):
        adapter = OpenRouterProvider()
        assert adapter.calculate_cost(5000, "meta-llama/llama-3.2-3b-instruct:free") == 0.0

    def test_payment_required_is_quota(self):
        result = OpenRouterProvider().parse_response(
            json_response(402, {"error": {"message": "Insufficient credits"}}), "m"
        )
        assert result.error_kind == "quota_exceeded"
        assert result.disable_plugin is True

    def test_key_test_uses_free_model(self, make_client, openrouter_success_payload):
        """Test that key tests use a free model with a tiny budget."""
        client, transport = make_client(payload=openrouter_success_payload)
        result = OpenRouterProvider(http_client=client).test_api_key(OPENROUTER_KEY)

        assert result.success is True
        assert transport.last_body["model"] == TEST_MODEL
        assert transport.last_body["max_tokens"] == 10
        assert transport.last_body["temperature"] == 0

    def test_key_test_insufficient_credits(self, make_client):
        client, _ = make_client(status_code=402, payload={})
        result = OpenRouterProvider(http_client=client).test_api_key(OPENROUTER_KEY)

        assert result.success is False
        assert "insufficient credits" in result.message


class TestApiKeyTest:
    """Tests for the admin key test flow."""

    def test_empty_key(self):
        result = OpenAIProvider().test_api_key("")
        assert result.success is False
        assert result.message == "API key is required."

    def test_bad_format_skips_network(self, make_client):
        """Test that malformed keys are rejected without a request."""
        client, transport = make_client()
        result = OpenAIProvider(http_client=client).test_api_key("not-a-key")

        assert result.message == "Invalid API key format."
        assert transport.requests == []

    @pytest.mark.parametrize(
        "status_code,success,fragment",
        [
            (200, True, "valid and working"),
            (401, False, "Invalid API key"),
            (429, False, "Rate limit exceeded"),
            (500, False, "HTTP 500"),
        ],
    )
    def test_status_mapping(self, make_client, status_code, success, fragment):
        client, _ = make_client(status_code=status_code, payload={})
        result = OpenAIProvider(http_client=client).test_api_key(OPENAI_KEY)

        assert result.success is success
        assert fragment in result.message

    def test_connection_failure(self):
        def handler(request):
            raise httpx.ConnectError("no route", request=request)

        client = httpx.Client(transport=httpx.MockTransport(handler))
        result = ClaudeProvider(http_client=client).test_api_key(CLAUDE_KEY)

        assert result.success is False
        assert "Connection failed" in result.message

    def test_uses_short_timeout(self):
        """Test that key tests use the test timeout rather than the explanation timeout."""
        adapter = OpenAIProvider(config={"test_timeout": 5, "timeout": 10})
        calls = []

        def fake_post(url, headers, body, timeout):
            calls.append(timeout)
            return httpx.Response(200, json={})

        adapter._post = fake_post
        adapter.test_api_key(OPENAI_KEY)

        assert calls == [5.0]
