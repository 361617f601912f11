"""OpenRouter adapter (OpenAI-compatible API with attribution headers)."""

from typing import Any, Optional, Union

from ..models import ProviderTestResult, RequestOptions
from .base import ProviderAdapter, TEST_PROMPT
from .openai_provider import build_chat_messages

# Free model used for key tests so they never cost anything
TEST_MODEL = "meta-llama/llama-3.2-3b-instruct:free"

QUOTA_KEYWORDS = ("quota", "credit", "balance", "insufficient", "exceeded", "limit", "payment")


class OpenRouterProvider(ProviderAdapter):
    """OpenRouter HTTP API adapter."""

    key = "openrouter"

    def get_name(self) -> str:
        return "OpenRouter"

    def get_default_config(self) -> dict[str, Any]:
        return {
            **super().get_default_config(),
            "site_url": "http://localhost",
            "site_name": "AI Explainer",
        }

    def get_request_headers(self, api_key: str) -> dict[str, str]:
        return {
            **self.get_common_headers(),
            "Authorization": f"Bearer {api_key}",
            "HTTP-Referer": self.get_config("site_url"),
            "X-Title": f"{self.get_config('site_name')} - AI Explainer",
        }

    def prepare_request_body(
        self, prompt: str, model: str, options: Optional[Union[RequestOptions, dict]] = None
    ) -> dict[str, Any]:
        resolved = self.resolve_options(options)
        return {
            "model": model,
            "messages": build_chat_messages(prompt),
            "max_tokens": resolved["max_tokens"],
            "temperature": resolved["temperature"],
            "top_p": resolved.get("top_p", 1.0),
            "frequency_penalty": resolved.get("frequency_penalty", 0.0),
            "presence_penalty": resolved.get("presence_penalty", 0.0),
        }

    def get_test_model(self) -> str:
        return TEST_MODEL

    def build_test_body(self, model: str) -> dict[str, Any]:
        return {
            "model": model,
            "messages": [{"role": "user", "content": TEST_PROMPT}],
            "max_tokens": 10,
            "temperature": 0,
        }

    def extract_text(self, data: dict) -> Optional[str]:
        return data["choices"][0]["message"]["content"]

    def extract_tokens(self, data: dict) -> int:
        return (data.get("usage") or {}).get("total_tokens", 0)

    def is_quota_exceeded_error(self, status_code: int, data: dict) -> bool:
        # 402 Payment Required is how OpenRouter reports an empty balance
        if status_code in (402, 429):
            return True

        _, _, message = self._error_fields(data)
        return any(keyword in message for keyword in QUOTA_KEYWORDS)

    def get_quota_exceeded_message(self, data: dict) -> str:
        return self._build_quota_message(
            data,
            "OpenRouter API credits exhausted. The plugin has been automatically disabled "
            "to prevent further charges.",
            "OpenRouter",
            "Please add credits to your OpenRouter account, then manually re-enable the "
            "plugin when ready.",
        )

    def interpret_test_status(self, status_code: int) -> ProviderTestResult:
        if status_code == 402:
            return ProviderTestResult(
                success=False,
                message="OpenRouter account has insufficient credits. Please add credits to your account.",
            )
        return super().interpret_test_status(status_code)
