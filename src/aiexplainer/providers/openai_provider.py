"""OpenAI chat completions adapter."""

from typing import Any, Optional, Union

from ..models import RequestOptions
from .base import ProviderAdapter, SYSTEM_MESSAGE, TEST_PROMPT

QUOTA_ERROR_TYPES = (
    "insufficient_quota",
    "quota_exceeded",
    "billing_not_active",
    "invalid_payment_method",
    "payment_required",
)
QUOTA_ERROR_CODES = ("insufficient_quota", "quota_exceeded", "billing_not_active")
QUOTA_KEYWORDS = ("quota", "billing", "payment", "credit", "exceeded", "insufficient", "limit", "usage")


def build_chat_messages(prompt: str) -> list[dict[str, str]]:
    """System + user turns shared by OpenAI-compatible APIs."""
    return [
        {"role": "system", "content": SYSTEM_MESSAGE},
        {"role": "user", "content": prompt},
    ]


def mentions_quota(message: str, keywords: tuple[str, ...], overrides: tuple[str, ...]) -> bool:
    """Keyword match that ignores plain rate-limit wording.

    A message mentioning "rate" only counts when it also contains one of
    ``overrides`` (e.g. "quota", "billing").
    """
    for keyword in keywords:
        if keyword in message:
            if "rate" not in message or any(word in message for word in overrides):
                return True
    return False


class OpenAIProvider(ProviderAdapter):
    """OpenAI API adapter."""

    key = "openai"

    def get_name(self) -> str:
        return "OpenAI"

    def get_request_headers(self, api_key: str) -> dict[str, str]:
        return {**self.get_common_headers(), "Authorization": f"Bearer {api_key}"}

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
        if status_code == 403:
            return True

        if not isinstance(data.get("error"), dict):
            return False

        error_type, error_code, message = self._error_fields(data)
        if error_type in QUOTA_ERROR_TYPES or error_code in QUOTA_ERROR_CODES:
            return True

        return mentions_quota(message, QUOTA_KEYWORDS, ("quota", "billing"))

    def get_quota_exceeded_message(self, data: dict) -> str:
        return self._build_quota_message(
            data,
            "OpenAI API usage limit exceeded. The plugin has been automatically disabled "
            "to prevent further charges.",
            "OpenAI",
            "Please check your OpenAI account billing and usage limits, then manually "
            "re-enable the plugin when ready.",
        )
