"""Anthropic Claude messages adapter."""

from typing import Any, Optional, Union

from ..models import RequestOptions
from .base import ProviderAdapter, SYSTEM_MESSAGE, TEST_PROMPT
from .openai_provider import mentions_quota

# Requests without a pinned version are rejected by the Messages API
API_VERSION = "2023-06-01"

QUOTA_ERROR_TYPES = (
    "credit_insufficient",
    "quota_exceeded",
    "billing_error",
    "account_suspended",
    "payment_required",
    "insufficient_credits",
)
QUOTA_KEYWORDS = (
    "quota",
    "credit",
    "billing",
    "payment",
    "exceeded",
    "insufficient",
    "limit",
    "usage",
    "account suspended",
    "suspended",
)


class ClaudeProvider(ProviderAdapter):
    """Anthropic Claude adapter.

    The system prompt is a top-level ``system`` field; ``messages`` only ever
    holds the user turn.
    """

    key = "claude"

    def get_name(self) -> str:
        return "Claude"

    def get_request_headers(self, api_key: str) -> dict[str, str]:
        return {
            **self.get_common_headers(),
            "x-api-key": api_key,
            "anthropic-version": API_VERSION,
        }

    def prepare_request_body(
        self, prompt: str, model: str, options: Optional[Union[RequestOptions, dict]] = None
    ) -> dict[str, Any]:
        resolved = self.resolve_options(options)
        return {
            "model": model,
            "max_tokens": resolved["max_tokens"],
            "temperature": resolved["temperature"],
            "system": SYSTEM_MESSAGE,
            "messages": [{"role": "user", "content": prompt}],
        }

    def build_test_body(self, model: str) -> dict[str, Any]:
        return {
            "model": model,
            "max_tokens": 10,
            "temperature": 0,
            "system": "You are a helpful assistant.",
            "messages": [{"role": "user", "content": TEST_PROMPT}],
        }

    def extract_text(self, data: dict) -> Optional[str]:
        return data["content"][0]["text"]

    def extract_tokens(self, data: dict) -> int:
        return (data.get("usage") or {}).get("output_tokens", 0)

    def is_quota_exceeded_error(self, status_code: int, data: dict) -> bool:
        if status_code == 403:
            return True

        if not isinstance(data.get("error"), dict):
            return False

        error_type, _, message = self._error_fields(data)
        if error_type in QUOTA_ERROR_TYPES:
            return True

        return mentions_quota(message, QUOTA_KEYWORDS, ("quota", "credit", "billing"))

    def get_quota_exceeded_message(self, data: dict) -> str:
        return self._build_quota_message(
            data,
            "Claude API usage limit exceeded. The plugin has been automatically disabled "
            "to prevent further charges.",
            "Claude",
            "Please check your Anthropic account billing and usage limits, then manually "
            "re-enable the plugin when ready.",
        )
