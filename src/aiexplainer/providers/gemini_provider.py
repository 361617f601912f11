"""Google Gemini generateContent adapter."""

from typing import Any, Optional, Union
from urllib.parse import quote_plus

from ..models import ProviderTestResult, RequestOptions
from .base import ProviderAdapter

QUOTA_KEYWORDS = (
    "quota",
    "exceeded",
    "limit",
    "rate limit",
    "daily limit",
    "api key",
    "billing",
    "insufficient",
)


class GeminiProvider(ProviderAdapter):
    """Google Gemini adapter.

    Gemini carries no auth header. The model is part of the URL path and the
    key travels as the ``key`` query parameter.
    """

    key = "gemini"

    def get_name(self) -> str:
        return "Google Gemini"

    def get_api_endpoint(self, model: str = "") -> str:
        base = self.descriptor.api_endpoint
        if not model:
            return base
        return f"{base}/{model}:generateContent"

    def build_request_url(self, api_key: str, model: str) -> str:
        return f"{self.get_api_endpoint(model)}?key={quote_plus(api_key)}"

    def get_request_headers(self, api_key: str) -> dict[str, str]:
        return self.get_common_headers()

    def prepare_request_body(
        self, prompt: str, model: str, options: Optional[Union[RequestOptions, dict]] = None
    ) -> dict[str, Any]:
        resolved = self.resolve_options(options)
        return {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": resolved["temperature"],
                "maxOutputTokens": resolved["max_tokens"],
            },
        }

    def extract_text(self, data: dict) -> Optional[str]:
        return data["candidates"][0]["content"]["parts"][0]["text"]

    def extract_tokens(self, data: dict) -> int:
        return (data.get("usageMetadata") or {}).get("totalTokenCount", 0)

    def is_quota_exceeded_error(self, status_code: int, data: dict) -> bool:
        if status_code in (403, 429):
            return True

        error = data.get("error")
        if not isinstance(error, dict):
            return False

        if error.get("code") in (403, 429):
            return True

        message = str(error.get("message") or "").lower()
        return any(keyword in message for keyword in QUOTA_KEYWORDS)

    def get_quota_exceeded_message(self, data: dict) -> str:
        return self._build_quota_message(
            data,
            "Google Gemini API quota exceeded. The plugin has been automatically disabled "
            "to prevent further charges.",
            "Google",
            "Please check your Google AI Studio quota and billing settings, then manually "
            "re-enable the plugin when ready.",
        )

    def interpret_test_status(self, status_code: int) -> ProviderTestResult:
        if status_code == 400:
            return ProviderTestResult(
                success=False,
                message="Invalid API key format. Please check your Google AI Studio API key.",
                error_type="api_key_invalid",
            )
        if status_code == 403:
            return ProviderTestResult(
                success=False,
                message="API key denied or quota exceeded. Please check your Google AI Studio settings.",
            )
        return super().interpret_test_status(status_code)
