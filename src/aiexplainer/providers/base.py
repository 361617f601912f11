"""Base provider adapter interface."""

import json
import logging
import re
import time
from abc import ABC, abstractmethod
from typing import Any, Optional, Union

import httpx

from ..errors import TransportError, GENERIC_FAILURE_MESSAGE
from ..models import ExplanationResult, ProviderDescriptor, ProviderTestResult, RequestOptions
from ..pricing import CostStrategy, get_default_strategy
from . import registry

logger = logging.getLogger(__name__)

SYSTEM_MESSAGE = (
    "You are a helpful assistant that explains text in simple, clear terms. "
    "Keep explanations concise and accessible."
)
TEST_PROMPT = 'Say "API key is working" if you can read this.'

# Either a vendor response or the transport failure that prevented one
RawResponse = Union[httpx.Response, TransportError]


class ProviderAdapter(ABC):
    """Translates explanation requests to one vendor's wire format and back.

    Subclasses supply the vendor specifics (endpoint, auth headers, body shape,
    response paths and quota heuristics). Everything that is the same for all
    vendors lives here.
    """

    key: str = ""

    def __init__(
        self,
        config: Optional[dict] = None,
        cost_strategy: Optional[CostStrategy] = None,
        http_client: Optional[httpx.Client] = None,
    ):
        self.config = {**self.get_default_config(), **(config or {})}
        self.cost_strategy = cost_strategy or get_default_strategy(self.get_key())
        self._http_client = http_client

    # Identity

    @abstractmethod
    def get_name(self) -> str:
        """Human-readable vendor name."""

    def get_key(self) -> str:
        return self.key

    @property
    def descriptor(self) -> ProviderDescriptor:
        return registry.PROVIDERS[self.get_key()]

    def get_models(self) -> list[dict[str, str]]:
        return registry.get_provider_models_for_admin(self.get_key())

    def get_api_endpoint(self, model: str = "") -> str:
        return self.descriptor.api_endpoint

    def build_request_url(self, api_key: str, model: str) -> str:
        """Full URL for a request; only Gemini puts anything besides the endpoint here."""
        return self.get_api_endpoint(model)

    # Configuration

    def get_default_config(self) -> dict[str, Any]:
        return {
            "max_tokens": 150,
            "timeout": 10,
            "test_timeout": 5,
            "temperature": 0.7,
            "user_agent": "AIExplainer/0.1",
        }

    def get_config(self, key: str, default: Any = None) -> Any:
        return self.config.get(key, default)

    def get_max_tokens(self) -> int:
        return self.get_config("max_tokens", 150)

    def get_timeout(self) -> float:
        return self.get_config("timeout", 10)

    def resolve_options(self, options: Optional[Union[RequestOptions, dict]]) -> dict[str, Any]:
        """Merge per-call options over configured defaults."""
        defaults = {
            "temperature": self.get_config("temperature", 0.7),
            "max_tokens": self.get_max_tokens(),
            "timeout": self.get_timeout(),
        }
        if options is None:
            return defaults
        if isinstance(options, RequestOptions):
            return options.merged_with(defaults)
        return {**defaults, **{k: v for k, v in options.items() if v is not None}}

    # Request building

    def get_common_headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "User-Agent": self.get_config("user_agent"),
        }

    @abstractmethod
    def get_request_headers(self, api_key: str) -> dict[str, str]:
        """Headers including vendor authentication."""

    @abstractmethod
    def prepare_request_body(
        self, prompt: str, model: str, options: Optional[Union[RequestOptions, dict]] = None
    ) -> dict[str, Any]:
        """Vendor-specific JSON payload."""

    def _post(self, url: str, headers: dict, body: dict, timeout: float) -> httpx.Response:
        if self._http_client is not None:
            return self._http_client.post(url, headers=headers, json=body, timeout=timeout)
        with httpx.Client(timeout=timeout) as client:
            return client.post(url, headers=headers, json=body)

    def make_request(
        self,
        api_key: str,
        prompt: str,
        model: str,
        options: Optional[Union[RequestOptions, dict]] = None,
    ) -> httpx.Response:
        """Issue exactly one POST to the vendor. No retries.

        Raises:
            TransportError: If the request fails or times out
        """
        resolved = self.resolve_options(options)
        headers = self.get_request_headers(api_key)
        body = self.prepare_request_body(prompt, model, resolved)
        timeout = float(resolved["timeout"])

        logger.debug(
            f"{self.get_name()} request: model={model}, prompt_length={len(prompt)}, "
            f"api_key_configured={bool(api_key)}, timeout={timeout}s"
        )

        start_time = time.monotonic()
        try:
            response = self._post(self.build_request_url(api_key, model), headers, body, timeout)
        except httpx.TimeoutException as e:
            logger.warning(f"{self.get_name()} request timed out after {timeout}s")
            raise TransportError(f"Request timed out: {e}") from e
        except httpx.HTTPError as e:
            logger.warning(f"{self.get_name()} request failed: {e}")
            raise TransportError(f"Request failed: {e}") from e

        logger.debug(
            f"{self.get_name()} request completed: status={response.status_code}, "
            f"response_time={time.monotonic() - start_time:.3f}s, "
            f"response_size={len(response.content)} bytes"
        )
        return response

    def request_explanation(
        self,
        api_key: str,
        prompt: str,
        model: str,
        options: Optional[Union[RequestOptions, dict]] = None,
    ) -> ExplanationResult:
        """Make the request and parse it. Never raises."""
        try:
            response: RawResponse = self.make_request(api_key, prompt, model, options)
        except TransportError as e:
            response = e
        return self.parse_response(response, model)

    # Response handling

    @staticmethod
    def _decode_json(response: httpx.Response) -> Optional[Any]:
        try:
            return response.json()
        except (json.JSONDecodeError, UnicodeDecodeError, ValueError):
            return None

    def handle_common_errors(self, response: RawResponse) -> Optional[ExplanationResult]:
        """Return a failure result for transport, auth, quota and HTTP errors."""
        if isinstance(response, TransportError):
            return ExplanationResult.failure(
                "API request failed. Please try again.", error_kind="transport_error"
            )

        status_code = response.status_code

        if status_code == 401:
            return ExplanationResult.failure(
                "Invalid API key. Please check your API key settings.",
                error_kind="api_key_invalid",
                disable_plugin=True,
                status_code=status_code,
            )

        quota_error = self.check_quota_exceeded(response)
        if quota_error:
            return quota_error

        if status_code != 200:
            data = self._decode_json(response)
            detail = self._error_message(data) or response.text[:200]
            logger.warning(f"{self.get_name()} returned HTTP {status_code}: {detail}")
            return ExplanationResult.failure(
                GENERIC_FAILURE_MESSAGE, error_kind="vendor_error", status_code=status_code
            )

        if self._decode_json(response) is None:
            return ExplanationResult.failure(
                "Invalid API response format.", error_kind="invalid_response", status_code=status_code
            )

        return None

    def check_quota_exceeded(self, response: httpx.Response) -> Optional[ExplanationResult]:
        data = self._decode_json(response)
        if not isinstance(data, dict):
            data = {}

        if self.is_quota_exceeded_error(response.status_code, data):
            logger.error(f"{self.get_name()} quota exceeded (HTTP {response.status_code})")
            return ExplanationResult.failure(
                self.get_quota_exceeded_message(data),
                error_kind="quota_exceeded",
                disable_plugin=True,
                status_code=response.status_code,
            )
        return None

    @staticmethod
    def _error_message(data: Any) -> str:
        if isinstance(data, dict) and isinstance(data.get("error"), dict):
            return str(data["error"].get("message") or "")
        return ""

    def parse_response(self, response: RawResponse, model: str) -> ExplanationResult:
        """Normalize a vendor response. Never raises."""
        error = self.handle_common_errors(response)
        if error:
            return error

        data = self._decode_json(response)
        if not isinstance(data, dict):
            return ExplanationResult.failure(
                "Invalid API response format.", error_kind="invalid_response"
            )

        if "error" in data:
            message = self._error_message(data) or "Unknown API error."
            logger.warning(f"{self.get_name()} error payload: {message}")
            return ExplanationResult.failure(message, error_kind="vendor_error")

        try:
            text = self.extract_text(data)
        except (KeyError, IndexError, TypeError):
            text = None

        if not isinstance(text, str):
            return ExplanationResult.failure(
                "No explanation received from API.", error_kind="invalid_response"
            )

        try:
            tokens_used = int(self.extract_tokens(data) or 0)
        except (KeyError, IndexError, TypeError, ValueError):
            tokens_used = 0

        return ExplanationResult.ok(
            explanation=text.strip(),
            tokens_used=tokens_used,
            cost_usd=self.calculate_cost(tokens_used, model),
        )

    @abstractmethod
    def extract_text(self, data: dict) -> Optional[str]:
        """Pull the generated text out of a successful payload."""

    @abstractmethod
    def extract_tokens(self, data: dict) -> int:
        """Pull the token usage count out of a successful payload."""

    def calculate_cost(self, tokens_used: int, model: str) -> float:
        return self.cost_strategy.calculate_cost(tokens_used, model)

    # Quota detection

    def is_quota_exceeded_error(self, status_code: int, data: dict) -> bool:
        """Vendor-specific heuristic; the default never classifies as quota."""
        return False

    def get_quota_exceeded_message(self, data: dict) -> str:
        name = self.get_name()
        return (
            f"API usage limit exceeded for {name}. The plugin has been automatically "
            f"disabled to prevent further charges. Please check your {name} account "
            f"billing and usage limits, then manually re-enable the plugin when ready."
        )

    def _build_quota_message(self, data: dict, headline: str, vendor_label: str, advice: str) -> str:
        message = headline
        api_message = self._error_message(data)
        if api_message:
            message += f" {vendor_label} error: {api_message}"
        return f"{message} {advice}"

    @staticmethod
    def _error_fields(data: dict) -> tuple[str, str, str]:
        """Return (type, code, lowercased message) from an ``error`` object."""
        error = data.get("error") if isinstance(data, dict) else None
        if not isinstance(error, dict):
            return "", "", ""
        return (
            str(error.get("type") or ""),
            str(error.get("code") or ""),
            str(error.get("message") or "").lower(),
        )

    # API key validation

    def validate_api_key_base(
        self, api_key: Any, prefix: str, min_length: int = 20, max_length: int = 200
    ) -> bool:
        """Format-only check: prefix, length bounds and character set."""
        if not api_key or not isinstance(api_key, str):
            return False

        api_key = api_key.strip()
        if not api_key.startswith(prefix):
            return False
        if len(api_key) < min_length or len(api_key) > max_length:
            return False

        return re.fullmatch(re.escape(prefix) + r"[a-zA-Z0-9._-]+", api_key) is not None

    def validate_api_key(self, api_key: Any) -> bool:
        descriptor = self.descriptor
        return self.validate_api_key_base(
            api_key,
            descriptor.api_key_prefix,
            descriptor.api_key_min_length,
            descriptor.api_key_max_length,
        )

    # Admin "Test API Key"

    def test_api_key(self, api_key: str) -> ProviderTestResult:
        if not api_key:
            return ProviderTestResult(success=False, message="API key is required.")
        if not self.validate_api_key(api_key):
            return ProviderTestResult(success=False, message="Invalid API key format.")
        return self.perform_test_request(api_key)

    def get_test_model(self) -> str:
        return self.descriptor.default_model

    def build_test_body(self, model: str) -> dict[str, Any]:
        return self.prepare_request_body(TEST_PROMPT, model, {"max_tokens": 10, "temperature": 0})

    def perform_test_request(self, api_key: str) -> ProviderTestResult:
        """Send a minimal prompt with a tiny token budget and a short timeout."""
        model = self.get_test_model()
        try:
            response = self._post(
                self.build_request_url(api_key, model),
                self.get_request_headers(api_key),
                self.build_test_body(model),
                float(self.get_config("test_timeout", 5)),
            )
        except httpx.HTTPError as e:
            logger.warning(f"{self.get_name()} key test failed to connect: {e}")
            return ProviderTestResult(
                success=False,
                message="Connection failed. Please check your internet connection.",
                error_type="transport_error",
            )

        return self.interpret_test_status(response.status_code)

    def interpret_test_status(self, status_code: int) -> ProviderTestResult:
        if status_code == 401:
            return ProviderTestResult(
                success=False,
                message=f"Invalid API key. Please check your {self.get_name()} API key.",
                error_type="api_key_invalid",
            )
        if status_code == 429:
            return ProviderTestResult(
                success=False, message="Rate limit exceeded. Please try again later."
            )
        if status_code != 200:
            return ProviderTestResult(
                success=False, message=f"API error (HTTP {status_code}). Please try again."
            )
        return ProviderTestResult(
            success=True, message=f"{self.get_name()} API key is valid and working."
        )
