"""Explanation proxy: the single entry point for "explain this text"."""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Optional, Union

import httpx

from .cache import ExplanationCache
from .config import Settings
from .errors import (
    ConfigurationError,
    ExplainerError,
    GENERIC_FAILURE_MESSAGE,
    QuotaExceededError,
    RateLimitedError,
    TransportError,
    VendorError,
)
from .keystore import SecretProvider, SettingsSecretProvider
from .models import (
    ExplanationRequest,
    ExplanationResult,
    ProviderTestResult,
    ReadingLevel,
    RequestOptions,
    RequestState,
)
from .pricing import CostCalculator
from .prompts import build_prompt
from .providers import registry
from .providers.base import ProviderAdapter
from .providers.factory import get_provider, provider_config_from_settings
from .ratelimit import RateLimiter
from .state import PluginState
from .usage import ExplanationCallLogger
from .validation import SelectionValidator, sanitize_context

logger = logging.getLogger(__name__)

DISABLED_MESSAGE = "Explanations are currently disabled."
RATE_LIMITED_MESSAGE = "Rate limit exceeded. Please wait before making another request."
NO_API_KEY_MESSAGE = "API key not configured. Please check your settings."

# Adapter error kinds and the terminal state each one lands in
_FAILURE_STATES = {
    "quota_exceeded": RequestState.QUOTA_EXCEEDED,
    "transport_error": RequestState.TRANSPORT_ERROR,
}


@dataclass
class ExplanationOutcome:
    """Terminal result of one explanation request, ready for the HTTP layer."""

    state: RequestState
    success: bool
    explanation: Optional[str] = None
    error: Optional[str] = None
    error_kind: Optional[str] = None
    tokens_used: int = 0
    cost_usd: float = 0.0
    response_time: float = 0.0
    provider: Optional[str] = None
    model: Optional[str] = None
    reading_level: str = ReadingLevel.STANDARD.value
    cached: bool = False
    cached_explanations: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_error(cls, error: ExplainerError, reading_level: ReadingLevel) -> "ExplanationOutcome":
        return cls(
            state=RequestState(error.kind),
            success=False,
            error=error.user_message,
            error_kind=error.kind,
            reading_level=reading_level.value,
        )

    def to_response(self) -> dict[str, Any]:
        """JSON body returned to the browser: ``{success, data}``."""
        if not self.success:
            data = {"error": self.error}
            if self.error_kind:
                data["error_type"] = self.error_kind
            return {"success": False, "data": data}

        return {
            "success": True,
            "data": {
                "explanation": self.explanation,
                "reading_level": self.reading_level,
                "cached": self.cached,
                "cached_explanations": self.cached_explanations,
                "tokens_used": self.tokens_used,
                "cost": self.cost_usd,
                "response_time": round(self.response_time, 3),
                "provider": self.provider,
                "model": self.model,
            },
        }


class ExplanationProxy:
    """Validates a selection, resolves the provider and dispatches one vendor call.

    No exception escapes ``get_explanation``; every path ends in an
    ``ExplanationOutcome`` carrying a terminal ``RequestState``.
    """

    def __init__(
        self,
        settings: Settings,
        secret_provider: Optional[SecretProvider] = None,
        cache: Optional[ExplanationCache] = None,
        rate_limiter: Optional[RateLimiter] = None,
        state: Optional[PluginState] = None,
        call_logger: Optional[ExplanationCallLogger] = None,
        cost_calculator: Optional[CostCalculator] = None,
        http_client: Optional[httpx.Client] = None,
    ):
        self.settings = settings
        self.secret_provider = secret_provider or SettingsSecretProvider(settings)
        if cache is None:
            cache = ExplanationCache(
                ttl_hours=settings.cache_duration_hours, enabled=settings.cache_enabled
            )
        self.cache = cache
        if rate_limiter is None:
            rate_limiter = RateLimiter(
                limit_per_minute=settings.rate_limit_per_minute,
                enabled=settings.rate_limit_enabled,
            )
        self.rate_limiter = rate_limiter
        self.state = state or PluginState(enabled=settings.enabled, path=settings.state_path)
        self.call_logger = call_logger or ExplanationCallLogger(
            settings.cost_log_path, enabled=settings.enable_cost_logging
        )
        self.cost_calculator = cost_calculator or CostCalculator()
        self.http_client = http_client
        self.validator = SelectionValidator.from_settings(settings)

    # Provider resolution

    def get_adapter(self, provider_key: Optional[str] = None) -> ProviderAdapter:
        """Adapter for ``provider_key`` (or the configured provider) with injected pricing."""
        key = provider_key or self.settings.api_provider
        if not registry.provider_exists(key):
            logger.warning(
                f"Unknown provider '{key}', falling back to '{registry.DEFAULT_PROVIDER_KEY}'"
            )
            key = registry.DEFAULT_PROVIDER_KEY
        return get_provider(
            key,
            config=provider_config_from_settings(self.settings),
            http_client=self.http_client,
            cost_strategy=self.cost_calculator.get_strategy(key),
        )

    def resolve_model(self, provider_key: str, model_id: Optional[str] = None) -> str:
        """Configured model if the provider offers it, otherwise the provider default."""
        model_id = model_id if model_id is not None else self.settings.api_model
        if model_id and registry.model_exists(provider_key, model_id):
            return model_id

        default_model = registry.get_default_model(provider_key)
        if model_id:
            logger.warning(
                f"Model '{model_id}' is not offered by '{provider_key}', using '{default_model}'"
            )
        return default_model

    def resolve_request(
        self,
        selected_text: str,
        reading_level: ReadingLevel,
        options: Optional[RequestOptions] = None,
    ) -> tuple[ProviderAdapter, ExplanationRequest]:
        """
        Resolve adapter, model and API key for a validated selection.

        Raises:
            ConfigurationError: If no usable API key is configured
        """
        adapter = self.get_adapter()
        provider_key = adapter.get_key()
        api_key = self.secret_provider.get_api_key(provider_key)
        if not api_key and not self.settings.mock_mode:
            raise ConfigurationError(
                NO_API_KEY_MESSAGE, detail=f"No API key configured for provider '{provider_key}'"
            )

        request = ExplanationRequest(
            selected_text=selected_text,
            reading_level=reading_level,
            provider_key=provider_key,
            model_id=self.resolve_model(provider_key),
            api_key=api_key or "",
            options=options or RequestOptions(),
        )
        return adapter, request

    # Main flow

    def get_explanation(
        self,
        selected_text: str,
        reading_level: Any = ReadingLevel.STANDARD,
        context: Optional[Union[dict[str, Any], str]] = None,
        user_identifier: Optional[str] = None,
    ) -> ExplanationOutcome:
        """Run a request from ``received`` to a terminal state."""
        level = ReadingLevel.sanitize(reading_level)
        start_time = time.monotonic()
        state = RequestState.RECEIVED

        try:
            if not self.state.enabled:
                raise ConfigurationError(DISABLED_MESSAGE, detail="Explanations are disabled")

            text = self.validator.validate(selected_text)
            state = RequestState.VALIDATED

            if user_identifier and self.rate_limiter.is_rate_limited(user_identifier):
                raise RateLimitedError(RATE_LIMITED_MESSAGE)

            adapter, request = self.resolve_request(text, level)
            state = RequestState.PROVIDER_RESOLVED
        except ExplainerError as e:
            logger.info(f"Explanation request ended in {e.kind} after {state.value}: {e.detail}")
            return ExplanationOutcome.from_error(e, level)

        all_cached = self.cache.get_all_levels(text)
        if level.value in all_cached:
            logger.debug(f"Cache hit for reading level '{level.value}'")
            others = {k: v for k, v in all_cached.items() if k != level.value}
            self._log_call(request, 0, 0.0, time.monotonic() - start_time, "success", cached=True)
            return ExplanationOutcome(
                state=RequestState.SUCCESS,
                success=True,
                explanation=all_cached[level.value],
                response_time=time.monotonic() - start_time,
                provider=request.provider_key,
                model=request.model_id,
                reading_level=level.value,
                cached=True,
                cached_explanations=others,
            )

        prompt = build_prompt(
            text,
            level,
            language=self.settings.language,
            context=sanitize_context(context),
            custom_prompts=self.settings.reading_level_prompts,
        )

        logger.info(
            f"Dispatching explanation: provider={request.provider_key}, model={request.model_id}, "
            f"reading_level={level.value}, prompt_length={len(prompt)}"
        )
        state = RequestState.DISPATCHED
        result = self._dispatch(adapter, request, prompt)
        response_time = time.monotonic() - start_time

        if result.success:
            self.cache.store(
                text,
                level,
                result.explanation,
                provider=request.provider_key,
                model=request.model_id,
                tokens_used=result.tokens_used,
                cost_usd=result.cost_usd,
            )
            self._log_call(request, result.tokens_used, result.cost_usd, response_time, "success")
            return ExplanationOutcome(
                state=RequestState.SUCCESS,
                success=True,
                explanation=result.explanation,
                tokens_used=result.tokens_used,
                cost_usd=result.cost_usd,
                response_time=response_time,
                provider=request.provider_key,
                model=request.model_id,
                reading_level=level.value,
                cached_explanations=all_cached,
            )

        return self._failure_outcome(adapter, request, result, response_time)

    def _dispatch(
        self, adapter: ProviderAdapter, request: ExplanationRequest, prompt: str
    ) -> ExplanationResult:
        if self.settings.mock_mode:
            return self._mock_result(adapter, request)
        return adapter.request_explanation(
            request.api_key, prompt, request.model_id, request.options
        )

    def _mock_result(self, adapter: ProviderAdapter, request: ExplanationRequest) -> ExplanationResult:
        preview = request.selected_text[:30] + ("..." if len(request.selected_text) > 30 else "")
        explanation = (
            f"Mock explanation for: '{preview}' "
            f"[Provider: {adapter.get_name()}, Model: {request.model_id}] "
            f"[Reading level: {request.reading_level.value}]"
        )
        tokens_used = 25
        return ExplanationResult.ok(
            explanation, tokens_used, adapter.calculate_cost(tokens_used, request.model_id)
        )

    def _failure_outcome(
        self,
        adapter: ProviderAdapter,
        request: ExplanationRequest,
        result: ExplanationResult,
        response_time: float,
    ) -> ExplanationOutcome:
        kind = result.error_kind or "vendor_error"
        state = _FAILURE_STATES.get(kind, RequestState.VENDOR_ERROR)

        if result.disable_plugin:
            self.state.auto_disable(result.error or "API usage limit exceeded.", adapter.get_name())

        detail = result.error or GENERIC_FAILURE_MESSAGE
        if state == RequestState.QUOTA_EXCEEDED:
            error = QuotaExceededError(detail)
        elif state == RequestState.TRANSPORT_ERROR:
            error = TransportError(detail)
        else:
            error = VendorError(detail, status_code=result.status_code)

        # An invalid key is actionable, so its message is shown as-is
        message = detail if kind == "api_key_invalid" else error.user_message

        logger.warning(
            f"Explanation failed: state={state.value}, kind={kind}, "
            f"provider={request.provider_key}, status={result.status_code}, detail={error.detail}"
        )
        self._log_call(request, 0, 0.0, response_time, state.value)

        return ExplanationOutcome(
            state=state,
            success=False,
            error=message,
            error_kind=kind,
            response_time=response_time,
            provider=request.provider_key,
            model=request.model_id,
            reading_level=request.reading_level.value,
        )

    def _log_call(
        self,
        request: ExplanationRequest,
        tokens_used: int,
        cost_usd: float,
        response_time: float,
        outcome: str,
        cached: bool = False,
    ):
        self.call_logger.log_call(
            provider=request.provider_key,
            model=request.model_id,
            reading_level=request.reading_level.value,
            tokens_used=tokens_used,
            cost_usd=cost_usd,
            response_time=response_time,
            outcome=outcome,
            cached=cached,
        )

    # Secondary entry points

    def get_direct_explanation(
        self,
        prompt: str,
        provider_key: Optional[str] = None,
        options: Optional[Union[RequestOptions, dict]] = None,
    ) -> Optional[str]:
        """Send a raw prompt, bypassing validation, cache and templates.

        ``provider_key`` is either a provider key or ``"provider:model"``.
        Returns the explanation text, or None on any failure.
        """
        model_id = None
        if provider_key and ":" in provider_key:
            provider_key, model_id = provider_key.split(":", 1)

        if provider_key and not registry.provider_exists(provider_key):
            logger.error(f"Unknown provider for direct explanation: {provider_key}")
            return None

        adapter = self.get_adapter(provider_key)
        api_key = self.secret_provider.get_api_key(adapter.get_key())
        if not api_key:
            logger.error(f"No API key configured for provider: {adapter.get_key()}")
            return None

        model = self.resolve_model(adapter.get_key(), model_id)
        result = adapter.request_explanation(api_key, prompt, model, options)
        if not result.success:
            logger.warning(f"Direct explanation failed: {result.to_dict()}")
            return None
        return result.explanation

    def test_api_key(self, api_key: str, provider_key: Optional[str] = None) -> ProviderTestResult:
        """Admin "Test API Key" action for the given or configured provider."""
        return self.get_adapter(provider_key).test_api_key(api_key)

    def reenable(self):
        self.state.reenable()
