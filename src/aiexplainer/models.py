"""Value objects shared by providers, pricing and the proxy."""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Optional


class ReadingLevel(str, Enum):
    """Complexity tier that selects the prompt template."""

    VERY_SIMPLE = "very_simple"
    SIMPLE = "simple"
    STANDARD = "standard"
    DETAILED = "detailed"
    EXPERT = "expert"

    @classmethod
    def sanitize(cls, value: Any) -> "ReadingLevel":
        """Coerce arbitrary input to a reading level, defaulting to standard."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value))
        except ValueError:
            return cls.STANDARD


class RequestState(str, Enum):
    """Request-scoped lifecycle of a single explanation call."""

    RECEIVED = "received"
    VALIDATED = "validated"
    PROVIDER_RESOLVED = "provider_resolved"
    DISPATCHED = "dispatched"
    # Terminal states
    SUCCESS = "success"
    VENDOR_ERROR = "vendor_error"
    QUOTA_EXCEEDED = "quota_exceeded"
    VALIDATION_REJECTED = "validation_rejected"
    TRANSPORT_ERROR = "transport_error"
    CONFIGURATION_ERROR = "configuration_error"
    RATE_LIMITED = "rate_limited"
    SECURITY_REJECTED = "security_rejected"

    @property
    def is_terminal(self) -> bool:
        return self not in (
            RequestState.RECEIVED,
            RequestState.VALIDATED,
            RequestState.PROVIDER_RESOLVED,
            RequestState.DISPATCHED,
        )


@dataclass(frozen=True)
class ModelInfo:
    """A selectable model of a provider."""

    id: str
    label: str
    max_tokens: int = 4096
    cost_per_1k_tokens: float = 0.002
    temperature: float = 0.7


@dataclass(frozen=True)
class ProviderDescriptor:
    """Static description of a vendor integration."""

    key: str
    display_name: str
    api_endpoint: str
    api_key_prefix: str
    default_model: str
    models: tuple[ModelInfo, ...]
    api_key_min_length: int = 20
    api_key_max_length: int = 200


@dataclass
class RequestOptions:
    """Per-call overrides; None means use the adapter's configured default."""

    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    timeout: Optional[float] = None

    def merged_with(self, defaults: dict) -> dict:
        """Return a plain dict with defaults filled in."""
        merged = dict(defaults)
        for key, value in asdict(self).items():
            if value is not None:
                merged[key] = value
        return merged


@dataclass
class ExplanationRequest:
    """An incoming call, resolved against configuration. Never persisted."""

    selected_text: str
    reading_level: ReadingLevel
    provider_key: str
    model_id: str
    api_key: str = field(repr=False)
    options: RequestOptions = field(default_factory=RequestOptions)


@dataclass
class ExplanationResult:
    """Normalized outcome of one vendor call."""

    success: bool
    explanation: Optional[str] = None
    tokens_used: int = 0
    cost_usd: float = 0.0
    error: Optional[str] = None
    error_kind: Optional[str] = None
    disable_plugin: bool = False
    status_code: Optional[int] = None

    @classmethod
    def ok(cls, explanation: str, tokens_used: int, cost_usd: float) -> "ExplanationResult":
        return cls(
            success=True,
            explanation=explanation,
            tokens_used=max(0, int(tokens_used)),
            cost_usd=max(0.0, float(cost_usd)),
        )

    @classmethod
    def failure(
        cls,
        error: str,
        error_kind: str = "vendor_error",
        disable_plugin: bool = False,
        status_code: Optional[int] = None,
    ) -> "ExplanationResult":
        return cls(
            success=False,
            error=error,
            error_kind=error_kind,
            disable_plugin=disable_plugin,
            status_code=status_code,
        )

    def to_dict(self) -> dict:
        """Convert to dictionary, omitting absent optional fields."""
        return {key: value for key, value in asdict(self).items() if value is not None}


@dataclass
class ProviderTestResult:
    """Result of the admin "Test API Key" action."""

    success: bool
    message: str
    error_type: Optional[str] = None
