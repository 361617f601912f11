"""Error taxonomy for explanation requests.

Every error carries a machine-readable ``kind`` and a ``user_message`` that is
safe to show an anonymous visitor. Vendor and transport details stay in
``detail`` and are only ever logged.
"""

from typing import Optional


GENERIC_FAILURE_MESSAGE = "Explanation temporarily unavailable. Please try again later."


class ExplainerError(Exception):
    """Base class for all explanation errors."""

    kind = "error"

    def __init__(self, message: str, detail: Optional[str] = None):
        self.user_message = message
        self.detail = detail or message
        super().__init__(message)


class ValidationError(ExplainerError):
    """Selection rejected before any network call (length, words, blocked content)."""

    kind = "validation_rejected"


class ConfigurationError(ExplainerError):
    """Missing API key or unusable provider configuration."""

    kind = "configuration_error"


class SecurityError(ExplainerError):
    """Request failed the nonce check."""

    kind = "security_rejected"


class RateLimitedError(ExplainerError):
    """Visitor exceeded the per-minute request allowance."""

    kind = "rate_limited"


class TransportError(ExplainerError):
    """Network failure or timeout; no vendor response is available."""

    kind = "transport_error"

    def __init__(self, detail: str):
        super().__init__(GENERIC_FAILURE_MESSAGE, detail=detail)


class VendorError(ExplainerError):
    """Vendor returned an error payload that is not quota related."""

    kind = "vendor_error"

    def __init__(self, detail: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(GENERIC_FAILURE_MESSAGE, detail=detail)


class QuotaExceededError(ExplainerError):
    """Vendor reported a billing or quota stop. Callers must not retry."""

    kind = "quota_exceeded"
