"""API routes for AI Explainer."""

import hmac
import json
import logging
from dataclasses import asdict
from typing import Any, Optional, Union

from fastapi import APIRouter, Depends, Form, Header, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..errors import SecurityError
from ..models import ReadingLevel
from ..prompts import READING_LEVEL_LABELS
from ..providers import registry
from ..proxy import ExplanationOutcome
from ..usage import read_log

logger = logging.getLogger(__name__)

router = APIRouter()


def get_proxy():
    """Get the global explanation proxy."""
    from .app import get_proxy as _get_proxy

    return _get_proxy()


def get_nonce_manager():
    """Get the global nonce manager."""
    from .app import get_nonce_manager as _get_nonce_manager

    return _get_nonce_manager()


def require_admin(x_admin_token: Optional[str] = Header(None)) -> None:
    """Check the X-Admin-Token header against the configured admin token."""
    expected = get_proxy().settings.admin_token
    if not expected:
        logger.warning("Admin request refused: EXPLAINER_ADMIN_TOKEN is not set")
        raise HTTPException(status_code=403, detail="Admin endpoints are disabled")
    if not x_admin_token or not hmac.compare_digest(x_admin_token, expected):
        raise HTTPException(status_code=401, detail="Invalid admin token")


class KeyTestRequest(BaseModel):
    """Request to test an API key."""

    api_key: str
    provider: Optional[str] = None


class KeyTestResponse(BaseModel):
    """Result of an API key test."""

    success: bool
    message: str
    error_type: Optional[str] = None


def parse_context(raw: Optional[str]) -> Optional[Union[dict[str, Any], str]]:
    """Decode a JSON context object, falling back to the raw string."""
    if not raw or not raw.strip():
        return None
    raw = raw.strip()
    if raw[0] in "{[":
        try:
            decoded = json.loads(raw)
        except json.JSONDecodeError:
            return raw
        if isinstance(decoded, dict):
            return decoded
    return raw


# Explanations


@router.get("/nonce")
def get_nonce():
    """Issue a nonce for the explain endpoint."""
    return {"nonce": get_nonce_manager().create_nonce()}


@router.post("/explain")
def explain(
    request: Request,
    text: str = Form(""),
    reading_level: str = Form(ReadingLevel.STANDARD.value),
    nonce: str = Form(""),
    context: Optional[str] = Form(None),
):
    """Explain a selection. Form-encoded; the nonce is checked before anything else."""
    if not get_nonce_manager().verify_nonce(nonce):
        logger.info(f"Nonce validation failed (nonce_provided={bool(nonce)})")
        outcome = ExplanationOutcome.from_error(
            SecurityError("Invalid nonce"), ReadingLevel.sanitize(reading_level)
        )
        return JSONResponse(status_code=403, content=outcome.to_response())

    client_host = request.client.host if request.client else None
    outcome = get_proxy().get_explanation(
        text,
        reading_level,
        context=parse_context(context),
        user_identifier=client_host,
    )
    return outcome.to_response()


# Providers


@router.get("/providers")
def list_providers():
    """List providers with their models in display order, plus the reading levels."""
    return {
        "providers": registry.get_available_providers(),
        "config": registry.get_js_config(),
        "reading_levels": [
            {"id": level.value, "label": READING_LEVEL_LABELS[level]} for level in ReadingLevel
        ],
    }


@router.get("/providers/{provider_key}/models")
def list_provider_models(provider_key: str):
    """List a provider's models in display order."""
    if not registry.provider_exists(provider_key):
        raise HTTPException(status_code=404, detail=f"Unknown provider: {provider_key}")
    return {
        "provider": provider_key,
        "default_model": registry.get_default_model(provider_key),
        "models": registry.get_provider_models_for_admin(provider_key),
        "api_key_validation": registry.get_api_key_validation(provider_key),
    }


# Administration


@router.post(
    "/admin/test-key", response_model=KeyTestResponse, dependencies=[Depends(require_admin)]
)
def check_api_key(request: KeyTestRequest):
    """Send a minimal request to check an API key."""
    if request.provider and not registry.provider_exists(request.provider):
        raise HTTPException(status_code=400, detail=f"Unknown provider: {request.provider}")

    result = get_proxy().test_api_key(request.api_key.strip(), request.provider)
    return KeyTestResponse(**asdict(result))


@router.get("/status")
def get_status():
    """Enabled state, auto-disable history and the active provider."""
    proxy = get_proxy()
    provider_key = proxy.get_adapter().get_key()
    return {
        "enabled": proxy.state.enabled,
        "auto_disabled": proxy.state.is_auto_disabled(),
        "usage_exceeded": proxy.state.get_usage_exceeded_stats(),
        "provider": provider_key,
        "model": proxy.resolve_model(provider_key),
        "mock_mode": proxy.settings.mock_mode,
    }


@router.post("/admin/reenable", dependencies=[Depends(require_admin)])
def reenable():
    """Re-enable explanations after an auto-disable."""
    proxy = get_proxy()
    proxy.reenable()
    return {"status": "ok", "enabled": proxy.state.enabled}


@router.get("/costs", dependencies=[Depends(require_admin)])
def get_costs(limit: int = 10, source: str = "session"):
    """Cost summary and recent calls.

    ``source=session`` summarizes this process; ``source=file`` returns the
    most recent entries of the JSONL call log, which survives restarts.
    """
    call_logger = get_proxy().call_logger
    if source == "file":
        return {
            "status": "ok",
            "source": "file",
            "calls": read_log(call_logger.log_path, limit),
        }
    if source != "session":
        raise HTTPException(status_code=400, detail=f"Unknown source: {source}")

    return {
        "status": "ok",
        "source": "session",
        **call_logger.get_session_summary(),
        "recent_calls": call_logger.get_recent_calls(limit),
    }


# Health check


@router.get("/health")
def health_check():
    """Health check endpoint with diagnostics."""
    from ..config import settings

    # Non-secret diagnostics only
    config = {
        "api_provider": settings.api_provider,
        "api_model": settings.api_model or registry.get_default_model(settings.api_provider),
        "mock_mode": settings.mock_mode,
        "cache_enabled": settings.cache_enabled,
    }
    for provider_key in registry.PROVIDERS:
        config[f"{provider_key}_key_present"] = bool(settings.get_api_key_setting(provider_key))

    return {
        "status": "ok",
        "service": "ai-explainer",
        "config": config,
    }
