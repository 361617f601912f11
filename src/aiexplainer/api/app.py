"""FastAPI application factory."""

from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..config import settings
from ..proxy import ExplanationProxy
from ..security import NonceManager
from .routes import router

# Global instances shared by all requests
_proxy: Optional[ExplanationProxy] = None
_nonce_manager: Optional[NonceManager] = None


def get_proxy() -> ExplanationProxy:
    """Get the global explanation proxy."""
    global _proxy
    if _proxy is None:
        _proxy = ExplanationProxy(settings)
    return _proxy


def get_nonce_manager() -> NonceManager:
    """Get the global nonce manager."""
    global _nonce_manager
    if _nonce_manager is None:
        _nonce_manager = NonceManager(settings.nonce_secret, settings.nonce_ttl_seconds)
    return _nonce_manager


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="AI Explainer",
        description="Plain-language explanations of selected text from multiple AI providers",
        version="0.1.0",
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # API routes
    app.include_router(router, prefix="/api")

    return app
