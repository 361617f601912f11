"""HTTP API for AI Explainer."""

from .app import create_app

__all__ = ["create_app"]
