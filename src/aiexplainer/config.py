"""Configuration management for AI Explainer."""

import os
import secrets
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


def _parse_cors_origins() -> list[str]:
    """Parse CORS origins from environment variable."""
    cors_env = os.getenv("CORS_ALLOW_ORIGINS")
    if cors_env:
        return cors_env.split(",")
    return ["*"]


def _read_level_prompts() -> dict[str, str]:
    """Collect custom reading level prompts (EXPLAINER_PROMPT_<LEVEL>)."""
    prompts = {}
    for level in ("very_simple", "simple", "standard", "detailed", "expert"):
        value = os.getenv(f"EXPLAINER_PROMPT_{level.upper()}", "")
        if value:
            prompts[level] = value
    return prompts


class Settings(BaseModel):
    """Application settings."""

    # Master switch, flipped off automatically when a provider reports quota exhaustion
    enabled: bool = _env_bool("EXPLAINER_ENABLED", "true")

    # Provider selection ('openai', 'claude', 'gemini' or 'openrouter')
    api_provider: str = os.getenv("EXPLAINER_API_PROVIDER", "openai")
    api_model: str = os.getenv("EXPLAINER_API_MODEL", "")  # Empty means provider default

    # Per-provider API keys, plaintext or "enc:v1:" blobs produced by `ai-explainer encrypt-key`
    openai_api_key: Optional[str] = os.getenv("EXPLAINER_OPENAI_API_KEY")
    claude_api_key: Optional[str] = os.getenv("EXPLAINER_CLAUDE_API_KEY")
    gemini_api_key: Optional[str] = os.getenv("EXPLAINER_GEMINI_API_KEY")
    openrouter_api_key: Optional[str] = os.getenv("EXPLAINER_OPENROUTER_API_KEY")
    encryption_secret: Optional[str] = os.getenv("EXPLAINER_ENCRYPTION_SECRET")

    # Generation options
    temperature: float = float(os.getenv("EXPLAINER_TEMPERATURE", "0.7"))
    max_tokens: int = int(os.getenv("EXPLAINER_MAX_TOKENS", "150"))
    request_timeout: int = int(os.getenv("EXPLAINER_REQUEST_TIMEOUT", "10"))
    test_request_timeout: int = int(os.getenv("EXPLAINER_TEST_REQUEST_TIMEOUT", "5"))

    # Selection bounds
    min_selection_length: int = int(os.getenv("EXPLAINER_MIN_SELECTION_LENGTH", "3"))
    max_selection_length: int = int(os.getenv("EXPLAINER_MAX_SELECTION_LENGTH", "200"))
    min_words: int = int(os.getenv("EXPLAINER_MIN_WORDS", "1"))
    max_words: int = int(os.getenv("EXPLAINER_MAX_WORDS", "30"))

    # Blocked content
    blocked_words: str = os.getenv("EXPLAINER_BLOCKED_WORDS", "")
    blocked_words_case_sensitive: bool = _env_bool("EXPLAINER_BLOCKED_WORDS_CASE_SENSITIVE", "false")
    blocked_words_whole_word: bool = _env_bool("EXPLAINER_BLOCKED_WORDS_WHOLE_WORD", "false")

    # Prompting
    language: str = os.getenv("EXPLAINER_LANGUAGE", "en_GB")
    reading_level_prompts: dict[str, str] = _read_level_prompts()

    # Caching of generated explanations
    cache_enabled: bool = _env_bool("EXPLAINER_CACHE_ENABLED", "true")
    cache_duration_hours: int = int(os.getenv("EXPLAINER_CACHE_DURATION", "24"))

    # Rate limiting (requests per minute per visitor)
    rate_limit_enabled: bool = _env_bool("EXPLAINER_RATE_LIMIT_ENABLED", "true")
    rate_limit_per_minute: int = int(os.getenv("EXPLAINER_RATE_LIMIT_PER_MINUTE", "50"))

    # Request nonces
    nonce_secret: str = os.getenv("EXPLAINER_NONCE_SECRET", "") or secrets.token_hex(32)
    nonce_ttl_seconds: int = int(os.getenv("EXPLAINER_NONCE_TTL", "43200"))  # 12 hours

    # Shared secret for the admin endpoints; they are refused while unset
    admin_token: str = os.getenv("EXPLAINER_ADMIN_TOKEN", "")

    # Attribution sent to OpenRouter
    site_url: str = os.getenv("EXPLAINER_SITE_URL", "http://localhost")
    site_name: str = os.getenv("EXPLAINER_SITE_NAME", "AI Explainer")

    # Cost Tracking and Logging
    enable_cost_logging: bool = _env_bool("EXPLAINER_ENABLE_COST_LOGGING", "true")
    cost_log_path: Path = Path(os.getenv("EXPLAINER_COST_LOG_PATH", "logs/explanation_costs.jsonl"))

    # Auto-disable state persistence (empty keeps it in memory only)
    state_path: Optional[Path] = (
        Path(os.getenv("EXPLAINER_STATE_PATH")) if os.getenv("EXPLAINER_STATE_PATH") else None
    )

    # Return canned explanations instead of calling a vendor
    mock_mode: bool = _env_bool("EXPLAINER_MOCK_MODE", "false")

    # Server settings
    host: str = os.getenv("HOST", "127.0.0.1")
    port: int = int(os.getenv("PORT", "8000"))
    debug: bool = _env_bool("DEBUG", "false")
    cors_allow_origins: list[str] = _parse_cors_origins()

    def get_api_key_setting(self, provider_key: str) -> Optional[str]:
        """Return the stored (possibly encrypted) API key for a provider."""
        return getattr(self, f"{provider_key}_api_key", None)


settings = Settings()
