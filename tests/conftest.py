"""Pytest configuration and shared fixtures."""

import json
from pathlib import Path
from typing import Callable

import httpx
import pytest

from aiexplainer.config import Settings
from aiexplainer.keystore import StaticSecretProvider
from aiexplainer.providers import factory

OPENAI_KEY = "sk-test1234567890abcdefghij"
CLAUDE_KEY = "sk-ant-REDACTED"
GEMINI_KEY = "AIza" + "B" * 35
OPENROUTER_KEY = "sk-or-v1-test1234567890abcdefghij"


@pytest.fixture(autouse=True)
def clear_provider_cache():
    """Each test starts with a fresh adapter cache."""
    factory.clear_cache()
    yield
    factory.clear_cache()


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Create settings with test values."""
    return Settings(
        enabled=True,
        api_provider="openai",
        api_model="",
        openai_api_key=OPENAI_KEY,
        claude_api_key=CLAUDE_KEY,
        gemini_api_key=GEMINI_KEY,
        openrouter_api_key=OPENROUTER_KEY,
        encryption_secret=None,
        temperature=0.7,
        max_tokens=150,
        request_timeout=10,
        test_request_timeout=5,
        min_selection_length=3,
        max_selection_length=200,
        min_words=1,
        max_words=30,
        blocked_words="",
        blocked_words_case_sensitive=False,
        blocked_words_whole_word=False,
        language="en_GB",
        reading_level_prompts={},
        cache_enabled=True,
        cache_duration_hours=24,
        rate_limit_enabled=True,
        rate_limit_per_minute=50,
        nonce_secret="test-nonce-secret",
        admin_token="test-admin-token",
        nonce_ttl_seconds=43200,
        enable_cost_logging=True,
        cost_log_path=tmp_path / "logs" / "costs.jsonl",
        state_path=None,
        mock_mode=False,
        cors_allow_origins=["*"],
    )


@pytest.fixture
def secret_provider() -> StaticSecretProvider:
    """Plaintext keys for every provider."""
    return StaticSecretProvider(
        {
            "openai": OPENAI_KEY,
            "claude": CLAUDE_KEY,
            "gemini": GEMINI_KEY,
            "openrouter": OPENROUTER_KEY,
        }
    )


class RecordingTransport:
    """Serves canned responses and remembers every request it saw."""

    def __init__(self, status_code: int = 200, payload=None, text: str = None):
        self.status_code = status_code
        self.payload = payload
        self.text = text
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.text is not None:
            return httpx.Response(self.status_code, text=self.text)
        return httpx.Response(self.status_code, json=self.payload)

    @property
    def last_request(self) -> httpx.Request:
        return self.requests[-1]

    @property
    def last_body(self) -> dict:
        return json.loads(self.last_request.content)


@pytest.fixture
def make_client() -> Callable[..., tuple[httpx.Client, RecordingTransport]]:
    """Build an httpx client backed by a RecordingTransport."""
    clients = []

    def _make(status_code: int = 200, payload=None, text: str = None):
        transport = RecordingTransport(status_code, payload, text)
        client = httpx.Client(transport=httpx.MockTransport(transport))
        clients.append(client)
        return client, transport

    yield _make

    for client in clients:
        client.close()


@pytest.fixture
def openai_success_payload() -> dict:
    return {
        "choices": [{"message": {"role": "assistant", "content": "Hello"}, "finish_reason": "stop"}],
        "usage": {"prompt_tokens": 3, "completion_tokens": 2, "total_tokens": 5},
    }


@pytest.fixture
def claude_success_payload() -> dict:
    return {
        "content": [{"type": "text", "text": "  Hello from Claude  "}],
        "usage": {"input_tokens": 12, "output_tokens": 7},
    }


@pytest.fixture
def gemini_success_payload() -> dict:
    return {
        "candidates": [{"content": {"parts": [{"text": "Hello from Gemini"}]}}],
        "usageMetadata": {"promptTokenCount": 4, "totalTokenCount": 9},
    }


@pytest.fixture
def openrouter_success_payload() -> dict:
    return {
        "choices": [{"message": {"content": "Hello from OpenRouter"}}],
        "usage": {"total_tokens": 11},
    }
