"""Explanation cache management."""

import hashlib
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from .models import ReadingLevel

logger = logging.getLogger(__name__)


@dataclass
class CachedExplanation:
    """A stored explanation and its expiry."""

    explanation: str
    provider: str
    model: str
    tokens_used: int
    cost_usd: float
    created_at: datetime
    expires_at: datetime


def text_hash(text: str) -> str:
    """Cache key for a selection: case and surrounding whitespace are ignored."""
    return hashlib.sha256(text.lower().strip().encode("utf-8")).hexdigest()


class ExplanationCache:
    """In-memory cache of explanations keyed by selection and reading level.

    Safe to share between request threads. Expired entries are swept every
    ``cleanup_every`` stores.
    """

    def __init__(self, ttl_hours: int = 24, enabled: bool = True, cleanup_every: int = 100):
        self._cache: dict[tuple[str, str], CachedExplanation] = {}
        self._ttl_hours = ttl_hours
        self.enabled = enabled
        self.cleanup_every = cleanup_every
        self._stores_since_cleanup = 0
        self._lock = threading.Lock()

    def store(
        self,
        text: str,
        reading_level: ReadingLevel,
        explanation: str,
        provider: str = "",
        model: str = "",
        tokens_used: int = 0,
        cost_usd: float = 0.0,
        ttl_hours: Optional[int] = None,
    ) -> bool:
        """
        Store an explanation.

        Args:
            text: The selection the explanation was generated for
            reading_level: Reading level of the explanation
            explanation: Generated explanation text
            ttl_hours: Time to live in hours (uses default if not specified)

        Returns:
            True if stored, False if caching is disabled
        """
        if not self.enabled or not explanation:
            return False

        now = datetime.now(timezone.utc)
        entry = CachedExplanation(
            explanation=explanation,
            provider=provider,
            model=model,
            tokens_used=tokens_used,
            cost_usd=cost_usd,
            created_at=now,
            expires_at=now + timedelta(hours=ttl_hours or self._ttl_hours),
        )
        with self._lock:
            self._cache[(text_hash(text), ReadingLevel.sanitize(reading_level).value)] = entry
            self._stores_since_cleanup += 1
            sweep = self._stores_since_cleanup >= self.cleanup_every
            if sweep:
                self._stores_since_cleanup = 0

        if sweep:
            removed = self.cleanup_expired()
            if removed:
                logger.debug(f"Removed {removed} expired cache entries")
        return True

    def get(self, text: str, reading_level: ReadingLevel) -> Optional[CachedExplanation]:
        """
        Retrieve a cached explanation.

        Returns:
            The entry if found and not expired, None otherwise
        """
        if not self.enabled:
            return None

        key = (text_hash(text), ReadingLevel.sanitize(reading_level).value)
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                return None

            if datetime.now(timezone.utc) > entry.expires_at:
                del self._cache[key]
                return None

        return entry

    def get_all_levels(self, text: str) -> dict[str, str]:
        """Unexpired explanations of ``text`` for every cached reading level."""
        if not self.enabled:
            return {}

        result = {}
        for level in ReadingLevel:
            entry = self.get(text, level)
            if entry is not None:
                result[level.value] = entry.explanation
        return result

    def cleanup_expired(self) -> int:
        """
        Remove all expired entries.

        Returns:
            Number of entries removed
        """
        now = datetime.now(timezone.utc)
        with self._lock:
            expired_keys = [key for key, entry in self._cache.items() if now > entry.expires_at]
            for key in expired_keys:
                del self._cache[key]
        return len(expired_keys)

    def clear(self):
        """Clear all cached explanations."""
        with self._lock:
            self._cache.clear()

    def __len__(self) -> int:
        return len(self._cache)
