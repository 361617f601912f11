"""Per-visitor request rate limiting."""

import logging
import threading
import time
from typing import Callable

logger = logging.getLogger(__name__)

WINDOW_SECONDS = 60


class RateLimiter:
    """Fixed one-minute window counter per visitor identifier.

    Windows that have ended are pruned at most once per window length.
    """

    def __init__(
        self,
        limit_per_minute: int = 50,
        enabled: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.limit_per_minute = limit_per_minute
        self.enabled = enabled
        self._clock = clock
        # identifier -> (window start, request count)
        self._windows: dict[str, tuple[float, int]] = {}
        self._last_prune = clock()
        self._lock = threading.Lock()

    def is_rate_limited(self, identifier: str) -> bool:
        """Count a request and report whether it exceeds the allowance."""
        if not self.enabled or not identifier:
            return False

        now = self._clock()
        with self._lock:
            if now - self._last_prune >= WINDOW_SECONDS:
                self._prune(now)

            window_start, count = self._windows.get(identifier, (now, 0))
            if now - window_start >= WINDOW_SECONDS:
                window_start, count = now, 0

            if count >= self.limit_per_minute:
                logger.info(f"Rate limit reached for visitor ({self.limit_per_minute}/min)")
                return True

            self._windows[identifier] = (window_start, count + 1)
        return False

    def _prune(self, now: float):
        # Caller holds the lock
        ended = [key for key, (start, _) in self._windows.items() if now - start >= WINDOW_SECONDS]
        for key in ended:
            del self._windows[key]
        self._last_prune = now
        if ended:
            logger.debug(f"Pruned {len(ended)} ended rate limit windows")

    def reset(self, identifier: str = ""):
        with self._lock:
            if identifier:
                self._windows.pop(identifier, None)
            else:
                self._windows.clear()

    def __len__(self) -> int:
        return len(self._windows)
