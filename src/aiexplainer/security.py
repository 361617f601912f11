"""Request nonces for the public explain endpoint.

A nonce is an HMAC over the action name and a time bucket half the configured
lifetime long. It verifies during its own bucket and the one after, so a nonce
stays valid for between half and all of ``ttl_seconds``.
"""

import hashlib
import hmac
import time
from typing import Callable

EXPLAIN_ACTION = "explain_text"
NONCE_LENGTH = 10


class NonceManager:
    """Creates and verifies time-bucketed nonces."""

    def __init__(
        self,
        secret: str,
        ttl_seconds: int = 43200,
        clock: Callable[[], float] = time.time,
    ):
        if not secret:
            raise ValueError("A nonce secret is required")
        self._secret = secret.encode()
        self.ttl_seconds = ttl_seconds
        self._clock = clock

    def _tick(self) -> int:
        return int(self._clock() // max(1, self.ttl_seconds // 2))

    def _digest(self, action: str, tick: int) -> str:
        message = f"{tick}|{action}".encode()
        return hmac.new(self._secret, message, hashlib.sha256).hexdigest()[-NONCE_LENGTH:]

    def create_nonce(self, action: str = EXPLAIN_ACTION) -> str:
        return self._digest(action, self._tick())

    def verify_nonce(self, nonce: str, action: str = EXPLAIN_ACTION) -> bool:
        if not nonce:
            return False
        tick = self._tick()
        return any(
            hmac.compare_digest(nonce, self._digest(action, candidate))
            for candidate in (tick, tick - 1)
        )
