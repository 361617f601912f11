"""Enabled/auto-disabled state of the explanation feature."""

import json
import logging
import threading
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)


@dataclass
class StateSnapshot:
    """Serializable view of the feature state."""

    enabled: bool = True
    disabled_reason: Optional[str] = None
    disabled_provider: Optional[str] = None
    disabled_at: Optional[str] = None
    usage_exceeded_count: int = 0
    last_usage_exceeded_at: Optional[str] = None


class PluginState:
    """Holds the enabled flag and records why it was switched off.

    A quota stop or an invalid key flips ``enabled`` to False; only an explicit
    ``reenable()`` turns the feature back on. When ``path`` is set the state is
    written to a JSON file after every change and reloaded on construction.
    """

    def __init__(self, enabled: bool = True, path: Optional[Path] = None):
        self.path = path
        self._lock = threading.Lock()
        self._snapshot = StateSnapshot(enabled=enabled)
        if self.path and self.path.exists():
            self._load()

    @property
    def enabled(self) -> bool:
        return self._snapshot.enabled

    def _load(self):
        try:
            data = json.loads(self.path.read_text())
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Could not read state file {self.path}: {e}")
            return
        known = StateSnapshot.__dataclass_fields__
        self._snapshot = StateSnapshot(**{k: v for k, v in data.items() if k in known})

    def _save(self):
        if not self.path:
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(asdict(self._snapshot), indent=2))
        except OSError as e:
            logger.error(f"Failed to persist state to {self.path}: {e}")

    def auto_disable(self, reason: str, provider: str = ""):
        """Switch the feature off after a quota stop or invalid key."""
        now = datetime.now(timezone.utc).isoformat()
        with self._lock:
            snapshot = self._snapshot
            snapshot.enabled = False
            snapshot.disabled_reason = reason
            snapshot.disabled_provider = provider
            snapshot.disabled_at = now
            snapshot.usage_exceeded_count += 1
            snapshot.last_usage_exceeded_at = now
            self._save()
        logger.warning(f"Explanations auto-disabled (provider={provider}): {reason}")

    def reenable(self):
        """Turn the feature back on and clear the disable reason."""
        with self._lock:
            snapshot = self._snapshot
            snapshot.enabled = True
            snapshot.disabled_reason = None
            snapshot.disabled_provider = None
            snapshot.disabled_at = None
            self._save()
        logger.info("Explanations re-enabled")

    def is_auto_disabled(self) -> bool:
        snapshot = self._snapshot
        return not snapshot.enabled and bool(snapshot.disabled_reason)

    def get_usage_exceeded_stats(self) -> dict[str, Any]:
        snapshot = self._snapshot
        return {
            "count": snapshot.usage_exceeded_count,
            "last_occurrence": snapshot.last_usage_exceeded_at,
            "currently_disabled": self.is_auto_disabled(),
            "disable_reason": snapshot.disabled_reason,
            "disabled_provider": snapshot.disabled_provider,
            "disabled_at": snapshot.disabled_at,
        }

