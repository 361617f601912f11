"""Explanation cost tracking."""

import json
import logging
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Dict, Any

logger = logging.getLogger(__name__)


@dataclass
class ExplanationCallRecord:
    """Record of a single vendor call made for an explanation."""

    timestamp: str
    provider: str
    model: str
    reading_level: str
    tokens_used: int
    cost_usd: float
    response_time: float
    outcome: str
    cached: bool = False

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)


class ExplanationCallLogger:
    """Logger for tracking explanation calls and their costs."""

    def __init__(self, log_path: Path, enabled: bool = True):
        """Initialize the logger.

        Args:
            log_path: Path to the JSONL log file
            enabled: Whether writing to the log file is enabled
        """
        self.log_path = log_path
        self.enabled = enabled
        self.session_calls: list[ExplanationCallRecord] = []

        if self.enabled:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)

    def log_call(
        self,
        provider: str,
        model: str,
        reading_level: str,
        tokens_used: int,
        cost_usd: float,
        response_time: float,
        outcome: str,
        cached: bool = False,
    ) -> ExplanationCallRecord:
        """Log an explanation call.

        Args:
            provider: Provider key (e.g., "openai", "gemini")
            model: Model id used
            reading_level: Reading level requested
            tokens_used: Tokens reported by the vendor
            cost_usd: Estimated cost in US dollars
            response_time: Wall-clock seconds spent on the call
            outcome: Terminal request state (e.g., "success", "quota_exceeded")
            cached: Whether the explanation was served from cache

        Returns:
            The created ExplanationCallRecord
        """
        record = ExplanationCallRecord(
            timestamp=datetime.now(timezone.utc).isoformat(),
            provider=provider,
            model=model,
            reading_level=reading_level,
            tokens_used=tokens_used,
            cost_usd=cost_usd,
            response_time=round(response_time, 4),
            outcome=outcome,
            cached=cached,
        )

        self.session_calls.append(record)

        if self.enabled:
            self._write_to_log(record)

        return record

    def _write_to_log(self, record: ExplanationCallRecord):
        try:
            with open(self.log_path, "a") as f:
                f.write(json.dumps(record.to_dict()) + "\n")
        except OSError as e:
            # A full disk must not break explanations
            logger.warning(f"Failed to write to cost log: {e}")

    def get_session_summary(self) -> Dict[str, Any]:
        """Get summary statistics for the current session."""
        calls = self.session_calls
        summary = {
            "total_calls": len(calls),
            "successful_calls": sum(1 for call in calls if call.outcome == "success"),
            "cached_calls": sum(1 for call in calls if call.cached),
            "total_tokens": sum(call.tokens_used for call in calls),
            "total_cost_usd": round(sum(call.cost_usd for call in calls), 6),
            "by_provider": {},
        }
        for call in calls:
            entry = summary["by_provider"].setdefault(
                call.provider, {"calls": 0, "tokens": 0, "cost_usd": 0.0}
            )
            entry["calls"] += 1
            entry["tokens"] += call.tokens_used
            entry["cost_usd"] = round(entry["cost_usd"] + call.cost_usd, 6)

        if calls:
            summary["last_call"] = calls[-1].to_dict()
        return summary

    def get_recent_calls(self, limit: int = 10) -> list[Dict[str, Any]]:
        """Get the most recent call records as dictionaries."""
        if limit <= 0:
            return []
        return [call.to_dict() for call in self.session_calls[-limit:]]

    def reset_session(self):
        """Reset session tracking."""
        self.session_calls = []


def read_log(log_path: Path, limit: Optional[int] = None) -> list[Dict[str, Any]]:
    """Read records back from a JSONL cost log, skipping malformed lines."""
    if not log_path.exists():
        return []

    records = []
    with open(log_path) as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                records.append(json.loads(line))
            except json.JSONDecodeError:
                logger.debug("Skipping malformed cost log line")
    if limit is not None:
        records = records[-limit:] if limit > 0 else []
    return records
