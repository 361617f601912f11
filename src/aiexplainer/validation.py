"""Selection validation run before any vendor call."""

import html
import logging
import re
from dataclasses import dataclass
from typing import Any, Optional, Union

from .config import Settings
from .errors import ValidationError

logger = logging.getLogger(__name__)

# Hard cap regardless of configured bounds
ABSOLUTE_MAX_CHARS = 5000

# Per-field cap on visitor context forwarded to the vendor
MAX_CONTEXT_CHARS = 500
CONTEXT_FIELDS = ("title", "paragraph", "before", "after")

_TAG_RE = re.compile(r"<[^>]*>")
_CONTROL_CHARS_RE = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")
_WHITESPACE_RE = re.compile(r"\s+")

SUSPICIOUS_PATTERNS = [
    re.compile(r"<script[^>]*>.*?</script>", re.IGNORECASE | re.DOTALL),
    re.compile(r"<iframe[^>]*>.*?</iframe>", re.IGNORECASE | re.DOTALL),
    re.compile(r"javascript:", re.IGNORECASE),
    re.compile(r"vbscript:", re.IGNORECASE),
    re.compile(r"on\w+\s*=", re.IGNORECASE),
    re.compile(r"<\?php", re.IGNORECASE),
    re.compile(r"\$\{.*\}", re.DOTALL),
    re.compile(r"\b(union\s+select|select\s+\*\s+from|drop\s+table|insert\s+into)\b", re.IGNORECASE),
    re.compile(r"\beval\s*\(", re.IGNORECASE),
    re.compile(r"\bexec\s*\(", re.IGNORECASE),
    re.compile(r"\bsystem\s*\(", re.IGNORECASE),
    re.compile(r"data:text/html", re.IGNORECASE),
    re.compile(r"data:application/javascript", re.IGNORECASE),
    re.compile(r"base64,", re.IGNORECASE),
]
_SPECIAL_CHARS_RE = re.compile(r"[<>{}\[\]()&|`~!@#$%^*+=\\/]")
_ENCODING_PATTERNS = [
    re.compile(r"%[0-9a-fA-F]{2}"),
    re.compile(r"&#[0-9]+;"),
    re.compile(r"&[a-zA-Z]+;"),
]


def sanitize_selection(text: str) -> str:
    """Strip markup and control characters and normalize whitespace."""
    if not text:
        return ""
    text = text.replace("\x00", "")
    text = _CONTROL_CHARS_RE.sub("", text)
    text = _TAG_RE.sub("", text)
    text = html.unescape(text)
    return _WHITESPACE_RE.sub(" ", text).strip()


def _clean_context_value(value: Any, keep_edges: bool = False) -> str:
    # Numbers are kept as text; containers and booleans are dropped
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        return ""
    text = str(value).replace("\x00", "")
    text = _CONTROL_CHARS_RE.sub("", text)
    text = _TAG_RE.sub("", text)
    text = _WHITESPACE_RE.sub(" ", html.unescape(text))
    if not keep_edges:
        text = text.strip()
    elif not text.strip():
        return ""
    return text


def sanitize_context(
    context: Any, max_chars: int = MAX_CONTEXT_CHARS
) -> Optional[Union[dict[str, str], str]]:
    """Reduce visitor-supplied context to short plain-text fields.

    ``before`` and ``after`` keep their edge spaces so they join the selection
    naturally, and are cut on the side away from the selection.
    """
    if isinstance(context, str):
        return _clean_context_value(context)[:max_chars] or None
    if not isinstance(context, dict):
        return None

    cleaned = {}
    for key in CONTEXT_FIELDS:
        keep_edges = key in ("before", "after")
        value = _clean_context_value(context.get(key), keep_edges)
        if not value:
            continue
        cleaned[key] = value[-max_chars:] if key == "before" else value[:max_chars]
    return cleaned or None


def count_words(text: str) -> int:
    if not text:
        return 0
    return len([word for word in _WHITESPACE_RE.split(text.strip()) if word])


def contains_suspicious_content(text: str) -> bool:
    """Detect injection attempts, encoded payloads and symbol-heavy input."""
    for pattern in SUSPICIOUS_PATTERNS:
        if pattern.search(text):
            return True

    # More than 30% special characters
    if len(_SPECIAL_CHARS_RE.findall(text)) > len(text) * 0.3:
        return True

    return any(pattern.search(text) for pattern in _ENCODING_PATTERNS)


def parse_blocked_words(raw: str) -> list[str]:
    """Split a newline (or comma) separated block list, dropping blanks."""
    if not raw:
        return []
    return [word.strip() for word in re.split(r"[\n,]", raw) if word.strip()]


def find_blocked_word(
    text: str,
    blocked_words: list[str],
    case_sensitive: bool = False,
    whole_word: bool = False,
) -> Optional[str]:
    """Return the first blocked word present in ``text``, or None.

    With ``whole_word`` the match needs word boundaries on both sides, so
    "password123" does not match "password".
    """
    compare_text = text if case_sensitive else text.lower()
    flags = 0 if case_sensitive else re.IGNORECASE

    for word in blocked_words:
        if whole_word:
            if re.search(r"\b" + re.escape(word) + r"\b", text, flags):
                return word
        else:
            compare_word = word if case_sensitive else word.lower()
            if compare_word in compare_text:
                return word
    return None


@dataclass
class SelectionLimits:
    """Bounds applied to a selection."""

    min_length: int = 3
    max_length: int = 200
    min_words: int = 1
    max_words: int = 30

    @classmethod
    def from_settings(cls, settings: Settings) -> "SelectionLimits":
        return cls(
            min_length=settings.min_selection_length,
            max_length=settings.max_selection_length,
            min_words=settings.min_words,
            max_words=settings.max_words,
        )


class SelectionValidator:
    """Checks a selection against length, word, content and block-list rules."""

    def __init__(
        self,
        limits: Optional[SelectionLimits] = None,
        blocked_words: Optional[list[str]] = None,
        case_sensitive: bool = False,
        whole_word: bool = False,
    ):
        self.limits = limits or SelectionLimits()
        self.blocked_words = blocked_words or []
        self.case_sensitive = case_sensitive
        self.whole_word = whole_word

    @classmethod
    def from_settings(cls, settings: Settings) -> "SelectionValidator":
        return cls(
            limits=SelectionLimits.from_settings(settings),
            blocked_words=parse_blocked_words(settings.blocked_words),
            case_sensitive=settings.blocked_words_case_sensitive,
            whole_word=settings.blocked_words_whole_word,
        )

    def validate(self, selected_text: str) -> str:
        """Return the sanitized selection.

        Raises:
            ValidationError: With a message specific to the failed rule
        """
        if not selected_text or not selected_text.strip():
            raise ValidationError("Text selection is required")

        if len(selected_text) > ABSOLUTE_MAX_CHARS:
            raise ValidationError("Text selection contains invalid content")

        text = sanitize_selection(selected_text)
        limits = self.limits

        if len(text) < limits.min_length:
            raise ValidationError(
                f"Text selection is too short (minimum {limits.min_length} characters)"
            )
        if len(text) > limits.max_length:
            raise ValidationError(
                f"Text selection is too long (maximum {limits.max_length} characters)"
            )

        word_count = count_words(text)
        if word_count < limits.min_words:
            raise ValidationError(
                f"Text selection has too few words (minimum {limits.min_words} words)"
            )
        if word_count > limits.max_words:
            raise ValidationError(
                f"Text selection has too many words (maximum {limits.max_words} words)"
            )

        if contains_suspicious_content(text):
            logger.info("Selection rejected: suspicious content")
            raise ValidationError("Text selection contains invalid content")

        blocked = find_blocked_word(text, self.blocked_words, self.case_sensitive, self.whole_word)
        if blocked is not None:
            logger.info("Selection rejected: blocked word matched")
            raise ValidationError("Your selection contains blocked content")

        return text
