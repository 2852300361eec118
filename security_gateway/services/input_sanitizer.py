"""Input sanitization pipeline against script and SQL injection.

``validate_input`` is a pure function: no store, clock or caller state. Each
stage runs on the output of the previous one, in this order:

1. type check (empty or non-string input stops here)
2. ``<script>...</script>`` blocks
3. ``javascript:`` schemes
4. inline ``on*="..."`` event handlers
5. ``src``/``href`` attributes pointing at ``javascript:``
6. SQL keywords and comment markers (``type="search"`` only)
7. length cap
8. change detection

Suspicious input is never an error: the caller receives the cleaned string
plus warnings and decides whether to reject.
"""

from __future__ import annotations

import re
from typing import Any

from security_gateway.schemas.gateway import ValidationResult

MAX_INPUT_LENGTH = 10_000

WARNING_INVALID_TYPE = "Invalid input type"
WARNING_SQL_INJECTION = "Potential SQL injection attempt detected"
WARNING_TOO_LONG = "Input too long"
WARNING_SANITIZED = "Input was sanitized"

# SQL keyword boundaries follow ASCII rules so non-Latin letters count as
# word boundaries. Markup stages keep Unicode \s so any whitespace counts.
_FLAGS = re.IGNORECASE | re.ASCII
_MARKUP_FLAGS = re.IGNORECASE

_SCRIPT_BLOCK_RE = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", _FLAGS)
_JAVASCRIPT_SCHEME_RE = re.compile(r"javascript:", _FLAGS)
_EVENT_HANDLER_RE = re.compile(r"\son[A-Za-z0-9_]+\s*=\s*[\"'][^\"']*[\"']", _MARKUP_FLAGS)
_DANGEROUS_URL_ATTR_RE = re.compile(r"\s(?:src|href)\s*=\s*[\"']javascript:[^\"']*[\"']", _MARKUP_FLAGS)
_SQL_KEYWORD_RE = re.compile(
    r"\b(?:SELECT|INSERT|UPDATE|DELETE|DROP|CREATE|ALTER|EXEC|UNION|SCRIPT)\b",
    _FLAGS,
)
_SQL_COMMENT_RE = re.compile(r"--|/\*|\*/")

_MARKUP_STAGES = (
    _SCRIPT_BLOCK_RE,
    _JAVASCRIPT_SCHEME_RE,
    _EVENT_HANDLER_RE,
    _DANGEROUS_URL_ATTR_RE,
)


def strip_markup(text: str) -> str:
    """Apply the script/scheme/handler/attribute stages in order."""
    for pattern in _MARKUP_STAGES:
        text = pattern.sub("", text)
    return text


def strip_sql(text: str) -> tuple[str, bool]:
    """Remove SQL keywords and comment markers.

    Returns:
        Tuple of (cleaned_text, keywords_found).
    """
    text, keyword_hits = _SQL_KEYWORD_RE.subn("", text)
    text = _SQL_COMMENT_RE.sub("", text)
    return text, keyword_hits > 0


def validate_input(
    value: Any,
    input_type: str | None = "generic",
    *,
    max_length: int = MAX_INPUT_LENGTH,
) -> ValidationResult:
    """Sanitize untrusted text and report what changed.

    Args:
        value: Untrusted input; empty strings and non-strings are invalid.
        input_type: ``"search"`` enables SQL stripping; any other value is
            treated as ``"generic"``.
        max_length: Length above which the result is truncated and invalid.

    Returns:
        ValidationResult with the sanitized string and ordered warnings.

    Examples:
        >>> validate_input("<script>alert(1)</script>hello").sanitized
        'hello'
        >>> validate_input(None).warnings
        ['Invalid input type']
    """
    if not isinstance(value, str) or not value:
        return ValidationResult(is_valid=False, sanitized=value, warnings=[WARNING_INVALID_TYPE])

    is_valid = True
    warnings: list[str] = []

    sanitized = strip_markup(value)

    if input_type == "search":
        sanitized, found_sql = strip_sql(sanitized)
        if found_sql:
            warnings.append(WARNING_SQL_INJECTION)

    if len(sanitized) > max_length:
        is_valid = False
        warnings.append(WARNING_TOO_LONG)
        sanitized = sanitized[:max_length]

    if sanitized != value:
        warnings.append(WARNING_SANITIZED)

    return ValidationResult(is_valid=is_valid, sanitized=sanitized, warnings=warnings)
