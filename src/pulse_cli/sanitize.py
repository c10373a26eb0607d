"""Redaction and truncation of span payload values.

Tool inputs and outputs can carry credentials (an ``export API_KEY=...`` in
a Bash command, a ``.env`` file that was read). Secret redaction is on by
default; PII redaction is opt-in through ``PULSE_REDACT_PII``.
"""

from __future__ import annotations

import os
import re
from dataclasses import replace
from typing import Any

from .span import Span

# Keys to redact (matched case-insensitively)
REDACT_KEYS = {
    "authorization",
    "api_key",
    "apikey",
    "token",
    "access_token",
    "refresh_token",
    "password",
    "secret",
    "x-api-key",
    "bearer",
    "credential",
    "private_key",
    "client_secret",
}

# Patterns for common secrets in text
SECRET_PATTERNS = [
    re.compile(r"(api[_-]?key|apikey)\s*[:=]\s*['\"]?([^'\"\s]+)", re.IGNORECASE),
    re.compile(r"(secret|password|token|auth)\s*[:=]\s*['\"]?([^'\"\s]+)", re.IGNORECASE),
    re.compile(r"(sk-[a-zA-Z0-9_\-]{20,})"),  # OpenAI / Anthropic style keys
    re.compile(r"(Bearer\s+[a-zA-Z0-9_\-\.]+)", re.IGNORECASE),
    re.compile(r"(ghp_[a-zA-Z0-9]{36})"),  # GitHub PAT
    re.compile(r"(xox[baprs]-[a-zA-Z0-9-]+)"),  # Slack tokens
    re.compile(r"(AKIA[A-Z0-9]{16})"),  # AWS access key
]

PII_PATTERNS = [
    re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b"),  # Email
    re.compile(r"\b\d{3}[-.]?\d{3}[-.]?\d{4}\b"),  # Phone (US)
    re.compile(r"\b\d{3}-\d{2}-\d{4}\b"),  # SSN
    re.compile(r"\b\d{4}[\s-]?\d{4}[\s-]?\d{4}[\s-]?\d{4}\b"),  # Credit card
]

MAX_DEPTH = 12


def _is_pii_redaction_enabled() -> bool:
    return os.environ.get("PULSE_REDACT_PII", "").lower() in {"1", "true", "yes", "y"}


def _truncate_str(s: str, max_chars: int) -> str:
    """Truncate string with length indicator."""
    if len(s) <= max_chars:
        return s
    return s[: max(0, max_chars - 20)] + f"...(truncated,{len(s)} chars)"


def redact_secrets(text: str) -> str:
    """Redact common secret patterns from text."""
    result = text
    for pattern in SECRET_PATTERNS:
        result = pattern.sub("[REDACTED]", result)
    return result


def redact_pii(text: str) -> str:
    """Redact common PII patterns from text."""
    result = text
    for pattern in PII_PATTERNS:
        result = pattern.sub("[PII_REDACTED]", result)
    return result


def sanitize(
    value: Any,
    *,
    redact: bool = True,
    redact_pii_flag: bool | None = None,
    max_chars: int = 20_000,
    _depth: int = 0,
) -> Any:
    """
    Best-effort redaction for a JSON-like value.

    Args:
        value: The value to sanitize
        redact: Whether to redact secret keys and patterns
        redact_pii_flag: Whether to redact PII. If None, reads PULSE_REDACT_PII.
        max_chars: Maximum characters for string values

    Returns:
        Sanitized copy of value
    """
    if _depth > MAX_DEPTH:
        return "<max_depth>"

    if redact_pii_flag is None:
        redact_pii_flag = _is_pii_redaction_enabled()

    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, str):
        result = value
        if redact:
            result = redact_secrets(result)
        if redact_pii_flag:
            result = redact_pii(result)
        return _truncate_str(result, max_chars)
    if isinstance(value, bytes):
        return f"<bytes:{len(value)}>"
    if isinstance(value, (list, tuple)):
        return [
            sanitize(v, redact=redact, redact_pii_flag=redact_pii_flag, max_chars=max_chars, _depth=_depth + 1)
            for v in value
        ]
    if isinstance(value, dict):
        out: dict[str, Any] = {}
        for k, v in value.items():
            ks = str(k)
            if redact and ks.strip().lower() in REDACT_KEYS:
                out[ks] = "<redacted>"
            else:
                out[ks] = sanitize(
                    v, redact=redact, redact_pii_flag=redact_pii_flag, max_chars=max_chars, _depth=_depth + 1
                )
        return out

    return _truncate_str(repr(value), max_chars)


def sanitize_span(span: Span, *, redact: bool = True, max_chars: int = 20_000) -> Span:
    """Return a copy of span with its free-form values sanitized."""
    # Identity and version tags are never rewritten.
    metadata = dict(span.metadata)
    for key, value in span.metadata.items():
        if key not in ("cli_version", "project_id"):
            metadata[key] = sanitize(value, redact=redact, max_chars=max_chars)

    return replace(
        span,
        tool_input=sanitize(span.tool_input, redact=redact, max_chars=max_chars),
        tool_response=sanitize(span.tool_response, redact=redact, max_chars=max_chars),
        error=sanitize(span.error, redact=redact, max_chars=max_chars),
        metadata=metadata,
    )
