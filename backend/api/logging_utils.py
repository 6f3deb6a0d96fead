"""Utilities for keeping log output free of secrets."""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

_PATTERNS = (
    # Broker / database connection strings, which may embed passwords
    (
        re.compile(r"(?i)(?:postgres(?:ql)?|mysql|rediss?|amqp)://[^\s]+"),
        "[REDACTED_DSN]",
    ),
    # Bearer tokens / JWTs that may slip into error messages
    (
        re.compile(r"Bearer\s+[A-Za-z0-9_\-\.]+"),
        "Bearer [REDACTED_TOKEN]",
    ),
)


def _sanitize_str(value: str) -> str:
    sanitized = value
    for pattern, replacement in _PATTERNS:
        sanitized = pattern.sub(replacement, sanitized)
    return sanitized


def sanitize_log_value(value: Any) -> Any:
    """Recursively sanitize log payloads before writing them anywhere."""
    if isinstance(value, str):
        return _sanitize_str(value)

    if isinstance(value, Mapping):
        return {k: sanitize_log_value(v) for k, v in value.items()}

    if isinstance(value, (list, tuple)):
        return type(value)(sanitize_log_value(item) for item in value)

    return value
