"""Shared utility functions for the arnab engine layer."""

from __future__ import annotations

import re
from datetime import timedelta

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def validate_identifier(value: str, label: str = "identifier") -> str:
    """Validate that a value is a safe SQL identifier.

    Only allows alphanumeric characters and underscores, starting with a letter
    or underscore. Raises ValueError if the identifier is unsafe.
    """
    if not _IDENTIFIER_RE.match(value):
        raise ValueError(f"Invalid {label}: {value!r} (must match [A-Za-z_][A-Za-z0-9_]*)")
    return value


def format_elapsed(elapsed: timedelta | float) -> str:
    """Format a duration as e.g. ``1m 5s 20ms``. Milliseconds are always shown.

    Accepts a timedelta or a number of seconds.
    """
    if isinstance(elapsed, timedelta):
        elapsed = elapsed.total_seconds()
    total_ms = int(elapsed * 1000)
    hours, rem = divmod(total_ms, 3_600_000)
    minutes, rem = divmod(rem, 60_000)
    seconds, millis = divmod(rem, 1000)

    parts = []
    if hours:
        parts.append(f"{hours}h")
    if minutes:
        parts.append(f"{minutes}m")
    if seconds:
        parts.append(f"{seconds}s")
    parts.append(f"{millis}ms")
    return " ".join(parts)
