"""Helpers for safe logging of inbound frames.

Adapters forward shipment payloads that include contact details for the
recipient. This module masks those fields and truncates oversized values
before a frame is written to WARNING/DEBUG logs.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

_SENSITIVE_KEYS: frozenset[str] = frozenset(
    {
        "contact",
        "phone",
        "email",
        "name",
        "address",
        "recipient",
    }
)

_MAX_DEPTH = 10


def _truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return f"{text[:limit]}…<truncated {len(text) - limit} chars>"


def redact_for_log(value: Any, *, max_string: int = 256, _depth: int = 0) -> Any:
    """Return a copy of a decoded frame with contact fields masked.

    Strings longer than *max_string* are cut; nesting deeper than
    ``_MAX_DEPTH`` collapses to a marker.
    """
    if _depth > _MAX_DEPTH:
        return "<nested>"
    if isinstance(value, str):
        return _truncate(value, max_string)
    if value is None or isinstance(value, (int, float, bool)):
        return value
    if isinstance(value, Mapping):
        return {
            str(k): "<redacted>"
            if str(k).lower() in _SENSITIVE_KEYS
            else redact_for_log(v, max_string=max_string, _depth=_depth + 1)
            for k, v in value.items()
        }
    if isinstance(value, Sequence) and not isinstance(value, (bytes, bytearray)):
        return [redact_for_log(v, max_string=max_string, _depth=_depth + 1) for v in value]
    return repr(value)


def redact_line(line: str, *, max_string: int = 120) -> str:
    """Shorten a raw (undecodable) line for logging."""
    return _truncate(line, max_string)
