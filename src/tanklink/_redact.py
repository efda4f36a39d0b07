"""Masking of gateway credentials in debug logs.

Gateways authenticate with shared tokens and sometimes embed Wi-Fi or
broker credentials in the same JSON objects as telemetry.  Payloads pass
through :func:`redact_for_log` before they are logged at DEBUG level.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import BaseModel

REDACTED = "<redacted>"

# Matched as substrings of the lower-cased key, so "gatewayToken",
# "mqtt_password" and "wifiPass" are all caught.
_SENSITIVE_KEY_PARTS: tuple[str, ...] = (
    "token",
    "password",
    "passwd",
    "pass",
    "secret",
    "apikey",
    "api_key",
    "authorization",
    "cookie",
)
_MAX_DEPTH = 10


def is_sensitive_key(key: object) -> bool:
    lowered = str(key).lower()
    return any(part in lowered for part in _SENSITIVE_KEY_PARTS)


def _truncate(text: str, max_string: int) -> str:
    if len(text) <= max_string:
        return text
    return f"{text[:max_string]}…<truncated:{len(text)}>"


def redact_for_log(value: Any, *, max_string: int = 256, _depth: int = 0) -> Any:
    """Return a copy of *value* that is safe to log.

    Mappings have sensitive keys masked, long strings are truncated, bytes
    are summarized by length and pydantic models are dumped first.
    """
    if _depth > _MAX_DEPTH:
        return "<max-depth>"
    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, str):
        return _truncate(value, max_string)
    if isinstance(value, (bytes, bytearray)):
        return f"<bytes:{len(value)}b>"
    if isinstance(value, BaseModel):
        value = value.model_dump(mode="json", exclude={"raw"} if "raw" in type(value).model_fields else None)

    if isinstance(value, Mapping):
        return {
            str(key): REDACTED
            if is_sensitive_key(key)
            else redact_for_log(item, max_string=max_string, _depth=_depth + 1)
            for key, item in value.items()
        }
    if isinstance(value, Sequence):
        return [redact_for_log(item, max_string=max_string, _depth=_depth + 1) for item in value]
    return _truncate(repr(value), max_string)
