"""Deterministic mode resolution policy.

This module intentionally contains no state.  The tracker feeds it
timestamps and flags; it answers which mode holds.
"""

from __future__ import annotations

from tanklink.state.events import SystemMode


def elapsed(now: float, last_seen: float | None) -> float | None:
    """Seconds since *last_seen*; ``None`` when never seen.

    A clock anomaly (``now`` earlier than ``last_seen``) counts as zero
    elapsed time rather than a negative duration.
    """
    if last_seen is None:
        return None
    return max(0.0, now - last_seen)


def is_expired(now: float, last_seen: float | None, timeout: float) -> bool:
    since = elapsed(now, last_seen)
    return since is None or since > timeout


def resolve_mode(
    *,
    now: float,
    last_gateway_seen: float | None,
    last_uplink_seen: float | None,
    last_sensor_ok: bool | None,
    gateway_timeout: float,
    uplink_timeout: float,
) -> SystemMode:
    """Pick the single current mode, most severe condition first."""
    if is_expired(now, last_gateway_seen, gateway_timeout):
        return SystemMode.GATEWAY_DISCONNECTED
    if is_expired(now, last_uplink_seen, uplink_timeout):
        return SystemMode.WAITING_UPLINK
    if last_sensor_ok is False:
        return SystemMode.SENSOR_ERROR
    return SystemMode.NORMAL
