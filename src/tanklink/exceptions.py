"""Custom exception hierarchy for tanklink."""

from __future__ import annotations


class TankLinkError(Exception):
    """Base exception for all tanklink errors."""


class TankLinkConfigError(TankLinkError):
    """Invalid or missing service configuration."""


class TankConfigError(TankLinkError):
    """Physically invalid tank calibration.

    Raised by the configuration store when the full-tank distance is not
    strictly smaller than the empty-tank distance, or when a dimension is
    not positive.  The previously stored calibration stays in force.
    """


class PayloadError(TankLinkError):
    """Inbound message could not be decoded into a payload mapping."""

    def __init__(self, message: str, *, transport: str = "") -> None:
        self.transport = transport
        super().__init__(message)


class GatewayUnavailableError(TankLinkError):
    """A command was relayed while no gateway is reachable."""
