"""System modes and the transitions between them.

The liveness tracker is the only component allowed to produce transitions;
everything else observes them.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class SystemMode(StrEnum):
    """Overall health of the gateway/uplink/sensor chain.

    Exactly one mode holds at any instant.  When several conditions are
    true at once the most severe one wins.
    """

    GATEWAY_DISCONNECTED = "gateway_disconnected"
    WAITING_UPLINK = "waiting_uplink"
    SENSOR_ERROR = "sensor_error"
    NORMAL = "normal"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]


_SEVERITY: dict[SystemMode, int] = {
    SystemMode.GATEWAY_DISCONNECTED: 3,
    SystemMode.WAITING_UPLINK: 2,
    SystemMode.SENSOR_ERROR: 1,
    SystemMode.NORMAL: 0,
}


class ModeTransition(BaseModel):
    """An observed edge between two modes."""

    model_config = ConfigDict(frozen=True)

    previous: SystemMode | None
    current: SystemMode
    at: float = Field(..., description="Monotonic timestamp of the evaluation")
    observed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def escalated(self) -> bool:
        if self.previous is None:
            return True
        return self.current.severity > self.previous.severity
