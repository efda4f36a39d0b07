"""Tank reading and history entry models."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, model_validator

#: Sentinel used for every quantity that is unknown or invalid.
INVALID = -1


class ReadingStatus(StrEnum):
    """Status a reading was recorded under."""

    NORMAL = "normal"
    WAITING_UPLINK = "waiting_uplink"
    SENSOR_ERROR = "sensor_error"
    GATEWAY_DISCONNECTED = "gateway_disconnected"


class Reading(BaseModel):
    """One tank reading as displayed to viewers.

    Parameters
    ----------
    device : str
        Sensor identifier reported by the gateway.
    distance_cm : float
        Distance from the sensor to the liquid surface, ``-1`` when invalid.
    level_percent : int
        Fill level 0-100, ``-1`` when invalid.
    liters : int
        Remaining volume, ``-1`` when invalid.
    sensor_ok : bool
        Sensor hardware health flag.
    rssi, snr : float or None
        Radio metrics of the uplink packet.
    wifi_rssi : float or None
        Gateway Wi-Fi signal, display only.
    quality : int or None
        Uplink quality 0-100; ``None`` means unknown.
    observed_at : datetime
        Wall-clock time the reading was received.
    status : ReadingStatus
        Status the reading was recorded under.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    device: str
    distance_cm: float = INVALID
    level_percent: int = INVALID
    liters: int = INVALID
    sensor_ok: bool = False
    rssi: float | None = None
    snr: float | None = None
    wifi_rssi: float | None = None
    quality: int | None = None
    observed_at: datetime
    status: ReadingStatus

    @model_validator(mode="after")
    def _enforce_status_invariant(self) -> Reading:
        if self.status == ReadingStatus.NORMAL:
            if not self.sensor_ok:
                raise ValueError("a normal reading requires sensor_ok")
            if min(self.distance_cm, self.level_percent, self.liters) < 0:
                raise ValueError("a normal reading requires non-negative quantities")
            return self
        for field_name in ("distance_cm", "level_percent", "liters"):
            object.__setattr__(self, field_name, INVALID)
        return self

    @classmethod
    def placeholder(
        cls,
        *,
        device: str,
        status: ReadingStatus,
        observed_at: datetime,
        wifi_rssi: float | None = None,
    ) -> Reading:
        """Synthetic reading standing in for missing data in a non-normal mode."""
        return cls(
            device=device,
            sensor_ok=False,
            wifi_rssi=wifi_rssi,
            observed_at=observed_at,
            status=status,
        )

    @property
    def is_placeholder(self) -> bool:
        return self.status in (ReadingStatus.WAITING_UPLINK, ReadingStatus.GATEWAY_DISCONNECTED)


class HistoryEntry(BaseModel):
    """A reading annotated with trailing consumption figures (liters)."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    reading: Reading
    consumption_1h: int | None = None
    consumption_week: int | None = None
    consumption_month: int | None = None

    @property
    def status(self) -> ReadingStatus:
        return self.reading.status

    @property
    def observed_at(self) -> datetime:
        return self.reading.observed_at
