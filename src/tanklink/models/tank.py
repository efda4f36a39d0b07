"""Tank calibration model."""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field

from tanklink.exceptions import TankConfigError


class TankConfig(BaseModel):
    """Tank geometry pushed by the sensor side.

    Unit conversion happens on the sensor/gateway; the calibration is kept
    here only so viewers can display it.

    Parameters
    ----------
    empty_distance_cm : float
        Sensor-to-surface distance when the tank is empty.
    full_distance_cm : float
        Sensor-to-surface distance when the tank is full.  Always smaller
        than ``empty_distance_cm`` for a physically valid tank.
    total_volume_liters : float
        Capacity of the tank.
    updated_at : datetime
        When this calibration was accepted.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    empty_distance_cm: float
    full_distance_cm: float
    total_volume_liters: float
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    def check(self) -> TankConfig:
        """Raise :class:`TankConfigError` unless the geometry is usable."""
        if min(self.empty_distance_cm, self.full_distance_cm, self.total_volume_liters) <= 0:
            raise TankConfigError("tank dimensions must be positive")
        if self.full_distance_cm >= self.empty_distance_cm:
            raise TankConfigError(
                f"full distance ({self.full_distance_cm} cm) must be smaller than "
                f"empty distance ({self.empty_distance_cm} cm)"
            )
        return self

    def same_geometry(self, other: TankConfig | None) -> bool:
        """Whether *other* describes the same tank (``updated_at`` ignored)."""
        if other is None:
            return False
        return (
            self.empty_distance_cm == other.empty_distance_cm
            and self.full_distance_cm == other.full_distance_cm
            and self.total_volume_liters == other.total_volume_liters
        )
