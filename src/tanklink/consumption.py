"""Rolling consumption figures over trailing windows."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timedelta
from typing import NamedTuple

from tanklink.models.reading import Reading, ReadingStatus

HOUR = timedelta(hours=1)
WEEK = timedelta(days=7)
MONTH = timedelta(days=30)


class ConsumptionFigures(NamedTuple):
    """Liters consumed in the trailing windows; ``None`` = not enough data."""

    last_hour: int | None
    last_week: int | None
    last_month: int | None


def _qualifies(reading: Reading) -> bool:
    return reading.status == ReadingStatus.NORMAL and reading.liters >= 0


def consumption_in_window(readings: Sequence[Reading], anchor: datetime, window: timedelta) -> int | None:
    """Liters consumed between ``anchor - window`` and ``anchor``.

    *readings* must be ordered oldest first.  Only normal readings with a
    valid volume count.  Fewer than two of them inside the window gives
    ``None`` so callers can tell "no usage" from "no data".  A refill
    (volume going up) clamps to zero instead of reporting negative usage.
    """
    start = anchor - window
    inside = [r for r in readings if _qualifies(r) and start <= r.observed_at <= anchor]
    if len(inside) < 2:
        return None
    return max(0, inside[0].liters - inside[-1].liters)


def annotate(readings: Sequence[Reading], anchor_reading: Reading) -> ConsumptionFigures:
    anchor = anchor_reading.observed_at
    return ConsumptionFigures(
        last_hour=consumption_in_window(readings, anchor, HOUR),
        last_week=consumption_in_window(readings, anchor, WEEK),
        last_month=consumption_in_window(readings, anchor, MONTH),
    )


def rolling_consumption(readings: Sequence[Reading]) -> list[ConsumptionFigures]:
    """Figures anchored at every reading of *readings* (oldest first)."""
    return [annotate(readings[: index + 1], reading) for index, reading in enumerate(readings)]
