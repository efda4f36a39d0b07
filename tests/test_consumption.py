from __future__ import annotations

from datetime import UTC, datetime, timedelta

from tanklink.consumption import (
    HOUR,
    WEEK,
    annotate,
    consumption_in_window,
    rolling_consumption,
)
from tanklink.models.reading import Reading, ReadingStatus

T0 = datetime(2026, 1, 1, 8, 0, tzinfo=UTC)


def _reading(liters: int, at: datetime, *, status: ReadingStatus = ReadingStatus.NORMAL) -> Reading:
    return Reading(
        device="tank-1",
        distance_cm=50.0,
        level_percent=60,
        liters=liters,
        sensor_ok=status == ReadingStatus.NORMAL,
        observed_at=at,
        status=status,
    )


def test_usage_over_half_an_hour() -> None:
    anchor = T0 + timedelta(minutes=30)
    readings = [_reading(5000, T0), _reading(4800, anchor)]

    assert consumption_in_window(readings, anchor, HOUR) == 200
    assert consumption_in_window(readings, anchor, WEEK) == 200


def test_single_reading_is_not_enough_data() -> None:
    readings = [_reading(5000, T0)]

    assert consumption_in_window(readings, T0, HOUR) is None


def test_refill_never_reports_negative_usage() -> None:
    t1 = T0 + timedelta(minutes=40)
    readings = [_reading(200, T0), _reading(3000, t1)]

    assert consumption_in_window(readings, t1, HOUR) == 0


def test_readings_outside_window_are_ignored() -> None:
    anchor = T0 + timedelta(hours=3)
    readings = [
        _reading(6000, T0),
        _reading(5900, anchor - timedelta(minutes=50)),
        _reading(5850, anchor),
    ]

    assert consumption_in_window(readings, anchor, HOUR) == 50
    assert consumption_in_window(readings, anchor, WEEK) == 150


def test_sensor_errors_and_placeholders_do_not_count() -> None:
    anchor = T0 + timedelta(minutes=20)
    readings = [
        _reading(5000, T0),
        _reading(0, T0 + timedelta(minutes=5), status=ReadingStatus.SENSOR_ERROR),
        Reading.placeholder(device="tank-1", status=ReadingStatus.WAITING_UPLINK, observed_at=T0 + timedelta(minutes=10)),
        _reading(4990, anchor),
    ]

    assert consumption_in_window(readings, anchor, HOUR) == 10


def test_annotate_fills_all_windows() -> None:
    readings = [
        _reading(5000, T0 - timedelta(days=20)),
        _reading(4000, T0 - timedelta(days=3)),
        _reading(3900, T0 - timedelta(minutes=30)),
        _reading(3880, T0),
    ]

    figures = annotate(readings, readings[-1])

    assert figures.last_hour == 20
    assert figures.last_week == 120
    assert figures.last_month == 1120


def test_rolling_consumption_anchors_every_reading() -> None:
    readings = [
        _reading(3000, T0),
        _reading(2950, T0 + timedelta(minutes=10)),
        _reading(2900, T0 + timedelta(minutes=20)),
    ]

    figures = rolling_consumption(readings)

    assert [f.last_hour for f in figures] == [None, 50, 100]
