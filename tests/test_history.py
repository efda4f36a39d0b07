from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from tanklink.exceptions import TankLinkConfigError
from tanklink.models.reading import HistoryEntry, Reading, ReadingStatus
from tanklink.state.history import TelemetryHistory

T0 = datetime(2026, 1, 1, 8, 0, tzinfo=UTC)
WINDOW = timedelta(minutes=5)


def _normal(liters: int, minutes: float) -> HistoryEntry:
    return HistoryEntry(
        reading=Reading(
            device="tank-1",
            distance_cm=50.0,
            level_percent=60,
            liters=liters,
            sensor_ok=True,
            observed_at=T0 + timedelta(minutes=minutes),
            status=ReadingStatus.NORMAL,
        )
    )


def _placeholder(minutes: float, status: ReadingStatus = ReadingStatus.WAITING_UPLINK) -> HistoryEntry:
    return HistoryEntry(
        reading=Reading.placeholder(device="tank-1", status=status, observed_at=T0 + timedelta(minutes=minutes))
    )


def _sensor_error(minutes: float) -> HistoryEntry:
    return HistoryEntry(
        reading=Reading(
            device="tank-1",
            observed_at=T0 + timedelta(minutes=minutes),
            status=ReadingStatus.SENSOR_ERROR,
        )
    )


def test_capacity_evicts_oldest_first() -> None:
    history = TelemetryHistory(capacity=3)

    for liters in range(5):
        history.append(_normal(liters, liters))

    assert len(history) == 3
    assert [r.liters for r in history.readings()] == [2, 3, 4]
    assert history.capacity == 3


def test_capacity_must_be_positive() -> None:
    with pytest.raises(TankLinkConfigError):
        TelemetryHistory(capacity=0)


def test_clear_drops_everything() -> None:
    history = TelemetryHistory()
    history.append(_normal(100, 0))
    history.append(_placeholder(1))

    history.clear()

    assert len(history) == 0
    assert history.latest() is None
    assert history.visible(WINDOW) == []


def test_latest_reading_skips_placeholders() -> None:
    history = TelemetryHistory()
    history.append(_normal(100, 0))
    history.append(_placeholder(1))

    latest = history.latest_reading()
    newest_entry = history.latest()

    assert latest is not None
    assert latest.liters == 100
    assert newest_entry is not None
    assert newest_entry.status == ReadingStatus.WAITING_UPLINK


def test_gap_resolved_within_window_is_hidden() -> None:
    history = TelemetryHistory()
    history.append(_normal(3000, 0))
    history.append(_placeholder(1))
    history.append(_placeholder(3))
    history.append(_normal(2990, 4))

    visible = history.visible(WINDOW)

    assert [e.status for e in visible] == [ReadingStatus.NORMAL, ReadingStatus.NORMAL]
    # The store itself keeps every entry.
    assert len(history.entries()) == 4


def test_gap_resolved_after_window_stays_visible() -> None:
    history = TelemetryHistory()
    history.append(_normal(3000, 0))
    history.append(_placeholder(1))
    history.append(_normal(2990, 7))

    assert len(history.visible(WINDOW)) == 3


def test_gap_not_followed_by_normal_reading_stays_visible() -> None:
    history = TelemetryHistory()
    history.append(_placeholder(0))
    history.append(_sensor_error(1))
    history.append(_placeholder(2))

    statuses = [e.status for e in history.visible(WINDOW)]

    assert statuses == [
        ReadingStatus.WAITING_UPLINK,
        ReadingStatus.SENSOR_ERROR,
        ReadingStatus.WAITING_UPLINK,
    ]


def test_disconnect_placeholders_are_never_hidden() -> None:
    history = TelemetryHistory()
    history.append(_placeholder(0, ReadingStatus.GATEWAY_DISCONNECTED))
    history.append(_normal(3000, 1))

    assert len(history.visible(WINDOW)) == 2
