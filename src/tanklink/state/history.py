"""Bounded, status-aware reading history."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterator
from datetime import timedelta

from tanklink.exceptions import TankLinkConfigError
from tanklink.models.reading import HistoryEntry, Reading, ReadingStatus

DEFAULT_CAPACITY = 200
DEFAULT_DEDUP_WINDOW = timedelta(minutes=5)


class TelemetryHistory:
    """Insertion-ordered log of history entries, oldest evicted first.

    The only destructive operation is :meth:`clear`, driven by the gateway
    loss edge.  The dedup filter in :meth:`visible` works on a copy and
    never discards stored data.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity <= 0:
            raise TankLinkConfigError("history capacity must be positive")
        self._entries: deque[HistoryEntry] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        maxlen = self._entries.maxlen
        assert maxlen is not None  # noqa: S101
        return maxlen

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[HistoryEntry]:
        return iter(list(self._entries))

    def append(self, entry: HistoryEntry) -> None:
        self._entries.append(entry)

    def clear(self) -> None:
        self._entries.clear()

    def entries(self) -> list[HistoryEntry]:
        return list(self._entries)

    def readings(self) -> list[Reading]:
        return [entry.reading for entry in self._entries]

    def latest(self) -> HistoryEntry | None:
        return self._entries[-1] if self._entries else None

    def latest_reading(self) -> Reading | None:
        """Most recent non-placeholder reading."""
        for entry in reversed(self._entries):
            if not entry.reading.is_placeholder:
                return entry.reading
        return None

    def visible(self, window: timedelta = DEFAULT_DEDUP_WINDOW) -> list[HistoryEntry]:
        """Entries as shown to viewers.

        A run of consecutive ``waiting_uplink`` placeholders is hidden when
        the entry right after the run is a ``normal`` reading observed
        within *window* of the run's first placeholder: the gap resolved
        itself and would only add noise to the trend.
        """
        entries = list(self._entries)
        result: list[HistoryEntry] = []
        index = 0
        while index < len(entries):
            entry = entries[index]
            if entry.status != ReadingStatus.WAITING_UPLINK:
                result.append(entry)
                index += 1
                continue

            run_end = index
            while run_end < len(entries) and entries[run_end].status == ReadingStatus.WAITING_UPLINK:
                run_end += 1
            run = entries[index:run_end]
            follower = entries[run_end] if run_end < len(entries) else None
            resolved = (
                follower is not None
                and follower.status == ReadingStatus.NORMAL
                and follower.observed_at - run[0].observed_at <= window
            )
            if not resolved:
                result.extend(run)
            index = run_end
        return result
