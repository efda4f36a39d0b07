"""Telemetry state engine.

:class:`TelemetryCore` is the single entry point for ingestion and
queries.  It owns the liveness tracker, the reading history, the signal
quality cache and the current tank calibration.  All of its methods are
synchronous and must be called from one thread (normally the asyncio
event loop); transports running elsewhere hop onto the loop first.
"""

from __future__ import annotations

import dataclasses
import logging
import time
from collections.abc import Callable, Mapping
from datetime import UTC, datetime, timedelta
from enum import StrEnum
from typing import Any

from tanklink._redact import redact_for_log
from tanklink.broadcast import Broadcaster
from tanklink.config import TankLinkConfig
from tanklink.config_store import MemoryTankConfigStore, TankConfigStore
from tanklink.consumption import annotate
from tanklink.exceptions import PayloadError, TankConfigError
from tanklink.ingestion.readings import build_reading, calibration_from_payload, parse_payload
from tanklink.models.payload import GatewayPayload, PayloadKind
from tanklink.models.reading import HistoryEntry, Reading, ReadingStatus
from tanklink.models.snapshot import BroadcastKind, BroadcastMessage, Snapshot
from tanklink.models.tank import TankConfig
from tanklink.quality import SignalQualityEstimator, SignalSample
from tanklink.state.events import ModeTransition, SystemMode
from tanklink.state.history import TelemetryHistory
from tanklink.state.liveness import LivenessState, LivenessTracker

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ConfigUpdate(StrEnum):
    """What an ingested message did to the tank calibration."""

    NONE = "none"
    UNCHANGED = "unchanged"
    UPDATED = "updated"
    REJECTED = "rejected"


@dataclasses.dataclass(frozen=True, slots=True)
class IngestResult:
    accepted: bool
    kind: PayloadKind | None = None
    config_update: ConfigUpdate = ConfigUpdate.NONE
    reason: str | None = None


@dataclasses.dataclass(slots=True)
class TelemetryStats:
    """Counters reported by the health endpoint."""

    started_at: float
    messages_received: int = 0
    messages_rejected: int = 0
    readings_ingested: int = 0
    heartbeats: int = 0
    config_updates: int = 0
    config_rejections: int = 0
    gateway_reconnects: int = 0

    def uptime(self, now: float) -> float:
        return max(0.0, now - self.started_at)


class TelemetryCore:
    """Liveness and telemetry state engine for one tank.

    Usage::

        core = TelemetryCore.from_config(config, broadcaster=broadcaster)
        core.ingest({"device": "tank-1", "liters": 2900, ...})
        snapshot = core.snapshot()
    """

    def __init__(
        self,
        *,
        gateway_timeout: float = 60.0,
        uplink_timeout: float = 20.0,
        history_capacity: int = 200,
        dedup_window: float = 300.0,
        placeholder_interval: float = 300.0,
        device_id: str | None = None,
        config_store: TankConfigStore | None = None,
        broadcaster: Broadcaster | None = None,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._clock = clock
        self._wall_clock = wall_clock
        self._device_id = device_id
        self._dedup_window = timedelta(seconds=dedup_window)
        self._placeholder_interval = placeholder_interval
        self._config_store: TankConfigStore = config_store if config_store is not None else MemoryTankConfigStore()
        self._broadcaster = broadcaster

        self._history = TelemetryHistory(history_capacity)
        self._estimator = SignalQualityEstimator()
        self._tracker = LivenessTracker(
            gateway_timeout=gateway_timeout,
            uplink_timeout=uplink_timeout,
            on_gateway_lost=self._handle_gateway_lost,
            on_gateway_reconnected=self._handle_gateway_reconnected,
            on_mode_changed=self._handle_mode_changed,
        )
        self._stats = TelemetryStats(started_at=clock())
        self._tank_config: TankConfig | None = self._config_store.load()
        self._device = device_id or ""
        self._last_wifi_rssi: float | None = None
        self._last_placeholder_at: float | None = None

    @classmethod
    def from_config(
        cls,
        config: TankLinkConfig,
        *,
        config_store: TankConfigStore | None = None,
        broadcaster: Broadcaster | None = None,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], datetime] = _utcnow,
    ) -> TelemetryCore:
        return cls(
            gateway_timeout=config.gateway_timeout,
            uplink_timeout=config.uplink_timeout,
            history_capacity=config.history_capacity,
            dedup_window=config.dedup_window,
            placeholder_interval=config.placeholder_interval,
            device_id=config.device_id,
            config_store=config_store,
            broadcaster=broadcaster,
            clock=clock,
            wall_clock=wall_clock,
        )

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def mode(self) -> SystemMode:
        """Mode as of the last evaluation."""
        return self._tracker.mode

    @property
    def liveness(self) -> LivenessState:
        return self._tracker.state()

    @property
    def stats(self) -> TelemetryStats:
        return self._stats

    @property
    def tank_config(self) -> TankConfig | None:
        return self._tank_config

    @property
    def history(self) -> TelemetryHistory:
        return self._history

    @property
    def broadcaster(self) -> Broadcaster | None:
        return self._broadcaster

    def now(self) -> float:
        return self._clock()

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    def ingest(self, payload: Mapping[str, Any], received_at: float | None = None) -> IngestResult:
        """Feed one decoded gateway message into the engine."""
        now = received_at if received_at is not None else self._clock()
        self._stats.messages_received += 1

        try:
            parsed = parse_payload(payload)
        except PayloadError as exc:
            return self._reject(str(exc), payload)
        if self._device_id and parsed.device and parsed.device != self._device_id:
            return self._reject(f"unexpected device {parsed.device!r}", payload)

        kind = parsed.kind
        _logger.debug("Ingesting %s payload %s", kind.value, redact_for_log(parsed.raw))

        self._tracker.record_gateway_contact(now)
        if parsed.wifi_rssi is not None:
            self._last_wifi_rssi = parsed.wifi_rssi
        config_update = self._apply_calibration(parsed)

        entry: HistoryEntry | None = None
        if kind == PayloadKind.HEARTBEAT:
            self._stats.heartbeats += 1
        elif kind == PayloadKind.READING:
            entry = self._record_reading(parsed, now)

        self.evaluate(now)
        if entry is not None:
            self._publish(BroadcastMessage.of(BroadcastKind.READING, entry))
        return IngestResult(accepted=True, kind=kind, config_update=config_update)

    def _reject(self, reason: str, payload: Any) -> IngestResult:
        self._stats.messages_rejected += 1
        _logger.debug("Rejected payload (%s): %s", reason, redact_for_log(payload))
        return IngestResult(accepted=False, reason=reason)

    def _record_reading(self, parsed: GatewayPayload, now: float) -> HistoryEntry:
        quality = self._estimator.estimate_sample(SignalSample(parsed.lora_rssi, parsed.lora_snr))
        reading = build_reading(parsed, observed_at=self._wall_clock(), quality=quality)
        self._tracker.record_uplink_contact(now, sensor_ok=reading.sensor_ok)
        if reading.device:
            self._device = reading.device

        figures = annotate([*self._history.readings(), reading], reading)
        entry = HistoryEntry(
            reading=reading,
            consumption_1h=figures.last_hour,
            consumption_week=figures.last_week,
            consumption_month=figures.last_month,
        )
        self._history.append(entry)
        self._stats.readings_ingested += 1
        return entry

    def _apply_calibration(self, parsed: GatewayPayload) -> ConfigUpdate:
        candidate = calibration_from_payload(parsed, updated_at=self._wall_clock())
        if candidate is None:
            return ConfigUpdate.NONE
        if candidate.same_geometry(self._tank_config):
            return ConfigUpdate.UNCHANGED
        try:
            self._config_store.save(candidate)
        except TankConfigError as exc:
            self._stats.config_rejections += 1
            _logger.warning("Rejected tank calibration: %s", exc)
            return ConfigUpdate.REJECTED
        except OSError:
            # Still valid; only the snapshot on disk is stale.
            _logger.error("Could not persist tank calibration", exc_info=True)
        self._tank_config = candidate
        self._stats.config_updates += 1
        _logger.info(
            "Tank calibration updated: empty=%.1fcm full=%.1fcm volume=%.0fL",
            candidate.empty_distance_cm,
            candidate.full_distance_cm,
            candidate.total_volume_liters,
        )
        return ConfigUpdate.UPDATED

    # ------------------------------------------------------------------
    # Evaluation and queries
    # ------------------------------------------------------------------

    def evaluate(self, now: float | None = None) -> SystemMode:
        """Bring the mode up to date; call before reading any state."""
        now = now if now is not None else self._clock()
        mode = self._tracker.evaluate(now)
        if (
            mode == SystemMode.WAITING_UPLINK
            and self._last_placeholder_at is not None
            and now - self._last_placeholder_at >= self._placeholder_interval
        ):
            self._append_placeholder(now)
        return mode

    def snapshot(self) -> Snapshot:
        """The display payload served to both pull queries and pushes."""
        mode = self.evaluate()
        return Snapshot(
            mode=mode,
            reading=self._current_reading(mode),
            history=self._history.visible(self._dedup_window),
            tank_config=self._tank_config,
            liveness=self._tracker.state(),
            generated_at=self._wall_clock(),
        )

    def tick(self) -> Snapshot:
        """Periodic evaluation: refresh the mode and push a snapshot."""
        snapshot = self.snapshot()
        self._publish(BroadcastMessage.of(BroadcastKind.SNAPSHOT, snapshot))
        return snapshot

    def _current_reading(self, mode: SystemMode) -> Reading:
        if mode in (SystemMode.NORMAL, SystemMode.SENSOR_ERROR):
            latest = self._history.latest_reading()
            if latest is not None:
                return latest
        return self._placeholder(ReadingStatus(mode.value))

    def _placeholder(self, status: ReadingStatus) -> Reading:
        return Reading.placeholder(
            device=self._device,
            status=status,
            observed_at=self._wall_clock(),
            wifi_rssi=self._last_wifi_rssi if status != ReadingStatus.GATEWAY_DISCONNECTED else None,
        )

    def _append_placeholder(self, now: float) -> None:
        self._history.append(HistoryEntry(reading=self._placeholder(ReadingStatus.WAITING_UPLINK)))
        self._last_placeholder_at = now

    # ------------------------------------------------------------------
    # Liveness edges
    # ------------------------------------------------------------------

    def _handle_gateway_lost(self) -> None:
        dropped = len(self._history)
        self._history.clear()
        self._estimator.reset()
        self._last_placeholder_at = None
        _logger.info("History cleared after gateway loss (%d entries dropped)", dropped)

    def _handle_gateway_reconnected(self, count: int) -> None:
        self._stats.gateway_reconnects = count
        self._publish(BroadcastMessage.of(BroadcastKind.GATEWAY_RECONNECTED, {"reconnects": count}))

    def _handle_mode_changed(self, transition: ModeTransition) -> None:
        if transition.current == SystemMode.WAITING_UPLINK:
            self._estimator.reset()
            self._append_placeholder(transition.at)
        else:
            self._last_placeholder_at = None
        self._publish(BroadcastMessage.of(BroadcastKind.MODE_CHANGED, transition))

    def _publish(self, message: BroadcastMessage) -> None:
        if self._broadcaster is not None:
            self._broadcaster.publish(message)
