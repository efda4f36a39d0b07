"""Gateway and uplink liveness tracking.

Two independent "last seen" clocks, one for the gateway process and one
for the radio uplink, are turned into a single :class:`SystemMode`.
All timestamps are monotonic seconds (``time.monotonic()`` or the event
loop clock); wall-clock time never participates in timeout decisions.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from pydantic import BaseModel, ConfigDict

from tanklink.exceptions import TankLinkConfigError
from tanklink.state.events import ModeTransition, SystemMode
from tanklink.state.policy import is_expired, resolve_mode

_logger = logging.getLogger(__name__)


class LivenessState(BaseModel):
    """Read-only view of the tracker, as included in snapshots."""

    model_config = ConfigDict(frozen=True)

    last_gateway_seen: float | None
    last_uplink_seen: float | None
    gateway_connected: bool
    uplink_active: bool
    mode: SystemMode
    gateway_reconnects: int = 0


class LivenessTracker:
    """State machine deriving the current mode from contact timestamps.

    Listeners are invoked synchronously on edges only:

    * ``on_gateway_lost()`` once per connected -> disconnected transition.
    * ``on_gateway_reconnected(count)`` when contact resumes after a loss.
    * ``on_mode_changed(transition)`` for every mode change.

    The tracker performs no I/O.  A listener that raises is logged and
    does not affect the tracker's state.
    """

    def __init__(
        self,
        *,
        gateway_timeout: float = 60.0,
        uplink_timeout: float = 20.0,
        on_gateway_lost: Callable[[], None] | None = None,
        on_gateway_reconnected: Callable[[int], None] | None = None,
        on_mode_changed: Callable[[ModeTransition], None] | None = None,
    ) -> None:
        if uplink_timeout <= 0 or gateway_timeout <= 0:
            raise TankLinkConfigError("liveness timeouts must be positive")
        if uplink_timeout >= gateway_timeout:
            raise TankLinkConfigError("uplink_timeout must be smaller than gateway_timeout")
        self._gateway_timeout = gateway_timeout
        self._uplink_timeout = uplink_timeout
        self._on_gateway_lost = on_gateway_lost
        self._on_gateway_reconnected = on_gateway_reconnected
        self._on_mode_changed = on_mode_changed

        self._last_gateway_seen: float | None = None
        self._last_uplink_seen: float | None = None
        self._last_sensor_ok: bool | None = None
        self._gateway_connected = False
        self._ever_connected = False
        self._uplink_active = False
        self._reconnects = 0
        self._mode: SystemMode | None = None

    @property
    def gateway_timeout(self) -> float:
        return self._gateway_timeout

    @property
    def uplink_timeout(self) -> float:
        return self._uplink_timeout

    @property
    def mode(self) -> SystemMode:
        """Mode as of the last evaluation (may be stale; call :meth:`evaluate`)."""
        return self._mode if self._mode is not None else SystemMode.GATEWAY_DISCONNECTED

    @property
    def gateway_reconnects(self) -> int:
        return self._reconnects

    @property
    def last_gateway_seen(self) -> float | None:
        return self._last_gateway_seen

    def record_gateway_contact(self, now: float) -> None:
        """Note that some message proved the gateway process alive at *now*."""
        if self._gateway_connected and is_expired(now, self._last_gateway_seen, self._gateway_timeout):
            # The silence outlasted the timeout between two evaluations; the
            # loss edge still has to be observed before reconnecting.
            self._mark_gateway_lost(now)

        if self._last_gateway_seen is None or now > self._last_gateway_seen:
            self._last_gateway_seen = now

        if not self._gateway_connected:
            self._gateway_connected = True
            if self._ever_connected:
                self._reconnects += 1
                _logger.info("Gateway reconnected (reconnects=%d)", self._reconnects)
                self._notify(self._on_gateway_reconnected, self._reconnects)
            else:
                _logger.info("Gateway connected")
            self._ever_connected = True

    def record_uplink_contact(self, now: float, *, sensor_ok: bool = True) -> None:
        """Note that a sensor payload arrived over the uplink at *now*."""
        if self._last_uplink_seen is None or now > self._last_uplink_seen:
            self._last_uplink_seen = now
        self._last_sensor_ok = sensor_ok

    def evaluate(self, now: float) -> SystemMode:
        """Derive the current mode, firing edge listeners on change."""
        mode = resolve_mode(
            now=now,
            last_gateway_seen=self._last_gateway_seen,
            last_uplink_seen=self._last_uplink_seen,
            last_sensor_ok=self._last_sensor_ok,
            gateway_timeout=self._gateway_timeout,
            uplink_timeout=self._uplink_timeout,
        )
        self._uplink_active = not is_expired(now, self._last_uplink_seen, self._uplink_timeout)

        if mode == SystemMode.GATEWAY_DISCONNECTED and self._gateway_connected:
            self._mark_gateway_lost(now)
        else:
            self._transition(now, mode)
        return mode

    def state(self) -> LivenessState:
        return LivenessState(
            last_gateway_seen=self._last_gateway_seen,
            last_uplink_seen=self._last_uplink_seen,
            gateway_connected=self._gateway_connected,
            uplink_active=self._uplink_active and self._gateway_connected,
            mode=self.mode,
            gateway_reconnects=self._reconnects,
        )

    def _mark_gateway_lost(self, now: float) -> None:
        self._gateway_connected = False
        self._uplink_active = False
        _logger.warning("Gateway silent for more than %.0fs; marking disconnected", self._gateway_timeout)
        self._transition(now, SystemMode.GATEWAY_DISCONNECTED)
        self._notify(self._on_gateway_lost)

    def _transition(self, now: float, mode: SystemMode) -> None:
        previous = self._mode
        if previous == mode:
            return
        self._mode = mode
        _logger.info("Mode changed %s -> %s", previous.value if previous else None, mode.value)
        self._notify(self._on_mode_changed, ModeTransition(previous=previous, current=mode, at=now))

    @staticmethod
    def _notify(listener: Callable[..., None] | None, *args: object) -> None:
        if listener is None:
            return
        try:
            listener(*args)
        except Exception:
            _logger.warning("Liveness listener %r failed", listener, exc_info=True)
