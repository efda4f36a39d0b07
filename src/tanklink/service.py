"""Service wiring: core, fan-out, relay, timer and transports."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from typing import Any

from aiohttp import web

from tanklink._mqtt import MqttBootstrap, TankLinkMqttRuntime
from tanklink.broadcast import Broadcaster
from tanklink.config import TankLinkConfig
from tanklink.config_store import JsonTankConfigStore, MemoryTankConfigStore, TankConfigStore
from tanklink.core import TelemetryCore
from tanklink.relay import CommandRelay
from tanklink.timer import EvaluationTimer
from tanklink.web import create_app

_logger = logging.getLogger(__name__)


class TankLinkService:
    """Owns every long-lived component of one tanklink process.

    Usage::

        async with TankLinkService(TankLinkConfig.from_env()) as service:
            service.core.ingest(payload)

    or, for the HTTP/WebSocket server, ``web.run_app(service.create_app())``
    which starts and stops the service with the application.
    """

    def __init__(
        self,
        config: TankLinkConfig | None = None,
        *,
        config_store: TankConfigStore | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config or TankLinkConfig.from_env()
        if config_store is None:
            if self._config.config_path:
                config_store = JsonTankConfigStore(self._config.config_path)
            else:
                config_store = MemoryTankConfigStore()
        self._broadcaster = Broadcaster(
            queue_size=self._config.subscriber_queue_size,
            overflow_policy=self._config.overflow_policy,
        )
        self._core = TelemetryCore.from_config(
            self._config,
            config_store=config_store,
            broadcaster=self._broadcaster,
            clock=clock,
        )
        self._relay = CommandRelay(self._core.evaluate)
        self._timer = EvaluationTimer(self._core.tick, self._config.evaluation_interval)
        self._mqtt: TankLinkMqttRuntime | None = None
        self._started = False

    @property
    def config(self) -> TankLinkConfig:
        return self._config

    @property
    def core(self) -> TelemetryCore:
        return self._core

    @property
    def broadcaster(self) -> Broadcaster:
        return self._broadcaster

    @property
    def relay(self) -> CommandRelay:
        return self._relay

    @property
    def timer(self) -> EvaluationTimer:
        return self._timer

    @property
    def mqtt(self) -> TankLinkMqttRuntime | None:
        return self._mqtt

    @property
    def is_running(self) -> bool:
        return self._started

    async def start(self) -> None:
        if self._started:
            return
        self._timer.start()
        if self._config.mqtt_enabled:
            runtime = TankLinkMqttRuntime(
                loop=asyncio.get_running_loop(),
                on_payload=self._ingest_mqtt,
                keepalive=self._config.mqtt_keepalive,
            )
            runtime.start(MqttBootstrap.from_config(self._config))
            self._mqtt = runtime
        self._started = True
        _logger.info(
            "tanklink started (gateway_timeout=%.0fs uplink_timeout=%.0fs mqtt=%s)",
            self._config.gateway_timeout,
            self._config.uplink_timeout,
            "on" if self._mqtt else "off",
        )

    async def stop(self) -> None:
        if not self._started:
            return
        self._started = False
        await self._timer.stop()
        runtime = self._mqtt
        self._mqtt = None
        if runtime is not None:
            self._relay.detach(runtime)
            runtime.stop()
        await self._broadcaster.close()
        _logger.info("tanklink stopped")

    async def __aenter__(self) -> TankLinkService:
        await self.start()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.stop()

    def _ingest_mqtt(self, payload: dict[str, Any]) -> None:
        result = self._core.ingest(payload)
        if result.accepted and self._mqtt is not None:
            self._relay.attach(self._mqtt)

    def create_app(self) -> web.Application:
        """aiohttp application whose lifecycle drives this service."""
        app = create_app(
            self._core,
            self._broadcaster,
            self._relay,
            environment=self._config.environment,
        )
        app.on_startup.append(self._on_startup)
        app.on_cleanup.append(self._on_cleanup)
        return app

    async def _on_startup(self, _app: web.Application) -> None:
        await self.start()

    async def _on_cleanup(self, _app: web.Application) -> None:
        await self.stop()
