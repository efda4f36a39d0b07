"""MQTT ingestion runtime and command transport.

Gateways that publish over MQTT instead of holding a WebSocket open are
served by :class:`TankLinkMqttRuntime`.  paho-mqtt runs its network loop in
a background thread; every decoded message hops onto the asyncio loop
before it touches the telemetry core.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, cast

import paho.mqtt.client as mqtt

from tanklink._redact import redact_for_log
from tanklink.config import TankLinkConfig
from tanklink.exceptions import GatewayUnavailableError, PayloadError
from tanklink.ingestion.readings import decode_message

RECONNECT_MIN_DELAY = 1
RECONNECT_MAX_DELAY = 30


@dataclass(frozen=True)
class MqttBootstrap:
    """Broker address, topics and credentials for one runtime."""

    broker_host: str
    broker_port: int
    topic: str
    command_topic: str
    client_id: str
    username: str | None = None
    password: str | None = None

    @classmethod
    def from_config(
        cls,
        config: TankLinkConfig,
        *,
        username: str | None = None,
        password: str | None = None,
    ) -> MqttBootstrap:
        return cls(
            broker_host=config.mqtt_host,
            broker_port=config.mqtt_port,
            topic=config.mqtt_topic,
            command_topic=config.mqtt_command_topic,
            client_id=f"tanklink_{secrets.token_hex(4)}",
            username=username,
            password=password,
        )


class TankLinkMqttRuntime:
    """Threaded paho-mqtt client feeding gateway payloads to the event loop.

    The broker connection is made asynchronously and retried by paho, so
    an unreachable broker at startup does not stop the service.  Commands
    are published to the bootstrap's command topic, which the gateway
    subscribes to.
    """

    def __init__(
        self,
        *,
        loop: asyncio.AbstractEventLoop,
        on_payload: Callable[[dict[str, Any]], None],
        keepalive: int = 60,
        logger: logging.Logger | None = None,
    ) -> None:
        self._loop = loop
        self._on_payload = on_payload
        self._keepalive = keepalive
        self._logger = logger or logging.getLogger(__name__)
        self._client: mqtt.Client | None = None
        self._bootstrap: MqttBootstrap | None = None
        self._running = False
        self._connected = False
        self._dropped = 0

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def is_connected(self) -> bool:
        """Whether the broker session is currently up."""
        return self._running and self._connected

    @property
    def dropped(self) -> int:
        """Messages discarded because they were not JSON objects."""
        return self._dropped

    def handle_message(self, topic: str, payload: bytes) -> None:
        """Decode one PUBLISH and schedule it on the loop.

        Runs on the paho network thread.
        """
        try:
            decoded = decode_message(payload, transport="mqtt")
        except PayloadError as exc:
            self._dropped += 1
            self._logger.debug("Dropping MQTT message topic=%s: %s", topic, exc)
            return
        self._logger.debug("MQTT message topic=%s payload=%s", topic, redact_for_log(decoded))
        self._loop.call_soon_threadsafe(self._on_payload, decoded)

    def start(self, bootstrap: MqttBootstrap) -> None:
        """Begin connecting to the broker and start the network thread."""
        self.stop()
        self._logger.info(
            "Starting MQTT runtime host=%s port=%s topic=%s",
            bootstrap.broker_host,
            bootstrap.broker_port,
            bootstrap.topic,
        )

        client = mqtt.Client(
            callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
            client_id=bootstrap.client_id,
        )
        client.enable_logger(self._logger)
        if bootstrap.username:
            client.username_pw_set(bootstrap.username, bootstrap.password)
        client.reconnect_delay_set(min_delay=RECONNECT_MIN_DELAY, max_delay=RECONNECT_MAX_DELAY)
        client.on_connect = self._on_connect
        client.on_message = self._on_message
        client.on_disconnect = self._on_disconnect

        self._bootstrap = bootstrap
        self._client = client
        self._running = True
        client.connect_async(bootstrap.broker_host, bootstrap.broker_port, keepalive=self._keepalive)
        client.loop_start()

    def stop(self) -> None:
        """Disconnect and join the network thread; safe to call repeatedly."""
        client = self._client
        was_running = self._running
        self._client = None
        self._running = False
        self._connected = False
        if client is None:
            return
        try:
            if was_running:
                client.disconnect()
        finally:
            client.loop_stop()
            self._logger.info("MQTT runtime stopped")

    async def send_command(self, message: str) -> None:
        client = self._client
        bootstrap = self._bootstrap
        if client is None or bootstrap is None or not self.is_connected:
            raise GatewayUnavailableError("MQTT broker is not connected")
        info = client.publish(bootstrap.command_topic, message, qos=1)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise GatewayUnavailableError(f"MQTT publish failed rc={info.rc}")
        self._logger.debug("Published command topic=%s", bootstrap.command_topic)

    # paho callbacks (network thread)

    def _on_connect(self, client: mqtt.Client, _userdata: Any, _flags: Any, reason_code: Any, _properties: Any) -> None:
        if reason_code.is_failure:
            self._logger.warning("MQTT connect refused: %s", reason_code)
            return
        self._connected = True
        bootstrap = self._bootstrap
        if bootstrap is not None:
            # Subscriptions do not survive a clean reconnect; renew each time.
            client.subscribe(bootstrap.topic, qos=0)
            self._logger.info("MQTT connected; subscribed to %s", bootstrap.topic)

    def _on_message(self, _client: mqtt.Client, _userdata: Any, msg: mqtt.MQTTMessage) -> None:
        try:
            self.handle_message(msg.topic, msg.payload)
        except Exception:
            self._logger.debug("MQTT message handling failure", exc_info=True)

    def _on_disconnect(
        self,
        _client: mqtt.Client,
        _userdata: Any,
        _flags: Any,
        reason_code: Any,
        _properties: Any,
    ) -> None:
        self._connected = False
        if self._running:
            self._logger.warning("MQTT disconnected (%s); paho will reconnect", reason_code)
