"""Service configuration for tanklink."""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Mapping
from typing import Any

from tanklink.exceptions import TankLinkConfigError

OVERFLOW_POLICIES: frozenset[str] = frozenset({"drop_oldest", "disconnect"})


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_number(env: Mapping[str, str], key: str, cast: type) -> Any:
    value = env.get(key)
    if value is None:
        return None
    try:
        return cast(value.strip())
    except ValueError as exc:
        raise TankLinkConfigError(f"{key} must be a {cast.__name__}, got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class TankLinkConfig:
    """Service configuration.

    Parameters
    ----------
    device_id : str or None
        Only payloads from this sensor id are accepted.  ``None`` accepts
        any device (single-tank deployments usually leave it unset).
    gateway_timeout : float
        Seconds without any gateway message before the gateway is declared
        disconnected and the reading history is cleared.
    uplink_timeout : float
        Seconds without a sensor payload before the uplink is declared
        silent.  Must be strictly smaller than ``gateway_timeout``.
    evaluation_interval : float
        Period of the fixed-rate liveness evaluation timer.
    history_capacity : int
        Maximum number of history entries kept (oldest evicted first).
    dedup_window : float
        Uplink gaps resolved by a normal reading within this many seconds
        are hidden from the visible history.
    placeholder_interval : float
        Minimum spacing between placeholder history entries while the
        uplink stays silent.
    subscriber_queue_size : int
        Per-subscriber broadcast queue bound.
    overflow_policy : str
        ``"drop_oldest"`` or ``"disconnect"`` when a subscriber queue is full.
    config_path : str or None
        JSON file holding the tank calibration snapshot.  ``None`` keeps the
        calibration in memory only.
    http_host, http_port
        Bind address of the aiohttp web adapter.
    environment : str
        Free-form deployment label reported by ``/health``.
    mqtt_enabled : bool
        Start the paho-mqtt ingestion runtime.
    mqtt_host, mqtt_port, mqtt_topic, mqtt_command_topic, mqtt_keepalive
        Broker connection details for the MQTT runtime.
    """

    device_id: str | None = None
    gateway_timeout: float = 60.0
    uplink_timeout: float = 20.0
    evaluation_interval: float = 10.0
    history_capacity: int = 200
    dedup_window: float = 300.0
    placeholder_interval: float = 300.0
    subscriber_queue_size: int = 32
    overflow_policy: str = "drop_oldest"
    config_path: str | None = None
    http_host: str = "0.0.0.0"  # noqa: S104
    http_port: int = 3000
    environment: str = "production"
    mqtt_enabled: bool = False
    mqtt_host: str = "localhost"
    mqtt_port: int = 1883
    mqtt_topic: str = "tanklink/telemetry"
    mqtt_command_topic: str = "tanklink/command"
    mqtt_keepalive: int = 60

    def validate(self) -> TankLinkConfig:
        """Check cross-field constraints and return ``self``."""
        for name in ("gateway_timeout", "uplink_timeout", "evaluation_interval", "dedup_window", "placeholder_interval"):
            if getattr(self, name) <= 0:
                raise TankLinkConfigError(f"{name} must be positive")
        if self.uplink_timeout >= self.gateway_timeout:
            raise TankLinkConfigError(
                f"uplink_timeout ({self.uplink_timeout}) must be smaller than gateway_timeout ({self.gateway_timeout})"
            )
        if self.history_capacity <= 0 or self.subscriber_queue_size <= 0:
            raise TankLinkConfigError("history_capacity and subscriber_queue_size must be positive")
        if self.overflow_policy not in OVERFLOW_POLICIES:
            raise TankLinkConfigError(f"overflow_policy must be one of {sorted(OVERFLOW_POLICIES)}")
        return self

    @classmethod
    def from_env(cls, **overrides: Any) -> TankLinkConfig:
        """Create configuration from ``TANKLINK_*`` environment variables.

        Explicit keyword arguments override environment values.  ``PORT`` is
        honoured as a fallback for the HTTP port, as hosting platforms set it.
        """
        env = os.environ

        _ENV_STR_MAP = {
            "TANKLINK_DEVICE_ID": "device_id",
            "TANKLINK_OVERFLOW_POLICY": "overflow_policy",
            "TANKLINK_CONFIG_PATH": "config_path",
            "TANKLINK_HTTP_HOST": "http_host",
            "TANKLINK_ENVIRONMENT": "environment",
            "TANKLINK_MQTT_HOST": "mqtt_host",
            "TANKLINK_MQTT_TOPIC": "mqtt_topic",
            "TANKLINK_MQTT_COMMAND_TOPIC": "mqtt_command_topic",
        }
        _ENV_FLOAT_MAP = {
            "TANKLINK_GATEWAY_TIMEOUT": "gateway_timeout",
            "TANKLINK_UPLINK_TIMEOUT": "uplink_timeout",
            "TANKLINK_EVALUATION_INTERVAL": "evaluation_interval",
            "TANKLINK_DEDUP_WINDOW": "dedup_window",
            "TANKLINK_PLACEHOLDER_INTERVAL": "placeholder_interval",
        }
        _ENV_INT_MAP = {
            "TANKLINK_HISTORY_CAPACITY": "history_capacity",
            "TANKLINK_SUBSCRIBER_QUEUE_SIZE": "subscriber_queue_size",
            "TANKLINK_HTTP_PORT": "http_port",
            "TANKLINK_MQTT_PORT": "mqtt_port",
            "TANKLINK_MQTT_KEEPALIVE": "mqtt_keepalive",
        }

        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None and val.strip():
                config_kwargs[field_name] = val.strip()
        for env_key, field_name in _ENV_FLOAT_MAP.items():
            parsed = _env_number(env, env_key, float)
            if parsed is not None:
                config_kwargs[field_name] = parsed
        for env_key, field_name in _ENV_INT_MAP.items():
            parsed = _env_number(env, env_key, int)
            if parsed is not None:
                config_kwargs[field_name] = parsed

        if "http_port" not in config_kwargs:
            port = _env_number(env, "PORT", int)
            if port is not None:
                config_kwargs["http_port"] = port

        if "mqtt_enabled" not in overrides:
            config_kwargs["mqtt_enabled"] = _env_bool(env.get("TANKLINK_MQTT_ENABLED"), False)

        config_kwargs.update(overrides)

        return cls(**config_kwargs).validate()
