"""Inbound gateway payload model.

The gateway forwards one JSON object per radio packet, plus periodic
heartbeats while the radio is silent.  Field names follow the gateway
firmware; numeric values may be strings or placeholders.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import AliasChoices, Field, field_validator

from tanklink.ingestion.normalize import safe_bool, safe_float, safe_int
from tanklink.models._base import TankLinkBaseModel

# Firmware keys, aliases included; presence alone marks a sensor packet.
_READING_KEYS = frozenset(
    {
        "distance",
        "level",
        "percentage",
        "liters",
        "sensor_ok",
        "sensorOk",
        "lora_rssi",
        "loraRssi",
        "rssi",
        "lora_snr",
        "loraSnr",
        "snr",
    }
)
READING_MESSAGE_TYPE = "lora_data"


class PayloadKind(StrEnum):
    """How an inbound message affects liveness."""

    HEARTBEAT = "heartbeat"  # gateway alive, no sensor data
    STATUS = "status"  # gateway alive, no reading fields (e.g. calibration push)
    READING = "reading"  # sensor payload relayed over the uplink


class GatewayPayload(TankLinkBaseModel):
    """A parsed gateway message.

    Quantities are ``None`` when absent or unparseable; the core turns
    them into the ``-1`` sentinel when building a reading.
    """

    device: str = ""
    distance: float | None = None
    level: float | None = None
    percentage: int | None = None
    liters: int | None = None
    sensor_ok: bool | None = Field(default=None, validation_alias=AliasChoices("sensor_ok", "sensorOk"))
    wifi_rssi: float | None = Field(default=None, validation_alias=AliasChoices("wifi_rssi", "wifiRssi"))
    lora_rssi: float | None = Field(default=None, validation_alias=AliasChoices("lora_rssi", "loraRssi", "rssi"))
    lora_snr: float | None = Field(default=None, validation_alias=AliasChoices("lora_snr", "loraSnr", "snr"))
    no_data: bool = False
    heartbeat: bool = False
    config_empty_distance: float | None = None
    config_full_distance: float | None = None
    config_total_volume: float | None = None

    @field_validator("device", mode="before")
    @classmethod
    def _coerce_device(cls, value: Any) -> str:
        return str(value).strip()

    @field_validator(
        "distance",
        "level",
        "wifi_rssi",
        "lora_rssi",
        "lora_snr",
        "config_empty_distance",
        "config_full_distance",
        "config_total_volume",
        mode="before",
    )
    @classmethod
    def _coerce_floats(cls, value: Any) -> float | None:
        return safe_float(value)

    @field_validator("percentage", "liters", mode="before")
    @classmethod
    def _coerce_ints(cls, value: Any) -> int | None:
        return safe_int(value)

    @field_validator("sensor_ok", mode="before")
    @classmethod
    def _coerce_sensor_ok(cls, value: Any) -> bool | None:
        return safe_bool(value)

    @field_validator("no_data", "heartbeat", mode="before")
    @classmethod
    def _coerce_flags(cls, value: Any) -> bool:
        return bool(safe_bool(value))

    @property
    def kind(self) -> PayloadKind:
        if self.heartbeat or self.no_data:
            return PayloadKind.HEARTBEAT
        if self.raw.get("type") == READING_MESSAGE_TYPE or not _READING_KEYS.isdisjoint(self.raw):
            return PayloadKind.READING
        return PayloadKind.STATUS

    @property
    def has_calibration(self) -> bool:
        return None not in (self.config_empty_distance, self.config_full_distance, self.config_total_volume)
