"""Turn decoded gateway messages into typed payloads and readings.

All transports (WebSocket, HTTP POST, MQTT) share these helpers:

- decode raw bytes/text into a JSON object (:func:`decode_message`)
- validate the object into a :class:`GatewayPayload` (:func:`parse_payload`)
- build the displayed :class:`Reading` and any calibration push
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from pydantic import ValidationError

from tanklink.exceptions import PayloadError
from tanklink.ingestion.normalize import non_negative_or_sentinel
from tanklink.models.payload import GatewayPayload
from tanklink.models.reading import INVALID, Reading, ReadingStatus
from tanklink.models.tank import TankConfig


def decode_message(data: bytes | str, *, transport: str = "") -> dict[str, Any]:
    """Decode one inbound message into a JSON object.

    Raises :class:`PayloadError` for anything that is not a JSON object;
    transports log and drop such messages.
    """
    try:
        text = data.decode("utf-8") if isinstance(data, bytes) else data
        decoded = json.loads(text)
    except (UnicodeDecodeError, ValueError) as exc:
        raise PayloadError(f"message is not valid JSON: {exc}", transport=transport) from exc
    if not isinstance(decoded, dict):
        raise PayloadError("message is not a JSON object", transport=transport)
    return decoded


def parse_payload(payload: Mapping[str, Any]) -> GatewayPayload:
    """Validate a decoded mapping; raises :class:`PayloadError` when unusable."""
    if not isinstance(payload, Mapping):
        raise PayloadError(f"payload must be a mapping, got {type(payload).__name__}")
    try:
        return GatewayPayload.model_validate(dict(payload))
    except ValidationError as exc:
        raise PayloadError(f"payload failed validation: {exc.error_count()} error(s)") from exc


def build_reading(payload: GatewayPayload, *, observed_at: datetime, quality: int | None) -> Reading:
    """Build the reading for a sensor payload.

    Missing or negative quantities become ``-1`` and mark the sensor as
    faulty, so the reading lands in ``sensor_error`` without a dedicated
    error path.
    """
    level = payload.percentage if payload.percentage is not None else payload.level
    distance_cm = non_negative_or_sentinel(payload.distance)
    level_percent = non_negative_or_sentinel(level)
    liters = non_negative_or_sentinel(payload.liters)

    quantities_valid = INVALID not in (distance_cm, level_percent, liters)
    # Firmware that omits the flag reports health through the quantities alone.
    sensor_ok = payload.sensor_ok is not False and quantities_valid
    status = ReadingStatus.NORMAL if sensor_ok else ReadingStatus.SENSOR_ERROR

    return Reading(
        device=payload.device,
        distance_cm=float(distance_cm),
        level_percent=min(100, int(round(level_percent))) if sensor_ok else INVALID,
        liters=int(liters),
        sensor_ok=sensor_ok,
        rssi=payload.lora_rssi,
        snr=payload.lora_snr,
        wifi_rssi=payload.wifi_rssi,
        quality=quality,
        observed_at=observed_at,
        status=status,
    )


def calibration_from_payload(payload: GatewayPayload, *, updated_at: datetime) -> TankConfig | None:
    """The calibration carried by *payload*, unvalidated; ``None`` if absent."""
    if not payload.has_calibration:
        return None
    assert payload.config_empty_distance is not None  # noqa: S101
    assert payload.config_full_distance is not None  # noqa: S101
    assert payload.config_total_volume is not None  # noqa: S101
    return TankConfig(
        empty_distance_cm=payload.config_empty_distance,
        full_distance_cm=payload.config_full_distance,
        total_volume_liters=payload.config_total_volume,
        updated_at=updated_at,
    )
