from __future__ import annotations

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from tanklink.exceptions import PayloadError
from tanklink.ingestion.normalize import is_sentinel, safe_bool, safe_float, safe_int
from tanklink.ingestion.readings import build_reading, calibration_from_payload, decode_message, parse_payload
from tanklink.models.payload import GatewayPayload, PayloadKind
from tanklink.models.reading import INVALID, Reading, ReadingStatus

T0 = datetime(2026, 1, 1, tzinfo=UTC)


def test_normalization_helpers() -> None:
    assert is_sentinel("--") is True
    assert is_sentinel(float("nan")) is True
    assert is_sentinel(0) is False
    assert safe_float("42.5") == 42.5
    assert safe_float(True) is None
    assert safe_float("inf") is None
    assert safe_int("3.6") == 4
    assert safe_bool("ok") is True
    assert safe_bool("error") is False
    assert safe_bool("maybe") is None


def test_firmware_keys_and_string_numbers_are_parsed() -> None:
    payload = parse_payload(
        {
            "device": "tank-1",
            "distance": "42.5",
            "percentage": "73",
            "liters": 2900,
            "sensorOk": "true",
            "loraRssi": -71,
            "loraSnr": "7.5",
            "wifiRssi": "--",
        }
    )

    assert payload.kind == PayloadKind.READING
    assert payload.distance == 42.5
    assert payload.percentage == 73
    assert payload.sensor_ok is True
    assert payload.lora_rssi == -71.0
    assert payload.lora_snr == 7.5
    assert payload.wifi_rssi is None
    assert payload.raw["wifiRssi"] == "--"


def test_heartbeat_and_no_data_are_heartbeats() -> None:
    assert parse_payload({"device": "tank-1", "heartbeat": True}).kind == PayloadKind.HEARTBEAT
    assert parse_payload({"device": "tank-1", "no_data": "1", "wifi_rssi": -60}).kind == PayloadKind.HEARTBEAT


def test_calibration_only_message_is_status() -> None:
    payload = parse_payload(
        {
            "device": "tank-1",
            "config_empty_distance": "200",
            "config_full_distance": 20,
            "config_total_volume": 5000,
        }
    )

    assert payload.kind == PayloadKind.STATUS
    assert payload.has_calibration is True
    config = calibration_from_payload(payload, updated_at=T0)
    assert config is not None
    assert config.empty_distance_cm == 200.0
    assert config.updated_at == T0


def test_sensor_keys_with_placeholder_values_still_classify_as_reading() -> None:
    payload = parse_payload({"device": "tank-1", "distance": None, "percentage": "--", "liters": "", "sensorOk": None})

    assert payload.kind == PayloadKind.READING
    assert payload.distance is None
    assert payload.liters is None


def test_firmware_raw_key_does_not_break_validation() -> None:
    payload = parse_payload({"device": "tank-1", "raw": "0x1F2E", "liters": 2900})

    assert payload.kind == PayloadKind.READING
    assert payload.raw == {"device": "tank-1", "raw": "0x1F2E", "liters": 2900}


def test_partial_calibration_is_ignored() -> None:
    payload = GatewayPayload(device="tank-1", config_empty_distance=200.0)

    assert calibration_from_payload(payload, updated_at=T0) is None


def test_non_mapping_payload_rejected() -> None:
    with pytest.raises(PayloadError):
        parse_payload([1, 2, 3])  # type: ignore[arg-type]


def test_decode_message_requires_json_object() -> None:
    assert decode_message(b'{"device": "tank-1"}') == {"device": "tank-1"}

    with pytest.raises(PayloadError) as exc_info:
        decode_message(b"not json", transport="mqtt")
    assert exc_info.value.transport == "mqtt"

    with pytest.raises(PayloadError):
        decode_message("[1, 2]")
    with pytest.raises(PayloadError):
        decode_message(b"\xff\xfe")


def test_build_reading_for_healthy_sensor() -> None:
    payload = parse_payload(
        {"device": "tank-1", "distance": 40, "percentage": 120, "liters": 2900, "sensor_ok": True, "lora_rssi": -60}
    )

    reading = build_reading(payload, observed_at=T0, quality=85)

    assert reading.status == ReadingStatus.NORMAL
    assert reading.level_percent == 100
    assert reading.liters == 2900
    assert reading.quality == 85
    assert reading.rssi == -60.0


def test_level_is_used_when_percentage_missing() -> None:
    payload = parse_payload({"device": "tank-1", "distance": 40, "level": 64.6, "liters": 2900})

    reading = build_reading(payload, observed_at=T0, quality=None)

    assert reading.status == ReadingStatus.NORMAL
    assert reading.level_percent == 65
    assert reading.quality is None


def test_missing_quantity_becomes_sensor_error() -> None:
    payload = parse_payload({"device": "tank-1", "distance": 40, "percentage": 70, "sensor_ok": True})

    reading = build_reading(payload, observed_at=T0, quality=None)

    assert reading.status == ReadingStatus.SENSOR_ERROR
    assert reading.sensor_ok is False
    assert reading.liters == INVALID


def test_sensor_fault_invalidates_quantities() -> None:
    payload = parse_payload({"device": "tank-1", "distance": 40, "percentage": 70, "liters": 2900, "sensorOk": False})

    reading = build_reading(payload, observed_at=T0, quality=None)

    assert reading.status == ReadingStatus.SENSOR_ERROR
    assert (reading.distance_cm, reading.level_percent, reading.liters) == (INVALID, INVALID, INVALID)


def test_normal_reading_requires_valid_quantities() -> None:
    with pytest.raises(ValidationError):
        Reading(device="tank-1", liters=-1, sensor_ok=True, observed_at=T0, status=ReadingStatus.NORMAL)


def test_placeholder_reading() -> None:
    reading = Reading.placeholder(device="tank-1", status=ReadingStatus.WAITING_UPLINK, observed_at=T0, wifi_rssi=-55)

    assert reading.is_placeholder is True
    assert reading.liters == INVALID
    assert reading.wifi_rssi == -55
