from __future__ import annotations

from tanklink._redact import REDACTED, is_sensitive_key, redact_for_log
from tanklink.models.payload import GatewayPayload


def test_redact_for_log_masks_gateway_credentials() -> None:
    payload = {
        "type": "lora_data",
        "device": "tank-1",
        "liters": 2900,
        "gatewayToken": "gw-shared-secret",
        "wifi": {"ssid": "farm", "wifiPass": "hunter2"},
    }

    redacted = redact_for_log(payload)

    assert redacted["gatewayToken"] == REDACTED
    assert redacted["wifi"]["wifiPass"] == REDACTED
    assert redacted["wifi"]["ssid"] == "farm"
    assert redacted["liters"] == 2900
    # The input is never modified.
    assert payload["gatewayToken"] == "gw-shared-secret"


def test_sensitive_key_matching_is_case_insensitive() -> None:
    assert is_sensitive_key("MQTT_PASSWORD") is True
    assert is_sensitive_key("Authorization") is True
    assert is_sensitive_key("lora_rssi") is False


def test_redact_for_log_truncates_long_strings() -> None:
    redacted = redact_for_log({"value": "x" * 600}, max_string=10)

    assert redacted["value"] == "x" * 10 + "…<truncated:600>"


def test_redact_for_log_summarizes_bytes_and_lists() -> None:
    redacted = redact_for_log([b"\x00\x01\x02", {"secret": 1}, ("a", 2)])

    assert redacted == ["<bytes:3b>", {"secret": REDACTED}, ["a", 2]]


def test_redact_for_log_dumps_models_without_raw_payload() -> None:
    payload = GatewayPayload.model_validate({"device": "tank-1", "liters": 2900, "token": "abc"})

    redacted = redact_for_log(payload)

    assert redacted["device"] == "tank-1"
    assert redacted["liters"] == 2900
    assert "raw" not in redacted
