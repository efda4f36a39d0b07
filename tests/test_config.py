from __future__ import annotations

import pytest

from tanklink.config import TankLinkConfig
from tanklink.exceptions import TankLinkConfigError


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in (
        "PORT",
        "TANKLINK_DEVICE_ID",
        "TANKLINK_GATEWAY_TIMEOUT",
        "TANKLINK_UPLINK_TIMEOUT",
        "TANKLINK_HTTP_PORT",
        "TANKLINK_MQTT_ENABLED",
        "TANKLINK_OVERFLOW_POLICY",
        "TANKLINK_HISTORY_CAPACITY",
    ):
        monkeypatch.delenv(key, raising=False)


def test_defaults() -> None:
    config = TankLinkConfig.from_env()

    assert config.gateway_timeout == 60.0
    assert config.uplink_timeout == 20.0
    assert config.history_capacity == 200
    assert config.http_port == 3000
    assert config.mqtt_enabled is False
    assert config.device_id is None


def test_reads_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TANKLINK_DEVICE_ID", " tank-1 ")
    monkeypatch.setenv("TANKLINK_GATEWAY_TIMEOUT", "90")
    monkeypatch.setenv("TANKLINK_UPLINK_TIMEOUT", "30.5")
    monkeypatch.setenv("TANKLINK_HISTORY_CAPACITY", "50")
    monkeypatch.setenv("TANKLINK_MQTT_ENABLED", "yes")
    monkeypatch.setenv("PORT", "8080")

    config = TankLinkConfig.from_env()

    assert config.device_id == "tank-1"
    assert config.gateway_timeout == 90.0
    assert config.uplink_timeout == 30.5
    assert config.history_capacity == 50
    assert config.mqtt_enabled is True
    assert config.http_port == 8080


def test_explicit_port_wins_over_platform_port(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PORT", "8080")
    monkeypatch.setenv("TANKLINK_HTTP_PORT", "9000")

    assert TankLinkConfig.from_env().http_port == 9000


def test_overrides_win_over_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TANKLINK_GATEWAY_TIMEOUT", "90")
    monkeypatch.setenv("TANKLINK_MQTT_ENABLED", "true")

    config = TankLinkConfig.from_env(gateway_timeout=120.0, mqtt_enabled=False)

    assert config.gateway_timeout == 120.0
    assert config.mqtt_enabled is False


def test_invalid_number_raises(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TANKLINK_GATEWAY_TIMEOUT", "soon")

    with pytest.raises(TankLinkConfigError, match="TANKLINK_GATEWAY_TIMEOUT"):
        TankLinkConfig.from_env()


@pytest.mark.parametrize(
    "overrides",
    [
        {"uplink_timeout": 60.0},
        {"gateway_timeout": 0.0},
        {"history_capacity": 0},
        {"overflow_policy": "block"},
    ],
)
def test_validate_rejects_inconsistent_settings(overrides: dict[str, object]) -> None:
    with pytest.raises(TankLinkConfigError):
        TankLinkConfig.from_env(**overrides)
