from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from tanklink.__main__ import _parse_args
from tanklink._mqtt import TankLinkMqttRuntime
from tanklink.config import TankLinkConfig
from tanklink.config_store import JsonTankConfigStore
from tanklink.service import TankLinkService
from tanklink.state.events import SystemMode


@pytest.mark.asyncio
async def test_service_runs_timer_for_its_lifetime() -> None:
    async with TankLinkService(TankLinkConfig(evaluation_interval=0.01)) as service:
        assert service.is_running is True
        assert service.timer.is_running is True
        service.core.ingest({"device": "tank-1", "heartbeat": True})
        await asyncio.sleep(0.05)
        assert service.timer.ticks >= 1
        assert service.core.mode == SystemMode.WAITING_UPLINK

    assert service.is_running is False
    assert service.timer.is_running is False
    assert service.mqtt is None


@pytest.mark.asyncio
async def test_config_path_selects_json_store(tmp_path: Path) -> None:
    path = tmp_path / "tank.json"
    config = TankLinkConfig(config_path=str(path))

    async with TankLinkService(config) as service:
        service.core.ingest(
            {
                "device": "tank-1",
                "config_empty_distance": 180,
                "config_full_distance": 25,
                "config_total_volume": 3000,
            }
        )

    loaded = JsonTankConfigStore(path).load()
    assert loaded is not None
    assert loaded.total_volume_liters == 3000.0


@pytest.mark.asyncio
async def test_mqtt_payloads_make_runtime_the_command_transport() -> None:
    service = TankLinkService(TankLinkConfig())
    runtime = TankLinkMqttRuntime(loop=asyncio.get_running_loop(), on_payload=lambda _payload: None)
    # Bypass broker startup; only the ingestion hand-off is exercised.
    service._mqtt = runtime  # type: ignore[attr-defined]

    service._ingest_mqtt({"device": "tank-1", "heartbeat": True})  # type: ignore[attr-defined]

    assert service.relay.transport is runtime
    assert service.core.stats.heartbeats == 1


def test_cli_arguments() -> None:
    args = _parse_args(["--port", "8080", "--log-level", "DEBUG", "--mqtt"])

    assert args.port == 8080
    assert args.log_level == "DEBUG"
    assert args.mqtt is True
    assert args.host is None
