from __future__ import annotations

import pytest

from tanklink.exceptions import GatewayUnavailableError
from tanklink.relay import CommandRelay
from tanklink.state.events import SystemMode


class _FakeTransport:
    def __init__(self) -> None:
        self.sent: list[str] = []

    async def send_command(self, message: str) -> None:
        self.sent.append(message)


class _Mode:
    def __init__(self, mode: SystemMode) -> None:
        self.mode = mode

    def __call__(self) -> SystemMode:
        return self.mode


@pytest.mark.asyncio
async def test_relays_strings_and_mappings() -> None:
    relay = CommandRelay(_Mode(SystemMode.WAITING_UPLINK))
    transport = _FakeTransport()
    relay.attach(transport)

    await relay.send("PUMP_ON")
    await relay.send({"cmd": "set_interval", "seconds": 30})

    assert transport.sent == ["PUMP_ON", '{"cmd":"set_interval","seconds":30}']
    assert relay.sent == 2


@pytest.mark.asyncio
async def test_refuses_while_gateway_disconnected() -> None:
    mode = _Mode(SystemMode.GATEWAY_DISCONNECTED)
    relay = CommandRelay(mode)
    transport = _FakeTransport()
    relay.attach(transport)

    with pytest.raises(GatewayUnavailableError):
        await relay.send("PUMP_ON")

    assert transport.sent == []
    mode.mode = SystemMode.NORMAL
    await relay.send("PUMP_ON")
    assert transport.sent == ["PUMP_ON"]


@pytest.mark.asyncio
async def test_refuses_without_transport() -> None:
    relay = CommandRelay(_Mode(SystemMode.NORMAL))

    with pytest.raises(GatewayUnavailableError):
        await relay.send("PUMP_ON")
    assert relay.sent == 0


def test_detach_only_removes_matching_transport() -> None:
    relay = CommandRelay(_Mode(SystemMode.NORMAL))
    current, stale = _FakeTransport(), _FakeTransport()
    relay.attach(current)

    relay.detach(stale)
    assert relay.transport is current

    relay.detach()
    assert relay.transport is None
