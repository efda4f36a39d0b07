"""Operator command relay toward the gateway."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Mapping
from typing import Any, Protocol

from tanklink.exceptions import GatewayUnavailableError
from tanklink.state.events import SystemMode

_logger = logging.getLogger(__name__)


class CommandTransport(Protocol):
    async def send_command(self, message: str) -> None: ...


class CommandRelay:
    """Forward opaque commands to the active gateway connection.

    The relay does not interpret commands.  It only refuses to send while
    the gateway is considered unreachable, and serializes small mappings
    to JSON.
    """

    def __init__(self, mode_provider: Callable[[], SystemMode]) -> None:
        self._mode_provider = mode_provider
        self._transport: CommandTransport | None = None
        self._sent = 0

    @property
    def sent(self) -> int:
        return self._sent

    @property
    def transport(self) -> CommandTransport | None:
        return self._transport

    def attach(self, transport: CommandTransport) -> None:
        self._transport = transport

    def detach(self, transport: CommandTransport | None = None) -> None:
        """Drop the transport (only if it is *transport*, when given)."""
        if transport is None or self._transport is transport:
            self._transport = None

    async def send(self, command: str | Mapping[str, Any]) -> None:
        mode = self._mode_provider()
        if mode == SystemMode.GATEWAY_DISCONNECTED:
            raise GatewayUnavailableError("gateway is disconnected")
        transport = self._transport
        if transport is None:
            raise GatewayUnavailableError("no gateway connection to relay through")
        message = command if isinstance(command, str) else json.dumps(dict(command), separators=(",", ":"))
        await transport.send_command(message)
        self._sent += 1
        _logger.debug("Relayed command (%d bytes)", len(message))
