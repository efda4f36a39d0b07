"""aiohttp transport adapter.

Routes:

* ``GET /health`` - liveness of the service and gateway counters.
* ``GET /api/lora`` - current snapshot (same model the WebSocket pushes).
* ``POST /api/lora`` - ingest one gateway payload.
* ``POST /api/command`` - relay an operator command toward the gateway.
* ``GET /ws`` - WebSocket: viewers receive broadcasts; the gateway may
  push ``{"type": "lora_data"}`` / ``{"type": "heartbeat"}`` messages and
  then becomes the command transport.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from aiohttp import WSMsgType, web

from tanklink.broadcast import Broadcaster
from tanklink.core import TelemetryCore
from tanklink.exceptions import GatewayUnavailableError, PayloadError
from tanklink.ingestion.readings import decode_message
from tanklink.models.snapshot import BroadcastKind, BroadcastMessage
from tanklink.relay import CommandRelay
from tanklink.state.events import SystemMode

_logger = logging.getLogger(__name__)

GATEWAY_MESSAGE_TYPES = frozenset({"lora_data", "heartbeat"})


@dataclass
class WebContext:
    core: TelemetryCore
    broadcaster: Broadcaster
    relay: CommandRelay
    environment: str = "production"


CONTEXT_KEY = web.AppKey("tanklink_context", WebContext)


class WebSocketCommandTransport:
    """Sends relayed commands down a gateway's WebSocket."""

    def __init__(self, ws: web.WebSocketResponse) -> None:
        self._ws = ws

    async def send_command(self, message: str) -> None:
        if self._ws.closed:
            raise GatewayUnavailableError("gateway WebSocket is closed")
        await self._ws.send_str(message)


def _context(request: web.Request) -> WebContext:
    return request.app[CONTEXT_KEY]


async def health(request: web.Request) -> web.Response:
    ctx = _context(request)
    core = ctx.core
    mode = core.evaluate()
    liveness = core.liveness
    now = core.now()
    last_seen = liveness.last_gateway_seen
    stats = core.stats
    return web.json_response(
        {
            "status": "healthy",
            "uptime": stats.uptime(now),
            "environment": ctx.environment,
            "mode": mode.value,
            "metrics": {
                "connected_clients": ctx.broadcaster.subscriber_count,
                "messages_received": stats.messages_received,
                "messages_sent": ctx.broadcaster.published,
                "errors": stats.messages_rejected + stats.config_rejections,
                "readings": stats.readings_ingested,
                "commands_relayed": ctx.relay.sent,
                "gateway_reconnects": stats.gateway_reconnects,
                "gateway": "disconnected" if mode == SystemMode.GATEWAY_DISCONNECTED else "connected",
                "gateway_last_seen_seconds": None if last_seen is None else max(0.0, now - last_seen),
            },
        }
    )


async def get_snapshot(request: web.Request) -> web.Response:
    snapshot = _context(request).core.snapshot()
    return web.json_response(snapshot.model_dump(mode="json"))


async def post_reading(request: web.Request) -> web.Response:
    try:
        payload = decode_message(await request.read(), transport="http")
    except PayloadError as exc:
        _logger.debug("Dropping HTTP payload: %s", exc)
        return web.json_response({"accepted": False, "error": str(exc)}, status=400)

    result = _context(request).core.ingest(payload)
    body: dict[str, Any] = {
        "accepted": result.accepted,
        "kind": result.kind.value if result.kind else None,
        "config_update": result.config_update.value,
    }
    if not result.accepted:
        body["error"] = result.reason
        return web.json_response(body, status=422)
    return web.json_response(body, status=202)


async def post_command(request: web.Request) -> web.Response:
    raw = await request.text()
    command: str | dict[str, Any] = raw
    if request.content_type == "application/json":
        try:
            command = decode_message(raw, transport="http")
        except PayloadError as exc:
            return web.json_response({"sent": False, "error": str(exc)}, status=400)
    if not command:
        return web.json_response({"sent": False, "error": "empty command"}, status=400)

    try:
        await _context(request).relay.send(command)
    except GatewayUnavailableError as exc:
        return web.json_response({"sent": False, "error": str(exc)}, status=409)
    return web.json_response({"sent": True}, status=202)


async def websocket(request: web.Request) -> web.WebSocketResponse:
    ctx = _context(request)
    ws = web.WebSocketResponse(heartbeat=30.0)
    await ws.prepare(request)

    async def sink(message: BroadcastMessage) -> None:
        await ws.send_str(message.model_dump_json())

    transport = WebSocketCommandTransport(ws)
    initial = BroadcastMessage.of(BroadcastKind.SNAPSHOT, ctx.core.snapshot())
    subscription = ctx.broadcaster.subscribe(sink, initial=initial)
    _logger.info("WebSocket client connected (subscribers=%d)", ctx.broadcaster.subscriber_count)
    try:
        async for msg in ws:
            if msg.type == WSMsgType.ERROR:
                _logger.debug("WebSocket error: %s", ws.exception())
                break
            if msg.type != WSMsgType.TEXT:
                continue
            try:
                payload = decode_message(msg.data, transport="websocket")
            except PayloadError as exc:
                _logger.debug("Dropping WebSocket message: %s", exc)
                continue
            message_type = payload.get("type")
            if message_type not in GATEWAY_MESSAGE_TYPES:
                _logger.debug("Ignoring WebSocket message type=%r", message_type)
                continue
            if message_type == "heartbeat":
                payload.setdefault("heartbeat", True)
            if ctx.core.ingest(payload).accepted:
                ctx.relay.attach(transport)
    finally:
        ctx.broadcaster.unsubscribe(subscription)
        ctx.relay.detach(transport)
        if not ws.closed:
            await ws.close()
        _logger.info("WebSocket client disconnected (subscribers=%d)", ctx.broadcaster.subscriber_count)
    return ws


def create_app(
    core: TelemetryCore,
    broadcaster: Broadcaster,
    relay: CommandRelay,
    *,
    environment: str = "production",
) -> web.Application:
    app = web.Application()
    app[CONTEXT_KEY] = WebContext(core=core, broadcaster=broadcaster, relay=relay, environment=environment)
    app.router.add_get("/health", health)
    app.router.add_get("/api/lora", get_snapshot)
    app.router.add_post("/api/lora", post_reading)
    app.router.add_post("/api/command", post_command)
    app.router.add_get("/ws", websocket)
    return app
