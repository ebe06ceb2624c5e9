"""Lightweight async HTTP chat endpoint.

Uses aiohttp's AppRunner/TCPSite for non-blocking start/stop.

Routes:
    POST /chat   {"message": "...", "channel": "1", "user_id": "42"} → {"reply": "..."}
    POST /reset  {"channel": "1"} → {"ok": true}
    GET  /health → {"status": "ok"}
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from aiohttp import web

from src.config import settings

if TYPE_CHECKING:
    from src.responder.cascade import Responder

logger = logging.getLogger(__name__)

DEFAULT_CHANNEL = "1"

RESPONDER_KEY: web.AppKey[Responder] = web.AppKey("responder")


async def _read_json(request: web.Request) -> dict[str, Any] | None:
    try:
        payload = await request.json()
    except ValueError:
        return None
    return payload if isinstance(payload, dict) else None


async def _handle_chat(request: web.Request) -> web.Response:
    """POST /chat — run one message through the cascade."""
    payload = await _read_json(request)
    if payload is None:
        logger.warning("Chat request rejected: invalid JSON")
        return web.json_response({"error": "invalid JSON"}, status=400)

    message = payload.get("message")
    if not isinstance(message, str) or not message.strip():
        return web.json_response({"error": "message is required"}, status=400)

    channel = str(payload.get("channel") or DEFAULT_CHANNEL)
    user_id = payload.get("user_id")

    responder = request.app[RESPONDER_KEY]
    reply = await responder.handle_message(channel, message, user_id)
    return web.json_response({"reply": reply})


async def _handle_reset(request: web.Request) -> web.Response:
    """POST /reset — clear a channel's history, models and memory."""
    payload = await _read_json(request) or {}
    channel = str(payload.get("channel") or DEFAULT_CHANNEL)
    await request.app[RESPONDER_KEY].reset(channel)
    return web.json_response({"ok": True, "channel": channel})


async def _health(request: web.Request) -> web.Response:
    """GET /health — basic liveness check."""
    return web.json_response({"status": "ok"})


def create_web_app(responder: Responder) -> web.Application:
    """Build the aiohttp Application with routes."""
    app = web.Application()
    app[RESPONDER_KEY] = responder
    app.router.add_get("/health", _health)
    app.router.add_post("/chat", _handle_chat)
    app.router.add_post("/reset", _handle_reset)
    return app


class ChatServer:
    """Manages the aiohttp server lifecycle."""

    def __init__(
        self,
        responder: Responder,
        host: str | None = None,
        port: int | None = None,
    ) -> None:
        self.responder = responder
        self.host = host or settings.http_host
        self.port = port or settings.http_port
        self._runner: web.AppRunner | None = None

    async def start(self) -> None:
        app = create_web_app(self.responder)
        self._runner = web.AppRunner(app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.host, self.port)
        await site.start()
        logger.info("Chat server listening on %s:%d", self.host, self.port)

    async def stop(self) -> None:
        """Shut down the server gracefully."""
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
            logger.info("Chat server stopped")

