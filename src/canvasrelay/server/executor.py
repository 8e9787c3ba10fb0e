"""WebSocket data surface toward the canvas executor."""

from __future__ import annotations

import json

from fastapi import FastAPI, WebSocket
from loguru import logger

from canvasrelay.relay import CommandRelay

PROMPT_MESSAGE_TYPES = frozenset({"canvas_prompt", "figma_prompt"})


def handle_executor_message(relay: CommandRelay, raw: str) -> None:
    """Route one inbound socket frame: a canvas prompt or an invocation reply."""
    try:
        message = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("executor.message.malformed size={}", len(raw))
        return
    if not isinstance(message, dict):
        return

    if message.get("type") in PROMPT_MESSAGE_TYPES:
        text = message.get("text")
        if isinstance(text, str):
            relay.mailbox.post(text)
        return
    relay.deliver_reply_message(message)


async def serve_executor(websocket: WebSocket, relay: CommandRelay) -> None:
    """Own one executor connection from accept to close."""
    await websocket.accept()
    logger.info("executor.socket.connected client={}", websocket.client)
    try:
        await relay.attach_socket(websocket)
        async for raw in websocket.iter_text():
            handle_executor_message(relay, raw)
    finally:
        flushed = relay.socket_closed(websocket)
        logger.info("executor.socket.closed flushed={}", flushed)


def build_data_app(relay: CommandRelay) -> FastAPI:
    app = FastAPI(title="canvas-relay data", docs_url=None, redoc_url=None, openapi_url=None)

    @app.websocket("/")
    async def executor_socket(websocket: WebSocket) -> None:
        await serve_executor(websocket, relay)

    return app
