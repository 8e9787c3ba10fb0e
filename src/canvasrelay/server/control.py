"""HTTP control surface: chat, health, long-poll and canvas prompts."""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Callable
from typing import Any

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from loguru import logger
from pydantic import ValidationError
from starlette.types import Receive

from canvasrelay.core import AgentLoop
from canvasrelay.envelope import ChatRequest, parse_json_object
from canvasrelay.errors import PollConflictError, RelayError
from canvasrelay.relay import CommandRelay, PortBinding

type BindingProvider = Callable[[], PortBinding | None]


async def _wait_for_disconnect(receive: Receive) -> None:
    while True:
        message = await receive()
        if message["type"] == "http.disconnect":
            return


def build_control_app(
    relay: CommandRelay,
    agent: AgentLoop,
    *,
    binding: BindingProvider = lambda: None,
) -> FastAPI:
    app = FastAPI(title="canvas-relay control", docs_url=None, redoc_url=None, openapi_url=None)
    # The plugin UI runs in a sandboxed iframe with a null origin.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    @app.get("/health")
    async def health() -> dict[str, Any]:
        current = binding()
        return {
            "ok": True,
            "controlPort": current.control_port if current else None,
            "dataPort": current.data_port if current else None,
            "executorConnected": relay.executor_connected,
        }

    @app.get("/")
    @app.get("/poll")
    async def poll(request: Request) -> Response:
        try:
            claim = relay.claim_poll()
        except PollConflictError as exc:
            return JSONResponse({"error": str(exc)}, status_code=409)

        if claim.done():
            return JSONResponse(claim.result().to_message())

        watcher = asyncio.create_task(_wait_for_disconnect(request.receive))
        try:
            await asyncio.wait({claim, watcher}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            relay.release_poll(claim)
            raise
        finally:
            client_gone = watcher.done()
            if not client_gone:
                watcher.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await watcher

        if client_gone:
            relay.release_poll(claim)
            logger.debug("control.poll.abandoned")
            return Response(status_code=204)
        return JSONResponse(claim.result().to_message())

    @app.post("/result")
    async def result(request: Request) -> dict[str, Any]:
        relay.deliver_reply_message(parse_json_object(await request.body()))
        return {}

    @app.post("/prompt")
    async def prompt(request: Request) -> dict[str, Any]:
        text = parse_json_object(await request.body()).get("text")
        relay.mailbox.post(text if isinstance(text, str) else None)
        return {}

    @app.post("/chat")
    async def chat(request: Request) -> JSONResponse:
        try:
            payload = ChatRequest.model_validate(parse_json_object(await request.body()))
        except ValidationError as exc:
            return JSONResponse({"error": f"invalid chat request: {exc.errors()[0]['msg']}"}, status_code=400)
        try:
            response = await agent.handle_chat(payload)
        except RelayError as exc:
            logger.warning("control.chat.rejected provider={} error={}", payload.provider, exc)
            return JSONResponse({"error": str(exc)}, status_code=400)
        except Exception as exc:
            logger.exception("control.chat.failed provider={}", payload.provider)
            return JSONResponse({"error": str(exc) or type(exc).__name__}, status_code=500)
        return JSONResponse(response.to_payload())

    return app
