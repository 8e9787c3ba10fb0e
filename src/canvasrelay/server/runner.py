"""Serves the control and data apps on the negotiated port pair."""

from __future__ import annotations

import asyncio

import uvicorn
from fastapi import FastAPI
from loguru import logger

from canvasrelay.config import Settings
from canvasrelay.core import AgentLoop
from canvasrelay.errors import RelayError
from canvasrelay.relay import CommandRelay, TransportNegotiator
from canvasrelay.server.control import build_control_app
from canvasrelay.server.executor import build_data_app

SHUTDOWN_REASON = "Relay shutting down"


def _make_server(app: FastAPI) -> uvicorn.Server:
    config = uvicorn.Config(app, log_config=None, log_level="warning", access_log=False, lifespan="off")
    return uvicorn.Server(config)


class RelayServer:
    """One relay process: negotiator, relay state and both listeners."""

    def __init__(
        self,
        settings: Settings,
        *,
        relay: CommandRelay | None = None,
        negotiator: TransportNegotiator | None = None,
        agent: AgentLoop | None = None,
    ) -> None:
        self.settings = settings
        self.relay = relay or CommandRelay()
        self.negotiator = negotiator or TransportNegotiator(settings.port, host=settings.host)
        self.agent = agent or AgentLoop(self.relay, settings)
        self._servers: list[uvicorn.Server] = []

    async def serve(self) -> None:
        listeners = await self.negotiator.acquire()
        if listeners is None:
            raise RelayError("port negotiation was superseded")

        binding = listeners.binding
        control_app = build_control_app(self.relay, self.agent, binding=lambda: self.negotiator.binding)
        control, data = _make_server(control_app), _make_server(build_data_app(self.relay))
        self._servers = [control, data]
        logger.info(
            "relay.listening data_port={} control_port={} connect=ws://localhost:{}",
            binding.data_port,
            binding.control_port,
            binding.data_port,
        )
        try:
            await asyncio.gather(
                control.serve(sockets=[listeners.control]),
                data.serve(sockets=[listeners.data]),
            )
        finally:
            self.stop()
            listeners.close()
            self.relay.disconnect_all(SHUTDOWN_REASON)
            logger.info("relay.stopped")

    def stop(self) -> None:
        for server in self._servers:
            server.should_exit = True
