"""canvas-relay command line."""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from typing import Any

import typer
from loguru import logger

from canvasrelay.config import Settings, load_settings
from canvasrelay.errors import PortExhaustedError
from canvasrelay.logging_utils import LogProfile, configure_logging
from canvasrelay.server import RelayServer

app = typer.Typer(name="canvas-relay", help="Relay between tool-calling agents and a live design canvas", add_completion=False)


def _prepare(port: int | None, host: str | None, profile: LogProfile) -> Settings:
    settings = load_settings(port=port, host=host)
    configure_logging(level=settings.log_level, profile=profile)
    return settings


def _run(main: Coroutine[Any, Any, None]) -> None:
    try:
        asyncio.run(main)
    except PortExhaustedError as exc:
        logger.error("relay.ports.exhausted {}", exc)
        raise typer.Exit(code=1) from exc
    except KeyboardInterrupt:
        logger.info("relay.interrupted")


@app.command()
def serve(
    port: int | None = typer.Option(None, "--port", "-p", help="First data port to try (env CANVAS_RELAY_PORT)"),
    host: str | None = typer.Option(None, "--host", help="Interface to listen on"),
) -> None:
    """Run the HTTP control and WebSocket data listeners."""
    settings = _prepare(port, host, "default")
    _run(RelayServer(settings).serve())


@app.command()
def mcp(
    port: int | None = typer.Option(None, "--port", "-p", help="First data port to try (env CANVAS_RELAY_PORT)"),
    host: str | None = typer.Option(None, "--host", help="Interface to listen on"),
) -> None:
    """Run the relay listeners plus the stdio tool server."""
    from canvasrelay.server.stdio import run_with_relay

    settings = _prepare(port, host, "stdio")
    _run(run_with_relay(RelayServer(settings)))
