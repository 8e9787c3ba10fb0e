"""Stdio tool surface (Model Context Protocol) over the relay."""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from typing import Any

from loguru import logger
from mcp import types
from mcp.server import Server
from mcp.server.stdio import stdio_server

from canvasrelay.errors import InvocationError
from canvasrelay.relay import CommandRelay
from canvasrelay.server.runner import RelayServer
from canvasrelay.tools import HANDOFF_TOOL, ToolCatalog, default_catalog
from canvasrelay.types import JsonObject

SERVER_NAME = "canvas-relay"
NO_PROMPT_MESSAGE = "No prompt from canvas."


class ToolCallFailedError(Exception):
    """Carries a failed tool reply text to the MCP error result."""


@dataclass(frozen=True)
class ToolReply:
    text: str
    is_error: bool = False


class ToolInvoker:
    """Answers `list`/`invoke` for a tool-calling client."""

    def __init__(self, relay: CommandRelay, catalog: ToolCatalog | None = None) -> None:
        self._relay = relay
        self._catalog = catalog or default_catalog()

    def list_tools(self) -> list[JsonObject]:
        return [spec.to_mcp() for spec in self._catalog.all_specs()]

    async def invoke(self, name: str, params: JsonObject | None = None) -> ToolReply:
        if name == HANDOFF_TOOL:
            return self._take_canvas_message()
        try:
            result = await self._relay.dispatch(name, params or {})
        except InvocationError as exc:
            logger.warning("stdio.tool.error name={} error={}", name, exc)
            return ToolReply(text=f"Error: {exc}", is_error=True)
        return ToolReply(text=json.dumps(result, indent=2, default=str))

    def _take_canvas_message(self) -> ToolReply:
        text = self._relay.mailbox.take()
        if text is None:
            return ToolReply(text=json.dumps({"prompt": None, "message": NO_PROMPT_MESSAGE}))
        return ToolReply(text=json.dumps({"prompt": text}))


def build_mcp_server(invoker: ToolInvoker) -> Server:
    server: Server = Server(SERVER_NAME)

    @server.list_tools()
    async def list_tools() -> list[types.Tool]:
        return [
            types.Tool(name=tool["name"], description=tool["description"], inputSchema=tool["inputSchema"])
            for tool in invoker.list_tools()
        ]

    @server.call_tool()
    async def call_tool(name: str, arguments: dict[str, Any] | None) -> list[types.TextContent]:
        reply = await invoker.invoke(name, arguments or {})
        if reply.is_error:
            # The low-level server turns a raised handler error into an `isError` result.
            raise ToolCallFailedError(reply.text)
        return [types.TextContent(type="text", text=reply.text)]

    return server


async def run_stdio(invoker: ToolInvoker) -> None:
    server = build_mcp_server(invoker)
    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())


async def run_with_relay(relay_server: RelayServer) -> None:
    """Run the stdio surface and the relay listeners until either one stops."""
    relay_task = asyncio.create_task(relay_server.serve(), name="canvas-relay.listeners")
    stdio_task = asyncio.create_task(run_stdio(ToolInvoker(relay_server.relay)), name="canvas-relay.stdio")
    done, pending = await asyncio.wait({relay_task, stdio_task}, return_when=asyncio.FIRST_COMPLETED)
    relay_server.stop()
    for task in pending:
        task.cancel()
    await asyncio.gather(*pending, return_exceptions=True)
    for task in done:
        task.result()
