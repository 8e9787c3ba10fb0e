from __future__ import annotations

import asyncio
from collections.abc import Iterable
from typing import Any

import pytest
import pytest_asyncio

from canvasrelay.config import Settings
from canvasrelay.relay import CommandRelay


class FakeCanvas:
    """Executor socket double that answers each push on the next loop turn."""

    def __init__(
        self,
        relay: CommandRelay,
        *,
        fail_tools: Iterable[str] = (),
        drop_after: int | None = None,
    ) -> None:
        self.relay = relay
        self.received: list[dict[str, Any]] = []
        self._fail_tools = set(fail_tools)
        self._drop_after = drop_after

    async def send_json(self, data: dict[str, Any]) -> None:
        self.received.append(data)
        loop = asyncio.get_running_loop()
        if self._drop_after is not None and len(self.received) > self._drop_after:
            loop.call_soon(self.relay.socket_closed, self)
            return
        tool = data["tool"]
        if tool in self._fail_tools:
            loop.call_soon(self.relay.deliver_reply, data["id"], None, f"{tool} failed")
            return
        node = {"id": f"node-{len(self.received)}", "name": data["params"].get("name", tool)}
        loop.call_soon(self.relay.deliver_reply, data["id"], node)

    def tools(self) -> list[str]:
        return [item["tool"] for item in self.received]


class SilentSocket:
    """Executor socket double that records pushes and never answers."""

    def __init__(self, *, fail: bool = False) -> None:
        self.sent: list[dict[str, Any]] = []
        self.fail = fail

    async def send_json(self, data: dict[str, Any]) -> None:
        if self.fail:
            raise RuntimeError("socket is closed")
        self.sent.append(data)


@pytest.fixture
def settings() -> Settings:
    return Settings().model_copy(update={"openai_api_key": None, "api_base": None})


@pytest.fixture
def relay() -> CommandRelay:
    return CommandRelay(timeout_seconds=1.0)


@pytest.fixture
def make_canvas(relay: CommandRelay):
    async def _make(*, fail_tools: Iterable[str] = (), drop_after: int | None = None) -> FakeCanvas:
        fake = FakeCanvas(relay, fail_tools=fail_tools, drop_after=drop_after)
        await relay.attach_socket(fake)
        return fake

    return _make


@pytest_asyncio.fixture
async def canvas(make_canvas) -> FakeCanvas:
    return await make_canvas()


@pytest.fixture
def make_silent_socket():
    return SilentSocket
