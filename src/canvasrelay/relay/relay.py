"""Correlates relayed tool invocations with executor replies."""

from __future__ import annotations

import asyncio
import random
import string
import time
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from loguru import logger

from canvasrelay.errors import ExecutorDisconnectedError, ExecutorError, InvocationTimeoutError
from canvasrelay.relay.delivery import DualTransportDelivery, ExecutorSocket, SocketSendError
from canvasrelay.relay.mailbox import CanvasMailbox
from canvasrelay.types import JsonObject, QueuedInvocation

INVOCATION_TIMEOUT_SECONDS = 20.0
DISCONNECT_REASON = "Executor disconnected"
_ID_ALPHABET = string.ascii_lowercase + string.digits


def make_request_id(prefix: str) -> str:
    """Build `<prefix>-<epoch ms>-<6 base36 chars>`."""
    suffix = "".join(random.choices(_ID_ALPHABET, k=6))  # noqa: S311
    return f"{prefix}-{int(time.time() * 1000)}-{suffix}"


@dataclass(slots=True)
class PendingInvocation:
    id: str
    future: asyncio.Future[Any]
    deadline: float
    timer: asyncio.TimerHandle


class CommandRelay:
    """Owns every piece of relay state: pending map, delivery and mailbox."""

    def __init__(
        self,
        delivery: DualTransportDelivery | None = None,
        *,
        mailbox: CanvasMailbox | None = None,
        timeout_seconds: float = INVOCATION_TIMEOUT_SECONDS,
        id_prefix: str = "relay",
    ) -> None:
        self.delivery = delivery or DualTransportDelivery()
        self.mailbox = mailbox or CanvasMailbox()
        self._timeout_seconds = timeout_seconds
        self._id_prefix = id_prefix
        self._pending: dict[str, PendingInvocation] = {}

    @property
    def pending_ids(self) -> list[str]:
        return list(self._pending)

    @property
    def executor_connected(self) -> bool:
        return self.delivery.socket_connected

    def is_ready(self) -> bool:
        return self.delivery.is_ready()

    async def dispatch(self, tool: str, params: JsonObject | None = None) -> Any:
        """Send one invocation to the executor and wait for its reply."""
        loop = asyncio.get_running_loop()
        request_id = make_request_id(self._id_prefix)
        while request_id in self._pending:
            request_id = make_request_id(self._id_prefix)

        future: asyncio.Future[Any] = loop.create_future()
        timer = loop.call_later(self._timeout_seconds, self._expire, request_id)
        self._pending[request_id] = PendingInvocation(
            id=request_id,
            future=future,
            deadline=loop.time() + self._timeout_seconds,
            timer=timer,
        )
        invocation = QueuedInvocation(id=request_id, tool=tool, params=dict(params or {}))
        try:
            try:
                route = await self.delivery.deliver(invocation)
            except SocketSendError as exc:
                logger.warning("relay.socket.send_failed id={} error={}", request_id, exc)
                self.socket_closed(exc.socket)
            else:
                logger.info("relay.dispatch id={} tool={} route={}", request_id, tool, route)
            return await future
        finally:
            self._forget(request_id, future)

    def deliver_reply(self, request_id: str, result: Any = None, error: Any = None) -> bool:
        """Settle the invocation `request_id`; unknown or late ids are ignored."""
        pending = self._pending.pop(request_id, None)
        if pending is None:
            logger.debug("relay.reply.dropped id={}", request_id)
            return False
        pending.timer.cancel()
        if pending.future.done():
            return False
        if error:
            pending.future.set_exception(ExecutorError(str(error)))
        else:
            pending.future.set_result(result)
        logger.info("relay.reply id={} ok={}", request_id, not error)
        return True

    def deliver_reply_message(self, message: Mapping[str, Any]) -> bool:
        """Route a raw `{id, result?, error?}` reply from either transport."""
        request_id = message.get("id")
        if not isinstance(request_id, str) or not request_id:
            return False
        return self.deliver_reply(request_id, result=message.get("result"), error=message.get("error"))

    def disconnect_all(self, reason: str = DISCONNECT_REASON) -> int:
        """Reject every pending invocation with `reason`."""
        pendings = list(self._pending.values())
        self._pending.clear()
        self.delivery.discard(pending.id for pending in pendings)
        for pending in pendings:
            pending.timer.cancel()
            if not pending.future.done():
                pending.future.set_exception(ExecutorDisconnectedError(reason))
        if pendings:
            logger.warning("relay.disconnect_all count={} reason={}", len(pendings), reason)
        return len(pendings)

    async def attach_socket(self, socket: ExecutorSocket) -> None:
        try:
            flushed = await self.delivery.attach_socket(socket)
        except SocketSendError as exc:
            logger.warning("relay.socket.flush_failed error={}", exc)
            self.socket_closed(socket)
            return
        logger.info("relay.socket.attached flushed={}", flushed)

    def socket_closed(self, socket: ExecutorSocket, reason: str = DISCONNECT_REASON) -> int:
        """Handle any close of `socket`; only the current socket flushes pending calls."""
        if not self.delivery.detach_socket(socket):
            return 0
        logger.info("relay.socket.closed")
        return self.disconnect_all(reason)

    def claim_poll(self) -> asyncio.Future[QueuedInvocation]:
        return self.delivery.claim_poll()

    def release_poll(self, future: asyncio.Future[QueuedInvocation]) -> None:
        self.delivery.release_poll(future, is_live=self._pending.__contains__)

    def _expire(self, request_id: str) -> None:
        pending = self._pending.pop(request_id, None)
        if pending is None:
            return
        self.delivery.discard([request_id])
        if not pending.future.done():
            logger.warning("relay.timeout id={} after={}s", request_id, self._timeout_seconds)
            pending.future.set_exception(
                InvocationTimeoutError(f"Executor timeout after {self._timeout_seconds:g}s")
            )

    def _forget(self, request_id: str, future: asyncio.Future[Any]) -> None:
        pending = self._pending.get(request_id)
        if pending is None or pending.future is not future:
            return
        del self._pending[request_id]
        pending.timer.cancel()
        self.delivery.discard([request_id])
