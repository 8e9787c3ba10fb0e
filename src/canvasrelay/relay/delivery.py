"""Socket push or long-poll hand-off for relayed invocations."""

from __future__ import annotations

import asyncio
import time
from collections import deque
from collections.abc import Callable, Iterable
from typing import Literal, Protocol

from loguru import logger

from canvasrelay.errors import PollConflictError
from canvasrelay.types import JsonObject, QueuedInvocation

POLL_GRACE_SECONDS = 30.0

type Route = Literal["socket", "poll", "queued"]


class ExecutorSocket(Protocol):
    """Write side of a connected executor socket."""

    async def send_json(self, data: JsonObject) -> None: ...


class SocketSendError(Exception):
    """Raised when pushing to the current socket fails."""

    def __init__(self, socket: ExecutorSocket, cause: BaseException) -> None:
        super().__init__(f"executor socket send failed: {cause!s}")
        self.socket = socket


class DualTransportDelivery:
    """Hands each invocation to exactly one of: socket, parked poll, FIFO."""

    def __init__(
        self,
        *,
        poll_grace_seconds: float = POLL_GRACE_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._socket: ExecutorSocket | None = None
        self._queue: deque[QueuedInvocation] = deque()
        self._parked: asyncio.Future[QueuedInvocation] | None = None
        self._last_poll_at: float | None = None
        self._poll_grace_seconds = poll_grace_seconds
        self._clock = clock

    @property
    def socket_connected(self) -> bool:
        return self._socket is not None

    @property
    def has_parked_poll(self) -> bool:
        return self._parked is not None and not self._parked.done()

    def queued(self) -> list[QueuedInvocation]:
        return list(self._queue)

    def is_ready(self) -> bool:
        """True when an executor is reachable through either transport."""
        if self._socket is not None or self.has_parked_poll:
            return True
        if self._last_poll_at is None:
            return False
        return self._clock() - self._last_poll_at <= self._poll_grace_seconds

    async def deliver(self, invocation: QueuedInvocation) -> Route:
        socket = self._socket
        if socket is not None:
            try:
                await socket.send_json(invocation.to_message())
            except Exception as exc:
                raise SocketSendError(socket, exc) from exc
            return "socket"

        self._queue.append(invocation)
        if self.has_parked_poll:
            parked = self._parked
            self._parked = None
            parked.set_result(self._queue.popleft())
            return "poll"
        return "queued"

    def claim_poll(self) -> asyncio.Future[QueuedInvocation]:
        """Register a poll request; the future resolves with its invocation."""
        self._last_poll_at = self._clock()
        future: asyncio.Future[QueuedInvocation] = asyncio.get_running_loop().create_future()
        if self._queue:
            future.set_result(self._queue.popleft())
            return future
        if self.has_parked_poll:
            raise PollConflictError("Another poll request is already waiting for work.")
        self._parked = future
        return future

    def release_poll(
        self,
        future: asyncio.Future[QueuedInvocation],
        is_live: Callable[[str], bool] = lambda _id: True,
    ) -> None:
        """Drop a poll whose client went away before it was answered.

        An invocation already handed to that poll goes back to the head of
        the FIFO for the next poller or socket, unless `is_live` says its
        caller stopped waiting.
        """
        self._last_poll_at = self._clock()
        if self._parked is future:
            self._parked = None
        if not future.done():
            future.cancel()
            return
        if future.cancelled() or future.exception() is not None:
            return
        invocation = future.result()
        if is_live(invocation.id):
            self._queue.appendleft(invocation)
        else:
            logger.debug("delivery.poll.dropped id={}", invocation.id)

    async def attach_socket(self, socket: ExecutorSocket) -> int:
        """Make `socket` current and flush queued invocations over it."""
        if self._socket is not None and self._socket is not socket:
            logger.info("delivery.socket.replaced")
        self._socket = socket
        flushed = 0
        while self._queue:
            invocation = self._queue.popleft()
            try:
                await socket.send_json(invocation.to_message())
            except Exception as exc:
                raise SocketSendError(socket, exc) from exc
            flushed += 1
        return flushed

    def detach_socket(self, socket: ExecutorSocket) -> bool:
        """Forget `socket`; returns False when it was already superseded."""
        if self._socket is not socket:
            return False
        self._socket = None
        return True

    def discard(self, ids: Iterable[str]) -> int:
        """Remove queued invocations whose callers are no longer waiting."""
        doomed = set(ids)
        if not doomed:
            return 0
        before = len(self._queue)
        self._queue = deque(item for item in self._queue if item.id not in doomed)
        return before - len(self._queue)
