"""Control/data port pair negotiation."""

from __future__ import annotations

import asyncio
import errno
import socket
from dataclasses import dataclass

from loguru import logger

from canvasrelay.config import DEFAULT_DATA_PORT
from canvasrelay.errors import PortExhaustedError

PORT_MAX = 3080
PORT_STEP = 2
_LISTEN_BACKLOG = 128


@dataclass(frozen=True)
class PortBinding:
    """The advertised port pair; control is always data + 1."""

    control_port: int
    data_port: int
    attempt_id: int


@dataclass
class BoundListeners:
    """Listening sockets held for one committed binding."""

    binding: PortBinding
    control: socket.socket
    data: socket.socket

    def close(self) -> None:
        self.control.close()
        self.data.close()


def _is_address_in_use(exc: OSError) -> bool:
    return exc.errno == errno.EADDRINUSE


def _bind_listener(host: str, port: int) -> socket.socket:
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
        sock.listen(_LISTEN_BACKLOG)
    except BaseException:
        sock.close()
        raise
    return sock


def _port_is_free(host: str, port: int) -> bool:
    try:
        probe = _bind_listener(host, port)
    except OSError as exc:
        if _is_address_in_use(exc):
            return False
        raise
    probe.close()
    return True


class TransportNegotiator:
    """Binds the first free pair at or above the starting data port.

    Every retry is a new attempt with a larger attempt id. An attempt that
    finds a newer one in progress after any suspension closes what it holds
    and gives up, so only the latest attempt ever publishes a binding.
    """

    def __init__(
        self,
        start_port: int = DEFAULT_DATA_PORT,
        *,
        max_port: int = PORT_MAX,
        host: str = "127.0.0.1",
    ) -> None:
        self._start_port = start_port
        self._max_port = max_port
        self._host = host
        self._attempt_id = 0
        self._binding: PortBinding | None = None

    @property
    def binding(self) -> PortBinding | None:
        return self._binding

    @property
    def attempt_id(self) -> int:
        return self._attempt_id

    async def acquire(self) -> BoundListeners | None:
        """Bind a pair; returns None if a newer negotiation superseded this one."""
        data_port = self._start_port
        while True:
            control_port = data_port + 1
            if control_port > self._max_port:
                raise PortExhaustedError(
                    f"No ports available in range {self._start_port}-{self._max_port}. "
                    "Stop other processes using these ports."
                )
            attempt_id = self._begin_attempt()
            listeners = await self._try_pair(attempt_id, control_port, data_port)
            if listeners is not None:
                return listeners
            if attempt_id != self._attempt_id:
                logger.debug("negotiator.attempt.superseded attempt={}", attempt_id)
                return None
            data_port += PORT_STEP

    def _begin_attempt(self) -> int:
        self._attempt_id += 1
        return self._attempt_id

    async def _try_pair(self, attempt_id: int, control_port: int, data_port: int) -> BoundListeners | None:
        try:
            control = _bind_listener(self._host, control_port)
        except OSError as exc:
            if not _is_address_in_use(exc):
                raise
            logger.info("negotiator.port.busy port={} attempt={}", control_port, attempt_id)
            return None

        try:
            # Probe before binding so a busy data port never costs a listener swap.
            available = await asyncio.to_thread(_port_is_free, self._host, data_port)
            if attempt_id != self._attempt_id:
                control.close()
                return None
            if not available:
                logger.info("negotiator.port.busy port={} attempt={}", data_port, attempt_id)
                control.close()
                return None
            try:
                data = _bind_listener(self._host, data_port)
            except OSError as exc:
                if not _is_address_in_use(exc):
                    raise
                logger.info("negotiator.port.busy port={} attempt={}", data_port, attempt_id)
                control.close()
                return None
        except BaseException:
            control.close()
            raise

        binding = PortBinding(control_port=control_port, data_port=data_port, attempt_id=attempt_id)
        self._binding = binding
        logger.info(
            "negotiator.bound control_port={} data_port={} attempt={}",
            control_port,
            data_port,
            attempt_id,
        )
        return BoundListeners(binding=binding, control=control, data=data)
