from __future__ import annotations

import asyncio
import socket
from collections.abc import Iterator

import pytest

from canvasrelay.errors import PortExhaustedError
from canvasrelay.relay import BoundListeners, TransportNegotiator

HOST = "127.0.0.1"
RUN_LENGTH = 8


def _can_bind(port: int) -> bool:
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.bind((HOST, port))
    except OSError:
        return False
    finally:
        sock.close()
    return True


def _occupy(port: int) -> socket.socket:
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind((HOST, port))
    sock.listen(1)
    return sock


@pytest.fixture
def base_port() -> int:
    for start in range(41000, 60000, RUN_LENGTH * 2):
        if all(_can_bind(port) for port in range(start, start + RUN_LENGTH)):
            return start
    pytest.skip("no free port run available")


@pytest.fixture
def occupied() -> Iterator[list[socket.socket]]:
    held: list[socket.socket] = []
    yield held
    for sock in held:
        sock.close()


@pytest.fixture
def opened() -> Iterator[list[BoundListeners]]:
    held: list[BoundListeners] = []
    yield held
    for listeners in held:
        listeners.close()


@pytest.mark.asyncio
async def test_binds_first_pair(base_port: int, opened: list[BoundListeners]) -> None:
    negotiator = TransportNegotiator(base_port, max_port=base_port + RUN_LENGTH, host=HOST)

    listeners = await negotiator.acquire()
    assert listeners is not None
    opened.append(listeners)

    assert listeners.binding.data_port == base_port
    assert listeners.binding.control_port == base_port + 1
    assert negotiator.binding == listeners.binding
    assert listeners.data.getsockname()[1] == base_port
    assert listeners.control.getsockname()[1] == base_port + 1


@pytest.mark.asyncio
async def test_busy_pair_moves_up_by_two(
    base_port: int, occupied: list[socket.socket], opened: list[BoundListeners]
) -> None:
    occupied.extend([_occupy(base_port), _occupy(base_port + 1)])
    negotiator = TransportNegotiator(base_port, max_port=base_port + RUN_LENGTH, host=HOST)

    listeners = await negotiator.acquire()
    assert listeners is not None
    opened.append(listeners)

    assert (listeners.binding.data_port, listeners.binding.control_port) == (base_port + 2, base_port + 3)


@pytest.mark.asyncio
async def test_busy_control_port_alone_skips_pair(
    base_port: int, occupied: list[socket.socket], opened: list[BoundListeners]
) -> None:
    occupied.append(_occupy(base_port + 1))
    negotiator = TransportNegotiator(base_port, max_port=base_port + RUN_LENGTH, host=HOST)

    listeners = await negotiator.acquire()
    assert listeners is not None
    opened.append(listeners)

    assert listeners.binding.data_port == base_port + 2


@pytest.mark.asyncio
async def test_busy_data_port_releases_control_listener(
    base_port: int, occupied: list[socket.socket], opened: list[BoundListeners]
) -> None:
    occupied.append(_occupy(base_port))
    negotiator = TransportNegotiator(base_port, max_port=base_port + RUN_LENGTH, host=HOST)

    listeners = await negotiator.acquire()
    assert listeners is not None
    opened.append(listeners)

    assert listeners.binding.data_port == base_port + 2
    assert _can_bind(base_port + 1)


@pytest.mark.asyncio
async def test_exhausted_range_raises(base_port: int, occupied: list[socket.socket]) -> None:
    occupied.extend([_occupy(base_port + 1), _occupy(base_port + 3)])
    negotiator = TransportNegotiator(base_port, max_port=base_port + 3, host=HOST)

    with pytest.raises(PortExhaustedError, match="No ports available"):
        await negotiator.acquire()
    assert negotiator.binding is None


@pytest.mark.asyncio
async def test_newer_attempt_supersedes_older(base_port: int, opened: list[BoundListeners]) -> None:
    negotiator = TransportNegotiator(base_port, max_port=base_port + RUN_LENGTH, host=HOST)

    first, second = await asyncio.gather(negotiator.acquire(), negotiator.acquire())

    assert first is None
    assert second is not None
    opened.append(second)
    assert negotiator.binding == second.binding
    assert second.binding.attempt_id == negotiator.attempt_id
    assert second.binding.control_port == second.binding.data_port + 1
