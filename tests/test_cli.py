from __future__ import annotations

import importlib
from pathlib import Path

import pytest
from typer.testing import CliRunner

from canvasrelay.errors import PortExhaustedError

cli_module = importlib.import_module("canvasrelay.cli")


class DummyRelayServer:
    created: list[DummyRelayServer] = []

    def __init__(self, settings, **_kwargs) -> None:
        self.settings = settings
        self.served = False
        DummyRelayServer.created.append(self)

    async def serve(self) -> None:
        self.served = True


class ExhaustedRelayServer(DummyRelayServer):
    async def serve(self) -> None:
        raise PortExhaustedError("No ports available in range 3055-3080.")


@pytest.fixture(autouse=True)
def isolated(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("CANVAS_RELAY_PORT", raising=False)
    monkeypatch.setattr(cli_module, "configure_logging", lambda **_kwargs: None)
    DummyRelayServer.created = []


def test_serve_passes_port_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(cli_module, "RelayServer", DummyRelayServer)

    result = CliRunner().invoke(cli_module.app, ["serve", "--port", "4100", "--host", "0.0.0.0"])

    assert result.exit_code == 0
    [server] = DummyRelayServer.created
    assert server.served is True
    assert server.settings.port == 4100
    assert server.settings.host == "0.0.0.0"


def test_serve_uses_default_port(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(cli_module, "RelayServer", DummyRelayServer)

    result = CliRunner().invoke(cli_module.app, ["serve"])

    assert result.exit_code == 0
    assert DummyRelayServer.created[0].settings.port == 3055


def test_port_exhaustion_exits_nonzero(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(cli_module, "RelayServer", ExhaustedRelayServer)

    result = CliRunner().invoke(cli_module.app, ["serve", "-p", "3079"])

    assert result.exit_code == 1


def test_mcp_command_runs_stdio_with_relay(monkeypatch: pytest.MonkeyPatch) -> None:
    stdio_module = importlib.import_module("canvasrelay.server.stdio")
    seen: list[DummyRelayServer] = []

    async def fake_run_with_relay(relay_server: DummyRelayServer) -> None:
        seen.append(relay_server)

    monkeypatch.setattr(cli_module, "RelayServer", DummyRelayServer)
    monkeypatch.setattr(stdio_module, "run_with_relay", fake_run_with_relay)

    result = CliRunner().invoke(cli_module.app, ["mcp"])

    assert result.exit_code == 0
    assert seen == DummyRelayServer.created
