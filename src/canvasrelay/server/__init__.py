"""HTTP, WebSocket and stdio surfaces."""

from canvasrelay.server.control import build_control_app
from canvasrelay.server.executor import build_data_app
from canvasrelay.server.runner import RelayServer

__all__ = ["RelayServer", "build_control_app", "build_data_app"]
