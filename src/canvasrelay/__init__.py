"""canvas-relay - drive a live design canvas from a tool-calling agent."""

from canvasrelay.core import AgentLoop
from canvasrelay.relay import CommandRelay, TransportNegotiator

__version__ = "0.2.0"

__all__ = ["AgentLoop", "CommandRelay", "TransportNegotiator"]
