"""Relay core: negotiation, correlation and delivery."""

from canvasrelay.relay.delivery import DualTransportDelivery, ExecutorSocket
from canvasrelay.relay.mailbox import CanvasMailbox
from canvasrelay.relay.negotiator import BoundListeners, PortBinding, TransportNegotiator
from canvasrelay.relay.relay import CommandRelay

__all__ = [
    "BoundListeners",
    "CanvasMailbox",
    "CommandRelay",
    "DualTransportDelivery",
    "ExecutorSocket",
    "PortBinding",
    "TransportNegotiator",
]
