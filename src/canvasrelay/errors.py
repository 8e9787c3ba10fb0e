"""Application-level exception types for canvas-relay."""

from __future__ import annotations


class RelayError(Exception):
    """Base exception for canvas-relay."""


class ConnectivityError(RelayError):
    """Raised when no executor is reachable before a chat turn starts."""


class InvocationError(RelayError):
    """Base exception for one relayed tool invocation."""


class InvocationTimeoutError(InvocationError):
    """Raised when the executor does not reply before the deadline."""


class ExecutorError(InvocationError):
    """Raised when the executor replies with an explicit error payload."""


class ExecutorDisconnectedError(InvocationError):
    """Raised for pending invocations when the executor socket goes away."""


class PlannerError(RelayError):
    """Raised when the remote model endpoint fails or returns garbage."""


class ChatRequestError(RelayError):
    """Raised when a chat request is rejected outright."""


class ProviderNotAvailableError(ChatRequestError):
    """Raised for providers that are known but not wired up yet."""


class UnknownProviderError(ChatRequestError):
    """Raised for providers nobody has heard of."""


class ConfigurationError(RelayError):
    """Base exception for configuration and startup validation errors."""


class ApiKeyNotConfiguredError(ConfigurationError):
    """Raised when an API key is required but missing."""


class PollConflictError(RelayError):
    """Raised when a long-poll arrives while another one is still parked."""


class PortExhaustedError(RelayError):
    """Raised when no control/data port pair can be bound in range."""
