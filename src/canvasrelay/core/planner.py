"""Shared planner contract."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from loguru import logger

from canvasrelay.errors import ConnectivityError, ExecutorDisconnectedError, InvocationError
from canvasrelay.relay import CommandRelay
from canvasrelay.types import ConversationTurn, ExecutedToolCall, JsonObject, PlanContext, PlanResult

NOT_CONNECTED_MESSAGE = "Canvas plugin is not connected. Click Connect in the plugin first."


class Planner(Protocol):
    """Decides which invocations to issue for one chat turn."""

    async def plan(
        self,
        message: str,
        history: Sequence[ConversationTurn],
        context: PlanContext,
    ) -> PlanResult: ...


async def run_tool(relay: CommandRelay, tool: str, params: JsonObject) -> ExecutedToolCall:
    """Dispatch one call and record its outcome.

    Executor-side failures are recorded. Losing the executor aborts the turn
    with `ConnectivityError`, so no later step waits out its deadline.
    """
    if not relay.is_ready():
        raise ConnectivityError(NOT_CONNECTED_MESSAGE)
    try:
        result = await relay.dispatch(tool, params)
    except ExecutorDisconnectedError as exc:
        logger.warning("planner.tool.disconnected tool={} error={}", tool, exc)
        raise ConnectivityError(f"{exc} while running {tool}.") from exc
    except InvocationError as exc:
        logger.warning("planner.tool.error tool={} error={}", tool, exc)
        return ExecutedToolCall(tool=tool, params=params, error=str(exc))
    return ExecutedToolCall(tool=tool, params=params, result=result)
