"""Remote-model planner over the OpenAI Responses API."""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Protocol

import openai
from loguru import logger

from canvasrelay.core.planner import run_tool
from canvasrelay.errors import PlannerError
from canvasrelay.relay import CommandRelay
from canvasrelay.types import ConversationTurn, ExecutedToolCall, JsonObject, PlanContext, PlanResult

MAX_MODEL_ROUNDS = 8
HISTORY_LIMIT = 20
FALLBACK_REPLY = "Done."
ERROR_BODY_LIMIT = 280
INSTRUCTIONS = (
    "You are CanvasRelay. Execute design requests by calling tools. "
    "Keep assistant text concise. Prefer practical UI composition. "
    "When a tool returns a node id, pass it as parentId to nest new nodes inside it."
)


class ResponsesClient(Protocol):
    """The slice of `openai.AsyncOpenAI` the planner talks to."""

    @property
    def responses(self) -> Any: ...


@dataclass(frozen=True)
class FunctionCall:
    name: str
    call_id: str
    arguments: str

    def parsed_arguments(self) -> JsonObject:
        try:
            data = json.loads(self.arguments or "{}")
        except json.JSONDecodeError:
            return {}
        return data if isinstance(data, dict) else {}


def trim_history(history: Sequence[ConversationTurn], limit: int = HISTORY_LIMIT) -> list[ConversationTurn]:
    recent = list(history)[-limit:] if limit > 0 else []
    return [turn for turn in recent if turn.content and turn.role in ("user", "assistant")]


def build_instructions(context: PlanContext) -> str:
    blocks = [INSTRUCTIONS]
    if context.research_context:
        blocks.append(f"<research_context>\n{context.research_context}\n</research_context>")
    if context.design_profile:
        blocks.append(f"<design_profile>\n{context.design_profile}\n</design_profile>")
    return "\n\n".join(blocks)


def extract_function_calls(response: Mapping[str, Any]) -> list[FunctionCall]:
    output = response.get("output")
    if not isinstance(output, list):
        return []
    calls: list[FunctionCall] = []
    for item in output:
        if not isinstance(item, Mapping) or item.get("type") != "function_call":
            continue
        name = item.get("name")
        call_id = item.get("call_id")
        if not isinstance(name, str) or not name or not isinstance(call_id, str) or not call_id:
            continue
        arguments = item.get("arguments")
        calls.append(FunctionCall(name=name, call_id=call_id, arguments=arguments if isinstance(arguments, str) else "{}"))
    return calls


def extract_output_text(response: Mapping[str, Any]) -> str:
    output_text = response.get("output_text")
    if isinstance(output_text, str) and output_text.strip():
        return output_text.strip()
    output = response.get("output")
    if not isinstance(output, list):
        return ""
    chunks: list[str] = []
    for item in output:
        if not isinstance(item, Mapping) or item.get("type") != "message":
            continue
        content = item.get("content")
        if not isinstance(content, list):
            continue
        for part in content:
            if isinstance(part, Mapping) and part.get("type") in ("output_text", "text"):
                text = part.get("text")
                if isinstance(text, str):
                    chunks.append(text)
    return "\n".join(chunks).strip()


def _call_output(call: FunctionCall, executed: ExecutedToolCall) -> JsonObject:
    if executed.ok:
        body: JsonObject = {"ok": True, "result": executed.result}
    else:
        body = {"ok": False, "error": executed.error}
    return {"type": "function_call_output", "call_id": call.call_id, "output": json.dumps(body, default=str)}


def _as_payload(response: Any) -> JsonObject:
    if hasattr(response, "model_dump"):
        response = response.model_dump()
    if not isinstance(response, Mapping):
        raise PlannerError("Model endpoint returned a malformed response.")
    payload = dict(response)
    if not isinstance(payload.get("id"), str) or not payload["id"]:
        raise PlannerError("Model endpoint returned a response without an id.")
    return payload


class ModelPlanner:
    """Bounded request → tool calls → follow-up loop against a remote model."""

    def __init__(
        self,
        relay: CommandRelay,
        *,
        client: ResponsesClient,
        model: str,
        tools: list[JsonObject],
        max_rounds: int = MAX_MODEL_ROUNDS,
    ) -> None:
        self._relay = relay
        self._client = client
        self._model = model
        self._tools = tools
        self._max_rounds = max_rounds

    async def plan(
        self,
        message: str,
        history: Sequence[ConversationTurn] = (),
        context: PlanContext | None = None,
    ) -> PlanResult:
        context = context or PlanContext()
        conversation = [{"role": turn.role, "content": turn.content} for turn in trim_history(history)]
        response = await self._create(
            instructions=build_instructions(context),
            input=[*conversation, {"role": "user", "content": message}],
        )

        tool_calls: list[ExecutedToolCall] = []
        rounds = 0
        while calls := extract_function_calls(response):
            if rounds >= self._max_rounds:
                logger.warning("model.planner.round_cap rounds={} pending_calls={}", rounds, len(calls))
                break
            rounds += 1
            logger.info("model.planner.round round={} calls={}", rounds, len(calls))
            outputs: list[JsonObject] = []
            for call in calls:
                executed = await run_tool(self._relay, call.name, call.parsed_arguments())
                tool_calls.append(executed)
                outputs.append(_call_output(call, executed))
            response = await self._create(previous_response_id=response["id"], input=outputs)

        return PlanResult(assistant_text=extract_output_text(response) or FALLBACK_REPLY, tool_calls=tool_calls)

    async def _create(self, **kwargs: Any) -> JsonObject:
        request = {"model": self._model, "tools": self._tools, "tool_choice": "auto", **kwargs}
        try:
            response = await self._client.responses.create(**request)
        except openai.APIStatusError as exc:
            body = str(exc.message)[:ERROR_BODY_LIMIT]
            raise PlannerError(f"Model endpoint {exc.status_code}: {body}") from exc
        except openai.APIError as exc:
            raise PlannerError(f"Model endpoint error: {exc!s}") from exc
        return _as_payload(response)
