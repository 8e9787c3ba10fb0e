"""Framework-neutral data records."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

type JsonObject = dict[str, Any]
type Role = Literal["user", "assistant"]


@dataclass(frozen=True)
class ConversationTurn:
    """One caller-owned turn replayed to a planner."""

    role: Role
    content: str


@dataclass(frozen=True)
class QueuedInvocation:
    """One tool invocation as it travels to the executor."""

    id: str
    tool: str
    params: JsonObject = field(default_factory=dict)

    def to_message(self) -> JsonObject:
        return {"id": self.id, "tool": self.tool, "params": self.params}


@dataclass(frozen=True)
class ExecutedToolCall:
    """Audit record of one invocation issued during a chat turn."""

    tool: str
    params: JsonObject
    result: Any = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> JsonObject:
        data: JsonObject = {"tool": self.tool, "params": self.params}
        if self.error is None:
            data["result"] = self.result
        else:
            data["error"] = self.error
        return data


@dataclass(frozen=True)
class PlanContext:
    """Free-text context supplied alongside a chat message."""

    research_context: str = ""
    design_profile: str = ""

    def cue_text(self) -> str:
        return " ".join(part for part in (self.research_context, self.design_profile) if part)


@dataclass(frozen=True)
class PlanResult:
    """Outcome of one planner run."""

    assistant_text: str
    tool_calls: list[ExecutedToolCall] = field(default_factory=list)
