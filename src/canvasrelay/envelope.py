"""Wire envelopes for the chat and executor surfaces."""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from canvasrelay.types import ConversationTurn, ExecutedToolCall, JsonObject

_TURN_ROLES = frozenset({"user", "assistant"})


def parse_json_object(raw: bytes | str) -> JsonObject:
    """Decode a JSON object body; anything else decodes to an empty mapping."""
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return {}
    return data if isinstance(data, dict) else {}


class ChatTurn(BaseModel):
    model_config = ConfigDict(extra="ignore")

    role: str = ""
    content: str | None = None


class ChatRequest(BaseModel):
    """Body of `POST /chat`."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    provider: str = "local"
    model: str | None = None
    api_key: str | None = Field(default=None, alias="apiKey")
    message: str = ""
    conversation: list[ChatTurn] = Field(default_factory=list)
    research_context: str = Field(default="", alias="researchContext")
    design_profile: str = Field(default="", alias="designProfile")

    @field_validator("provider", mode="before")
    @classmethod
    def _normalize_provider(cls, value: Any) -> str:
        if not isinstance(value, str) or not value.strip():
            return "local"
        return value.strip().lower()

    @field_validator("message", "research_context", "design_profile", mode="before")
    @classmethod
    def _strip_text(cls, value: Any) -> str:
        return value.strip() if isinstance(value, str) else ""

    @field_validator("model", "api_key", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> str | None:
        if not isinstance(value, str):
            return None
        return value.strip() or None

    @field_validator("conversation", mode="before")
    @classmethod
    def _only_mappings(cls, value: Any) -> list[Any]:
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, dict)]

    def turns(self) -> list[ConversationTurn]:
        return [
            ConversationTurn(role=turn.role, content=turn.content)  # type: ignore[arg-type]
            for turn in self.conversation
            if turn.role in _TURN_ROLES and turn.content
        ]


class ChatResponse(BaseModel):
    """Body returned by a successful `POST /chat`."""

    model_config = ConfigDict(populate_by_name=True)

    assistant: str
    provider: str
    model: str | None = None
    tool_calls: list[JsonObject] = Field(default_factory=list, alias="toolCalls")

    @classmethod
    def build(
        cls,
        *,
        assistant: str,
        provider: str,
        tool_calls: list[ExecutedToolCall],
        model: str | None = None,
    ) -> ChatResponse:
        return cls(
            assistant=assistant,
            provider=provider,
            model=model,
            tool_calls=[call.to_dict() for call in tool_calls],
        )

    def to_payload(self) -> JsonObject:
        # Audit records keep `"result": null`.
        payload: JsonObject = {"assistant": self.assistant, "provider": self.provider}
        if self.model is not None:
            payload["model"] = self.model
        payload["toolCalls"] = self.tool_calls
        return payload
