from __future__ import annotations

from canvasrelay.envelope import ChatRequest, ChatResponse, parse_json_object
from canvasrelay.types import ConversationTurn, ExecutedToolCall


def test_parse_json_object_tolerates_garbage() -> None:
    assert parse_json_object(b"") == {}
    assert parse_json_object(b"{not json") == {}
    assert parse_json_object(b"[1, 2]") == {}
    assert parse_json_object(b"\xff\xfe") == {}
    assert parse_json_object('{"a": 1}') == {"a": 1}


def test_chat_request_normalizes_fields() -> None:
    request = ChatRequest.model_validate(
        {
            "provider": "  OpenAI ",
            "model": "   ",
            "apiKey": " sk-1 ",
            "message": "  draw  ",
            "researchContext": " users ",
            "designProfile": None,
            "conversation": "not a list",
            "unexpected": True,
        }
    )

    assert request.provider == "openai"
    assert request.model is None
    assert request.api_key == "sk-1"
    assert request.message == "draw"
    assert request.research_context == "users"
    assert request.design_profile == ""
    assert request.conversation == []


def test_chat_request_defaults() -> None:
    request = ChatRequest.model_validate({})

    assert request.provider == "local"
    assert request.message == ""
    assert request.turns() == []


def test_turns_keep_user_and_assistant_content() -> None:
    request = ChatRequest.model_validate(
        {
            "message": "next",
            "conversation": [
                {"role": "user", "content": "first"},
                "junk",
                {"role": "system", "content": "ignored"},
                {"role": "assistant", "content": ""},
                {"role": "assistant", "content": "reply"},
            ],
        }
    )

    assert request.turns() == [ConversationTurn("user", "first"), ConversationTurn("assistant", "reply")]


def test_chat_response_payload_keeps_null_results() -> None:
    response = ChatResponse.build(
        assistant="ok",
        provider="openai",
        model="gpt-test",
        tool_calls=[
            ExecutedToolCall(tool="get_selection", params={}),
            ExecutedToolCall(tool="create_frame", params={"name": "A"}, error="boom"),
        ],
    )

    assert response.to_payload() == {
        "assistant": "ok",
        "provider": "openai",
        "model": "gpt-test",
        "toolCalls": [
            {"tool": "get_selection", "params": {}, "result": None},
            {"tool": "create_frame", "params": {"name": "A"}, "error": "boom"},
        ],
    }
