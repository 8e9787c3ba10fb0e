from __future__ import annotations

from typing import Any

import pytest

from canvasrelay.config import DEFAULT_MODEL
from canvasrelay.core import AgentLoop
from canvasrelay.envelope import ChatRequest
from canvasrelay.errors import (
    ApiKeyNotConfiguredError,
    ChatRequestError,
    ConnectivityError,
    ProviderNotAvailableError,
    UnknownProviderError,
)


class ScriptedResponses:
    def __init__(self) -> None:
        self.requests: list[dict[str, Any]] = []

    async def create(self, **kwargs: Any) -> dict[str, Any]:
        self.requests.append(kwargs)
        return {"id": f"resp-{len(self.requests)}", "output_text": "Sure.", "output": []}


class ScriptedClient:
    def __init__(self) -> None:
        self.responses = ScriptedResponses()


class ClientFactory:
    def __init__(self) -> None:
        self.keys: list[str] = []
        self.client = ScriptedClient()

    def __call__(self, api_key: str) -> ScriptedClient:
        self.keys.append(api_key)
        return self.client


def _request(**body: Any) -> ChatRequest:
    return ChatRequest.model_validate(body)


@pytest.mark.asyncio
async def test_empty_message_is_rejected_first(relay, settings) -> None:
    agent = AgentLoop(relay, settings)

    with pytest.raises(ChatRequestError, match="message is required"):
        await agent.handle_chat(_request(message="   ", provider="nonsense"))


@pytest.mark.asyncio
async def test_unreachable_executor_fails_before_planning(relay, settings) -> None:
    factory = ClientFactory()
    agent = AgentLoop(relay, settings, client_factory=factory)

    with pytest.raises(ConnectivityError, match="not connected"):
        await agent.handle_chat(_request(message="draw", provider="openai", apiKey="sk-test"))
    assert factory.keys == []


@pytest.mark.asyncio
async def test_local_provider_runs_recipe(relay, settings, canvas) -> None:
    agent = AgentLoop(relay, settings)

    response = await agent.handle_chat(_request(message="add a button"))

    payload = response.to_payload()
    assert payload["provider"] == "local"
    assert "model" not in payload
    assert len(payload["toolCalls"]) == 5
    assert payload["toolCalls"][0]["tool"] == "create_frame"
    assert payload["assistant"] == "Local agent executed 5 canvas actions."


@pytest.mark.asyncio
async def test_openai_provider_uses_request_key_and_default_model(relay, settings, canvas) -> None:
    factory = ClientFactory()
    agent = AgentLoop(relay, settings, client_factory=factory)

    response = await agent.handle_chat(
        _request(
            message="hello",
            provider="OpenAI",
            apiKey=" sk-request ",
            conversation=[{"role": "user", "content": "earlier"}, {"role": "system", "content": "x"}],
        )
    )

    assert factory.keys == ["sk-request"]
    assert response.model == DEFAULT_MODEL
    assert response.assistant == "Sure."
    [request] = factory.client.responses.requests
    assert request["model"] == DEFAULT_MODEL
    assert request["input"] == [{"role": "user", "content": "earlier"}, {"role": "user", "content": "hello"}]
    assert any(tool["name"] == "create_frame" for tool in request["tools"])


@pytest.mark.asyncio
async def test_openai_provider_falls_back_to_configured_key(relay, settings, canvas) -> None:
    factory = ClientFactory()
    configured = settings.model_copy(update={"openai_api_key": "sk-env"})
    agent = AgentLoop(relay, configured, client_factory=factory)

    response = await agent.handle_chat(_request(message="hello", provider="openai", model="gpt-test"))

    assert factory.keys == ["sk-env"]
    assert response.model == "gpt-test"


@pytest.mark.asyncio
async def test_openai_provider_without_key(relay, settings, canvas) -> None:
    agent = AgentLoop(relay, settings, client_factory=ClientFactory())

    with pytest.raises(ApiKeyNotConfiguredError, match="API key missing"):
        await agent.handle_chat(_request(message="hello", provider="openai"))


@pytest.mark.asyncio
@pytest.mark.parametrize("provider", ["cursor", "lovable"])
async def test_planned_providers_are_not_available(relay, settings, canvas, provider: str) -> None:
    agent = AgentLoop(relay, settings)

    with pytest.raises(ProviderNotAvailableError, match=f"{provider} provider is not available yet"):
        await agent.handle_chat(_request(message="hello", provider=provider))
    assert canvas.received == []


@pytest.mark.asyncio
async def test_unknown_provider(relay, settings, canvas) -> None:
    agent = AgentLoop(relay, settings)

    with pytest.raises(UnknownProviderError, match="Unknown provider: figjam"):
        await agent.handle_chat(_request(message="hello", provider="figjam"))
