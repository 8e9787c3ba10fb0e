"""Chat turn dispatcher: provider selection, readiness and planner run."""

from __future__ import annotations

from collections.abc import Callable

from loguru import logger
from openai import AsyncOpenAI

from canvasrelay.config import DEFAULT_MODEL, Settings
from canvasrelay.core.local_planner import LocalPlanner
from canvasrelay.core.model_planner import ModelPlanner, ResponsesClient
from canvasrelay.core.planner import NOT_CONNECTED_MESSAGE
from canvasrelay.envelope import ChatRequest, ChatResponse
from canvasrelay.errors import (
    ApiKeyNotConfiguredError,
    ChatRequestError,
    ConnectivityError,
    ProviderNotAvailableError,
    UnknownProviderError,
)
from canvasrelay.relay import CommandRelay
from canvasrelay.tools import ToolCatalog, default_catalog
from canvasrelay.types import PlanContext

type ClientFactory = Callable[[str], ResponsesClient]

PLANNED_PROVIDERS = frozenset({"cursor", "lovable"})


class AgentLoop:
    """Runs one chat turn against whichever planner the request names."""

    def __init__(
        self,
        relay: CommandRelay,
        settings: Settings,
        *,
        catalog: ToolCatalog | None = None,
        client_factory: ClientFactory | None = None,
    ) -> None:
        self._relay = relay
        self._settings = settings
        self._catalog = catalog or default_catalog()
        self._client_factory = client_factory or self._default_client

    async def handle_chat(self, request: ChatRequest) -> ChatResponse:
        provider = request.provider
        if not request.message:
            raise ChatRequestError("message is required")
        if not self._relay.is_ready():
            raise ConnectivityError(NOT_CONNECTED_MESSAGE)

        context = PlanContext(research_context=request.research_context, design_profile=request.design_profile)
        logger.info("agent.chat provider={} history={}", provider, len(request.conversation))

        if provider == "local":
            result = await LocalPlanner(self._relay).plan(request.message, request.turns(), context)
            return ChatResponse.build(assistant=result.assistant_text, provider=provider, tool_calls=result.tool_calls)

        if provider == "openai":
            api_key = request.api_key or self._settings.openai_api_key
            if not api_key:
                raise ApiKeyNotConfiguredError("OpenAI API key missing. Add it in the plugin UI or OPENAI_API_KEY env.")
            model = request.model or DEFAULT_MODEL
            planner = ModelPlanner(
                self._relay,
                client=self._client_factory(api_key),
                model=model,
                tools=self._catalog.openai_tools(),
            )
            result = await planner.plan(request.message, request.turns(), context)
            return ChatResponse.build(
                assistant=result.assistant_text,
                provider=provider,
                model=model,
                tool_calls=result.tool_calls,
            )

        if provider in PLANNED_PROVIDERS:
            raise ProviderNotAvailableError(f"{provider} provider is not available yet in plugin chat.")
        raise UnknownProviderError(f"Unknown provider: {provider}")

    def _default_client(self, api_key: str) -> ResponsesClient:
        return AsyncOpenAI(api_key=api_key, base_url=self._settings.api_base)
