"""Deterministic keyword planner that needs no model endpoint."""

from __future__ import annotations

import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from loguru import logger

from canvasrelay.core.planner import run_tool
from canvasrelay.relay import CommandRelay
from canvasrelay.types import ConversationTurn, ExecutedToolCall, JsonObject, PlanContext, PlanResult

type RGB = tuple[float, float, float]


@dataclass(frozen=True)
class Palette:
    background: RGB
    surface: RGB
    text: RGB
    muted: RGB
    accent: RGB
    on_accent: RGB


LIGHT = Palette(
    background=(0.98, 0.98, 0.98),
    surface=(0.94, 0.94, 0.95),
    text=(0.1, 0.1, 0.1),
    muted=(0.4, 0.4, 0.45),
    accent=(0.2, 0.2, 0.2),
    on_accent=(1.0, 1.0, 1.0),
)
DARK = Palette(
    background=(0.08, 0.08, 0.1),
    surface=(0.14, 0.14, 0.17),
    text=(0.95, 0.95, 0.95),
    muted=(0.65, 0.65, 0.7),
    accent=(0.36, 0.42, 1.0),
    on_accent=(1.0, 1.0, 1.0),
)


def _fill(color: RGB) -> JsonObject:
    return {"fillR": color[0], "fillG": color[1], "fillB": color[2]}


@dataclass(frozen=True)
class RecipeStep:
    """One invocation; `links` maps a param name to an earlier step key whose result id it takes."""

    key: str
    tool: str
    params: JsonObject
    links: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class Recipe:
    name: str
    steps: list[RecipeStep]


def landing_recipe(message: str, palette: Palette) -> Recipe:
    return Recipe(
        name="landing page",
        steps=[
            RecipeStep(
                "page",
                "create_frame",
                {
                    "name": "Landing Page",
                    "width": 1440,
                    "height": 980,
                    "layoutMode": "VERTICAL",
                    "itemSpacing": 24,
                    "paddingTop": 40,
                    "paddingRight": 40,
                    "paddingBottom": 40,
                    "paddingLeft": 40,
                    **_fill(palette.background),
                },
            ),
            RecipeStep(
                "headline",
                "create_text",
                {"text": "Headline", "fontSize": 56, **_fill(palette.text)},
                links={"parentId": "page"},
            ),
            RecipeStep(
                "subheading",
                "create_text",
                {"text": "A short line that explains the product.", "fontSize": 22, **_fill(palette.muted)},
                links={"parentId": "page"},
            ),
            *_button_steps(palette, parent="page"),
        ],
    )


def _button_steps(palette: Palette, *, parent: str) -> list[RecipeStep]:
    return [
        RecipeStep(
            "button",
            "create_component",
            {
                "name": "Button / Primary",
                "width": 180,
                "height": 52,
                "layoutMode": "HORIZONTAL",
                "paddingTop": 14,
                "paddingRight": 24,
                "paddingBottom": 14,
                "paddingLeft": 24,
                **_fill(palette.accent),
            },
            links={"parentId": parent},
        ),
        RecipeStep(
            "label",
            "create_text",
            {"text": "Get started", "fontSize": 18, "fontStyle": "Medium", **_fill(palette.on_accent)},
            links={"parentId": "button"},
        ),
        RecipeStep(
            "button_radius",
            "set_corner_radius",
            {"cornerRadius": 12},
            links={"nodeId": "button"},
        ),
    ]


def call_to_action_recipe(message: str, palette: Palette) -> Recipe:
    return Recipe(
        name="call-to-action section",
        steps=[
            RecipeStep(
                "section",
                "create_frame",
                {
                    "name": "Call To Action",
                    "width": 720,
                    "height": 320,
                    "layoutMode": "VERTICAL",
                    "itemSpacing": 20,
                    "paddingTop": 40,
                    "paddingRight": 40,
                    "paddingBottom": 40,
                    "paddingLeft": 40,
                    **_fill(palette.surface),
                },
            ),
            RecipeStep(
                "heading",
                "create_text",
                {"text": "Ready to start?", "fontSize": 32, "fontStyle": "Bold", **_fill(palette.text)},
                links={"parentId": "section"},
            ),
            *_button_steps(palette, parent="section"),
        ],
    )


def app_shell_recipe(message: str, palette: Palette) -> Recipe:
    return Recipe(
        name="application shell",
        steps=[
            RecipeStep(
                "shell",
                "create_frame",
                {"name": "App Shell", "width": 1440, "height": 900, "layoutMode": "HORIZONTAL", "itemSpacing": 0},
            ),
            RecipeStep(
                "sidebar",
                "create_frame",
                {
                    "name": "Sidebar",
                    "width": 260,
                    "height": 900,
                    "layoutMode": "VERTICAL",
                    "itemSpacing": 12,
                    "paddingTop": 24,
                    "paddingLeft": 20,
                    **_fill(palette.surface),
                },
                links={"parentId": "shell"},
            ),
            RecipeStep(
                "brand",
                "create_text",
                {"text": "Workspace", "fontSize": 20, "fontStyle": "Bold", **_fill(palette.text)},
                links={"parentId": "sidebar"},
            ),
            RecipeStep(
                "content",
                "create_frame",
                {
                    "name": "Content",
                    "width": 1180,
                    "height": 900,
                    "layoutMode": "VERTICAL",
                    "itemSpacing": 24,
                    "paddingTop": 32,
                    "paddingRight": 32,
                    "paddingBottom": 32,
                    "paddingLeft": 32,
                    **_fill(palette.background),
                },
                links={"parentId": "shell"},
            ),
            RecipeStep(
                "header",
                "create_text",
                {"text": "Overview", "fontSize": 32, "fontStyle": "Bold", **_fill(palette.text)},
                links={"parentId": "content"},
            ),
            RecipeStep(
                "panel_primary",
                "create_rectangle",
                {"name": "Panel / Primary", "width": 1116, "height": 320, "cornerRadius": 16, **_fill(palette.surface)},
                links={"parentId": "content"},
            ),
            RecipeStep(
                "panel_secondary",
                "create_rectangle",
                {"name": "Panel / Secondary", "width": 1116, "height": 240, "cornerRadius": 16, **_fill(palette.surface)},
                links={"parentId": "content"},
            ),
        ],
    )


def card_recipe(message: str, palette: Palette) -> Recipe:
    return Recipe(
        name="card",
        steps=[
            RecipeStep(
                "card",
                "create_rectangle",
                {"name": "Card", "width": 360, "height": 220, "cornerRadius": 16, **_fill(palette.surface)},
            )
        ],
    )


def circle_recipe(message: str, palette: Palette) -> Recipe:
    return Recipe(
        name="circle",
        steps=[
            RecipeStep(
                "circle",
                "create_ellipse",
                {"name": "Circle", "width": 140, "height": 140, **_fill(palette.accent)},
            )
        ],
    )


def canvas_recipe(message: str, palette: Palette) -> Recipe:
    return Recipe(
        name="labeled canvas",
        steps=[
            RecipeStep(
                "canvas",
                "create_frame",
                {
                    "name": "Canvas",
                    "width": 1200,
                    "height": 900,
                    "layoutMode": "VERTICAL",
                    "itemSpacing": 16,
                    **_fill(palette.background),
                },
            ),
            RecipeStep(
                "label",
                "create_text",
                {"text": message, "fontSize": 20, **_fill(palette.text)},
                links={"parentId": "canvas"},
            ),
        ],
    )


type RecipeBuilder = Callable[[str, Palette], Recipe]

RECIPE_CUES: tuple[tuple[re.Pattern[str], RecipeBuilder], ...] = (
    (re.compile(r"\b(landing|hero)\b"), landing_recipe),
    (re.compile(r"\b(button|cta|call[ -]to[ -]action)\b"), call_to_action_recipe),
    (re.compile(r"\b(dashboard|app shell|application|sidebar|admin)\b"), app_shell_recipe),
    (re.compile(r"\bcards?\b"), card_recipe),
    (re.compile(r"\b(circle|ellipse)\b"), circle_recipe),
)
_DARK_CUE = re.compile(r"\bdark\b")


def select_recipe(message: str, context: PlanContext) -> Recipe:
    """Pick a recipe from message cues first, then from the free-text context."""
    lowered = message.lower()
    cue_text = context.cue_text().lower()
    palette = DARK if _DARK_CUE.search(f"{lowered} {context.design_profile.lower()}") else LIGHT
    for text in (lowered, cue_text):
        if not text:
            continue
        for pattern, builder in RECIPE_CUES:
            if pattern.search(text):
                return builder(message, palette)
    return canvas_recipe(message, palette)


def _result_id(result: Any) -> str | None:
    if isinstance(result, dict) and isinstance(result.get("id"), str):
        return result["id"]
    return None


class LocalPlanner:
    """Runs a fixed recipe step by step through the relay."""

    def __init__(self, relay: CommandRelay) -> None:
        self._relay = relay

    async def plan(
        self,
        message: str,
        history: Sequence[ConversationTurn] = (),
        context: PlanContext | None = None,
    ) -> PlanResult:
        recipe = select_recipe(message, context or PlanContext())
        logger.info("local.planner.recipe name={} steps={}", recipe.name, len(recipe.steps))

        node_ids: dict[str, str] = {}
        tool_calls: list[ExecutedToolCall] = []
        for step in recipe.steps:
            params = dict(step.params)
            for param, source in step.links.items():
                if node_id := node_ids.get(source):
                    params[param] = node_id
            call = await run_tool(self._relay, step.tool, params)
            tool_calls.append(call)
            if call.ok and (node_id := _result_id(call.result)):
                node_ids[step.key] = node_id

        return PlanResult(assistant_text=_summarize(tool_calls), tool_calls=tool_calls)


def _summarize(tool_calls: list[ExecutedToolCall]) -> str:
    succeeded = sum(1 for call in tool_calls if call.ok)
    failed = len(tool_calls) - succeeded
    if failed == 0:
        plural = "" if succeeded == 1 else "s"
        return f"Local agent executed {succeeded} canvas action{plural}."
    return f"Local agent executed {succeeded} action(s) with {failed} error(s)."
