"""Drawing-tool catalog exposed to tool-calling clients."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from canvasrelay.types import JsonObject

HANDOFF_TOOL = "get_and_clear_last_canvas_message"

_LAYOUT_MODES = ["NONE", "HORIZONTAL", "VERTICAL"]


@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    properties: JsonObject = field(default_factory=dict)
    required: tuple[str, ...] = ()
    agent_tool: bool = True

    def input_schema(self) -> JsonObject:
        schema: JsonObject = {"type": "object", "properties": self.properties}
        if self.required:
            schema["required"] = list(self.required)
        return schema

    def to_mcp(self) -> JsonObject:
        return {"name": self.name, "description": self.description, "inputSchema": self.input_schema()}

    def to_openai(self) -> JsonObject:
        return {
            "type": "function",
            "name": self.name,
            "description": self.description,
            "parameters": self.input_schema(),
        }


class ToolCatalog:
    """Registry for tool specs with visibility flags."""

    def __init__(self, specs: Iterable[ToolSpec] | None = None) -> None:
        self._specs: dict[str, ToolSpec] = {}
        for spec in specs or []:
            self.register(spec)

    def register(self, spec: ToolSpec) -> None:
        self._specs[spec.name] = spec

    def spec(self, name: str) -> ToolSpec | None:
        return self._specs.get(name)

    def has(self, name: str) -> bool:
        return name in self._specs

    def all_specs(self) -> list[ToolSpec]:
        return list(self._specs.values())

    def agent_specs(self) -> list[ToolSpec]:
        return [spec for spec in self._specs.values() if spec.agent_tool]

    def openai_tools(self) -> list[JsonObject]:
        return [spec.to_openai() for spec in self.agent_specs()]


def _numbers(*names: str) -> dict[str, Any]:
    return {name: {"type": "number"} for name in names}


def _strings(*names: str) -> dict[str, Any]:
    return {name: {"type": "string"} for name in names}


def _fill() -> dict[str, Any]:
    return _numbers("fillR", "fillG", "fillB")


_PLACEMENT = {**_strings("name", "parentId"), **_numbers("x", "y", "width", "height")}
_PADDING = _numbers("paddingTop", "paddingRight", "paddingBottom", "paddingLeft")

BUILTIN_SPECS: tuple[ToolSpec, ...] = (
    ToolSpec(
        name="create_frame",
        description=(
            "Create a new frame on the canvas. Optionally name, x, y, width, height and parentId. "
            "For auto-layout, set layoutMode and itemSpacing."
        ),
        properties={
            **_PLACEMENT,
            **_fill(),
            **_numbers("fillOpacity", "cornerRadius", "itemSpacing"),
            "layoutMode": {"type": "string", "enum": _LAYOUT_MODES},
            **_PADDING,
        },
    ),
    ToolSpec(
        name="create_text",
        description="Create text on the canvas. Optionally set font family/style, size, color, position and parentId.",
        properties={
            **_strings("text", "fontFamily", "fontStyle", "parentId"),
            **_numbers("fontSize", "x", "y", "fillOpacity"),
            **_fill(),
        },
    ),
    ToolSpec(
        name="create_rectangle",
        description="Create a rectangle with optional size, color, corner radius, position and parentId.",
        properties={**_PLACEMENT, **_fill(), **_numbers("fillOpacity", "cornerRadius")},
    ),
    ToolSpec(
        name="create_ellipse",
        description="Create an ellipse/circle with optional size, color, position and parentId.",
        properties={**_PLACEMENT, **_fill(), **_numbers("fillOpacity")},
    ),
    ToolSpec(
        name="create_component",
        description="Create a component node for reusable UI parts.",
        properties={
            **_PLACEMENT,
            **_fill(),
            **_numbers("fillOpacity", "cornerRadius", "itemSpacing"),
            "layoutMode": {"type": "string", "enum": _LAYOUT_MODES},
            **_PADDING,
        },
    ),
    ToolSpec(
        name="create_line",
        description="Create a line with optional stroke settings and rotation.",
        properties={
            **_strings("name", "parentId"),
            **_numbers("length", "x", "y", "strokeR", "strokeG", "strokeB", "strokeOpacity", "strokeWeight", "rotation"),
        },
    ),
    ToolSpec(
        name="create_polygon",
        description="Create a polygon with side count and optional size/color.",
        properties={**_PLACEMENT, **_fill(), **_numbers("sides", "radius")},
    ),
    ToolSpec(
        name="create_star",
        description="Create a star with point count and optional size/color.",
        properties={**_PLACEMENT, **_fill(), **_numbers("points", "radius")},
    ),
    ToolSpec(
        name="set_auto_layout",
        description="Apply auto-layout settings on the selected node or the provided nodeId.",
        properties={
            "nodeId": {"type": "string"},
            "layoutMode": {"type": "string", "enum": _LAYOUT_MODES},
            "itemSpacing": {"type": "number"},
            **_PADDING,
            "primaryAxisAlignItems": {"type": "string", "enum": ["MIN", "CENTER", "MAX", "SPACE_BETWEEN"]},
            "counterAxisAlignItems": {"type": "string", "enum": ["MIN", "CENTER", "MAX", "BASELINE"]},
        },
    ),
    ToolSpec(
        name="set_fill_color",
        description="Set solid fill color on the target node.",
        properties={"nodeId": {"type": "string"}, **_fill(), "fillOpacity": {"type": "number"}},
        required=("fillR", "fillG", "fillB"),
    ),
    ToolSpec(
        name="set_corner_radius",
        description="Set corner radius on the target node.",
        properties={"nodeId": {"type": "string"}, "cornerRadius": {"type": "number"}},
        required=("cornerRadius",),
    ),
    ToolSpec(
        name="get_selection",
        description="Get the current selection on the canvas.",
    ),
    ToolSpec(
        name=HANDOFF_TOOL,
        description="Get and clear the latest message typed by the user at the canvas.",
        agent_tool=False,
    ),
)


def default_catalog() -> ToolCatalog:
    return ToolCatalog(BUILTIN_SPECS)
