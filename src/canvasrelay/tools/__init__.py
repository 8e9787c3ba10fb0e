"""Tool catalog package."""

from canvasrelay.tools.catalog import HANDOFF_TOOL, ToolCatalog, ToolSpec, default_catalog

__all__ = ["HANDOFF_TOOL", "ToolCatalog", "ToolSpec", "default_catalog"]
