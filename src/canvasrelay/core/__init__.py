"""Agent tool-calling loop."""

from canvasrelay.core.agent_loop import AgentLoop
from canvasrelay.core.local_planner import LocalPlanner
from canvasrelay.core.model_planner import ModelPlanner
from canvasrelay.core.planner import Planner

__all__ = ["AgentLoop", "LocalPlanner", "ModelPlanner", "Planner"]
