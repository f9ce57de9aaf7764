"""
Agent Package

The selection state machine: the selection reducer, turn routing, and the
agent that runs turns over a tool registry.
"""

from bigtool.agent.graph import BigToolAgent, TurnResult, create_agent
from bigtool.agent.routing import TurnState, route_model_output
from bigtool.agent.state import merge_selected_tool_ids

__all__ = [
    "BigToolAgent",
    "TurnResult",
    "create_agent",
    "TurnState",
    "route_model_output",
    "merge_selected_tool_ids",
]
