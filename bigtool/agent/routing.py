"""
Turn Routing

This module classifies the latest message of a conversation into the next
state of the turn state machine.

States:
    awaiting_model   -> a model call is pending
    model_responded  -> the model answered; route_model_output decides next
    must_retrieve    -> run the retrieval meta-tool, then back to awaiting_model
    must_execute     -> run concrete tool calls, then back to awaiting_model
    terminal         -> the turn is over

Pattern: Explicit state machine with a pure routing function
"""

from enum import Enum
from typing import Sequence

from bigtool.models.domain import Message
from bigtool.tools.retrieve import RETRIEVE_TOOLS_NAME


class TurnState(str, Enum):
    """States of a single agent turn."""

    AWAITING_MODEL = "awaiting_model"
    MODEL_RESPONDED = "model_responded"
    MUST_RETRIEVE = "must_retrieve"
    MUST_EXECUTE = "must_execute"
    TERMINAL = "terminal"


def route_model_output(
    messages: Sequence[Message],
    retrieve_tool_name: str = RETRIEVE_TOOLS_NAME,
) -> TurnState:
    """
    Decide what follows the latest message.

    Rules, first match wins:
    1. no messages, or the last one is not from the assistant -> TERMINAL
    2. the assistant requested no tool calls -> TERMINAL
    3. any call names the retrieval meta-tool exactly -> MUST_RETRIEVE
    4. otherwise -> MUST_EXECUTE

    Args:
        messages: Conversation history
        retrieve_tool_name: Name of the retrieval meta-tool

    Returns:
        The next TurnState
    """
    if not messages:
        return TurnState.TERMINAL

    last = messages[-1]
    if last.role != "assistant":
        return TurnState.TERMINAL
    if not last.tool_calls:
        return TurnState.TERMINAL
    if any(call.name == retrieve_tool_name for call in last.tool_calls):
        return TurnState.MUST_RETRIEVE
    return TurnState.MUST_EXECUTE
