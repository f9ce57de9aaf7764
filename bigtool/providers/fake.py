"""
Fake Chat Model - Test Double Implementation

This module provides a FakeChatModel that implements the ChatModel interface
without making network calls. It replays a scripted list of assistant
messages and records what it was shown on every call.

This is NOT mocking - it's a proper implementation of the interface for testing.
It can also be used for local development and demos without API keys.
"""

from typing import Optional

from bigtool.models.domain import Message, ToolDefinition
from bigtool.providers.base import ChatModel


class FakeChatModel(ChatModel):
    """
    Scripted chat model for tests and local development.

    Attributes:
        responses: Assistant messages returned in order
        calls: Messages passed on each call
        bound_tools: Tool names bound on each call
        error_on_complete: Exception to raise on complete() (for error testing)

    Example:
        >>> model = FakeChatModel([
        ...     Message.assistant(tool_calls=[ToolCall(
        ...         id="c1", name="retrieve_tools", arguments={"query": "square root"})]),
        ...     Message.assistant("The answer is 4."),
        ... ])
    """

    def __init__(
        self,
        responses: Optional[list[Message]] = None,
        default_content: str = "Fake response for testing",
        error_on_complete: Optional[Exception] = None,
    ) -> None:
        self.responses = list(responses or [])
        self.default_content = default_content
        self.error_on_complete = error_on_complete

        # Track calls for test assertions
        self.calls: list[list[Message]] = []
        self.bound_tools: list[list[str]] = []

    async def complete(
        self, messages: list[Message], tools: list[ToolDefinition]
    ) -> Message:
        self.calls.append(list(messages))
        self.bound_tools.append([tool.name for tool in tools])

        if self.error_on_complete is not None:
            raise self.error_on_complete

        if self.responses:
            return self.responses.pop(0)
        return Message.assistant(self.default_content)
