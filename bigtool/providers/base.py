"""
Chat Model Interface

This module defines the abstract base class for the chat model an agent
drives. The model receives the conversation plus the tool definitions it may
call on this step, and returns one assistant message that either answers or
requests tool calls.

Design Pattern:
- Ports and Adapters (Hexagonal Architecture)
- ChatModel serves as the "port"; vendor SDK wrappers are the "adapters"
"""

from abc import ABC, abstractmethod

from bigtool.models.domain import Message, ToolDefinition


class ChatModel(ABC):
    """
    Abstract base class for tool-calling chat models.

    Example:
        >>> class MyModel(ChatModel):
        ...     async def complete(self, messages, tools):
        ...         return Message.assistant("Hello")
    """

    @abstractmethod
    async def complete(
        self, messages: list[Message], tools: list[ToolDefinition]
    ) -> Message:
        """
        Generate the next assistant message.

        Args:
            messages: Conversation so far (system prompt included if any)
            tools: Tool definitions bound for this call, in visibility order

        Returns:
            An assistant Message, possibly carrying tool_calls

        Raises:
            Exception: Whatever the underlying model client raises; the
                agent does not absorb model failures
        """
        ...
