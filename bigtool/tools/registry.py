"""
Tool Registry

This module implements the registry that maps tool ids to registered tools.
An agent builds its registry once, at construction, and only reads it
afterwards; independent agents may share one registry.

Pattern: Service Registry (tool inventory keyed by id)

A registry is built from either:
1. A list of RegisteredTool instances, keyed by tool name
2. A mapping of id -> RegisteredTool, keeping the mapping's keys as ids
"""

import logging
from typing import Iterator, Mapping, Sequence, Union

from bigtool.indexing.document import describe
from bigtool.models.domain import RegisteredTool, ToolDefinition, ToolDescriptor

logger = logging.getLogger(__name__)

ToolInput = Union[Sequence[RegisteredTool], Mapping[str, RegisteredTool]]


# =============================================================================
# Exceptions
# =============================================================================


class ToolNotFoundError(KeyError):
    """Raised when a requested tool is not found in the registry."""

    def __init__(self, tool_id: str) -> None:
        self.tool_id = tool_id
        super().__init__(f"Tool not found: {tool_id}")

    def __str__(self) -> str:
        return self.args[0]


class DuplicateToolError(ValueError):
    """Raised when a list of tools contains the same name twice."""

    def __init__(self, tool_id: str) -> None:
        self.tool_id = tool_id
        super().__init__(f"Duplicate tool id: {tool_id}")


# =============================================================================
# ToolRegistry Class
# =============================================================================


class ToolRegistry:
    """
    Registry of the tools an agent can retrieve and execute.

    Attributes:
        _tools: Dictionary mapping tool ids to RegisteredTool instances,
            in registration order.

    Example:
        >>> registry = ToolRegistry([sqrt_tool, add_tool])
        >>> registry.get("sqrt").name
        'sqrt'
        >>> registry = ToolRegistry({"math.sqrt": sqrt_tool})
        >>> registry.has("math.sqrt")
        True
    """

    def __init__(self, tools: ToolInput = ()) -> None:
        """
        Build the registry.

        Args:
            tools: List of tools (keyed by name) or mapping of id -> tool.

        Raises:
            DuplicateToolError: If a list holds two tools with the same name.
        """
        self._tools: dict[str, RegisteredTool] = {}

        if isinstance(tools, Mapping):
            for tool_id, tool in tools.items():
                self._register(tool_id, tool)
        else:
            for tool in tools:
                if tool.name in self._tools:
                    raise DuplicateToolError(tool.name)
                self._register(tool.name, tool)

        logger.debug(f"Built tool registry with {len(self._tools)} tools")

    @classmethod
    def from_input(cls, tools: Union["ToolRegistry", ToolInput]) -> "ToolRegistry":
        """Return tools unchanged if already a registry, else build one."""
        if isinstance(tools, ToolRegistry):
            return tools
        return cls(tools)

    def _register(self, tool_id: str, tool: RegisteredTool) -> None:
        if not tool_id:
            raise ValueError("Tool id must not be empty")
        self._tools[tool_id] = tool

    # =========================================================================
    # Lookup
    # =========================================================================

    def get(self, tool_id: str) -> RegisteredTool:
        """
        Get a registered tool by id.

        Raises:
            ToolNotFoundError: If the tool is not registered.
        """
        if tool_id not in self._tools:
            raise ToolNotFoundError(tool_id)
        return self._tools[tool_id]

    def has(self, tool_id: str) -> bool:
        return tool_id in self._tools

    def ids(self) -> list[str]:
        return list(self._tools)

    def items(self) -> list[tuple[str, RegisteredTool]]:
        return list(self._tools.items())

    def descriptors(self) -> list[ToolDescriptor]:
        """Descriptors of every tool, in registration order, for indexing."""
        return [describe(tool_id, tool) for tool_id, tool in self._tools.items()]

    def list(self) -> list[ToolDefinition]:
        """
        List all registered tool definitions.

        Returns definitions for all registered tools, suitable for
        passing to the chat model as available tools.
        """
        return [tool.definition for tool in self._tools.values()]

    def __contains__(self, tool_id: object) -> bool:
        return tool_id in self._tools

    def __iter__(self) -> Iterator[str]:
        return iter(self._tools)

    def __len__(self) -> int:
        return len(self._tools)
