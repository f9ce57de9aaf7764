"""
Tool Executor

This module implements the executor that runs concrete tool calls against
the set of tools currently visible to the model. The executor handles tool
lookup, argument validation, execution with a timeout, and error wrapping.

A call naming a tool that is not visible (never retrieved, or unknown)
becomes an error tool result, not an exception, so the model can recover
within the same turn.

Pattern: Command Executor (executes tool calls as commands)
Pattern: Async-first with sync handler support
Pattern: Fail-fast validation with graceful error wrapping
"""

import asyncio
import logging
from typing import Any, Optional

from bigtool.core.exceptions import ToolExecutionError
from bigtool.models.domain import ToolCall, ToolResult
from bigtool.tools.registry import ToolNotFoundError, ToolRegistry

logger = logging.getLogger(__name__)

# Default execution timeout in seconds
DEFAULT_TIMEOUT = 30.0


# =============================================================================
# Exceptions
# =============================================================================


class ToolValidationError(ToolExecutionError):
    """Raised when tool arguments fail validation."""

    def __init__(
        self,
        message: str,
        tool_name: str,
        tool_call_id: Optional[str] = None,
        field: Optional[str] = None,
    ) -> None:
        super().__init__(message, tool_name=tool_name, tool_call_id=tool_call_id)
        self.field = field


# =============================================================================
# ToolExecutor Class
# =============================================================================


class ToolExecutor:
    """
    Executor for running visible tools.

    The executor looks up tools by name, validates arguments against the
    tool's JSON Schema, executes the handler, and wraps results.

    Attributes:
        registry: Visible tools keyed by the name the model calls them by.
        timeout: Maximum execution time in seconds.

    Example:
        >>> executor = ToolExecutor(registry=ToolRegistry([sqrt_tool]))
        >>> result = await executor.execute(
        ...     ToolCall(id="call_1", name="sqrt", arguments={"x": 16})
        ... )
        >>> result.content
        '4.0'
    """

    def __init__(self, registry: ToolRegistry, timeout: float = DEFAULT_TIMEOUT) -> None:
        self.registry = registry
        self.timeout = timeout

    # =========================================================================
    # Execution
    # =========================================================================

    async def execute(self, tool_call: ToolCall) -> ToolResult:
        """
        Execute a tool call and return the result.

        Handler failures and timeouts are returned as error results.

        Args:
            tool_call: The ToolCall containing tool name and arguments.

        Returns:
            ToolResult with execution output or error information.

        Raises:
            ToolExecutionError: If the tool is not visible.
            ToolValidationError: If arguments fail schema validation.
        """
        tool_name = tool_call.name

        try:
            tool = self.registry.get(tool_name)
        except ToolNotFoundError as e:
            raise ToolExecutionError(
                f"Tool not available: {tool_name}",
                tool_name=tool_name,
                tool_call_id=tool_call.id,
            ) from e

        self._validate_arguments(tool_call, tool.parameters)

        try:
            output = await asyncio.wait_for(tool.invoke(tool_call.arguments), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Tool {tool_name} timed out after {self.timeout}s")
            return ToolResult(
                tool_call_id=tool_call.id,
                name=tool_name,
                content=f"Tool execution timeout after {self.timeout}s",
                is_error=True,
            )
        except Exception as e:
            logger.error(f"Tool {tool_name} execution failed: {e}")
            return ToolResult(
                tool_call_id=tool_call.id,
                name=tool_name,
                content=f"Tool execution failed: {e}",
                is_error=True,
            )

        return ToolResult(tool_call_id=tool_call.id, name=tool_name, content=str(output))

    async def execute_batch(self, tool_calls: list[ToolCall]) -> list[ToolResult]:
        """
        Execute multiple tool calls concurrently.

        Results are returned in the same order as input tool_calls.
        Failures in individual tools don't affect other executions.

        Args:
            tool_calls: List of ToolCalls to execute.

        Returns:
            List of ToolResults in same order as input.
        """
        if not tool_calls:
            return []

        async def safe_execute(tool_call: ToolCall) -> ToolResult:
            try:
                return await self.execute(tool_call)
            except ToolExecutionError as e:
                return ToolResult(
                    tool_call_id=tool_call.id,
                    name=tool_call.name,
                    content=f"Tool error: {e}",
                    is_error=True,
                )

        results = await asyncio.gather(*[safe_execute(tc) for tc in tool_calls])
        return list(results)

    # =========================================================================
    # Argument Validation
    # =========================================================================

    def _validate_arguments(self, tool_call: ToolCall, schema: dict[str, Any]) -> None:
        """
        Validate arguments against the tool's JSON Schema.

        Checks that required properties are present and that provided
        properties match their declared type. Extra properties are allowed.

        Raises:
            ToolValidationError: If validation fails.
        """
        arguments = tool_call.arguments
        for prop in schema.get("required", []):
            if prop not in arguments:
                raise ToolValidationError(
                    f"Missing required argument: {prop}",
                    tool_name=tool_call.name,
                    tool_call_id=tool_call.id,
                    field=prop,
                )

        properties = schema.get("properties", {})
        for prop_name, value in arguments.items():
            if prop_name not in properties:
                continue

            expected_type = properties[prop_name].get("type")
            if expected_type and not _check_type(value, expected_type):
                raise ToolValidationError(
                    f"Invalid type for '{prop_name}': expected {expected_type}, "
                    f"got {type(value).__name__}",
                    tool_name=tool_call.name,
                    tool_call_id=tool_call.id,
                    field=prop_name,
                )


def _check_type(value: Any, expected_type: str) -> bool:
    """Check if a value matches a JSON Schema type name."""
    type_map = {
        "string": str,
        "integer": int,
        "number": (int, float),
        "boolean": bool,
        "array": list,
        "object": dict,
    }

    python_type = type_map.get(expected_type)
    if python_type is None:
        return True

    # bool is a subclass of int but not a JSON number
    if expected_type in ("number", "integer") and isinstance(value, bool):
        return False

    return isinstance(value, python_type)
