"""
Tools Package - Tool Registry, Execution and Retrieval

This package provides the tool registry, the executor for running tool
calls, and the retrieval meta-tool.
"""

from bigtool.tools.executor import ToolExecutor, ToolValidationError
from bigtool.tools.registry import (
    DuplicateToolError,
    ToolInput,
    ToolNotFoundError,
    ToolRegistry,
)
from bigtool.tools.retrieve import (
    RETRIEVE_TOOLS_DEFINITION,
    RETRIEVE_TOOLS_NAME,
    RetrieveToolsFunction,
    format_retrieval_result,
    make_default_retrieve_function,
)

__all__ = [
    "ToolRegistry",
    "ToolInput",
    "ToolNotFoundError",
    "DuplicateToolError",
    "ToolExecutor",
    "ToolValidationError",
    "RETRIEVE_TOOLS_NAME",
    "RETRIEVE_TOOLS_DEFINITION",
    "RetrieveToolsFunction",
    "format_retrieval_result",
    "make_default_retrieve_function",
]
