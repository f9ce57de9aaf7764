"""
Retrieval Meta-Tool

This module defines the `retrieve_tools` meta-tool the model calls to
discover registry tools, the signature of retrieval functions, and the
default retrieval function backed by a ToolRetriever.

The meta-tool's output lists each retrieved tool as "- name: description";
its name and single `query` input are part of the model-facing contract.
"""

from typing import Awaitable, Callable, Optional

from bigtool.models.domain import ToolDefinition
from bigtool.services.retriever import ToolRetriever
from bigtool.tools.registry import ToolRegistry

RETRIEVE_TOOLS_NAME = "retrieve_tools"

RETRIEVE_TOOLS_DEFINITION = ToolDefinition(
    name=RETRIEVE_TOOLS_NAME,
    description=(
        "Retrieve tools based on a query. "
        "Use this to search for and discover available tools."
    ),
    parameters={
        "type": "object",
        "properties": {
            "query": {
                "type": "string",
                "description": "Query to search for relevant tools",
            }
        },
        "required": ["query"],
    },
)

NO_TOOLS_FOUND = "No relevant tools found for your query."

RetrieveToolsFunction = Callable[
    [str, int, Optional[dict[str, str]]], Awaitable[list[str]]
]
"""async (query, limit, filter) -> tool ids"""


def format_tool_descriptions(tool_ids: list[str], registry: ToolRegistry) -> str:
    """One "- name: description" line per id present in the registry."""
    lines = []
    for tool_id in tool_ids:
        if tool_id not in registry:
            continue
        tool = registry.get(tool_id)
        lines.append(f"- {tool.name}: {tool.description}")
    return "\n".join(lines)


def format_retrieval_result(tool_ids: list[str], registry: ToolRegistry) -> str:
    """
    Render the meta-tool's response for a list of retrieved ids.

    Args:
        tool_ids: Retrieved ids (already restricted to the registry)
        registry: Registry to describe them from

    Returns:
        "Found N relevant tools:\\n- ..." or the no-results message
    """
    descriptions = format_tool_descriptions(tool_ids, registry)
    if not descriptions:
        return NO_TOOLS_FOUND
    return f"Found {len(tool_ids)} relevant tools:\n{descriptions}"


def make_default_retrieve_function(retriever: ToolRetriever) -> RetrieveToolsFunction:
    """Build a retrieval function that delegates to retriever.search()."""

    async def retrieve(
        query: str, limit: int, filter: Optional[dict[str, str]] = None
    ) -> list[str]:
        return await retriever.search(query, limit=limit, filter=filter)

    return retrieve
