"""Models Package.

This package contains the pydantic domain models shared by the indexing
pipeline, the retriever and the agent.
"""

from bigtool.models.domain import (
    BatchPutResult,
    CacheEntry,
    CacheStats,
    ConversationState,
    IndexEntry,
    IndexReport,
    IndexStats,
    Message,
    RegisteredTool,
    SearchHit,
    ToolCall,
    ToolDefinition,
    ToolDescriptor,
    ToolResult,
)

__all__ = [
    # Tools
    "ToolDefinition",
    "RegisteredTool",
    "ToolCall",
    "ToolResult",
    # Indexing
    "ToolDescriptor",
    "CacheEntry",
    "CacheStats",
    "BatchPutResult",
    "IndexEntry",
    "SearchHit",
    "IndexReport",
    "IndexStats",
    # Conversation
    "Message",
    "ConversationState",
]
