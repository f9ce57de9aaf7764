"""
Domain Models

This module contains the domain models shared by the indexing pipeline, the
retriever and the agent: tool definitions and handlers, the descriptors that
get embedded, cache and index entries, conversation messages and state.

Pattern: Domain models as value objects (frozen where identity is data)
Pattern: Pydantic for validation at serialization boundaries

Note: ToolDefinition describes a tool to the chat model (name, description,
JSON Schema). ToolDescriptor is the id/name/description triple that the
embedding cache and the vector index work on.
"""

import asyncio
import inspect
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Literal, Optional

from pydantic import BaseModel, Field, computed_field


# =============================================================================
# Tool Definitions
# =============================================================================


class ToolDefinition(BaseModel):
    """
    Tool definition schema exposed to the chat model.

    This is the metadata describing a tool - its name, what it does,
    and the JSON Schema for its parameters. It does not include the
    handler callable; see RegisteredTool for that.

    Attributes:
        name: Tool name as the model sees it.
        description: Human-readable description of what the tool does.
        parameters: JSON Schema defining the tool's input parameters.

    Example:
        >>> tool = ToolDefinition(
        ...     name="sqrt",
        ...     description="Calculate the square root of a number",
        ...     parameters={
        ...         "type": "object",
        ...         "properties": {"x": {"type": "number"}},
        ...         "required": ["x"],
        ...     },
        ... )
    """

    name: str = Field(..., min_length=1, description="Tool name")
    description: str = Field(default="", description="Human-readable description")
    parameters: dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}},
        description="JSON Schema for input parameters",
    )

    model_config = {"frozen": True}


class RegisteredTool(BaseModel):
    """
    A tool with its definition and handler callable.

    The handler can be sync or async and receives the parsed arguments
    as a dict.

    Attributes:
        definition: The tool's metadata (name, description, parameters).
        handler: Callable that executes the tool.
        metadata: Filterable attributes copied into the index entry.

    Example:
        >>> async def sqrt_handler(args: dict) -> float:
        ...     return args["x"] ** 0.5
        ...
        >>> tool = RegisteredTool(
        ...     definition=ToolDefinition(name="sqrt", description="Square root"),
        ...     handler=sqrt_handler,
        ... )
    """

    definition: ToolDefinition
    handler: Callable[..., Any] = Field(..., description="Tool execution callable")
    metadata: dict[str, str] = Field(default_factory=dict)

    model_config = {"arbitrary_types_allowed": True}

    @property
    def name(self) -> str:
        """Get tool name from definition."""
        return self.definition.name

    @property
    def description(self) -> str:
        """Get tool description from definition."""
        return self.definition.description

    @property
    def parameters(self) -> dict[str, Any]:
        """Get tool parameters from definition."""
        return self.definition.parameters

    async def invoke(self, arguments: dict[str, Any]) -> Any:
        """
        Run the handler with the given arguments.

        Sync handlers run in the default executor so they never block
        the event loop.

        Args:
            arguments: Parsed tool arguments.

        Returns:
            The handler's return value.
        """
        if inspect.iscoroutinefunction(self.handler):
            return await self.handler(arguments)
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.handler, arguments)


# =============================================================================
# Indexing Models
# =============================================================================


class ToolDescriptor(BaseModel):
    """
    The embeddable description of a registry tool.

    Immutable for the duration of an indexing pass. The description is
    never None; an absent description is the empty string.

    Attributes:
        id: Registry key, unique within a registry.
        display_name: Name shown to the model.
        description: Free text describing the tool.
        metadata: Filterable attributes (not part of the canonical document).
    """

    id: str = Field(..., min_length=1)
    display_name: str
    description: str = ""
    metadata: dict[str, str] = Field(default_factory=dict)

    model_config = {"frozen": True}


class CacheEntry(BaseModel):
    """
    A cached embedding keyed by tool id and validated by fingerprint.

    Treated as absent once the current time passes cached_at + ttl_seconds,
    even if the backing store has not evicted it yet.
    """

    tool_id: str
    display_name: str
    description: str = ""
    fingerprint: str
    embedding: list[float]
    cached_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    ttl_seconds: int = Field(..., ge=1)

    @property
    def dimensions(self) -> int:
        """Length of the cached vector."""
        return len(self.embedding)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """
        Check whether the entry is past its retention window.

        Args:
            now: Reference time (defaults to the current UTC time).

        Returns:
            True if now > cached_at + ttl_seconds.
        """
        now = now or datetime.now(timezone.utc)
        return now > self.cached_at + timedelta(seconds=self.ttl_seconds)


class BatchPutResult(BaseModel):
    """Outcome of a pipelined batch write."""

    written: list[str] = Field(default_factory=list)
    failed: dict[str, str] = Field(
        default_factory=dict, description="tool_id -> error message"
    )

    @property
    def ok(self) -> bool:
        return not self.failed


class CacheStats(BaseModel):
    """Entry count and age range of the cached tool embeddings."""

    count: int = 0
    oldest_age_seconds: Optional[float] = None
    newest_age_seconds: Optional[float] = None


class IndexEntry(BaseModel):
    """A tool as held by the vector index, alongside its vector."""

    tool_id: str
    display_name: str
    description: str = ""
    metadata: dict[str, str] = Field(default_factory=dict)

    model_config = {"frozen": True}

    def matches(self, filter: Optional[dict[str, str]]) -> bool:
        """True when every filter key/value is present in the metadata."""
        if not filter:
            return True
        return all(self.metadata.get(key) == value for key, value in filter.items())


class SearchHit(BaseModel):
    """An index entry with its similarity score."""

    entry: IndexEntry
    score: float


class IndexStats(BaseModel):
    """Entry count and indexing time range of a durable vector index."""

    total: int = 0
    oldest_indexed_at: Optional[datetime] = None
    newest_indexed_at: Optional[datetime] = None


class IndexReport(BaseModel):
    """
    Summary of an indexing pass.

    Attributes:
        total: Number of tools in the registry.
        hit_count: Tools whose cached embedding was reused.
        miss_count: Tools that had to be embedded.
        elapsed_seconds: Wall-clock duration of the pass.
    """

    total: int = 0
    hit_count: int = 0
    miss_count: int = 0
    elapsed_seconds: float = 0.0

    @computed_field
    @property
    def hit_rate(self) -> float:
        """Share of tools served from the cache (0.0 for an empty pass)."""
        if self.total == 0:
            return 0.0
        return self.hit_count / self.total

    @classmethod
    def empty(cls) -> "IndexReport":
        return cls()


# =============================================================================
# Conversation Models
# =============================================================================


class ToolCall(BaseModel):
    """
    A request from the model to execute a specific tool with arguments.

    Attributes:
        id: Unique identifier for this tool call.
        name: Name of the tool to execute.
        arguments: Arguments to pass to the tool handler.
    """

    id: str = Field(..., description="Unique tool call identifier")
    name: str = Field(..., description="Name of tool to execute")
    arguments: dict[str, Any] = Field(
        default_factory=dict, description="Arguments for tool"
    )


class Message(BaseModel):
    """
    A message in a conversation.

    Attributes:
        role: The role of the message sender (system, user, assistant, tool).
        content: The text content of the message (can be None for tool_calls).
        tool_calls: Tool calls requested by the assistant.
        tool_call_id: For tool messages, the call this message answers.
        name: For tool messages, the name of the tool that produced it.

    Example:
        >>> msg = Message(role="user", content="What is the square root of 16?")
        >>> call = Message(
        ...     role="assistant",
        ...     tool_calls=[ToolCall(id="c1", name="retrieve_tools",
        ...                          arguments={"query": "square root"})],
        ... )
    """

    role: Literal["system", "user", "assistant", "tool"]
    content: Optional[str] = None
    tool_calls: Optional[list[ToolCall]] = None
    tool_call_id: Optional[str] = None
    name: Optional[str] = None

    @classmethod
    def system(cls, content: str) -> "Message":
        return cls(role="system", content=content)

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(role="user", content=content)

    @classmethod
    def assistant(
        cls, content: Optional[str] = None, tool_calls: Optional[list[ToolCall]] = None
    ) -> "Message":
        return cls(role="assistant", content=content, tool_calls=tool_calls)

    @classmethod
    def tool(cls, content: str, tool_call_id: str, name: Optional[str] = None) -> "Message":
        return cls(role="tool", content=content, tool_call_id=tool_call_id, name=name)


class ToolResult(BaseModel):
    """
    Result of executing a tool.

    Attributes:
        tool_call_id: ID of the ToolCall this result responds to.
        name: Name of the tool that was called.
        content: The tool's output (string).
        is_error: Whether the result represents an error.
    """

    tool_call_id: str = Field(..., description="ID of originating tool call")
    name: Optional[str] = None
    content: str = Field(..., description="Tool output content")
    is_error: bool = Field(default=False, description="Whether result is an error")

    def to_message(self) -> Message:
        """Convert to a tool message for the conversation history."""
        return Message.tool(self.content, tool_call_id=self.tool_call_id, name=self.name)


class ConversationState(BaseModel):
    """
    Per-conversation state carried across turns.

    Attributes:
        messages: Conversation history.
        selected_tool_ids: Registry ids unlocked so far; ordered and unique.
        updated_at: Last time the state was saved.
    """

    messages: list[Message] = Field(default_factory=list)
    selected_tool_ids: list[str] = Field(default_factory=list)
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
