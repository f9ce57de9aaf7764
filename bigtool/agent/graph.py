"""
Big-Tool Agent

This module implements the agent that lets a chat model work over a large
tool registry. On each model call the model sees only:

    retrieve_tools  +  default tools  +  tools selected so far

A turn is an explicit loop over the selection state machine:

    awaiting_model -> model_responded -> terminal
                                      -> must_retrieve -> awaiting_model
                                      -> must_execute  -> awaiting_model

must_retrieve runs the retrieval function for every retrieve_tools call and
merges the returned ids into the selection; must_execute runs concrete tool
calls against the visible set. The loop is bounded by max_iterations model
calls.

Pattern: Service Layer (orchestrates model, retriever and executor)
Pattern: Dependency Injection (every collaborator is passed in)
"""

from typing import Any, Optional

from pydantic import BaseModel, Field

from bigtool.agent.routing import TurnState, route_model_output
from bigtool.agent.state import merge_selected_tool_ids
from bigtool.core.config import get_settings
from bigtool.core.exceptions import ConfigurationError, MissingDependencyError
from bigtool.models.domain import (
    ConversationState,
    Message,
    RegisteredTool,
    ToolCall,
    ToolDefinition,
)
from bigtool.observability.logging import conversation_context, get_logger
from bigtool.observability.metrics import record_turn_route
from bigtool.providers.base import ChatModel
from bigtool.services.retriever import ToolRetriever
from bigtool.sessions.store import ConversationStore
from bigtool.tools.executor import DEFAULT_TIMEOUT, ToolExecutor
from bigtool.tools.registry import ToolInput, ToolRegistry
from bigtool.tools.retrieve import (
    RETRIEVE_TOOLS_DEFINITION,
    RETRIEVE_TOOLS_NAME,
    RetrieveToolsFunction,
    format_retrieval_result,
    make_default_retrieve_function,
)

logger = get_logger(__name__)


# =============================================================================
# Turn Result
# =============================================================================


class TurnResult(BaseModel):
    """
    Outcome of one agent turn.

    Attributes:
        messages: Messages appended during the turn, in order
        selected_tool_ids: Selection after the turn
        routes: Routing decision taken after each model call
        iteration_limit_reached: True if the turn stopped on max_iterations
    """

    messages: list[Message] = Field(default_factory=list)
    selected_tool_ids: list[str] = Field(default_factory=list)
    routes: list[TurnState] = Field(default_factory=list)
    iteration_limit_reached: bool = False

    @property
    def final_message(self) -> Optional[Message]:
        """Last assistant message of the turn."""
        for message in reversed(self.messages):
            if message.role == "assistant":
                return message
        return None


# =============================================================================
# BigToolAgent
# =============================================================================


class BigToolAgent:
    """
    Agent that discovers tools through semantic retrieval.

    Build instances with create_agent(), which indexes the registry first.

    Example:
        >>> agent = await create_agent(model, tools, retriever=retriever)
        >>> result = await agent.invoke(
        ...     ConversationState(messages=[Message.user("What is sqrt(16)?")])
        ... )
        >>> result.selected_tool_ids
        ['sqrt']
    """

    def __init__(
        self,
        model: ChatModel,
        registry: ToolRegistry,
        default_tools: Optional[ToolRegistry] = None,
        retrieve_function: Optional[RetrieveToolsFunction] = None,
        prompt: Optional[str] = None,
        limit: Optional[int] = None,
        filter: Optional[dict[str, str]] = None,
        max_iterations: Optional[int] = None,
        conversation_store: Optional[ConversationStore] = None,
        tool_timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        if model is None:
            raise ConfigurationError("BigToolAgent requires a chat model", setting="model")

        settings = get_settings()
        self.model = model
        self.registry = registry
        self.default_tools = default_tools or ToolRegistry()
        self.retrieve_function = retrieve_function
        self.prompt = prompt
        self.limit = limit if limit is not None else settings.retrieval_limit
        self.filter = filter
        self.max_iterations = (
            max_iterations if max_iterations is not None else settings.max_turn_iterations
        )
        self.conversation_store = conversation_store
        self.tool_timeout = tool_timeout

        if self.max_iterations < 1:
            raise ConfigurationError("max_iterations must be at least 1", setting="max_iterations")

    # =========================================================================
    # Visibility
    # =========================================================================

    def visible_tools(self, selected_tool_ids: list[str]) -> list[RegisteredTool]:
        """
        Concrete tools the model may call, defaults first.

        A selected tool whose name collides with a default tool (or with the
        retrieval meta-tool) is shadowed and listed once.
        """
        visible: list[RegisteredTool] = []
        names = {RETRIEVE_TOOLS_NAME}
        candidates = [tool for _, tool in self.default_tools.items()]
        candidates += [self.registry.get(i) for i in selected_tool_ids if i in self.registry]
        for tool in candidates:
            if tool.name in names:
                continue
            names.add(tool.name)
            visible.append(tool)
        return visible

    def bound_tools(self, selected_tool_ids: list[str]) -> list[ToolDefinition]:
        """Tool definitions bound to a model call: retrieve_tools, defaults, selected."""
        return [RETRIEVE_TOOLS_DEFINITION] + [
            tool.definition for tool in self.visible_tools(selected_tool_ids)
        ]

    # =========================================================================
    # Turn Loop
    # =========================================================================

    async def invoke(self, state: ConversationState) -> TurnResult:
        """
        Run one turn from awaiting_model until terminal.

        Args:
            state: Conversation messages and current selection

        Returns:
            TurnResult with the appended messages and updated selection

        Raises:
            MissingDependencyError: If the model calls retrieve_tools and the
                agent has no retrieval function
        """
        messages = list(state.messages)
        selected = list(state.selected_tool_ids)
        result = TurnResult(selected_tool_ids=selected)

        iterations = 0
        while True:
            if iterations >= self.max_iterations:
                result.iteration_limit_reached = True
                logger.warning(
                    "turn_iteration_limit_reached",
                    max_iterations=self.max_iterations,
                    selected=len(selected),
                )
                break

            response = await self.model.complete(
                self._with_prompt(messages), self.bound_tools(selected)
            )
            iterations += 1
            messages.append(response)
            result.messages.append(response)

            route = route_model_output(messages)
            result.routes.append(route)
            record_turn_route(route.value)

            if route == TurnState.TERMINAL:
                break
            if route == TurnState.MUST_RETRIEVE:
                tool_messages, retrieved = await self._select_tools(response.tool_calls or [])
                selected = merge_selected_tool_ids(selected, retrieved)
            else:
                tool_messages = await self._execute_tools(response.tool_calls or [], selected)

            messages.extend(tool_messages)
            result.messages.extend(tool_messages)

        result.selected_tool_ids = selected
        logger.info(
            "turn_completed",
            iterations=iterations,
            routes=[route.value for route in result.routes],
            selected=len(selected),
        )
        return result

    async def run(self, conversation_id: str, user_input: str) -> TurnResult:
        """
        Load a conversation, run a turn for the user's input, and save it.

        Raises:
            MissingDependencyError: If the agent has no conversation store
        """
        if self.conversation_store is None:
            raise MissingDependencyError(
                "run() requires a conversation store", dependency="conversation_store"
            )

        with conversation_context(conversation_id):
            state = await self.conversation_store.get(conversation_id) or ConversationState()
            messages = state.messages + [Message.user(user_input)]
            result = await self.invoke(
                ConversationState(messages=messages, selected_tool_ids=state.selected_tool_ids)
            )
            await self.conversation_store.save(
                conversation_id,
                ConversationState(
                    messages=messages + result.messages,
                    selected_tool_ids=result.selected_tool_ids,
                ),
            )
            return result

    def _with_prompt(self, messages: list[Message]) -> list[Message]:
        if not self.prompt or not messages or messages[0].role == "system":
            return list(messages)
        return [Message.system(self.prompt)] + list(messages)

    # =========================================================================
    # must_retrieve
    # =========================================================================

    async def _select_tools(self, tool_calls: list[ToolCall]) -> tuple[list[Message], list[str]]:
        """Answer every call of a retrieval step; returns (tool messages, retrieved ids)."""
        if self.retrieve_function is None:
            raise MissingDependencyError(
                "retrieve_tools was called but the agent has no retriever or retrieval function",
                dependency="retrieve_function",
            )

        tool_messages: list[Message] = []
        retrieved: list[str] = []
        for call in tool_calls:
            if call.name != RETRIEVE_TOOLS_NAME:
                tool_messages.append(
                    Message.tool(
                        f"Tool call '{call.name}' was not executed because it was "
                        f"requested together with {RETRIEVE_TOOLS_NAME}. Call it again.",
                        tool_call_id=call.id,
                        name=call.name,
                    )
                )
                continue

            query = _query_argument(call.arguments)
            ids = await self.retrieve_function(query, self.limit, self.filter)
            ids = merge_selected_tool_ids([], [i for i in ids if i in self.registry])
            retrieved.extend(ids)
            logger.info("tools_retrieved", query=query, tool_ids=ids)

            tool_messages.append(
                Message.tool(
                    format_retrieval_result(ids, self.registry),
                    tool_call_id=call.id,
                    name=RETRIEVE_TOOLS_NAME,
                )
            )
        return tool_messages, retrieved

    # =========================================================================
    # must_execute
    # =========================================================================

    async def _execute_tools(
        self, tool_calls: list[ToolCall], selected_tool_ids: list[str]
    ) -> list[Message]:
        executor = ToolExecutor(
            registry=ToolRegistry(self.visible_tools(selected_tool_ids)),
            timeout=self.tool_timeout,
        )
        results = await executor.execute_batch(tool_calls)
        return [result.to_message() for result in results]


def _query_argument(arguments: dict[str, Any]) -> str:
    query = arguments.get("query", "")
    return query if isinstance(query, str) else str(query)


# =============================================================================
# Factory
# =============================================================================


async def create_agent(
    model: ChatModel,
    tools: ToolInput,
    default_tools: Optional[ToolInput] = None,
    retriever: Optional[ToolRetriever] = None,
    retrieve_function: Optional[RetrieveToolsFunction] = None,
    prompt: Optional[str] = None,
    limit: Optional[int] = None,
    filter: Optional[dict[str, str]] = None,
    max_iterations: Optional[int] = None,
    conversation_store: Optional[ConversationStore] = None,
    tool_timeout: float = DEFAULT_TIMEOUT,
) -> BigToolAgent:
    """
    Build an agent and index its registry.

    Args:
        model: Chat model to drive
        tools: Registry tools (list keyed by name, or mapping of id -> tool)
        default_tools: Tools always visible; never indexed or retrieved
        retriever: Retriever used to index the registry and back retrieve_tools
        retrieve_function: Custom retrieval function; replaces the
            retriever-backed default
        prompt: System prompt prepended unless the history starts with one
        limit: Tools returned per retrieval (default: retriever limit)
        filter: Metadata filter passed to every retrieval
        max_iterations: Bound on model calls per turn
        conversation_store: Persistence used by run()
        tool_timeout: Per-tool execution timeout in seconds

    Returns:
        A ready BigToolAgent

    Raises:
        IndexingError: If indexing the registry fails; no agent is built
        ConfigurationError: If a collaborator is missing or invalid
    """
    registry = ToolRegistry.from_input(tools)
    defaults = ToolRegistry.from_input(default_tools) if default_tools is not None else None

    if retriever is not None:
        await retriever.index(registry)
        if retrieve_function is None:
            retrieve_function = make_default_retrieve_function(retriever)
        if limit is None:
            limit = retriever.limit

    return BigToolAgent(
        model=model,
        registry=registry,
        default_tools=defaults,
        retrieve_function=retrieve_function,
        prompt=prompt,
        limit=limit,
        filter=filter,
        max_iterations=max_iterations,
        conversation_store=conversation_store,
        tool_timeout=tool_timeout,
    )
