"""
Tests for turn routing.
"""

from bigtool.agent.routing import TurnState, route_model_output
from bigtool.models.domain import Message, ToolCall


def call(name, call_id="c1", **arguments):
    return ToolCall(id=call_id, name=name, arguments=arguments)


class TestRouteModelOutput:
    def test_no_messages_is_terminal(self):
        assert route_model_output([]) == TurnState.TERMINAL

    def test_non_assistant_last_message_is_terminal(self):
        assert route_model_output([Message.user("hi")]) == TurnState.TERMINAL

    def test_tool_message_last_is_terminal(self):
        messages = [Message.tool("4.0", tool_call_id="c1", name="sqrt")]
        assert route_model_output(messages) == TurnState.TERMINAL

    def test_plain_answer_is_terminal(self):
        assert route_model_output([Message.assistant("The answer is 4.")]) == TurnState.TERMINAL

    def test_empty_tool_call_list_is_terminal(self):
        assert route_model_output([Message.assistant("done", tool_calls=[])]) == TurnState.TERMINAL

    def test_retrieve_call_routes_to_retrieval(self):
        message = Message.assistant(tool_calls=[call("retrieve_tools", query="square root")])
        assert route_model_output([message]) == TurnState.MUST_RETRIEVE

    def test_concrete_call_routes_to_execution(self):
        message = Message.assistant(tool_calls=[call("sqrt", x=16)])
        assert route_model_output([message]) == TurnState.MUST_EXECUTE

    def test_mixed_calls_route_to_retrieval(self):
        """A retrieval request anywhere in the step takes precedence."""
        message = Message.assistant(
            tool_calls=[call("sqrt", "c1", x=16), call("retrieve_tools", "c2", query="add")]
        )
        assert route_model_output([message]) == TurnState.MUST_RETRIEVE

    def test_name_must_match_exactly(self):
        message = Message.assistant(tool_calls=[call("Retrieve_Tools", query="add")])
        assert route_model_output([message]) == TurnState.MUST_EXECUTE

    def test_custom_retrieve_tool_name(self):
        message = Message.assistant(tool_calls=[call("find_tools", query="add")])
        assert route_model_output([message], retrieve_tool_name="find_tools") == TurnState.MUST_RETRIEVE

    def test_only_last_message_matters(self):
        messages = [
            Message.assistant(tool_calls=[call("retrieve_tools", query="add")]),
            Message.tool("Found 1 relevant tools:\n- add: Add", tool_call_id="c1"),
            Message.assistant("3"),
        ]
        assert route_model_output(messages) == TurnState.TERMINAL

    def test_states_are_strings(self):
        assert TurnState.MUST_RETRIEVE.value == "must_retrieve"
        assert TurnState.TERMINAL == "terminal"
