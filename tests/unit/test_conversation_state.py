from qa_graph.graph.messages import Message, ToolCall
from qa_graph.graph.state import DEFAULT_SENDER, ConversationState, concat_messages, last_sender


def test_from_question_seeds_single_user_message():
    state = ConversationState.from_question("hi")
    assert [m.role for m in state.messages] == ["user"]
    assert state.sender == DEFAULT_SENDER


def test_append_returns_new_state_and_keeps_previous_intact():
    s0 = ConversationState.from_question("q")
    s1 = s0.append(Message(role="assistant", content="a", name="Rag"))

    assert len(s0.messages) == 1
    assert s0.sender == "user"
    assert len(s1.messages) == 2
    assert s1.sender == "Rag"


def test_tool_messages_do_not_overwrite_sender():
    state = ConversationState.from_question("q").append(
        Message(role="assistant", content="", name="Tavily", tool_calls=[ToolCall(id="c1", name="tavily_search")])
    )
    state = state.append(Message(role="tool", content="Paris", name="tavily_search", tool_call_id="c1"))
    assert state.sender == "Tavily"


def test_merge_is_associative_and_last_sender_wins():
    a = (Message(role="assistant", content="1", name="Coordinator"),)
    b = (Message(role="assistant", content="2", name="Rag"),)
    c = (Message(role="assistant", content="3", name="Tavily"),)
    base = ConversationState.from_question("q")

    left = base.merge(a, sender="Coordinator").merge(b, sender="Rag").merge(c, sender="Tavily")
    right = base.merge(a + b + c, sender="Tavily")

    assert left == right
    assert [m.content for m in left.messages[1:]] == ["1", "2", "3"]


def test_merge_without_sender_keeps_current_sender():
    state = ConversationState(sender="Rag").merge((Message(role="tool", content="x"),))
    assert state.sender == "Rag"


def test_filtered_is_a_derived_copy():
    state = ConversationState.from_question("q").append(Message(role="assistant", content="kb", name="Rag"))
    view = state.filtered(lambda m: m.name != "Rag")

    assert len(view.messages) == 1
    assert len(state.messages) == 2
    assert view.messages is not state.messages
    assert view.sender == state.sender


def test_tool_calls_are_stored_as_tuple():
    msg = Message(role="assistant", content="", tool_calls=[ToolCall(id="c", name="rag_search")])
    assert isinstance(msg.tool_calls, tuple)
    assert msg.calls_tool("rag_search") is True
    assert msg.to_dict()["tool_calls"] == [{"id": "c", "name": "rag_search", "args": {}}]


def test_channel_reducers_follow_merge_rules():
    a = Message(role="user", content="q")
    b = Message(role="assistant", content="kb", name="Rag")

    assert concat_messages([a], [b]) == [a, b]
    assert concat_messages(None, [a]) == [a]
    assert last_sender("Rag", None) == "Rag"
    assert last_sender("Rag", "Tavily") == "Tavily"


def test_channels_round_trip_through_graph_state():
    state = ConversationState.from_question("q").append(Message(role="assistant", content="kb", name="Rag"))

    channels = state.to_channels()

    assert channels["steps"] == 0
    assert ConversationState.from_channels(channels) == state
