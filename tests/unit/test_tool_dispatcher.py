import json

import pytest

from qa_graph.errors import ToolExecutionError, UnknownToolError
from qa_graph.graph.messages import Message, ToolCall
from qa_graph.graph.state import ConversationState
from qa_graph.tools.dispatcher import ToolDispatcher, serialize_tool_result
from qa_graph.tools.registry import ToolRegistry, ToolSpec


def _state(*calls: ToolCall) -> ConversationState:
    return ConversationState.from_question("q").append(
        Message(role="assistant", content="", name="Rag", tool_calls=calls)
    )


@pytest.mark.asyncio
async def test_dispatcher_produces_one_tool_message_per_call_in_order(registry, tool_calls_seen):
    dispatcher = ToolDispatcher(registry)
    state = _state(
        ToolCall(id="c-1", name="rag_search", arguments={"query": "france"}),
        ToolCall(id="c-2", name="tavily_search", arguments={"query": "france"}),
    )

    messages = await dispatcher.invoke(state)

    assert [m.tool_call_id for m in messages] == ["c-1", "c-2"]
    assert [m.name for m in messages] == ["rag_search", "tavily_search"]
    assert all(m.role == "tool" for m in messages)
    assert json.loads(messages[0].content)["results"] == []
    assert messages[1].content == "Paris"
    assert sorted(tool_calls_seen) == ["rag_search:france", "tavily_search:france"]


@pytest.mark.asyncio
async def test_unknown_tool_fails_before_any_tool_runs(registry, tool_calls_seen):
    dispatcher = ToolDispatcher(registry)
    state = _state(
        ToolCall(id="c-1", name="rag_search", arguments={"query": "x"}),
        ToolCall(id="c-2", name="weather", arguments={}),
    )

    with pytest.raises(UnknownToolError) as excinfo:
        await dispatcher.invoke(state, trace_id="t-1")

    assert excinfo.value.tool_name == "weather"
    assert excinfo.value.trace_id == "t-1"
    assert tool_calls_seen == []


@pytest.mark.asyncio
async def test_failing_tool_raises_tool_execution_error():
    def boom(args):
        raise RuntimeError("index unavailable")

    dispatcher = ToolDispatcher(ToolRegistry([ToolSpec(name="rag_search", description="kb", handler=boom)]))

    with pytest.raises(ToolExecutionError) as excinfo:
        await dispatcher.invoke(_state(ToolCall(id="c-9", name="rag_search", arguments={"query": "q"})))

    assert excinfo.value.tool_name == "rag_search"
    assert excinfo.value.call_id == "c-9"
    assert excinfo.value.error_code == "tool_error"
    assert "index unavailable" in str(excinfo.value)


@pytest.mark.asyncio
async def test_no_pending_calls_yields_nothing(registry):
    state = ConversationState.from_question("q")
    assert await ToolDispatcher(registry).invoke(state) == []


def test_serialize_tool_result():
    assert serialize_tool_result("Paris") == "Paris"
    assert serialize_tool_result({"city": "Paris", "note": "été"}) == '{"city": "Paris", "note": "été"}'
