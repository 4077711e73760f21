import pytest
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage, ToolMessage

from qa_graph.graph.messages import Message, ToolCall
from qa_graph.llm.circuit_breaker import CircuitBreaker
from qa_graph.llm.client import ChatModelClient
from qa_graph.llm.errors import LLMInvalidRequest, LLMMalformedResponse, LLMTimeout, LLMUnavailable
from qa_graph.llm.retry import RetryPolicy
from qa_graph.tools.registry import ToolSpec
from tests.fakes import QUERY_SCHEMA

NO_WAIT = RetryPolicy(max_attempts=3, base_delay_s=0.0, max_delay_s=0.0)


class FakeChatModel:
    def __init__(self, responses):
        self.responses = list(responses)
        self.bound_tools = None
        self.seen = []

    def bind_tools(self, tools):
        self.bound_tools = [t.name for t in tools]
        return self

    async def ainvoke(self, messages):
        self.seen.append(list(messages))
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


def _client(fake, **kwargs):
    kwargs.setdefault("retry_policy", NO_WAIT)
    return ChatModelClient(chat_model_factory=lambda: fake, **kwargs)


@pytest.mark.asyncio
async def test_complete_maps_tool_calls_and_binds_tools():
    fake = FakeChatModel(
        [AIMessage(content="", tool_calls=[{"id": "call-1", "name": "rag_search", "args": {"query": "paris"}}])]
    )
    client = _client(fake)
    tool = ToolSpec(name="rag_search", description="kb", schema=QUERY_SCHEMA)

    message = await client.complete(
        [Message(role="user", content="capital of France?")],
        tools=[tool],
        system_instruction="be brief",
        agent_name="Rag",
    )

    assert fake.bound_tools == ["rag_search"]
    assert message.role == "assistant"
    assert message.name == "Rag"
    assert message.tool_calls == (ToolCall(id="call-1", name="rag_search", arguments={"query": "paris"}),)

    sent = fake.seen[0]
    assert isinstance(sent[0], SystemMessage)
    assert sent[0].content == "be brief"
    assert isinstance(sent[1], HumanMessage)


@pytest.mark.asyncio
async def test_complete_without_tools_does_not_bind():
    fake = FakeChatModel([AIMessage(content=[{"type": "text", "text": "Paris. "}, {"type": "text", "text": "FINAL ANSWER"}])])
    client = _client(fake)

    message = await client.complete([Message(role="user", content="q")], tools=[], system_instruction="s")

    assert fake.bound_tools is None
    assert message.content == "Paris. FINAL ANSWER"
    assert message.tool_calls == ()


@pytest.mark.asyncio
async def test_complete_converts_history_with_tool_messages():
    fake = FakeChatModel([AIMessage(content="done")])
    client = _client(fake)
    history = [
        Message(role="user", content="q"),
        Message(
            role="assistant",
            content="",
            name="Rag",
            tool_calls=(ToolCall(id="c-1", name="rag_search", arguments={"query": "q"}),),
        ),
        Message(role="tool", content="{}", name="rag_search", tool_call_id="c-1"),
    ]

    await client.complete(history, tools=[], system_instruction="s")

    sent = fake.seen[0]
    assert isinstance(sent[2], AIMessage)
    assert sent[2].tool_calls[0]["id"] == "c-1"
    assert isinstance(sent[3], ToolMessage)
    assert sent[3].tool_call_id == "c-1"


@pytest.mark.asyncio
async def test_complete_retries_retryable_errors():
    fake = FakeChatModel([RuntimeError("request timed out"), AIMessage(content="ok")])
    client = _client(fake)

    message = await client.complete([Message(role="user", content="q")], tools=[], system_instruction="s")

    assert message.content == "ok"
    assert len(fake.seen) == 2


@pytest.mark.asyncio
async def test_complete_gives_up_after_policy():
    fake = FakeChatModel([RuntimeError("timed out")] * 2)
    client = _client(fake, retry_policy=RetryPolicy(max_attempts=2, base_delay_s=0.0, max_delay_s=0.0))

    with pytest.raises(LLMTimeout):
        await client.complete([Message(role="user", content="q")], tools=[], system_instruction="s")


@pytest.mark.asyncio
async def test_complete_does_not_retry_invalid_request():
    fake = FakeChatModel([LLMInvalidRequest("bad schema"), AIMessage(content="never")])
    client = _client(fake)

    with pytest.raises(LLMInvalidRequest):
        await client.complete([Message(role="user", content="q")], tools=[], system_instruction="s")
    assert len(fake.seen) == 1


@pytest.mark.asyncio
async def test_open_breaker_short_circuits():
    breaker = CircuitBreaker(failure_threshold=1, reset_timeout_s=9999)
    breaker.record_failure(LLMTimeout("earlier outage"))
    fake = FakeChatModel([AIMessage(content="never")])
    client = _client(fake, breaker=breaker, retry_policy=RetryPolicy(max_attempts=1))

    with pytest.raises(LLMUnavailable):
        await client.complete([Message(role="user", content="q")], tools=[], system_instruction="s")
    assert fake.seen == []


@pytest.mark.asyncio
async def test_non_ai_message_is_malformed():
    fake = FakeChatModel([HumanMessage(content="??")])
    client = _client(fake)

    with pytest.raises(LLMMalformedResponse):
        await client.complete([Message(role="user", content="q")], tools=[], system_instruction="s")
