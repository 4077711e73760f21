import pytest

from qa_graph.agents.agent import Agent
from qa_graph.agents.prompts import AGENT_PREAMBLE, RAG_INSTRUCTION
from qa_graph.errors import ModelInvocationError
from qa_graph.graph.state import ConversationState
from qa_graph.llm.errors import LLMAuthError, LLMTimeout
from qa_graph.tools.registry import ToolSpec
from tests.fakes import QUERY_SCHEMA, ScriptedModelClient, call, tool_request

RAG_TOOL = ToolSpec(name="rag_search", description="kb", schema=QUERY_SCHEMA)


@pytest.mark.asyncio
async def test_agent_attributes_plain_answer_and_composes_prompt():
    client = ScriptedModelClient(["The knowledge base is empty."])
    agent = Agent(name="Rag", client=client, system_instruction=RAG_INSTRUCTION, tools=(RAG_TOOL,))

    message = await agent.invoke(ConversationState.from_question("capital of France?"))

    assert message.role == "assistant"
    assert message.name == "Rag"
    assert message.content == "The knowledge base is empty."

    seen = client.calls[0]
    assert seen["tools"] == ["rag_search"]
    assert seen["agent_name"] == "Rag"
    assert seen["system_instruction"].startswith(AGENT_PREAMBLE.split("{")[0])
    assert "rag_search" in seen["system_instruction"]
    assert RAG_INSTRUCTION in seen["system_instruction"]


@pytest.mark.asyncio
async def test_agent_keeps_tool_calls_and_names_itself():
    client = ScriptedModelClient([tool_request(call("rag_search", "c-1", query="france"))])
    agent = Agent(name="Rag", client=client, system_instruction=RAG_INSTRUCTION, tools=(RAG_TOOL,))

    message = await agent.invoke(ConversationState.from_question("q"))

    assert message.name == "Rag"
    assert message.has_tool_calls
    assert message.tool_calls[0].id == "c-1"
    assert message.tool_calls[0].arguments == {"query": "france"}


@pytest.mark.asyncio
async def test_agent_wraps_model_errors():
    agent = Agent(name="Tavily", client=ScriptedModelClient([LLMTimeout("slow")]), system_instruction="x")

    with pytest.raises(ModelInvocationError) as excinfo:
        await agent.invoke(ConversationState.from_question("q"), trace_id="t-7")

    err = excinfo.value
    assert err.agent == "Tavily"
    assert err.retryable is True
    assert err.trace_id == "t-7"
    assert isinstance(err.__cause__, LLMTimeout)


@pytest.mark.asyncio
async def test_agent_non_retryable_model_error():
    agent = Agent(name="Coordinator", client=ScriptedModelClient([LLMAuthError("bad key")]), system_instruction="x")

    with pytest.raises(ModelInvocationError) as excinfo:
        await agent.invoke(ConversationState.from_question("q"))

    assert excinfo.value.retryable is False
