import argparse
import asyncio
import json
import logging

from qa_graph.graph.builder import build_qa_agents, build_qa_graph
from qa_graph.graph.messages import Message, ToolCall
from qa_graph.llm.base import ModelClient
from qa_graph.orchestrator.service import QAOrchestrator
from qa_graph.tools.dispatcher import ToolDispatcher
from qa_graph.tools.knowledge import RAG_SEARCH_TOOL
from qa_graph.tools.registry import ToolRegistry, ToolSpec
from qa_graph.tools.web_search import TAVILY_SEARCH_TOOL


class ScriptedSpecialist(ModelClient):
    """Calls its tool once, then answers from the tool message it got back."""

    def __init__(self, tool_name: str):
        self._tool_name = tool_name

    async def complete(self, messages, *, tools, system_instruction, agent_name=None):
        _ = (tools, system_instruction)
        last = messages[-1]
        if last.role == "tool" and last.name == self._tool_name:
            return Message(role="assistant", content=f"{agent_name} found: {last.content}")
        question = next(m.content for m in messages if m.role == "user")
        return Message(
            role="assistant",
            content="",
            tool_calls=(ToolCall(id=f"call-{self._tool_name}", name=self._tool_name, arguments={"query": question}),),
        )


class ScriptedCoordinator(ModelClient):
    async def complete(self, messages, *, tools, system_instruction, agent_name=None):
        _ = (tools, system_instruction, agent_name)
        answers = {m.name: m.content for m in messages if m.role == "assistant" and not m.tool_calls}
        if "Rag" in answers and "Tavily" in answers:
            return Message(
                role="assistant",
                content=f"Documents:\n{answers['Rag']}\n\nWeb:\n{answers['Tavily']}\n\nFINAL ANSWER",
            )
        return Message(role="assistant", content=messages[0].content)


def build_registry() -> ToolRegistry:
    return ToolRegistry(
        [
            ToolSpec(
                name=RAG_SEARCH_TOOL,
                description="Search in the knowledge base.",
                schema={"type": "object", "properties": {"query": {"type": "string"}}, "required": ["query"]},
                handler=lambda args: {"message": "No results found. Make sure documents have been ingested.", "results": []},
            ),
            ToolSpec(
                name=TAVILY_SEARCH_TOOL,
                description="Search the web.",
                schema={"type": "object", "properties": {"query": {"type": "string"}}, "required": ["query"]},
                handler=lambda args: "Paris",
            ),
        ]
    )


async def main():
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    parser = argparse.ArgumentParser(description="Run the agent graph with scripted agents.")
    parser.add_argument("--question", type=str, default="What is the capital of France?")
    args = parser.parse_args()

    registry = build_registry()
    agents = build_qa_agents(
        coordinator_client=ScriptedCoordinator(),
        rag_client=ScriptedSpecialist(RAG_SEARCH_TOOL),
        tavily_client=ScriptedSpecialist(TAVILY_SEARCH_TOOL),
        rag_tool=registry.get(RAG_SEARCH_TOOL),
        tavily_tool=registry.get(TAVILY_SEARCH_TOOL),
    )
    graph = build_qa_graph(agents, ToolDispatcher(registry), debug_logging=True)
    answer = await QAOrchestrator(graph=graph).run(args.question, trace_id="graph-local")
    print(json.dumps(answer.to_dict(), ensure_ascii=False, indent=2))


if __name__ == "__main__":
    asyncio.run(main())
