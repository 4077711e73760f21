from __future__ import annotations

from dataclasses import dataclass

from langgraph.graph import END

from qa_graph.agents.agent import Agent
from qa_graph.agents.prompts import COORDINATOR_INSTRUCTION, RAG_INSTRUCTION, TAVILY_INSTRUCTION
from qa_graph.graph.executor import DEFAULT_RECURSION_LIMIT, ConditionalEdges, GraphExecutor
from qa_graph.graph.messages import Message
from qa_graph.graph.nodes import AgentNode, NodeName, ToolNode
from qa_graph.graph.router import RouteLabel, route, route_to_sender
from qa_graph.graph.state import ConversationState
from qa_graph.llm.base import ModelClient
from qa_graph.tools.dispatcher import ToolDispatcher
from qa_graph.tools.knowledge import RAG_SEARCH_TOOL
from qa_graph.tools.registry import ToolSpec


def exclude_knowledge_search(message: Message) -> bool:
    """Input filter of the web-search agent: drops everything the knowledge-search path produced."""
    if message.has_tool_calls:
        return not message.calls_tool(RAG_SEARCH_TOOL)
    return message.name not in {NodeName.RAG.value, RAG_SEARCH_TOOL}


def specialists_answered(state: ConversationState) -> bool:
    """True when a Rag and a Tavily answer both follow the latest user message."""
    answered = set()
    for message in reversed(state.messages):
        if message.role == "user":
            break
        if message.role == "assistant" and not message.has_tool_calls and message.name:
            answered.add(message.name)
    return {NodeName.RAG.value, NodeName.TAVILY.value} <= answered


def coordinator_condition(*, require_specialist_answers: bool = False):
    def _condition(node_name: str, state: ConversationState) -> RouteLabel:
        label = route(node_name, state)
        if label is RouteLabel.END and require_specialist_answers and not specialists_answered(state):
            return RouteLabel.CONTINUE
        return label

    return _condition


@dataclass(frozen=True)
class QAAgents:
    coordinator: Agent
    rag: Agent
    tavily: Agent


def build_qa_agents(
    *,
    coordinator_client: ModelClient,
    rag_client: ModelClient,
    tavily_client: ModelClient,
    rag_tool: ToolSpec,
    tavily_tool: ToolSpec,
) -> QAAgents:
    return QAAgents(
        coordinator=Agent(
            name=NodeName.COORDINATOR.value,
            client=coordinator_client,
            system_instruction=COORDINATOR_INSTRUCTION,
        ),
        rag=Agent(
            name=NodeName.RAG.value,
            client=rag_client,
            system_instruction=RAG_INSTRUCTION,
            tools=(rag_tool,),
        ),
        tavily=Agent(
            name=NodeName.TAVILY.value,
            client=tavily_client,
            system_instruction=TAVILY_INSTRUCTION,
            tools=(tavily_tool,),
        ),
    )


def build_qa_graph(
    agents: QAAgents,
    dispatcher: ToolDispatcher,
    *,
    recursion_limit: int = DEFAULT_RECURSION_LIMIT,
    require_specialist_answers: bool = False,
    debug_logging: bool = False,
) -> GraphExecutor:
    """
    Coordinator -> Rag -> Tavily -> Coordinator, with `call_tool` returning
    to whichever specialist issued the call. Only the Coordinator can end the Run.
    """
    nodes = {
        NodeName.COORDINATOR: AgentNode(NodeName.COORDINATOR, agents.coordinator),
        NodeName.RAG: AgentNode(NodeName.RAG, agents.rag),
        NodeName.TAVILY: AgentNode(NodeName.TAVILY, agents.tavily, input_filter=exclude_knowledge_search),
        NodeName.CALL_TOOL: ToolNode(dispatcher),
    }
    edges = {
        NodeName.COORDINATOR: ConditionalEdges(
            condition=coordinator_condition(require_specialist_answers=require_specialist_answers),
            mapping={RouteLabel.END: END, RouteLabel.CONTINUE: NodeName.RAG},
        ),
        NodeName.RAG: ConditionalEdges(
            condition=route,
            mapping={RouteLabel.CONTINUE: NodeName.TAVILY, RouteLabel.CALL_TOOL: NodeName.CALL_TOOL},
        ),
        NodeName.TAVILY: ConditionalEdges(
            condition=route,
            mapping={RouteLabel.CONTINUE: NodeName.COORDINATOR, RouteLabel.CALL_TOOL: NodeName.CALL_TOOL},
        ),
        NodeName.CALL_TOOL: ConditionalEdges(
            condition=route_to_sender,
            mapping={NodeName.RAG: NodeName.RAG, NodeName.TAVILY: NodeName.TAVILY},
        ),
    }
    return GraphExecutor(
        nodes=nodes,
        edges=edges,
        entry=NodeName.COORDINATOR,
        recursion_limit=recursion_limit,
        debug_logging=debug_logging,
    )
