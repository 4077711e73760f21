from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Optional, Tuple

from qa_graph.graph.messages import Message
from qa_graph.graph.state import ConversationState, MessagePredicate

if TYPE_CHECKING:
    from qa_graph.agents.agent import Agent
    from qa_graph.tools.dispatcher import ToolDispatcher


class NodeName(str, Enum):
    COORDINATOR = "Coordinator"
    RAG = "Rag"
    TAVILY = "Tavily"
    CALL_TOOL = "call_tool"


def node_key(name: object) -> str:
    if isinstance(name, Enum):
        return str(name.value)
    return str(name)


@dataclass(frozen=True)
class NodeOutput:
    """Messages produced by one step; `sender=None` leaves the state's sender untouched."""

    messages: Tuple[Message, ...]
    sender: Optional[str] = None


class Node(ABC):
    name: str

    @abstractmethod
    async def invoke(self, state: ConversationState, *, trace_id: str | None = None) -> NodeOutput:
        raise NotImplementedError


class AgentNode(Node):
    def __init__(self, name: str, agent: "Agent", *, input_filter: MessagePredicate | None = None):
        self.name = node_key(name)
        self.agent = agent
        self.input_filter = input_filter

    def view(self, state: ConversationState) -> ConversationState:
        if self.input_filter is None:
            return state
        return state.filtered(self.input_filter)

    async def invoke(self, state: ConversationState, *, trace_id: str | None = None) -> NodeOutput:
        message = await self.agent.invoke(self.view(state), trace_id=trace_id)
        return NodeOutput(messages=(message,), sender=self.name)


class ToolNode(Node):
    def __init__(self, dispatcher: "ToolDispatcher", *, name: str = NodeName.CALL_TOOL):
        self.name = node_key(name)
        self.dispatcher = dispatcher

    async def invoke(self, state: ConversationState, *, trace_id: str | None = None) -> NodeOutput:
        messages = await self.dispatcher.invoke(state, trace_id=trace_id)
        return NodeOutput(messages=tuple(messages))
