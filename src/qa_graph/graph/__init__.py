from qa_graph.graph.messages import Message, ToolCall, user_message
from qa_graph.graph.router import FINAL_ANSWER_SENTINEL, RouteLabel, route
from qa_graph.graph.state import ConversationState

__all__ = [
    "Message",
    "ToolCall",
    "user_message",
    "FINAL_ANSWER_SENTINEL",
    "RouteLabel",
    "route",
    "ConversationState",
]
