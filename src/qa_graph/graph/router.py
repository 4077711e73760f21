from __future__ import annotations

from enum import Enum

from .state import ConversationState

FINAL_ANSWER_SENTINEL = "FINAL ANSWER"


class RouteLabel(str, Enum):
    CONTINUE = "continue"
    CALL_TOOL = "call_tool"
    END = "end"


def route(node_name: str, state: ConversationState) -> RouteLabel:
    """
    Pick the outgoing edge label from the last message only.

    A pending tool call wins over the sentinel. `node_name` is accepted so the
    signature matches the edge conditions, the decision never depends on it.
    """
    _ = node_name
    last = state.last_message
    if last is not None and last.has_tool_calls:
        return RouteLabel.CALL_TOOL
    if last is not None and FINAL_ANSWER_SENTINEL in (last.content or ""):
        return RouteLabel.END
    return RouteLabel.CONTINUE


def route_to_sender(node_name: str, state: ConversationState) -> str:
    _ = node_name
    return state.sender
