from __future__ import annotations

from dataclasses import dataclass
import operator
from typing import Annotated, Any, Callable, Iterable, Mapping, Optional, Tuple, TypedDict

from .messages import Message, user_message

DEFAULT_SENDER = "user"

MessagePredicate = Callable[[Message], bool]


def concat_messages(left: Iterable[Message] | None, right: Iterable[Message] | None) -> list:
    """Reducer of the `messages` channel: append-only, order-preserving."""
    return [*(left or ()), *(right or ())]


def last_sender(left: Optional[str], right: Optional[str]) -> Optional[str]:
    """Reducer of the `sender` channel: last write wins, `None` is no write."""
    return right if right is not None else left


class GraphState(TypedDict):
    """LangGraph channels of a Run; every node returns a partial update of these keys."""

    messages: Annotated[list, concat_messages]
    sender: Annotated[str, last_sender]
    steps: Annotated[int, operator.add]


@dataclass(frozen=True)
class ConversationState:
    """
    Conversation log of a single Run plus the name of the last authoring node.

    The state is a value: every update returns a new instance and the message
    tuple is never reordered or truncated.

    Merge rules (used by `merge` and `append`):
    - messages: concatenation, associative and order-preserving;
    - sender: last write wins, `None` means "no write".
    Tool-role messages never write the sender, so after the tool step the
    sender still names the agent that issued the calls.
    """

    messages: Tuple[Message, ...] = ()
    sender: str = DEFAULT_SENDER

    @classmethod
    def from_question(cls, question: str) -> "ConversationState":
        return cls(messages=(user_message(question),), sender=DEFAULT_SENDER)

    @property
    def last_message(self) -> Optional[Message]:
        return self.messages[-1] if self.messages else None

    def append(self, message: Message, sender: Optional[str] = None) -> "ConversationState":
        if sender is None and message.role != "tool":
            sender = message.name
        return self.merge((message,), sender=sender)

    def merge(self, messages: Iterable[Message], sender: Optional[str] = None) -> "ConversationState":
        return ConversationState(
            messages=tuple(concat_messages(self.messages, messages)),
            sender=last_sender(self.sender, sender),
        )

    def filtered(self, predicate: MessagePredicate) -> "ConversationState":
        """Derived view keeping only messages accepted by `predicate`; the log itself is untouched."""
        return ConversationState(
            messages=tuple(m for m in self.messages if predicate(m)),
            sender=self.sender,
        )

    @classmethod
    def from_channels(cls, values: Mapping[str, Any]) -> "ConversationState":
        return cls(
            messages=tuple(values.get("messages") or ()),
            sender=values.get("sender") or DEFAULT_SENDER,
        )

    def to_channels(self) -> GraphState:
        return {"messages": list(self.messages), "sender": self.sender, "steps": 0}

    def authored_by(self, name: str) -> Tuple[Message, ...]:
        return tuple(m for m in self.messages if m.name == name and m.role != "tool")
