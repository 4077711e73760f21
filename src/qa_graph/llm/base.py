from __future__ import annotations
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from qa_graph.graph.messages import Message
    from qa_graph.tools.registry import ToolSpec


class ModelClient(ABC):
    """Turns a prompt plus a tool catalogue into a single completion message."""

    name: str = "model"

    @abstractmethod
    async def complete(
        self,
        messages: Sequence[Message],
        *,
        tools: Sequence[ToolSpec],
        system_instruction: str,
        agent_name: str | None = None,
    ) -> Message:
        raise NotImplementedError
