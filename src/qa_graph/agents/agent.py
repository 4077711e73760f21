from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace
from typing import Sequence, Tuple

from qa_graph.errors import ModelInvocationError
from qa_graph.graph.messages import Message
from qa_graph.graph.state import ConversationState
from qa_graph.llm.base import ModelClient
from qa_graph.llm.errors import LLMError
from qa_graph.agents.prompts import compose_system_prompt
from qa_graph.tools.registry import ToolSpec


@dataclass(frozen=True)
class Agent:
    """
    A Model Client bound to a system instruction and a fixed tool catalogue.

    `invoke` makes exactly one model call. The returned message is always
    attributed to the agent, so the state records it as the sender whether
    the completion is a tool-call request or a plain answer.
    """

    name: str
    client: ModelClient
    system_instruction: str
    tools: Tuple[ToolSpec, ...] = ()

    @property
    def tool_names(self) -> Sequence[str]:
        return [tool.name for tool in self.tools]

    @property
    def system_prompt(self) -> str:
        return compose_system_prompt(self.system_instruction, self.tool_names)

    async def invoke(self, state: ConversationState, *, trace_id: str | None = None) -> Message:
        try:
            completion = await self.client.complete(
                state.messages,
                tools=self.tools,
                system_instruction=self.system_prompt,
                agent_name=self.name,
            )
        except asyncio.CancelledError:
            raise
        except LLMError as e:
            raise ModelInvocationError(
                f"{self.name} model call failed: {e}",
                agent=self.name,
                retryable=e.retryable,
                trace_id=trace_id,
            ) from e
        except Exception as e:
            raise ModelInvocationError(
                f"{self.name} model call failed: {e}",
                agent=self.name,
                trace_id=trace_id,
            ) from e

        if completion.has_tool_calls:
            return replace(completion, role="assistant", name=self.name)
        return Message(role="assistant", content=completion.content or "", name=self.name)
