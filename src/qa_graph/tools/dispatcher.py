from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, List

from qa_graph.errors import ToolExecutionError, UnknownToolError
from qa_graph.graph.messages import Message, ToolCall
from qa_graph.graph.state import ConversationState
from qa_graph.tools.registry import ToolRegistry, ToolResult

logger = logging.getLogger(__name__)


def serialize_tool_result(result: Any) -> str:
    if isinstance(result, str):
        return result
    return json.dumps(result, ensure_ascii=False, default=str)


class ToolDispatcher:
    """
    Executes the tool calls carried by the last message of a state.

    Produces one tool-role message per call, in call order, each tagged with
    the originating call id. Every referenced tool is resolved before anything
    runs, so an unknown name fails the step without side effects.
    """

    def __init__(self, registry: ToolRegistry, *, max_concurrency: int = 3):
        self.registry = registry
        self._max_concurrency = max_concurrency

    def tool_names(self) -> List[str]:
        return self.registry.names()

    async def invoke(self, state: ConversationState, *, trace_id: str | None = None) -> List[Message]:
        last = state.last_message
        if last is None or not last.has_tool_calls:
            return []

        calls = list(last.tool_calls)
        for call in calls:
            if call.name not in self.registry:
                raise UnknownToolError(call.name, trace_id=trace_id)

        limiter = asyncio.Semaphore(self._max_concurrency) if self._max_concurrency > 0 else None

        async def _run_call(call: ToolCall) -> ToolResult:
            if limiter is None:
                return await self.registry.execute(call.name, dict(call.arguments), trace_id=trace_id, call_id=call.id)
            async with limiter:
                return await self.registry.execute(call.name, dict(call.arguments), trace_id=trace_id, call_id=call.id)

        results = await asyncio.gather(*(_run_call(call) for call in calls))

        messages: List[Message] = []
        for call, result in zip(calls, results):
            if not result.ok:
                error = result.error or {}
                raise ToolExecutionError(
                    f"Tool {call.name} failed: {error.get('message') or 'unknown error'}",
                    tool_name=call.name,
                    call_id=call.id,
                    error_code=error.get("code"),
                    trace_id=trace_id,
                )
            messages.append(
                Message(
                    role="tool",
                    content=serialize_tool_result(result.result),
                    name=call.name,
                    tool_call_id=call.id,
                )
            )
        return messages
