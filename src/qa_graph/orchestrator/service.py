from __future__ import annotations

import asyncio
from dataclasses import dataclass
import json
import logging
import time
from typing import Any, Dict
from uuid import uuid4

from qa_graph.errors import InputError, OrchestrationError, RunTimeoutError
from qa_graph.graph.executor import GraphExecutor, RunResult
from qa_graph.graph.state import ConversationState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunAnswer:
    answer: str
    trace_id: str
    steps: int
    sender: str

    def to_dict(self) -> Dict[str, Any]:
        return {"answer": self.answer, "trace_id": self.trace_id, "steps": self.steps, "sender": self.sender}


class QAOrchestrator:
    """
    Entry point of a Run: validates the question, seeds a fresh state and
    drives the graph until it ends, fails, or runs out of time.

    The executor and its collaborators are shared read-only between Runs;
    each call to `run` owns its own state.
    """

    def __init__(self, *, graph: GraphExecutor, default_timeout_s: float | None = None):
        self.graph = graph
        self.default_timeout_s = default_timeout_s

    async def run(
        self,
        question: str,
        *,
        trace_id: str | None = None,
        timeout_s: float | None = None,
    ) -> RunAnswer:
        trace_id = trace_id or str(uuid4())
        if not isinstance(question, str) or not question.strip():
            raise InputError("question must be a non-empty string", trace_id=trace_id)

        timeout_s = timeout_s if timeout_s is not None else self.default_timeout_s
        state = ConversationState.from_question(question)
        logger.info(
            json.dumps(
                {"event": "run_start", "trace_id": trace_id, "question_chars": len(question), "timeout_s": timeout_s},
                ensure_ascii=False,
            )
        )
        start = time.perf_counter()
        try:
            if timeout_s is None:
                result: RunResult = await self.graph.run(state, trace_id=trace_id)
            else:
                try:
                    result = await asyncio.wait_for(self.graph.run(state, trace_id=trace_id), timeout=timeout_s)
                except asyncio.TimeoutError as e:
                    raise RunTimeoutError(timeout_s, trace_id=trace_id) from e
        except OrchestrationError as e:
            if e.trace_id is None:
                e.trace_id = trace_id
            logger.error(
                json.dumps(
                    {
                        "event": "run_end",
                        "trace_id": trace_id,
                        "status": "error",
                        "error_code": e.code,
                        "error": str(e),
                        "latency_ms": int((time.perf_counter() - start) * 1000),
                    },
                    ensure_ascii=False,
                )
            )
            raise

        answer = RunAnswer(
            answer=result.answer,
            trace_id=trace_id,
            steps=result.steps,
            sender=result.state.sender,
        )
        logger.info(
            json.dumps(
                {
                    "event": "run_end",
                    "trace_id": trace_id,
                    "status": "ok",
                    "steps": result.steps,
                    "sender": answer.sender,
                    "latency_ms": int((time.perf_counter() - start) * 1000),
                },
                ensure_ascii=False,
            )
        )
        return answer
