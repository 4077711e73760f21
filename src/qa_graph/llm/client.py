from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Any, Callable, Dict, List, Optional, Sequence
from uuid import uuid4

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage, ToolMessage
from langchain_openai import ChatOpenAI

from qa_graph.graph.messages import Message, ToolCall
from qa_graph.llm.base import ModelClient
from qa_graph.llm.circuit_breaker import CircuitBreaker
from qa_graph.llm.errors import (
    LLMAuthError,
    LLMError,
    LLMMalformedResponse,
    LLMUnavailable,
    map_provider_error,
)
from qa_graph.llm.retry import RetryPolicy, with_retries
from qa_graph.secrets import SecretNotFoundError, get_secret
from qa_graph.tools.registry import ToolSpec, to_langchain_tool
from qa_graph.utils.hashing import messages_fingerprint

logger = logging.getLogger(__name__)

ChatModelFactory = Callable[[], BaseChatModel]


class ChatModelClient(ModelClient):
    """
    Tool-calling chat client on top of LangChain's `ChatOpenAI`.

    Every agent shares one instance; calls are bounded by a semaphore, guarded
    by a circuit breaker and retried according to `retry_policy`. Provider
    exceptions surface as `LLMError` subclasses.

    `chat_model_factory` replaces the `ChatOpenAI` construction, tests pass a
    fake chat model through it.
    """

    name = "openai"

    def __init__(
        self,
        *,
        model: str = "gpt-4o-mini",
        temperature: Optional[float] = 0.0,
        timeout_s: Optional[float] = 60.0,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        retry_policy: RetryPolicy | None = None,
        breaker: CircuitBreaker | None = None,
        max_inflight: int = 5,
        chat_model_factory: ChatModelFactory | None = None,
    ):
        self.model = model
        self.temperature = temperature
        self.timeout_s = timeout_s
        self._api_key = api_key
        self._base_url = base_url
        self._retry_policy = retry_policy or RetryPolicy()
        self._breaker = breaker or CircuitBreaker(failure_threshold=5, reset_timeout_s=30)
        self._limiter = asyncio.Semaphore(max(1, max_inflight))
        self._chat_model_factory = chat_model_factory
        self._chat_model: BaseChatModel | None = None

    def _build_chat_openai(self) -> BaseChatModel:
        api_key = self._api_key or get_secret("OPENAI_API_KEY", required=True)
        kwargs: Dict[str, Any] = {"api_key": api_key, "model": self.model}
        if self.temperature is not None:
            kwargs["temperature"] = self.temperature
        if self.timeout_s is not None:
            kwargs["timeout"] = self.timeout_s
        if self._base_url:
            kwargs["base_url"] = self._base_url
        # retries are ours, the SDK must not retry underneath
        kwargs["max_retries"] = 0
        return ChatOpenAI(**kwargs)

    def _get_chat_model(self) -> BaseChatModel:
        if self._chat_model is None:
            factory = self._chat_model_factory or self._build_chat_openai
            self._chat_model = factory()
        return self._chat_model

    async def complete(
        self,
        messages: Sequence[Message],
        *,
        tools: Sequence[ToolSpec],
        system_instruction: str,
        agent_name: str | None = None,
    ) -> Message:
        call_id = uuid4().hex[:12]
        payload = {
            "call_id": call_id,
            "agent": agent_name,
            "model": self.model,
            "tools": [t.name for t in tools],
            "messages": messages_fingerprint(messages),
        }
        logger.info(json.dumps({"event": "llm_call_start", **payload}, ensure_ascii=False))
        start = time.perf_counter()

        lc_messages = [SystemMessage(content=system_instruction), *_to_langchain_messages(messages)]
        lc_tools = [to_langchain_tool(tool) for tool in tools]

        async def _attempt() -> AIMessage:
            if not self._breaker.allow():
                raise LLMUnavailable("Circuit breaker open")
            try:
                llm: Any = self._get_chat_model()
                if lc_tools:
                    llm = llm.bind_tools(lc_tools)
                async with self._limiter:
                    response = await llm.ainvoke(lc_messages)
            except asyncio.CancelledError:
                raise
            except SecretNotFoundError as e:
                raise LLMAuthError(str(e)) from e
            except Exception as e:
                err = map_provider_error(e)
                self._breaker.record_failure(err)
                if err is e:
                    raise
                raise err from e
            self._breaker.record_success()
            return response

        def _on_retry(attempt: int, err: LLMError) -> None:
            logger.warning(
                json.dumps(
                    {"event": "llm_call_retry", **payload, "attempt": attempt, "error_code": err.code},
                    ensure_ascii=False,
                )
            )

        try:
            response = await with_retries(_attempt, policy=self._retry_policy, on_retry=_on_retry)
            message = _from_langchain_message(response, name=agent_name)
        except LLMError as e:
            latency_ms = int((time.perf_counter() - start) * 1000)
            logger.error(
                json.dumps(
                    {
                        "event": "llm_call_error",
                        **payload,
                        "latency_ms": latency_ms,
                        "error_code": e.code,
                        "error": str(e),
                    },
                    ensure_ascii=False,
                )
            )
            raise

        latency_ms = int((time.perf_counter() - start) * 1000)
        logger.info(
            json.dumps(
                {
                    "event": "llm_call_success",
                    **payload,
                    "latency_ms": latency_ms,
                    "tool_calls": [c.name for c in message.tool_calls],
                    "output_chars": len(message.content),
                },
                ensure_ascii=False,
            )
        )
        return message


def _to_langchain_messages(messages: Sequence[Message]) -> List[BaseMessage]:
    lc_messages: List[BaseMessage] = []
    for m in messages:
        content = m.content or ""
        if m.role == "system":
            lc_messages.append(SystemMessage(content=content))
        elif m.role == "assistant":
            kwargs: Dict[str, Any] = {"content": content}
            if m.name:
                kwargs["name"] = m.name
            if m.tool_calls:
                kwargs["tool_calls"] = [
                    {"id": call.id, "name": call.name, "args": dict(call.arguments)}
                    for call in m.tool_calls
                ]
            lc_messages.append(AIMessage(**kwargs))
        elif m.role == "tool":
            lc_messages.append(ToolMessage(content=content, tool_call_id=m.tool_call_id or "tool", name=m.name))
        elif m.role == "user":
            lc_messages.append(HumanMessage(content=content))
        else:
            raise ValueError(f"Unknown role: {m.role}")
    return lc_messages


def _content_to_text(content: Any) -> str:
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type") == "text":
                parts.append(str(block.get("text") or ""))
        return "".join(parts)
    return str(content)


def _from_langchain_message(response: Any, *, name: str | None) -> Message:
    if not isinstance(response, AIMessage):
        raise LLMMalformedResponse(f"Expected AIMessage, got {type(response).__name__}")
    calls = []
    for raw in response.tool_calls or []:
        tool_name = raw.get("name")
        if not tool_name:
            raise LLMMalformedResponse("Tool call without a name")
        args = raw.get("args") or {}
        if not isinstance(args, dict):
            raise LLMMalformedResponse(f"Tool call {tool_name} has non-object arguments")
        calls.append(ToolCall(id=raw.get("id") or f"call_{uuid4().hex[:12]}", name=tool_name, arguments=args))
    return Message(
        role="assistant",
        content=_content_to_text(response.content),
        name=name,
        tool_calls=tuple(calls),
    )
