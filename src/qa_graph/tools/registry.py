from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
import inspect
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional
from uuid import uuid4

from langchain_core.tools import BaseTool, StructuredTool
from pydantic import Field, create_model


ToolHandler = Callable[[Dict[str, Any]], Any | Awaitable[Any]]


@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    schema: Dict[str, Any] = field(default_factory=dict)
    handler: Optional[ToolHandler] = None


@dataclass(frozen=True)
class ToolResult:
    tool_name: str
    call_id: str
    ok: bool
    result: Any | None
    error: Dict[str, Any] | None
    latency_ms: int


class ToolRegistry:
    def __init__(self, tools: List[ToolSpec] | None = None, *, max_concurrency_global: int = 20):
        self._tools: Dict[str, ToolSpec] = {}
        self._global_limiter = asyncio.Semaphore(max_concurrency_global) if max_concurrency_global > 0 else None
        for tool in tools or []:
            self.register(tool)

    def register(self, tool: ToolSpec) -> None:
        if tool.name in self._tools:
            raise ValueError(f"Tool already registered: {tool.name}")
        self._tools[tool.name] = tool

    def get(self, name: str) -> Optional[ToolSpec]:
        return self._tools.get(name)

    def list(self) -> List[ToolSpec]:
        return list(self._tools.values())

    def names(self) -> List[str]:
        return list(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    async def execute(
        self,
        name: str,
        args: Dict[str, Any],
        *,
        trace_id: str | None = None,
        call_id: str | None = None,
    ) -> ToolResult:
        call_id = call_id or uuid4().hex[:12]
        tool = self.get(name)
        if not tool:
            return ToolResult(
                tool_name=name,
                call_id=call_id,
                ok=False,
                result=None,
                error={"code": "tool_not_found", "message": "Tool not registered"},
                latency_ms=0,
            )
        if not tool.handler:
            return ToolResult(
                tool_name=name,
                call_id=call_id,
                ok=False,
                result=None,
                error={"code": "tool_not_implemented", "message": "Tool handler is missing"},
                latency_ms=0,
            )

        validation_error = _validate_args(tool.schema, args)
        if validation_error:
            return ToolResult(
                tool_name=name,
                call_id=call_id,
                ok=False,
                result=None,
                error={"code": "invalid_args", "message": validation_error},
                latency_ms=0,
            )

        logging.info(
            json.dumps(
                {"event": "tool_call_start", "tool": name, "call_id": call_id, "trace_id": trace_id},
                ensure_ascii=False,
            )
        )
        start = time.perf_counter()
        try:
            if self._global_limiter is None:
                result = await _call_handler(tool.handler, args)
            else:
                async with self._global_limiter:
                    result = await _call_handler(tool.handler, args)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            latency_ms = int((time.perf_counter() - start) * 1000)
            logging.error(
                json.dumps(
                    {
                        "event": "tool_call_error",
                        "tool": name,
                        "call_id": call_id,
                        "trace_id": trace_id,
                        "latency_ms": latency_ms,
                        "error": str(exc),
                    },
                    ensure_ascii=False,
                )
            )
            return ToolResult(
                tool_name=name,
                call_id=call_id,
                ok=False,
                result=None,
                error={"code": "tool_error", "message": str(exc)},
                latency_ms=latency_ms,
            )

        latency_ms = int((time.perf_counter() - start) * 1000)
        logging.info(
            json.dumps(
                {
                    "event": "tool_call_success",
                    "tool": name,
                    "call_id": call_id,
                    "trace_id": trace_id,
                    "latency_ms": latency_ms,
                },
                ensure_ascii=False,
            )
        )
        return ToolResult(
            tool_name=name,
            call_id=call_id,
            ok=True,
            result=result,
            error=None,
            latency_ms=latency_ms,
        )


async def _call_handler(handler: ToolHandler, args: Dict[str, Any]) -> Any:
    result = handler(args)
    if inspect.isawaitable(result):
        result = await result
    return result


def _validate_args(schema: Dict[str, Any], args: Dict[str, Any]) -> str | None:
    if not schema:
        return None
    if schema.get("type") and schema.get("type") != "object":
        return "schema_type_not_object"
    if not isinstance(args, dict):
        return "args_not_object"

    required = schema.get("required") or []
    for key in required:
        if key not in args:
            return f"missing_required:{key}"

    properties = schema.get("properties") or {}
    for key, spec in properties.items():
        if key not in args:
            continue
        # optional fields come back as null from the model
        if args[key] is None and key not in required:
            continue
        expected = spec.get("type")
        if expected and not _matches_type(args[key], expected):
            return f"invalid_type:{key}"
    return None


def _matches_type(value: Any, expected: str) -> bool:
    if expected == "string":
        return isinstance(value, str)
    if expected == "number":
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if expected == "integer":
        return isinstance(value, int) and not isinstance(value, bool)
    if expected == "boolean":
        return isinstance(value, bool)
    if expected == "array":
        return isinstance(value, list)
    if expected == "object":
        return isinstance(value, dict)
    return True


def _schema_type_to_python(expected: str) -> Any:
    if expected == "string":
        return str
    if expected == "number":
        return float
    if expected == "integer":
        return int
    if expected == "boolean":
        return bool
    if expected == "array":
        return list
    if expected == "object":
        return dict
    return Any


def to_langchain_tool(tool: ToolSpec) -> BaseTool:
    """Describe a ToolSpec to LangChain for `bind_tools`; execution stays in the dispatcher."""
    properties = tool.schema.get("properties") or {}
    required = set(tool.schema.get("required") or [])
    fields: Dict[str, tuple[Any, Any]] = {}
    for key, spec in properties.items():
        py_type = _schema_type_to_python(spec.get("type", "string"))
        if key in required:
            fields[key] = (py_type, Field(..., description=spec.get("description") or ""))
        else:
            fields[key] = (Optional[py_type], Field(default=None, description=spec.get("description") or ""))

    args_schema = create_model(f"{tool.name}_args", **fields)

    async def _tool_stub(**kwargs: Any) -> str:
        _ = kwargs
        return ""

    return StructuredTool.from_function(
        coroutine=_tool_stub,
        name=tool.name,
        description=tool.description,
        args_schema=args_schema,
    )
