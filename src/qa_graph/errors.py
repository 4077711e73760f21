from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from qa_graph.graph.state import ConversationState


class OrchestrationError(Exception):
    """Base error of the orchestration engine; every fatal Run failure is one of these."""

    code: str = "orchestration_error"
    status_code: int = 500
    retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        status_code: int | None = None,
        retryable: bool | None = None,
        trace_id: str | None = None,
    ):
        super().__init__(message)
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        if retryable is not None:
            self.retryable = retryable
        self.trace_id = trace_id


class InputError(OrchestrationError):
    code = "input_error"
    status_code = 400


class ModelInvocationError(OrchestrationError):
    code = "model_invocation_error"
    status_code = 502
    retryable = True

    def __init__(self, message: str, *, agent: str | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.agent = agent


class UnknownToolError(OrchestrationError):
    code = "unknown_tool"
    status_code = 500

    def __init__(self, tool_name: str, **kwargs: Any):
        super().__init__(f"Tool is not registered: {tool_name}", **kwargs)
        self.tool_name = tool_name


class ToolExecutionError(OrchestrationError):
    code = "tool_execution_error"
    status_code = 502

    def __init__(
        self,
        message: str,
        *,
        tool_name: str | None = None,
        call_id: str | None = None,
        error_code: str | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.tool_name = tool_name
        self.call_id = call_id
        self.error_code = error_code


class RecursionLimitExceeded(OrchestrationError):
    code = "recursion_limit_exceeded"
    status_code = 500

    def __init__(
        self,
        *,
        limit: int,
        steps: int,
        state: "ConversationState | None" = None,
        **kwargs: Any,
    ):
        super().__init__(
            f"Recursion limit of {limit} reached without hitting a stop condition",
            **kwargs,
        )
        self.limit = limit
        self.steps = steps
        # partial log, kept for diagnostics only
        self.state = state


class RunTimeoutError(OrchestrationError):
    code = "run_timeout"
    status_code = 504

    def __init__(self, timeout_s: float, **kwargs: Any):
        super().__init__(f"Run exceeded its deadline of {timeout_s:g}s", **kwargs)
        self.timeout_s = timeout_s


class RoutingError(OrchestrationError):
    code = "invalid_route"
    status_code = 500

    def __init__(self, node: str, label: str, **kwargs: Any):
        super().__init__(f"Node {node!r} has no edge for label {label!r}", **kwargs)
        self.node = node
        self.label = label


class GraphConfigurationError(OrchestrationError):
    code = "graph_configuration_error"
    status_code = 500
