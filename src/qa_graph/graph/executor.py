from __future__ import annotations

from dataclasses import dataclass, field
import json
import logging
import time
from typing import Any, Callable, Dict, List, Mapping, Optional

from langchain_core.runnables import RunnableConfig
from langgraph.errors import GraphRecursionError
from langgraph.graph import END, START, StateGraph

from qa_graph.errors import GraphConfigurationError, RecursionLimitExceeded, RoutingError
from qa_graph.graph.messages import Message
from qa_graph.graph.nodes import Node, node_key
from qa_graph.graph.state import ConversationState, GraphState, last_sender

logger = logging.getLogger(__name__)

DEFAULT_RECURSION_LIMIT = 25

EdgeCondition = Callable[[str, ConversationState], Any]


@dataclass(frozen=True)
class ConditionalEdges:
    """Outgoing edges of one node: `condition` yields a label, `mapping` resolves it to the next node."""

    condition: EdgeCondition
    mapping: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        normalized = {node_key(label): node_key(target) for label, target in dict(self.mapping).items()}
        object.__setattr__(self, "mapping", normalized)


@dataclass(frozen=True)
class RunResult:
    state: ConversationState
    steps: int

    @property
    def final_message(self) -> Optional[Message]:
        return self.state.last_message

    @property
    def answer(self) -> str:
        last = self.final_message
        return last.content if last is not None else ""


def _check_recursion_limit(limit: Any) -> None:
    if not isinstance(limit, int) or isinstance(limit, bool) or limit < 1:
        raise GraphConfigurationError(f"recursion_limit must be an integer >= 1, got {limit!r}")


def _trace_id(config: RunnableConfig | None) -> str | None:
    return ((config or {}).get("configurable") or {}).get("trace_id")


class GraphExecutor:
    """
    Compiles a fixed node registry and edge table into a LangGraph `StateGraph`
    and drives Runs over it.

    One step = one node invocation; its output is merged into the `messages`
    and `sender` channels by their reducers, then the node's edge condition
    picks the next node. A Run performs at most `recursion_limit` node
    invocations before failing with `RecursionLimitExceeded`; a failed step
    is never retried.
    """

    def __init__(
        self,
        *,
        nodes: Mapping[str, Node],
        edges: Mapping[str, ConditionalEdges],
        entry: str,
        recursion_limit: int = DEFAULT_RECURSION_LIMIT,
        debug_logging: bool = False,
    ):
        self._nodes: Dict[str, Node] = {node_key(name): node for name, node in nodes.items()}
        self._edges: Dict[str, ConditionalEdges] = {node_key(name): e for name, e in edges.items()}
        self._entry = node_key(entry)
        self.recursion_limit = recursion_limit
        self.debug_logging = debug_logging
        self._validate()
        self._graph = self._compile()

    def _validate(self) -> None:
        _check_recursion_limit(self.recursion_limit)
        if self._entry not in self._nodes:
            raise GraphConfigurationError(f"Entry node {self._entry!r} is not registered")
        for name in self._nodes:
            if name not in self._edges:
                raise GraphConfigurationError(f"Node {name!r} has no outgoing edges")
        for source, edges in self._edges.items():
            if source not in self._nodes:
                raise GraphConfigurationError(f"Edges declared for unknown node {source!r}")
            if not edges.mapping:
                raise GraphConfigurationError(f"Node {source!r} has an empty edge mapping")
            for label, target in edges.mapping.items():
                if target != END and target not in self._nodes:
                    raise GraphConfigurationError(
                        f"Edge {source!r} --{label}--> {target!r} points to an unknown node"
                    )

    def _compile(self):
        workflow = StateGraph(GraphState)
        for name, node in self._nodes.items():
            workflow.add_node(name, self._node_step(name, node))
        workflow.add_edge(START, self._entry)
        for source, edges in self._edges.items():
            workflow.add_conditional_edges(source, self._edge_condition(source, edges), dict(edges.mapping))
        return workflow.compile()

    def _node_step(self, name: str, node: Node):
        async def _step(values: Dict[str, Any], config: RunnableConfig) -> Dict[str, Any]:
            trace_id = _trace_id(config)
            state = ConversationState.from_channels(values)
            step = int(values.get("steps") or 0) + 1
            logger.info(
                json.dumps({"event": "node_start", "trace_id": trace_id, "node": name, "step": step}, ensure_ascii=False)
            )
            start = time.perf_counter()
            output = await node.invoke(state, trace_id=trace_id)

            update: Dict[str, Any] = {"messages": list(output.messages), "steps": 1}
            if output.sender is not None:
                update["sender"] = output.sender

            payload: Dict[str, Any] = {
                "event": "node_end",
                "trace_id": trace_id,
                "node": name,
                "step": step,
                "latency_ms": int((time.perf_counter() - start) * 1000),
                "messages_added": len(output.messages),
                "sender": last_sender(state.sender, output.sender),
            }
            if self.debug_logging:
                payload["messages"] = [m.to_dict() for m in output.messages]
            logger.info(json.dumps(payload, ensure_ascii=False))
            return update

        return _step

    def _edge_condition(self, source: str, edges: ConditionalEdges):
        def _condition(values: Dict[str, Any], config: RunnableConfig) -> str:
            trace_id = _trace_id(config)
            label = node_key(edges.condition(source, ConversationState.from_channels(values)))
            target = edges.mapping.get(label)
            if target is None:
                raise RoutingError(source, label, trace_id=trace_id)
            logger.info(
                json.dumps(
                    {"event": "route_decision", "trace_id": trace_id, "node": source, "label": label, "next": target},
                    ensure_ascii=False,
                )
            )
            return label

        return _condition

    @property
    def entry(self) -> str:
        return self._entry

    def node_names(self) -> List[str]:
        return list(self._nodes)

    def node(self, name: str) -> Node:
        return self._nodes[node_key(name)]

    async def run(
        self,
        state: ConversationState,
        *,
        trace_id: str | None = None,
        recursion_limit: int | None = None,
    ) -> RunResult:
        limit = self.recursion_limit if recursion_limit is None else recursion_limit
        _check_recursion_limit(limit)
        config: RunnableConfig = {"recursion_limit": limit, "configurable": {"trace_id": trace_id}}

        last: Dict[str, Any] = dict(state.to_channels())
        try:
            async for values in self._graph.astream(state.to_channels(), config, stream_mode="values"):
                last = values
        except GraphRecursionError as e:
            steps = int(last.get("steps") or 0)
            logger.warning(
                json.dumps(
                    {"event": "recursion_limit_exceeded", "trace_id": trace_id, "limit": limit, "steps": steps},
                    ensure_ascii=False,
                )
            )
            raise RecursionLimitExceeded(
                limit=limit,
                steps=steps,
                state=ConversationState.from_channels(last),
                trace_id=trace_id,
            ) from e
        return RunResult(state=ConversationState.from_channels(last), steps=int(last.get("steps") or 0))

    def draw_mermaid(self) -> str:
        return self._graph.get_graph().draw_mermaid()
