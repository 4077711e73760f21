from fastapi import APIRouter, Depends, Request

from qa_graph.api.deps import get_orchestrator
from qa_graph.api.schemas import RunRequest, RunResponse
from qa_graph.orchestrator.service import QAOrchestrator

router = APIRouter(prefix="/state-graph", tags=["state-graph"])


@router.post(
    "/run",
    response_model=RunResponse,
    summary="Answer a question with the multi-agent graph",
    description=(
        "Example request:\n\n"
        "```\n"
        "curl -X POST http://localhost:8000/v1/state-graph/run \\\n"
        "  -H 'Content-Type: application/json' \\\n"
        "  -d '{\"question\":\"What is the capital of France?\"}'\n"
        "```\n"
    ),
)
async def run_state_graph(
    payload: RunRequest,
    request: Request,
    orchestrator: QAOrchestrator = Depends(get_orchestrator),
) -> RunResponse:
    result = await orchestrator.run(
        payload.question,
        trace_id=getattr(request.state, "trace_id", None),
        timeout_s=payload.timeout_s,
    )
    return RunResponse(content=result.answer, trace_id=result.trace_id, steps=result.steps)
