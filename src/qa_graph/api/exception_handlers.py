from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from qa_graph.api.errors import APIError
from qa_graph.errors import OrchestrationError


def _json_response(request: Request, status_code: int, content: Dict[str, Any]) -> JSONResponse:
    trace_id = content.get("trace_id")
    response = JSONResponse(status_code=status_code, content=content)
    if trace_id:
        response.headers["X-Trace-Id"] = trace_id
    return response


def register_exception_handlers(app) -> None:
    logger = logging.getLogger(__name__)

    @app.exception_handler(RequestValidationError)
    async def handle_validation(request: Request, exc: RequestValidationError):
        trace_id = getattr(request.state, "trace_id", None)
        return _json_response(
            request,
            422,
            {"error": "validation_error", "details": exc.errors(), "trace_id": trace_id},
        )

    @app.exception_handler(OrchestrationError)
    async def handle_orchestration(request: Request, exc: OrchestrationError):
        trace_id = exc.trace_id or getattr(request.state, "trace_id", None)
        return _json_response(
            request,
            exc.status_code,
            {"error": exc.code, "message": str(exc), "trace_id": trace_id},
        )

    @app.exception_handler(APIError)
    async def handle_api_error(request: Request, exc: APIError):
        return _json_response(request, exc.status_code, exc.to_payload(getattr(request.state, "trace_id", None)))

    @app.exception_handler(Exception)
    async def handle_unknown(request: Request, exc: Exception):
        trace_id = getattr(request.state, "trace_id", None)
        logger.exception("Unhandled error", extra={"trace_id": trace_id, "path": request.url.path})
        return _json_response(request, 500, {"error": "internal_error", "trace_id": trace_id})
