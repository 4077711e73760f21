from __future__ import annotations

import json
import logging
import time
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response


class TraceLoggingMiddleware(BaseHTTPMiddleware):
    def __init__(self, app):
        super().__init__(app)
        self._logger = logging.getLogger(__name__)

    async def dispatch(self, request: Request, call_next):
        trace_id = request.headers.get("x-trace-id") or uuid4().hex
        request.state.trace_id = trace_id
        start = time.perf_counter()
        response: Response | None = None
        error: Exception | None = None
        try:
            response = await call_next(request)
            return response
        except Exception as exc:
            error = exc
            raise
        finally:
            payload = {
                "event": "api_request",
                "trace_id": trace_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code if response else getattr(error, "status_code", 500),
                "latency_ms": int((time.perf_counter() - start) * 1000),
                "client_ip": request.client.host if request.client else None,
                "outcome": "error" if error else "success",
            }
            if error:
                self._logger.error(json.dumps(payload, ensure_ascii=False))
            else:
                self._logger.info(json.dumps(payload, ensure_ascii=False))
            if response:
                response.headers["X-Trace-Id"] = trace_id


def setup_middlewares(app) -> None:
    app.add_middleware(TraceLoggingMiddleware)
