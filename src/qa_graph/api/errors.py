from __future__ import annotations

from typing import Any, Dict


class APIError(Exception):
    """Request-level failure of the HTTP surface (bad upload, bad URL); engine failures use OrchestrationError."""

    def __init__(self, message: str, *, status_code: int = 400, code: str = "bad_request"):
        super().__init__(message)
        self.status_code = status_code
        self.code = code

    def to_payload(self, trace_id: str | None) -> Dict[str, Any]:
        return {"error": self.code, "message": str(self), "trace_id": trace_id}
