# propertyflow/middleware/structured_logging.py
from __future__ import annotations

import json
import logging
import time
from typing import Any, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

log = logging.getLogger("propertyflow.request")

# Path segments followed by a bearer-style secret
_SECRET_SEGMENTS = ("/sign/",)


def redact_path(path: str) -> str:
    for seg in _SECRET_SEGMENTS:
        if seg in path:
            head, tail = path.split(seg, 1)
            rest = tail.split("/", 1)
            return head + seg + "<token>" + ("/" + rest[1] if len(rest) > 1 else "")
    return path


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    """
    One access line per request: request_id, landlord_id, user_id, method,
    path, status_code, latency_ms.

    The ids come from request.state.log_context, which RequestIDMiddleware
    creates and the auth dependencies fill in.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        t0 = time.perf_counter()

        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            ctx: dict[str, Any] = getattr(request.state, "log_context", None) or {}
            line = {
                "event": "http_request",
                "request_id": ctx.get("request_id"),
                "landlord_id": ctx.get("landlord_id"),
                "user_id": ctx.get("user_id"),
                "method": request.method,
                "path": redact_path(request.url.path),
                "status_code": status_code,
                "latency_ms": int((time.perf_counter() - t0) * 1000),
            }
            if status_code >= 500:
                log.error(json.dumps(line, default=str))
            else:
                log.info(json.dumps(line, default=str))
