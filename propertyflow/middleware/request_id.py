# propertyflow/middleware/request_id.py
from __future__ import annotations

import re
import uuid
from contextvars import ContextVar
from typing import Any, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

# One mutable dict per request. Sync dependencies run in a copied context,
# so they update the dict in place instead of re-setting the var.
_request_ctx: ContextVar[dict[str, Any] | None] = ContextVar("propertyflow_request_ctx", default=None)

_SAFE_ID = re.compile(r"^[A-Za-z0-9._:\-]{1,128}$")


def get_request_id() -> str | None:
    ctx = _request_ctx.get()
    return ctx.get("request_id") if ctx else None


def request_context() -> dict[str, Any]:
    return dict(_request_ctx.get() or {})


def bind_context(**fields: Any) -> None:
    """Attach landlord/user ids to the current request's log context (no-op outside a request)."""
    ctx = _request_ctx.get()
    if ctx is None:
        return
    ctx.update({k: v for k, v in fields.items() if v is not None})


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Per-request id, echoed back as X-Request-ID.

    A caller-supplied id is reused only when it is short and header-safe;
    anything else is replaced with a fresh UUID4.
    """

    header_out = "X-Request-ID"

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        incoming = (request.headers.get("X-Request-ID") or "").strip()
        rid = incoming if _SAFE_ID.match(incoming) else str(uuid.uuid4())

        request.state.request_id = rid
        ctx: dict[str, Any] = {"request_id": rid}
        request.state.log_context = ctx
        token = _request_ctx.set(ctx)
        try:
            resp = await call_next(request)
            resp.headers[self.header_out] = rid
            return resp
        finally:
            _request_ctx.reset(token)
