# propertyflow/errors.py
from __future__ import annotations

from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


class PropertyFlowError(Exception):
    """
    Base for domain errors raised by services.

    Services stay HTTP-agnostic; create_app() registers a handler that turns
    these into {"detail", "code"} JSON with `status_code`.
    """

    status_code: int = 400
    default_code: str = "ERROR"

    def __init__(self, message: str, code: Optional[str] = None, *, status_code: Optional[int] = None, extra: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        if status_code is not None:
            self.status_code = status_code
        self.extra = extra or {}

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"detail": self.message, "code": self.code}
        out.update(self.extra)
        return out


class ApprovalError(PropertyFlowError):
    default_code = "VALIDATION_ERROR"

    _status_by_code = {
        "APPLICATION_NOT_FOUND": 404,
        "PROPERTY_NOT_FOUND": 404,
        "TENANT_NOT_FOUND": 404,
        "APPLICATION_NOT_PENDING": 409,
        "UNIT_UNAVAILABLE": 409,
        "NO_LEASE_TEMPLATE": 422,
        "VALIDATION_ERROR": 422,
        "LEASE_GENERATION_FAILED": 500,
    }

    def __init__(self, code: str, message: str, **kw: Any):
        super().__init__(message, code, status_code=self._status_by_code.get(code, 400), **kw)


class SigningError(PropertyFlowError):
    default_code = "INVALID_REQUEST"

    _status_by_code = {
        "NOT_FOUND": 404,
        "EXPIRED": 410,
        "VOIDED": 410,
    }

    def __init__(self, code: str, message: str, **kw: Any):
        super().__init__(message, code, status_code=self._status_by_code.get(code, 400), **kw)


class LeaseStateError(PropertyFlowError):
    status_code = 409
    default_code = "ILLEGAL_TRANSITION"


class LeaseValidationError(PropertyFlowError):
    status_code = 422
    default_code = "VALIDATION_ERROR"

    def __init__(self, errors: list[str]):
        super().__init__("; ".join(errors) or "invalid lease data", extra={"errors": list(errors)})
        self.errors = list(errors)


class LeaseGenerationError(PropertyFlowError):
    status_code = 500
    default_code = "LEASE_GENERATION_FAILED"


class BookingError(PropertyFlowError):
    default_code = "BOOKING_ERROR"


class InvoiceError(PropertyFlowError):
    default_code = "INVOICE_ERROR"


class NotFoundError(PropertyFlowError):
    status_code = 404
    default_code = "NOT_FOUND"


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(PropertyFlowError)
    async def _domain_error(request: Request, exc: PropertyFlowError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())
