# propertyflow/main.py
from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import settings
from .errors import install_error_handlers
from .logging_config import configure_logging

from .middleware.request_id import RequestIDMiddleware
from .middleware.structured_logging import StructuredLoggingMiddleware

from .routers.health import router as health_router
from .routers.auth import router as auth_router
from .routers.landlord import router as landlord_router

from .routers.properties import router as properties_router
from .routers.tenants import router as tenants_router
from .routers.applications import router as applications_router
from .routers.applications import public_router as public_applications_router

from .routers.documents import router as documents_router
from .routers.documents import files_router
from .routers.lease_templates import router as lease_templates_router
from .routers.leases import router as leases_router
from .routers.signing import router as signing_router

from .routers.rent import router as rent_router
from .routers.invoices import router as invoices_router
from .routers.expenses import router as expenses_router
from .routers.reports import router as reports_router

from .routers.maintenance import router as maintenance_router
from .routers.contractors import router as contractors_router

from .routers.notifications import router as notifications_router
from .routers.audit import router as audit_router
from .routers.workflow import router as workflow_router

API_PREFIX = "/api"


def _cors_origins() -> list[str]:
    val = getattr(settings, "cors_allow_origins", ["*"])
    if isinstance(val, str):
        v = val.strip()
        return ["*"] if v == "*" else [x.strip() for x in v.split(",") if x.strip()]
    if isinstance(val, list) and val:
        return val
    return ["*"]


def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(title=settings.app_name, version=settings.app_version)

    # RequestID sits inside the access logger, which reads ids from request.state
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(StructuredLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    install_error_handlers(app)

    @app.exception_handler(LookupError)
    async def _lookup_error(request: Request, exc: LookupError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc) or "not found", "code": "NOT_FOUND"})

    # Core
    app.include_router(health_router, prefix=API_PREFIX)
    app.include_router(auth_router, prefix=API_PREFIX)
    app.include_router(landlord_router, prefix=API_PREFIX)

    # Portfolio + leasing pipeline
    app.include_router(properties_router, prefix=API_PREFIX)
    app.include_router(tenants_router, prefix=API_PREFIX)
    app.include_router(applications_router, prefix=API_PREFIX)
    app.include_router(public_applications_router, prefix=API_PREFIX)

    # Documents + signing
    app.include_router(documents_router, prefix=API_PREFIX)
    app.include_router(files_router, prefix=API_PREFIX)
    app.include_router(lease_templates_router, prefix=API_PREFIX)
    app.include_router(leases_router, prefix=API_PREFIX)
    app.include_router(signing_router, prefix=API_PREFIX)

    # Money
    app.include_router(rent_router, prefix=API_PREFIX)
    app.include_router(invoices_router, prefix=API_PREFIX)
    app.include_router(expenses_router, prefix=API_PREFIX)
    app.include_router(reports_router, prefix=API_PREFIX)

    # Maintenance + contractors
    app.include_router(maintenance_router, prefix=API_PREFIX)
    app.include_router(contractors_router, prefix=API_PREFIX)

    # Feed / trust
    app.include_router(notifications_router, prefix=API_PREFIX)
    app.include_router(audit_router, prefix=API_PREFIX)
    app.include_router(workflow_router, prefix=API_PREFIX)

    return app


app = create_app()
