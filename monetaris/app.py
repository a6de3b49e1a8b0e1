import time

from fastapi import FastAPI, Request

from monetaris import __version__
from monetaris.apps.cases.api import router as cases_router
from monetaris.apps.dashboard.api import router as dashboard_router
from monetaris.apps.debtors.api import router as debtors_router
from monetaris.apps.documents.api import router as documents_router
from monetaris.apps.inquiries.api import router as inquiries_router
from monetaris.apps.kreditoren.api import router as kreditoren_router
from monetaris.apps.templates.api import router as templates_router
from monetaris.apps.users.api import router as users_router
from monetaris.core.config import settings
from monetaris.core.errors import ServiceError, service_error_handler
from monetaris.core.observability import generate_trace_id, init_observability
from monetaris.core.observability.health import router as health_router
from monetaris.core.observability.logging import set_tenant_id, set_trace_id, set_user_id
from monetaris.core.observability.metrics import record_request_duration


def create_app() -> FastAPI:
    init_observability(enable_metrics=settings.enable_metrics)

    app = FastAPI(title="Monetaris Backend", version=__version__)
    app.add_exception_handler(ServiceError, service_error_handler)

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        trace_id = request.headers.get("X-Trace-ID") or generate_trace_id()
        request.state.trace_id = trace_id
        set_trace_id(trace_id)
        set_tenant_id(None)
        set_user_id(None)
        start = time.time()
        response = await call_next(request)
        route = request.scope.get("route")
        record_request_duration((time.time() - start) * 1000, getattr(route, "path", "unmatched"))
        response.headers["X-Trace-ID"] = trace_id
        return response

    # Routers
    app.include_router(health_router)
    app.include_router(users_router)
    app.include_router(kreditoren_router)
    app.include_router(debtors_router)
    app.include_router(cases_router)
    app.include_router(inquiries_router)
    app.include_router(templates_router)
    app.include_router(documents_router)
    app.include_router(dashboard_router)

    return app


# ASGI app instance
app = create_app()
