# This file bootstraps the FastAPI app, wires up middlewares for logging
# and request correlation, registers error handlers, and includes all the
# routers. Process-lifetime resources (caches) are created here and hung
# off app.state so dependencies can hand them to the code that needs them.

import logging
import os

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy.exc import SQLAlchemyError

from app.core.cache import TTLCache
from app.core.config import settings
from app.core.db import Base, engine
from app.core.errors import OperationFailed
from app.core.logging import APILoggingMiddleware
from app.core.metrics import MetricsMiddleware
from app.tenancy.middleware import RequestContextMiddleware
from app import models  # noqa: F401

from app.api.admin import router as admin_router
from app.api.audit import router as audit_router
from app.api.auth import router as auth_router
from app.api.errors import handle_operation_failed, handle_request_validation
from app.api.integrations import router as integrations_router
from app.api.invites import router as invites_router
from app.api.team import router as team_router

logger = logging.getLogger(__name__)

# Create tables right away for local runs and tests; deployed databases
# are managed with the Alembic migrations instead.
if os.getenv("SKIP_MIGRATIONS") != "1":
    Base.metadata.create_all(bind=engine)

app = FastAPI(title="Spades Team Core")

app.state.credential_test_cache = TTLCache(
    ttl_seconds=settings.INTEGRATION_TEST_CACHE_TTL_SECONDS,
    max_entries=settings.INTEGRATION_TEST_CACHE_MAX_ENTRIES,
)

app.add_exception_handler(OperationFailed, handle_operation_failed)
app.add_exception_handler(RequestValidationError, handle_request_validation)


@app.exception_handler(SQLAlchemyError)
def handle_storage_error(request: Request, exc: SQLAlchemyError):
    # Sessions roll back inside transaction(); this only shapes the response.
    logger.error(
        "storage.error",
        extra={"request_id": getattr(request.state, "request_id", None), "error_type": type(exc).__name__},
    )
    response = JSONResponse(
        status_code=500,
        content={"code": "internal_error", "message": "Internal server error"},
    )
    response.headers["X-Error-Code"] = "internal_error"
    return response


# The last middleware added runs first; request ids must exist before
# the request is logged.
app.add_middleware(MetricsMiddleware)
app.add_middleware(APILoggingMiddleware)
app.add_middleware(RequestContextMiddleware)

for router in (
    auth_router,
    team_router,
    invites_router,
    integrations_router,
    audit_router,
    admin_router,
):
    app.include_router(router)


@app.get("/health")
def health():
    return {"status": "ok"}


# Prometheus scraping endpoint.
@app.get("/metrics", include_in_schema=False)
def metrics() -> Response:
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
