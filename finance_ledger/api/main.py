"""FastAPI application factory"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from finance_ledger.api.dependencies import get_request_id
from finance_ledger.api.middleware import RequestIDMiddleware, MetricsMiddleware
from finance_ledger.api.v1 import installments, subscriptions, transactions
from finance_ledger.domain.exceptions import (
    IndexMissingError,
    InvalidStateError,
    LedgerError,
    NotAuthenticatedError,
    NotFoundError,
    PermissionDeniedError,
    PersistenceUnavailableError,
)
from finance_ledger.infrastructure.database.bootstrap import ensure_collections
from finance_ledger.infrastructure.database.session import get_engine
from finance_ledger.infrastructure.observability.logging import setup_logging
from finance_ledger.infrastructure.observability.metrics import record_error
from finance_ledger.config import settings

# Setup structured logging
setup_logging(settings.log_level)

# Most specific first: ConcurrentModificationError is an InvalidStateError
ERROR_STATUS = (
    (NotAuthenticatedError, 401),
    (PermissionDeniedError, 403),
    (NotFoundError, 404),
    (InvalidStateError, 409),
    (IndexMissingError, 503),
    (PersistenceUnavailableError, 503),
)


def status_for(error: LedgerError) -> int:
    for error_type, status in ERROR_STATUS:
        if isinstance(error, error_type):
            return status
    return 500


async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
    """Translate ledger errors into JSON responses"""
    status = status_for(exc)
    record_error(exc)
    log = logging.error if status >= 500 else logging.warning
    log(
        f"{type(exc).__name__}: {exc}",
        extra={"request_id": get_request_id(request), "path": request.url.path},
    )
    return JSONResponse(
        status_code=status,
        content={"error": type(exc).__name__, "detail": str(exc)},
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.bootstrap_on_startup:
        await ensure_collections(get_engine())
    yield


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Finance Ledger",
        description="Transactions, subscriptions and installment purchases",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    app.add_exception_handler(LedgerError, ledger_error_handler)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(transactions.router, prefix="/v1", tags=["transactions"])
    app.include_router(subscriptions.router, prefix="/v1", tags=["subscriptions"])
    app.include_router(installments.router, prefix="/v1", tags=["installments"])

    return app


app = create_app()
