"""AidLedger FastAPI application entry point.

Creates the FastAPI app, configures middleware and error handlers,
includes routers, and manages the lifecycle of the backend services
(audit log, identity, contact verification, scheme catalog, application
store, review workflow, payments).
"""

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import AsyncIterator

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from config.settings import settings
from src.api.router import api_router
from src.middleware.rate_limit import LoginThrottleMiddleware
from src.services.errors import (
    AidLedgerError,
    AuthenticationError,
    AuthorizationError,
    ConcurrentModificationError,
    DuplicateApplicationError,
    InvalidStateTransitionError,
    NotFoundError,
    ValidationError,
)

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Structured logging configuration
# ---------------------------------------------------------------------------


def _configure_logging() -> None:
    """Set up structlog with JSON or console rendering based on settings."""
    processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if settings.log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            settings.log_level,
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


# ---------------------------------------------------------------------------
# Application lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Wire up all AidLedger services on ``app.state``.

    On startup:
      1. Create the audit log shared by every service
      2. Create identity (with demo accounts) and contact verification
      3. Load the scheme catalog
      4. Create the application repository and seed demo applications
      5. Create the application store, review workflow and payments
    """
    _configure_logging()
    logger.info("app.startup", env=settings.env, seed_demo_data=settings.seed_demo_data)

    app.state.start_time = time.time()

    # -- 1. Audit log -------------------------------------------------------
    from src.services.audit_log import AuditLog

    audit_log = AuditLog()
    app.state.audit_log = audit_log

    # -- 2. Identity and contact verification -------------------------------
    from src.services.identity import ContactVerificationService, IdentityService

    if settings.seed_demo_data:
        identity = IdentityService.with_demo_accounts(
            audit_log, session_ttl_seconds=settings.session_ttl_seconds
        )
    else:
        identity = IdentityService(audit_log, session_ttl_seconds=settings.session_ttl_seconds)
    app.state.identity = identity

    app.state.verification = ContactVerificationService(
        otp_length=settings.otp_length,
        resend_cooldown_seconds=settings.otp_resend_cooldown_seconds,
        ttl_seconds=settings.otp_ttl_seconds,
    )
    logger.info("app.identity_initialised")

    # -- 3. Scheme catalog --------------------------------------------------
    from src.data.seed import load_schemes, seed_demo_applications
    from src.services.catalog import SchemeCatalog

    catalog = SchemeCatalog(load_schemes() if settings.seed_demo_data else [])
    app.state.catalog = catalog
    logger.info("app.catalog_initialised", schemes=len(catalog))

    # -- 4. Repository ------------------------------------------------------
    from src.services.repository import InMemoryApplicationRepository

    repository = InMemoryApplicationRepository()
    if settings.seed_demo_data:
        await seed_demo_applications(repository)
    app.state.repository = repository

    # -- 5. Lifecycle services ----------------------------------------------
    from src.services.applications import ApplicationStore
    from src.services.payments import PaymentService
    from src.services.review import ApplicationLocks, ReviewWorkflow
    from src.services.scoring import HashEligibilityScorer

    locks = ApplicationLocks()
    app.state.applications = ApplicationStore(
        repository=repository,
        catalog=catalog,
        verification=app.state.verification,
        scorer=HashEligibilityScorer(),
        audit=audit_log,
    )
    app.state.review = ReviewWorkflow(repository=repository, audit=audit_log, locks=locks)
    app.state.payments = PaymentService(repository=repository, audit=audit_log, locks=locks)

    logger.info("app.startup_complete")

    yield

    logger.info("app.shutdown_complete", audit_events=audit_log.size)


# ---------------------------------------------------------------------------
# FastAPI application
# ---------------------------------------------------------------------------

app = FastAPI(
    title="AidLedger API",
    description=(
        "AidLedger -- welfare scheme portal. Citizens apply to government "
        "schemes, administrators review applications, and approved "
        "applicants pay the processing fee. Every transition is recorded "
        "in a tamper-evident audit log."
    ),
    version="0.1.0",
    lifespan=lifespan,
    default_response_class=ORJSONResponse,
    docs_url="/docs" if not settings.is_production else None,
    redoc_url="/redoc" if not settings.is_production else None,
)

# -- CORS middleware --------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://localhost:5173", "http://127.0.0.1:8000"],
    allow_credentials=False,
    allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
    allow_headers=["Content-Type", "Accept", "Authorization"],
)

# -- Custom middleware ------------------------------------------------------
app.add_middleware(
    LoginThrottleMiddleware,
    max_failures_per_minute=settings.login_failures_per_minute,
)


# -- Error handlers ---------------------------------------------------------

_STATUS_BY_ERROR: tuple[tuple[type[AidLedgerError], int], ...] = (
    (ValidationError, 422),
    (AuthenticationError, 401),
    (AuthorizationError, 403),
    (NotFoundError, 404),
    (InvalidStateTransitionError, 409),
    (ConcurrentModificationError, 409),
    (DuplicateApplicationError, 409),
)


def _status_for(exc: AidLedgerError) -> int:
    for error_cls, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_cls):
            return status_code
    return 400


@app.exception_handler(AidLedgerError)
async def aidledger_error_handler(request: Request, exc: AidLedgerError) -> ORJSONResponse:
    status_code = _status_for(exc)
    logger.info(
        "app.request_failed",
        path=request.url.path,
        error=exc.kind,
        status_code=status_code,
    )
    headers = {"WWW-Authenticate": "Bearer"} if status_code == 401 else None
    return ORJSONResponse(status_code=status_code, content=exc.to_dict(), headers=headers)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> ORJSONResponse:
    errors = exc.errors()
    fields = sorted({".".join(str(p) for p in err["loc"] if p != "body") for err in errors})
    return ORJSONResponse(
        status_code=422,
        content={
            "error": ValidationError.kind,
            "message": "; ".join(str(err["msg"]) for err in errors),
            "details": {"fields": fields},
        },
    )


# -- Include routers -------------------------------------------------------
app.include_router(api_router)


@app.get("/api", response_class=ORJSONResponse)
async def api_info() -> dict:
    """API information endpoint."""
    return {
        "name": "AidLedger API",
        "description": "Welfare scheme applications, review and fee payment",
        "version": app.version,
        "docs": "/docs",
        "health": "/api/v1/health",
        "demo_accounts": settings.seed_demo_data,
        "endpoints": {
            "auth": "/api/v1/auth",
            "schemes": "/api/v1/schemes",
            "applications": "/api/v1/applications",
            "admin": "/api/v1/admin",
            "health": "/api/v1/health",
        },
    }
