"""Administrator endpoints for AidLedger v1.

All routes here require an administrator session.  They cover the
ranked review queue, per-scheme application listings, status counts,
approve/reject decisions and read access to the audit trail.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, Field

from src.middleware.auth import get_service, require_admin
from src.models.actor import Actor
from src.models.application import Application
from src.models.audit import AuditEvent
from src.models.enums import ApplicationStatus, AuditEventType

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


# ---------------------------------------------------------------------------
# Request / response schemas
# ---------------------------------------------------------------------------


class ApplicationListResponse(BaseModel):
    applications: list[Application]
    total: int


class RejectRequest(BaseModel):
    reason: str = Field(default="", max_length=2000)


class AuditTrailResponse(BaseModel):
    events: list[AuditEvent]
    total: int
    last_sequence_number: int


class StatusCounts(BaseModel):
    total: int
    pending: int
    approved: int
    rejected: int


class SchemeStatusCounts(StatusCounts):
    scheme_id: str
    title: str


class StatsResponse(StatusCounts):
    by_scheme: list[SchemeStatusCounts]


class AuditVerifyResponse(BaseModel):
    sequence_number: int
    intact: bool


# ---------------------------------------------------------------------------
# Review
# ---------------------------------------------------------------------------


@router.get("/queue", response_model=ApplicationListResponse)
async def review_queue(
    request: Request,
    admin: Actor = Depends(require_admin),
    scheme_id: str | None = Query(default=None, description="Limit to one scheme"),
    application_status: ApplicationStatus = Query(default=ApplicationStatus.PENDING, alias="status"),
    q: str | None = Query(default=None, max_length=200, description="Applicant name or scheme title"),
) -> ApplicationListResponse:
    """Applications ranked by eligibility score, highest first."""
    review = get_service(request, "review")
    apps = await review.review_queue(admin, scheme_id, application_status)
    apps = get_service(request, "applications").filter_by_query(apps, q)
    return ApplicationListResponse(applications=apps, total=len(apps))


@router.get("/schemes/{scheme_id}/applications", response_model=ApplicationListResponse)
async def scheme_applications(
    scheme_id: str,
    request: Request,
    admin: Actor = Depends(require_admin),
    application_status: ApplicationStatus | None = Query(default=None, alias="status"),
    q: str | None = Query(default=None, max_length=200, description="Applicant name or scheme title"),
) -> ApplicationListResponse:
    store = get_service(request, "applications")
    apps = await store.list_for_scheme(scheme_id, admin, application_status, q)
    return ApplicationListResponse(applications=apps, total=len(apps))


@router.get("/stats", response_model=StatsResponse)
async def stats(request: Request, admin: Actor = Depends(require_admin)) -> StatsResponse:
    """Application counts by status, overall and per scheme."""
    store = get_service(request, "applications")
    return StatsResponse(**await store.stats(admin))


@router.post("/applications/{application_id}/approve", response_model=Application)
async def approve(
    application_id: str,
    request: Request,
    admin: Actor = Depends(require_admin),
) -> Application:
    review = get_service(request, "review")
    return await review.decide(application_id, admin, "approve")


@router.post("/applications/{application_id}/reject", response_model=Application)
async def reject(
    application_id: str,
    body: RejectRequest,
    request: Request,
    admin: Actor = Depends(require_admin),
) -> Application:
    review = get_service(request, "review")
    return await review.decide(application_id, admin, "reject", body.reason)


# ---------------------------------------------------------------------------
# Audit trail
# ---------------------------------------------------------------------------


@router.get("/audit", response_model=AuditTrailResponse)
async def audit_trail(
    request: Request,
    admin: Actor = Depends(require_admin),
    event_type: AuditEventType | None = Query(default=None),
    subject_id: str | None = Query(default=None, description="Application, applicant, scheme or actor id"),
    limit: int = Query(default=100, ge=1, le=1000),
) -> AuditTrailResponse:
    """Most recent audit events, oldest first within the returned page."""
    audit_log = get_service(request, "audit_log")
    events = audit_log.events(event_type, subject_id)
    return AuditTrailResponse(
        events=events[-limit:],
        total=len(events),
        last_sequence_number=audit_log.last_sequence_number,
    )


@router.get("/audit/{sequence_number}/verify", response_model=AuditVerifyResponse)
async def verify_audit_event(
    sequence_number: int,
    request: Request,
    admin: Actor = Depends(require_admin),
) -> AuditVerifyResponse:
    audit_log = get_service(request, "audit_log")
    return AuditVerifyResponse(sequence_number=sequence_number, intact=audit_log.verify(sequence_number))
