"""Citizen application endpoints for AidLedger v1.

Citizens submit applications, list their own, and open a single one.
Administrators may read any application; listing another applicant's
applications requires an administrator session.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, Query, Request, status
from pydantic import BaseModel, Field

from src.middleware.auth import get_current_actor, get_service
from src.models.actor import Actor
from src.models.application import Application, SubmittedDocument

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

router = APIRouter(prefix="/applications", tags=["applications"])


# ---------------------------------------------------------------------------
# Request / response schemas
# ---------------------------------------------------------------------------


class SubmitApplicationRequest(BaseModel):
    """Request body for submitting an application.

    Documents are references to files already uploaded to storage; the
    ``name`` is what gets matched against the scheme's required labels.
    """

    scheme_id: str = Field(..., min_length=1, max_length=100)
    documents: list[SubmittedDocument] = Field(default_factory=list, max_length=50)
    additional_info: str = Field(default="", max_length=5000)


class ApplicationListResponse(BaseModel):
    applications: list[Application]
    total: int


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post("", response_model=Application, status_code=status.HTTP_201_CREATED)
async def submit_application(
    body: SubmitApplicationRequest,
    request: Request,
    actor: Actor = Depends(get_current_actor),
) -> Application:
    store = get_service(request, "applications")
    return await store.submit(actor, body.scheme_id, body.documents, body.additional_info)


@router.get("", response_model=ApplicationListResponse)
async def list_applications(
    request: Request,
    actor: Actor = Depends(get_current_actor),
    applicant_id: str | None = Query(default=None, description="Defaults to the caller"),
) -> ApplicationListResponse:
    """The caller's applications, newest first."""
    store = get_service(request, "applications")
    apps = await store.list_for_applicant(applicant_id or actor.actor_id, actor)
    return ApplicationListResponse(applications=apps, total=len(apps))


@router.get("/{application_id}", response_model=Application)
async def get_application(
    application_id: str,
    request: Request,
    actor: Actor = Depends(get_current_actor),
) -> Application:
    store = get_service(request, "applications")
    return await store.get(application_id, actor)
