"""Scheme catalog endpoints for AidLedger v1.

Listing and detail are public.  Creating and editing schemes requires an
administrator session.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import structlog
from fastapi import APIRouter, Depends, Query, Request, status
from pydantic import BaseModel, Field

from src.middleware.auth import get_service, require_admin
from src.models.actor import Actor
from src.models.enums import SchemeStatus
from src.models.scheme import Scheme, SchemeUpdate

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

router = APIRouter(prefix="/schemes", tags=["schemes"])


# ---------------------------------------------------------------------------
# Request / response schemas
# ---------------------------------------------------------------------------


class SchemeListResponse(BaseModel):
    schemes: list[Scheme]
    total: int


class CreateSchemeRequest(BaseModel):
    """Request body for creating a scheme."""

    title: str = Field(..., max_length=200)
    description: str = Field(default="", max_length=5000)
    required_documents: list[str] = Field(default_factory=list)
    eligibility_criteria: list[str] = Field(default_factory=list)
    benefits: str = Field(default="", max_length=2000)
    start_date: date
    end_date: date
    status: SchemeStatus = SchemeStatus.UPCOMING
    fee_amount: Decimal | None = Field(default=None, ge=0)


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get("", response_model=SchemeListResponse)
async def list_schemes(
    request: Request,
    scheme_status: SchemeStatus | None = Query(default=None, alias="status", description="Filter by status"),
) -> SchemeListResponse:
    catalog = get_service(request, "catalog")
    schemes = catalog.list_schemes(scheme_status)
    return SchemeListResponse(schemes=schemes, total=len(schemes))


@router.get("/{scheme_id}", response_model=Scheme)
async def get_scheme(scheme_id: str, request: Request) -> Scheme:
    catalog = get_service(request, "catalog")
    return catalog.get(scheme_id)


@router.post("", response_model=Scheme, status_code=status.HTTP_201_CREATED)
async def create_scheme(
    body: CreateSchemeRequest,
    request: Request,
    admin: Actor = Depends(require_admin),
) -> Scheme:
    catalog = get_service(request, "catalog")
    return catalog.create(admin, **body.model_dump())


@router.patch("/{scheme_id}", response_model=Scheme)
async def update_scheme(
    scheme_id: str,
    body: SchemeUpdate,
    request: Request,
    admin: Actor = Depends(require_admin),
) -> Scheme:
    catalog = get_service(request, "catalog")
    return catalog.update(admin, scheme_id, body)
