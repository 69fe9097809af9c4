"""Fee payment and receipt endpoints for AidLedger v1."""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Depends, Request, status
from pydantic import BaseModel, Field

from src.middleware.auth import get_current_actor, get_service
from src.models.actor import Actor
from src.models.application import PaymentRecord
from src.models.enums import PaymentMethod

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

router = APIRouter(prefix="/applications", tags=["payments"])


class PaymentRequest(BaseModel):
    """Payment method plus its fields.

    * ``card``: ``card_number``, ``expiry``, ``cvv``, ``holder_name``
    * ``upi``: ``upi_id``
    * ``netbanking``: ``bank`` (sbi, hdfc, icici or axis)
    """

    method: PaymentMethod
    details: dict[str, Any] = Field(default_factory=dict)


@router.post("/{application_id}/payment", response_model=PaymentRecord, status_code=status.HTTP_201_CREATED)
async def pay(
    application_id: str,
    body: PaymentRequest,
    request: Request,
    actor: Actor = Depends(get_current_actor),
) -> PaymentRecord:
    payments = get_service(request, "payments")
    return await payments.pay(application_id, actor, body.method, body.details)


@router.get("/{application_id}/receipt")
async def receipt(
    application_id: str,
    request: Request,
    actor: Actor = Depends(get_current_actor),
) -> dict[str, Any]:
    payments = get_service(request, "payments")
    return await payments.receipt(application_id, actor)
