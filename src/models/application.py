"""Application, payment and fee models.

An :class:`Application` is created when a citizen submits against a
scheme and is afterwards only mutated by review transitions and the
payment step.  Records are never deleted; a rejected applicant reapplies
with a fresh application.
"""

from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal
from typing import Final

from pydantic import BaseModel, Field, model_validator

from src.models.enums import ApplicationStatus, PaymentMethod, PaymentStatus

# Fixed application fee in rupees.
BASE_FEE: Final[Decimal] = Decimal("500.00")
CONVENIENCE_FEE: Final[Decimal] = Decimal("12.50")
TAX_AMOUNT: Final[Decimal] = Decimal("2.80")


class SubmittedDocument(BaseModel):
    """An uploaded document reference: display name plus storage location."""

    model_config = {"frozen": True}

    name: str = Field(..., min_length=1, max_length=255)
    storage_ref: str = Field(..., min_length=1, max_length=1024)


class FeeBreakdown(BaseModel):
    model_config = {"frozen": True}

    base_fee: Decimal = BASE_FEE
    convenience_fee: Decimal = CONVENIENCE_FEE
    tax: Decimal = TAX_AMOUNT
    total: Decimal = BASE_FEE + CONVENIENCE_FEE + TAX_AMOUNT

    @model_validator(mode="after")
    def _check_total(self) -> FeeBreakdown:
        if self.total != self.base_fee + self.convenience_fee + self.tax:
            raise ValueError("total must equal base_fee + convenience_fee + tax")
        return self

    @classmethod
    def standard(cls) -> FeeBreakdown:
        return cls()


class PaymentRecord(BaseModel):
    """Immutable record of a completed fee payment, attached 1:1 to an application."""

    model_config = {"frozen": True}

    transaction_id: str
    application_id: str
    method: PaymentMethod
    method_reference: str  # masked card / UPI id / bank code
    fees: FeeBreakdown = Field(default_factory=FeeBreakdown.standard)
    completed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    audit_hash: str = ""


class Application(BaseModel):
    """A citizen's request against a scheme."""

    application_id: str
    scheme_id: str
    applicant_id: str
    applicant_name: str = ""
    documents: list[SubmittedDocument] = Field(default_factory=list)
    additional_info: str = ""
    eligibility_score: int | None = Field(default=None, ge=0, le=100)
    status: ApplicationStatus = ApplicationStatus.PENDING
    payment_status: PaymentStatus | None = None
    submitted_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    reviewed_by: str | None = None
    reviewed_at: datetime | None = None
    rejection_reason: str | None = None
    disbursement_reference: str | None = None
    payment: PaymentRecord | None = None
    audit_hashes: list[str] = Field(default_factory=list)
    version: int = 0

    @model_validator(mode="after")
    def _check_review_fields(self) -> Application:
        if (self.reviewed_by is None) != (self.reviewed_at is None):
            raise ValueError("reviewed_by and reviewed_at must be set together")

        if self.status == ApplicationStatus.REJECTED:
            if not (self.rejection_reason or "").strip():
                raise ValueError("a rejected application needs a rejection_reason")
            if self.reviewed_by is None:
                raise ValueError("a rejected application needs reviewed_by")
        elif self.status == ApplicationStatus.APPROVED:
            if self.reviewed_by is None:
                raise ValueError("an approved application needs reviewed_by and reviewed_at")
            if self.rejection_reason is not None:
                raise ValueError("an approved application cannot carry a rejection_reason")
        elif self.reviewed_by is not None or self.rejection_reason is not None:
            raise ValueError("a pending application has no review fields")

        if self.payment_status is not None and self.status != ApplicationStatus.APPROVED:
            raise ValueError("payment_status is only set on approved applications")
        if self.payment is not None and self.payment_status != PaymentStatus.PAYMENT_COMPLETED:
            raise ValueError("a payment record requires payment_status payment_completed")
        return self
