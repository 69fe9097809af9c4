from __future__ import annotations

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, Field, model_validator

from src.models.enums import SchemeStatus


class Scheme(BaseModel):
    """A welfare programme definition.

    ``status`` is set explicitly by an administrator and is never derived
    from the validity window.
    """

    scheme_id: str
    title: str
    description: str
    required_documents: list[str] = Field(default_factory=list)
    eligibility_criteria: list[str] = Field(default_factory=list)
    benefits: str = ""
    start_date: date
    end_date: date
    status: SchemeStatus = SchemeStatus.ACTIVE
    fee_amount: Decimal | None = None

    @model_validator(mode="after")
    def _check_window(self) -> Scheme:
        if self.start_date > self.end_date:
            raise ValueError("start_date must not be after end_date")
        return self


class SchemeUpdate(BaseModel):
    """Partial update applied by an administrator; ``None`` leaves a field unchanged."""

    title: str | None = None
    description: str | None = None
    required_documents: list[str] | None = None
    eligibility_criteria: list[str] | None = None
    benefits: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    status: SchemeStatus | None = None
    fee_amount: Decimal | None = None
