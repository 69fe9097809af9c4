"""Audit trail models.

Every lifecycle transition and payment produces one :class:`AuditEvent`.
Events are append-only; the ``hash`` is a SHA-256 content hash of the
payload and is stored alongside the entity that triggered it.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field

from src.models.enums import AuditEventType


class AuditReceipt(BaseModel):
    """What the audit log hands back to the caller for a logged event."""

    model_config = {"frozen": True}

    hash: str
    sequence_number: int


class AuditEvent(BaseModel):
    model_config = {"frozen": True}

    sequence_number: int
    event_type: AuditEventType
    payload: dict[str, Any] = Field(default_factory=dict)
    hash: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def subject_ids(self) -> list[str]:
        """Identifiers the event refers to (application, applicant, scheme, actor)."""
        keys = ("application_id", "applicant_id", "scheme_id", "actor_id")
        return [str(self.payload[k]) for k in keys if self.payload.get(k)]
