"""Domain error taxonomy for the application lifecycle.

Every error carries a machine-readable ``kind`` and a ``details`` dict
so the calling layer can render an actionable message.  The HTTP layer
maps each class to a status code in :mod:`src.main`.
"""

from __future__ import annotations

from typing import Any


class AidLedgerError(Exception):
    """Base class for all lifecycle errors."""

    kind: str = "error"

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details: dict[str, Any] = details

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.kind, "message": self.message, "details": self.details}


class ValidationError(AidLedgerError):
    """Malformed or incomplete input; the caller may correct it and retry."""

    kind = "validation_error"

    def __init__(self, message: str, *, fields: list[str] | None = None, **details: Any) -> None:
        super().__init__(message, fields=list(fields or []), **details)
        self.fields: list[str] = list(fields or [])


class MissingDocumentsError(ValidationError):
    """One or more required document labels had no matching upload."""

    kind = "missing_documents"

    def __init__(self, missing_labels: list[str]) -> None:
        super().__init__(
            "Missing required documents: " + ", ".join(missing_labels),
            fields=["documents"],
            missing_labels=list(missing_labels),
        )
        self.missing_labels: list[str] = list(missing_labels)


class AuthenticationError(AidLedgerError):
    """No valid session, or credentials were rejected."""

    kind = "authentication_error"


class AuthorizationError(AidLedgerError):
    """The actor lacks the role or ownership required for the operation."""

    kind = "authorization_error"


class NotFoundError(AidLedgerError):
    kind = "not_found"

    def __init__(self, resource: str, identifier: str) -> None:
        super().__init__(f"{resource} '{identifier}' not found.", resource=resource, identifier=identifier)


class InvalidStateTransitionError(AidLedgerError):
    """Well-formed request that is illegal in the application's current state."""

    kind = "invalid_state_transition"

    def __init__(
        self,
        message: str,
        *,
        current_state: str,
        attempted: str,
        payment_status: str | None = None,
    ) -> None:
        super().__init__(
            message,
            current_state=current_state,
            attempted=attempted,
            payment_status=payment_status,
        )
        self.current_state = current_state
        self.attempted = attempted


class ConcurrentModificationError(AidLedgerError):
    """Optimistic-lock conflict; refetch and retry once."""

    kind = "concurrent_modification"

    def __init__(self, application_id: str, expected_version: int, actual_version: int) -> None:
        super().__init__(
            f"Application '{application_id}' was modified concurrently.",
            application_id=application_id,
            expected_version=expected_version,
            actual_version=actual_version,
        )


class DuplicateApplicationError(AidLedgerError):
    """An application with the same id already exists."""

    kind = "duplicate_application"

    def __init__(self, application_id: str) -> None:
        super().__init__(f"Application '{application_id}' already exists.", application_id=application_id)
        self.application_id = application_id
