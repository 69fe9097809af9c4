"""Review workflow: the application state machine.

States and legal transitions::

    pending ──approve (admin)──▶ approved / payment_pending ──pay (owner)──▶ payment_completed
       │
       └────reject (admin, reason)──▶ rejected

``approved`` and ``rejected`` are terminal review states.  A rejected
applicant may submit a *new* application for the same scheme; the
rejected record is never reopened.  The payment sub-status exists only
once an application is approved.

Every transition runs as a critical section: a per-application
:class:`asyncio.Lock` serialises transitions within the process, and the
repository's optimistic version check rejects writes based on a stale
read.  Preconditions, including the version check, are evaluated before
anything is written or logged, so a failed transition leaves no trace.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Final
from uuid import uuid4

import structlog

from src.models.actor import Actor
from src.models.application import Application
from src.models.enums import (
    ApplicationStatus,
    AuditEventType,
    PaymentStatus,
    ReviewDecision,
    Role,
)
from src.services.errors import (
    AuthorizationError,
    InvalidStateTransitionError,
    NotFoundError,
    ValidationError,
)

if TYPE_CHECKING:
    from src.services.audit_log import AuditLog
    from src.services.repository import ApplicationRepository

logger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Transition table
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Transition:
    """One legal edge of the lifecycle and the role allowed to fire it."""

    from_state: str
    to_state: str
    action: str
    role: Role


TRANSITIONS: Final[tuple[Transition, ...]] = (
    Transition(ApplicationStatus.PENDING, ApplicationStatus.APPROVED, "approve", Role.ADMIN),
    Transition(ApplicationStatus.PENDING, ApplicationStatus.REJECTED, "reject", Role.ADMIN),
    Transition(PaymentStatus.PAYMENT_PENDING, PaymentStatus.PAYMENT_COMPLETED, "pay", Role.CITIZEN),
)


def lifecycle_state(application: Application) -> str:
    """Collapse review status and payment sub-status into one state name."""
    if application.status == ApplicationStatus.APPROVED and application.payment_status is not None:
        return str(application.payment_status)
    return str(application.status)


def find_transition(application: Application, action: str) -> Transition:
    """Return the transition for *action* from the application's current state.

    Raises :class:`InvalidStateTransitionError` when no such edge exists.
    """
    state = lifecycle_state(application)
    for transition in TRANSITIONS:
        if transition.action == action and transition.from_state == state:
            return transition
    raise InvalidStateTransitionError(
        f"Cannot {action} an application that is {state}.",
        current_state=str(application.status),
        attempted=action,
        payment_status=str(application.payment_status) if application.payment_status else None,
    )


# ---------------------------------------------------------------------------
# Per-application locks
# ---------------------------------------------------------------------------


class ApplicationLocks:
    """Lazily created :class:`asyncio.Lock` per application id."""

    __slots__ = ("_locks",)

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}

    @asynccontextmanager
    async def hold(self, application_id: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(application_id, asyncio.Lock())
        async with lock:
            yield


def generate_disbursement_reference() -> str:
    return f"DISB-{uuid4().hex[:12].upper()}"


# ---------------------------------------------------------------------------
# ReviewWorkflow
# ---------------------------------------------------------------------------


class ReviewWorkflow:
    """Admin decisions on applications plus the ranked review queue."""

    __slots__ = ("_audit", "_clock", "_locks", "_repository")

    def __init__(
        self,
        *,
        repository: ApplicationRepository,
        audit: AuditLog,
        locks: ApplicationLocks | None = None,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ) -> None:
        self._repository = repository
        self._audit = audit
        self._locks = locks or ApplicationLocks()
        self._clock = clock

    @property
    def locks(self) -> ApplicationLocks:
        return self._locks

    async def approve(self, application_id: str, actor: Actor) -> Application:
        """Move a ``pending`` application to ``approved`` and open its payment step."""
        _require_admin(actor, "approve")

        async with self._locks.hold(application_id):
            current = await self._load(application_id)
            find_transition(current, "approve")

            reviewed_at = self._clock()
            updated = current.model_copy(
                deep=True,
                update={
                    "status": ApplicationStatus.APPROVED,
                    "payment_status": PaymentStatus.PAYMENT_PENDING,
                    "reviewed_by": actor.actor_id,
                    "reviewed_at": reviewed_at,
                    "rejection_reason": None,
                    "disbursement_reference": generate_disbursement_reference(),
                },
            )
            stored = await self._commit(current, updated, actor, "approve")

        logger.info(
            "review.approved",
            application_id=application_id,
            reviewed_by=actor.actor_id,
            disbursement_reference=stored.disbursement_reference,
        )
        return stored

    async def reject(self, application_id: str, actor: Actor, reason: str | None) -> Application:
        """Move a ``pending`` application to ``rejected``; *reason* is stored verbatim."""
        _require_admin(actor, "reject")
        if reason is None or not reason.strip():
            raise ValidationError("A rejection reason is required.", fields=["rejection_reason"])

        async with self._locks.hold(application_id):
            current = await self._load(application_id)
            find_transition(current, "reject")

            updated = current.model_copy(
                deep=True,
                update={
                    "status": ApplicationStatus.REJECTED,
                    "reviewed_by": actor.actor_id,
                    "reviewed_at": self._clock(),
                    "rejection_reason": reason,
                },
            )
            stored = await self._commit(current, updated, actor, "reject")

        logger.info("review.rejected", application_id=application_id, reviewed_by=actor.actor_id)
        return stored

    async def decide(
        self,
        application_id: str,
        actor: Actor,
        decision: ReviewDecision | str,
        reason: str | None = None,
    ) -> Application:
        decision = ReviewDecision(decision)
        if decision == ReviewDecision.APPROVE:
            return await self.approve(application_id, actor)
        return await self.reject(application_id, actor, reason)

    async def review_queue(
        self,
        actor: Actor,
        scheme_id: str | None = None,
        status: ApplicationStatus | None = ApplicationStatus.PENDING,
    ) -> list[Application]:
        """Applications ranked for review.

        Ordered by eligibility score descending (unscored last), ties broken
        by submission time ascending.
        """
        _require_admin(actor, "review_queue")
        apps = await self._repository.by_scheme(scheme_id, status)
        return sorted(apps, key=queue_sort_key)

    # -- internals ---------------------------------------------------------

    async def _load(self, application_id: str) -> Application:
        application = await self._repository.get(application_id)
        if application is None:
            raise NotFoundError("Application", application_id)
        return application

    async def _commit(
        self,
        current: Application,
        updated: Application,
        actor: Actor,
        action: str,
    ) -> Application:
        """Write *updated*; the audit event is logged only once the version check passed."""

        async def record_status_change(application: Application) -> Application:
            receipt = await self._audit.log_event(
                AuditEventType.STATUS_CHANGE,
                {
                    "application_id": application.application_id,
                    "applicant_id": application.applicant_id,
                    "scheme_id": application.scheme_id,
                    "actor_id": actor.actor_id,
                    "action": action,
                    "from_status": current.status,
                    "to_status": application.status,
                    "rejection_reason": application.rejection_reason,
                    "disbursement_reference": application.disbursement_reference,
                    "reviewed_at": application.reviewed_at,
                },
            )
            application.audit_hashes.append(receipt.hash)
            return application

        return await self._repository.replace(
            updated,
            expected_version=current.version,
            before_write=record_status_change,
        )


def queue_sort_key(application: Application) -> tuple[bool, int, datetime]:
    score = application.eligibility_score
    return (score is None, -(score or 0), application.submitted_at)


def _require_admin(actor: Actor, action: str) -> None:
    if actor.is_admin:
        return
    logger.warning("review.admin_required", actor_id=actor.actor_id, action=action)
    raise AuthorizationError(
        "Only administrators can review applications.",
        action=action,
        role=actor.role,
    )
