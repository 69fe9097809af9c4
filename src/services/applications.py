"""Application record store: submission and ownership-scoped reads.

A citizen can only see their own applications; an administrator can see
all of them.  Submission is the only way an application comes into
existence, and it does so directly in ``pending``: the documents have
already been checked against the scheme and both contact channels of the
applicant must have been verified.
"""

from __future__ import annotations

import secrets
from collections.abc import Callable, Sequence
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import structlog

from src.models.actor import Actor
from src.models.application import Application, SubmittedDocument
from src.models.enums import ApplicationStatus, AuditEventType
from src.services.documents import validate_documents
from src.services.errors import AuthorizationError, DuplicateApplicationError, NotFoundError, ValidationError
from src.services.scoring import clamp_score

if TYPE_CHECKING:
    from src.services.audit_log import AuditLog
    from src.services.catalog import SchemeCatalog
    from src.services.identity import ContactVerificationService
    from src.services.repository import ApplicationRepository
    from src.services.scoring import EligibilityScorer

logger = structlog.get_logger(__name__)

# Fresh ids drawn before giving up on a run of collisions.
_ID_ATTEMPTS = 5


def generate_application_id(now: datetime | None = None) -> str:
    """Human-readable identifier, e.g. ``APP-20240315-7F3A9C``."""
    now = now or datetime.now(UTC)
    return f"APP-{now:%Y%m%d}-{secrets.token_hex(3).upper()}"


def ensure_can_read(application: Application, actor: Actor) -> None:
    if actor.is_admin or application.applicant_id == actor.actor_id:
        return
    logger.warning(
        "applications.read_denied",
        application_id=application.application_id,
        actor_id=actor.actor_id,
    )
    raise AuthorizationError(
        "Access denied.",
        application_id=application.application_id,
        actor_id=actor.actor_id,
    )


class ApplicationStore:
    """Creates applications and serves ownership-scoped queries over the repository."""

    __slots__ = ("_audit", "_catalog", "_clock", "_repository", "_scorer", "_verification")

    def __init__(
        self,
        *,
        repository: ApplicationRepository,
        catalog: SchemeCatalog,
        verification: ContactVerificationService,
        scorer: EligibilityScorer,
        audit: AuditLog,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ) -> None:
        self._repository = repository
        self._catalog = catalog
        self._verification = verification
        self._scorer = scorer
        self._audit = audit
        self._clock = clock

    async def submit(
        self,
        applicant: Actor,
        scheme_id: str,
        documents: Sequence[SubmittedDocument],
        additional_info: str = "",
    ) -> Application:
        """Create a ``pending`` application for *applicant* against *scheme_id*.

        Raises
        ------
        AuthorizationError
            If *applicant* is not a citizen.
        NotFoundError
            If the scheme does not exist.
        MissingDocumentsError
            If a required document label has no matching upload.
        ValidationError
            If the applicant's email or phone has not been verified.
        """
        if not applicant.is_citizen:
            raise AuthorizationError("Only citizens can submit applications.", role=applicant.role)

        scheme = self._catalog.get(scheme_id)
        validate_documents(scheme.required_documents, documents)

        unverified = self._verification.unverified_channels(applicant.actor_id)
        if unverified:
            logger.info(
                "applications.contact_unverified",
                applicant_id=applicant.actor_id,
                channels=unverified,
            )
            raise ValidationError(
                "Verify your " + " and ".join(unverified) + " before submitting.",
                fields=unverified,
            )

        submitted_at = self._clock()

        async def record_submission(application: Application) -> Application:
            receipt = await self._audit.log_event(
                AuditEventType.APPLICATION_SUBMISSION,
                {
                    "application_id": application.application_id,
                    "applicant_id": application.applicant_id,
                    "scheme_id": application.scheme_id,
                    "status": application.status,
                    "documents": [d.name for d in application.documents],
                    "submitted_at": application.submitted_at,
                },
            )
            application.audit_hashes.append(receipt.hash)
            return application

        for attempt in range(1, _ID_ATTEMPTS + 1):
            application = Application(
                application_id=generate_application_id(submitted_at),
                scheme_id=scheme.scheme_id,
                applicant_id=applicant.actor_id,
                applicant_name=applicant.name,
                documents=list(documents),
                additional_info=additional_info,
                status=ApplicationStatus.PENDING,
                submitted_at=submitted_at,
            )
            score = await self._scorer.score(application, scheme)
            application.eligibility_score = clamp_score(score) if score is not None else None
            try:
                application = await self._repository.add(application, before_write=record_submission)
                break
            except DuplicateApplicationError:
                logger.warning(
                    "applications.id_collision",
                    application_id=application.application_id,
                    attempt=attempt,
                )
                if attempt == _ID_ATTEMPTS:
                    raise

        logger.info(
            "applications.submitted",
            application_id=application.application_id,
            applicant_id=application.applicant_id,
            scheme_id=application.scheme_id,
            eligibility_score=application.eligibility_score,
        )
        return application

    async def get(self, application_id: str, requesting_actor: Actor) -> Application:
        application = await self._repository.get(application_id)
        if application is None:
            raise NotFoundError("Application", application_id)
        ensure_can_read(application, requesting_actor)
        return application

    async def list_for_applicant(self, applicant_id: str, requesting_actor: Actor) -> list[Application]:
        """Applications of one applicant, newest first."""
        if not requesting_actor.is_admin and requesting_actor.actor_id != applicant_id:
            raise AuthorizationError("Access denied.", applicant_id=applicant_id)
        apps = await self._repository.by_applicant(applicant_id)
        return sorted(apps, key=lambda a: a.submitted_at, reverse=True)

    async def list_for_scheme(
        self,
        scheme_id: str,
        requesting_actor: Actor,
        status: ApplicationStatus | None = None,
        query: str | None = None,
    ) -> list[Application]:
        """Admin-only listing for one scheme, optionally filtered by status and search text."""
        _require_admin(requesting_actor, "list_for_scheme")
        self._catalog.get(scheme_id)
        apps = await self._repository.by_scheme(scheme_id, status)
        apps = self.filter_by_query(apps, query)
        return sorted(apps, key=lambda a: a.submitted_at, reverse=True)

    def filter_by_query(self, applications: Sequence[Application], query: str | None) -> list[Application]:
        """Keep applications whose applicant name or scheme title contains *query*.

        Matching is case-insensitive; a blank query keeps everything.
        """
        needle = (query or "").strip().casefold()
        if not needle:
            return list(applications)
        titles: dict[str, str] = {}
        matched: list[Application] = []
        for app in applications:
            if app.scheme_id not in titles:
                try:
                    titles[app.scheme_id] = self._catalog.get(app.scheme_id).title
                except NotFoundError:
                    titles[app.scheme_id] = ""
            if needle in app.applicant_name.casefold() or needle in titles[app.scheme_id].casefold():
                matched.append(app)
        return matched

    async def stats(self, requesting_actor: Actor) -> dict[str, Any]:
        """Application counts by status, overall and for every catalogued scheme."""
        _require_admin(requesting_actor, "stats")
        counts = await self._repository.status_counts()

        def tally(scheme_id: str | None = None) -> dict[str, int]:
            row = {str(status): 0 for status in ApplicationStatus}
            for (sid, status), n in counts.items():
                if scheme_id is None or sid == scheme_id:
                    row[str(status)] += n
            row["total"] = sum(row.values())
            return row

        return {
            **tally(),
            "by_scheme": [
                {"scheme_id": scheme.scheme_id, "title": scheme.title, **tally(scheme.scheme_id)}
                for scheme in self._catalog.list_schemes()
            ],
        }


def _require_admin(actor: Actor, operation: str) -> None:
    if actor.is_admin:
        return
    logger.warning("applications.admin_required", actor_id=actor.actor_id, operation=operation)
    raise AuthorizationError("Only administrators can view scheme applications.", role=actor.role)
