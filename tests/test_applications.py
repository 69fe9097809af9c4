"""Tests for application submission and ownership-scoped reads."""

from __future__ import annotations

import re

import pytest
from conftest import StepClock, education_documents

from src.models.actor import Actor
from src.models.application import SubmittedDocument
from src.models.enums import ApplicationStatus, AuditEventType, ContactChannel
from src.services import applications as applications_module
from src.services.applications import ApplicationStore, generate_application_id
from src.services.audit_log import AuditLog, content_hash
from src.services.catalog import SchemeCatalog
from src.services.errors import (
    AuthorizationError,
    DuplicateApplicationError,
    MissingDocumentsError,
    NotFoundError,
    ValidationError,
)
from src.services.identity import ContactVerificationService
from src.services.repository import InMemoryApplicationRepository
from src.services.review import ReviewWorkflow
from src.services.scoring import FixedEligibilityScorer


class TestGenerateApplicationId:
    def test_format(self, clock: StepClock) -> None:
        app_id = generate_application_id(clock())
        assert re.fullmatch(r"APP-20240601-[0-9A-F]{6}", app_id)


class TestSubmit:
    async def test_creates_pending_application(
        self, store: ApplicationStore, citizen: Actor, repository: InMemoryApplicationRepository
    ) -> None:
        app = await store.submit(citizen, "edu-support", education_documents(), "first year")

        assert app.status == ApplicationStatus.PENDING
        assert app.payment_status is None
        assert app.applicant_id == citizen.actor_id
        assert app.applicant_name == "John Doe"
        assert app.additional_info == "first year"
        assert app.eligibility_score is not None and 0 <= app.eligibility_score <= 100
        assert app.reviewed_by is None
        assert repository.size == 1

    async def test_audits_submission(
        self, store: ApplicationStore, citizen: Actor, audit_log: AuditLog
    ) -> None:
        app = await store.submit(citizen, "edu-support", education_documents())

        events = audit_log.events(AuditEventType.APPLICATION_SUBMISSION)
        assert len(events) == 1
        assert events[0].payload["application_id"] == app.application_id
        assert app.audit_hashes == [events[0].hash]
        assert events[0].hash == content_hash(events[0].payload)

    async def test_missing_document_rejected(
        self, store: ApplicationStore, citizen: Actor, repository: InMemoryApplicationRepository, audit_log: AuditLog
    ) -> None:
        docs = education_documents()[:2]
        with pytest.raises(MissingDocumentsError) as exc_info:
            await store.submit(citizen, "edu-support", docs)
        assert exc_info.value.missing_labels == ["Previous Year Marksheet"]
        assert repository.size == 0, "no application is created"
        assert audit_log.size == 0

    async def test_unknown_scheme(self, store: ApplicationStore, citizen: Actor) -> None:
        with pytest.raises(NotFoundError):
            await store.submit(citizen, "nope", education_documents())

    async def test_admin_cannot_submit(self, store: ApplicationStore, admin: Actor) -> None:
        with pytest.raises(AuthorizationError):
            await store.submit(admin, "edu-support", education_documents())

    async def test_requires_verified_contacts(
        self,
        repository: InMemoryApplicationRepository,
        catalog: SchemeCatalog,
        audit_log: AuditLog,
        citizen: Actor,
    ) -> None:
        verification = ContactVerificationService()
        verification.mark_verified(citizen.actor_id, ContactChannel.EMAIL)
        store = ApplicationStore(
            repository=repository,
            catalog=catalog,
            verification=verification,
            scorer=FixedEligibilityScorer(50),
            audit=audit_log,
        )
        with pytest.raises(ValidationError) as exc_info:
            await store.submit(citizen, "edu-support", education_documents())
        assert exc_info.value.fields == ["phone"]
        assert repository.size == 0

    async def test_same_scheme_twice_is_allowed(self, store: ApplicationStore, citizen: Actor) -> None:
        first = await store.submit(citizen, "edu-support", education_documents())
        second = await store.submit(citizen, "edu-support", education_documents())
        assert first.application_id != second.application_id

    async def test_unscored_when_scorer_abstains(
        self,
        repository: InMemoryApplicationRepository,
        catalog: SchemeCatalog,
        verification: ContactVerificationService,
        audit_log: AuditLog,
        citizen: Actor,
    ) -> None:
        store = ApplicationStore(
            repository=repository,
            catalog=catalog,
            verification=verification,
            scorer=FixedEligibilityScorer(None),
            audit=audit_log,
        )
        app = await store.submit(citizen, "housing", [SubmittedDocument(name="Aadhaar Card", storage_ref="s3://a")])
        assert app.eligibility_score is None


class TestReads:
    async def test_owner_and_admin_can_read(self, store: ApplicationStore, citizen: Actor, admin: Actor) -> None:
        app = await store.submit(citizen, "edu-support", education_documents())
        assert (await store.get(app.application_id, citizen)).application_id == app.application_id
        assert (await store.get(app.application_id, admin)).application_id == app.application_id

    async def test_other_citizen_denied(
        self, store: ApplicationStore, citizen: Actor, other_citizen: Actor
    ) -> None:
        app = await store.submit(citizen, "edu-support", education_documents())
        with pytest.raises(AuthorizationError):
            await store.get(app.application_id, other_citizen)

    async def test_get_unknown(self, store: ApplicationStore, citizen: Actor) -> None:
        with pytest.raises(NotFoundError):
            await store.get("APP-00000000-000000", citizen)

    async def test_list_for_applicant_newest_first(self, store: ApplicationStore, citizen: Actor) -> None:
        first = await store.submit(citizen, "edu-support", education_documents())
        second = await store.submit(citizen, "edu-support", education_documents())
        listed = await store.list_for_applicant(citizen.actor_id, citizen)
        assert [a.application_id for a in listed] == [second.application_id, first.application_id]

    async def test_list_for_other_applicant_denied(
        self, store: ApplicationStore, citizen: Actor, other_citizen: Actor, admin: Actor
    ) -> None:
        await store.submit(citizen, "edu-support", education_documents())
        with pytest.raises(AuthorizationError):
            await store.list_for_applicant(citizen.actor_id, other_citizen)
        assert len(await store.list_for_applicant(citizen.actor_id, admin)) == 1

    async def test_list_for_scheme_is_admin_only(
        self, store: ApplicationStore, citizen: Actor, admin: Actor
    ) -> None:
        await store.submit(citizen, "edu-support", education_documents())
        with pytest.raises(AuthorizationError):
            await store.list_for_scheme("edu-support", citizen)
        assert len(await store.list_for_scheme("edu-support", admin)) == 1
        assert await store.list_for_scheme("edu-support", admin, ApplicationStatus.APPROVED) == []
        with pytest.raises(NotFoundError):
            await store.list_for_scheme("nope", admin)


class TestIdCollisions:
    async def test_colliding_id_is_redrawn(
        self,
        store: ApplicationStore,
        citizen: Actor,
        repository: InMemoryApplicationRepository,
        audit_log: AuditLog,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        ids = iter(["APP-20240601-AAAAAA", "APP-20240601-AAAAAA", "APP-20240601-BBBBBB"])
        monkeypatch.setattr(applications_module, "generate_application_id", lambda now=None: next(ids))

        first = await store.submit(citizen, "edu-support", education_documents())
        second = await store.submit(citizen, "edu-support", education_documents())

        assert first.application_id == "APP-20240601-AAAAAA"
        assert second.application_id == "APP-20240601-BBBBBB"
        assert repository.size == 2
        events = audit_log.events(AuditEventType.APPLICATION_SUBMISSION)
        assert [e.payload["application_id"] for e in events] == [first.application_id, second.application_id]

    async def test_persistent_collision_raises_without_audit_event(
        self,
        store: ApplicationStore,
        citizen: Actor,
        repository: InMemoryApplicationRepository,
        audit_log: AuditLog,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setattr(applications_module, "generate_application_id", lambda now=None: "APP-20240601-AAAAAA")
        await store.submit(citizen, "edu-support", education_documents())

        with pytest.raises(DuplicateApplicationError):
            await store.submit(citizen, "edu-support", education_documents())
        assert repository.size == 1
        assert audit_log.size == 1


# -----------------------------------------------------------------------
# Admin search and counts
# -----------------------------------------------------------------------


class TestSearchAndStats:
    async def test_filter_by_applicant_name_or_scheme_title(
        self, store: ApplicationStore, citizen: Actor, other_citizen: Actor, admin: Actor
    ) -> None:
        mine = await store.submit(citizen, "edu-support", education_documents())
        theirs = await store.submit(other_citizen, "edu-support", education_documents())
        housing = await store.submit(
            citizen, "housing", [SubmittedDocument(name="Aadhaar Card", storage_ref="s3://a")]
        )

        by_name = await store.list_for_scheme("edu-support", admin, query="JOHN")
        assert [a.application_id for a in by_name] == [mine.application_id]

        everything = [mine, theirs, housing]
        by_title = store.filter_by_query(everything, "housing aid")
        assert [a.application_id for a in by_title] == [housing.application_id]
        assert store.filter_by_query(everything, "  ") == everything
        assert store.filter_by_query(everything, "nobody") == []

    async def test_stats_counts_by_status_and_scheme(
        self,
        store: ApplicationStore,
        review: ReviewWorkflow,
        citizen: Actor,
        admin: Actor,
    ) -> None:
        first = await store.submit(citizen, "edu-support", education_documents())
        second = await store.submit(citizen, "edu-support", education_documents())
        await store.submit(citizen, "housing", [SubmittedDocument(name="Aadhaar Card", storage_ref="s3://a")])
        await review.approve(first.application_id, admin)
        await review.reject(second.application_id, admin, "Ineligible")

        stats = await store.stats(admin)

        assert (stats["total"], stats["pending"], stats["approved"], stats["rejected"]) == (3, 1, 1, 1)
        per_scheme = {row["scheme_id"]: row for row in stats["by_scheme"]}
        assert per_scheme["edu-support"]["total"] == 2
        assert per_scheme["edu-support"]["pending"] == 0
        assert per_scheme["housing"] == {
            "scheme_id": "housing",
            "title": "Housing Aid",
            "pending": 1,
            "approved": 0,
            "rejected": 0,
            "total": 1,
        }

    async def test_stats_is_admin_only(self, store: ApplicationStore, citizen: Actor) -> None:
        with pytest.raises(AuthorizationError):
            await store.stats(citizen)
