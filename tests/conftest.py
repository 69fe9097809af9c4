"""Shared fixtures: a fully wired in-memory lifecycle with controllable clocks."""

from __future__ import annotations

import asyncio
from datetime import UTC, date, datetime, timedelta

import pytest

from src.models.actor import Actor
from src.models.application import SubmittedDocument
from src.models.enums import ContactChannel, Role, SchemeStatus
from src.models.scheme import Scheme
from src.services.applications import ApplicationStore
from src.services.audit_log import AuditLog
from src.services.catalog import SchemeCatalog
from src.services.identity import ContactVerificationService
from src.services.payments import PaymentService
from src.services.repository import InMemoryApplicationRepository
from src.services.review import ApplicationLocks, ReviewWorkflow
from src.services.scoring import HashEligibilityScorer

EDUCATION_DOCS = ["Aadhaar Card", "Income Certificate", "Previous Year Marksheet"]


class StepClock:
    """Returns a strictly increasing UTC datetime on every call."""

    def __init__(self, start: datetime | None = None, step: timedelta = timedelta(seconds=1)) -> None:
        self.now = start or datetime(2024, 6, 1, 9, 0, tzinfo=UTC)
        self.step = step

    def __call__(self) -> datetime:
        current = self.now
        self.now += self.step
        return current


class FakeMonotonic:
    """Manually advanced replacement for ``time.monotonic``."""

    def __init__(self) -> None:
        self.value = 1_000.0

    def __call__(self) -> float:
        return self.value

    def advance(self, seconds: float) -> None:
        self.value += seconds


class YieldingAuditLog(AuditLog):
    """Audit log whose writes suspend once before recording, like a sink doing real I/O."""

    async def log_event(self, event_type, payload):  # type: ignore[no-untyped-def]
        await asyncio.sleep(0)
        return await super().log_event(event_type, payload)


def education_scheme() -> Scheme:
    return Scheme(
        scheme_id="edu-support",
        title="Education Support",
        description="Tuition assistance",
        required_documents=list(EDUCATION_DOCS),
        eligibility_criteria=["Enrolled student"],
        start_date=date(2024, 1, 1),
        end_date=date(2027, 12, 31),
        status=SchemeStatus.ACTIVE,
    )


def housing_scheme() -> Scheme:
    return Scheme(
        scheme_id="housing",
        title="Housing Aid",
        description="Housing grant",
        required_documents=["Aadhaar Card"],
        start_date=date(2024, 1, 1),
        end_date=date(2026, 12, 31),
    )


def education_documents() -> list[SubmittedDocument]:
    return [
        SubmittedDocument(name="aadhaar card - front.pdf", storage_ref="s3://docs/aadhaar.pdf"),
        SubmittedDocument(name="Income Certificate 2024", storage_ref="s3://docs/income.pdf"),
        SubmittedDocument(name="Previous Year Marksheet", storage_ref="s3://docs/marks.pdf"),
    ]


@pytest.fixture
def citizen() -> Actor:
    return Actor(
        actor_id="user-1",
        role=Role.CITIZEN,
        name="John Doe",
        email="user@example.com",
        phone="9876543210",
    )


@pytest.fixture
def other_citizen() -> Actor:
    return Actor(
        actor_id="user-2",
        role=Role.CITIZEN,
        name="Jane Smith",
        email="jane@example.com",
        phone="9123456780",
    )


@pytest.fixture
def admin() -> Actor:
    return Actor(actor_id="admin-1", role=Role.ADMIN, name="Admin User", email="admin@example.com")


@pytest.fixture
def clock() -> StepClock:
    return StepClock()


@pytest.fixture
def monotonic() -> FakeMonotonic:
    return FakeMonotonic()


@pytest.fixture
def audit_log() -> AuditLog:
    return AuditLog()


@pytest.fixture
def catalog() -> SchemeCatalog:
    return SchemeCatalog([education_scheme(), housing_scheme()])


@pytest.fixture
def verification(monotonic: FakeMonotonic, citizen: Actor, other_citizen: Actor) -> ContactVerificationService:
    service = ContactVerificationService(clock=monotonic, code_factory=lambda n: "123456"[:n])
    for actor in (citizen, other_citizen):
        service.mark_verified(actor.actor_id, ContactChannel.EMAIL)
        service.mark_verified(actor.actor_id, ContactChannel.PHONE)
    return service


@pytest.fixture
def repository() -> InMemoryApplicationRepository:
    return InMemoryApplicationRepository()


@pytest.fixture
def locks() -> ApplicationLocks:
    return ApplicationLocks()


@pytest.fixture
def store(
    repository: InMemoryApplicationRepository,
    catalog: SchemeCatalog,
    verification: ContactVerificationService,
    audit_log: AuditLog,
    clock: StepClock,
) -> ApplicationStore:
    return ApplicationStore(
        repository=repository,
        catalog=catalog,
        verification=verification,
        scorer=HashEligibilityScorer(),
        audit=audit_log,
        clock=clock,
    )


@pytest.fixture
def review(
    repository: InMemoryApplicationRepository,
    audit_log: AuditLog,
    locks: ApplicationLocks,
    clock: StepClock,
) -> ReviewWorkflow:
    return ReviewWorkflow(repository=repository, audit=audit_log, locks=locks, clock=clock)


@pytest.fixture
def payments(
    repository: InMemoryApplicationRepository,
    audit_log: AuditLog,
    locks: ApplicationLocks,
    clock: StepClock,
) -> PaymentService:
    return PaymentService(repository=repository, audit=audit_log, locks=locks, clock=clock)
