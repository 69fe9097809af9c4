"""Application repository: primary store plus the queries the workflow needs.

The repository is injected into the services, so tests run against the
in-memory backend and a persistent backend can be dropped in without
touching the lifecycle code.  Writes after creation go through
:meth:`replace`, which performs an optimistic version check.

Both :meth:`add` and :meth:`replace` accept a ``before_write`` hook.  It
runs after the duplicate/version check and before the record is stored,
inside the same critical section, so a write that is going to be refused
never reaches the hook.  The services use it to append the audit event.
"""

from __future__ import annotations

import asyncio
from collections import defaultdict
from collections.abc import Awaitable, Callable
from typing import Protocol, runtime_checkable

import structlog

from src.models.application import Application
from src.models.enums import ApplicationStatus
from src.services.errors import ConcurrentModificationError, DuplicateApplicationError, NotFoundError

logger = structlog.get_logger(__name__)

BeforeWrite = Callable[[Application], Awaitable[Application]]


# ---------------------------------------------------------------------------
# Repository protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class ApplicationRepository(Protocol):
    """Async storage interface for :class:`Application` records."""

    async def add(self, application: Application, *, before_write: BeforeWrite | None = None) -> Application: ...

    async def get(self, application_id: str) -> Application | None: ...

    async def replace(
        self,
        application: Application,
        *,
        expected_version: int,
        before_write: BeforeWrite | None = None,
    ) -> Application: ...

    async def by_applicant(self, applicant_id: str) -> list[Application]: ...

    async def by_scheme(
        self,
        scheme_id: str | None,
        status: ApplicationStatus | None = None,
    ) -> list[Application]: ...

    async def status_counts(self) -> dict[tuple[str, ApplicationStatus], int]: ...


# ---------------------------------------------------------------------------
# In-memory backend
# ---------------------------------------------------------------------------


class InMemoryApplicationRepository:
    """Dict-backed repository with secondary indexes.

    Indexes: applicant id -> application ids, and (scheme id, status) ->
    application ids for the admin queue.  Stored records are copies; callers
    never hold a reference to the canonical instance.
    """

    __slots__ = ("_by_applicant", "_by_scheme_status", "_data", "_lock")

    def __init__(self) -> None:
        self._data: dict[str, Application] = {}
        self._by_applicant: dict[str, list[str]] = defaultdict(list)
        self._by_scheme_status: dict[tuple[str, ApplicationStatus], list[str]] = defaultdict(list)
        self._lock = asyncio.Lock()

    async def add(self, application: Application, *, before_write: BeforeWrite | None = None) -> Application:
        async with self._lock:
            if application.application_id in self._data:
                raise DuplicateApplicationError(application.application_id)
            if before_write is not None:
                application = await before_write(application.model_copy(deep=True))
            stored = application.model_copy(deep=True)
            self._data[stored.application_id] = stored
            self._by_applicant[stored.applicant_id].append(stored.application_id)
            self._by_scheme_status[(stored.scheme_id, stored.status)].append(stored.application_id)
            return stored.model_copy(deep=True)

    async def get(self, application_id: str) -> Application | None:
        stored = self._data.get(application_id)
        return stored.model_copy(deep=True) if stored is not None else None

    async def replace(
        self,
        application: Application,
        *,
        expected_version: int,
        before_write: BeforeWrite | None = None,
    ) -> Application:
        """Store *application* if the stored version still equals *expected_version*.

        The stored version is bumped by one; the returned copy carries it.
        """
        async with self._lock:
            current = self._data.get(application.application_id)
            if current is None:
                raise NotFoundError("Application", application.application_id)
            if current.version != expected_version:
                logger.warning(
                    "repository.version_conflict",
                    application_id=application.application_id,
                    expected_version=expected_version,
                    actual_version=current.version,
                )
                raise ConcurrentModificationError(
                    application.application_id, expected_version, current.version
                )

            if before_write is not None:
                application = await before_write(application.model_copy(deep=True))
            stored = application.model_copy(deep=True, update={"version": current.version + 1})
            if current.status != stored.status:
                self._by_scheme_status[(current.scheme_id, current.status)].remove(stored.application_id)
                self._by_scheme_status[(stored.scheme_id, stored.status)].append(stored.application_id)
            self._data[stored.application_id] = stored
            return stored.model_copy(deep=True)

    async def by_applicant(self, applicant_id: str) -> list[Application]:
        ids = list(self._by_applicant.get(applicant_id, ()))
        return [self._data[i].model_copy(deep=True) for i in ids]

    async def by_scheme(
        self,
        scheme_id: str | None,
        status: ApplicationStatus | None = None,
    ) -> list[Application]:
        if scheme_id is None:
            apps = list(self._data.values())
            if status is not None:
                apps = [a for a in apps if a.status == status]
            return [a.model_copy(deep=True) for a in apps]

        statuses = [status] if status is not None else list(ApplicationStatus)
        ids: list[str] = []
        for st in statuses:
            ids.extend(self._by_scheme_status.get((scheme_id, st), ()))
        return [self._data[i].model_copy(deep=True) for i in ids]

    async def status_counts(self) -> dict[tuple[str, ApplicationStatus], int]:
        """Number of applications per ``(scheme_id, status)``, read off the index."""
        return {key: len(ids) for key, ids in self._by_scheme_status.items() if ids}

    @property
    def size(self) -> int:
        return len(self._data)
