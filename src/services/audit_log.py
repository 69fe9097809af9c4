"""Append-only audit log for lifecycle transitions, logins and payments.

Each event payload is serialised to canonical JSON (sorted keys) with
orjson and hashed with SHA-256.  The hash is deterministic for a given
payload, so callers can persist it next to the entity and later ask the
log to :meth:`AuditLog.verify` that the stored payload still matches.

Sequence numbers form a single total order across every event type.
There is no chaining between events and no consensus; this is a
content-addressed log, not a ledger.
"""

from __future__ import annotations

import asyncio
import hashlib
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Final

import orjson
import structlog

from src.models.audit import AuditEvent, AuditReceipt
from src.models.enums import AuditEventType
from src.services.errors import NotFoundError

logger = structlog.get_logger(__name__)

# Keep the in-memory history bounded; older events are dropped from the
# buffer but sequence numbers keep increasing.
_MAX_BUFFER_SIZE: Final[int] = 100_000


def _json_default(obj: Any) -> Any:
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, set):
        return sorted(obj)
    raise TypeError(f"Type is not JSON serializable: {type(obj).__name__}")


def content_hash(payload: dict[str, Any]) -> str:
    """Return the SHA-256 hex digest of *payload* in canonical JSON form."""
    raw = orjson.dumps(payload, default=_json_default, option=orjson.OPT_SORT_KEYS)
    return hashlib.sha256(raw).hexdigest()


class AuditLog:
    """In-memory, append-only event sink with a monotonic sequence allocator."""

    __slots__ = ("_events", "_lock", "_next_sequence")

    def __init__(self) -> None:
        self._events: list[AuditEvent] = []
        self._lock = asyncio.Lock()
        self._next_sequence = 1

    async def log_event(self, event_type: AuditEventType | str, payload: dict[str, Any]) -> AuditReceipt:
        """Append an event and return its hash and sequence number."""
        event_type = AuditEventType(event_type)
        # Freeze the payload as JSON-safe primitives so later mutation of the
        # caller's dict cannot change what was hashed.
        frozen_payload = orjson.loads(orjson.dumps(payload, default=_json_default))
        digest = content_hash(frozen_payload)

        async with self._lock:
            sequence_number = self._next_sequence
            self._next_sequence += 1
            event = AuditEvent(
                sequence_number=sequence_number,
                event_type=event_type,
                payload=frozen_payload,
                hash=digest,
            )
            self._events.append(event)
            if len(self._events) > _MAX_BUFFER_SIZE:
                self._events = self._events[-_MAX_BUFFER_SIZE:]

        logger.info(
            "audit.event_logged",
            event_type=event_type,
            sequence_number=sequence_number,
            hash=digest,
        )
        return AuditReceipt(hash=digest, sequence_number=sequence_number)

    def events(
        self,
        event_type: AuditEventType | str | None = None,
        subject_id: str | None = None,
    ) -> list[AuditEvent]:
        """Return logged events in sequence order, optionally filtered."""
        result: list[AuditEvent] = []
        for event in self._events:
            if event_type is not None and event.event_type != event_type:
                continue
            if subject_id is not None and subject_id not in event.subject_ids:
                continue
            result.append(event)
        return result

    def verify(self, sequence_number: int) -> bool:
        """Recompute the hash of a stored event and compare it with the recorded one.

        Raises :class:`NotFoundError` when no buffered event has *sequence_number*.
        """
        for event in self._events:
            if event.sequence_number == sequence_number:
                return content_hash(event.payload) == event.hash
        raise NotFoundError("AuditEvent", str(sequence_number))

    @property
    def size(self) -> int:
        return len(self._events)

    @property
    def last_sequence_number(self) -> int:
        return self._next_sequence - 1
