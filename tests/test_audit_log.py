"""Tests for the append-only audit log."""

from __future__ import annotations

import asyncio
import hashlib
from datetime import UTC, datetime
from decimal import Decimal

import orjson
import pytest

from src.models.enums import AuditEventType
from src.services.audit_log import AuditLog, content_hash
from src.services.errors import NotFoundError


class TestContentHash:
    def test_deterministic_and_key_order_independent(self) -> None:
        a = content_hash({"b": 2, "a": 1})
        b = content_hash({"a": 1, "b": 2})
        assert a == b, "hash must not depend on key insertion order"

    def test_is_sha256_of_sorted_json(self) -> None:
        payload = {"z": "last", "a": "first"}
        expected = hashlib.sha256(orjson.dumps(payload, option=orjson.OPT_SORT_KEYS)).hexdigest()
        assert content_hash(payload) == expected

    def test_different_payloads_differ(self) -> None:
        assert content_hash({"a": 1}) != content_hash({"a": 2})

    def test_handles_decimal_and_datetime(self) -> None:
        payload = {"total": Decimal("515.30"), "at": datetime(2024, 1, 1, tzinfo=UTC)}
        assert len(content_hash(payload)) == 64


class TestAuditLog:
    async def test_log_event_returns_receipt(self) -> None:
        log = AuditLog()
        receipt = await log.log_event(AuditEventType.LOGIN, {"actor_id": "user-1"})
        assert receipt.sequence_number == 1
        assert receipt.hash == content_hash({"actor_id": "user-1"})
        assert log.size == 1

    async def test_same_payload_same_hash(self) -> None:
        log = AuditLog()
        r1 = await log.log_event(AuditEventType.LOGIN, {"actor_id": "user-1"})
        r2 = await log.log_event(AuditEventType.LOGIN, {"actor_id": "user-1"})
        assert r1.hash == r2.hash
        assert r2.sequence_number > r1.sequence_number

    async def test_sequence_strictly_increasing_under_concurrency(self) -> None:
        log = AuditLog()
        receipts = await asyncio.gather(
            *(log.log_event(AuditEventType.PAYMENT, {"n": i}) for i in range(50))
        )
        numbers = sorted(r.sequence_number for r in receipts)
        assert numbers == list(range(1, 51)), "every event gets a unique, gap-free sequence number"
        assert log.last_sequence_number == 50

    async def test_sequence_shared_across_event_types(self) -> None:
        log = AuditLog()
        a = await log.log_event(AuditEventType.LOGIN, {"x": 1})
        b = await log.log_event(AuditEventType.STATUS_CHANGE, {"x": 2})
        c = await log.log_event(AuditEventType.PAYMENT, {"x": 3})
        assert a.sequence_number < b.sequence_number < c.sequence_number

    async def test_events_filtering(self) -> None:
        log = AuditLog()
        await log.log_event(AuditEventType.LOGIN, {"actor_id": "user-1"})
        await log.log_event(AuditEventType.STATUS_CHANGE, {"application_id": "APP-1", "actor_id": "admin-1"})
        await log.log_event(AuditEventType.STATUS_CHANGE, {"application_id": "APP-2", "actor_id": "admin-1"})

        assert len(log.events()) == 3
        assert len(log.events(AuditEventType.STATUS_CHANGE)) == 2
        assert [e.payload["application_id"] for e in log.events(subject_id="APP-2")] == ["APP-2"]
        assert len(log.events(AuditEventType.LOGIN, subject_id="admin-1")) == 0

    async def test_payload_frozen_after_logging(self) -> None:
        log = AuditLog()
        payload = {"application_id": "APP-1", "status": "pending"}
        receipt = await log.log_event(AuditEventType.APPLICATION_SUBMISSION, payload)
        payload["status"] = "approved"

        stored = log.events()[0]
        assert stored.payload["status"] == "pending", "mutating the caller's dict must not change the log"
        assert log.verify(receipt.sequence_number) is True

    async def test_verify_unknown_sequence(self) -> None:
        log = AuditLog()
        with pytest.raises(NotFoundError):
            log.verify(42)

    async def test_verify_detects_tampering(self) -> None:
        log = AuditLog()
        receipt = await log.log_event(AuditEventType.PAYMENT, {"total": "515.30"})
        # Reach into the buffer to simulate storage corruption.
        log._events[0].payload["total"] = "0.00"
        assert log.verify(receipt.sequence_number) is False
