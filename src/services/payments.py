"""Simulated fee payment for approved applications.

No money moves.  A payment is accepted once the method-specific fields
are present, and the result is a :class:`PaymentRecord` carrying a
``TXN<epoch-ms><4 digits>`` transaction id and the fixed fee breakdown
(500.00 + 12.50 convenience + 2.80 tax = 515.30).  The payment step runs
under the same per-application lock as review decisions.
"""

from __future__ import annotations

import secrets
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Final

import structlog

from src.models.actor import Actor
from src.models.application import Application, FeeBreakdown, PaymentRecord
from src.models.enums import AuditEventType, NetBankingBank, PaymentMethod, PaymentStatus
from src.services.applications import ensure_can_read
from src.services.errors import (
    AuthorizationError,
    InvalidStateTransitionError,
    NotFoundError,
    ValidationError,
)
from src.services.review import ApplicationLocks, find_transition

if TYPE_CHECKING:
    from src.services.audit_log import AuditLog
    from src.services.repository import ApplicationRepository

logger = structlog.get_logger(__name__)

_REQUIRED_FIELDS: Final[dict[PaymentMethod, tuple[str, ...]]] = {
    PaymentMethod.CARD: ("card_number", "expiry", "cvv", "holder_name"),
    PaymentMethod.UPI: ("upi_id",),
    PaymentMethod.NETBANKING: ("bank",),
}


def validate_payment_details(method: PaymentMethod, details: Mapping[str, Any]) -> str:
    """Check the fields *method* needs and return the masked method reference."""
    missing = [
        name
        for name in _REQUIRED_FIELDS[method]
        if not isinstance(details.get(name), str) or not details[name].strip()
    ]
    if missing:
        raise ValidationError(f"Missing {method} payment details.", fields=missing, method=method)

    if method == PaymentMethod.CARD:
        digits = "".join(ch for ch in details["card_number"] if ch.isdigit())
        if len(digits) < 4:
            raise ValidationError("Card number is invalid.", fields=["card_number"])
        return f"**** **** **** {digits[-4:]}"
    if method == PaymentMethod.UPI:
        return details["upi_id"].strip()

    bank = details["bank"].strip().lower()
    if bank not in {b.value for b in NetBankingBank}:
        raise ValidationError(
            f"Unsupported bank '{details['bank']}'.",
            fields=["bank"],
            supported=[b.value for b in NetBankingBank],
        )
    return bank


class PaymentService:
    """Completes the ``payment_pending -> payment_completed`` step."""

    __slots__ = ("_audit", "_clock", "_issued_ids", "_locks", "_repository")

    def __init__(
        self,
        *,
        repository: ApplicationRepository,
        audit: AuditLog,
        locks: ApplicationLocks,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ) -> None:
        self._repository = repository
        self._audit = audit
        self._locks = locks
        self._clock = clock
        self._issued_ids: set[str] = set()

    def _new_transaction_id(self, now: datetime) -> str:
        millis = int(now.timestamp() * 1000)
        while True:
            txn = f"TXN{millis}{secrets.randbelow(10_000):04d}"
            if txn not in self._issued_ids:
                self._issued_ids.add(txn)
                return txn

    async def pay(
        self,
        application_id: str,
        actor: Actor,
        method: PaymentMethod | str,
        details: Mapping[str, Any],
    ) -> PaymentRecord:
        """Pay the application fee.

        Raises
        ------
        AuthorizationError
            If *actor* is not a citizen.
        ValidationError
            If a field required by *method* is missing or unusable.
        NotFoundError
            If the application does not exist.
        InvalidStateTransitionError
            If *actor* does not own the application, it is not awaiting
            payment, or it has already been paid.
        """
        if not actor.is_citizen:
            raise AuthorizationError("Only applicants can pay application fees.", role=actor.role)
        try:
            method = PaymentMethod(method)
        except ValueError:
            raise ValidationError(f"Unsupported payment method '{method}'.", fields=["method"]) from None
        method_reference = validate_payment_details(method, details)

        async with self._locks.hold(application_id):
            current = await self._repository.get(application_id)
            if current is None:
                raise NotFoundError("Application", application_id)
            if current.applicant_id != actor.actor_id:
                logger.warning("payments.not_owner", application_id=application_id, actor_id=actor.actor_id)
                raise InvalidStateTransitionError(
                    "Only the applicant can pay for this application.",
                    current_state=str(current.status),
                    attempted="pay",
                    payment_status=str(current.payment_status) if current.payment_status else None,
                )
            find_transition(current, "pay")

            completed_at = self._clock()
            transaction_id = self._new_transaction_id(completed_at)
            fees = FeeBreakdown.standard()

            # Runs under the repository's version check; nothing is logged for a stale write.
            async def record_payment(application: Application) -> Application:
                receipt = await self._audit.log_event(
                    AuditEventType.PAYMENT,
                    {
                        "application_id": application.application_id,
                        "applicant_id": application.applicant_id,
                        "scheme_id": application.scheme_id,
                        "actor_id": actor.actor_id,
                        "transaction_id": transaction_id,
                        "method": method,
                        "method_reference": method_reference,
                        "total": fees.total,
                        "completed_at": completed_at,
                    },
                )
                payment = PaymentRecord(
                    transaction_id=transaction_id,
                    application_id=application.application_id,
                    method=method,
                    method_reference=method_reference,
                    fees=fees,
                    completed_at=completed_at,
                    audit_hash=receipt.hash,
                )
                paid = application.model_copy(
                    update={"payment_status": PaymentStatus.PAYMENT_COMPLETED, "payment": payment},
                )
                paid.audit_hashes.append(receipt.hash)
                return paid

            stored = await self._repository.replace(
                current,
                expected_version=current.version,
                before_write=record_payment,
            )
            record = stored.payment

        logger.info(
            "payments.completed",
            application_id=application_id,
            transaction_id=transaction_id,
            method=method,
            total=str(fees.total),
        )
        return record

    async def receipt(self, application_id: str, actor: Actor) -> dict[str, Any]:
        """Acknowledgment data for a paid application."""
        application = await self._repository.get(application_id)
        if application is None:
            raise NotFoundError("Application", application_id)
        ensure_can_read(application, actor)
        if application.payment is None:
            raise NotFoundError("Receipt", application_id)
        return build_receipt(application, application.payment)


def build_receipt(application: Application, payment: PaymentRecord) -> dict[str, Any]:
    return {
        "application_id": application.application_id,
        "scheme_id": application.scheme_id,
        "applicant_name": application.applicant_name,
        "transaction_id": payment.transaction_id,
        "method": payment.method,
        "method_reference": payment.method_reference,
        "base_fee": str(payment.fees.base_fee),
        "convenience_fee": str(payment.fees.convenience_fee),
        "tax": str(payment.fees.tax),
        "total": str(payment.fees.total),
        "completed_at": payment.completed_at.isoformat(),
        "disbursement_reference": application.disbursement_reference,
        "audit_hash": payment.audit_hash,
    }
