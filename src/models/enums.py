from __future__ import annotations

from enum import StrEnum


class Role(StrEnum):
    __slots__ = ()

    CITIZEN = "citizen"
    ADMIN = "admin"


class ContactChannel(StrEnum):
    __slots__ = ()

    EMAIL = "email"
    PHONE = "phone"


class SchemeStatus(StrEnum):
    __slots__ = ()

    ACTIVE = "active"
    UPCOMING = "upcoming"
    CLOSED = "closed"


class ApplicationStatus(StrEnum):
    """Review state of an application. ``approved`` and ``rejected`` are terminal."""

    __slots__ = ()

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class PaymentStatus(StrEnum):
    """Fee sub-status, present only once an application is approved."""

    __slots__ = ()

    PAYMENT_PENDING = "payment_pending"
    PAYMENT_COMPLETED = "payment_completed"


class PaymentMethod(StrEnum):
    __slots__ = ()

    CARD = "card"
    UPI = "upi"
    NETBANKING = "netbanking"


class NetBankingBank(StrEnum):
    __slots__ = ()

    SBI = "sbi"        # State Bank of India
    HDFC = "hdfc"      # HDFC Bank
    ICICI = "icici"    # ICICI Bank
    AXIS = "axis"      # Axis Bank


class ReviewDecision(StrEnum):
    __slots__ = ()

    APPROVE = "approve"
    REJECT = "reject"


class AuditEventType(StrEnum):
    __slots__ = ()

    LOGIN = "login"
    APPLICATION_SUBMISSION = "application_submission"
    STATUS_CHANGE = "status_change"
    PAYMENT = "payment"
