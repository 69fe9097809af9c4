from src.models.actor import AccountRecord, Actor
from src.models.application import (
    BASE_FEE,
    CONVENIENCE_FEE,
    TAX_AMOUNT,
    Application,
    FeeBreakdown,
    PaymentRecord,
    SubmittedDocument,
)
from src.models.audit import AuditEvent, AuditReceipt
from src.models.enums import (
    ApplicationStatus,
    AuditEventType,
    ContactChannel,
    NetBankingBank,
    PaymentMethod,
    PaymentStatus,
    ReviewDecision,
    Role,
    SchemeStatus,
)
from src.models.scheme import Scheme, SchemeUpdate

__all__ = [
    "BASE_FEE",
    "CONVENIENCE_FEE",
    "TAX_AMOUNT",
    "AccountRecord",
    "Actor",
    "Application",
    "ApplicationStatus",
    "AuditEvent",
    "AuditEventType",
    "AuditReceipt",
    "ContactChannel",
    "FeeBreakdown",
    "NetBankingBank",
    "PaymentMethod",
    "PaymentRecord",
    "PaymentStatus",
    "ReviewDecision",
    "Role",
    "Scheme",
    "SchemeStatus",
    "SchemeUpdate",
    "SubmittedDocument",
]
