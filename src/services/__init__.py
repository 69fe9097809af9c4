"""AidLedger service layer -- identity, catalog, application lifecycle, audit.

Every service keeps its state in memory and takes its collaborators
(audit log, repository, scorer, clock) through the constructor, so the
lifecycle can be exercised without the HTTP layer.
"""

from __future__ import annotations

from src.services.applications import ApplicationStore
from src.services.audit_log import AuditLog, content_hash
from src.services.catalog import SchemeCatalog
from src.services.identity import ContactVerificationService, IdentityService, Session
from src.services.payments import PaymentService
from src.services.repository import ApplicationRepository, InMemoryApplicationRepository
from src.services.review import ApplicationLocks, ReviewWorkflow
from src.services.scoring import EligibilityScorer, FixedEligibilityScorer, HashEligibilityScorer

__all__ = [
    "ApplicationLocks",
    "ApplicationRepository",
    "ApplicationStore",
    "AuditLog",
    "ContactVerificationService",
    "EligibilityScorer",
    "FixedEligibilityScorer",
    "HashEligibilityScorer",
    "IdentityService",
    "InMemoryApplicationRepository",
    "PaymentService",
    "ReviewWorkflow",
    "SchemeCatalog",
    "Session",
    "content_hash",
]
