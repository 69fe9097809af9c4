"""Document intake: check an upload set against a scheme's required documents.

Matching is deliberately permissive.  A required label such as
``"Aadhaar Card"`` is satisfied when at least one submitted document's
display name contains it, ignoring case (``"aadhaar card - front.pdf"``
matches).  Every required label needs its own match, but one upload may
satisfy several labels.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

import structlog

from src.models.application import SubmittedDocument
from src.services.errors import MissingDocumentsError

logger = structlog.get_logger(__name__)


def _normalise(text: str) -> str:
    return " ".join(text.casefold().split())


def missing_documents(
    required_documents: Sequence[str],
    submitted_documents: Iterable[SubmittedDocument | str],
) -> list[str]:
    """Return the required labels with no matching upload, in the scheme's order."""
    names = [
        _normalise(doc if isinstance(doc, str) else doc.name)
        for doc in submitted_documents
    ]
    missing: list[str] = []
    for label in required_documents:
        needle = _normalise(label)
        if not needle:
            continue
        if not any(needle in name for name in names):
            missing.append(label)
    return missing


def validate_documents(
    required_documents: Sequence[str],
    submitted_documents: Iterable[SubmittedDocument | str],
) -> None:
    """Raise :class:`MissingDocumentsError` unless every required label is covered."""
    missing = missing_documents(required_documents, submitted_documents)
    if missing:
        logger.info("documents.validation_failed", missing=missing)
        raise MissingDocumentsError(missing)
