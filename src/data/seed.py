"""Data seeding utilities for the demo portal.

Loads scheme definitions from the bundled ``portal_schemes.json`` file
into a :class:`~src.services.catalog.SchemeCatalog`, and optionally
places a handful of historical applications in the repository so the
admin screens have something to show.  Designed to run once at
application startup.
"""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

import pydantic
import structlog

from src.models.application import Application, SubmittedDocument
from src.models.enums import ApplicationStatus, PaymentStatus
from src.models.scheme import Scheme

if TYPE_CHECKING:
    from src.services.repository import ApplicationRepository

logger = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------

_DATA_DIR: Path = Path(__file__).resolve().parent / "schemes"
_PORTAL_SCHEMES_PATH: Path = _DATA_DIR / "portal_schemes.json"


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def load_schemes(path: Path | None = None) -> list[Scheme]:
    """Load scheme definitions from a JSON file.

    Parameters
    ----------
    path:
        Path to the JSON file.  Defaults to the bundled
        ``portal_schemes.json``.

    Raises
    ------
    FileNotFoundError
        If the JSON file does not exist.
    json.JSONDecodeError
        If the JSON is malformed.
    """
    file_path = path or _PORTAL_SCHEMES_PATH

    if not file_path.exists():
        raise FileNotFoundError(f"Scheme data file not found: {file_path}")

    with file_path.open("r", encoding="utf-8") as f:
        raw_schemes: list[dict] = json.load(f)

    schemes: list[Scheme] = []
    for raw in raw_schemes:
        try:
            schemes.append(Scheme.model_validate(raw))
        except pydantic.ValidationError:
            logger.warning(
                "seed.parse_error",
                scheme_id=raw.get("scheme_id", "unknown"),
                exc_info=True,
            )

    logger.info("seed.loaded_schemes", count=len(schemes), source=str(file_path))
    return schemes


# ---------------------------------------------------------------------------
# Demo applications
# ---------------------------------------------------------------------------


def _docs(*pairs: tuple[str, str]) -> list[SubmittedDocument]:
    return [SubmittedDocument(name=name, storage_ref=ref) for name, ref in pairs]


def demo_applications() -> list[Application]:
    """Historical applications shown on a fresh demo portal."""
    return [
        Application(
            application_id="APP-20240315-A1B2C3",
            scheme_id="scheme-1",
            applicant_id="user-1",
            applicant_name="John Doe",
            status=ApplicationStatus.PENDING,
            submitted_at=datetime.fromisoformat("2024-03-15T10:30:00+00:00"),
            documents=_docs(
                ("Aadhaar Card", "/documents/aadhaar.pdf"),
                ("Land Records", "/documents/land.pdf"),
                ("Bank Passbook", "/documents/bank.pdf"),
                ("Recent Photograph", "/documents/photo.jpg"),
            ),
            eligibility_score=85,
        ),
        Application(
            application_id="APP-20240220-D4E5F6",
            scheme_id="scheme-2",
            applicant_id="user-1",
            applicant_name="John Doe",
            status=ApplicationStatus.APPROVED,
            payment_status=PaymentStatus.PAYMENT_PENDING,
            submitted_at=datetime.fromisoformat("2024-02-20T14:45:00+00:00"),
            documents=_docs(
                ("Aadhaar Card", "/documents/aadhaar.pdf"),
                ("Income Certificate", "/documents/income.pdf"),
                ("Domicile Certificate", "/documents/domicile.pdf"),
                ("Land Documents", "/documents/land-deed.pdf"),
            ),
            eligibility_score=92,
            reviewed_by="admin-1",
            reviewed_at=datetime.fromisoformat("2024-02-25T09:15:00+00:00"),
            disbursement_reference="DISB-7CB0A4E2",
        ),
        Application(
            application_id="APP-20240110-0A9B8C",
            scheme_id="scheme-4",
            applicant_id="user-2",
            applicant_name="Jane Smith",
            status=ApplicationStatus.REJECTED,
            submitted_at=datetime.fromisoformat("2024-01-10T11:20:00+00:00"),
            documents=_docs(
                ("Aadhaar Card", "/documents/aadhaar2.pdf"),
                ("BPL Certificate", "/documents/bpl.pdf"),
            ),
            eligibility_score=45,
            reviewed_by="admin-1",
            reviewed_at=datetime.fromisoformat("2024-01-15T16:30:00+00:00"),
            rejection_reason="Incomplete documentation and not meeting income criteria.",
        ),
    ]


# ---------------------------------------------------------------------------
# Seeding
# ---------------------------------------------------------------------------


async def seed_demo_applications(repository: ApplicationRepository) -> list[Application]:
    """Place :func:`demo_applications` in *repository*.

    This is the entry point used at application startup when demo data
    seeding is enabled.
    """
    apps = demo_applications()
    for app in apps:
        await repository.add(app)
    logger.info("seed.complete", applications=len(apps))
    return apps
