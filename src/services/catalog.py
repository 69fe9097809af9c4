"""Scheme catalog: read-mostly registry of welfare schemes.

Reads are open to everyone.  Creating and editing schemes is restricted
to administrators.  A scheme's ``status`` is whatever the administrator
last set; it is not recomputed from the validity window.
"""

from __future__ import annotations

import re
from datetime import date
from decimal import Decimal
from uuid import uuid4

import pydantic
import structlog

from src.models.actor import Actor
from src.models.enums import SchemeStatus
from src.models.scheme import Scheme, SchemeUpdate
from src.services.errors import AuthorizationError, NotFoundError, ValidationError

logger = structlog.get_logger(__name__)

_SLUG_RE = re.compile(r"[^a-z0-9]+")


def _require_admin(actor: Actor, operation: str) -> None:
    if not actor.is_admin:
        logger.warning("catalog.admin_required", actor_id=actor.actor_id, operation=operation)
        raise AuthorizationError(
            "Only administrators can manage schemes.",
            operation=operation,
            role=actor.role,
        )


def _to_validation_error(exc: pydantic.ValidationError) -> ValidationError:
    fields = sorted({".".join(str(p) for p in err["loc"]) or "scheme" for err in exc.errors()})
    message = "; ".join(err["msg"] for err in exc.errors())
    return ValidationError(f"Invalid scheme: {message}", fields=fields)


class SchemeCatalog:
    """In-memory scheme registry keyed by ``scheme_id``."""

    __slots__ = ("_schemes",)

    def __init__(self, schemes: list[Scheme] | None = None) -> None:
        self._schemes: dict[str, Scheme] = {}
        for scheme in schemes or []:
            self._schemes[scheme.scheme_id] = scheme

    def get(self, scheme_id: str) -> Scheme:
        scheme = self._schemes.get(scheme_id)
        if scheme is None:
            raise NotFoundError("Scheme", scheme_id)
        return scheme

    def list_schemes(self, status: SchemeStatus | None = None) -> list[Scheme]:
        schemes = list(self._schemes.values())
        if status is not None:
            schemes = [s for s in schemes if s.status == status]
        return schemes

    def create(
        self,
        actor: Actor,
        *,
        title: str,
        description: str,
        required_documents: list[str],
        eligibility_criteria: list[str],
        start_date: date,
        end_date: date,
        benefits: str = "",
        status: SchemeStatus = SchemeStatus.UPCOMING,
        fee_amount: Decimal | None = None,
        scheme_id: str | None = None,
    ) -> Scheme:
        _require_admin(actor, "create_scheme")

        if not title.strip():
            raise ValidationError("Title is required.", fields=["title"])
        if not [d for d in required_documents if d.strip()]:
            raise ValidationError("At least one document is required.", fields=["required_documents"])

        if scheme_id is None:
            slug = _SLUG_RE.sub("-", title.lower()).strip("-")[:40]
            scheme_id = f"{slug}-{uuid4().hex[:6]}"
        if scheme_id in self._schemes:
            raise ValidationError(f"Scheme '{scheme_id}' already exists.", fields=["scheme_id"])

        try:
            scheme = Scheme(
                scheme_id=scheme_id,
                title=title.strip(),
                description=description,
                required_documents=[d.strip() for d in required_documents if d.strip()],
                eligibility_criteria=eligibility_criteria,
                benefits=benefits,
                start_date=start_date,
                end_date=end_date,
                status=status,
                fee_amount=fee_amount,
            )
        except pydantic.ValidationError as exc:
            raise _to_validation_error(exc) from exc

        self._schemes[scheme.scheme_id] = scheme
        logger.info("catalog.scheme_created", scheme_id=scheme.scheme_id, actor_id=actor.actor_id)
        return scheme

    def update(self, actor: Actor, scheme_id: str, changes: SchemeUpdate) -> Scheme:
        _require_admin(actor, "update_scheme")
        current = self.get(scheme_id)

        data = current.model_dump()
        data.update(changes.model_dump(exclude_none=True))
        try:
            updated = Scheme.model_validate(data)
        except pydantic.ValidationError as exc:
            raise _to_validation_error(exc) from exc

        self._schemes[scheme_id] = updated
        logger.info(
            "catalog.scheme_updated",
            scheme_id=scheme_id,
            actor_id=actor.actor_id,
            fields=sorted(changes.model_dump(exclude_none=True)),
        )
        return updated

    def __len__(self) -> int:
        return len(self._schemes)
