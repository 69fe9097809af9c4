from __future__ import annotations

from pydantic import BaseModel

from src.models.enums import Role


class Actor(BaseModel):
    """The authenticated party behind a request."""

    model_config = {"frozen": True}

    actor_id: str
    role: Role
    name: str = ""
    email: str | None = None
    phone: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def is_citizen(self) -> bool:
        return self.role == Role.CITIZEN


class AccountRecord(BaseModel):
    """Stored credentials and contact details for one account."""

    login_id: str  # citizen user id (e.g. AID123456) or admin email
    password_hash: str
    actor: Actor
