"""Identity, sessions and contact verification.

Authentication here is simulated: accounts live in memory, passwords are
salted PBKDF2 hashes, and sessions are opaque bearer tokens with a TTL.
OTP delivery is not performed; codes are logged and, outside
production, handed back to the caller so the flow can be completed.

Two demo accounts are created by :meth:`IdentityService.with_demo_accounts`:

* citizen ``AID123456`` / ``password`` (John Doe)
* admin ``admin@example.com`` / ``admin123`` (Admin User)
"""

from __future__ import annotations

import hashlib
import hmac
import re
import secrets
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

import structlog

from src.models.actor import AccountRecord, Actor
from src.models.enums import AuditEventType, ContactChannel, Role
from src.services.errors import AuthenticationError, AuthorizationError, ValidationError

if TYPE_CHECKING:
    from src.services.audit_log import AuditLog

logger = structlog.get_logger(__name__)

_PBKDF2_ITERATIONS: Final[int] = 120_000
_EMAIL_RE: Final[re.Pattern[str]] = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_PHONE_RE: Final[re.Pattern[str]] = re.compile(r"^\+?\d{10,13}$")
_USER_ID_RE: Final[re.Pattern[str]] = re.compile(r"^[A-Za-z0-9_-]{4,32}$")


def _hash_password(password: str, salt: bytes | None = None) -> str:
    salt = salt or secrets.token_bytes(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt, _PBKDF2_ITERATIONS)
    return f"{salt.hex()}${digest.hex()}"


def _check_password(password: str, stored: str) -> bool:
    salt_hex, _, digest_hex = stored.partition("$")
    candidate = _hash_password(password, bytes.fromhex(salt_hex))
    return hmac.compare_digest(candidate.encode(), f"{salt_hex}${digest_hex}".encode())


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class Session:
    token: str
    actor: Actor
    expires_at: float


class IdentityService:
    """Account registry plus bearer-token sessions."""

    __slots__ = ("_accounts", "_audit", "_clock", "_session_ttl", "_sessions")

    def __init__(
        self,
        audit: AuditLog,
        *,
        session_ttl_seconds: int = 3_600,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._audit = audit
        self._session_ttl = session_ttl_seconds
        self._clock = clock
        self._accounts: dict[str, AccountRecord] = {}
        self._sessions: dict[str, Session] = {}

    @classmethod
    def with_demo_accounts(cls, audit: AuditLog, **kwargs: object) -> IdentityService:
        service = cls(audit, **kwargs)  # type: ignore[arg-type]
        service.add_account(
            "AID123456",
            "password",
            Actor(
                actor_id="user-1",
                role=Role.CITIZEN,
                name="John Doe",
                email="user@example.com",
                phone="9876543210",
            ),
        )
        service.add_account(
            "admin@example.com",
            "admin123",
            Actor(actor_id="admin-1", role=Role.ADMIN, name="Admin User", email="admin@example.com"),
        )
        return service

    # -- Accounts ----------------------------------------------------------

    def add_account(self, login_id: str, password: str, actor: Actor) -> Actor:
        key = login_id.lower()
        if key in self._accounts:
            raise ValidationError(f"Account '{login_id}' already exists.", fields=["login_id"])
        self._accounts[key] = AccountRecord(
            login_id=login_id,
            password_hash=_hash_password(password),
            actor=actor,
        )
        return actor

    def register_citizen(
        self,
        *,
        user_id: str,
        password: str,
        name: str,
        email: str,
        phone: str,
    ) -> Actor:
        """Create a citizen account.  Contact channels start unverified."""
        invalid: list[str] = []
        if not _USER_ID_RE.match(user_id):
            invalid.append("user_id")
        if len(password) < 6:
            invalid.append("password")
        if not name.strip():
            invalid.append("name")
        if not _EMAIL_RE.match(email):
            invalid.append("email")
        if not _PHONE_RE.match(phone):
            invalid.append("phone")
        if invalid:
            raise ValidationError("Registration details are invalid.", fields=invalid)

        actor = Actor(
            actor_id=f"user-{secrets.token_hex(5)}",
            role=Role.CITIZEN,
            name=name.strip(),
            email=email,
            phone=phone,
        )
        self.add_account(user_id, password, actor)
        logger.info("identity.citizen_registered", actor_id=actor.actor_id)
        return actor

    # -- Login / logout ----------------------------------------------------

    async def login(self, user_id: str, password: str) -> Session:
        """Citizen login with user id and password."""
        return await self._login(user_id, password, Role.CITIZEN)

    async def admin_login(self, email: str, password: str) -> Session:
        return await self._login(email, password, Role.ADMIN)

    async def _login(self, login_id: str, password: str, role: Role) -> Session:
        record = self._accounts.get(login_id.lower())
        if record is None or record.actor.role != role or not _check_password(password, record.password_hash):
            logger.warning("identity.login_failed", login_id=login_id, role=role)
            raise AuthenticationError("Invalid credentials.", role=role)

        token = secrets.token_urlsafe(32)
        session = Session(token=token, actor=record.actor, expires_at=self._clock() + self._session_ttl)
        self._sessions[token] = session

        await self._audit.log_event(
            AuditEventType.LOGIN,
            {"actor_id": record.actor.actor_id, "role": role, "login_id": record.login_id},
        )
        logger.info("identity.login_succeeded", actor_id=record.actor.actor_id, role=role)
        return session

    def logout(self, token: str) -> None:
        session = self._sessions.pop(token, None)
        if session is not None:
            logger.info("identity.logged_out", actor_id=session.actor.actor_id)

    def current_actor(self, token: str | None) -> Actor:
        """Resolve a bearer token to its actor, or raise :class:`AuthenticationError`."""
        if not token:
            raise AuthenticationError("Authentication required.")
        session = self._sessions.get(token)
        if session is None:
            raise AuthenticationError("Session is invalid or has expired.")
        if self._clock() >= session.expires_at:
            del self._sessions[token]
            raise AuthenticationError("Session is invalid or has expired.")
        return session.actor


# ---------------------------------------------------------------------------
# Contact verification (OTP)
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class OtpChallenge:
    applicant_id: str
    channel: ContactChannel
    destination: str
    code: str
    issued_at: float
    expires_at: float


class ContactVerificationService:
    """Issues one-time codes for email/phone and tracks verified channels."""

    __slots__ = (
        "_challenges",
        "_clock",
        "_code_factory",
        "_cooldown",
        "_otp_length",
        "_ttl",
        "_verified",
    )

    def __init__(
        self,
        *,
        otp_length: int = 6,
        resend_cooldown_seconds: int = 60,
        ttl_seconds: int = 600,
        clock: Callable[[], float] = time.monotonic,
        code_factory: Callable[[int], str] | None = None,
    ) -> None:
        self._otp_length = otp_length
        self._cooldown = resend_cooldown_seconds
        self._ttl = ttl_seconds
        self._clock = clock
        self._code_factory = code_factory or (lambda n: "".join(secrets.choice("0123456789") for _ in range(n)))
        self._challenges: dict[tuple[str, ContactChannel], OtpChallenge] = {}
        self._verified: dict[str, set[ContactChannel]] = {}

    def send_otp(self, actor: Actor, channel: ContactChannel | str) -> OtpChallenge:
        """Issue a fresh code for *channel*; honours the resend cooldown."""
        channel = ContactChannel(channel)
        if not actor.is_citizen:
            raise AuthorizationError("Only applicants verify contact details.", role=actor.role)

        destination = actor.email if channel == ContactChannel.EMAIL else actor.phone
        if not destination:
            raise ValidationError(f"No {channel} on file.", fields=[str(channel)])

        now = self._clock()
        key = (actor.actor_id, channel)
        previous = self._challenges.get(key)
        if previous is not None and now - previous.issued_at < self._cooldown:
            retry_after = int(self._cooldown - (now - previous.issued_at)) + 1
            raise ValidationError(
                f"Please wait {retry_after} seconds before requesting a new OTP.",
                fields=["channel"],
                retry_after_seconds=retry_after,
            )

        challenge = OtpChallenge(
            applicant_id=actor.actor_id,
            channel=channel,
            destination=destination,
            code=self._code_factory(self._otp_length),
            issued_at=now,
            expires_at=now + self._ttl,
        )
        self._challenges[key] = challenge
        logger.info("verification.otp_sent", applicant_id=actor.actor_id, channel=channel)
        # No delivery backend; the code only reaches the applicant through logs or the dev echo.
        logger.debug("verification.otp_code", applicant_id=actor.actor_id, channel=channel, code=challenge.code)
        return challenge

    def verify_otp(self, actor: Actor, channel: ContactChannel | str, code: str) -> bool:
        channel = ContactChannel(channel)
        if len(code) != self._otp_length or not code.isdigit():
            raise ValidationError(f"Please enter a valid {self._otp_length}-digit OTP.", fields=["code"])

        key = (actor.actor_id, channel)
        challenge = self._challenges.get(key)
        if challenge is None or self._clock() > challenge.expires_at:
            raise ValidationError("No active OTP for this channel; request a new one.", fields=["code"])
        if not hmac.compare_digest(challenge.code, code):
            logger.warning("verification.otp_mismatch", applicant_id=actor.actor_id, channel=channel)
            raise ValidationError("Invalid OTP. Please try again.", fields=["code"])

        del self._challenges[key]
        self._verified.setdefault(actor.actor_id, set()).add(channel)
        logger.info("verification.channel_verified", applicant_id=actor.actor_id, channel=channel)
        return True

    def mark_verified(self, applicant_id: str, channel: ContactChannel | str) -> None:
        """Record a channel as verified without an OTP round-trip (seeding, tests)."""
        self._verified.setdefault(applicant_id, set()).add(ContactChannel(channel))

    def is_verified(self, applicant_id: str, channel: ContactChannel | str) -> bool:
        return ContactChannel(channel) in self._verified.get(applicant_id, set())

    def unverified_channels(self, applicant_id: str) -> list[str]:
        return [str(c) for c in ContactChannel if not self.is_verified(applicant_id, c)]
