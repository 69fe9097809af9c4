"""Authentication and contact-verification endpoints for AidLedger v1.

Login hands back an opaque bearer token.  OTP delivery is simulated:
outside production the code is returned in the response so the flow
can be completed without an SMS or mail gateway.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, Request, status
from pydantic import BaseModel, Field

from config.settings import settings
from src.middleware.auth import bearer_token, get_current_actor, get_service
from src.models.actor import Actor
from src.models.enums import ContactChannel
from src.services.identity import Session

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


# ---------------------------------------------------------------------------
# Request / response schemas
# ---------------------------------------------------------------------------


class CitizenLoginRequest(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=64, examples=["AID123456"])
    password: str = Field(..., min_length=1, max_length=128)


class AdminLoginRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=254, examples=["admin@example.com"])
    password: str = Field(..., min_length=1, max_length=128)


class RegisterRequest(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=64)
    password: str = Field(..., min_length=1, max_length=128)
    name: str = Field(..., min_length=1, max_length=200)
    email: str = Field(..., min_length=3, max_length=254)
    phone: str = Field(..., min_length=10, max_length=16)


class OtpSendRequest(BaseModel):
    channel: ContactChannel


class OtpVerifyRequest(BaseModel):
    channel: ContactChannel
    code: str = Field(..., min_length=1, max_length=12)


class SessionResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    expires_in_seconds: int
    actor: Actor


class MeResponse(BaseModel):
    actor: Actor
    verified_channels: list[ContactChannel] = Field(default_factory=list)


class OtpSentResponse(BaseModel):
    channel: ContactChannel
    destination: str
    expires_in_seconds: int
    resend_after_seconds: int
    code: str | None = Field(default=None, description="Only populated outside production.")


class OtpVerifiedResponse(BaseModel):
    channel: ContactChannel
    verified: bool


def _mask_destination(destination: str) -> str:
    if "@" in destination:
        local, _, domain = destination.partition("@")
        return f"{local[:1]}***@{domain}"
    return f"{'*' * max(0, len(destination) - 4)}{destination[-4:]}"


def _session_response(session: Session) -> SessionResponse:
    return SessionResponse(
        token=session.token,
        expires_in_seconds=settings.session_ttl_seconds,
        actor=session.actor,
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post("/login", response_model=SessionResponse)
async def login(body: CitizenLoginRequest, request: Request) -> SessionResponse:
    identity = get_service(request, "identity")
    session = await identity.login(body.user_id, body.password)
    return _session_response(session)


@router.post("/admin-login", response_model=SessionResponse)
async def admin_login(body: AdminLoginRequest, request: Request) -> SessionResponse:
    identity = get_service(request, "identity")
    session = await identity.admin_login(body.email, body.password)
    return _session_response(session)


@router.post("/register", response_model=Actor, status_code=status.HTTP_201_CREATED)
async def register(body: RegisterRequest, request: Request) -> Actor:
    """Create a citizen account.  Email and phone start unverified."""
    identity = get_service(request, "identity")
    return identity.register_citizen(
        user_id=body.user_id,
        password=body.password,
        name=body.name,
        email=body.email,
        phone=body.phone,
    )


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    request: Request,
    actor: Actor = Depends(get_current_actor),
    token: str | None = Depends(bearer_token),
) -> None:
    identity = get_service(request, "identity")
    if token:
        identity.logout(token)


@router.get("/me", response_model=MeResponse)
async def me(request: Request, actor: Actor = Depends(get_current_actor)) -> MeResponse:
    verification = get_service(request, "verification")
    verified = [c for c in ContactChannel if verification.is_verified(actor.actor_id, c)]
    return MeResponse(actor=actor, verified_channels=verified)


@router.post("/otp/send", response_model=OtpSentResponse)
async def send_otp(
    body: OtpSendRequest,
    request: Request,
    actor: Actor = Depends(get_current_actor),
) -> OtpSentResponse:
    verification = get_service(request, "verification")
    challenge = verification.send_otp(actor, body.channel)

    logger.info(
        "auth.otp_issued",
        actor_id=actor.actor_id,
        channel=body.channel,
        exposed=settings.expose_otp_codes,
    )
    return OtpSentResponse(
        channel=challenge.channel,
        destination=_mask_destination(challenge.destination),
        expires_in_seconds=settings.otp_ttl_seconds,
        resend_after_seconds=settings.otp_resend_cooldown_seconds,
        code=challenge.code if settings.expose_otp_codes else None,
    )


@router.post("/otp/verify", response_model=OtpVerifiedResponse)
async def verify_otp(
    body: OtpVerifyRequest,
    request: Request,
    actor: Actor = Depends(get_current_actor),
) -> OtpVerifiedResponse:
    verification = get_service(request, "verification")
    verified = verification.verify_otp(actor, body.channel, body.code)
    return OtpVerifiedResponse(channel=body.channel, verified=verified)
