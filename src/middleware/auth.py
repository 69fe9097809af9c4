"""Bearer-token session authentication for protected endpoints.

Provides FastAPI dependencies that resolve the ``Authorization: Bearer``
header to an :class:`~src.models.actor.Actor` via the
:class:`~src.services.identity.IdentityService` on ``app.state``.
Failures raise the domain errors; the handlers in :mod:`src.main` turn
them into 401/403 responses.
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import Depends, HTTPException, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from src.models.actor import Actor
from src.services.errors import AuthorizationError

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

_bearer = HTTPBearer(auto_error=False)


def get_service(request: Request, name: str) -> Any:
    """Fetch a service wired onto ``app.state`` during startup, or 503."""
    service = getattr(request.app.state, name, None)
    if service is None:
        logger.error("auth.service_unavailable", service=name, path=request.url.path)
        raise HTTPException(status_code=503, detail=f"Service '{name}' is not available.")
    return service


def bearer_token(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
) -> str | None:
    return credentials.credentials if credentials is not None else None


async def get_current_actor(
    request: Request,
    token: str | None = Depends(bearer_token),
) -> Actor:
    """FastAPI dependency returning the authenticated actor.

    Usage::

        @router.get("/applications")
        async def list_mine(actor: Actor = Depends(get_current_actor)): ...
    """
    identity = get_service(request, "identity")
    return identity.current_actor(token)


async def require_admin(actor: Actor = Depends(get_current_actor)) -> Actor:
    """Like :func:`get_current_actor` but only lets administrators through."""
    if not actor.is_admin:
        logger.warning("auth.admin_required", actor_id=actor.actor_id)
        raise AuthorizationError("Administrator access required.", role=actor.role)
    return actor
