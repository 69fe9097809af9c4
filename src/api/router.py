"""Main API router combining all v1 route modules.

Aggregates all routers under the ``/api/v1`` prefix so the
FastAPI application only needs to include a single router.

Includes:
    * Auth: login, admin login, registration, OTP contact verification
    * Schemes: public catalog plus admin create/update
    * Applications: submission, listing, detail
    * Payments: fee payment and receipt
    * Admin: review queue, approve/reject, audit trail
    * Health: liveness and readiness probes
"""

from __future__ import annotations

from fastapi import APIRouter

from src.api.v1 import admin, applications, auth, health, payments, schemes

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(auth.router)
api_router.include_router(schemes.router)
api_router.include_router(applications.router)
api_router.include_router(payments.router)
api_router.include_router(admin.router)
api_router.include_router(health.router)
