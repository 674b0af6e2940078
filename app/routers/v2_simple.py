"""Lightweight liveness/info endpoints (/api/v2-simple/*)."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from app.core.auth import CurrentUser, get_current_user
from app.core.config import settings
from app.domain.mixins import utcnow

router = APIRouter(prefix="/v2-simple", tags=["Health"])

SIMPLE_VERSION = "2.0.0-simple"


@router.get("/health")
async def health():
    return {
        "success": True,
        "message": "API v2 Simple is healthy",
        "timestamp": utcnow().isoformat(),
        "version": SIMPLE_VERSION,
    }


@router.get("/info")
async def info():
    api = settings.api_prefix
    return {
        "success": True,
        "data": {
            "name": settings.app_name,
            "version": SIMPLE_VERSION,
            "description": "Multi-tenant factory ERP API",
            "features": [
                "JWT authentication with refresh tokens",
                "TOTP two-factor authentication",
                "Multi-company tenancy",
                "Vehicle gate passes",
                "Customer visits and expenses",
                "Stock movements",
                "S3-compatible file uploads",
            ],
            "endpoints": {
                "auth": f"{api}/auth",
                "twoFactor": f"{api}/auth/2fa",
                "admin": f"{api}/admin",
                "vehicles": f"{api}/v2/vehicles",
                "customerVisits": f"{api}/v2/customer-visits",
                "stockMovements": f"{api}/v2/stock-movements",
                "uploads": f"{api}/v2/uploads",
            },
        },
    }


@router.get("/protected")
async def protected(current: CurrentUser = Depends(get_current_user)):
    return {
        "success": True,
        "message": "Access granted",
        "data": {
            "userId": current.id,
            "username": current.user.username,
            "email": current.user.email,
            "companyId": current.company_id,
            "role": current.role,
            "isSuperAdmin": current.is_super_admin,
        },
    }
