"""Super-admin management of other users' 2FA (/api/admin/*)."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import CurrentUser, require_super_admin
from app.core.pagination import PaginationParams, set_pagination_headers
from app.core.response import DataResponse, ListResponse, MessageResponse, paginated
from app.db.base import get_db
from app.schemas.two_factor import AdminStatusOut, AuditEntryOut, BackupCodesOut
from app.services.admin_two_factor import AdminTwoFactorService

router = APIRouter(prefix="/admin", tags=["Admin 2FA"])


def _svc(session: AsyncSession, admin: CurrentUser) -> AdminTwoFactorService:
    return AdminTwoFactorService(session, admin.id)


@router.get("/users/2fa-status", response_model=DataResponse[AdminStatusOut])
async def users_2fa_status(
    admin: CurrentUser = Depends(require_super_admin),
    session: AsyncSession = Depends(get_db),
):
    return {"data": await _svc(session, admin).list_status()}


@router.post("/users/{user_id}/enable-2fa", response_model=DataResponse[BackupCodesOut])
async def enable_2fa(
    user_id: str,
    admin: CurrentUser = Depends(require_super_admin),
    session: AsyncSession = Depends(get_db),
):
    result = await _svc(session, admin).enable(user_id)
    return {"message": "2FA enabled for user", "data": result}


@router.post("/users/{user_id}/disable-2fa", response_model=MessageResponse)
async def disable_2fa(
    user_id: str,
    admin: CurrentUser = Depends(require_super_admin),
    session: AsyncSession = Depends(get_db),
):
    await _svc(session, admin).disable(user_id)
    return {"message": "2FA disabled for user"}


@router.post("/users/{user_id}/force-disable-2fa", response_model=MessageResponse)
async def force_disable_2fa(
    user_id: str,
    admin: CurrentUser = Depends(require_super_admin),
    session: AsyncSession = Depends(get_db),
):
    await _svc(session, admin).force_disable(user_id)
    return {"message": "2FA force-disabled for user"}


@router.post("/users/{user_id}/reset-2fa", response_model=DataResponse[BackupCodesOut])
async def reset_2fa(
    user_id: str,
    admin: CurrentUser = Depends(require_super_admin),
    session: AsyncSession = Depends(get_db),
):
    result = await _svc(session, admin).reset(user_id)
    return {"message": "2FA reset for user. They must set it up again.", "data": result}


@router.get("/2fa-audit-log", response_model=ListResponse[AuditEntryOut])
async def audit_log(
    response: Response,
    pagination: PaginationParams = Depends(),
    admin: CurrentUser = Depends(require_super_admin),
    session: AsyncSession = Depends(get_db),
):
    items, total = await _svc(session, admin).audit_log(pagination.offset, pagination.limit)
    set_pagination_headers(response, total, pagination.page, pagination.limit)
    return paginated(
        [AuditEntryOut.model_validate(e) for e in items], total, pagination.page, pagination.limit
    )
