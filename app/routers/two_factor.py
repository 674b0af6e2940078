"""Two-factor routes (/api/auth/2fa/*).

Setup, enable, disable and backup codes act on the signed-in user. `verify`
and `reset-request` are the second login step and carry the temporary token
issued by /api/auth/login instead of an access token.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import CurrentUser, bearer, bearer_token, get_current_user
from app.core.config import settings
from app.core.exceptions import UnauthorizedError, ValidationError
from app.core.response import DataResponse, MessageResponse
from app.core.security import TEMP_2FA_TOKEN, create_2fa_reset_token, decode_token
from app.db.base import get_db
from app.repositories.audit import AuditRepository
from app.schemas.auth import AuthOut, TokenOut, UserOut
from app.schemas.two_factor import (
    BackupCodesOut,
    DisableIn,
    PasswordIn,
    SetupOut,
    StatusOut,
    TestTokenIn,
    TestTokenOut,
    TokenIn,
    VerifyIn,
)
from app.services.auth import AuthService
from app.services.two_factor import TwoFactorService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth/2fa", tags=["Two-Factor"])


@router.get("/status", response_model=DataResponse[StatusOut])
async def get_status(
    current: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    return {"data": await TwoFactorService(session).get_status(current.id)}


@router.post("/setup", response_model=DataResponse[SetupOut])
async def setup(
    current: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    """Start setup: returns the secret and a QR code. 2FA stays off until /enable."""
    result = await TwoFactorService(session).setup(current.id)
    return {"message": "Scan the QR code with your authenticator app", "data": result}


@router.post("/test", response_model=DataResponse[TestTokenOut])
async def test_token(body: TestTokenIn, current: CurrentUser = Depends(get_current_user)):
    return {"data": TwoFactorService.test_token(body.secret, body.token)}


@router.post("/enable", response_model=DataResponse[BackupCodesOut])
async def enable(
    body: TokenIn,
    current: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    result = await TwoFactorService(session).enable(current.id, body.token)
    return {
        "message": "2FA enabled successfully. Store your backup codes in a safe place.",
        "data": result,
    }


@router.post("/disable", response_model=MessageResponse)
async def disable(
    body: DisableIn,
    current: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    await TwoFactorService(session).disable(current.id, body.password, body.token)
    return {"message": "2FA disabled successfully"}


@router.post("/verify", response_model=DataResponse[AuthOut])
async def verify(body: VerifyIn, session: AsyncSession = Depends(get_db)):
    claims = decode_token(body.temp_token, TEMP_2FA_TOKEN)
    user_id = claims["userId"]

    service = TwoFactorService(session)
    if body.token:
        verified = await service.verify_token(user_id, body.token, is_backup_code=False)
    elif body.backup_code:
        verified = await service.verify_token(user_id, body.backup_code, is_backup_code=True)
    else:
        raise ValidationError("Token or backup code required")
    if not verified:
        raise UnauthorizedError("Invalid verification code")

    auth = AuthService(session)
    result = await auth.complete_login(await auth.get_user(user_id), body.company_id)
    return {
        "message": "Login successful",
        "data": AuthOut(
            user=UserOut.model_validate(result["user"]), tokens=TokenOut(**result["tokens"])
        ),
    }


@router.post("/backup-codes", response_model=DataResponse[BackupCodesOut])
async def regenerate_backup_codes(
    body: PasswordIn,
    current: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    result = await TwoFactorService(session).regenerate_backup_codes(current.id, body.password)
    return {"message": "Backup codes regenerated", "data": result}


@router.post("/reset-request", response_model=DataResponse[dict | None])
async def reset_request(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer),
    session: AsyncSession = Depends(get_db),
):
    """Locked-out users ask for a 2FA reset using the temp token from login."""
    claims = decode_token(bearer_token(credentials), TEMP_2FA_TOKEN)
    user = await AuthService(session).get_user(claims["userId"])

    reset_token = create_2fa_reset_token(user.id)
    await AuditRepository(session).record(
        action="reset_request",
        entity_type="two_factor",
        entity_id=user.id,
        user_id=user.id,
        description="2FA reset requested by user",
    )
    logger.warning("2FA reset requested for user %s", user.username)
    return {
        "message": "Reset instructions have been sent to your email address. Please check your inbox.",
        "data": {"resetToken": reset_token} if settings.is_development else None,
    }
