"""Auth routes: register, login, token refresh, profile and password reset."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import CurrentUser, get_current_user
from app.core.config import settings
from app.core.response import DataResponse, MessageResponse
from app.db.base import get_db
from app.schemas.auth import (
    AuthOut,
    ForgotPasswordRequest,
    LoginRequest,
    RefreshRequest,
    RegisterRequest,
    ResetPasswordRequest,
    ResetTokenStatusOut,
    TokenOut,
    TwoFactorChallengeOut,
    UserOut,
)
from app.services.auth import AuthService
from app.services.password_reset import PasswordResetService

router = APIRouter(prefix="/auth", tags=["Auth"])

_RESET_REQUESTED = "If an account with that email exists, a password reset link has been sent"


def _auth_out(user, tokens: dict) -> AuthOut:
    return AuthOut(user=UserOut.model_validate(user), tokens=TokenOut(**tokens))


@router.post("/register", response_model=DataResponse[AuthOut], status_code=status.HTTP_201_CREATED)
async def register(body: RegisterRequest, session: AsyncSession = Depends(get_db)):
    user, tokens = await AuthService(session).register(body)
    return {"message": "User registered successfully", "data": _auth_out(user, tokens)}


@router.post("/login", response_model=DataResponse[AuthOut | TwoFactorChallengeOut])
async def login(body: LoginRequest, session: AsyncSession = Depends(get_db)):
    """Password login. With 2FA enabled the client gets a temp token for /2fa/verify."""
    result = await AuthService(session).login(body.login, body.password, body.company_id)
    if result["requires_two_factor"]:
        return {
            "message": "Two-factor authentication required",
            "data": TwoFactorChallengeOut(temp_token=result["temp_token"]),
        }
    return {"message": "Login successful", "data": _auth_out(result["user"], result["tokens"])}


@router.post("/refresh", response_model=DataResponse[TokenOut])
async def refresh(body: RefreshRequest, session: AsyncSession = Depends(get_db)):
    tokens = await AuthService(session).refresh(body.refresh_token)
    return {"message": "Token refreshed", "data": TokenOut(**tokens)}


@router.post("/logout", response_model=MessageResponse)
async def logout(
    current: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    await AuthService(session).logout(current.id)
    return {"message": "Logged out successfully"}


@router.get("/me", response_model=DataResponse[UserOut])
async def me(current: CurrentUser = Depends(get_current_user)):
    return {"data": UserOut.model_validate(current.user)}


# ------------------------------------------------------------------
# Password reset
# ------------------------------------------------------------------

@router.post("/forgot-password", response_model=DataResponse[dict | None])
async def forgot_password(
    body: ForgotPasswordRequest,
    request: Request,
    session: AsyncSession = Depends(get_db),
):
    """Always answers the same way; the token is only echoed in development."""
    row = await PasswordResetService(session).request_reset(
        body.email,
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )
    data = {"resetToken": row.token} if row is not None and settings.is_development else None
    return {"message": _RESET_REQUESTED, "data": data}


@router.get("/reset-password/{token}", response_model=DataResponse[ResetTokenStatusOut])
async def check_reset_token(token: str, session: AsyncSession = Depends(get_db)):
    row = await PasswordResetService(session).verify_token(token)
    if row is None:
        return {"message": "Invalid or expired reset token", "data": ResetTokenStatusOut(valid=False)}
    return {
        "message": "Reset token is valid",
        "data": ResetTokenStatusOut(valid=True, email=row.email, expires_at=row.expires_at),
    }


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(body: ResetPasswordRequest, session: AsyncSession = Depends(get_db)):
    await PasswordResetService(session).reset_password(body.token, body.password)
    return {"message": "Password has been reset successfully"}
