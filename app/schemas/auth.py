"""Auth request DTOs and user/token response models."""

from datetime import datetime

from pydantic import EmailStr, Field

from app.schemas.common import CamelModel


class RegisterRequest(CamelModel):
    username: str = Field(min_length=3, max_length=100)
    email: EmailStr
    password: str = Field(min_length=1, max_length=128)
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None
    company_code: str = Field(min_length=2, max_length=50)
    company_name: str | None = None


class LoginRequest(CamelModel):
    # username, email or phone
    login: str = Field(min_length=1)
    password: str = Field(min_length=1)
    company_id: str | None = None


class RefreshRequest(CamelModel):
    refresh_token: str


class ForgotPasswordRequest(CamelModel):
    email: EmailStr


class ResetPasswordRequest(CamelModel):
    token: str
    password: str


class CompanyAccessOut(CamelModel):
    company_id: str
    role: str
    is_active: bool


class UserOut(CamelModel):
    id: str
    username: str
    email: str
    phone: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    full_name: str
    is_super_admin: bool
    is_active: bool
    last_login_at: datetime | None = None
    company_access: list[CompanyAccessOut] = []


class TokenOut(CamelModel):
    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    expires_in: int


class AuthOut(CamelModel):
    user: UserOut
    tokens: TokenOut


class TwoFactorChallengeOut(CamelModel):
    requires_two_factor: bool = True
    temp_token: str


class ResetTokenStatusOut(CamelModel):
    valid: bool
    email: str | None = None
    expires_at: datetime | None = None
