"""Two-factor request DTOs and response models."""

from datetime import datetime

from pydantic import Field

from app.schemas.common import CamelModel


class TokenIn(CamelModel):
    token: str = Field(min_length=1, max_length=16)


class TestTokenIn(CamelModel):
    secret: str
    token: str = Field(min_length=1, max_length=16)


class DisableIn(CamelModel):
    password: str
    token: str | None = None


class PasswordIn(CamelModel):
    password: str


class VerifyIn(CamelModel):
    """Second login step; `temp_token` comes from the login response."""
    temp_token: str
    token: str | None = None
    backup_code: str | None = None
    company_id: str | None = None


class SetupOut(CamelModel):
    secret: str
    qr_code_url: str
    backup_codes: list[str] = []


class BackupCodesOut(CamelModel):
    backup_codes: list[str]


class StatusOut(CamelModel):
    is_enabled: bool
    backup_codes_remaining: int
    last_used: datetime | None = None


class TestTokenOut(CamelModel):
    verified: bool
    message: str


class UserTwoFactorOut(CamelModel):
    id: str
    username: str
    email: str
    full_name: str
    is_super_admin: bool
    is_active: bool
    two_factor_enabled: bool
    two_factor_setup_at: datetime | None = None
    two_factor_last_used: datetime | None = None
    backup_codes_remaining: int = 0


class AdoptionStatsOut(CamelModel):
    total_users: int
    two_factor_enabled: int
    two_factor_disabled: int
    adoption_rate: int


class AdminStatusOut(CamelModel):
    users: list[UserTwoFactorOut]
    stats: AdoptionStatsOut


class AuditEntryOut(CamelModel):
    id: str
    action: str
    entity_id: str | None = None
    user_id: str | None = None
    description: str | None = None
    ip_address: str | None = None
    created_at: datetime
