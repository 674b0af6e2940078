"""Authentication service: registration, login with lockout, token issue/refresh.

Rule: No FastAPI here. Routers translate the returned dicts to responses.
"""

import logging
from datetime import timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import (
    AccountLockedError,
    ConflictError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from app.core.security import (
    REFRESH_TOKEN,
    create_access_token,
    create_refresh_token,
    create_temp_2fa_token,
    decode_token,
    hash_password,
    verify_password,
)
from app.domain.company import User
from app.domain.mixins import utcnow
from app.repositories.user import CompanyAccessRepository, CompanyRepository, UserRepository
from app.schemas.auth import RegisterRequest
from app.services.two_factor import TwoFactorService

logger = logging.getLogger(__name__)


class AuthService:
    def __init__(self, session: AsyncSession):
        self._users = UserRepository(session)
        self._companies = CompanyRepository(session)
        self._access = CompanyAccessRepository(session)
        self._two_factor = TwoFactorService(session)

    # ------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------

    async def issue_tokens(self, user: User, company_id: str | None = None) -> dict:
        company_id = company_id or user.default_company_id
        access = create_access_token(
            user_id=user.id,
            username=user.username,
            email=user.email,
            company_id=company_id,
            role=user.role_in(company_id),
            is_super_admin=user.is_super_admin,
        )
        refresh, jti = create_refresh_token(user.id)
        user.refresh_token_id = jti
        await self._users.save(user)
        return {
            "access_token": access,
            "refresh_token": refresh,
            "token_type": "Bearer",
            "expires_in": settings.jwt_access_expire_minutes * 60,
        }

    # ------------------------------------------------------------------
    # Register / login
    # ------------------------------------------------------------------

    async def register(self, data: RegisterRequest) -> tuple[User, dict]:
        if len(data.password) < settings.password_min_length:
            raise ValidationError(
                f"Password must be at least {settings.password_min_length} characters long"
            )
        if await self._users.exists(username=data.username, email=data.email):
            raise ConflictError("User with this username or email already exists")

        code = data.company_code.strip().upper()
        company = await self._companies.get_by_code(code)
        created_company = company is None
        if company is None:
            company = await self._companies.create(name=data.company_name or code, company_code=code)
        elif not company.is_active:
            raise ValidationError("Company is not active")

        is_first_user = await self._users.total_users() == 0
        user = await self._users.create(
            username=data.username.strip(),
            email=data.email.lower(),
            phone=data.phone,
            password_hash=hash_password(data.password),
            first_name=data.first_name,
            last_name=data.last_name,
            is_super_admin=is_first_user,
        )
        role = "super_admin" if is_first_user else ("owner" if created_company else "user")
        await self._access.grant(user.id, company.id, role)
        user = await self._users.save(user)

        logger.info("User %s registered in company %s (role=%s)", user.username, company.company_code, role)
        return user, await self.issue_tokens(user, company.id)

    async def login(self, login: str, password: str, company_id: str | None = None) -> dict:
        user = await self._users.get_by_login(login)
        if user is None:
            raise UnauthorizedError("Invalid credentials")
        if not user.is_active:
            raise UnauthorizedError("Account is deactivated")
        if user.is_locked:
            raise AccountLockedError(
                "Account is temporarily locked due to too many failed login attempts"
            )

        if not verify_password(password, user.password_hash):
            await self._register_failed_login(user)
            raise UnauthorizedError("Invalid credentials")

        user.failed_login_attempts = 0
        user.locked_until = None

        if await self._two_factor.is_enabled_for(user.id):
            await self._users.save(user)
            logger.info("Login for %s awaiting 2FA", user.username)
            return {"requires_two_factor": True, "temp_token": create_temp_2fa_token(user.id)}

        return await self.complete_login(user, company_id)

    async def complete_login(self, user: User, company_id: str | None = None) -> dict:
        if company_id and not user.is_super_admin and user.access_for(company_id) is None:
            raise UnauthorizedError("Access denied to this company")
        user.last_login_at = utcnow()
        tokens = await self.issue_tokens(user, company_id)
        logger.info("User %s logged in", user.username)
        return {"requires_two_factor": False, "user": user, "tokens": tokens}

    async def _register_failed_login(self, user: User) -> None:
        user.failed_login_attempts = (user.failed_login_attempts or 0) + 1
        if user.failed_login_attempts >= settings.max_login_attempts:
            user.locked_until = utcnow() + timedelta(minutes=settings.lockout_minutes)
            logger.warning(
                "Account %s locked after %s failed logins", user.username, user.failed_login_attempts
            )
        await self._users.save(user)
        await self._users.commit()

    # ------------------------------------------------------------------
    # Refresh / logout / profile
    # ------------------------------------------------------------------

    async def refresh(self, refresh_token: str) -> dict:
        payload = decode_token(refresh_token, REFRESH_TOKEN)
        user = await self._users.get_by_id(payload["userId"])
        if user is None or not user.is_active:
            raise UnauthorizedError("User not found or inactive")
        if user.refresh_token_id != payload.get("jti"):
            raise UnauthorizedError("Refresh token has been revoked")
        return await self.issue_tokens(user)

    async def logout(self, user_id: str) -> None:
        user = await self._users.get_by_id(user_id)
        if user is not None:
            user.refresh_token_id = None
            await self._users.save(user)

    async def get_user(self, user_id: str) -> User:
        user = await self._users.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return user

    async def set_password(self, user: User, new_password: str) -> None:
        if len(new_password) < settings.password_min_length:
            raise ValidationError(
                f"Password must be at least {settings.password_min_length} characters long"
            )
        user.password_hash = hash_password(new_password)
        user.failed_login_attempts = 0
        user.locked_until = None
        user.refresh_token_id = None
        await self._users.save(user)
