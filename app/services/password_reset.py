"""Password reset tokens: issue, verify, consume and clean up."""

import logging
import secrets
from datetime import timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ValidationError
from app.domain.password_reset import PasswordResetToken
from app.domain.mixins import utcnow
from app.repositories.password_reset import PasswordResetTokenRepository
from app.repositories.user import UserRepository
from app.services.auth import AuthService

logger = logging.getLogger(__name__)

TOKEN_TTL = timedelta(hours=1)
USED_TOKEN_RETENTION = timedelta(hours=24)


class PasswordResetService:
    def __init__(self, session: AsyncSession, company_id: str | None = None):
        self._session = session
        self._repo = PasswordResetTokenRepository(session, company_id)
        self._users = UserRepository(session)

    async def create_reset_token(
        self,
        user_id: str,
        company_id: str,
        email: str,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> PasswordResetToken:
        """Issue a fresh token; earlier tokens of the user in this company are dropped."""
        repo = PasswordResetTokenRepository(self._session, company_id)
        await repo.delete_for_user(user_id)
        token = await repo.create(
            user_id=user_id,
            token=secrets.token_hex(32),
            email=email.lower(),
            expires_at=utcnow() + TOKEN_TTL,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        logger.info("Password reset token issued for user %s", user_id)
        return token

    async def verify_token(self, token: str) -> PasswordResetToken | None:
        """Return the token row when it exists, is unused and not expired."""
        row = await self._repo.get_by(token=token)
        if row is None or not row.is_valid:
            return None
        return row

    async def mark_as_used(self, token: str) -> PasswordResetToken | None:
        row = await self._repo.get_by(token=token)
        if row is None:
            return None
        row.used = True
        row.used_at = utcnow()
        return await self._repo.save(row)

    async def cleanup_expired(self) -> int:
        now = utcnow()
        deleted = await self._repo.delete_stale(now, now - USED_TOKEN_RETENTION)
        if deleted:
            logger.info("Removed %s stale password reset tokens", deleted)
        return deleted

    # ------------------------------------------------------------------
    # Flows used by the auth router
    # ------------------------------------------------------------------

    async def request_reset(
        self, email: str, ip_address: str | None = None, user_agent: str | None = None
    ) -> PasswordResetToken | None:
        """Create a token for the account behind `email`; None when unknown.

        Callers must answer identically either way so accounts cannot be enumerated.
        """
        user = await self._users.get_by(email=email.strip().lower())
        if user is None or not user.is_active:
            logger.info("Password reset requested for unknown or inactive email")
            return None
        company_id = user.default_company_id
        if company_id is None:
            return None
        return await self.create_reset_token(user.id, company_id, user.email, ip_address, user_agent)

    async def reset_password(self, token: str, new_password: str) -> None:
        row = await self.verify_token(token)
        if row is None:
            raise ValidationError("Invalid or expired reset token")
        user = await self._users.get_by_id(row.user_id)
        if user is None:
            raise ValidationError("Invalid or expired reset token")

        await AuthService(self._session).set_password(user, new_password)
        await self.mark_as_used(token)
        logger.warning("Password reset completed for user %s", user.id)
