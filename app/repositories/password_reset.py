"""PasswordResetToken repository."""

from datetime import datetime

from sqlalchemy import and_, delete, or_

from app.domain.password_reset import PasswordResetToken
from app.repositories.base import BaseRepository


class PasswordResetTokenRepository(BaseRepository[PasswordResetToken]):
    model = PasswordResetToken

    async def delete_for_user(self, user_id: str) -> None:
        """Remove every outstanding token of a user in this company."""
        await self._session.execute(
            delete(PasswordResetToken)
            .where(PasswordResetToken.user_id == user_id)
            .where(PasswordResetToken.company_id == self._company_id)
        )
        await self._session.flush()

    async def delete_stale(self, now: datetime, used_before: datetime) -> int:
        result = await self._session.execute(
            delete(PasswordResetToken).where(
                or_(
                    PasswordResetToken.expires_at < now,
                    and_(
                        PasswordResetToken.used.is_(True),
                        PasswordResetToken.used_at < used_before,
                    ),
                )
            )
        )
        await self._session.flush()
        return result.rowcount or 0
