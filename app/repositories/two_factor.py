"""TwoFactor repository: one row per user."""

from app.domain.two_factor import TwoFactor
from app.repositories.base import BaseRepository


class TwoFactorRepository(BaseRepository[TwoFactor]):
    model = TwoFactor

    async def get_for_user(self, user_id: str) -> TwoFactor | None:
        return await self.get_by(user_id=user_id)

    async def for_users(self, user_ids: list[str]) -> dict[str, TwoFactor]:
        if not user_ids:
            return {}
        rows = await self.find_all(TwoFactor.user_id.in_(user_ids))
        return {row.user_id: row for row in rows}
