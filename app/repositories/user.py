"""User, company and company-access repositories (global, not tenant scoped)."""

from sqlalchemy import func, or_, select

from app.domain.company import Company, User, UserCompanyAccess
from app.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    model = User
    search_fields = ("username", "email", "first_name", "last_name")

    async def get_by_login(self, login: str) -> User | None:
        """Match a login identifier against username, email or phone."""
        ident = login.strip()
        return (
            await self._session.execute(
                self._base_query().where(
                    or_(
                        func.lower(User.username) == ident.lower(),
                        func.lower(User.email) == ident.lower(),
                        User.phone == ident,
                    )
                )
            )
        ).scalars().first()

    async def exists(self, *, username: str, email: str) -> bool:
        q = self._base_query().where(
            or_(
                func.lower(User.username) == username.lower(),
                func.lower(User.email) == email.lower(),
            )
        )
        return (await self._session.execute(q)).scalars().first() is not None

    async def total_users(self) -> int:
        return (await self._session.execute(select(func.count(User.id)))).scalar_one()


class CompanyRepository(BaseRepository[Company]):
    model = Company

    async def get_by_code(self, company_code: str) -> Company | None:
        return await self.get_by(company_code=company_code.strip().upper())

    async def get_active(self, company_id: str) -> Company | None:
        return await self.get_by(id=company_id, is_active=True)


class CompanyAccessRepository(BaseRepository[UserCompanyAccess]):
    model = UserCompanyAccess

    async def grant(self, user_id: str, company_id: str, role: str) -> UserCompanyAccess:
        return await self.create(user_id=user_id, company_id=company_id, role=role)
