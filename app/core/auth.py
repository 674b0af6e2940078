"""Authentication and tenancy dependencies.

`get_current_user` resolves the Bearer access token to an active user;
`get_current_company` adds the tenant (X-Company-ID header, falling back to
the token's companyId) and the caller's role inside it.
"""

from dataclasses import dataclass, field
from typing import Any

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ForbiddenError, UnauthorizedError, ValidationError
from app.core.security import ACCESS_TOKEN, decode_token
from app.db.base import get_db
from app.domain.company import ADMIN_ROLES, User
from app.repositories.user import CompanyRepository, UserRepository

bearer = HTTPBearer(auto_error=False)


@dataclass
class CurrentUser:
    user: User
    claims: dict[str, Any] = field(default_factory=dict)
    company_id: str | None = None
    role: str = "user"

    @property
    def id(self) -> str:
        return self.user.id

    @property
    def is_super_admin(self) -> bool:
        return self.user.is_super_admin


def bearer_token(credentials: HTTPAuthorizationCredentials | None) -> str:
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError("Access denied. No token provided.")
    return credentials.credentials


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer),
    session: AsyncSession = Depends(get_db),
) -> CurrentUser:
    claims = decode_token(bearer_token(credentials), ACCESS_TOKEN)
    user = await UserRepository(session).get_by_id(claims.get("userId", ""))
    if user is None or not user.is_active:
        raise UnauthorizedError("User not found or inactive")

    request.state.user_id = user.id
    company_id = claims.get("companyId")
    return CurrentUser(user=user, claims=claims, company_id=company_id, role=user.role_in(company_id))


async def get_current_company(
    request: Request,
    current: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> CurrentUser:
    company_id = request.headers.get("X-Company-ID") or current.claims.get("companyId")
    if not company_id:
        raise ValidationError("Company ID is required")

    company = await CompanyRepository(session).get_by_id(company_id)
    if company is None or not company.is_active:
        raise ForbiddenError("Company not found or inactive")
    if not current.is_super_admin and current.user.access_for(company_id) is None:
        raise ForbiddenError("Access denied to this company")

    request.state.company_id = company_id
    current.company_id = company_id
    current.role = current.user.role_in(company_id)
    return current


def require_role(*roles: str):
    """Dependency factory: caller must hold one of `roles` in the active company."""

    async def _check(current: CurrentUser = Depends(get_current_company)) -> CurrentUser:
        if current.is_super_admin or current.role in roles:
            return current
        raise ForbiddenError("Insufficient permissions")

    return _check


require_admin = require_role(*ADMIN_ROLES)


async def require_super_admin(current: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not current.is_super_admin:
        raise ForbiddenError("Super admin access required")
    return current
