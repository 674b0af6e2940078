"""SQLAlchemy ORM models for companies, users and per-company access.

Users are global (one login across tenants); their reach into a tenant is
granted by a `UserCompanyAccess` row carrying the role inside that company.
Super admins bypass access rows entirely.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.domain.mixins import IdMixin, TimestampMixin, as_utc, utcnow

# Roles that pass `require_admin`
ADMIN_ROLES = ("admin", "owner", "manager")


class Company(Base, IdMixin, TimestampMixin):
    __tablename__ = "companies"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    company_code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class User(Base, IdMixin, TimestampMixin):
    __tablename__ = "users"

    username: Mapped[str] = mapped_column(String(100), nullable=False, unique=True, index=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    first_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    last_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    is_super_admin: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Login lockout
    failed_login_attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    locked_until: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    last_login_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # jti of the currently valid refresh token (None after logout)
    refresh_token_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)

    company_access: Mapped[List["UserCompanyAccess"]] = relationship(
        back_populates="user", lazy="selectin", cascade="all, delete-orphan"
    )

    @property
    def is_locked(self) -> bool:
        locked_until = as_utc(self.locked_until)
        return bool(locked_until and locked_until > utcnow())

    @property
    def full_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name) if p) or self.username

    def access_for(self, company_id: str) -> Optional["UserCompanyAccess"]:
        for access in self.company_access:
            if access.company_id == company_id and access.is_active:
                return access
        return None

    def role_in(self, company_id: str | None) -> str:
        if self.is_super_admin:
            return "super_admin"
        access = self.access_for(company_id) if company_id else None
        return access.role if access else "user"

    @property
    def default_company_id(self) -> str | None:
        for access in self.company_access:
            if access.is_active:
                return access.company_id
        return None


class UserCompanyAccess(Base, IdMixin):
    __tablename__ = "user_company_access"
    __table_args__ = (UniqueConstraint("user_id", "company_id", name="uq_user_company"),)

    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    company_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # "super_admin" | "owner" | "admin" | "manager" | "user"
    role: Mapped[str] = mapped_column(String(50), default="user", nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    joined_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    user: Mapped["User"] = relationship(back_populates="company_access")
