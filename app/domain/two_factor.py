"""SQLAlchemy ORM model for per-user TOTP two-factor state."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from app.domain.mixins import IdMixin, TimestampMixin, as_utc, utcnow


class TwoFactor(Base, IdMixin, TimestampMixin):
    __tablename__ = "two_factor"

    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True, index=True
    )
    secret: Mapped[str] = mapped_column(String(128), nullable=False)
    is_enabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # [{"code_hash": str, "used": bool, "used_at": iso-str | None}]
    backup_codes: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)

    last_used_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    setup_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    enabled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    disabled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    failed_attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    locked_until: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    @property
    def is_locked(self) -> bool:
        locked_until = as_utc(self.locked_until)
        return bool(locked_until and locked_until > utcnow())

    @property
    def unused_backup_codes(self) -> int:
        return sum(1 for c in self.backup_codes or [] if not c.get("used"))
