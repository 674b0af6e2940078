"""SQLAlchemy ORM model for gate-pass vehicle entries.

Status moves pending → in → out. A vehicle number is unique inside a company.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, DateTime, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from app.domain.mixins import IdMixin, TenantMixin, TimestampMixin, as_utc, utcnow

VEHICLE_PURPOSES = ("delivery", "pickup", "maintenance", "other")
VEHICLE_STATUSES = ("pending", "in", "out")


class Vehicle(Base, IdMixin, TenantMixin, TimestampMixin):
    __tablename__ = "vehicles"
    __table_args__ = (
        UniqueConstraint("company_id", "vehicle_number", name="uq_vehicle_company_number"),
    )

    vehicle_number: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    driver_name: Mapped[str] = mapped_column(String(255), nullable=False)
    driver_phone: Mapped[str] = mapped_column(String(50), nullable=False)
    purpose: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    reason: Mapped[str] = mapped_column(Text, nullable=False)

    time_in: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    time_out: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    status: Mapped[str] = mapped_column(String(20), default="in", nullable=False, index=True)

    gate_pass_number: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, index=True)
    images: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    created_by: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)

    @property
    def duration_minutes(self) -> Optional[int]:
        """Minutes on premises; None while the vehicle has not left."""
        if not self.time_out or not self.time_in:
            return None
        delta = as_utc(self.time_out) - as_utc(self.time_in)
        return int(delta.total_seconds() // 60)
