"""SQLAlchemy ORM model for inventory ledger entries (stock movements)."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, Boolean, DateTime, Float, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from app.domain.mixins import IdMixin, TenantMixin, TimestampMixin, utcnow

MOVEMENT_TYPES = (
    "inward",
    "outward",
    "transfer",
    "adjustment",
    "production_consume",
    "production_output",
    "return",
    "damage",
    "theft",
)
# Types accepted from the create endpoint; the rest come from other modules.
CREATABLE_MOVEMENT_TYPES = ("inward", "outward", "transfer", "adjustment")

INWARD_TYPES = ("inward", "production_output", "return")
OUTWARD_TYPES = ("outward", "production_consume", "damage", "theft")


class StockMovement(Base, IdMixin, TenantMixin, TimestampMixin):
    __tablename__ = "stock_movements"
    __table_args__ = (
        UniqueConstraint("company_id", "movement_number", name="uq_movement_company_number"),
    )

    movement_number: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    movement_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False, index=True
    )

    item_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    item_code: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)
    item_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    movement_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    # {type, number, date}
    reference_document: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    reference_number: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)

    quantity: Mapped[float] = mapped_column(Float, nullable=False)
    unit: Mapped[str] = mapped_column(String(20), default="pcs", nullable=False)
    rate: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    total_value: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)

    # {warehouse_id, warehouse_name, zone, rack, bin}
    from_location: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    to_location: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    # {batch_number, lot_number, manufacturing_date, expiry_date}
    batch_details: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    # {checked, checked_by, status, rejected_quantity, accepted_quantity, remarks}
    quality_check: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    # {before, after}
    stock_impact: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)

    approval_required: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    approval_status: Mapped[str] = mapped_column(String(20), default="approved", nullable=False, index=True)
    approved_by: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_by: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)

    @property
    def is_inward(self) -> bool:
        return self.movement_type in INWARD_TYPES

    @property
    def is_outward(self) -> bool:
        return self.movement_type in OUTWARD_TYPES

    @property
    def requires_approval(self) -> bool:
        return self.approval_required

    @property
    def is_pending(self) -> bool:
        return self.approval_status == "pending"

    @property
    def is_approved(self) -> bool:
        return self.approval_status == "approved"
