"""SQLAlchemy ORM model for customer visits and their expense line items."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, DateTime, Float, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from app.domain.mixins import IdMixin, TenantMixin, TimestampMixin

VISIT_PURPOSES = (
    "business_meeting",
    "product_demo",
    "negotiation",
    "follow_up",
    "site_visit",
    "other",
)
TRAVEL_TYPES = ("local", "outstation", "international")
APPROVAL_STATUSES = ("pending", "approved", "rejected", "reimbursed")

EXPENSE_CATEGORIES = ("accommodation", "food", "transportation", "gifts", "other")


def empty_totals() -> dict[str, float]:
    return {**{c: 0.0 for c in EXPENSE_CATEGORIES}, "total": 0.0}


class CustomerVisit(Base, IdMixin, TenantMixin, TimestampMixin):
    __tablename__ = "customer_visits"

    party_name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    contact_person: Mapped[str] = mapped_column(String(255), nullable=False)
    contact_phone: Mapped[str] = mapped_column(String(50), nullable=False)
    contact_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    visit_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)

    purpose: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    purpose_description: Mapped[str] = mapped_column(Text, nullable=False)
    travel_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)

    # {origin, destination, travel_mode, departure_date, return_date, travel_class}
    travel_details: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    # {hotel_name, check_in, check_out, room_type, total_cost}
    accommodation_details: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)

    food_expenses: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)
    gifts_given: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)
    transportation_expenses: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)
    other_expenses: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)

    # {status, notes, next_action_required, next_follow_up_date, business_generated, potential_business}
    visit_outcome: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    total_expenses: Mapped[dict[str, float]] = mapped_column(JSON, default=empty_totals, nullable=False)

    approval_status: Mapped[str] = mapped_column(String(20), default="pending", nullable=False, index=True)
    approved_by: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    reimbursement_amount: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    reimbursed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_by: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
