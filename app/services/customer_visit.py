"""Customer visit service: visit records, expense line items and approval flow."""

import logging
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, ValidationError
from app.core.pagination import PaginationParams
from app.domain.customer_visit import (
    APPROVAL_STATUSES,
    TRAVEL_TYPES,
    VISIT_PURPOSES,
    CustomerVisit,
    empty_totals,
)
from app.domain.mixins import utcnow
from app.repositories.customer_visit import CustomerVisitRepository
from app.schemas.customer_visit import (
    CustomerVisitCreate,
    CustomerVisitUpdate,
    FoodExpenseIn,
    GiftIn,
)

logger = logging.getLogger(__name__)


def _money(value) -> float:
    return round(float(value or 0), 2)


def calculate_totals(items: Mapping[str, Any]) -> dict[str, float]:
    """Recompute the per-category expense summary from the line items."""
    totals = empty_totals()
    accommodation = items.get("accommodation_details") or {}
    totals["accommodation"] = _money(accommodation.get("total_cost"))
    totals["food"] = _money(sum(float(e.get("total_cost") or 0) for e in items.get("food_expenses") or []))
    totals["gifts"] = _money(sum(float(g.get("total_cost") or 0) for g in items.get("gifts_given") or []))
    totals["transportation"] = _money(
        sum(float(t.get("cost") or 0) for t in items.get("transportation_expenses") or [])
    )
    totals["other"] = _money(sum(float(o.get("cost") or 0) for o in items.get("other_expenses") or []))
    totals["total"] = _money(
        sum(totals[k] for k in ("accommodation", "food", "transportation", "gifts", "other"))
    )
    return totals


def _visit_items(visit: CustomerVisit) -> dict[str, Any]:
    return {
        "accommodation_details": visit.accommodation_details,
        "food_expenses": visit.food_expenses,
        "gifts_given": visit.gifts_given,
        "transportation_expenses": visit.transportation_expenses,
        "other_expenses": visit.other_expenses,
    }


def _line_items(values: dict) -> dict:
    """Derive computed line-item totals before persisting."""
    for food in values.get("food_expenses") or []:
        food["total_cost"] = _money(food.get("cost_per_person", 0) * food.get("number_of_people", 1))
    for gift in values.get("gifts_given") or []:
        gift["total_cost"] = _money(gift.get("unit_cost", 0) * gift.get("quantity", 1))
    return values


class CustomerVisitService:
    def __init__(self, session: AsyncSession, company_id: str):
        self._repo = CustomerVisitRepository(session, company_id)

    async def list_visits(
        self,
        pagination: PaginationParams,
        *,
        search: str | None = None,
        purpose: str | None = None,
        travel_type: str | None = None,
        approval_status: str | None = None,
        date_from: datetime | None = None,
        date_to: datetime | None = None,
    ):
        conditions = []
        if date_from:
            conditions.append(CustomerVisit.visit_date >= date_from)
        if date_to:
            conditions.append(CustomerVisit.visit_date <= date_to)
        return await self._repo.list(
            offset=pagination.offset,
            limit=pagination.limit,
            order_by=pagination.sort if pagination.sort != "created_at" else "visit_date",
            order=pagination.order,
            filters={
                "purpose": purpose,
                "travel_type": travel_type,
                "approval_status": approval_status,
            },
            search=search,
            conditions=conditions,
        )

    async def get_visit(self, visit_id: str) -> CustomerVisit:
        visit = await self._repo.get_by_id(visit_id)
        if not visit:
            raise NotFoundError("Customer visit", visit_id)
        return visit

    async def create_visit(self, data: CustomerVisitCreate, created_by: str | None = None) -> CustomerVisit:
        values = _line_items(data.model_dump(mode="json", exclude_none=True))
        values["visit_date"] = data.visit_date
        if values["purpose"] not in VISIT_PURPOSES:
            raise ValidationError(f"Purpose must be one of: {', '.join(VISIT_PURPOSES)}")
        if values["travel_type"] not in TRAVEL_TYPES:
            raise ValidationError(f"Travel type must be one of: {', '.join(TRAVEL_TYPES)}")

        visit = await self._repo.create(
            **values,
            approval_status="pending",
            total_expenses=calculate_totals(values),
            created_by=created_by,
        )
        logger.info("Customer visit %s created for %s", visit.id, visit.party_name)
        return visit

    async def update_visit(self, visit_id: str, data: CustomerVisitUpdate) -> CustomerVisit:
        visit = await self.get_visit(visit_id)
        values = _line_items(data.model_dump(mode="json", exclude_none=True, exclude_unset=True))
        if data.visit_date is not None:
            values["visit_date"] = data.visit_date
        if "purpose" in values and values["purpose"] not in VISIT_PURPOSES:
            raise ValidationError(f"Purpose must be one of: {', '.join(VISIT_PURPOSES)}")
        if "travel_type" in values and values["travel_type"] not in TRAVEL_TYPES:
            raise ValidationError(f"Travel type must be one of: {', '.join(TRAVEL_TYPES)}")

        for key, value in values.items():
            setattr(visit, key, value)
        visit.total_expenses = calculate_totals(_visit_items(visit))
        return await self._repo.save(visit)

    async def delete_visit(self, visit_id: str) -> None:
        deleted = await self._repo.soft_delete(visit_id)
        if not deleted:
            raise NotFoundError("Customer visit", visit_id)

    # ------------------------------------------------------------------
    # Approval flow: pending → approved | rejected, approved → reimbursed
    # ------------------------------------------------------------------

    async def approve(
        self, visit_id: str, approved_by: str, reimbursement_amount: float | None = None
    ) -> CustomerVisit:
        visit = await self.get_visit(visit_id)
        if visit.approval_status != "pending":
            raise ValidationError("Visit is not pending approval")

        visit.approval_status = "approved"
        visit.approved_by = approved_by
        visit.approved_at = utcnow()
        visit.reimbursement_amount = (
            reimbursement_amount
            if reimbursement_amount is not None
            else (visit.total_expenses or {}).get("total", 0.0)
        )
        visit = await self._repo.save(visit)
        logger.info("Visit %s approved by %s", visit.id, approved_by)
        return visit

    async def reject(self, visit_id: str, rejected_by: str, reason: str | None = None) -> CustomerVisit:
        visit = await self.get_visit(visit_id)
        if visit.approval_status != "pending":
            raise ValidationError("Visit is not pending approval")

        visit.approval_status = "rejected"
        visit.approved_by = rejected_by
        visit.approved_at = utcnow()
        if reason:
            outcome = dict(visit.visit_outcome or {})
            outcome["notes"] = f"{outcome.get('notes') or ''}\n\nRejection Reason: {reason}"
            visit.visit_outcome = outcome
        visit = await self._repo.save(visit)
        logger.info("Visit %s rejected by %s", visit.id, rejected_by)
        return visit

    async def mark_reimbursed(self, visit_id: str) -> CustomerVisit:
        visit = await self.get_visit(visit_id)
        if visit.approval_status != "approved":
            raise ValidationError("Visit must be approved before reimbursement")

        visit.approval_status = "reimbursed"
        visit.reimbursed_at = utcnow()
        return await self._repo.save(visit)

    # ------------------------------------------------------------------
    # Expense line items
    # ------------------------------------------------------------------

    async def add_food_expense(self, visit_id: str, expense: FoodExpenseIn) -> CustomerVisit:
        visit = await self.get_visit(visit_id)
        entry = expense.model_dump(mode="json", exclude_none=True)
        entry["total_cost"] = _money(expense.cost_per_person * expense.number_of_people)
        visit.food_expenses = [*(visit.food_expenses or []), entry]
        visit.total_expenses = calculate_totals(_visit_items(visit))
        return await self._repo.save(visit)

    async def add_gift(self, visit_id: str, gift: GiftIn) -> CustomerVisit:
        visit = await self.get_visit(visit_id)
        entry = gift.model_dump(mode="json", exclude_none=True)
        entry["total_cost"] = _money(gift.unit_cost * gift.quantity)
        visit.gifts_given = [*(visit.gifts_given or []), entry]
        visit.total_expenses = calculate_totals(_visit_items(visit))
        return await self._repo.save(visit)

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    async def pending_approvals(self) -> list[CustomerVisit]:
        return await self._repo.find_all(
            CustomerVisit.approval_status == "pending",
            order_by=CustomerVisit.visit_date.asc(),
        )

    async def expense_stats(
        self, date_from: datetime | None = None, date_to: datetime | None = None
    ) -> dict:
        conditions = []
        if date_from:
            conditions.append(CustomerVisit.visit_date >= date_from)
        if date_to:
            conditions.append(CustomerVisit.visit_date <= date_to)
        visits = await self._repo.find_all(*conditions)

        categories = empty_totals()
        for visit in visits:
            for key, value in (visit.total_expenses or {}).items():
                if key in categories:
                    categories[key] += float(value or 0)
        total = _money(categories.pop("total"))

        by_status = {s: 0 for s in APPROVAL_STATUSES}
        for visit in visits:
            by_status[visit.approval_status] = by_status.get(visit.approval_status, 0) + 1

        return {
            "total_visits": len(visits),
            "total_expenses": total,
            "average_expense_per_visit": _money(total / len(visits)) if visits else 0.0,
            "by_category": {k: _money(v) for k, v in categories.items()},
            "pending_approvals": by_status["pending"],
            "approved": by_status["approved"],
            "rejected": by_status["rejected"],
            "reimbursed": by_status["reimbursed"],
        }
