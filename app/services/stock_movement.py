"""Stock movement (inventory ledger) service.

Balance rules used by history, stock impact and inventory levels:
inward-type movements add, outward-type movements subtract, an adjustment
sets the balance to its quantity and transfers leave the item total unchanged.
"""

import logging
from collections import defaultdict
from collections.abc import Iterable
from datetime import datetime

from sqlalchemy import or_
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, ValidationError
from app.core.pagination import PaginationParams
from app.domain.mixins import utcnow
from app.domain.stock_movement import (
    CREATABLE_MOVEMENT_TYPES,
    MOVEMENT_TYPES,
    StockMovement,
)
from app.repositories.stock_movement import StockMovementRepository
from app.schemas.stock_movement import StockMovementCreate, StockMovementUpdate

logger = logging.getLogger(__name__)


def apply_movement(balance: float, movement: StockMovement) -> float:
    if movement.movement_type == "adjustment":
        return float(movement.quantity)
    if movement.is_inward:
        return balance + abs(movement.quantity)
    if movement.is_outward:
        return balance - abs(movement.quantity)
    return balance


def running_balance(movements: Iterable[StockMovement]) -> tuple[list[dict], float]:
    """Return ([{movement, balance}], final_balance) in the given order."""
    balance = 0.0
    rows = []
    for movement in movements:
        balance = apply_movement(balance, movement)
        rows.append({"movement": movement, "balance": round(balance, 4)})
    return rows, round(balance, 4)


class StockMovementService:
    def __init__(self, session: AsyncSession, company_id: str):
        self._repo = StockMovementRepository(session, company_id)

    # ------------------------------------------------------------------
    # Numbering
    # ------------------------------------------------------------------

    async def generate_movement_number(self, when: datetime | None = None) -> str:
        when = when or utcnow()
        prefix = f"MOV{when.year:04d}{when.month:02d}"
        count = await self._repo.count_with_prefix(prefix)
        return f"{prefix}{count + 1:04d}"

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    async def list_movements(
        self,
        pagination: PaginationParams,
        *,
        search: str | None = None,
        movement_type: str | None = None,
        item_id: str | None = None,
        approval_status: str | None = None,
        date_from: datetime | None = None,
        date_to: datetime | None = None,
    ):
        conditions = []
        if date_from:
            conditions.append(StockMovement.movement_date >= date_from)
        if date_to:
            conditions.append(StockMovement.movement_date <= date_to)
        return await self._repo.list(
            offset=pagination.offset,
            limit=pagination.limit,
            order_by=pagination.sort if pagination.sort != "created_at" else "movement_date",
            order=pagination.order,
            filters={
                "movement_type": movement_type,
                "item_id": item_id,
                "approval_status": approval_status,
            },
            search=search,
            conditions=conditions,
        )

    async def get_movement(self, movement_id: str) -> StockMovement:
        movement = await self._repo.get_by_id(movement_id)
        if not movement:
            raise NotFoundError("Stock movement", movement_id)
        return movement

    async def create_movement(
        self, data: StockMovementCreate, created_by: str | None = None
    ) -> StockMovement:
        if data.movement_type not in CREATABLE_MOVEMENT_TYPES:
            raise ValidationError(
                f"Movement type must be one of: {', '.join(CREATABLE_MOVEMENT_TYPES)}"
            )
        if data.quantity <= 0:
            raise ValidationError("Quantity must be greater than 0")

        values = data.model_dump(mode="json", exclude_none=True)
        values["movement_date"] = data.movement_date or utcnow()
        values["movement_number"] = data.movement_number or await self.generate_movement_number(
            values["movement_date"]
        )

        if not values.get("total_value") and data.rate:
            values["total_value"] = round(abs(data.quantity) * data.rate, 2)

        quality = values.get("quality_check")
        if quality is not None and quality.get("accepted_quantity") is None:
            quality["accepted_quantity"] = data.quantity - float(quality.get("rejected_quantity") or 0)

        if data.reference_document and data.reference_document.number:
            values["reference_number"] = data.reference_document.number

        if data.approval_required:
            values["approval_status"] = "pending"

        movement = StockMovement(**values)
        if "stock_impact" not in values:
            before = await self.current_balance(data.item_id)
            values["stock_impact"] = {"before": before, "after": apply_movement(before, movement)}

        movement = await self._repo.create(**values, created_by=created_by)
        logger.info(
            "Stock movement %s (%s %s x %s)",
            movement.movement_number, movement.movement_type, movement.item_id, movement.quantity,
        )
        return movement

    async def update_movement(self, movement_id: str, data: StockMovementUpdate) -> StockMovement:
        movement = await self.get_movement(movement_id)
        values = data.model_dump(mode="json", exclude_none=True, exclude_unset=True)
        if data.movement_date is not None:
            values["movement_date"] = data.movement_date
        if "movement_type" in values and values["movement_type"] not in MOVEMENT_TYPES:
            raise ValidationError(f"Movement type must be one of: {', '.join(MOVEMENT_TYPES)}")
        if "quantity" in values and values["quantity"] <= 0:
            raise ValidationError("Quantity must be greater than 0")

        for key, value in values.items():
            setattr(movement, key, value)
        if ("quantity" in values or "rate" in values) and "total_value" not in values:
            movement.total_value = round(abs(movement.quantity) * (movement.rate or 0), 2)
        return await self._repo.save(movement)

    # ------------------------------------------------------------------
    # Approval
    # ------------------------------------------------------------------

    async def approve(self, movement_id: str, approved_by: str) -> StockMovement:
        movement = await self.get_movement(movement_id)
        if not movement.is_pending:
            raise ValidationError("Movement is not pending approval")
        movement.approval_status = "approved"
        movement.approved_by = approved_by
        movement.approved_at = utcnow()
        return await self._repo.save(movement)

    async def reject(self, movement_id: str, rejected_by: str, reason: str | None = None) -> StockMovement:
        movement = await self.get_movement(movement_id)
        if not movement.is_pending:
            raise ValidationError("Movement is not pending approval")
        movement.approval_status = "rejected"
        movement.approved_by = rejected_by
        movement.approved_at = utcnow()
        if reason:
            movement.notes = f"{movement.notes or ''}\n\nRejection Reason: {reason}".strip()
        return await self._repo.save(movement)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def recent(self, limit: int = 10) -> list[StockMovement]:
        return await self._repo.find_all(order_by=StockMovement.movement_date.desc(), limit=limit)

    async def by_item(self, item_id: str) -> list[StockMovement]:
        return await self._repo.find_all(
            StockMovement.item_id == item_id, order_by=StockMovement.movement_date.desc()
        )

    async def by_type(self, movement_type: str) -> list[StockMovement]:
        if movement_type not in MOVEMENT_TYPES:
            raise ValidationError(f"Movement type must be one of: {', '.join(MOVEMENT_TYPES)}")
        return await self._repo.find_all(
            StockMovement.movement_type == movement_type,
            order_by=StockMovement.movement_date.desc(),
        )

    async def by_warehouse(self, warehouse_id: str) -> list[StockMovement]:
        return await self._repo.find_all(
            or_(
                StockMovement.from_location["warehouse_id"].as_string() == warehouse_id,
                StockMovement.to_location["warehouse_id"].as_string() == warehouse_id,
            ),
            order_by=StockMovement.movement_date.desc(),
        )

    async def by_reference(self, reference_number: str) -> list[StockMovement]:
        return await self._repo.find_all(
            StockMovement.reference_number == reference_number,
            order_by=StockMovement.movement_date.desc(),
        )

    async def by_date_range(self, date_from: datetime, date_to: datetime) -> list[StockMovement]:
        if date_from > date_to:
            raise ValidationError("dateFrom must be before dateTo")
        return await self._repo.find_all(
            StockMovement.movement_date >= date_from,
            StockMovement.movement_date <= date_to,
            order_by=StockMovement.movement_date.desc(),
        )

    async def pending_approvals(self) -> list[StockMovement]:
        return await self._repo.find_all(
            StockMovement.approval_status == "pending",
            order_by=StockMovement.movement_date.asc(),
        )

    # ------------------------------------------------------------------
    # Balances and statistics
    # ------------------------------------------------------------------

    async def _approved_history(self, item_id: str) -> list[StockMovement]:
        return await self._repo.find_all(
            StockMovement.item_id == item_id,
            StockMovement.approval_status == "approved",
            order_by=StockMovement.movement_date.asc(),
        )

    async def current_balance(self, item_id: str) -> float:
        _, balance = running_balance(await self._approved_history(item_id))
        return balance

    async def item_history(self, item_id: str) -> dict:
        rows, balance = running_balance(await self._approved_history(item_id))
        return {"item_id": item_id, "current_balance": balance, "history": rows}

    async def inventory_levels(self) -> list[dict]:
        movements = await self._repo.find_all(
            StockMovement.approval_status == "approved",
            order_by=StockMovement.movement_date.asc(),
        )
        by_item: dict[str, list[StockMovement]] = defaultdict(list)
        for movement in movements:
            by_item[movement.item_id].append(movement)

        levels = []
        for item_id, item_movements in by_item.items():
            _, balance = running_balance(item_movements)
            last = item_movements[-1]
            levels.append(
                {
                    "item_id": item_id,
                    "item_code": last.item_code,
                    "item_name": last.item_name,
                    "unit": last.unit,
                    "quantity": balance,
                    "last_movement_at": last.movement_date,
                }
            )
        return sorted(levels, key=lambda lvl: (lvl["item_code"] or "", lvl["item_id"]))

    async def get_stats(
        self, date_from: datetime | None = None, date_to: datetime | None = None
    ) -> dict:
        conditions = []
        if date_from:
            conditions.append(StockMovement.movement_date >= date_from)
        if date_to:
            conditions.append(StockMovement.movement_date <= date_to)
        movements = await self._repo.find_all(*conditions)

        by_type: dict[str, dict] = {}
        by_date: dict[str, int] = defaultdict(int)
        qty_in = qty_out = 0.0
        for m in movements:
            bucket = by_type.setdefault(m.movement_type, {"count": 0, "quantity": 0.0, "value": 0.0})
            bucket["count"] += 1
            bucket["quantity"] += abs(m.quantity)
            bucket["value"] += m.total_value or 0.0
            if m.is_inward:
                qty_in += abs(m.quantity)
            elif m.is_outward:
                qty_out += abs(m.quantity)
            by_date[m.movement_date.date().isoformat()] += 1

        return {
            "total_movements": len(movements),
            "total_value": round(sum(m.total_value or 0.0 for m in movements), 2),
            "total_quantity_in": qty_in,
            "total_quantity_out": qty_out,
            "by_type": by_type,
            "by_date": [{"date": d, "count": c} for d, c in sorted(by_date.items())],
            "pending_approvals": sum(1 for m in movements if m.is_pending),
        }
