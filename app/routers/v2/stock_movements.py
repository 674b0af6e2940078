"""Stock movement router (/api/v2/stock-movements)."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import CurrentUser, get_current_company, require_admin
from app.core.pagination import PaginationParams, set_pagination_headers
from app.core.response import DataResponse, ListResponse, paginated
from app.db.base import get_db
from app.schemas.stock_movement import (
    InventoryLevelOut,
    ItemHistoryOut,
    MovementStatsOut,
    RejectMovementIn,
    StockMovementCreate,
    StockMovementOut,
    StockMovementUpdate,
)
from app.services.stock_movement import StockMovementService

router = APIRouter(prefix="/stock-movements", tags=["Stock Movements"])


def _svc(session: AsyncSession, current: CurrentUser) -> StockMovementService:
    return StockMovementService(session, current.company_id)


def _many(movements) -> dict:
    return {"data": [StockMovementOut.model_validate(m) for m in movements]}


@router.get("", response_model=ListResponse[StockMovementOut])
async def list_movements(
    response: Response,
    search: Optional[str] = Query(default=None),
    movement_type: Optional[str] = Query(default=None, alias="movementType"),
    item_id: Optional[str] = Query(default=None, alias="itemId"),
    approval_status: Optional[str] = Query(default=None, alias="approvalStatus"),
    date_from: Optional[datetime] = Query(default=None, alias="dateFrom"),
    date_to: Optional[datetime] = Query(default=None, alias="dateTo"),
    pagination: PaginationParams = Depends(),
    current: CurrentUser = Depends(get_current_company),
    session: AsyncSession = Depends(get_db),
):
    items, total = await _svc(session, current).list_movements(
        pagination,
        search=search,
        movement_type=movement_type,
        item_id=item_id,
        approval_status=approval_status,
        date_from=date_from,
        date_to=date_to,
    )
    set_pagination_headers(response, total, pagination.page, pagination.limit)
    return paginated(
        [StockMovementOut.model_validate(m) for m in items], total, pagination.page, pagination.limit
    )


@router.post("", response_model=DataResponse[StockMovementOut], status_code=status.HTTP_201_CREATED)
async def create_movement(
    body: StockMovementCreate,
    current: CurrentUser = Depends(get_current_company),
    session: AsyncSession = Depends(get_db),
):
    movement = await _svc(session, current).create_movement(body, created_by=current.id)
    return {"message": "Stock movement created successfully", "data": StockMovementOut.model_validate(movement)}


@router.get("/search", response_model=ListResponse[StockMovementOut])
async def search_movements(
    response: Response,
    q: str = Query(min_length=1),
    pagination: PaginationParams = Depends(),
    current: CurrentUser = Depends(get_current_company),
    session: AsyncSession = Depends(get_db),
):
    items, total = await _svc(session, current).list_movements(pagination, search=q)
    set_pagination_headers(response, total, pagination.page, pagination.limit)
    return paginated(
        [StockMovementOut.model_validate(m) for m in items], total, pagination.page, pagination.limit
    )


@router.get("/stats", response_model=DataResponse[MovementStatsOut])
async def movement_stats(
    date_from: Optional[datetime] = Query(default=None, alias="dateFrom"),
    date_to: Optional[datetime] = Query(default=None, alias="dateTo"),
    current: CurrentUser = Depends(get_current_company),
    session: AsyncSession = Depends(get_db),
):
    return {"data": await _svc(session, current).get_stats(date_from, date_to)}


@router.get("/recent", response_model=DataResponse[list[StockMovementOut]])
async def recent_movements(
    limit: int = Query(default=10, ge=1, le=100),
    current: CurrentUser = Depends(get_current_company),
    session: AsyncSession = Depends(get_db),
):
    return _many(await _svc(session, current).recent(limit))


@router.get("/pending-approvals", response_model=DataResponse[list[StockMovementOut]])
async def pending_approvals(
    current: CurrentUser = Depends(require_admin),
    session: AsyncSession = Depends(get_db),
):
    return _many(await _svc(session, current).pending_approvals())


@router.get("/inventory-levels", response_model=DataResponse[list[InventoryLevelOut]])
async def inventory_levels(
    current: CurrentUser = Depends(get_current_company),
    session: AsyncSession = Depends(get_db),
):
    return {"data": await _svc(session, current).inventory_levels()}


@router.post("/generate-number", response_model=DataResponse[dict])
async def generate_number(
    current: CurrentUser = Depends(get_current_company),
    session: AsyncSession = Depends(get_db),
):
    return {"data": {"movementNumber": await _svc(session, current).generate_movement_number()}}


@router.get("/date-range", response_model=DataResponse[list[StockMovementOut]])
async def movements_in_range(
    date_from: datetime = Query(alias="dateFrom"),
    date_to: datetime = Query(alias="dateTo"),
    current: CurrentUser = Depends(get_current_company),
    session: AsyncSession = Depends(get_db),
):
    return _many(await _svc(session, current).by_date_range(date_from, date_to))


@router.get("/type/{movement_type}", response_model=DataResponse[list[StockMovementOut]])
async def movements_by_type(
    movement_type: str,
    current: CurrentUser = Depends(get_current_company),
    session: AsyncSession = Depends(get_db),
):
    return _many(await _svc(session, current).by_type(movement_type))


@router.get("/item/{item_id}", response_model=DataResponse[list[StockMovementOut]])
async def movements_by_item(
    item_id: str,
    current: CurrentUser = Depends(get_current_company),
    session: AsyncSession = Depends(get_db),
):
    return _many(await _svc(session, current).by_item(item_id))


@router.get("/item/{item_id}/history", response_model=DataResponse[ItemHistoryOut])
async def item_history(
    item_id: str,
    current: CurrentUser = Depends(get_current_company),
    session: AsyncSession = Depends(get_db),
):
    """Approved movements of one item, oldest first, with the running balance."""
    return {"data": await _svc(session, current).item_history(item_id)}


@router.get("/warehouse/{warehouse_id}", response_model=DataResponse[list[StockMovementOut]])
async def movements_by_warehouse(
    warehouse_id: str,
    current: CurrentUser = Depends(get_current_company),
    session: AsyncSession = Depends(get_db),
):
    return _many(await _svc(session, current).by_warehouse(warehouse_id))


@router.get("/reference/{reference_number}", response_model=DataResponse[list[StockMovementOut]])
async def movements_by_reference(
    reference_number: str,
    current: CurrentUser = Depends(get_current_company),
    session: AsyncSession = Depends(get_db),
):
    return _many(await _svc(session, current).by_reference(reference_number))


@router.get("/{movement_id}", response_model=DataResponse[StockMovementOut])
async def get_movement(
    movement_id: str,
    current: CurrentUser = Depends(get_current_company),
    session: AsyncSession = Depends(get_db),
):
    movement = await _svc(session, current).get_movement(movement_id)
    return {"data": StockMovementOut.model_validate(movement)}


@router.put("/{movement_id}", response_model=DataResponse[StockMovementOut])
async def update_movement(
    movement_id: str,
    body: StockMovementUpdate,
    current: CurrentUser = Depends(get_current_company),
    session: AsyncSession = Depends(get_db),
):
    movement = await _svc(session, current).update_movement(movement_id, body)
    return {"message": "Stock movement updated successfully", "data": StockMovementOut.model_validate(movement)}


@router.post("/{movement_id}/approve", response_model=DataResponse[StockMovementOut])
async def approve_movement(
    movement_id: str,
    current: CurrentUser = Depends(require_admin),
    session: AsyncSession = Depends(get_db),
):
    movement = await _svc(session, current).approve(movement_id, current.id)
    return {"message": "Stock movement approved", "data": StockMovementOut.model_validate(movement)}


@router.post("/{movement_id}/reject", response_model=DataResponse[StockMovementOut])
async def reject_movement(
    movement_id: str,
    body: Optional[RejectMovementIn] = None,
    current: CurrentUser = Depends(require_admin),
    session: AsyncSession = Depends(get_db),
):
    movement = await _svc(session, current).reject(movement_id, current.id, body.reason if body else None)
    return {"message": "Stock movement rejected", "data": StockMovementOut.model_validate(movement)}
