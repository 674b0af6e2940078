"""Customer visit router (/api/v2/customer-visits)."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import CurrentUser, get_current_company, require_admin
from app.core.pagination import PaginationParams, set_pagination_headers
from app.core.response import DataResponse, ListResponse, MessageResponse, paginated
from app.db.base import get_db
from app.schemas.customer_visit import (
    ApproveVisitIn,
    CustomerVisitCreate,
    CustomerVisitOut,
    CustomerVisitUpdate,
    ExpenseStatsOut,
    FoodExpenseIn,
    GiftIn,
    RejectIn,
)
from app.services.customer_visit import CustomerVisitService

router = APIRouter(prefix="/customer-visits", tags=["Customer Visits"])


def _svc(session: AsyncSession, current: CurrentUser) -> CustomerVisitService:
    return CustomerVisitService(session, current.company_id)


def _out(visit) -> CustomerVisitOut:
    return CustomerVisitOut.model_validate(visit)


@router.get("", response_model=ListResponse[CustomerVisitOut])
async def list_visits(
    response: Response,
    search: Optional[str] = Query(default=None),
    purpose: Optional[str] = Query(default=None),
    travel_type: Optional[str] = Query(default=None, alias="travelType"),
    approval_status: Optional[str] = Query(default=None, alias="approvalStatus"),
    date_from: Optional[datetime] = Query(default=None, alias="dateFrom"),
    date_to: Optional[datetime] = Query(default=None, alias="dateTo"),
    pagination: PaginationParams = Depends(),
    current: CurrentUser = Depends(get_current_company),
    session: AsyncSession = Depends(get_db),
):
    items, total = await _svc(session, current).list_visits(
        pagination,
        search=search,
        purpose=purpose,
        travel_type=travel_type,
        approval_status=approval_status,
        date_from=date_from,
        date_to=date_to,
    )
    set_pagination_headers(response, total, pagination.page, pagination.limit)
    return paginated([_out(v) for v in items], total, pagination.page, pagination.limit)


@router.post("", response_model=DataResponse[CustomerVisitOut], status_code=status.HTTP_201_CREATED)
async def create_visit(
    body: CustomerVisitCreate,
    current: CurrentUser = Depends(get_current_company),
    session: AsyncSession = Depends(get_db),
):
    visit = await _svc(session, current).create_visit(body, created_by=current.id)
    return {"message": "Customer visit created successfully", "data": _out(visit)}


@router.get("/stats", response_model=DataResponse[ExpenseStatsOut])
async def expense_stats(
    date_from: Optional[datetime] = Query(default=None, alias="dateFrom"),
    date_to: Optional[datetime] = Query(default=None, alias="dateTo"),
    current: CurrentUser = Depends(get_current_company),
    session: AsyncSession = Depends(get_db),
):
    return {"data": await _svc(session, current).expense_stats(date_from, date_to)}


@router.get("/pending-approvals", response_model=DataResponse[list[CustomerVisitOut]])
async def pending_approvals(
    current: CurrentUser = Depends(require_admin),
    session: AsyncSession = Depends(get_db),
):
    visits = await _svc(session, current).pending_approvals()
    return {"data": [_out(v) for v in visits]}


@router.get("/{visit_id}", response_model=DataResponse[CustomerVisitOut])
async def get_visit(
    visit_id: str,
    current: CurrentUser = Depends(get_current_company),
    session: AsyncSession = Depends(get_db),
):
    return {"data": _out(await _svc(session, current).get_visit(visit_id))}


@router.put("/{visit_id}", response_model=DataResponse[CustomerVisitOut])
async def update_visit(
    visit_id: str,
    body: CustomerVisitUpdate,
    current: CurrentUser = Depends(get_current_company),
    session: AsyncSession = Depends(get_db),
):
    visit = await _svc(session, current).update_visit(visit_id, body)
    return {"message": "Customer visit updated successfully", "data": _out(visit)}


@router.delete("/{visit_id}", response_model=MessageResponse)
async def delete_visit(
    visit_id: str,
    current: CurrentUser = Depends(get_current_company),
    session: AsyncSession = Depends(get_db),
):
    await _svc(session, current).delete_visit(visit_id)
    return {"message": "Customer visit deleted successfully"}


# ------------------------------------------------------------------
# Approval flow (admins, owners and managers)
# ------------------------------------------------------------------

@router.post("/{visit_id}/approve", response_model=DataResponse[CustomerVisitOut])
async def approve_visit(
    visit_id: str,
    body: Optional[ApproveVisitIn] = None,
    current: CurrentUser = Depends(require_admin),
    session: AsyncSession = Depends(get_db),
):
    amount = body.reimbursement_amount if body else None
    visit = await _svc(session, current).approve(visit_id, current.id, amount)
    return {"message": "Customer visit approved", "data": _out(visit)}


@router.post("/{visit_id}/reject", response_model=DataResponse[CustomerVisitOut])
async def reject_visit(
    visit_id: str,
    body: Optional[RejectIn] = None,
    current: CurrentUser = Depends(require_admin),
    session: AsyncSession = Depends(get_db),
):
    visit = await _svc(session, current).reject(visit_id, current.id, body.reason if body else None)
    return {"message": "Customer visit rejected", "data": _out(visit)}


@router.post("/{visit_id}/reimburse", response_model=DataResponse[CustomerVisitOut])
async def reimburse_visit(
    visit_id: str,
    current: CurrentUser = Depends(require_admin),
    session: AsyncSession = Depends(get_db),
):
    visit = await _svc(session, current).mark_reimbursed(visit_id)
    return {"message": "Customer visit marked as reimbursed", "data": _out(visit)}


# ------------------------------------------------------------------
# Expense line items
# ------------------------------------------------------------------

@router.post("/{visit_id}/food-expenses", response_model=DataResponse[CustomerVisitOut])
async def add_food_expense(
    visit_id: str,
    body: FoodExpenseIn,
    current: CurrentUser = Depends(get_current_company),
    session: AsyncSession = Depends(get_db),
):
    visit = await _svc(session, current).add_food_expense(visit_id, body)
    return {"message": "Food expense added", "data": _out(visit)}


@router.post("/{visit_id}/gifts", response_model=DataResponse[CustomerVisitOut])
async def add_gift(
    visit_id: str,
    body: GiftIn,
    current: CurrentUser = Depends(get_current_company),
    session: AsyncSession = Depends(get_db),
):
    visit = await _svc(session, current).add_gift(visit_id, body)
    return {"message": "Gift added", "data": _out(visit)}
