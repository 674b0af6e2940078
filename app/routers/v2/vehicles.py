"""Vehicle gate-pass router (/api/v2/vehicles).

Static paths (/search, /stats, /inside, /number/...) are declared before
/{vehicle_id} so they are not captured by it.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import CurrentUser, get_current_company, require_admin
from app.core.pagination import PaginationParams, set_pagination_headers
from app.core.response import DataResponse, ListResponse, MessageResponse, paginated
from app.db.base import get_db
from app.schemas.vehicle import (
    VehicleCreate,
    VehicleOut,
    VehicleStatsOut,
    VehicleStatusUpdate,
    VehicleUpdate,
)
from app.services.vehicle import VehicleService

router = APIRouter(prefix="/vehicles", tags=["Vehicles"])


def _svc(session: AsyncSession, current: CurrentUser) -> VehicleService:
    return VehicleService(session, current.company_id)


async def _page(
    response: Response,
    pagination: PaginationParams,
    service: VehicleService,
    **filters,
) -> dict:
    items, total = await service.list_vehicles(pagination, **filters)
    set_pagination_headers(response, total, pagination.page, pagination.limit)
    return paginated(
        [VehicleOut.model_validate(v) for v in items], total, pagination.page, pagination.limit
    )


@router.get("", response_model=ListResponse[VehicleOut])
async def list_vehicles(
    response: Response,
    search: Optional[str] = Query(default=None),
    purpose: Optional[str] = Query(default=None),
    filter_status: Optional[str] = Query(default=None, alias="status"),
    pagination: PaginationParams = Depends(),
    current: CurrentUser = Depends(get_current_company),
    session: AsyncSession = Depends(get_db),
):
    """List vehicles. Filter by ?purpose=, ?status=pending|in|out, ?search=."""
    return await _page(
        response, pagination, _svc(session, current),
        search=search, purpose=purpose, status=filter_status,
    )


@router.post("", response_model=DataResponse[VehicleOut], status_code=status.HTTP_201_CREATED)
async def create_vehicle(
    body: VehicleCreate,
    current: CurrentUser = Depends(get_current_company),
    session: AsyncSession = Depends(get_db),
):
    vehicle = await _svc(session, current).create_vehicle(body, created_by=current.id)
    return {"message": "Vehicle checked in successfully", "data": VehicleOut.model_validate(vehicle)}


@router.get("/search", response_model=ListResponse[VehicleOut])
async def search_vehicles(
    response: Response,
    q: str = Query(min_length=1),
    pagination: PaginationParams = Depends(),
    current: CurrentUser = Depends(get_current_company),
    session: AsyncSession = Depends(get_db),
):
    return await _page(response, pagination, _svc(session, current), search=q)


@router.get("/stats", response_model=DataResponse[VehicleStatsOut])
async def vehicle_stats(
    current: CurrentUser = Depends(get_current_company),
    session: AsyncSession = Depends(get_db),
):
    return {"data": await _svc(session, current).get_stats()}


@router.get("/inside", response_model=DataResponse[list[VehicleOut]])
async def vehicles_inside(
    current: CurrentUser = Depends(get_current_company),
    session: AsyncSession = Depends(get_db),
):
    vehicles = await _svc(session, current).currently_inside()
    return {"data": [VehicleOut.model_validate(v) for v in vehicles]}


@router.get("/purpose/{purpose}", response_model=DataResponse[list[VehicleOut]])
async def vehicles_by_purpose(
    purpose: str,
    current: CurrentUser = Depends(get_current_company),
    session: AsyncSession = Depends(get_db),
):
    vehicles = await _svc(session, current).by_purpose(purpose)
    return {"data": [VehicleOut.model_validate(v) for v in vehicles]}


@router.get("/number/{vehicle_number}", response_model=DataResponse[VehicleOut])
async def get_by_number(
    vehicle_number: str,
    current: CurrentUser = Depends(get_current_company),
    session: AsyncSession = Depends(get_db),
):
    vehicle = await _svc(session, current).get_by_number(vehicle_number)
    return {"data": VehicleOut.model_validate(vehicle)}


@router.get("/{vehicle_id}", response_model=DataResponse[VehicleOut])
async def get_vehicle(
    vehicle_id: str,
    current: CurrentUser = Depends(get_current_company),
    session: AsyncSession = Depends(get_db),
):
    vehicle = await _svc(session, current).get_vehicle(vehicle_id)
    return {"data": VehicleOut.model_validate(vehicle)}


@router.put("/{vehicle_id}", response_model=DataResponse[VehicleOut])
async def update_vehicle(
    vehicle_id: str,
    body: VehicleUpdate,
    current: CurrentUser = Depends(get_current_company),
    session: AsyncSession = Depends(get_db),
):
    vehicle = await _svc(session, current).update_vehicle(vehicle_id, body)
    return {"message": "Vehicle updated successfully", "data": VehicleOut.model_validate(vehicle)}


@router.patch("/{vehicle_id}/checkout", response_model=DataResponse[VehicleOut])
async def checkout_vehicle(
    vehicle_id: str,
    current: CurrentUser = Depends(get_current_company),
    session: AsyncSession = Depends(get_db),
):
    vehicle = await _svc(session, current).checkout_vehicle(vehicle_id)
    return {"message": "Vehicle checked out successfully", "data": VehicleOut.model_validate(vehicle)}


@router.put("/{vehicle_id}/status", response_model=DataResponse[VehicleOut])
async def update_vehicle_status(
    vehicle_id: str,
    body: VehicleStatusUpdate,
    current: CurrentUser = Depends(get_current_company),
    session: AsyncSession = Depends(get_db),
):
    vehicle = await _svc(session, current).update_status(vehicle_id, body.status)
    return {"message": "Vehicle status updated", "data": VehicleOut.model_validate(vehicle)}


@router.delete("/{vehicle_id}", response_model=MessageResponse)
async def delete_vehicle(
    vehicle_id: str,
    current: CurrentUser = Depends(require_admin),
    session: AsyncSession = Depends(get_db),
):
    await _svc(session, current).delete_vehicle(vehicle_id)
    return {"message": "Vehicle deleted successfully"}
