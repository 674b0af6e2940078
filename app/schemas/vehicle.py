"""Vehicle gate-pass schemas."""

from datetime import datetime

from app.schemas.common import CamelModel


class VehicleCreate(CamelModel):
    # Required fields are checked by the service so the messages match the API contract
    vehicle_number: str | None = None
    driver_name: str | None = None
    driver_phone: str | None = None
    purpose: str | None = None
    reason: str | None = None
    gate_pass_number: str | None = None
    images: list[str] | None = None


class VehicleUpdate(CamelModel):
    vehicle_number: str | None = None
    driver_name: str | None = None
    driver_phone: str | None = None
    purpose: str | None = None
    reason: str | None = None
    gate_pass_number: str | None = None
    images: list[str] | None = None


class VehicleStatusUpdate(CamelModel):
    status: str


class VehicleOut(CamelModel):
    id: str
    company_id: str
    vehicle_number: str
    driver_name: str
    driver_phone: str
    purpose: str
    reason: str
    time_in: datetime
    time_out: datetime | None = None
    status: str
    gate_pass_number: str | None = None
    images: list[str] = []
    duration_minutes: int | None = None
    created_by: str | None = None
    created_at: datetime
    updated_at: datetime


class PurposeCountOut(CamelModel):
    count: int
    inside: int
    outside: int


class VehicleStatsOut(CamelModel):
    total_vehicles: int
    vehicles_inside: int
    vehicles_outside: int
    pending: int
    by_purpose: dict[str, PurposeCountOut]
