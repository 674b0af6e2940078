"""Vehicle gate-pass service.

Rule: No FastAPI here. Pure Python business logic over VehicleRepository.
"""

import logging
import time

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.core.pagination import PaginationParams
from app.domain.mixins import utcnow
from app.domain.vehicle import VEHICLE_PURPOSES, VEHICLE_STATUSES, Vehicle
from app.repositories.vehicle import VehicleRepository
from app.schemas.vehicle import VehicleCreate, VehicleUpdate

logger = logging.getLogger(__name__)

_REQUIRED_FIELDS = (
    ("vehicle_number", "Vehicle number is required"),
    ("driver_name", "Driver name is required"),
    ("driver_phone", "Driver phone is required"),
    ("purpose", "Purpose is required"),
    ("reason", "Reason is required"),
)

# Allowed status moves; "out" is terminal
_TRANSITIONS = {
    "pending": {"in", "out"},
    "in": {"out"},
    "out": set(),
}


def generate_gate_pass_number() -> str:
    return f"GP{str(int(time.time() * 1000))[-6:]}"


def normalize_vehicle_number(value: str) -> str:
    return value.strip().upper()


class VehicleService:
    def __init__(self, session: AsyncSession, company_id: str):
        self._repo = VehicleRepository(session, company_id)

    async def list_vehicles(
        self,
        pagination: PaginationParams,
        *,
        search: str | None = None,
        purpose: str | None = None,
        status: str | None = None,
    ):
        return await self._repo.list(
            offset=pagination.offset,
            limit=pagination.limit,
            order_by=pagination.sort,
            order=pagination.order,
            filters={"purpose": purpose, "status": status},
            search=search,
        )

    async def get_vehicle(self, vehicle_id: str) -> Vehicle:
        vehicle = await self._repo.get_by_id(vehicle_id)
        if not vehicle:
            raise NotFoundError("Vehicle", vehicle_id)
        return vehicle

    async def get_by_number(self, vehicle_number: str) -> Vehicle:
        vehicle = await self._repo.get_by_number(vehicle_number)
        if not vehicle:
            raise NotFoundError("Vehicle", normalize_vehicle_number(vehicle_number))
        return vehicle

    async def create_vehicle(self, data: VehicleCreate, created_by: str | None = None) -> Vehicle:
        values = data.model_dump(exclude_none=True)
        for field, message in _REQUIRED_FIELDS:
            if not str(values.get(field) or "").strip():
                raise ValidationError(message)
        if values["purpose"] not in VEHICLE_PURPOSES:
            raise ValidationError(f"Purpose must be one of: {', '.join(VEHICLE_PURPOSES)}")

        values["vehicle_number"] = normalize_vehicle_number(values["vehicle_number"])
        if await self._repo.get_by_number(values["vehicle_number"]):
            raise ConflictError("Vehicle number already exists")

        values.setdefault("gate_pass_number", generate_gate_pass_number())
        vehicle = await self._repo.create(
            **values,
            status="in",
            time_in=utcnow(),
            created_by=created_by,
        )
        logger.info("Vehicle %s checked in (%s)", vehicle.vehicle_number, vehicle.gate_pass_number)
        return vehicle

    async def update_vehicle(self, vehicle_id: str, data: VehicleUpdate) -> Vehicle:
        vehicle = await self.get_vehicle(vehicle_id)
        values = data.model_dump(exclude_none=True, exclude_unset=True)

        if "purpose" in values and values["purpose"] not in VEHICLE_PURPOSES:
            raise ValidationError(f"Purpose must be one of: {', '.join(VEHICLE_PURPOSES)}")
        if "vehicle_number" in values:
            values["vehicle_number"] = normalize_vehicle_number(values["vehicle_number"])
            other = await self._repo.get_by_number(values["vehicle_number"])
            if other and other.id != vehicle.id:
                raise ConflictError("Vehicle number already exists")

        updated = await self._repo.update(vehicle_id, **values)
        return updated  # type: ignore[return-value]

    async def checkout_vehicle(self, vehicle_id: str) -> Vehicle:
        vehicle = await self.get_vehicle(vehicle_id)
        if vehicle.status == "out":
            raise ValidationError("Vehicle is already checked out")

        vehicle.status = "out"
        vehicle.time_out = utcnow()
        vehicle = await self._repo.save(vehicle)
        logger.info("Vehicle %s checked out", vehicle.vehicle_number)
        return vehicle

    async def update_status(self, vehicle_id: str, status: str) -> Vehicle:
        if status not in VEHICLE_STATUSES:
            raise ValidationError(f"Status must be one of: {', '.join(VEHICLE_STATUSES)}")
        vehicle = await self.get_vehicle(vehicle_id)
        if status == vehicle.status:
            return vehicle
        if status not in _TRANSITIONS[vehicle.status]:
            raise ValidationError(f"Cannot change status from '{vehicle.status}' to '{status}'")

        vehicle.status = status
        if status == "in":
            vehicle.time_in = utcnow()
        elif status == "out":
            vehicle.time_out = utcnow()
        return await self._repo.save(vehicle)

    async def delete_vehicle(self, vehicle_id: str) -> None:
        # Hard delete: the (company, vehicle number) constraint covers every row
        vehicle = await self.get_vehicle(vehicle_id)
        await self._repo.delete(vehicle)
        logger.info("Vehicle %s deleted", vehicle.vehicle_number)

    async def by_purpose(self, purpose: str) -> list[Vehicle]:
        if purpose not in VEHICLE_PURPOSES:
            raise ValidationError(f"Purpose must be one of: {', '.join(VEHICLE_PURPOSES)}")
        return await self._repo.find_all(
            Vehicle.purpose == purpose, order_by=Vehicle.time_in.desc()
        )

    async def currently_inside(self) -> list[Vehicle]:
        return await self._repo.find_all(Vehicle.status == "in", order_by=Vehicle.time_in.desc())

    async def get_stats(self) -> dict:
        vehicles = await self._repo.find_all()
        by_purpose = {
            p: {"count": 0, "inside": 0, "outside": 0} for p in VEHICLE_PURPOSES
        }
        for v in vehicles:
            bucket = by_purpose.setdefault(v.purpose, {"count": 0, "inside": 0, "outside": 0})
            bucket["count"] += 1
            if v.status == "in":
                bucket["inside"] += 1
            elif v.status == "out":
                bucket["outside"] += 1

        return {
            "total_vehicles": len(vehicles),
            "vehicles_inside": sum(1 for v in vehicles if v.status == "in"),
            "vehicles_outside": sum(1 for v in vehicles if v.status == "out"),
            "pending": sum(1 for v in vehicles if v.status == "pending"),
            "by_purpose": by_purpose,
        }
