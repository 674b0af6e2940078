"""Vehicle repository."""

from app.domain.vehicle import Vehicle
from app.repositories.base import BaseRepository


class VehicleRepository(BaseRepository[Vehicle]):
    model = Vehicle
    search_fields = ("vehicle_number", "driver_name", "driver_phone", "gate_pass_number")

    async def get_by_number(self, vehicle_number: str) -> Vehicle | None:
        return await self.get_by(vehicle_number=vehicle_number.strip().upper())
