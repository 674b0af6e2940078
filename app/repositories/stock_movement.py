"""StockMovement repository."""

from app.domain.stock_movement import StockMovement
from app.repositories.base import BaseRepository


class StockMovementRepository(BaseRepository[StockMovement]):
    model = StockMovement
    search_fields = ("movement_number", "item_code", "item_name", "reference_number", "notes")

    async def count_with_prefix(self, prefix: str) -> int:
        """Movement numbers are sequenced per month prefix (MOVyyyymm)."""
        return await self.count(StockMovement.movement_number.like(f"{prefix}%"))
