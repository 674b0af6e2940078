"""AuditTrail repository (append-only)."""

from typing import Any

from app.domain.audit import AuditTrail
from app.repositories.base import BaseRepository


class AuditRepository(BaseRepository[AuditTrail]):
    model = AuditTrail

    async def record(
        self,
        *,
        action: str,
        entity_type: str,
        entity_id: str | None = None,
        user_id: str | None = None,
        company_id: str | None = None,
        description: str | None = None,
        new_value: Any = None,
    ) -> AuditTrail:
        return await self.create(
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=user_id,
            company_id=company_id,
            description=description,
            new_value=new_value,
        )
