"""Generic async repository with soft-delete, pagination, and tenant isolation."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Generic, TypeVar

from sqlalchemy import ColumnElement, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.base import Base
from app.domain.mixins import utcnow

ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):
    """Generic CRUD repository. Tenant models are always filtered by company_id.

    Soft-deletes: rows with `deleted_at IS NOT NULL` are excluded from all
    standard reads. Hard-delete is only exposed by repositories whose rows
    are disposable (tokens, 2FA state).

    `company_id=None` is reserved for global models (users, companies, 2FA).
    """

    model: type[ModelT]
    # Columns matched by `?search=` (case-insensitive substring)
    search_fields: Sequence[str] = ()

    def __init__(self, session: AsyncSession, company_id: str | None = None):
        self._session = session
        self._company_id = company_id

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @property
    def _tenant_scoped(self) -> bool:
        return hasattr(self.model, "company_id") and self._company_id is not None

    def _base_query(self):
        """Return a SELECT filtered by company_id and excluding soft-deleted rows."""
        q = select(self.model)
        if self._tenant_scoped:
            q = q.where(self.model.company_id == self._company_id)
        if hasattr(self.model, "deleted_at"):
            q = q.where(self.model.deleted_at.is_(None))
        return q

    def _search_clause(self, term: str) -> ColumnElement[bool] | None:
        term = term.strip()
        if not term or not self.search_fields:
            return None
        pattern = f"%{term.lower()}%"
        return or_(*(func.lower(getattr(self.model, f)).like(pattern) for f in self.search_fields))

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    async def get_by_id(self, entity_id: str) -> ModelT | None:
        result = await self._session.execute(
            self._base_query().where(self.model.id == entity_id)
        )
        return result.scalars().first()

    async def get_by(self, **filters: Any) -> ModelT | None:
        q = self._base_query()
        for col_name, value in filters.items():
            q = q.where(getattr(self.model, col_name) == value)
        return (await self._session.execute(q)).scalars().first()

    async def list(
        self,
        *,
        offset: int = 0,
        limit: int = 20,
        order_by: str = "created_at",
        order: str = "desc",
        filters: dict[str, Any] | None = None,
        search: str | None = None,
        conditions: Sequence[ColumnElement[bool]] = (),
    ) -> tuple[list[ModelT], int]:
        """Return (items, total_count) with pagination and optional filters.

        `filters` are simple equality filters (None values skipped);
        `conditions` are ready-made SQL expressions (ranges, IN lists, ...).
        """
        q = self._base_query()

        if filters:
            for col_name, value in filters.items():
                if value is not None and hasattr(self.model, col_name):
                    q = q.where(getattr(self.model, col_name) == value)
        if search:
            clause = self._search_clause(search)
            if clause is not None:
                q = q.where(clause)
        for condition in conditions:
            q = q.where(condition)

        # Count
        count_q = select(func.count()).select_from(q.subquery())
        total = (await self._session.execute(count_q)).scalar_one()

        # Order + paginate
        col = getattr(self.model, order_by, None)
        if col is None:
            col = getattr(self.model, "created_at", None)
        if col is not None:
            q = q.order_by(col.desc() if order == "desc" else col.asc())
        q = q.offset(offset).limit(limit)

        items = (await self._session.execute(q)).scalars().all()
        return list(items), total

    async def find_all(
        self,
        *conditions: ColumnElement[bool],
        order_by: Any = None,
        limit: int | None = None,
    ) -> list[ModelT]:
        """Unpaginated read for small result sets (stats, history, dashboards)."""
        q = self._base_query()
        for condition in conditions:
            q = q.where(condition)
        if order_by is not None:
            q = q.order_by(order_by)
        if limit is not None:
            q = q.limit(limit)
        return list((await self._session.execute(q)).scalars().all())

    async def count(self, *conditions: ColumnElement[bool]) -> int:
        q = self._base_query()
        for condition in conditions:
            q = q.where(condition)
        return (await self._session.execute(select(func.count()).select_from(q.subquery()))).scalar_one()

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    async def create(self, **kwargs: Any) -> ModelT:
        if self._tenant_scoped:
            kwargs["company_id"] = self._company_id
        instance = self.model(**kwargs)
        self._session.add(instance)
        await self._session.flush()  # populate id
        await self._session.refresh(instance)
        return instance

    async def save(self, instance: ModelT) -> ModelT:
        """Flush changes made to an already loaded instance."""
        self._session.add(instance)
        await self._session.flush()
        await self._session.refresh(instance)
        return instance

    async def update(self, entity_id: str, **kwargs: Any) -> ModelT | None:
        kwargs.pop("id", None)
        kwargs.pop("company_id", None)
        if "updated_at" not in kwargs and hasattr(self.model, "updated_at"):
            kwargs["updated_at"] = utcnow()

        stmt = update(self.model).where(self.model.id == entity_id)
        if self._tenant_scoped:
            stmt = stmt.where(self.model.company_id == self._company_id)
        await self._session.execute(stmt.values(**kwargs).execution_options(synchronize_session="fetch"))
        await self._session.flush()
        instance = await self.get_by_id(entity_id)
        if instance is not None:
            await self._session.refresh(instance)
        return instance

    async def soft_delete(self, entity_id: str) -> bool:
        stmt = (
            update(self.model)
            .where(self.model.id == entity_id)
            .where(self.model.deleted_at.is_(None))
        )
        if self._tenant_scoped:
            stmt = stmt.where(self.model.company_id == self._company_id)
        result = await self._session.execute(stmt.values(deleted_at=utcnow()))
        await self._session.flush()
        return result.rowcount > 0

    async def delete(self, instance: ModelT) -> None:
        await self._session.delete(instance)
        await self._session.flush()

    async def commit(self) -> None:
        """Persist now, even if the request later fails (lockout counters)."""
        await self._session.commit()
