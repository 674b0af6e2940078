"""Audit logging middleware: records every state-changing request to audit_trail."""


import asyncio
import logging
import re
import time
from collections.abc import Callable

from fastapi import Request, Response
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.config import settings

logger = logging.getLogger(__name__)

# Methods that mutate state
_WRITE_METHODS = {"POST", "PUT", "PATCH", "DELETE"}
_UUID = re.compile(r"^[0-9a-fA-F-]{36}$")


def entity_from_path(path: str) -> tuple[str, str | None]:
    """/api/v2/vehicles/<uuid>/checkout -> ("vehicle", "<uuid>")."""
    parts = [p for p in path.strip("/").split("/") if p]
    for index, part in enumerate(parts):
        if _UUID.match(part) and index > 0:
            return parts[index - 1].rstrip("s"), part
    return (parts[-1].rstrip("s") if parts else "unknown"), None


class AuditMiddleware(BaseHTTPMiddleware):
    """Logs all write operations.

    Each audit row is written in a background task AFTER the response is
    produced so it never adds latency to the request. Audit failures are
    logged and never reach the caller.
    """

    def __init__(self, app, *, enabled: bool | None = None):
        super().__init__(app)
        self._enabled = settings.audit_enabled if enabled is None else enabled
        self._tasks: set[asyncio.Task] = set()

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start = time.monotonic()
        response = await call_next(request)
        duration_ms = round((time.monotonic() - start) * 1000)

        if self._enabled and request.method in _WRITE_METHODS:
            task = asyncio.create_task(self._record(request, response.status_code, duration_ms))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

        return response

    async def _record(self, request: Request, status_code: int, duration_ms: int) -> None:
        from app.db.base import async_session_factory
        from app.domain.audit import AuditTrail

        entity_type, entity_id = entity_from_path(request.url.path)
        state = request.state
        try:
            async with async_session_factory() as session:
                session.add(
                    AuditTrail(
                        company_id=getattr(state, "company_id", None),
                        user_id=getattr(state, "user_id", None),
                        request_id=getattr(state, "request_id", None),
                        ip_address=request.client.host if request.client else None,
                        user_agent=request.headers.get("user-agent"),
                        action=f"{request.method}:{status_code}",
                        entity_type=entity_type,
                        entity_id=entity_id,
                        description=f"{request.method} {request.url.path} -> {status_code} ({duration_ms}ms)",
                    )
                )
                await session.commit()
        except SQLAlchemyError:
            logger.exception("Audit row for %s %s could not be written", request.method, request.url.path)
