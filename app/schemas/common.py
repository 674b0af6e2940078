"""Shared Pydantic schema base with camelCase aliases."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """All API schemas inherit from this to auto-generate camelCase aliases."""

    model_config = {
        "populate_by_name": True,
        "alias_generator": to_camel,
        "from_attributes": True,
    }


class HealthResponse(CamelModel):
    """Health-check response returned by /health and /api/v2-simple/health."""
    success: bool = True
    status: str = "ok"
    message: str | None = None
    app: str | None = None
    env: str | None = None
    version: str
    timestamp: datetime
    uptime_seconds: float | None = None
    database: str | None = None
