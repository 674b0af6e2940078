"""Factory ERP API: FastAPI application factory."""


import logging
import sys
import time
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app import domain  # noqa: F401  (registers ORM models)
from app.core.config import settings
from app.core.exceptions import register_exception_handlers
from app.db.base import Base, async_session_factory, check_database, engine, get_db
from app.domain.mixins import utcnow
from app.middleware.audit import AuditMiddleware
from app.middleware.rate_limit import RateLimitMiddleware
from app.middleware.request_context import RequestContextMiddleware
from app.middleware.security_headers import SecurityHeadersMiddleware
from app.schemas.common import HealthResponse
from app.services.password_reset import PasswordResetService

from app.routers.admin_two_factor import router as admin_two_factor_router
from app.routers.auth import router as auth_router
from app.routers.two_factor import router as two_factor_router
from app.routers.v2.customer_visits import router as customer_visits_router
from app.routers.v2.stock_movements import router as stock_movements_router
from app.routers.v2.uploads import router as uploads_router
from app.routers.v2.vehicles import router as vehicles_router
from app.routers.v2_simple import router as v2_simple_router

logger = logging.getLogger(__name__)

_STARTED_AT = time.monotonic()
_HEALTH_PATHS = {"/health", "/ready", "/live", "/api/v2-simple/health"}


def _configure_logging() -> None:
    """Set up structured logging for the application."""
    level = logging.DEBUG if settings.is_development else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
        force=True,
    )
    # Quiet noisy libraries
    for name in ("sqlalchemy.engine", "aiosqlite", "botocore", "boto3", "urllib3", "httpcore", "httpx"):
        logging.getLogger(name).setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(_: FastAPI):
    if settings.is_development and settings.database_url.startswith("sqlite"):
        # Local SQLite only; every other database is managed by Alembic
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    async with async_session_factory() as session:
        await PasswordResetService(session).cleanup_expired()
        await session.commit()
    logger.info("%s %s started (%s)", settings.app_name, settings.app_version, settings.app_env)
    yield
    await engine.dispose()


def create_app() -> FastAPI:
    _configure_logging()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        lifespan=lifespan,
    )

    # Added innermost first: audit -> rate limit -> security headers -> request id -> CORS
    app.add_middleware(AuditMiddleware)
    app.add_middleware(RateLimitMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestContextMiddleware, exclude_paths=_HEALTH_PATHS)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=settings.cors_credentials,
        allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
        allow_headers=[
            "Origin",
            "X-Requested-With",
            "Content-Type",
            "Accept",
            "Authorization",
            "X-Company-ID",
            "X-API-Key",
            "X-Request-ID",
        ],
        expose_headers=[
            "X-Total-Count",
            "X-Page-Count",
            "X-Current-Page",
            "X-Per-Page",
            "X-Rate-Limit-Remaining",
            "X-Rate-Limit-Reset",
            "X-Request-ID",
        ],
        max_age=86400,
    )

    # --- Global exception handlers ---
    register_exception_handlers(app)

    # --- Routes ---
    api = settings.api_prefix
    app.include_router(auth_router, prefix=api)
    app.include_router(two_factor_router, prefix=api)
    app.include_router(admin_two_factor_router, prefix=api)
    app.include_router(v2_simple_router, prefix=api)
    for router in (vehicles_router, customer_visits_router, stock_movements_router, uploads_router):
        app.include_router(router, prefix=f"{api}/v2")

    # --- Health checks ---
    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health(session: AsyncSession = Depends(get_db)):
        db_ok = await check_database(session)
        body = HealthResponse(
            success=db_ok,
            status="ok" if db_ok else "unavailable",
            app=settings.app_name,
            env=settings.app_env,
            version=settings.app_version,
            timestamp=utcnow(),
            uptime_seconds=round(time.monotonic() - _STARTED_AT, 1),
            database="connected" if db_ok else "disconnected",
        )
        if not db_ok:
            return JSONResponse(status_code=503, content=body.model_dump(mode="json", by_alias=True))
        return body

    @app.get("/ready", tags=["Health"])
    async def ready(session: AsyncSession = Depends(get_db)):
        if not await check_database(session):
            return JSONResponse(status_code=503, content={"success": False, "status": "not ready"})
        return {"success": True, "status": "ready"}

    @app.get("/live", tags=["Health"])
    async def live():
        return {"success": True, "status": "alive"}

    return app


app = create_app()
