"""Gatehouse FastAPI application.

``create_app`` wires the Auth module routers under ``{api_prefix}/auth``, the
envelope-shaping exception handlers, health probes and the request logging
middleware. The permission cache shared by every request lives on
``app.state``.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from gatehouse.core.config import Settings, get_settings
from gatehouse.core.logging import (
    bind_correlation_id,
    clear_context,
    configure_logging,
    get_logger,
    new_correlation_id,
)
from gatehouse.domain.services import PermissionCache
from gatehouse.infrastructure.api.errors import register_exception_handlers
from gatehouse.infrastructure.persistence.database import (
    close_database,
    get_db_manager,
    init_database,
)

logger = get_logger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Create tables, seed and create the configured owner; dispose on exit."""
    settings = get_settings()
    configure_logging(settings)
    logger.info(
        "Gatehouse starting",
        version=settings.app_version,
        environment=settings.environment,
        api_prefix=settings.api_prefix,
    )

    try:
        await init_database()
    except Exception as e:
        logger.error("Database initialization failed", error=str(e))
        raise

    yield

    app.state.permission_cache.invalidate_all()
    await close_database()
    logger.info("Gatehouse stopped")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application.

    Args:
        settings: Settings to build from. Defaults to the cached settings.

    Returns:
        The configured FastAPI application.
    """
    settings = settings or get_settings()
    docs = settings.is_development

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Roles, permissions and sessions for admin applications",
        docs_url="/docs" if docs else None,
        redoc_url="/redoc" if docs else None,
        openapi_url="/openapi.json" if docs else None,
        lifespan=lifespan,
    )
    app.state.permission_cache = PermissionCache(
        ttl_seconds=settings.permission_cache_ttl_seconds
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
        expose_headers=[CORRELATION_HEADER],
    )

    register_health_check(app, settings)
    register_routes(app, settings)
    register_exception_handlers(app)
    register_middleware(app)
    return app


def register_health_check(app: FastAPI, settings: Settings) -> None:
    """Liveness, readiness and a plain health probe."""
    service = {"service": settings.app_name, "version": settings.app_version}

    @app.get("/health", tags=["health"])
    async def health_check():
        return {"status": "healthy", **service}

    @app.get("/live", tags=["health"])
    async def liveness_check():
        return {"status": "alive", **service}

    @app.get("/ready", tags=["health"])
    async def readiness_check():
        """Ready once the database answers."""
        if await get_db_manager().check_connection():
            return {"status": "ready", "database": "connected", **service}
        return JSONResponse(
            status_code=503,
            content={"status": "not_ready", "database": "disconnected", **service},
        )


def register_routes(app: FastAPI, settings: Settings) -> None:
    """Mount the Auth module.

    Users, roles and permissions are administered below the auth prefix, as
    in ``/api/v1/auth/roles/1,2/permissions``.
    """
    from gatehouse.infrastructure.api.routes import (
        auth_router,
        permissions_router,
        roles_router,
        users_router,
    )

    auth_prefix = f"{settings.api_prefix}/auth"
    app.include_router(auth_router, prefix=auth_prefix, tags=["auth"])
    app.include_router(users_router, prefix=f"{auth_prefix}/users", tags=["users"])
    app.include_router(roles_router, prefix=f"{auth_prefix}/roles", tags=["roles"])
    app.include_router(
        permissions_router, prefix=f"{auth_prefix}/permissions", tags=["permissions"]
    )

    @app.get(settings.api_prefix, tags=["root"])
    async def api_root():
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "api_version": settings.api_prefix.rstrip("/").rsplit("/", 1)[-1],
        }


def register_middleware(app: FastAPI) -> None:
    @app.middleware("http")
    async def correlation_middleware(request: Request, call_next):
        """Bind a correlation id for the request and echo it back."""
        correlation_id = request.headers.get(CORRELATION_HEADER) or new_correlation_id()
        bind_correlation_id(correlation_id)
        try:
            response = await call_next(request)
            logger.info(
                "Request handled",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
            )
            response.headers[CORRELATION_HEADER] = correlation_id
            return response
        finally:
            clear_context()


app = create_app()
