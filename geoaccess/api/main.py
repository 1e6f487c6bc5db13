"""
GEOACCESS API - Main Application Entry Point

FastAPI surface over the region-scoped authorization engine.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from geoaccess.api.config import Settings, get_settings
from geoaccess.api.engine import AuthorizationEngine
from geoaccess.api.identity import User
from geoaccess.core.exceptions import (
    ForbiddenError,
    GeoAccessError,
    InvalidStateError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)

logger = logging.getLogger(__name__)


ERROR_STATUS = {
    NotFoundError: 404,
    ForbiddenError: 403,
    InvalidStateError: 409,
    ValidationError: 422,
    PersistenceError: 503,
}


def configure_logging(level: str = "INFO") -> None:
    """Set the root log format and level."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def status_for(exc: GeoAccessError) -> int:
    for error_type, code in ERROR_STATUS.items():
        if isinstance(exc, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def geoaccess_error_handler(request: Request, exc: GeoAccessError) -> JSONResponse:
    code = status_for(exc)
    if code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(
        status_code=code,
        content={"detail": exc.message, **exc.to_dict()},
    )


def create_app(
    engine: Optional[AuthorizationEngine] = None,
    settings: Optional[Settings] = None,
    start_monitors: bool = True,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()
    if engine is None:
        engine = AuthorizationEngine.from_settings(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager."""
        # Startup
        if settings.SEED_DEFAULT_ZONES:
            system_admin = User(id="system", name="System", role="Admin")
            engine.zones.initialize_default_zones(system_admin)
        if start_monitors:
            await engine.monitors.start_all()
        yield
        # Shutdown
        await engine.close()

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="GEOACCESS - Region-scoped authorization engine API",
        docs_url="/api/docs" if settings.DEBUG else None,
        redoc_url="/api/redoc" if settings.DEBUG else None,
        lifespan=lifespan,
    )
    app.state.engine = engine
    app.state.settings = settings

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(GeoAccessError, geoaccess_error_handler)

    # Include routers
    from geoaccess.api.access.routes import audit_router, router as access_router
    from geoaccess.api.analytics.routes import router as analytics_router
    from geoaccess.api.grants.routes import router as grants_router
    from geoaccess.api.region_requests.routes import router as requests_router
    from geoaccess.api.zones.routes import router as zones_router

    app.include_router(access_router, prefix="/api/v1/access", tags=["Access"])
    app.include_router(zones_router, prefix="/api/v1/zones", tags=["Zones"])
    app.include_router(grants_router, prefix="/api/v1/temporary-access", tags=["Temporary Access"])
    app.include_router(requests_router, prefix="/api/v1/region-requests", tags=["Region Requests"])
    app.include_router(audit_router, prefix="/api/v1/audit", tags=["Audit"])
    app.include_router(analytics_router, prefix="/api/v1/analytics", tags=["Analytics"])

    # Health check endpoint
    @app.get("/api/health", tags=["Health"])
    async def health_check():
        monitors = engine.monitors.get_all_stats()
        return {
            "status": "healthy",
            "version": settings.APP_VERSION,
            "service": settings.APP_NAME,
            "monitors": {
                name: {
                    "run_count": stats.run_count,
                    "error_count": stats.error_count,
                    "grants_swept": stats.grants_swept,
                }
                for name, stats in monitors.items()
            },
        }

    return app


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)
    uvicorn.run(
        create_app(settings=settings),
        host=settings.HOST,
        port=settings.PORT,
    )
