"""
Agency Portal API Server

Entry point for the FastAPI application.
"""

from contextlib import asynccontextmanager
from pathlib import Path

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from sqlalchemy import text

from agency_portal.core.config import get_settings
from agency_portal.core.database import engine
from agency_portal.core.errors import DomainError, domain_error_handler
from agency_portal.core.logging import configure_logging
from agency_portal.core.middleware import CSRFMiddleware, SecurityHeadersMiddleware
from agency_portal.core.redis import close_redis
from agency_portal.api.v1 import router as api_v1_router
from agency_portal.api.v1.auth import router as auth_router

settings = get_settings()
log = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    log.info("agency_portal.starting", debug=settings.debug)
    if settings.serve_media:
        Path(settings.media_root).mkdir(parents=True, exist_ok=True)
    yield
    log.info("agency_portal.shutting_down")
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    configure_logging(settings.log_level, settings.log_format)

    app = FastAPI(
        title="Agency Portal",
        description="Content requests, creator upload portal and staff review for creator agencies.",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.add_exception_handler(DomainError, domain_error_handler)

    # Middleware (last added is outermost)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(CSRFMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "PUT", "DELETE"],
        allow_headers=["Content-Type", "Authorization", "X-CSRF-Token"],
    )

    # Staff session routes (not agency-scoped)
    app.include_router(auth_router, prefix="/auth", tags=["Authentication"])

    # API routes
    app.include_router(api_v1_router, prefix="/api/v1")

    # Local media storage hands out URLs under media_base_url
    if settings.serve_media and settings.media_base_url.startswith("/"):
        app.mount(
            settings.media_base_url,
            StaticFiles(directory=settings.media_root, check_dir=False),
            name="media",
        )

    @app.get("/health", tags=["System"])
    async def health_check():
        """Health check endpoint for liveness probes."""
        return {"status": "ok"}

    @app.get("/ready", tags=["System"])
    async def readiness_check():
        """Readiness check endpoint for startup probes."""
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return {"status": "ready"}

    return app


app = create_app()


def run() -> None:
    """Serve the app with uvicorn using the configured host and port."""
    import uvicorn

    uvicorn.run(
        "agency_portal.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level,
        reload=settings.debug,
    )
