"""FastAPI application factory and main entry point."""

from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from schnitzarchiv.config import get_settings
from schnitzarchiv.database import init_db

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan handler for startup/shutdown events."""
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")

    if settings.database_path is not None:
        settings.database_path.parent.mkdir(parents=True, exist_ok=True)

    # Alembic owns the schema in production; create_all is for local runs
    if settings.create_tables_on_startup:
        await init_db()
    logger.info(f"Database ready: {settings.database_url}")

    yield

    logger.info("Shutting down application")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        lifespan=lifespan,
        docs_url=f"{settings.api_prefix}/docs",
        redoc_url=f"{settings.api_prefix}/redoc",
        openapi_url=f"{settings.api_prefix}/openapi.json",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "healthy", "version": settings.app_version}

    from schnitzarchiv.routers import admin_queries, admin_sources, admin_tags, auth, public, stats

    # Admin routers carry their own require_admin dependency
    for module in (public, auth, admin_queries, admin_sources, admin_tags, stats):
        app.include_router(module.router, prefix=settings.api_prefix)

    return app


# Create app instance for uvicorn
app = create_app()
