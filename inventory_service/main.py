"""
Inventory Microservice
Product CRUD with image uploads and stock entry/exit movements
"""

from contextlib import asynccontextmanager
from typing import Optional
import os
import subprocess

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from inventory_service.api.errors import register_exception_handlers
from inventory_service.api.routes import router as products_router
from inventory_service.core import ServiceHealth, setup_logging, RequestLoggingMiddleware, get_logger
from inventory_service.core_settings import Settings, get_settings
from inventory_service.infrastructure.db import Database
from inventory_service.infrastructure.storage import ImageStorage

SERVICE_NAME = "inventory-service"
SERVICE_DESCRIPTION = "Inventory management microservice"
# Migration config and scripts ship inside the package
ALEMBIC_INI = os.path.join(os.path.dirname(__file__), "alembic.ini")

logger = get_logger(__name__)


def run_migrations(database_url: str) -> None:
    """Apply alembic migrations; failures are logged and startup continues with create_all."""
    logger.info("Running database migrations")
    try:
        result = subprocess.run(
            ["alembic", "-c", ALEMBIC_INI, "upgrade", "head"],
            env={**os.environ, "DATABASE_URL": database_url},
            capture_output=True,
            text=True,
            check=False
        )
    except OSError as e:
        logger.error(f"Migration error: {e}")
        return
    if result.returncode != 0:
        logger.warning(f"Migration output: {result.stderr}")
    else:
        logger.info("Database migrations completed")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()

    setup_logging(
        service_name=SERVICE_NAME,
        level=settings.LOG_LEVEL,
        environment=settings.ENVIRONMENT,
        version=settings.SERVICE_VERSION,
    )

    database = Database.from_settings(settings)
    storage = ImageStorage(settings.UPLOAD_DIR)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Starting {SERVICE_NAME} version {settings.SERVICE_VERSION}")

        storage.ensure_directory()
        if settings.RUN_MIGRATIONS:
            run_migrations(settings.database_url)

        try:
            database.init_models()
            logger.info("Database models initialized")
        except Exception as e:
            logger.error(f"Failed to initialize database models: {e}")
            raise

        logger.info(f"{SERVICE_NAME} started successfully")

        yield

        logger.info(f"Shutting down {SERVICE_NAME}")
        database.dispose()

    app = FastAPI(
        title=SERVICE_NAME,
        description=SERVICE_DESCRIPTION,
        version=settings.SERVICE_VERSION,
        lifespan=lifespan,
        docs_url=f"{settings.API_PREFIX}/docs",
        redoc_url=f"{settings.API_PREFIX}/redoc",
        openapi_url=f"{settings.API_PREFIX}/openapi.json"
    )
    app.state.settings = settings
    app.state.database = database
    app.state.storage = storage

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    register_exception_handlers(app)

    health_service = ServiceHealth(SERVICE_NAME, database, settings.UPLOAD_DIR, settings.SERVICE_VERSION)
    app.include_router(health_service.create_health_router())

    app.include_router(products_router, prefix=settings.API_PREFIX)

    # The directory is created during startup, so it may not exist yet here
    app.mount(
        settings.UPLOADS_URL_PREFIX,
        StaticFiles(directory=settings.UPLOAD_DIR, check_dir=False),
        name="uploads",
    )

    @app.get("/")
    async def root():
        return {
            "service": SERVICE_NAME,
            "version": settings.SERVICE_VERSION,
            "status": "running",
            "docs": f"{settings.API_PREFIX}/docs"
        }

    @app.get("/info")
    async def info():
        return {
            "service": SERVICE_NAME,
            "version": settings.SERVICE_VERSION,
            "description": SERVICE_DESCRIPTION,
            "environment": settings.ENVIRONMENT,
            "endpoints": {
                "products": f"{settings.API_PREFIX}/products",
                "uploads": settings.UPLOADS_URL_PREFIX,
                "health": "/health",
                "ready": "/health/ready",
                "live": "/health/live",
                "metrics": "/metrics",
                "docs": f"{settings.API_PREFIX}/docs"
            }
        }

    return app
