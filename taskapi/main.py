from contextlib import asynccontextmanager

from fastapi import FastAPI, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from taskapi.cache.layer import create_cache_layer
from taskapi.core.config import Settings, SettingsDep, get_settings
from taskapi.core.errors import register_exception_handlers
from taskapi.core.logging import configure_logging, get_logger
from taskapi.core.middleware import AccessLogMiddleware
from taskapi.database import Database
from taskapi.routers import admin, auth, tasks

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    database = Database(settings)
    if settings.create_tables_on_startup:
        await database.create_all()

    app.state.database = database
    app.state.cache = create_cache_layer(settings)
    logger.info("Task API started", environment=settings.environment)
    try:
        yield
    finally:
        await app.state.cache.close()
        await database.dispose()
        logger.info("Task API stopped")


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(
        title="Task Management API",
        description="Async task management API with per-user ownership and a Redis list cache",
        swagger_ui_parameters={"displayRequestDuration": True},
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings

    register_exception_handlers(app)
    app.add_middleware(AccessLogMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    for module in (auth, tasks, admin):
        app.include_router(module.router, prefix=settings.api_prefix)

    @app.get("/")
    async def root():
        return {
            "message": "Welcome to Task Management API",
            "docs": "/docs",
            "version": "1.0.0",
        }

    @app.get("/health")
    async def health_check(settings: SettingsDep):
        checks = {}
        for name, probe in (
            ("database", app.state.database.ping),
            ("cache", app.state.cache.ping),
        ):
            try:
                await probe()
                checks[name] = "ok"
            except Exception as e:
                logger.warning("Health probe failed", dependency=name, error=str(e))
                checks[name] = "unavailable"

        healthy = all(v == "ok" for v in checks.values())
        return JSONResponse(
            status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "healthy" if healthy else "degraded",
                "environment": settings.environment,
                "checks": checks,
                "cache": app.state.cache.get_stats(),
            },
        )

    return app


app = create_app()
