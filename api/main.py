"""EquiTask API: FastAPI entry point.

Builds the app: settings, logging, the shared database handle and the
lifecycle engine (wired in the lifespan hook), middleware, error handlers
and routers.

Run with::

    uvicorn api.main:app
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from api.errors import register_error_handlers
from api.middleware import RequestContextMiddleware
from core.config import Settings
from core.database import Database
from core.logging_setup import configure_logging
from core.storage import LocalFileStorage
from taskboard.config import TaskboardConfig
from taskboard.lifecycle import TaskLifecycle
from taskboard.notifications import NotificationService
from taskboard.focus import FocusService
from taskboard.router import focus_router, notifications_router, proof_router, tasks_router

VERSION = "1.0.0"

log = structlog.get_logger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    taskboard_config: Optional[TaskboardConfig] = None,
) -> FastAPI:
    """Create the application. Storage is opened in the lifespan hook."""
    settings = settings or Settings.from_env()
    taskboard_config = taskboard_config or TaskboardConfig.from_env()
    configure_logging(settings.environment, settings.log_level)

    storage = LocalFileStorage(settings.upload_dir, url_prefix="/uploads")

    # -----------------------------------------------------------------------
    # Lifespan
    # -----------------------------------------------------------------------

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Open the database and build the engine; dispose on shutdown."""
        database = Database(
            settings.database_url,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            echo=settings.db_echo,
        )
        if settings.auto_create_tables:
            await database.create_all()
        storage.ensure_root()

        notifications = NotificationService(
            database, list_limit=taskboard_config.notification_list_limit
        )
        app.state.database = database
        app.state.notifications = notifications
        app.state.taskboard_config = taskboard_config
        app.state.lifecycle = TaskLifecycle(database, notifications, storage, taskboard_config)
        app.state.focus = FocusService(database, taskboard_config)

        log.info("api_started", environment=settings.environment, version=VERSION)
        try:
            yield
        finally:
            await database.dispose()
            log.info("api_stopped")

    # -----------------------------------------------------------------------
    # App
    # -----------------------------------------------------------------------

    app = FastAPI(
        title="EquiTask",
        description="Task management with proof submission and manager review",
        version=VERSION,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestContextMiddleware)
    register_error_handlers(app, debug=settings.is_development)

    # -----------------------------------------------------------------------
    # Routers
    # -----------------------------------------------------------------------

    app.include_router(tasks_router, prefix="/api/tasks", tags=["Tasks"])
    app.include_router(proof_router, prefix="/api/proof", tags=["Proof"])
    app.include_router(notifications_router, prefix="/api/notifications", tags=["Notifications"])
    app.include_router(focus_router, prefix="/api/focus", tags=["Focus"])
    app.mount("/uploads", StaticFiles(directory=settings.upload_dir, check_dir=False), name="uploads")

    # -----------------------------------------------------------------------
    # Health & root
    # -----------------------------------------------------------------------

    @app.get("/health")
    async def health():
        return {"success": True, "status": "healthy", "version": VERSION}

    @app.get("/")
    async def root():
        return {
            "success": True,
            "message": "EquiTask API is running",
            "version": VERSION,
            "endpoints": {
                "tasks": "/api/tasks",
                "proof": "/api/proof",
                "notifications": "/api/notifications",
                "focus": "/api/focus",
            },
        }

    return app


app = create_app()
