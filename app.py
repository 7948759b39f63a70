"""
app.py - FastAPI application factory and startup lifecycle.

This is the ASGI application object imported by uvicorn.
It wires all services, registers routers, and runs startup initialization.

Usage (via launcher):
    python main.py

Usage (direct uvicorn):
    uvicorn app:app --reload
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from backend.controllers.lesson_content_controller import router as lesson_content_router
from backend.controllers.progress_report_controller import router as progress_report_router
from backend.controllers.schedule_controller import router as schedule_router
from backend.controllers.student_controller import router as student_router
from backend.repository.data_repository import DataRepository
from backend.services.booking_service import BookingService
from backend.services.conflict_service import ConflictDetector
from backend.services.lesson_content_service import LessonContentService
from backend.services.progress_report_service import ProgressReportService
from backend.services.student_service import StudentService
from backend.services.suggestion_service import SchedulingSuggestionService
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build and wire the FastAPI application.

    Every service shares one repository and is exposed through app.state so
    controllers resolve dependencies without module-level singletons.
    """
    settings = settings or get_settings()

    # --- Repository (SQLite connection factory) ---
    repository = DataRepository(settings)

    # --- Services ---
    conflict_detector = ConflictDetector(repository=repository, settings=settings)
    student_service = StudentService(repository=repository, settings=settings)
    booking_service = BookingService(
        repository=repository,
        settings=settings,
        conflict_detector=conflict_detector,
    )
    suggestion_service = SchedulingSuggestionService(
        repository=repository,
        settings=settings,
    )
    lesson_content_service = LessonContentService(repository=repository, settings=settings)
    progress_report_service = ProgressReportService(repository=repository, settings=settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Run startup initialization before accepting requests."""
        _startup(app)
        yield

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        lifespan=lifespan,
    )

    # --- Routers ---
    app.include_router(student_router)
    app.include_router(schedule_router)
    app.include_router(lesson_content_router)
    app.include_router(progress_report_router)

    @app.get("/health", tags=["health"])
    async def health() -> dict[str, str]:
        return {"status": "ok", "version": settings.app_version}

    # --- Inject services into app.state for dependency resolution ---
    app.state.settings = settings
    app.state.repository = repository
    app.state.student_service = student_service
    app.state.booking_service = booking_service
    app.state.suggestion_service = suggestion_service
    app.state.lesson_content_service = lesson_content_service
    app.state.progress_report_service = progress_report_service

    return app


def _startup(app: FastAPI) -> None:
    """
    Idempotent startup sequence. Safe to re-run on server restarts.

    The schema must exist before demo data is seeded; seeding only touches an
    empty Students table.
    """
    repository: DataRepository = app.state.repository
    settings: Settings = app.state.settings

    logger.info("Startup: initializing database schema at %s", settings.database_path)
    repository.initialize_database()

    if settings.seed_demo_data:
        seeded = repository.seed_demo_data()
        logger.info("Startup: seeded %s demo lessons", seeded)
    else:
        logger.info("Startup: demo seeding disabled")

    logger.info("Startup complete, accepting requests")


# Module-level app object for uvicorn
app = create_app()
