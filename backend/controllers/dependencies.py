"""Shared FastAPI dependency providers for controller layer."""

from __future__ import annotations

from typing import Any

from fastapi import HTTPException, Request, status

from backend.services.booking_service import BookingService
from backend.services.lesson_content_service import LessonContentService
from backend.services.progress_report_service import ProgressReportService
from backend.services.student_service import StudentService
from backend.services.suggestion_service import SchedulingSuggestionService


def _service_from_state(request: Request, attribute: str, label: str) -> Any:
    service = getattr(request.app.state, attribute, None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"{label} service is not initialized",
        )
    return service


def get_student_service(request: Request) -> StudentService:
    return _service_from_state(request, "student_service", "Student")


def get_booking_service(request: Request) -> BookingService:
    return _service_from_state(request, "booking_service", "Booking")


def get_suggestion_service(request: Request) -> SchedulingSuggestionService:
    return _service_from_state(request, "suggestion_service", "Suggestion")


def get_lesson_content_service(request: Request) -> LessonContentService:
    return _service_from_state(request, "lesson_content_service", "Lesson content")


def get_progress_report_service(request: Request) -> ProgressReportService:
    return _service_from_state(request, "progress_report_service", "Progress report")
