"""Lesson material assignment and completion tracking."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Optional

from backend.domain.models import CONTENT_TYPES, LessonContent
from backend.repository.data_repository import DataRepository
from backend.services.student_service import StudentNotFoundError
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger, log_event


logger = get_logger(__name__)


class LessonContentError(Exception):
    """Base exception for lesson content failures."""


class LessonContentValidationError(LessonContentError):
    """Raised when lesson content fields are invalid."""


class LessonContentNotFoundError(LessonContentError):
    """Raised when a lesson content id does not exist."""


def validate_lesson_content_fields(
    title: str,
    content_type: str,
    difficulty_level: int,
    estimated_duration: int,
    description: Optional[str],
) -> None:
    if not title or not title.strip():
        raise LessonContentValidationError("Title is required")
    if len(title.strip()) > 200:
        raise LessonContentValidationError("Title must be between 1 and 200 characters")
    if description is not None and len(description) > 1000:
        raise LessonContentValidationError("Description must be at most 1000 characters")
    if content_type not in CONTENT_TYPES:
        raise LessonContentValidationError(
            f"Invalid content type. Must be one of: {', '.join(CONTENT_TYPES)}"
        )
    if not 1 <= difficulty_level <= 10:
        raise LessonContentValidationError("Difficulty level must be between 1 and 10")
    if estimated_duration < 1:
        raise LessonContentValidationError("Estimated duration must be at least 1 minute")


class LessonContentService:
    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)
        self._clock = clock

    def create_content(
        self,
        *,
        student_id: int,
        title: str,
        content_type: str,
        difficulty_level: int,
        estimated_duration: int,
        description: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> LessonContent:
        content_type = content_type.strip().upper()
        validate_lesson_content_fields(
            title, content_type, difficulty_level, estimated_duration, description
        )
        if not self._repository.student_exists(student_id):
            raise StudentNotFoundError(f"Student not found with id: {student_id}")
        content_id = self._repository.create_lesson_content(
            student_id,
            title.strip(),
            content_type,
            difficulty_level,
            estimated_duration,
            description,
            notes,
        )
        return self.get_content(content_id)

    def update_content(
        self,
        content_id: int,
        *,
        title: str,
        content_type: str,
        difficulty_level: int,
        estimated_duration: int,
        description: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> LessonContent:
        self.get_content(content_id)
        content_type = content_type.strip().upper()
        validate_lesson_content_fields(
            title, content_type, difficulty_level, estimated_duration, description
        )
        self._repository.update_lesson_content(
            content_id,
            title.strip(),
            content_type,
            difficulty_level,
            estimated_duration,
            description,
            notes,
        )
        return self.get_content(content_id)

    def delete_content(self, content_id: int) -> None:
        self.get_content(content_id)
        self._repository.delete_lesson_content(content_id)

    def get_content(self, content_id: int) -> LessonContent:
        content = self._repository.get_lesson_content(content_id)
        if content is None:
            raise LessonContentNotFoundError(f"Lesson content not found with id: {content_id}")
        return content

    def list_for_student(
        self,
        student_id: int,
        completed: Optional[bool] = None,
    ) -> list[LessonContent]:
        return self._repository.find_lesson_content(student_id, completed=completed)

    def find_content(
        self,
        *,
        student_id: Optional[int] = None,
        content_type: Optional[str] = None,
        difficulty_level: Optional[int] = None,
        completed: Optional[bool] = None,
        search: Optional[str] = None,
    ) -> list[LessonContent]:
        """Filter by type, difficulty, completion and title/description text."""
        if content_type is not None:
            content_type = content_type.strip().upper()
            if content_type not in CONTENT_TYPES:
                raise LessonContentValidationError(
                    f"Invalid content type. Must be one of: {', '.join(CONTENT_TYPES)}"
                )
        if difficulty_level is not None and not 1 <= difficulty_level <= 10:
            raise LessonContentValidationError("Difficulty level must be between 1 and 10")
        if search is not None:
            search = search.strip() or None
        return self._repository.find_lesson_content(
            student_id,
            completed=completed,
            content_type=content_type,
            difficulty_level=difficulty_level,
            search=search,
        )

    def mark_completed(self, content_id: int, now: Optional[datetime] = None) -> LessonContent:
        self.get_content(content_id)
        self._repository.set_lesson_content_completion(content_id, True, now or self._clock())
        log_event(logger, "Lesson content completed", content_id=content_id)
        return self.get_content(content_id)

    def mark_incomplete(self, content_id: int) -> LessonContent:
        self.get_content(content_id)
        self._repository.set_lesson_content_completion(content_id, False, None)
        return self.get_content(content_id)

    def completion_stats(self, student_id: Optional[int] = None) -> dict[str, Any]:
        """Completion counts for one student, or across all students when omitted."""
        total, completed = self._repository.count_lesson_content_completion(student_id)
        return {
            "student_id": student_id,
            "total": total,
            "completed": completed,
            "incomplete": total - completed,
            "completion_rate": (completed / total) if total else 0.0,
        }
