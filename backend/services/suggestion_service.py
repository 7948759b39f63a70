"""Recommendation of open lesson slots for a student."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional, Sequence

from backend.domain.constraints import (
    SchedulingRules,
    rules_from_settings,
    validate_scheduling_rules,
)
from backend.domain.intervals import as_local_naive
from backend.domain.models import Student, Suggestion
from backend.repository.data_repository import DataRepository
from backend.services.pattern_service import score_candidates
from backend.services.slot_service import generate_candidates
from backend.services.student_service import StudentNotFoundError
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger, log_event


logger = get_logger(__name__)


class SuggestionError(Exception):
    """Base exception for suggestion request failures."""


class InvalidDurationError(SuggestionError):
    """Raised when the requested lesson length is outside the allowed range."""


class InvalidWindowError(SuggestionError):
    """Raised when the search window is empty, inverted or already started."""


@dataclass(frozen=True)
class SuggestionRun:
    student: Student
    suggestions: list[Suggestion]
    candidate_count: int


def rank_suggestions(suggestions: Sequence[Suggestion], limit: int) -> list[Suggestion]:
    """Highest confidence first; ties keep their incoming (chronological) order."""
    return sorted(suggestions, key=lambda item: item.confidence, reverse=True)[:limit]


def validate_suggestion_request(
    window_start: datetime,
    window_end: datetime,
    duration_minutes: int,
    now: datetime,
    rules: SchedulingRules,
) -> None:
    if not rules.min_lesson_minutes <= duration_minutes <= rules.max_lesson_minutes:
        raise InvalidDurationError(
            f"Duration must be between {rules.min_lesson_minutes} and "
            f"{rules.max_lesson_minutes} minutes"
        )
    if window_start >= window_end:
        raise InvalidWindowError("Start date must be before end date")
    if window_end - window_start > timedelta(days=rules.max_window_days):
        raise InvalidWindowError(
            f"Search window cannot exceed {rules.max_window_days} days"
        )
    if window_start < now:
        raise InvalidWindowError("Start date cannot be in the past")


class SchedulingSuggestionService:
    """Generates, scores and ranks candidate lesson slots.

    Each call works on its own booking snapshot and frequency table, so
    concurrent calls share no mutable state.
    """

    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)
        self._clock = clock
        self._rules = rules_from_settings(self._settings)
        validate_scheduling_rules(self._rules)

    @property
    def rules(self) -> SchedulingRules:
        return self._rules

    def get_suggestions(
        self,
        student_id: int,
        window_start: datetime,
        window_end: datetime,
        duration_minutes: int,
        *,
        now: Optional[datetime] = None,
    ) -> SuggestionRun:
        window_start = as_local_naive(window_start)
        window_end = as_local_naive(window_end)
        reference_now = as_local_naive(now) if now is not None else self._clock()
        validate_suggestion_request(
            window_start,
            window_end,
            duration_minutes,
            reference_now,
            self._rules,
        )

        student = self._repository.get_student(student_id)
        if student is None:
            raise StudentNotFoundError(f"Student not found with id: {student_id}")

        booked = self._repository.get_bookings_for_student_in_range(
            student_id,
            window_start,
            window_end,
        )
        history = self._repository.get_all_bookings_for_student(student_id)

        candidates = generate_candidates(
            student_id,
            window_start,
            window_end,
            duration_minutes,
            booked,
            self._rules,
        )
        scored = score_candidates(candidates, history, self._rules)
        ranked = rank_suggestions(scored, self._rules.max_suggestions)

        log_event(
            logger,
            "Suggestion run completed",
            student_id=student_id,
            window_start=window_start,
            window_end=window_end,
            duration=duration_minutes,
            candidates=len(candidates),
            returned=len(ranked),
        )
        return SuggestionRun(
            student=student,
            suggestions=ranked,
            candidate_count=len(candidates),
        )
