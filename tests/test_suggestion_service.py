from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta

import pytest

from backend.repository.data_repository import DataRepository
from backend.services.pattern_service import BASE_REASON, HOUR_PATTERN_NOTE, WEEKDAY_PATTERN_NOTE
from backend.services.student_service import StudentNotFoundError
from backend.services.suggestion_service import (
    InvalidDurationError,
    InvalidWindowError,
    SchedulingSuggestionService,
)
from backend.utils.config import get_settings


# 2030-01-01 is a Tuesday.
TUESDAY = datetime(2030, 1, 1)
NOW = datetime(2029, 12, 31, 9, 0)
WEEK_END = TUESDAY + timedelta(days=6, hours=23, minutes=59)


def _build_test_settings(tmp_path, filename: str):
    get_settings.cache_clear()
    return replace(
        get_settings(),
        database_path=tmp_path / filename,
        seed_demo_data=False,
    )


def _build_service(tmp_path, filename: str = "suggestions.db"):
    settings = _build_test_settings(tmp_path, filename)
    repository = DataRepository(settings)
    repository.initialize_database()
    student_id = repository.create_student("Clara Wieck", 15, "Grade 5", None, None, None)
    service = SchedulingSuggestionService(
        repository=repository,
        settings=settings,
        clock=lambda: NOW,
    )
    return service, repository, student_id


def _add_lesson(repository: DataRepository, student_id: int, start: datetime, minutes: int = 60) -> int:
    return repository.insert_booking(
        student_id,
        start,
        start + timedelta(minutes=minutes),
        "Studio",
        None,
    )


def test_empty_history_returns_top_twenty_in_chronological_tie_order(tmp_path):
    service, _, student_id = _build_service(tmp_path)

    run = service.get_suggestions(student_id, TUESDAY, WEEK_END, 60)

    # Tue, Wed, Thu, Fri and the following Monday, 12 hourly starts each.
    assert run.candidate_count == 60
    assert len(run.suggestions) == 20
    assert run.student.name == "Clara Wieck"
    assert all(item.confidence == pytest.approx(0.6) for item in run.suggestions)
    starts = [item.start for item in run.suggestions]
    assert starts == sorted(starts)
    assert starts[0] == TUESDAY + timedelta(hours=10)


def test_results_sorted_by_confidence_and_within_bounds(tmp_path):
    service, repository, student_id = _build_service(tmp_path)
    for weeks_back in (1, 2, 3):
        _add_lesson(repository, student_id, TUESDAY - timedelta(weeks=weeks_back) + timedelta(hours=16))

    run = service.get_suggestions(student_id, TUESDAY, WEEK_END, 60)

    confidences = [item.confidence for item in run.suggestions]
    assert confidences == sorted(confidences, reverse=True)
    assert all(0.0 <= value <= 1.0 for value in confidences)
    best = run.suggestions[0]
    assert best.start == TUESDAY + timedelta(hours=16)
    assert best.confidence == 1.0
    assert best.reason == BASE_REASON + WEEKDAY_PATTERN_NOTE + HOUR_PATTERN_NOTE


def test_existing_lesson_in_window_is_never_suggested(tmp_path):
    service, repository, student_id = _build_service(tmp_path)
    booked_start = TUESDAY + timedelta(hours=16)
    _add_lesson(repository, student_id, booked_start)

    run = service.get_suggestions(student_id, TUESDAY, TUESDAY + timedelta(hours=23), 60)

    assert run.candidate_count == 11
    for item in run.suggestions:
        assert not (item.start < booked_start + timedelta(hours=1) and item.end > booked_start)


def test_other_students_lessons_do_not_block(tmp_path):
    service, repository, student_id = _build_service(tmp_path)
    other_id = repository.create_student("Robert Schumann", 40, None, None, None, None)
    _add_lesson(repository, other_id, TUESDAY + timedelta(hours=16))

    run = service.get_suggestions(student_id, TUESDAY, TUESDAY + timedelta(hours=23), 60)
    assert run.candidate_count == 12


def test_suggested_slots_have_requested_duration(tmp_path):
    service, _, student_id = _build_service(tmp_path)
    run = service.get_suggestions(student_id, TUESDAY, WEEK_END, 45)
    assert all(item.duration_minutes == 45 for item in run.suggestions)


def test_weekend_window_returns_nothing(tmp_path):
    service, _, student_id = _build_service(tmp_path)
    saturday = TUESDAY + timedelta(days=4)
    run = service.get_suggestions(student_id, saturday, saturday + timedelta(days=1, hours=23), 60)
    assert run.suggestions == []
    assert run.candidate_count == 0


@pytest.mark.parametrize("duration", [15, 29, 241, 300])
def test_duration_outside_bounds_is_rejected(tmp_path, duration):
    service, _, student_id = _build_service(tmp_path)
    with pytest.raises(InvalidDurationError):
        service.get_suggestions(student_id, TUESDAY, WEEK_END, duration)


@pytest.mark.parametrize("duration", [30, 240])
def test_duration_bounds_are_inclusive(tmp_path, duration):
    service, _, student_id = _build_service(tmp_path)
    run = service.get_suggestions(student_id, TUESDAY, WEEK_END, duration)
    assert run.suggestions


def test_inverted_or_empty_window_is_rejected(tmp_path):
    service, _, student_id = _build_service(tmp_path)
    with pytest.raises(InvalidWindowError):
        service.get_suggestions(student_id, WEEK_END, TUESDAY, 60)
    with pytest.raises(InvalidWindowError):
        service.get_suggestions(student_id, TUESDAY, TUESDAY, 60)


def test_window_starting_in_the_past_is_rejected(tmp_path):
    service, _, student_id = _build_service(tmp_path)
    with pytest.raises(InvalidWindowError):
        service.get_suggestions(student_id, NOW - timedelta(days=1), WEEK_END, 60)


def test_explicit_now_overrides_clock(tmp_path):
    service, _, student_id = _build_service(tmp_path)
    with pytest.raises(InvalidWindowError):
        service.get_suggestions(
            student_id,
            TUESDAY,
            WEEK_END,
            60,
            now=TUESDAY + timedelta(days=1),
        )


def test_unknown_student_is_rejected(tmp_path):
    service, _, _ = _build_service(tmp_path)
    with pytest.raises(StudentNotFoundError):
        service.get_suggestions(9999, TUESDAY, WEEK_END, 60)


def test_invalid_duration_is_reported_before_database_access(tmp_path):
    settings = _build_test_settings(tmp_path, "never_initialized.db")
    service = SchedulingSuggestionService(
        repository=DataRepository(settings),
        settings=settings,
        clock=lambda: NOW,
    )
    # Duration is checked before the window, and neither touches the schema.
    with pytest.raises(InvalidDurationError):
        service.get_suggestions(1, WEEK_END, TUESDAY, 15)


def test_ranking_cap_follows_settings(tmp_path):
    settings = replace(_build_test_settings(tmp_path, "capped.db"), max_suggestions=5)
    repository = DataRepository(settings)
    repository.initialize_database()
    student_id = repository.create_student("Clara Wieck", 15, None, None, None, None)
    service = SchedulingSuggestionService(repository=repository, settings=settings, clock=lambda: NOW)

    run = service.get_suggestions(student_id, TUESDAY, WEEK_END, 60)
    assert len(run.suggestions) == 5


def test_window_longer_than_configured_maximum_is_rejected(tmp_path):
    settings = replace(_build_test_settings(tmp_path, "short_window.db"), max_window_days=3)
    repository = DataRepository(settings)
    repository.initialize_database()
    student_id = repository.create_student("Clara Wieck", 15, None, None, None, None)
    service = SchedulingSuggestionService(repository=repository, settings=settings, clock=lambda: NOW)

    with pytest.raises(InvalidWindowError, match="cannot exceed 3 days"):
        service.get_suggestions(student_id, TUESDAY, TUESDAY + timedelta(days=3, minutes=1), 60)

    # Exactly the maximum is still accepted.
    run = service.get_suggestions(student_id, TUESDAY, TUESDAY + timedelta(days=3), 60)
    assert run.candidate_count > 0


def test_suggestion_run_is_logged_as_event_line(tmp_path, caplog):
    service, _, student_id = _build_service(tmp_path)
    with caplog.at_level("INFO", logger="backend.services.suggestion_service"):
        run = service.get_suggestions(student_id, TUESDAY, WEEK_END, 60)

    messages = [record.getMessage() for record in caplog.records]
    assert (
        f"Suggestion run completed | student_id={student_id} | "
        f"window_start=2030-01-01T00:00:00 | window_end=2030-01-07T23:59:00 | "
        f"duration=60 | candidates={run.candidate_count} | returned={len(run.suggestions)}"
    ) in messages
