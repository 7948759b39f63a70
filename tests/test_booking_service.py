from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timedelta

import pytest

from backend.domain.models import (
    BOOKING_STATUS_COMPLETED,
    BOOKING_STATUS_IN_PROGRESS,
    BOOKING_STATUS_SCHEDULED,
)
from backend.repository.data_repository import DataRepository
from backend.services.booking_service import (
    BookingNotFoundError,
    BookingService,
    BookingValidationError,
    SchedulingConflictError,
)
from backend.services.student_service import StudentNotFoundError
from backend.utils.config import get_settings


# 2030-01-01 is a Tuesday.
TUESDAY = datetime(2030, 1, 1)
NOW = datetime(2029, 12, 31, 9, 0)


def _build_test_settings(tmp_path, filename: str):
    get_settings.cache_clear()
    return replace(
        get_settings(),
        database_path=tmp_path / filename,
        seed_demo_data=False,
    )


def _build_service(tmp_path, filename: str = "bookings.db"):
    settings = _build_test_settings(tmp_path, filename)
    repository = DataRepository(settings)
    repository.initialize_database()
    student_id = repository.create_student("Clara Wieck", 15, None, None, None, None)
    service = BookingService(repository=repository, settings=settings, clock=lambda: NOW)
    return service, repository, student_id


def _create(service: BookingService, student_id: int, hour: float, minutes: int = 60, location: str = "Studio A"):
    start = TUESDAY + timedelta(hours=hour)
    return service.create_booking(
        student_id=student_id,
        start=start,
        end=start + timedelta(minutes=minutes),
        location=location,
    )


def test_create_and_get_booking(tmp_path):
    service, _, student_id = _build_service(tmp_path)
    booking = _create(service, student_id, 16, minutes=45)

    fetched = service.get_booking(booking.booking_id)
    assert fetched == booking
    assert fetched.duration_minutes == 45
    assert fetched.duration_hours == pytest.approx(0.75)
    assert fetched.status_at(NOW) == BOOKING_STATUS_SCHEDULED


def test_overlapping_booking_is_rejected_with_conflicting_ids(tmp_path):
    service, repository, student_id = _build_service(tmp_path)
    existing = _create(service, student_id, 16)

    with pytest.raises(SchedulingConflictError) as excinfo:
        _create(service, student_id, 16.5)

    assert excinfo.value.conflicting_ids == [existing.booking_id]
    assert "conflicts with existing schedule" in str(excinfo.value)
    assert len(repository.get_all_bookings_for_student(student_id)) == 1


def test_touching_bookings_are_allowed(tmp_path):
    service, _, student_id = _build_service(tmp_path)
    _create(service, student_id, 16)
    _create(service, student_id, 17)
    _create(service, student_id, 15)
    assert len(service.list_bookings_for_student(student_id)) == 3


def test_same_time_for_different_students_is_allowed(tmp_path):
    service, repository, student_id = _build_service(tmp_path)
    other_id = repository.create_student("Robert Schumann", 40, None, None, None, None)
    _create(service, student_id, 16)
    _create(service, other_id, 16)
    assert service.count_by_student() == {student_id: 1, other_id: 1}


def test_invalid_interval_and_location_are_rejected(tmp_path):
    service, _, student_id = _build_service(tmp_path)
    with pytest.raises(BookingValidationError):
        service.create_booking(
            student_id=student_id,
            start=TUESDAY + timedelta(hours=10),
            end=TUESDAY + timedelta(hours=10),
            location="Studio",
        )
    with pytest.raises(BookingValidationError):
        _create(service, student_id, 10, location="   ")


def test_unknown_student_is_rejected(tmp_path):
    service, _, _ = _build_service(tmp_path)
    with pytest.raises(StudentNotFoundError):
        _create(service, 9999, 10)


def test_reschedule_may_overlap_its_own_previous_slot(tmp_path):
    service, _, student_id = _build_service(tmp_path)
    booking = _create(service, student_id, 16)

    moved = service.reschedule_booking(
        booking.booking_id,
        TUESDAY + timedelta(hours=16, minutes=30),
        TUESDAY + timedelta(hours=17, minutes=30),
    )
    assert moved.start == TUESDAY + timedelta(hours=16, minutes=30)
    assert moved.location == booking.location


def test_reschedule_onto_another_lesson_is_rejected(tmp_path):
    service, _, student_id = _build_service(tmp_path)
    first = _create(service, student_id, 10)
    second = _create(service, student_id, 14)

    with pytest.raises(SchedulingConflictError) as excinfo:
        service.reschedule_booking(
            second.booking_id,
            TUESDAY + timedelta(hours=10, minutes=30),
            TUESDAY + timedelta(hours=11, minutes=30),
        )
    assert str(excinfo.value).startswith("Cannot reschedule")
    assert excinfo.value.conflicting_ids == [first.booking_id]
    assert service.get_booking(second.booking_id).start == TUESDAY + timedelta(hours=14)


def test_reschedule_missing_booking(tmp_path):
    service, _, _ = _build_service(tmp_path)
    with pytest.raises(BookingNotFoundError):
        service.reschedule_booking(42, TUESDAY, TUESDAY + timedelta(hours=1))


def test_update_booking_checks_conflicts_excluding_itself(tmp_path):
    service, _, student_id = _build_service(tmp_path)
    booking = _create(service, student_id, 10)
    other = _create(service, student_id, 12)

    updated = service.update_booking(
        booking.booking_id,
        student_id=student_id,
        start=TUESDAY + timedelta(hours=10, minutes=15),
        end=TUESDAY + timedelta(hours=11, minutes=15),
        location="Studio B",
        notes="Bring metronome",
    )
    assert updated.location == "Studio B"
    assert updated.notes == "Bring metronome"

    with pytest.raises(SchedulingConflictError):
        service.update_booking(
            booking.booking_id,
            student_id=student_id,
            start=other.start,
            end=other.end,
            location="Studio B",
        )


def test_update_missing_booking_is_not_found(tmp_path):
    service, repository, student_id = _build_service(tmp_path)
    with pytest.raises(BookingNotFoundError):
        service.update_booking(
            42,
            student_id=student_id,
            start=TUESDAY + timedelta(hours=10),
            end=TUESDAY + timedelta(hours=11),
            location="Studio A",
        )
    assert repository.get_all_bookings_for_student(student_id) == []


def test_update_of_booking_deleted_before_write_lock_is_not_found(tmp_path, monkeypatch):
    service, repository, student_id = _build_service(tmp_path)
    booking = _create(service, student_id, 10)
    original_transaction = repository.write_transaction

    @contextmanager
    def transaction_after_concurrent_delete():
        repository.delete_booking(booking.booking_id)
        with original_transaction() as conn:
            yield conn

    writes: list[int] = []
    monkeypatch.setattr(repository, "write_transaction", transaction_after_concurrent_delete)
    monkeypatch.setattr(
        repository, "update_booking", lambda booking_id, *args, **kwargs: writes.append(booking_id)
    )

    with pytest.raises(BookingNotFoundError):
        service.update_booking(
            booking.booking_id,
            student_id=student_id,
            start=TUESDAY + timedelta(hours=14),
            end=TUESDAY + timedelta(hours=15),
            location="Studio B",
        )
    assert writes == []


def test_location_notes_and_delete(tmp_path):
    service, _, student_id = _build_service(tmp_path)
    booking = _create(service, student_id, 10)

    assert service.change_location(booking.booking_id, "Recital Hall").location == "Recital Hall"
    assert service.update_notes(booking.booking_id, "Scales").notes == "Scales"
    assert [item.booking_id for item in service.search_by_location("recital")] == [booking.booking_id]
    assert service.count_by_location() == {"Recital Hall": 1}

    service.delete_booking(booking.booking_id)
    with pytest.raises(BookingNotFoundError):
        service.get_booking(booking.booking_id)


def test_conflict_queries(tmp_path):
    service, _, student_id = _build_service(tmp_path)
    booking = _create(service, student_id, 10)
    start = TUESDAY + timedelta(hours=10, minutes=30)
    end = TUESDAY + timedelta(hours=11, minutes=30)

    assert service.has_conflict(student_id, start, end)
    assert not service.has_conflict(student_id, start, end, booking.booking_id)
    assert [item.booking_id for item in service.find_conflicts(student_id, start, end)] == [
        booking.booking_id
    ]
    assert not service.is_student_available(student_id, start, end)
    assert service.is_student_available(student_id, end, end + timedelta(hours=1))


def test_lessons_spanning_midnight_still_conflict(tmp_path):
    service, _, student_id = _build_service(tmp_path)
    _create(service, student_id, 23, minutes=120)
    wednesday = TUESDAY + timedelta(days=1)
    assert service.has_conflict(student_id, wednesday, wednesday + timedelta(minutes=30))


def test_status_lists_relative_to_now(tmp_path):
    service, _, student_id = _build_service(tmp_path)
    morning = _create(service, student_id, 9)
    noon = _create(service, student_id, 12)
    evening = _create(service, student_id, 18)
    now = TUESDAY + timedelta(hours=12, minutes=30)

    assert [b.booking_id for b in service.list_completed(now)] == [morning.booking_id]
    assert [b.booking_id for b in service.list_ongoing(now)] == [noon.booking_id]
    assert [b.booking_id for b in service.list_upcoming(now)] == [evening.booking_id]
    assert noon.status_at(now) == BOOKING_STATUS_IN_PROGRESS
    assert morning.status_at(now) == BOOKING_STATUS_COMPLETED


def test_range_and_date_queries(tmp_path):
    service, _, student_id = _build_service(tmp_path)
    tuesday_lesson = _create(service, student_id, 10)
    start = TUESDAY + timedelta(days=8, hours=10)
    later = service.create_booking(
        student_id=student_id,
        start=start,
        end=start + timedelta(hours=1),
        location="Studio A",
    )

    in_range = service.list_bookings_in_range(TUESDAY, TUESDAY + timedelta(days=2), student_id)
    assert [b.booking_id for b in in_range] == [tuesday_lesson.booking_id]
    assert [b.booking_id for b in service.list_bookings_on_date(start)] == [later.booking_id]
    with pytest.raises(BookingValidationError):
        service.list_bookings_in_range(TUESDAY + timedelta(days=2), TUESDAY)

    next_days = service.list_next_days(3, student_id, now=TUESDAY)
    assert [b.booking_id for b in next_days] == [tuesday_lesson.booking_id]
    assert len(service.list_next_days(now=TUESDAY)) == 1
    with pytest.raises(BookingValidationError):
        service.list_next_days(0)


def test_concurrent_overlapping_requests_book_only_once(tmp_path):
    service, repository, student_id = _build_service(tmp_path)
    barrier = threading.Barrier(4)
    outcomes: list[str] = []
    lock = threading.Lock()

    def attempt(offset_minutes: int) -> None:
        barrier.wait()
        start = TUESDAY + timedelta(hours=16, minutes=offset_minutes)
        try:
            service.create_booking(
                student_id=student_id,
                start=start,
                end=start + timedelta(hours=1),
                location="Studio A",
            )
            result = "created"
        except SchedulingConflictError:
            result = "conflict"
        with lock:
            outcomes.append(result)

    threads = [threading.Thread(target=attempt, args=(offset,)) for offset in (0, 10, 20, 30)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert outcomes.count("created") == 1
    assert outcomes.count("conflict") == 3
    assert len(repository.get_all_bookings_for_student(student_id)) == 1
