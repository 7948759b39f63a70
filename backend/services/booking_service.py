"""Lesson booking lifecycle with double-booking protection."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from backend.domain.intervals import as_local_naive
from backend.domain.models import Booking
from backend.repository.data_repository import DataRepository
from backend.services.conflict_service import ConflictDetector
from backend.services.student_service import StudentNotFoundError
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger, log_event


logger = get_logger(__name__)


class BookingError(Exception):
    """Base exception for booking workflow failures."""


class BookingValidationError(BookingError):
    """Raised when booking fields are invalid."""


class BookingNotFoundError(BookingError):
    """Raised when a booking id does not exist in persisted state."""


class SchedulingConflictError(BookingError):
    """Raised when a write would double-book the student."""

    def __init__(self, message: str, conflicting_ids: list[int]) -> None:
        super().__init__(message)
        self.conflicting_ids = conflicting_ids


def _validate_location(location: Optional[str]) -> str:
    if location is None or not location.strip():
        raise BookingValidationError("Location is required")
    cleaned = location.strip()
    if len(cleaned) > 100:
        raise BookingValidationError("Location must be between 1 and 100 characters")
    return cleaned


def _validate_interval(start: datetime, end: datetime) -> tuple[datetime, datetime]:
    start, end = as_local_naive(start), as_local_naive(end)
    if end <= start:
        raise BookingValidationError("End time must be after start time")
    return start, end


class BookingService:
    """CRUD and queries over lessons.

    Every write that places a booking in time checks conflicts and writes
    inside one repository write transaction, so two overlapping requests for
    the same student cannot both succeed.
    """

    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
        conflict_detector: Optional[ConflictDetector] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)
        self._conflicts = conflict_detector or ConflictDetector(
            repository=self._repository,
            settings=self._settings,
        )
        self._clock = clock

    def now(self) -> datetime:
        return self._clock()

    def _ensure_student(self, student_id: int) -> None:
        if not self._repository.student_exists(student_id):
            raise StudentNotFoundError(f"Student not found with id: {student_id}")

    def _raise_on_conflict(
        self,
        student_id: int,
        start: datetime,
        end: datetime,
        exclude_booking_id: Optional[int],
        conn,
        message: str,
    ) -> None:
        conflicts = self._conflicts.find_conflicts(
            student_id,
            start,
            end,
            exclude_booking_id,
            conn=conn,
        )
        if conflicts:
            conflicting_ids = [booking.booking_id for booking in conflicts]
            log_event(
                logger,
                "Booking rejected",
                level=logging.WARNING,
                student_id=student_id,
                start=start,
                end=end,
                conflicts=conflicting_ids,
            )
            raise SchedulingConflictError(message, conflicting_ids)

    def create_booking(
        self,
        *,
        student_id: int,
        start: datetime,
        end: datetime,
        location: str,
        notes: Optional[str] = None,
    ) -> Booking:
        start, end = _validate_interval(start, end)
        location = _validate_location(location)
        self._ensure_student(student_id)

        with self._repository.write_transaction() as conn:
            self._raise_on_conflict(
                student_id,
                start,
                end,
                None,
                conn,
                "Schedule conflicts with existing schedule(s)",
            )
            booking_id = self._repository.insert_booking(
                student_id, start, end, location, notes, conn=conn
            )

        log_event(
            logger, "Booking created", booking_id=booking_id, student_id=student_id, start=start
        )
        return self.get_booking(booking_id)

    def update_booking(
        self,
        booking_id: int,
        *,
        student_id: int,
        start: datetime,
        end: datetime,
        location: str,
        notes: Optional[str] = None,
    ) -> Booking:
        start, end = _validate_interval(start, end)
        location = _validate_location(location)
        self._ensure_student(student_id)

        with self._repository.write_transaction() as conn:
            if self._repository.get_booking(booking_id, conn=conn) is None:
                raise BookingNotFoundError(f"Schedule not found with id: {booking_id}")
            self._raise_on_conflict(
                student_id,
                start,
                end,
                booking_id,
                conn,
                "Schedule conflicts with existing schedule(s)",
            )
            self._repository.update_booking(
                booking_id, student_id, start, end, location, notes, conn=conn
            )
        return self.get_booking(booking_id)

    def reschedule_booking(self, booking_id: int, start: datetime, end: datetime) -> Booking:
        start, end = _validate_interval(start, end)

        with self._repository.write_transaction() as conn:
            booking = self._repository.get_booking(booking_id, conn=conn)
            if booking is None:
                raise BookingNotFoundError(f"Schedule not found with id: {booking_id}")
            self._raise_on_conflict(
                booking.student_id,
                start,
                end,
                booking_id,
                conn,
                "Cannot reschedule: conflicts with existing schedule(s)",
            )
            self._repository.update_booking(
                booking_id,
                booking.student_id,
                start,
                end,
                booking.location,
                booking.notes,
                conn=conn,
            )

        log_event(logger, "Booking rescheduled", booking_id=booking_id, start=start, end=end)
        return self.get_booking(booking_id)

    def change_location(self, booking_id: int, location: str) -> Booking:
        location = _validate_location(location)
        self.get_booking(booking_id)
        self._repository.update_booking_location(booking_id, location)
        return self.get_booking(booking_id)

    def update_notes(self, booking_id: int, notes: Optional[str]) -> Booking:
        self.get_booking(booking_id)
        self._repository.update_booking_notes(booking_id, notes)
        return self.get_booking(booking_id)

    def delete_booking(self, booking_id: int) -> None:
        self.get_booking(booking_id)
        self._repository.delete_booking(booking_id)
        log_event(logger, "Booking deleted", booking_id=booking_id)

    def get_booking(self, booking_id: int) -> Booking:
        booking = self._repository.get_booking(booking_id)
        if booking is None:
            raise BookingNotFoundError(f"Schedule not found with id: {booking_id}")
        return booking

    def list_bookings(self) -> list[Booking]:
        return self._repository.list_bookings()

    def list_bookings_for_student(self, student_id: int) -> list[Booking]:
        return self._repository.get_all_bookings_for_student(student_id)

    def list_bookings_in_range(
        self,
        start: datetime,
        end: datetime,
        student_id: Optional[int] = None,
    ) -> list[Booking]:
        start, end = as_local_naive(start), as_local_naive(end)
        if end < start:
            raise BookingValidationError("Start date must be before end date")
        return self._repository.list_bookings_starting_between(start, end, student_id)

    def list_bookings_on_date(self, day: datetime, student_id: Optional[int] = None) -> list[Booking]:
        midnight = datetime.combine(as_local_naive(day).date(), datetime.min.time())
        return [
            booking
            for booking in self._repository.list_bookings_starting_between(
                midnight,
                midnight + timedelta(days=1),
                student_id,
            )
            if booking.start.date() == midnight.date()
        ]

    def search_by_location(self, term: str) -> list[Booking]:
        return self._repository.search_bookings_by_location(term.strip())

    def list_upcoming(self, now: Optional[datetime] = None) -> list[Booking]:
        return self._repository.list_bookings_starting_after(now or self.now())

    def list_ongoing(self, now: Optional[datetime] = None) -> list[Booking]:
        return self._repository.list_bookings_in_progress(now or self.now())

    def list_completed(self, now: Optional[datetime] = None) -> list[Booking]:
        return self._repository.list_bookings_ended_before(now or self.now())

    def list_next_days(
        self,
        days: Optional[int] = None,
        student_id: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> list[Booking]:
        if days is None:
            days = self._settings.upcoming_window_days
        if days <= 0:
            raise BookingValidationError("days must be > 0")
        reference = now or self.now()
        return self._repository.list_bookings_starting_between(
            reference,
            reference + timedelta(days=days),
            student_id,
        )

    def has_conflict(
        self,
        student_id: int,
        start: datetime,
        end: datetime,
        exclude_booking_id: Optional[int] = None,
    ) -> bool:
        start, end = _validate_interval(start, end)
        return self._conflicts.has_conflict(student_id, start, end, exclude_booking_id)

    def find_conflicts(
        self,
        student_id: int,
        start: datetime,
        end: datetime,
        exclude_booking_id: Optional[int] = None,
    ) -> list[Booking]:
        start, end = _validate_interval(start, end)
        return self._conflicts.find_conflicts(student_id, start, end, exclude_booking_id)

    def is_student_available(self, student_id: int, start: datetime, end: datetime) -> bool:
        return not self.has_conflict(student_id, start, end)

    def count_by_student(self) -> dict[int, int]:
        return self._repository.count_bookings_by_student()

    def count_by_location(self) -> dict[str, int]:
        return self._repository.count_bookings_by_location()
