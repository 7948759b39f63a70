"""Student double-booking detection over half-open intervals."""

from __future__ import annotations

import sqlite3
from datetime import datetime
from typing import Iterable, Iterator, Optional

from backend.domain.intervals import intervals_overlap
from backend.domain.models import Booking
from backend.repository.data_repository import DataRepository
from backend.utils.config import Settings, get_settings


def iter_overlapping_bookings(
    bookings: Iterable[Booking],
    start: datetime,
    end: datetime,
    exclude_booking_id: Optional[int] = None,
) -> Iterator[Booking]:
    """Yield bookings that overlap [start, end), lazily and in input order."""
    for booking in bookings:
        if exclude_booking_id is not None and booking.booking_id == exclude_booking_id:
            continue
        if intervals_overlap(start, end, booking.start, booking.end):
            yield booking


class ConflictDetector:
    """Answers whether a student is already booked during an interval.

    Student existence is validated upstream; an unknown id simply has no
    bookings and therefore never conflicts.
    """

    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)

    def find_conflicts(
        self,
        student_id: int,
        start: datetime,
        end: datetime,
        exclude_booking_id: Optional[int] = None,
        *,
        conn: Optional[sqlite3.Connection] = None,
    ) -> list[Booking]:
        bookings = self._repository.get_bookings_for_student_in_range(
            student_id,
            start,
            end,
            conn=conn,
        )
        return list(iter_overlapping_bookings(bookings, start, end, exclude_booking_id))

    def has_conflict(
        self,
        student_id: int,
        start: datetime,
        end: datetime,
        exclude_booking_id: Optional[int] = None,
        *,
        conn: Optional[sqlite3.Connection] = None,
    ) -> bool:
        bookings = self._repository.get_bookings_for_student_in_range(
            student_id,
            start,
            end,
            conn=conn,
        )
        return next(iter_overlapping_bookings(bookings, start, end, exclude_booking_id), None) is not None
