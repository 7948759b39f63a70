"""Candidate lesson-slot enumeration inside business hours."""

from __future__ import annotations

from datetime import datetime, time, timedelta
from typing import Sequence

from backend.domain.constraints import SchedulingRules
from backend.domain.models import Booking, CandidateSlot
from backend.services.conflict_service import iter_overlapping_bookings


_SATURDAY = 5


def generate_candidates(
    student_id: int,
    window_start: datetime,
    window_end: datetime,
    duration_minutes: int,
    existing_bookings: Sequence[Booking],
    rules: SchedulingRules,
) -> list[CandidateSlot]:
    """Enumerate conflict-free slots of exactly ``duration_minutes``.

    Starts step by ``rules.slot_step_minutes`` from the opening hour of each
    weekday between the window's first and last calendar date, so slots longer
    than the step overlap one another. A slot is kept when it ends by closing
    time, starts inside [window_start, window_end), and overlaps none of the
    student's bookings. Output is chronological.
    """
    duration = timedelta(minutes=duration_minutes)
    step = timedelta(minutes=rules.slot_step_minutes)
    blocking = [booking for booking in existing_bookings if booking.student_id == student_id]

    candidates: list[CandidateSlot] = []
    current_day = window_start.date()
    last_day = window_end.date()
    while current_day <= last_day:
        if current_day.weekday() < _SATURDAY:
            midnight = datetime.combine(current_day, time.min)
            day_close = midnight + timedelta(hours=rules.business_day_end_hour)
            slot_start = midnight + timedelta(hours=rules.business_day_start_hour)
            while slot_start + duration <= day_close:
                slot_end = slot_start + duration
                in_window = window_start <= slot_start < window_end
                if in_window and next(
                    iter_overlapping_bookings(blocking, slot_start, slot_end), None
                ) is None:
                    candidates.append(CandidateSlot(start=slot_start, end=slot_end))
                slot_start += step
        current_day += timedelta(days=1)
    return candidates
