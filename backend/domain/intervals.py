"""Half-open time interval model and the single overlap predicate."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta


def intervals_overlap(
    start_a: datetime,
    end_a: datetime,
    start_b: datetime,
    end_b: datetime,
) -> bool:
    """Return True when [start_a, end_a) and [start_b, end_b) intersect.

    Touching endpoints (end_a == start_b) are not an overlap. Every conflict
    decision in the code base goes through this function.
    """
    return start_a < end_b and end_a > start_b


@dataclass(frozen=True)
class TimeInterval:
    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.end <= self.start:
            raise ValueError("interval end must be after start")

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def overlaps(self, other: "TimeInterval") -> bool:
        return intervals_overlap(self.start, self.end, other.start, other.end)


def as_local_naive(value: datetime) -> datetime:
    """Convert an aware timestamp to naive local time; naive values pass through."""
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)
