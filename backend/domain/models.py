"""Domain models for lesson scheduling and time-slot recommendation."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional


BOOKING_STATUS_SCHEDULED = "SCHEDULED"
BOOKING_STATUS_IN_PROGRESS = "IN_PROGRESS"
BOOKING_STATUS_COMPLETED = "COMPLETED"

CONTENT_TYPES = ("EXERCISE", "SONG", "THEORY", "TECHNIQUE", "REPERTOIRE", "ASSIGNMENT")
REPORT_TYPES = ("WEEKLY", "MONTHLY", "QUARTERLY", "SEMESTER", "YEARLY", "ASSESSMENT")

DEFAULT_PRICED_LESSON_MINUTES = 60
DEFAULT_PAYMENT_TERMS = "Per lesson"


@dataclass(frozen=True)
class Pricing:
    """Per-student lesson rate; duration is in minutes."""

    hourly_rate: float
    lesson_duration: int = DEFAULT_PRICED_LESSON_MINUTES
    payment_terms: Optional[str] = DEFAULT_PAYMENT_TERMS

    @property
    def lesson_cost(self) -> float:
        return round(self.hourly_rate * self.lesson_duration / 60.0, 2)


@dataclass(frozen=True)
class Student:
    student_id: int
    name: str
    age: int
    grade: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    notes: Optional[str] = None
    pricing: Optional[Pricing] = None

    @property
    def has_valid_pricing(self) -> bool:
        return self.pricing is not None and self.pricing.hourly_rate > 0


@dataclass(frozen=True)
class Booking:
    """A stored lesson occupying a student's [start, end) interval."""

    booking_id: int
    student_id: int
    start: datetime
    end: datetime
    location: str
    notes: Optional[str] = None

    @property
    def duration_minutes(self) -> int:
        return int((self.end - self.start).total_seconds() // 60)

    @property
    def duration_hours(self) -> float:
        return self.duration_minutes / 60.0

    def status_at(self, now: datetime) -> str:
        if now < self.start:
            return BOOKING_STATUS_SCHEDULED
        if now > self.end:
            return BOOKING_STATUS_COMPLETED
        return BOOKING_STATUS_IN_PROGRESS


@dataclass(frozen=True)
class CandidateSlot:
    start: datetime
    end: datetime

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    @property
    def duration_minutes(self) -> int:
        return int(self.duration.total_seconds() // 60)


@dataclass(frozen=True)
class Suggestion:
    slot: CandidateSlot
    confidence: float
    reason: str

    @property
    def start(self) -> datetime:
        return self.slot.start

    @property
    def end(self) -> datetime:
        return self.slot.end

    @property
    def duration_minutes(self) -> int:
        return self.slot.duration_minutes


@dataclass(frozen=True)
class FrequencyTable:
    """Weekday (Monday=0) and hour-of-day booking counts for one student."""

    weekday_counts: dict[int, int] = field(default_factory=dict)
    hour_counts: dict[int, int] = field(default_factory=dict)

    def weekday_count(self, weekday: int) -> int:
        return self.weekday_counts.get(weekday, 0)

    def hour_count(self, hour: int) -> int:
        return self.hour_counts.get(hour, 0)


@dataclass(frozen=True)
class LessonContent:
    content_id: int
    student_id: int
    title: str
    content_type: str
    difficulty_level: int
    estimated_duration: int
    description: Optional[str] = None
    notes: Optional[str] = None
    completed: bool = False
    completion_date: Optional[datetime] = None

    @property
    def difficulty_description(self) -> str:
        if self.difficulty_level <= 2:
            return "Beginner"
        if self.difficulty_level <= 4:
            return "Elementary"
        if self.difficulty_level <= 6:
            return "Intermediate"
        if self.difficulty_level <= 8:
            return "Advanced"
        return "Expert"


@dataclass(frozen=True)
class ProgressReport:
    report_id: int
    student_id: int
    report_type: str
    report_period: str
    overall_progress: float
    report_date: datetime
    technical_skills: Optional[float] = None
    theory_knowledge: Optional[float] = None
    repertoire_skills: Optional[float] = None
    practice_habits: Optional[float] = None
    strengths: Optional[str] = None
    areas_for_improvement: Optional[str] = None
    recommendations: Optional[str] = None
    next_goals: Optional[str] = None
    teacher_notes: Optional[str] = None

    @property
    def grade(self) -> str:
        thresholds = (
            (95.0, "A+"),
            (90.0, "A"),
            (85.0, "B+"),
            (80.0, "B"),
            (75.0, "C+"),
            (70.0, "C"),
            (60.0, "D"),
        )
        for minimum, letter in thresholds:
            if self.overall_progress >= minimum:
                return letter
        return "F"

    @property
    def performance_level(self) -> str:
        if self.overall_progress >= 90:
            return "Excellent"
        if self.overall_progress >= 80:
            return "Good"
        if self.overall_progress >= 70:
            return "Satisfactory"
        if self.overall_progress >= 60:
            return "Needs Improvement"
        return "Poor"

    @property
    def average_score(self) -> float:
        scores = [
            value
            for value in (
                self.technical_skills,
                self.theory_knowledge,
                self.repertoire_skills,
                self.practice_habits,
            )
            if value is not None
        ]
        if not scores:
            return 0.0
        return sum(scores) / len(scores)
