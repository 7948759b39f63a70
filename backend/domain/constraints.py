"""Domain-level validation rules for slot generation and scoring."""

from __future__ import annotations

from dataclasses import dataclass

from backend.utils.config import Settings


@dataclass(frozen=True)
class SchedulingRules:
    business_day_start_hour: int
    business_day_end_hour: int
    slot_step_minutes: int
    min_lesson_minutes: int
    max_lesson_minutes: int
    max_suggestions: int
    max_window_days: int
    base_confidence: float
    off_peak_penalty: float
    peak_bonus: float
    peak_start_hour: int
    peak_end_hour: int
    pattern_bonus_per_booking: float


def rules_from_settings(settings: Settings) -> SchedulingRules:
    return SchedulingRules(
        business_day_start_hour=settings.business_day_start_hour,
        business_day_end_hour=settings.business_day_end_hour,
        slot_step_minutes=settings.slot_step_minutes,
        min_lesson_minutes=settings.min_lesson_minutes,
        max_lesson_minutes=settings.max_lesson_minutes,
        max_suggestions=settings.max_suggestions,
        max_window_days=settings.max_window_days,
        base_confidence=settings.base_confidence,
        off_peak_penalty=settings.off_peak_penalty,
        peak_bonus=settings.peak_bonus,
        peak_start_hour=settings.peak_start_hour,
        peak_end_hour=settings.peak_end_hour,
        pattern_bonus_per_booking=settings.pattern_bonus_per_booking,
    )


def validate_scheduling_rules(rules: SchedulingRules) -> None:
    if not 0 <= rules.business_day_start_hour < rules.business_day_end_hour <= 24:
        raise ValueError("business day hours must satisfy 0 <= start < end <= 24")
    if rules.slot_step_minutes <= 0:
        raise ValueError("slot_step_minutes must be > 0")
    if rules.min_lesson_minutes <= 0:
        raise ValueError("min_lesson_minutes must be > 0")
    if rules.min_lesson_minutes > rules.max_lesson_minutes:
        raise ValueError("min_lesson_minutes must not exceed max_lesson_minutes")
    if rules.max_suggestions <= 0:
        raise ValueError("max_suggestions must be > 0")
    if rules.max_window_days <= 0:
        raise ValueError("max_window_days must be > 0")
    if not 0.0 <= rules.base_confidence <= 1.0:
        raise ValueError("base_confidence must be between 0 and 1")
    if rules.off_peak_penalty < 0.0 or rules.peak_bonus < 0.0:
        raise ValueError("time-of-day adjustments must be >= 0")
    if not 0 <= rules.peak_start_hour <= rules.peak_end_hour <= 23:
        raise ValueError("peak hours must satisfy 0 <= start <= end <= 23")
    if rules.pattern_bonus_per_booking < 0.0:
        raise ValueError("pattern_bonus_per_booking must be >= 0")
