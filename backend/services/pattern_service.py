"""Booking-history frequency tables and heuristic slot confidence."""

from __future__ import annotations

from typing import Sequence

import pandas as pd

from backend.domain.constraints import SchedulingRules
from backend.domain.models import Booking, CandidateSlot, FrequencyTable, Suggestion


BASE_REASON = "Available time slot with no conflicts"
WEEKDAY_PATTERN_NOTE = " (Matches preferred day pattern)"
HOUR_PATTERN_NOTE = " (Matches preferred time pattern)"


def build_frequency_table(history: Sequence[Booking]) -> FrequencyTable:
    """Count bookings per start weekday and per start hour."""
    if not history:
        return FrequencyTable()

    frame = pd.DataFrame({"start": pd.to_datetime([booking.start for booking in history])})
    weekday_counts = frame["start"].dt.dayofweek.value_counts()
    hour_counts = frame["start"].dt.hour.value_counts()
    return FrequencyTable(
        weekday_counts={int(day): int(count) for day, count in weekday_counts.items()},
        hour_counts={int(hour): int(count) for hour, count in hour_counts.items()},
    )


def score_candidate(
    candidate: CandidateSlot,
    table: FrequencyTable,
    rules: SchedulingRules,
) -> Suggestion:
    hour = candidate.start.hour
    weekday_count = table.weekday_count(candidate.start.weekday())
    hour_count = table.hour_count(hour)

    confidence = rules.base_confidence
    if hour < rules.peak_start_hour or hour > rules.peak_end_hour:
        confidence -= rules.off_peak_penalty
    else:
        confidence += rules.peak_bonus

    # Bonuses are uncapped; only the final value is clamped.
    weekday_bonus = weekday_count * rules.pattern_bonus_per_booking
    hour_bonus = hour_count * rules.pattern_bonus_per_booking
    confidence = confidence + weekday_bonus + hour_bonus
    confidence = max(0.0, min(1.0, confidence))

    reason = BASE_REASON
    if weekday_count > 0:
        reason += WEEKDAY_PATTERN_NOTE
    if hour_count > 0:
        reason += HOUR_PATTERN_NOTE

    return Suggestion(slot=candidate, confidence=confidence, reason=reason)


def score_candidates(
    candidates: Sequence[CandidateSlot],
    history: Sequence[Booking],
    rules: SchedulingRules,
) -> list[Suggestion]:
    """Annotate candidates with confidence, preserving their order."""
    table = build_frequency_table(history)
    return [score_candidate(candidate, table, rules) for candidate in candidates]
