"""Environment-driven application settings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


PROJECT_ROOT = Path(__file__).resolve().parents[2]


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return float(raw)


@dataclass(frozen=True)
class Settings:
    app_name: str
    app_version: str
    log_level: str
    log_file: Optional[Path]
    database_path: Path
    seed_demo_data: bool

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

    upcoming_window_days: int


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Read settings once per process; tests clear the cache to re-read."""
    load_dotenv()
    return Settings(
        app_name=os.getenv("APP_NAME", "Piano Lesson Scheduler"),
        app_version=os.getenv("APP_VERSION", "1.0.0"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        log_file=Path(os.getenv("LOG_FILE")) if os.getenv("LOG_FILE") else None,
        database_path=Path(
            os.getenv("DATABASE_PATH", str(PROJECT_ROOT / "data" / "piano_scheduler.db"))
        ),
        seed_demo_data=os.getenv("SEED_DEMO_DATA", "true").lower() in {"1", "true", "yes"},
        business_day_start_hour=_env_int("BUSINESS_DAY_START_HOUR", 8),
        business_day_end_hour=_env_int("BUSINESS_DAY_END_HOUR", 20),
        slot_step_minutes=_env_int("SLOT_STEP_MINUTES", 60),
        min_lesson_minutes=_env_int("MIN_LESSON_MINUTES", 30),
        max_lesson_minutes=_env_int("MAX_LESSON_MINUTES", 240),
        max_suggestions=_env_int("MAX_SUGGESTIONS", 20),
        max_window_days=_env_int("MAX_WINDOW_DAYS", 366),
        base_confidence=_env_float("BASE_CONFIDENCE", 0.5),
        off_peak_penalty=_env_float("OFF_PEAK_PENALTY", 0.2),
        peak_bonus=_env_float("PEAK_BONUS", 0.1),
        peak_start_hour=_env_int("PEAK_START_HOUR", 10),
        peak_end_hour=_env_int("PEAK_END_HOUR", 18),
        pattern_bonus_per_booking=_env_float("PATTERN_BONUS_PER_BOOKING", 0.1),
        upcoming_window_days=_env_int("UPCOMING_WINDOW_DAYS", 7),
    )
