"""Periodic student progress reports."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Optional

from backend.domain.intervals import as_local_naive
from backend.domain.models import REPORT_TYPES, ProgressReport
from backend.repository.data_repository import DataRepository
from backend.services.student_service import StudentNotFoundError
from backend.utils.config import Settings, get_settings


class ProgressReportError(Exception):
    """Base exception for progress report failures."""


class ProgressReportValidationError(ProgressReportError):
    """Raised when report fields are out of range."""


class ProgressReportNotFoundError(ProgressReportError):
    """Raised when a report id does not exist."""


_SKILL_FIELDS = (
    ("technical_skills", "Technical skills"),
    ("theory_knowledge", "Theory knowledge"),
    ("repertoire_skills", "Repertoire skills"),
    ("practice_habits", "Practice habits"),
)


def validate_progress_report(report: ProgressReport) -> None:
    if report.report_type not in REPORT_TYPES:
        raise ProgressReportValidationError(
            f"Invalid report type. Must be one of: {', '.join(REPORT_TYPES)}"
        )
    if not report.report_period or not report.report_period.strip():
        raise ProgressReportValidationError("Report period is required")
    if len(report.report_period) > 20:
        raise ProgressReportValidationError("Report period must be at most 20 characters")
    if not 0.0 <= report.overall_progress <= 100.0:
        raise ProgressReportValidationError("Overall progress must be between 0 and 100")
    for attribute, label in _SKILL_FIELDS:
        value = getattr(report, attribute)
        if value is not None and not 0.0 <= value <= 100.0:
            raise ProgressReportValidationError(f"{label} must be between 0 and 100")


class ProgressReportService:
    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)
        self._clock = clock

    def create_report(
        self,
        *,
        student_id: int,
        report_type: str,
        report_period: str,
        overall_progress: float,
        report_date: Optional[datetime] = None,
        **details: Any,
    ) -> ProgressReport:
        report = ProgressReport(
            report_id=0,
            student_id=student_id,
            report_type=report_type.strip().upper(),
            report_period=report_period,
            overall_progress=overall_progress,
            report_date=as_local_naive(report_date) if report_date else self._clock(),
            **details,
        )
        validate_progress_report(report)
        if not self._repository.student_exists(student_id):
            raise StudentNotFoundError(f"Student not found with id: {student_id}")
        report_id = self._repository.create_progress_report(report)
        return self.get_report(report_id)

    def update_report(
        self,
        report_id: int,
        *,
        student_id: int,
        report_type: str,
        report_period: str,
        overall_progress: float,
        report_date: Optional[datetime] = None,
        **details: Any,
    ) -> ProgressReport:
        """Replace a report's fields; an omitted date keeps the stored one."""
        existing = self.get_report(report_id)
        report = ProgressReport(
            report_id=report_id,
            student_id=student_id,
            report_type=report_type.strip().upper(),
            report_period=report_period,
            overall_progress=overall_progress,
            report_date=as_local_naive(report_date) if report_date else existing.report_date,
            **details,
        )
        validate_progress_report(report)
        if not self._repository.student_exists(student_id):
            raise StudentNotFoundError(f"Student not found with id: {student_id}")
        self._repository.update_progress_report(report)
        return self.get_report(report_id)

    def get_report(self, report_id: int) -> ProgressReport:
        report = self._repository.get_progress_report(report_id)
        if report is None:
            raise ProgressReportNotFoundError(f"Progress report not found with id: {report_id}")
        return report

    def list_for_student(self, student_id: int) -> list[ProgressReport]:
        return self._repository.find_progress_reports(student_id)

    def search_reports(
        self,
        *,
        student_id: Optional[int] = None,
        report_type: Optional[str] = None,
        report_period: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        min_progress: Optional[float] = None,
        max_progress: Optional[float] = None,
    ) -> list[ProgressReport]:
        if report_type is not None:
            report_type = report_type.strip().upper()
            if report_type not in REPORT_TYPES:
                raise ProgressReportValidationError(
                    f"Invalid report type. Must be one of: {', '.join(REPORT_TYPES)}"
                )
        start = as_local_naive(start) if start is not None else None
        end = as_local_naive(end) if end is not None else None
        if start is not None and end is not None and end < start:
            raise ProgressReportValidationError("Start date must be before end date")
        if min_progress is not None and max_progress is not None and max_progress < min_progress:
            raise ProgressReportValidationError("Minimum progress must not exceed maximum progress")
        return self._repository.find_progress_reports(
            student_id,
            report_type=report_type,
            report_period=report_period,
            start=start,
            end=end,
            min_progress=min_progress,
            max_progress=max_progress,
        )

    def delete_report(self, report_id: int) -> None:
        self.get_report(report_id)
        self._repository.delete_progress_report(report_id)

    def summarize(self, report_id: int) -> dict[str, Any]:
        report = self.get_report(report_id)
        return {
            "overall_progress": report.overall_progress,
            "grade": report.grade,
            "performance_level": report.performance_level,
            "technical_skills": report.technical_skills,
            "theory_knowledge": report.theory_knowledge,
            "repertoire_skills": report.repertoire_skills,
            "practice_habits": report.practice_habits,
            "average_score": report.average_score,
            "report_date": report.report_date,
        }
