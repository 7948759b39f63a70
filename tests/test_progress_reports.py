from __future__ import annotations

from dataclasses import replace
from datetime import datetime

import pytest

from backend.repository.data_repository import DataRepository
from backend.services.progress_report_service import (
    ProgressReportNotFoundError,
    ProgressReportService,
    ProgressReportValidationError,
)
from backend.services.student_service import StudentNotFoundError
from backend.utils.config import get_settings


NOW = datetime(2030, 1, 31, 18, 0)


def _build_service(tmp_path):
    get_settings.cache_clear()
    settings = replace(
        get_settings(),
        database_path=tmp_path / "reports.db",
        seed_demo_data=False,
    )
    repository = DataRepository(settings)
    repository.initialize_database()
    student_id = repository.create_student("Clara Wieck", 15, None, None, None, None)
    service = ProgressReportService(repository=repository, settings=settings, clock=lambda: NOW)
    return service, student_id


def test_report_grade_level_and_average(tmp_path):
    service, student_id = _build_service(tmp_path)
    report = service.create_report(
        student_id=student_id,
        report_type="monthly",
        report_period="2030-01",
        overall_progress=92.0,
        technical_skills=90.0,
        theory_knowledge=80.0,
    )

    assert report.report_type == "MONTHLY"
    assert report.report_date == NOW
    assert report.grade == "A"
    assert report.performance_level == "Excellent"
    assert report.average_score == pytest.approx(85.0)

    summary = service.summarize(report.report_id)
    assert summary["grade"] == "A"
    assert summary["repertoire_skills"] is None


@pytest.mark.parametrize(
    ("progress", "grade", "level"),
    [(96.0, "A+", "Excellent"), (81.0, "B", "Good"), (71.0, "C", "Satisfactory"), (40.0, "F", "Poor")],
)
def test_grade_thresholds(tmp_path, progress, grade, level):
    service, student_id = _build_service(tmp_path)
    report = service.create_report(
        student_id=student_id,
        report_type="WEEKLY",
        report_period="2030-W05",
        overall_progress=progress,
    )
    assert report.grade == grade
    assert report.performance_level == level
    assert report.average_score == 0.0


@pytest.mark.parametrize(
    "overrides",
    [
        {"report_type": "DAILY"},
        {"report_period": " "},
        {"overall_progress": 101.0},
        {"practice_habits": -1.0},
    ],
)
def test_invalid_report_is_rejected(tmp_path, overrides):
    service, student_id = _build_service(tmp_path)
    fields = {
        "student_id": student_id,
        "report_type": "MONTHLY",
        "report_period": "2030-01",
        "overall_progress": 75.0,
    }
    fields.update(overrides)
    with pytest.raises(ProgressReportValidationError):
        service.create_report(**fields)


def test_list_and_delete(tmp_path):
    service, student_id = _build_service(tmp_path)
    report = service.create_report(
        student_id=student_id,
        report_type="MONTHLY",
        report_period="2030-01",
        overall_progress=75.0,
    )
    assert [r.report_id for r in service.list_for_student(student_id)] == [report.report_id]

    service.delete_report(report.report_id)
    with pytest.raises(ProgressReportNotFoundError):
        service.get_report(report.report_id)


def _create_dated(service, student_id, report_type, period, progress, report_date):
    return service.create_report(
        student_id=student_id,
        report_type=report_type,
        report_period=period,
        overall_progress=progress,
        report_date=report_date,
    )


def test_update_report_replaces_fields_and_keeps_date(tmp_path):
    service, student_id = _build_service(tmp_path)
    original = _create_dated(
        service, student_id, "MONTHLY", "2030-01", 72.0, datetime(2030, 1, 15, 10, 0)
    )

    updated = service.update_report(
        original.report_id,
        student_id=student_id,
        report_type="quarterly",
        report_period="2030-Q1",
        overall_progress=88.0,
        strengths="Clean pedalling",
    )

    assert updated.report_id == original.report_id
    assert updated.report_type == "QUARTERLY"
    assert updated.report_period == "2030-Q1"
    assert updated.grade == "B+"
    assert updated.strengths == "Clean pedalling"
    assert updated.report_date == datetime(2030, 1, 15, 10, 0)

    redated = service.update_report(
        original.report_id,
        student_id=student_id,
        report_type="QUARTERLY",
        report_period="2030-Q1",
        overall_progress=88.0,
        report_date=datetime(2030, 1, 20, 9, 0),
    )
    assert redated.report_date == datetime(2030, 1, 20, 9, 0)
    assert redated.strengths is None


def test_update_report_errors(tmp_path):
    service, student_id = _build_service(tmp_path)
    report = _create_dated(service, student_id, "MONTHLY", "2030-01", 72.0, NOW)
    fields = {
        "student_id": student_id,
        "report_type": "MONTHLY",
        "report_period": "2030-01",
        "overall_progress": 75.0,
    }

    with pytest.raises(ProgressReportNotFoundError):
        service.update_report(9999, **fields)
    with pytest.raises(ProgressReportValidationError):
        service.update_report(report.report_id, **{**fields, "report_type": "DAILY"})
    with pytest.raises(StudentNotFoundError):
        service.update_report(report.report_id, **{**fields, "student_id": 9999})
    assert service.get_report(report.report_id).overall_progress == 72.0


def test_search_reports_by_type_period_and_date_range(tmp_path):
    service, student_id = _build_service(tmp_path)
    december = _create_dated(
        service, student_id, "MONTHLY", "2029-12", 70.0, datetime(2029, 12, 31, 12, 0)
    )
    january = _create_dated(
        service, student_id, "MONTHLY", "2030-01", 80.0, datetime(2030, 1, 31, 12, 0)
    )
    quarter = _create_dated(
        service, student_id, "QUARTERLY", "2030-Q1", 90.0, datetime(2030, 1, 15, 12, 0)
    )

    assert [r.report_id for r in service.search_reports(report_type="monthly")] == [
        january.report_id,
        december.report_id,
    ]
    assert [r.report_id for r in service.search_reports(report_period="2030-Q1")] == [
        quarter.report_id
    ]
    # Both bounds are inclusive.
    in_january = service.search_reports(
        start=datetime(2030, 1, 15, 12, 0), end=datetime(2030, 1, 31, 12, 0)
    )
    assert [r.report_id for r in in_january] == [january.report_id, quarter.report_id]
    assert [
        r.report_id
        for r in service.search_reports(student_id=student_id, min_progress=75.0, max_progress=85.0)
    ] == [january.report_id]
    assert service.search_reports(student_id=9999) == []


@pytest.mark.parametrize(
    "filters",
    [
        {"report_type": "DAILY"},
        {"start": datetime(2030, 2, 1), "end": datetime(2030, 1, 1)},
        {"min_progress": 80.0, "max_progress": 20.0},
    ],
)
def test_search_reports_rejects_invalid_filters(tmp_path, filters):
    service, _ = _build_service(tmp_path)
    with pytest.raises(ProgressReportValidationError):
        service.search_reports(**filters)
