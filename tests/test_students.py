from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta

import pytest

from backend.domain.models import Pricing
from backend.repository.data_repository import DataRepository
from backend.services.student_service import (
    DuplicateStudentError,
    StudentNotFoundError,
    StudentService,
    StudentValidationError,
)
from backend.utils.config import get_settings


def _build_service(tmp_path):
    get_settings.cache_clear()
    settings = replace(
        get_settings(),
        database_path=tmp_path / "students.db",
        seed_demo_data=False,
    )
    repository = DataRepository(settings)
    repository.initialize_database()
    return StudentService(repository=repository, settings=settings), repository


def test_create_update_and_search(tmp_path):
    service, _ = _build_service(tmp_path)
    clara = service.create_student(name="  Clara Wieck ", age=15, email="clara@example.com")
    service.create_student(name="Robert Schumann", age=40, phone="555-0100")

    assert clara.name == "Clara Wieck"
    assert [s.name for s in service.search_students("wieck")] == ["Clara Wieck"]
    assert len(service.search_students("  ")) == 2

    updated = service.update_student(
        clara.student_id,
        name="Clara Schumann",
        age=16,
        grade="Grade 6",
        email="clara@example.com",
    )
    assert updated.name == "Clara Schumann"
    assert updated.grade == "Grade 6"


def test_duplicate_email_or_phone_is_rejected(tmp_path):
    service, _ = _build_service(tmp_path)
    service.create_student(name="Clara Wieck", age=15, email="clara@example.com", phone="555-0100")

    with pytest.raises(DuplicateStudentError):
        service.create_student(name="Imposter", age=20, email="CLARA@example.com")
    with pytest.raises(DuplicateStudentError):
        service.create_student(name="Imposter", age=20, phone="555-0100")


@pytest.mark.parametrize(
    "fields",
    [
        {"name": "A", "age": 10},
        {"name": "Clara", "age": 4},
        {"name": "Clara", "age": 101},
        {"name": "Clara", "age": 10, "email": "not-an-email"},
        {"name": "Clara", "age": 10, "phone": "0" * 21},
    ],
)
def test_invalid_fields_are_rejected(tmp_path, fields):
    service, _ = _build_service(tmp_path)
    with pytest.raises(StudentValidationError):
        service.create_student(**fields)


def test_delete_removes_student_and_their_lessons(tmp_path):
    service, repository = _build_service(tmp_path)
    student = service.create_student(name="Clara Wieck", age=15)
    start = datetime(2030, 1, 1, 16, 0)
    repository.insert_booking(student.student_id, start, start + timedelta(hours=1), "Studio", None)

    service.delete_student(student.student_id)

    assert not service.student_exists(student.student_id)
    assert repository.list_bookings() == []
    with pytest.raises(StudentNotFoundError):
        service.get_student(student.student_id)


def test_demo_seed_runs_once(tmp_path):
    _, repository = _build_service(tmp_path)
    assert repository.seed_demo_data() == 8
    assert repository.seed_demo_data() == 0
    assert len(repository.list_students()) == 2


def test_pricing_lesson_cost_scales_hourly_rate():
    assert Pricing(hourly_rate=60.0).lesson_cost == 60.0
    assert Pricing(hourly_rate=50.0, lesson_duration=45).lesson_cost == 37.5
    assert Pricing(hourly_rate=55.0, lesson_duration=40).lesson_cost == 36.67


def test_set_replace_and_remove_pricing(tmp_path):
    service, _ = _build_service(tmp_path)
    student = service.create_student(name="Clara Wieck", age=15)
    assert student.pricing is None
    assert not student.has_valid_pricing

    priced = service.set_pricing(student.student_id, hourly_rate=50.0, lesson_duration=45)
    assert priced.pricing == Pricing(hourly_rate=50.0, lesson_duration=45, payment_terms="Per lesson")
    assert priced.has_valid_pricing

    replaced = service.set_pricing(
        student.student_id, hourly_rate=80.0, payment_terms="  Monthly  "
    )
    assert replaced.pricing == Pricing(hourly_rate=80.0, lesson_duration=60, payment_terms="Monthly")

    cleared = service.remove_pricing(student.student_id)
    assert cleared.pricing is None
    assert not cleared.has_valid_pricing


@pytest.mark.parametrize(
    "pricing",
    [
        {"hourly_rate": 0.0},
        {"hourly_rate": -10.0},
        {"hourly_rate": 40.0, "lesson_duration": 0},
        {"hourly_rate": 40.0, "payment_terms": "x" * 101},
    ],
)
def test_invalid_pricing_is_rejected(tmp_path, pricing):
    service, _ = _build_service(tmp_path)
    student = service.create_student(name="Clara Wieck", age=15)
    with pytest.raises(StudentValidationError):
        service.set_pricing(student.student_id, **pricing)
    assert service.get_student(student.student_id).pricing is None


def test_pricing_for_unknown_student_is_rejected(tmp_path):
    service, _ = _build_service(tmp_path)
    with pytest.raises(StudentNotFoundError):
        service.set_pricing(9999, hourly_rate=40.0)
    with pytest.raises(StudentNotFoundError):
        service.remove_pricing(9999)


def test_pricing_lists_and_statistics(tmp_path):
    service, _ = _build_service(tmp_path)
    assert service.average_hourly_rate() is None
    assert service.most_common_lesson_durations() == []

    clara = service.create_student(name="Clara Wieck", age=15)
    robert = service.create_student(name="Robert Schumann", age=40)
    johannes = service.create_student(name="Johannes Brahms", age=20)
    fanny = service.create_student(name="Fanny Mendelssohn", age=18)
    service.set_pricing(clara.student_id, hourly_rate=40.0, lesson_duration=30)
    service.set_pricing(robert.student_id, hourly_rate=60.0, lesson_duration=60)
    service.set_pricing(johannes.student_id, hourly_rate=80.0, lesson_duration=30)

    assert [s.name for s in service.list_students_with_pricing()] == [
        "Clara Wieck",
        "Johannes Brahms",
        "Robert Schumann",
    ]
    assert [s.student_id for s in service.list_students_without_pricing()] == [fanny.student_id]
    assert service.average_hourly_rate() == pytest.approx(60.0)
    assert service.most_common_lesson_durations() == [(30, 2), (60, 1)]


def test_deleting_student_removes_pricing(tmp_path):
    service, _ = _build_service(tmp_path)
    student = service.create_student(name="Clara Wieck", age=15)
    service.set_pricing(student.student_id, hourly_rate=40.0)

    service.delete_student(student.student_id)

    assert service.average_hourly_rate() is None
    assert service.list_students_with_pricing() == []
