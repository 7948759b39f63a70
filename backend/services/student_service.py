"""Student registry business rules."""

from __future__ import annotations

import re
from typing import Optional

from backend.domain.models import (
    DEFAULT_PAYMENT_TERMS,
    DEFAULT_PRICED_LESSON_MINUTES,
    Pricing,
    Student,
)
from backend.repository.data_repository import DataRepository
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger, log_event


logger = get_logger(__name__)

_EMAIL_PATTERN = re.compile(r"^[A-Za-z0-9+_.-]+@(.+)$")


class StudentError(Exception):
    """Base exception for student workflow failures."""


class StudentValidationError(StudentError):
    """Raised when student fields break registry rules."""


class StudentNotFoundError(StudentError):
    """Raised when a student id does not exist in persisted state."""


class DuplicateStudentError(StudentError):
    """Raised when another student already uses the email or phone."""


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def validate_student_fields(
    name: str,
    age: int,
    grade: Optional[str],
    email: Optional[str],
    phone: Optional[str],
) -> None:
    if not name or not name.strip():
        raise StudentValidationError("Name is required")
    if not 2 <= len(name.strip()) <= 100:
        raise StudentValidationError("Name must be between 2 and 100 characters")
    if not 5 <= age <= 100:
        raise StudentValidationError("Age must be between 5 and 100")
    if grade is not None and len(grade) > 50:
        raise StudentValidationError("Grade must be at most 50 characters")
    if email is not None:
        if len(email) > 100 or _EMAIL_PATTERN.fullmatch(email) is None:
            raise StudentValidationError("Email must be valid")
    if phone is not None and len(phone) > 20:
        raise StudentValidationError("Phone must be at most 20 characters")


def validate_pricing(pricing: Pricing) -> None:
    if pricing.hourly_rate <= 0:
        raise StudentValidationError("Hourly rate must be positive")
    if pricing.lesson_duration <= 0:
        raise StudentValidationError("Lesson duration must be positive")
    if pricing.payment_terms is not None and len(pricing.payment_terms) > 100:
        raise StudentValidationError("Payment terms must be at most 100 characters")


class StudentService:
    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)

    def _ensure_unique_contact(
        self,
        email: Optional[str],
        phone: Optional[str],
        exclude_student_id: Optional[int] = None,
    ) -> None:
        if email is not None:
            existing = self._repository.find_student_by_email(email)
            if existing is not None and existing.student_id != exclude_student_id:
                raise DuplicateStudentError(f"Student with email {email} already exists")
        if phone is not None:
            existing = self._repository.find_student_by_phone(phone)
            if existing is not None and existing.student_id != exclude_student_id:
                raise DuplicateStudentError(f"Student with phone {phone} already exists")

    def create_student(
        self,
        *,
        name: str,
        age: int,
        grade: Optional[str] = None,
        email: Optional[str] = None,
        phone: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Student:
        grade, email, phone = _clean(grade), _clean(email), _clean(phone)
        validate_student_fields(name, age, grade, email, phone)
        self._ensure_unique_contact(email, phone)
        student_id = self._repository.create_student(
            name.strip(), age, grade, email, phone, notes
        )
        log_event(logger, "Student created", student_id=student_id)
        return self.get_student(student_id)

    def update_student(
        self,
        student_id: int,
        *,
        name: str,
        age: int,
        grade: Optional[str] = None,
        email: Optional[str] = None,
        phone: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Student:
        self.get_student(student_id)
        grade, email, phone = _clean(grade), _clean(email), _clean(phone)
        validate_student_fields(name, age, grade, email, phone)
        self._ensure_unique_contact(email, phone, exclude_student_id=student_id)
        self._repository.update_student(
            student_id, name.strip(), age, grade, email, phone, notes
        )
        return self.get_student(student_id)

    def delete_student(self, student_id: int) -> None:
        self.get_student(student_id)
        self._repository.delete_student(student_id)
        log_event(logger, "Student deleted with lessons and reports", student_id=student_id)

    def get_student(self, student_id: int) -> Student:
        student = self._repository.get_student(student_id)
        if student is None:
            raise StudentNotFoundError(f"Student not found with id: {student_id}")
        return student

    def list_students(self) -> list[Student]:
        return self._repository.list_students()

    def search_students(self, term: str) -> list[Student]:
        if not term.strip():
            return self.list_students()
        return self._repository.search_students_by_name(term.strip())

    def student_exists(self, student_id: int) -> bool:
        return self._repository.student_exists(student_id)

    def set_pricing(
        self,
        student_id: int,
        *,
        hourly_rate: float,
        lesson_duration: int = DEFAULT_PRICED_LESSON_MINUTES,
        payment_terms: Optional[str] = DEFAULT_PAYMENT_TERMS,
    ) -> Student:
        """Attach pricing to a student, replacing any earlier rate."""
        self.get_student(student_id)
        pricing = Pricing(
            hourly_rate=hourly_rate,
            lesson_duration=lesson_duration,
            payment_terms=_clean(payment_terms),
        )
        validate_pricing(pricing)
        self._repository.upsert_pricing(student_id, pricing)
        log_event(
            logger,
            "Pricing set",
            student_id=student_id,
            hourly_rate=pricing.hourly_rate,
            lesson_duration=pricing.lesson_duration,
        )
        return self.get_student(student_id)

    def remove_pricing(self, student_id: int) -> Student:
        self.get_student(student_id)
        self._repository.delete_pricing(student_id)
        log_event(logger, "Pricing removed", student_id=student_id)
        return self.get_student(student_id)

    def list_students_with_pricing(self) -> list[Student]:
        return self._repository.list_students_by_pricing(True)

    def list_students_without_pricing(self) -> list[Student]:
        return self._repository.list_students_by_pricing(False)

    def average_hourly_rate(self) -> Optional[float]:
        return self._repository.average_hourly_rate()

    def most_common_lesson_durations(self) -> list[tuple[int, int]]:
        return self._repository.count_pricing_by_lesson_duration()
