"""HTTP controller layer for the student registry."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from backend.controllers.dependencies import get_student_service
from backend.domain.models import DEFAULT_PAYMENT_TERMS, DEFAULT_PRICED_LESSON_MINUTES, Student
from backend.services.student_service import (
    DuplicateStudentError,
    StudentNotFoundError,
    StudentService,
    StudentValidationError,
)
from backend.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(prefix="/students", tags=["students"])


class StudentRequest(BaseModel):
    name: str = Field(min_length=2, max_length=100)
    age: int = Field(ge=5, le=100)
    grade: Optional[str] = Field(default=None, max_length=50)
    email: Optional[str] = Field(default=None, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=20)
    notes: Optional[str] = None


class PricingRequest(BaseModel):
    hourly_rate: float = Field(gt=0)
    lesson_duration: int = Field(default=DEFAULT_PRICED_LESSON_MINUTES, gt=0)
    payment_terms: Optional[str] = Field(default=DEFAULT_PAYMENT_TERMS, max_length=100)


class PricingResponse(BaseModel):
    hourly_rate: float
    lesson_duration: int
    payment_terms: Optional[str] = None
    lesson_cost: float


class StudentResponse(BaseModel):
    id: int = Field(gt=0)
    name: str
    age: int
    grade: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    notes: Optional[str] = None
    pricing: Optional[PricingResponse] = None
    has_valid_pricing: bool = False


class LessonDurationCount(BaseModel):
    lesson_duration: int
    student_count: int = Field(ge=0)


class PricingStatsResponse(BaseModel):
    average_hourly_rate: Optional[float] = None
    lesson_durations: list[LessonDurationCount]


def _to_response(student: Student) -> StudentResponse:
    pricing = None
    if student.pricing is not None:
        pricing = PricingResponse(
            hourly_rate=student.pricing.hourly_rate,
            lesson_duration=student.pricing.lesson_duration,
            payment_terms=student.pricing.payment_terms,
            lesson_cost=student.pricing.lesson_cost,
        )
    return StudentResponse(
        id=student.student_id,
        name=student.name,
        age=student.age,
        grade=student.grade,
        email=student.email,
        phone=student.phone,
        notes=student.notes,
        pricing=pricing,
        has_valid_pricing=student.has_valid_pricing,
    )


def _to_http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, StudentNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, DuplicateStudentError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, StudentValidationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    logger.exception("Unexpected student workflow failure")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Failed to process student request",
    )


@router.post("", response_model=StudentResponse, status_code=status.HTTP_201_CREATED)
async def create_student(
    payload: StudentRequest,
    service: StudentService = Depends(get_student_service),
) -> StudentResponse:
    try:
        return _to_response(service.create_student(**payload.model_dump()))
    except Exception as exc:
        raise _to_http_error(exc) from exc


@router.get("", response_model=list[StudentResponse])
async def list_students(
    service: StudentService = Depends(get_student_service),
) -> list[StudentResponse]:
    return [_to_response(student) for student in service.list_students()]


@router.get("/search", response_model=list[StudentResponse])
async def search_students(
    q: str = Query(default=""),
    service: StudentService = Depends(get_student_service),
) -> list[StudentResponse]:
    return [_to_response(student) for student in service.search_students(q)]


@router.get("/exists/{student_id}", response_model=bool)
async def student_exists(
    student_id: int,
    service: StudentService = Depends(get_student_service),
) -> bool:
    return service.student_exists(student_id)


@router.get("/with-pricing", response_model=list[StudentResponse])
async def list_students_with_pricing(
    service: StudentService = Depends(get_student_service),
) -> list[StudentResponse]:
    return [_to_response(student) for student in service.list_students_with_pricing()]


@router.get("/without-pricing", response_model=list[StudentResponse])
async def list_students_without_pricing(
    service: StudentService = Depends(get_student_service),
) -> list[StudentResponse]:
    return [_to_response(student) for student in service.list_students_without_pricing()]


@router.get("/pricing/stats", response_model=PricingStatsResponse)
async def pricing_stats(
    service: StudentService = Depends(get_student_service),
) -> PricingStatsResponse:
    return PricingStatsResponse(
        average_hourly_rate=service.average_hourly_rate(),
        lesson_durations=[
            LessonDurationCount(lesson_duration=duration, student_count=count)
            for duration, count in service.most_common_lesson_durations()
        ],
    )


@router.get("/{student_id}", response_model=StudentResponse)
async def get_student(
    student_id: int,
    service: StudentService = Depends(get_student_service),
) -> StudentResponse:
    try:
        return _to_response(service.get_student(student_id))
    except Exception as exc:
        raise _to_http_error(exc) from exc


@router.put("/{student_id}", response_model=StudentResponse)
async def update_student(
    student_id: int,
    payload: StudentRequest,
    service: StudentService = Depends(get_student_service),
) -> StudentResponse:
    try:
        return _to_response(service.update_student(student_id, **payload.model_dump()))
    except Exception as exc:
        raise _to_http_error(exc) from exc


@router.delete("/{student_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_student(
    student_id: int,
    service: StudentService = Depends(get_student_service),
) -> None:
    try:
        service.delete_student(student_id)
    except Exception as exc:
        raise _to_http_error(exc) from exc


@router.put("/{student_id}/pricing", response_model=StudentResponse)
async def set_pricing(
    student_id: int,
    payload: PricingRequest,
    service: StudentService = Depends(get_student_service),
) -> StudentResponse:
    try:
        return _to_response(service.set_pricing(student_id, **payload.model_dump()))
    except Exception as exc:
        raise _to_http_error(exc) from exc


@router.delete("/{student_id}/pricing", response_model=StudentResponse)
async def remove_pricing(
    student_id: int,
    service: StudentService = Depends(get_student_service),
) -> StudentResponse:
    try:
        return _to_response(service.remove_pricing(student_id))
    except Exception as exc:
        raise _to_http_error(exc) from exc
