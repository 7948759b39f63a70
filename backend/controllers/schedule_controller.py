"""HTTP controller layer for lesson schedules and slot suggestions."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field, field_validator, model_validator

from backend.controllers.dependencies import get_booking_service, get_suggestion_service
from backend.domain.models import Booking
from backend.services.booking_service import (
    BookingNotFoundError,
    BookingService,
    BookingValidationError,
    SchedulingConflictError,
)
from backend.services.student_service import StudentNotFoundError
from backend.services.suggestion_service import (
    SchedulingSuggestionService,
    SuggestionError,
)
from backend.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(prefix="/schedules", tags=["schedules"])


class BookingRequest(BaseModel):
    """Input DTO validated before entering service layer."""

    student_id: int = Field(gt=0)
    start_time: datetime
    end_time: datetime
    location: str = Field(min_length=1, max_length=100)
    notes: Optional[str] = None

    @model_validator(mode="after")
    def validate_interval(self) -> "BookingRequest":
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class RescheduleRequest(BaseModel):
    new_start_time: datetime
    new_end_time: datetime

    @model_validator(mode="after")
    def validate_interval(self) -> "RescheduleRequest":
        if self.new_end_time <= self.new_start_time:
            raise ValueError("new_end_time must be after new_start_time")
        return self


class LocationRequest(BaseModel):
    location: str = Field(min_length=1, max_length=100)

    @field_validator("location")
    @classmethod
    def validate_location(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("location must not be blank")
        return value


class NotesRequest(BaseModel):
    notes: Optional[str] = None


class BookingResponse(BaseModel):
    id: int = Field(gt=0)
    student_id: int = Field(gt=0)
    start_time: datetime
    end_time: datetime
    location: str
    notes: Optional[str] = None
    duration_minutes: int = Field(gt=0)
    status: str


class SuggestionResponse(BaseModel):
    """Output DTO constrained to confidence bounds."""

    start_time: datetime
    end_time: datetime
    duration: int = Field(gt=0)
    confidence: float = Field(ge=0.0, le=1.0)
    reason: str
    student_name: str


class StudentCountResponse(BaseModel):
    student_id: int
    schedule_count: int = Field(ge=0)


class LocationCountResponse(BaseModel):
    location: str
    schedule_count: int = Field(ge=0)


def _to_response(booking: Booking, now: datetime) -> BookingResponse:
    return BookingResponse(
        id=booking.booking_id,
        student_id=booking.student_id,
        start_time=booking.start,
        end_time=booking.end,
        location=booking.location,
        notes=booking.notes,
        duration_minutes=booking.duration_minutes,
        status=booking.status_at(now),
    )


def _to_responses(bookings: list[Booking], service: BookingService) -> list[BookingResponse]:
    now = service.now()
    return [_to_response(booking, now) for booking in bookings]


def _to_http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, (BookingNotFoundError, StudentNotFoundError)):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, SchedulingConflictError):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"message": str(exc), "conflicting_ids": exc.conflicting_ids},
        )
    if isinstance(exc, (BookingValidationError, SuggestionError)):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    logger.exception("Unexpected schedule workflow failure")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Failed to process schedule request",
    )


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_schedule(
    payload: BookingRequest,
    service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        booking = service.create_booking(
            student_id=payload.student_id,
            start=payload.start_time,
            end=payload.end_time,
            location=payload.location,
            notes=payload.notes,
        )
        return _to_response(booking, service.now())
    except Exception as exc:
        raise _to_http_error(exc) from exc


@router.get("", response_model=list[BookingResponse])
async def list_schedules(
    service: BookingService = Depends(get_booking_service),
) -> list[BookingResponse]:
    return _to_responses(service.list_bookings(), service)


@router.get("/suggestions", response_model=list[SuggestionResponse])
async def get_scheduling_suggestions(
    student_id: int = Query(gt=0),
    start_date: datetime = Query(...),
    end_date: datetime = Query(...),
    duration: int = Query(...),
    service: SchedulingSuggestionService = Depends(get_suggestion_service),
) -> list[SuggestionResponse]:
    """Rank open lesson slots for a student by historical fit."""
    try:
        run = service.get_suggestions(student_id, start_date, end_date, duration)
    except Exception as exc:
        raise _to_http_error(exc) from exc
    return [
        SuggestionResponse(
            start_time=item.start,
            end_time=item.end,
            duration=item.duration_minutes,
            confidence=item.confidence,
            reason=item.reason,
            student_name=run.student.name,
        )
        for item in run.suggestions
    ]


@router.get("/upcoming", response_model=list[BookingResponse])
async def list_upcoming(
    service: BookingService = Depends(get_booking_service),
) -> list[BookingResponse]:
    return _to_responses(service.list_upcoming(), service)


@router.get("/ongoing", response_model=list[BookingResponse])
async def list_ongoing(
    service: BookingService = Depends(get_booking_service),
) -> list[BookingResponse]:
    return _to_responses(service.list_ongoing(), service)


@router.get("/completed", response_model=list[BookingResponse])
async def list_completed(
    service: BookingService = Depends(get_booking_service),
) -> list[BookingResponse]:
    return _to_responses(service.list_completed(), service)


@router.get("/date-range", response_model=list[BookingResponse])
async def list_by_date_range(
    start_date: datetime = Query(...),
    end_date: datetime = Query(...),
    service: BookingService = Depends(get_booking_service),
) -> list[BookingResponse]:
    try:
        return _to_responses(service.list_bookings_in_range(start_date, end_date), service)
    except Exception as exc:
        raise _to_http_error(exc) from exc


@router.get("/date", response_model=list[BookingResponse])
async def list_by_date(
    date: datetime = Query(...),
    service: BookingService = Depends(get_booking_service),
) -> list[BookingResponse]:
    return _to_responses(service.list_bookings_on_date(date), service)


@router.get("/location", response_model=list[BookingResponse])
async def search_by_location(
    location: str = Query(min_length=1),
    service: BookingService = Depends(get_booking_service),
) -> list[BookingResponse]:
    return _to_responses(service.search_by_location(location), service)


@router.get("/next-days", response_model=list[BookingResponse])
async def list_next_week(
    service: BookingService = Depends(get_booking_service),
) -> list[BookingResponse]:
    return _to_responses(service.list_next_days(), service)


@router.get("/next-days/{days}", response_model=list[BookingResponse])
async def list_next_days(
    days: int,
    service: BookingService = Depends(get_booking_service),
) -> list[BookingResponse]:
    try:
        return _to_responses(service.list_next_days(days), service)
    except Exception as exc:
        raise _to_http_error(exc) from exc


@router.get("/stats/student-counts", response_model=list[StudentCountResponse])
async def count_by_student(
    service: BookingService = Depends(get_booking_service),
) -> list[StudentCountResponse]:
    return [
        StudentCountResponse(student_id=student_id, schedule_count=count)
        for student_id, count in service.count_by_student().items()
    ]


@router.get("/stats/location-counts", response_model=list[LocationCountResponse])
async def count_by_location(
    service: BookingService = Depends(get_booking_service),
) -> list[LocationCountResponse]:
    return [
        LocationCountResponse(location=location, schedule_count=count)
        for location, count in service.count_by_location().items()
    ]


@router.get("/student/{student_id}", response_model=list[BookingResponse])
async def list_for_student(
    student_id: int,
    service: BookingService = Depends(get_booking_service),
) -> list[BookingResponse]:
    return _to_responses(service.list_bookings_for_student(student_id), service)


@router.get("/student/{student_id}/date-range", response_model=list[BookingResponse])
async def list_for_student_in_range(
    student_id: int,
    start_date: datetime = Query(...),
    end_date: datetime = Query(...),
    service: BookingService = Depends(get_booking_service),
) -> list[BookingResponse]:
    try:
        bookings = service.list_bookings_in_range(start_date, end_date, student_id)
        return _to_responses(bookings, service)
    except Exception as exc:
        raise _to_http_error(exc) from exc


@router.get("/student/{student_id}/next-days/{days}", response_model=list[BookingResponse])
async def list_for_student_next_days(
    student_id: int,
    days: int,
    service: BookingService = Depends(get_booking_service),
) -> list[BookingResponse]:
    try:
        return _to_responses(service.list_next_days(days, student_id), service)
    except Exception as exc:
        raise _to_http_error(exc) from exc


@router.get("/check-conflict/{student_id}", response_model=bool)
async def check_conflict(
    student_id: int,
    start_time: datetime = Query(...),
    end_time: datetime = Query(...),
    exclude_id: Optional[int] = Query(default=None),
    service: BookingService = Depends(get_booking_service),
) -> bool:
    try:
        return service.has_conflict(student_id, start_time, end_time, exclude_id)
    except Exception as exc:
        raise _to_http_error(exc) from exc


@router.get("/check-availability/{student_id}", response_model=bool)
async def check_availability(
    student_id: int,
    start_time: datetime = Query(...),
    end_time: datetime = Query(...),
    service: BookingService = Depends(get_booking_service),
) -> bool:
    try:
        return service.is_student_available(student_id, start_time, end_time)
    except Exception as exc:
        raise _to_http_error(exc) from exc


@router.get("/conflicts/{student_id}", response_model=list[BookingResponse])
async def find_conflicts(
    student_id: int,
    start_time: datetime = Query(...),
    end_time: datetime = Query(...),
    service: BookingService = Depends(get_booking_service),
) -> list[BookingResponse]:
    try:
        return _to_responses(service.find_conflicts(student_id, start_time, end_time), service)
    except Exception as exc:
        raise _to_http_error(exc) from exc


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_schedule(
    booking_id: int,
    service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        return _to_response(service.get_booking(booking_id), service.now())
    except Exception as exc:
        raise _to_http_error(exc) from exc


@router.put("/{booking_id}", response_model=BookingResponse)
async def update_schedule(
    booking_id: int,
    payload: BookingRequest,
    service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        booking = service.update_booking(
            booking_id,
            student_id=payload.student_id,
            start=payload.start_time,
            end=payload.end_time,
            location=payload.location,
            notes=payload.notes,
        )
        return _to_response(booking, service.now())
    except Exception as exc:
        raise _to_http_error(exc) from exc


@router.put("/{booking_id}/reschedule", response_model=BookingResponse)
async def reschedule(
    booking_id: int,
    payload: RescheduleRequest,
    service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        booking = service.reschedule_booking(
            booking_id,
            payload.new_start_time,
            payload.new_end_time,
        )
        return _to_response(booking, service.now())
    except Exception as exc:
        raise _to_http_error(exc) from exc


@router.put("/{booking_id}/location", response_model=BookingResponse)
async def change_location(
    booking_id: int,
    payload: LocationRequest,
    service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        return _to_response(service.change_location(booking_id, payload.location), service.now())
    except Exception as exc:
        raise _to_http_error(exc) from exc


@router.put("/{booking_id}/notes", response_model=BookingResponse)
async def update_notes(
    booking_id: int,
    payload: NotesRequest,
    service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        return _to_response(service.update_notes(booking_id, payload.notes), service.now())
    except Exception as exc:
        raise _to_http_error(exc) from exc


@router.delete("/{booking_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_schedule(
    booking_id: int,
    service: BookingService = Depends(get_booking_service),
) -> None:
    try:
        service.delete_booking(booking_id)
    except Exception as exc:
        raise _to_http_error(exc) from exc
