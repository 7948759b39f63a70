"""HTTP controller layer for per-student lesson content."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from backend.controllers.dependencies import get_lesson_content_service
from backend.domain.models import LessonContent
from backend.services.lesson_content_service import (
    LessonContentNotFoundError,
    LessonContentService,
    LessonContentValidationError,
)
from backend.services.student_service import StudentNotFoundError
from backend.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(prefix="/lesson-content", tags=["lesson-content"])


class LessonContentRequest(BaseModel):
    student_id: int = Field(gt=0)
    title: str = Field(min_length=1, max_length=200)
    content_type: str = Field(min_length=1)
    difficulty_level: int = Field(ge=1, le=10)
    estimated_duration: int = Field(ge=1)
    description: Optional[str] = Field(default=None, max_length=1000)
    notes: Optional[str] = None


class LessonContentResponse(BaseModel):
    id: int = Field(gt=0)
    student_id: int
    title: str
    content_type: str
    difficulty_level: int
    difficulty_description: str
    estimated_duration: int
    description: Optional[str] = None
    notes: Optional[str] = None
    completed: bool
    completion_date: Optional[datetime] = None


class CompletionStatsResponse(BaseModel):
    student_id: Optional[int] = None
    total: int = Field(ge=0)
    completed: int = Field(ge=0)
    incomplete: int = Field(ge=0)
    completion_rate: float = Field(ge=0.0, le=1.0)


def _to_response(content: LessonContent) -> LessonContentResponse:
    return LessonContentResponse(
        id=content.content_id,
        student_id=content.student_id,
        title=content.title,
        content_type=content.content_type,
        difficulty_level=content.difficulty_level,
        difficulty_description=content.difficulty_description,
        estimated_duration=content.estimated_duration,
        description=content.description,
        notes=content.notes,
        completed=content.completed,
        completion_date=content.completion_date,
    )


def _to_http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, (LessonContentNotFoundError, StudentNotFoundError)):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, LessonContentValidationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    logger.exception("Unexpected lesson content workflow failure")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Failed to process lesson content request",
    )


@router.post("", response_model=LessonContentResponse, status_code=status.HTTP_201_CREATED)
async def create_content(
    payload: LessonContentRequest,
    service: LessonContentService = Depends(get_lesson_content_service),
) -> LessonContentResponse:
    try:
        return _to_response(service.create_content(**payload.model_dump()))
    except Exception as exc:
        raise _to_http_error(exc) from exc


@router.get("", response_model=list[LessonContentResponse])
async def find_content(
    student_id: Optional[int] = Query(default=None),
    content_type: Optional[str] = Query(default=None),
    difficulty_level: Optional[int] = Query(default=None),
    completed: Optional[bool] = Query(default=None),
    q: Optional[str] = Query(default=None),
    service: LessonContentService = Depends(get_lesson_content_service),
) -> list[LessonContentResponse]:
    try:
        items = service.find_content(
            student_id=student_id,
            content_type=content_type,
            difficulty_level=difficulty_level,
            completed=completed,
            search=q,
        )
    except Exception as exc:
        raise _to_http_error(exc) from exc
    return [_to_response(item) for item in items]


@router.get("/stats", response_model=CompletionStatsResponse)
async def overall_completion_stats(
    service: LessonContentService = Depends(get_lesson_content_service),
) -> CompletionStatsResponse:
    return CompletionStatsResponse(**service.completion_stats())


@router.get("/student/{student_id}", response_model=list[LessonContentResponse])
async def list_for_student(
    student_id: int,
    completed: Optional[bool] = Query(default=None),
    service: LessonContentService = Depends(get_lesson_content_service),
) -> list[LessonContentResponse]:
    return [_to_response(item) for item in service.list_for_student(student_id, completed)]


@router.get("/student/{student_id}/stats", response_model=CompletionStatsResponse)
async def completion_stats(
    student_id: int,
    service: LessonContentService = Depends(get_lesson_content_service),
) -> CompletionStatsResponse:
    return CompletionStatsResponse(**service.completion_stats(student_id))


@router.get("/{content_id}", response_model=LessonContentResponse)
async def get_content(
    content_id: int,
    service: LessonContentService = Depends(get_lesson_content_service),
) -> LessonContentResponse:
    try:
        return _to_response(service.get_content(content_id))
    except Exception as exc:
        raise _to_http_error(exc) from exc


@router.put("/{content_id}", response_model=LessonContentResponse)
async def update_content(
    content_id: int,
    payload: LessonContentRequest,
    service: LessonContentService = Depends(get_lesson_content_service),
) -> LessonContentResponse:
    fields = payload.model_dump(exclude={"student_id"})
    try:
        return _to_response(service.update_content(content_id, **fields))
    except Exception as exc:
        raise _to_http_error(exc) from exc


@router.put("/{content_id}/complete", response_model=LessonContentResponse)
async def mark_completed(
    content_id: int,
    service: LessonContentService = Depends(get_lesson_content_service),
) -> LessonContentResponse:
    try:
        return _to_response(service.mark_completed(content_id))
    except Exception as exc:
        raise _to_http_error(exc) from exc


@router.put("/{content_id}/incomplete", response_model=LessonContentResponse)
async def mark_incomplete(
    content_id: int,
    service: LessonContentService = Depends(get_lesson_content_service),
) -> LessonContentResponse:
    try:
        return _to_response(service.mark_incomplete(content_id))
    except Exception as exc:
        raise _to_http_error(exc) from exc


@router.delete("/{content_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_content(
    content_id: int,
    service: LessonContentService = Depends(get_lesson_content_service),
) -> None:
    try:
        service.delete_content(content_id)
    except Exception as exc:
        raise _to_http_error(exc) from exc
