"""HTTP controller layer for student progress reports."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from backend.controllers.dependencies import get_progress_report_service
from backend.domain.models import ProgressReport
from backend.services.progress_report_service import (
    ProgressReportNotFoundError,
    ProgressReportService,
    ProgressReportValidationError,
)
from backend.services.student_service import StudentNotFoundError
from backend.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(prefix="/progress-reports", tags=["progress-reports"])

class ProgressReportRequest(BaseModel):
    student_id: int = Field(gt=0)
    report_type: str = Field(min_length=1)
    report_period: str = Field(min_length=1, max_length=20)
    overall_progress: float = Field(ge=0.0, le=100.0)
    report_date: Optional[datetime] = None
    technical_skills: Optional[float] = Field(default=None, ge=0.0, le=100.0)
    theory_knowledge: Optional[float] = Field(default=None, ge=0.0, le=100.0)
    repertoire_skills: Optional[float] = Field(default=None, ge=0.0, le=100.0)
    practice_habits: Optional[float] = Field(default=None, ge=0.0, le=100.0)
    strengths: Optional[str] = None
    areas_for_improvement: Optional[str] = None
    recommendations: Optional[str] = None
    next_goals: Optional[str] = None
    teacher_notes: Optional[str] = None


class ProgressReportResponse(ProgressReportRequest):
    id: int = Field(gt=0)
    report_date: datetime
    grade: str
    performance_level: str
    average_score: float


def _to_response(report: ProgressReport) -> ProgressReportResponse:
    return ProgressReportResponse(
        id=report.report_id,
        student_id=report.student_id,
        report_type=report.report_type,
        report_period=report.report_period,
        overall_progress=report.overall_progress,
        report_date=report.report_date,
        technical_skills=report.technical_skills,
        theory_knowledge=report.theory_knowledge,
        repertoire_skills=report.repertoire_skills,
        practice_habits=report.practice_habits,
        strengths=report.strengths,
        areas_for_improvement=report.areas_for_improvement,
        recommendations=report.recommendations,
        next_goals=report.next_goals,
        teacher_notes=report.teacher_notes,
        grade=report.grade,
        performance_level=report.performance_level,
        average_score=report.average_score,
    )


def _to_http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, (ProgressReportNotFoundError, StudentNotFoundError)):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, ProgressReportValidationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    logger.exception("Unexpected progress report workflow failure")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Failed to process progress report request",
    )


@router.post("", response_model=ProgressReportResponse, status_code=status.HTTP_201_CREATED)
async def create_report(
    payload: ProgressReportRequest,
    service: ProgressReportService = Depends(get_progress_report_service),
) -> ProgressReportResponse:
    try:
        return _to_response(service.create_report(**payload.model_dump()))
    except Exception as exc:
        raise _to_http_error(exc) from exc


@router.get("", response_model=list[ProgressReportResponse])
async def search_reports(
    student_id: Optional[int] = Query(default=None),
    report_type: Optional[str] = Query(default=None),
    report_period: Optional[str] = Query(default=None),
    start_date: Optional[datetime] = Query(default=None),
    end_date: Optional[datetime] = Query(default=None),
    min_progress: Optional[float] = Query(default=None, ge=0.0, le=100.0),
    max_progress: Optional[float] = Query(default=None, ge=0.0, le=100.0),
    service: ProgressReportService = Depends(get_progress_report_service),
) -> list[ProgressReportResponse]:
    try:
        reports = service.search_reports(
            student_id=student_id,
            report_type=report_type,
            report_period=report_period,
            start=start_date,
            end=end_date,
            min_progress=min_progress,
            max_progress=max_progress,
        )
    except Exception as exc:
        raise _to_http_error(exc) from exc
    return [_to_response(report) for report in reports]


@router.get("/student/{student_id}", response_model=list[ProgressReportResponse])
async def list_for_student(
    student_id: int,
    service: ProgressReportService = Depends(get_progress_report_service),
) -> list[ProgressReportResponse]:
    return [_to_response(report) for report in service.list_for_student(student_id)]


@router.get("/{report_id}", response_model=ProgressReportResponse)
async def get_report(
    report_id: int,
    service: ProgressReportService = Depends(get_progress_report_service),
) -> ProgressReportResponse:
    try:
        return _to_response(service.get_report(report_id))
    except Exception as exc:
        raise _to_http_error(exc) from exc


@router.put("/{report_id}", response_model=ProgressReportResponse)
async def update_report(
    report_id: int,
    payload: ProgressReportRequest,
    service: ProgressReportService = Depends(get_progress_report_service),
) -> ProgressReportResponse:
    try:
        return _to_response(service.update_report(report_id, **payload.model_dump()))
    except Exception as exc:
        raise _to_http_error(exc) from exc


@router.get("/{report_id}/summary")
async def summarize_report(
    report_id: int,
    service: ProgressReportService = Depends(get_progress_report_service),
) -> dict:
    try:
        return service.summarize(report_id)
    except Exception as exc:
        raise _to_http_error(exc) from exc


@router.delete("/{report_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_report(
    report_id: int,
    service: ProgressReportService = Depends(get_progress_report_service),
) -> None:
    try:
        service.delete_report(report_id)
    except Exception as exc:
        raise _to_http_error(exc) from exc
