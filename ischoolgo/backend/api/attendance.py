from fastapi import APIRouter, Depends, Request
from datetime import date
from typing import List, Optional
from uuid import UUID

from ..models.db_models import AttendanceRecord, RosterEntry, User
from ..services.attendance_service import AttendanceService
from .schemas.records import AttendanceRecordRequest, AttendanceStatsResponse
from .auth import get_current_user
from .dependencies import get_attendance_service
from .utilities.limiter import limiter
from .utilities.permissions import ensure_allowed

router = APIRouter(prefix="/attendance", tags=["Attendance"])


@router.post("", response_model=AttendanceRecord, summary="Record or overwrite a student's attendance for a day")
@limiter.limit("300/minute")
async def record_attendance(
    request: Request,
    record_request: AttendanceRecordRequest,
    user: User = Depends(get_current_user),
    service: AttendanceService = Depends(get_attendance_service),
):
    ensure_allowed(user, "attendance")
    return await service.record_attendance(
        student_id=record_request.student_id,
        group_id=record_request.group_id,
        attendance_date=record_request.date,
        status=record_request.status,
        notes=record_request.notes,
        recorded_by=user.id,
    )


@router.get("/groups/{group_id}", response_model=List[RosterEntry], summary="A group's roster for one date")
@limiter.limit("120/minute")
async def get_group_attendance(
    request: Request,
    group_id: UUID,
    date: date,
    user: User = Depends(get_current_user),
    service: AttendanceService = Depends(get_attendance_service),
):
    ensure_allowed(user, "attendance")
    return await service.get_by_group_and_date(group_id, date)


@router.get("/students/{student_id}", response_model=List[AttendanceRecord], summary="A student's attendance history")
@limiter.limit("120/minute")
async def get_student_attendance(
    request: Request,
    student_id: UUID,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    limit: Optional[int] = None,
    user: User = Depends(get_current_user),
    service: AttendanceService = Depends(get_attendance_service),
):
    ensure_allowed(user, "attendance")
    return await service.get_student_history(student_id, start_date=start_date, end_date=end_date, limit=limit)


@router.get("/stats", response_model=AttendanceStatsResponse, summary="Attendance counts and rate")
@limiter.limit("60/minute")
async def get_attendance_stats(
    request: Request,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    group_id: Optional[UUID] = None,
    user: User = Depends(get_current_user),
    service: AttendanceService = Depends(get_attendance_service),
):
    ensure_allowed(user, "attendance")
    return await service.get_stats(start_date=start_date, end_date=end_date, group_id=group_id)
