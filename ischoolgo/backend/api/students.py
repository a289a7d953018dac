from fastapi import APIRouter, Depends, Query, Request, status
from typing import Optional
from uuid import UUID

from ..models.db_models import Page, Student, StudentDetail, StudentFields, StudentStatus, User
from ..services.student_service import StudentService
from .schemas.records import DeleteStudentResponse
from .auth import get_current_user
from .dependencies import get_student_service
from .utilities.limiter import limiter
from .utilities.permissions import ensure_allowed

router = APIRouter(prefix="/students", tags=["Students"])


@router.get("", response_model=Page[Student], summary="List students")
@limiter.limit("120/minute")
async def list_students(
    request: Request,
    page: int = 1,
    limit: int = 10,
    search: Optional[str] = None,
    group_id: Optional[UUID] = None,
    status_filter: Optional[StudentStatus] = Query(None, alias="status"),
    user: User = Depends(get_current_user),
    service: StudentService = Depends(get_student_service),
):
    ensure_allowed(user, "students")
    return await service.list_students(page=page, limit=limit, search=search, group_id=group_id, status=status_filter)


@router.get("/{student_id}", response_model=StudentDetail, summary="Get a student with attendance and payment totals")
@limiter.limit("120/minute")
async def get_student(
    request: Request,
    student_id: UUID,
    user: User = Depends(get_current_user),
    service: StudentService = Depends(get_student_service),
):
    ensure_allowed(user, "students")
    return await service.get_student(student_id)


@router.post("", response_model=Student, status_code=status.HTTP_201_CREATED, summary="Create a student")
@limiter.limit("30/minute")
async def create_student(
    request: Request,
    fields: StudentFields,
    user: User = Depends(get_current_user),
    service: StudentService = Depends(get_student_service),
):
    ensure_allowed(user, "students")
    return await service.create_student(fields.model_dump(exclude_unset=True))


@router.patch("/{student_id}", response_model=Student, summary="Update a student")
@limiter.limit("30/minute")
async def update_student(
    request: Request,
    student_id: UUID,
    fields: StudentFields,
    user: User = Depends(get_current_user),
    service: StudentService = Depends(get_student_service),
):
    ensure_allowed(user, "students")
    return await service.update_student(student_id, fields.model_dump(exclude_unset=True))


@router.delete("/{student_id}", response_model=DeleteStudentResponse, summary="Delete or deactivate a student")
@limiter.limit("30/minute")
async def delete_student(
    request: Request,
    student_id: UUID,
    user: User = Depends(get_current_user),
    service: StudentService = Depends(get_student_service),
):
    """Students with attendance or payment history are deactivated instead of deleted."""
    ensure_allowed(user, "students")
    return await service.delete_student(student_id)
