from fastapi import APIRouter, Depends, Query, Request, status
from typing import List, Optional
from uuid import UUID

from ..models.db_models import Group, GroupFields, GroupStatus, Page, Student, User
from ..services.group_service import GroupService
from .auth import get_current_user
from .dependencies import get_group_service
from .utilities.limiter import limiter
from .utilities.permissions import ensure_allowed

router = APIRouter(prefix="/groups", tags=["Groups"])


@router.get("", response_model=Page[Group], summary="List groups")
@limiter.limit("120/minute")
async def list_groups(
    request: Request,
    page: int = 1,
    limit: int = 10,
    search: Optional[str] = None,
    teacher_id: Optional[UUID] = None,
    status_filter: Optional[GroupStatus] = Query(None, alias="status"),
    user: User = Depends(get_current_user),
    service: GroupService = Depends(get_group_service),
):
    ensure_allowed(user, "groups")
    return await service.list_groups(page=page, limit=limit, search=search, status=status_filter, teacher_id=teacher_id)


@router.get("/{group_id}", response_model=Group, summary="Get a group with its 30-day attendance rate")
@limiter.limit("120/minute")
async def get_group(
    request: Request,
    group_id: UUID,
    user: User = Depends(get_current_user),
    service: GroupService = Depends(get_group_service),
):
    ensure_allowed(user, "groups")
    return await service.get_group(group_id)


@router.get("/{group_id}/students", response_model=List[Student], summary="Active students of a group")
@limiter.limit("120/minute")
async def get_group_students(
    request: Request,
    group_id: UUID,
    user: User = Depends(get_current_user),
    service: GroupService = Depends(get_group_service),
):
    ensure_allowed(user, "groups")
    return await service.get_students(group_id)


@router.post("", response_model=Group, status_code=status.HTTP_201_CREATED, summary="Create a group")
@limiter.limit("30/minute")
async def create_group(
    request: Request,
    fields: GroupFields,
    user: User = Depends(get_current_user),
    service: GroupService = Depends(get_group_service),
):
    ensure_allowed(user, "groups")
    return await service.create_group(fields.model_dump(exclude_unset=True))


@router.patch("/{group_id}", response_model=Group, summary="Update a group")
@limiter.limit("30/minute")
async def update_group(
    request: Request,
    group_id: UUID,
    fields: GroupFields,
    user: User = Depends(get_current_user),
    service: GroupService = Depends(get_group_service),
):
    ensure_allowed(user, "groups")
    return await service.update_group(group_id, fields.model_dump(exclude_unset=True))
