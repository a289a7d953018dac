import logging
from datetime import date, timedelta
from typing import Any, Dict, List, Optional
from uuid import UUID

from ..db.attendance_repository import AttendanceRepository
from ..db.db_client import AsyncPostgresClient
from ..db.group_repository import GroupRepository
from ..db.student_repository import StudentRepository
from ..errors import NotFoundError, ValidationError
from ..models.db_models import TEACHING_ROLES, Group, GroupFields, Page, Student
from ..modules.aggregates import attendance_rate, round_half_up
from .validation import DEFAULT_LIMIT, DEFAULT_PAGE, validate_fields, validate_page

logger = logging.getLogger(__name__)

GROUP_RATE_WINDOW_DAYS = 30
NOT_NULL_FIELDS = ("name", "level", "subject", "max_students", "fee_amount", "status")


class GroupService:
    """Business logic for class groups."""

    def __init__(
        self,
        group_repository: GroupRepository,
        student_repository: StudentRepository,
        attendance_repository: AttendanceRepository,
        user_repository: AsyncPostgresClient,
    ):
        self.group_repository = group_repository
        self.student_repository = student_repository
        self.attendance_repository = attendance_repository
        self.user_repository = user_repository

    async def _ensure_teacher_exists(self, teacher_id: Optional[UUID]):
        if teacher_id is None:
            return
        teacher = await self.user_repository.get_user_by_id(teacher_id)
        if teacher is None:
            raise NotFoundError(f"Teacher {teacher_id} does not exist.")
        if teacher.role not in TEACHING_ROLES:
            raise ValidationError(f"User {teacher_id} is a {teacher.role}, not a teacher.")

    async def list_groups(
        self,
        page: int = DEFAULT_PAGE,
        limit: int = DEFAULT_LIMIT,
        search: Optional[str] = None,
        status: Optional[str] = None,
        teacher_id: Optional[UUID] = None,
    ) -> Page[Group]:
        page, limit = validate_page(page, limit)
        return await self.group_repository.list_groups(
            page=page, limit=limit, search=search, status=status, teacher_id=teacher_id
        )

    async def get_group(self, group_id: UUID) -> Group:
        """The group with its trailing-30-day attendance rate as a whole percent."""
        group = await self.group_repository.get_group(group_id)
        if group is None:
            raise NotFoundError(f"Group {group_id} does not exist.")
        since = date.today() - timedelta(days=GROUP_RATE_WINDOW_DAYS)
        statuses = await self.attendance_repository.get_statuses(start_date=since, group_id=group_id)
        group.attendance_rate = round_half_up(attendance_rate(statuses))
        return group

    async def create_group(self, fields: Dict[str, Any]) -> Group:
        values = validate_fields(
            GroupFields, fields, required=("name", "level", "subject"), not_null=NOT_NULL_FIELDS
        )
        await self._ensure_teacher_exists(values.get("teacher_id"))
        group = await self.group_repository.add_group(values)
        logger.info(f"Group {group.id} ('{group.name}') created.")
        return group

    async def update_group(self, group_id: UUID, fields: Dict[str, Any]) -> Group:
        values = validate_fields(GroupFields, fields, not_null=NOT_NULL_FIELDS)
        await self._ensure_teacher_exists(values.get("teacher_id"))
        group = await self.group_repository.update_group(group_id, values)
        if group is None:
            raise NotFoundError(f"Group {group_id} does not exist.")
        logger.info(f"Group {group_id} updated: {sorted(values)}.")
        return group

    async def get_students(self, group_id: UUID) -> List[Student]:
        if await self.group_repository.get_group(group_id) is None:
            raise NotFoundError(f"Group {group_id} does not exist.")
        return await self.student_repository.get_active_students_of_group(group_id)
