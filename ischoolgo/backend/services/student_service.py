import logging
from typing import Any, Dict, Optional
from uuid import UUID

from ..db.group_repository import GroupRepository
from ..db.student_repository import StudentRepository
from ..errors import NotFoundError
from ..models.db_models import Page, Student, StudentDetail, StudentFields
from .validation import DEFAULT_LIMIT, DEFAULT_PAGE, validate_fields, validate_page

logger = logging.getLogger(__name__)

NOT_NULL_FIELDS = ("name", "enrollment_date", "status")


class StudentService:
    """
    Business logic for the student registry, including the soft/hard delete policy.
    """
    def __init__(self, student_repository: StudentRepository, group_repository: GroupRepository):
        self.student_repository = student_repository
        self.group_repository = group_repository

    async def _ensure_group_exists(self, group_id: Optional[UUID]):
        if group_id is not None and await self.group_repository.get_group(group_id) is None:
            raise NotFoundError(f"Group {group_id} does not exist.")

    async def list_students(
        self,
        page: int = DEFAULT_PAGE,
        limit: int = DEFAULT_LIMIT,
        search: Optional[str] = None,
        group_id: Optional[UUID] = None,
        status: Optional[str] = None,
    ) -> Page[Student]:
        page, limit = validate_page(page, limit)
        return await self.student_repository.list_students(
            page=page, limit=limit, search=search, group_id=group_id, status=status
        )

    async def get_student(self, student_id: UUID) -> StudentDetail:
        student = await self.student_repository.get_student_detail(student_id)
        if student is None:
            raise NotFoundError(f"Student {student_id} does not exist.")
        return student

    async def create_student(self, fields: Dict[str, Any]) -> Student:
        values = validate_fields(StudentFields, fields, required=("name",), not_null=NOT_NULL_FIELDS)
        await self._ensure_group_exists(values.get("group_id"))
        student = await self.student_repository.add_student(values)
        logger.info(f"Student {student.id} ('{student.name}') created.")
        return student

    async def update_student(self, student_id: UUID, fields: Dict[str, Any]) -> Student:
        values = validate_fields(StudentFields, fields, not_null=NOT_NULL_FIELDS)
        await self._ensure_group_exists(values.get("group_id"))
        student = await self.student_repository.update_student(student_id, values)
        if student is None:
            raise NotFoundError(f"Student {student_id} does not exist.")
        logger.info(f"Student {student_id} updated: {sorted(values)}.")
        return student

    async def delete_student(self, student_id: UUID) -> Dict[str, Any]:
        """
        Students referenced by attendance or payment facts are deactivated so
        history stays intact; students without history are removed.
        """
        if await self.student_repository.get_student(student_id) is None:
            raise NotFoundError(f"Student {student_id} does not exist.")

        if await self.student_repository.has_history(student_id):
            await self.student_repository.deactivate_student(student_id)
            logger.info(f"Student {student_id} has history; deactivated instead of deleted.")
            return {
                "deleted": False,
                "deactivated": True,
                "message": "Student has attendance or payment history and was marked inactive.",
            }

        removed = await self.student_repository.delete_student(student_id)
        if not removed:
            raise NotFoundError(f"Student {student_id} does not exist.")
        logger.info(f"Student {student_id} deleted.")
        return {"deleted": True, "deactivated": False, "message": "Student deleted."}
