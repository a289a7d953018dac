import logging
from datetime import date
from typing import Any, Dict, List, Optional
from uuid import UUID

from ..db.attendance_repository import AttendanceRepository
from ..db.group_repository import GroupRepository
from ..db.student_repository import StudentRepository
from ..errors import NotFoundError, ValidationError
from ..models.db_models import AttendanceRecord, RosterEntry
from ..modules.aggregates import attendance_stats, build_roster

logger = logging.getLogger(__name__)

ATTENDANCE_STATUSES = ("present", "absent", "late", "excused")


class AttendanceService:
    """
    Records attendance facts and reads them back as rosters, histories and stats.
    """
    def __init__(
        self,
        attendance_repository: AttendanceRepository,
        student_repository: StudentRepository,
        group_repository: GroupRepository,
    ):
        self.attendance_repository = attendance_repository
        self.student_repository = student_repository
        self.group_repository = group_repository

    async def record_attendance(
        self,
        student_id: UUID,
        group_id: UUID,
        attendance_date: date,
        status: str,
        notes: Optional[str] = None,
        recorded_by: Optional[UUID] = None,
    ) -> AttendanceRecord:
        """
        Inserts the fact for (student, group, date) or overwrites the existing one.
        """
        if status not in ATTENDANCE_STATUSES:
            raise ValidationError(f"status must be one of {', '.join(ATTENDANCE_STATUSES)}.")
        if await self.student_repository.get_student(student_id) is None:
            raise NotFoundError(f"Student {student_id} does not exist.")
        if await self.group_repository.get_group(group_id) is None:
            raise NotFoundError(f"Group {group_id} does not exist.")

        record = await self.attendance_repository.upsert_attendance(
            student_id=student_id,
            group_id=group_id,
            attendance_date=attendance_date,
            status=status,
            notes=notes,
            recorded_by=recorded_by,
        )
        logger.info(f"Attendance of student {student_id} in group {group_id} on {attendance_date} set to '{status}'.")
        return record

    async def get_by_group_and_date(self, group_id: UUID, attendance_date: date) -> List[RosterEntry]:
        if await self.group_repository.get_group(group_id) is None:
            raise NotFoundError(f"Group {group_id} does not exist.")
        students = await self.student_repository.get_active_students_of_group(group_id)
        records = await self.attendance_repository.get_records_for_group_and_date(group_id, attendance_date)
        return build_roster(students, records)

    async def get_student_history(
        self,
        student_id: UUID,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        limit: Optional[int] = None,
    ) -> List[AttendanceRecord]:
        if limit is not None and limit < 1:
            raise ValidationError("limit must be 1 or greater.")
        if await self.student_repository.get_student(student_id) is None:
            raise NotFoundError(f"Student {student_id} does not exist.")
        return await self.attendance_repository.get_student_history(
            student_id, start_date=start_date, end_date=end_date, limit=limit
        )

    async def get_stats(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        group_id: Optional[UUID] = None,
    ) -> Dict[str, Any]:
        statuses = await self.attendance_repository.get_statuses(
            start_date=start_date, end_date=end_date, group_id=group_id
        )
        return attendance_stats(statuses)
