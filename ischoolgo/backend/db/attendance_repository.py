from datetime import date
from typing import List, Optional
from uuid import UUID

from .db_client import AsyncPostgresClient, WhereClause
from ..models.db_models import AttendanceRecord


class AttendanceRepository(AsyncPostgresClient):
    """
    Queries over the 'attendance' fact table. (student_id, group_id, date) is
    unique, so a recording is one atomic upsert.
    """

    async def upsert_attendance(
        self,
        student_id: UUID,
        group_id: UUID,
        attendance_date: date,
        status: str,
        notes: Optional[str] = None,
        recorded_by: Optional[UUID] = None,
    ) -> AttendanceRecord:
        query = """
            INSERT INTO attendance (student_id, group_id, date, status, notes, recorded_by)
            VALUES ($1, $2, $3, $4, $5, $6)
            ON CONFLICT (student_id, group_id, date) DO UPDATE SET
                status = EXCLUDED.status,
                notes = EXCLUDED.notes,
                recorded_by = COALESCE(EXCLUDED.recorded_by, attendance.recorded_by),
                updated_at = now()
            RETURNING *;
        """
        record = await self._fetchrow(query, student_id, group_id, attendance_date, status, notes, recorded_by)
        return AttendanceRecord(**record)

    async def get_records_for_group_and_date(self, group_id: UUID, attendance_date: date) -> List[AttendanceRecord]:
        query = "SELECT * FROM attendance WHERE group_id = $1 AND date = $2;"
        records = await self._fetch(query, group_id, attendance_date)
        return [AttendanceRecord(**record) for record in records]

    async def get_student_history(
        self,
        student_id: UUID,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        limit: Optional[int] = None,
    ) -> List[AttendanceRecord]:
        where = WhereClause().add("a.student_id = {0}", student_id)
        where.add_if(start_date, "a.date >= {0}")
        where.add_if(end_date, "a.date <= {0}")
        query = f"""
            SELECT a.*, g.name AS group_name, g.level AS group_level
            FROM attendance a
            LEFT JOIN groups g ON g.id = a.group_id
            {where.sql()}
            ORDER BY a.date DESC
        """
        args = list(where.args)
        if limit:
            args.append(limit)
            query += f" LIMIT ${len(args)}"
        records = await self._fetch(query + ";", *args)
        return [AttendanceRecord(**record) for record in records]

    async def get_statuses(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        group_id: Optional[UUID] = None,
    ) -> List[str]:
        """The status of every fact inside the window, for rate computation."""
        where = WhereClause()
        where.add_if(start_date, "date >= {0}")
        where.add_if(end_date, "date <= {0}")
        where.add_if(group_id, "group_id = {0}")
        records = await self._fetch(f"SELECT status FROM attendance {where.sql()};", *where.args)
        return [record["status"] for record in records]
