from datetime import date, datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from .db_client import AsyncPostgresClient, WhereClause, like_pattern
from ..models.db_models import Page, Student, StudentDetail

_STUDENT_SELECT = """
    SELECT s.*, g.name AS group_name, g.level AS group_level
    FROM students s
    LEFT JOIN groups g ON g.id = s.group_id
"""


class StudentRepository(AsyncPostgresClient):
    """Queries over the 'students' table and the facts that reference it."""

    async def list_students(
        self,
        page: int,
        limit: int,
        search: Optional[str] = None,
        group_id: Optional[UUID] = None,
        status: Optional[str] = None,
    ) -> Page[Student]:
        where = WhereClause()
        if search:
            where.add("(s.name ILIKE {0} ESCAPE '\\' OR s.email ILIKE {0} ESCAPE '\\')", like_pattern(search))
        where.add_if(group_id, "s.group_id = {0}")
        where.add_if(status, "s.status = {0}")
        return await self._paginate(
            Student,
            select_sql=_STUDENT_SELECT,
            count_sql="SELECT COUNT(*) FROM students s",
            where=where,
            order_by="s.created_at DESC, s.id",
            page=page,
            limit=limit,
        )

    async def get_student(self, student_id: UUID) -> Optional[Student]:
        record = await self._fetchrow(f"{_STUDENT_SELECT} WHERE s.id = $1;", student_id)
        return Student(**record) if record else None

    async def get_student_detail(self, student_id: UUID) -> Optional[StudentDetail]:
        """The student row plus session counts and completed-payment total, all derived at read time."""
        query = """
            SELECT s.*, g.name AS group_name, g.level AS group_level, g.fee_amount AS group_fee_amount,
                   COALESCE(a.total_sessions, 0) AS total_sessions,
                   COALESCE(a.attended_sessions, 0) AS attended_sessions,
                   COALESCE(p.total_payments, 0) AS total_payments,
                   p.last_payment_date
            FROM students s
            LEFT JOIN groups g ON g.id = s.group_id
            LEFT JOIN (
                SELECT student_id,
                       COUNT(*) AS total_sessions,
                       COUNT(*) FILTER (WHERE status = 'present') AS attended_sessions
                FROM attendance WHERE student_id = $1 GROUP BY student_id
            ) a ON a.student_id = s.id
            LEFT JOIN (
                SELECT student_id, SUM(amount) AS total_payments, MAX(payment_date) AS last_payment_date
                FROM payments WHERE student_id = $1 AND status = 'completed' GROUP BY student_id
            ) p ON p.student_id = s.id
            WHERE s.id = $1;
        """
        record = await self._fetchrow(query, student_id)
        if not record:
            return None
        detail = StudentDetail(**record)
        detail.missed_sessions = detail.total_sessions - detail.attended_sessions
        return detail

    async def add_student(self, fields: Dict[str, Any]) -> Student:
        record = await self._insert("students", fields)
        return Student(**record)

    async def update_student(self, student_id: UUID, fields: Dict[str, Any]) -> Optional[Student]:
        record = await self._update("students", student_id, fields)
        return Student(**record) if record else None

    async def has_history(self, student_id: UUID) -> bool:
        """True when any attendance or payment fact references the student."""
        query = """
            SELECT EXISTS (SELECT 1 FROM attendance WHERE student_id = $1)
                OR EXISTS (SELECT 1 FROM payments WHERE student_id = $1);
        """
        return await self._fetchval(query, student_id)

    async def deactivate_student(self, student_id: UUID) -> Optional[Student]:
        return await self.update_student(student_id, {"status": "inactive"})

    async def delete_student(self, student_id: UUID) -> int:
        return await self._delete("students", student_id)

    async def get_active_students_of_group(self, group_id: UUID) -> List[Student]:
        query = f"{_STUDENT_SELECT} WHERE s.group_id = $1 AND s.status = 'active' ORDER BY s.name;"
        records = await self._fetch(query, group_id)
        return [Student(**record) for record in records]

    # ===== Counts and series for the dashboard =====

    async def count_students(self, status: str = "active", created_since: Optional[datetime] = None) -> int:
        where = WhereClause().add("status = {0}", status)
        where.add_if(created_since, "created_at >= {0}")
        return await self._fetchval(f"SELECT COUNT(*) FROM students {where.sql()};", *where.args)

    async def get_recent_students(self, created_since: datetime, limit: int = 5) -> List[Student]:
        query = f"{_STUDENT_SELECT} WHERE s.created_at >= $1 ORDER BY s.created_at DESC LIMIT $2;"
        records = await self._fetch(query, created_since, limit)
        return [Student(**record) for record in records]

    async def get_enrollments_since(self, since: date) -> List[Dict[str, Any]]:
        query = """
            SELECT enrollment_date, status FROM students
            WHERE enrollment_date >= $1 ORDER BY enrollment_date;
        """
        records = await self._fetch(query, since)
        return [dict(record) for record in records]

    async def get_risk_facts(self, since: date) -> List[Dict[str, Any]]:
        """
        One row per active student: group, fee, attendance counts since `since`
        and the latest completed payment date.
        """
        query = """
            SELECT s.id, s.name, s.enrollment_date, g.name AS group_name, g.fee_amount,
                   COALESCE(a.total_sessions, 0) AS total_sessions,
                   COALESCE(a.attended_sessions, 0) AS attended_sessions,
                   p.last_payment_date
            FROM students s
            LEFT JOIN groups g ON g.id = s.group_id
            LEFT JOIN (
                SELECT student_id,
                       COUNT(*) AS total_sessions,
                       COUNT(*) FILTER (WHERE status = 'present') AS attended_sessions
                FROM attendance WHERE date >= $1 GROUP BY student_id
            ) a ON a.student_id = s.id
            LEFT JOIN (
                SELECT student_id, MAX(payment_date) AS last_payment_date
                FROM payments WHERE status = 'completed' GROUP BY student_id
            ) p ON p.student_id = s.id
            WHERE s.status = 'active'
            ORDER BY s.name;
        """
        records = await self._fetch(query, since)
        return [dict(record) for record in records]
