import asyncio
import logging
from datetime import date, datetime, timedelta, timezone
from typing import Any, Awaitable, Dict, List, Optional

from ..db.attendance_repository import AttendanceRepository
from ..db.db_client import AsyncPostgresClient
from ..db.group_repository import GroupRepository
from ..db.payment_repository import PaymentRepository
from ..db.student_repository import StudentRepository
from ..errors import StoreError
from ..models.db_models import TEACHING_ROLES, Group
from ..modules import aggregates

logger = logging.getLogger(__name__)

TREND_WINDOW_DAYS = 365
GROUP_RATE_WINDOW_DAYS = 30
RECENT_ACTIVITY_DAYS = 7
RECENT_ACTIVITY_LIMIT = 5


class DashboardService:
    """
    Aggregates for the dashboard, computed on demand from the fact tables.
    Sub-queries of the overview and the group ranking degrade to zero when
    the database fails instead of failing the whole response.
    """
    def __init__(
        self,
        student_repository: StudentRepository,
        group_repository: GroupRepository,
        payment_repository: PaymentRepository,
        attendance_repository: AttendanceRepository,
        user_repository: AsyncPostgresClient,
    ):
        self.student_repository = student_repository
        self.group_repository = group_repository
        self.payment_repository = payment_repository
        self.attendance_repository = attendance_repository
        self.user_repository = user_repository

    @staticmethod
    async def _or_fallback(label: str, query: Awaitable, fallback: Any) -> Any:
        try:
            return await query
        except StoreError as e:
            logger.warning(f"Dashboard sub-query '{label}' failed, reporting {fallback!r}: {e}")
            return fallback

    async def get_overview(self, timeframe: Optional[str] = None, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or datetime.now(timezone.utc)
        days = aggregates.timeframe_days(timeframe)
        window_start = now - timedelta(days=days)

        total_students, new_students, active_groups, active_teachers = await asyncio.gather(
            self._or_fallback("total_students", self.student_repository.count_students(), 0),
            self._or_fallback(
                "new_students", self.student_repository.count_students(created_since=window_start), 0
            ),
            self._or_fallback("active_groups", self.group_repository.count_groups(), 0),
            self._or_fallback("active_teachers", self.user_repository.count_users(TEACHING_ROLES), 0),
        )

        payments = await self._or_fallback(
            "revenue",
            self.payment_repository.get_payment_facts(start_date=window_start.date(), status="completed"),
            [],
        )
        statuses = await self._or_fallback(
            "attendance_rate", self.attendance_repository.get_statuses(start_date=window_start.date()), []
        )
        recent_students = await self._or_fallback(
            "recent_activities",
            self.student_repository.get_recent_students(
                now - timedelta(days=RECENT_ACTIVITY_DAYS), limit=RECENT_ACTIVITY_LIMIT
            ),
            [],
        )

        return {
            "timeframe_days": days,
            "total_students": total_students,
            "new_students": new_students,
            "active_groups": active_groups,
            "active_teachers": active_teachers,
            "total_revenue": aggregates.revenue_total(payments),
            "completed_payments": len(payments),
            "attendance_rate": aggregates.round_half_up(aggregates.attendance_rate(statuses)),
            "recent_activities": [
                {
                    "type": "student_enrolled",
                    "description": f"{student.name} enrolled" + (f" in {student.group_name}" if student.group_name else ""),
                    "timestamp": student.created_at,
                }
                for student in recent_students
            ],
        }

    async def get_revenue_by_month(self, today: Optional[date] = None) -> List[Dict[str, Any]]:
        since = (today or date.today()) - timedelta(days=TREND_WINDOW_DAYS)
        payments = await self.payment_repository.get_payment_facts(start_date=since, status="completed")
        return aggregates.revenue_by_month(payments)

    async def get_enrollment_trends(self, today: Optional[date] = None) -> List[Dict[str, Any]]:
        since = (today or date.today()) - timedelta(days=TREND_WINDOW_DAYS)
        students = await self.student_repository.get_enrollments_since(since)
        return aggregates.enrollment_by_month(students)

    async def _group_summary(self, group: Group, since: date) -> Dict[str, Any]:
        statuses = await self._or_fallback(
            f"attendance of group {group.id}",
            self.attendance_repository.get_statuses(start_date=since, group_id=group.id),
            [],
        )
        return {
            "id": group.id,
            "name": group.name,
            "level": group.level,
            "subject": group.subject,
            "teacher_name": group.teacher_name,
            "student_count": group.student_count,
            "attendance_rate": aggregates.round_half_up(aggregates.attendance_rate(statuses)),
        }

    async def get_top_groups(self, today: Optional[date] = None) -> List[Dict[str, Any]]:
        """Active groups ranked by trailing-30-day attendance, then by size."""
        since = (today or date.today()) - timedelta(days=GROUP_RATE_WINDOW_DAYS)
        groups = await self._or_fallback("active_groups", self.group_repository.list_active_groups(), [])
        summaries = await asyncio.gather(*(self._group_summary(group, since) for group in groups))
        return aggregates.rank_top_groups(summaries)
