import uuid
from datetime import date, datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from ischoolgo.backend.errors import StoreError
from ischoolgo.backend.models.db_models import Group, Student
from ischoolgo.backend.services.dashboard_service import DashboardService

NOW = datetime(2024, 6, 30, 12, 0, tzinfo=timezone.utc)


@pytest_asyncio.fixture
async def dashboard():
    repos = {name: AsyncMock() for name in ("students", "groups", "payments", "attendance", "users")}
    service = DashboardService(
        student_repository=repos["students"],
        group_repository=repos["groups"],
        payment_repository=repos["payments"],
        attendance_repository=repos["attendance"],
        user_repository=repos["users"],
    )
    repos["students"].count_students.return_value = 0
    repos["students"].get_recent_students.return_value = []
    repos["groups"].count_groups.return_value = 0
    repos["users"].count_users.return_value = 0
    repos["payments"].get_payment_facts.return_value = []
    repos["attendance"].get_statuses.return_value = []
    return service, repos


def make_group(name: str, student_count: int) -> Group:
    return Group(id=uuid.uuid4(), name=name, level="B1", subject="English", student_count=student_count)


@pytest.mark.asyncio
class TestDashboardOverview:

    async def test_overview_combines_counts_revenue_and_rate(self, dashboard):
        service, repos = dashboard
        repos["students"].count_students.side_effect = lambda status="active", created_since=None: 4 if created_since else 120
        repos["groups"].count_groups.return_value = 9
        repos["users"].count_users.return_value = 6
        repos["payments"].get_payment_facts.return_value = [
            {"amount": 100.0, "status": "completed", "payment_date": date(2024, 6, 1)},
            {"amount": 50.0, "status": "completed", "payment_date": date(2024, 6, 2)},
        ]
        repos["attendance"].get_statuses.return_value = ["present"] * 7 + ["absent"] * 3
        repos["students"].get_recent_students.return_value = [
            Student(id=uuid.uuid4(), name="Ada", enrollment_date=date(2024, 6, 29), group_name="A1 Morning",
                    created_at=NOW - timedelta(days=1)),
        ]

        overview = await service.get_overview("week", now=NOW)

        assert overview["timeframe_days"] == 7
        assert overview["total_students"] == 120
        assert overview["new_students"] == 4
        assert overview["active_groups"] == 9
        assert overview["active_teachers"] == 6
        assert overview["total_revenue"] == 150.0
        assert overview["completed_payments"] == 2
        assert overview["attendance_rate"] == 70
        assert overview["recent_activities"] == [
            {"type": "student_enrolled", "description": "Ada enrolled in A1 Morning", "timestamp": NOW - timedelta(days=1)}
        ]
        repos["users"].count_users.assert_awaited_once_with(("teacher", "head_trainer"))
        repos["payments"].get_payment_facts.assert_awaited_once_with(start_date=date(2024, 6, 23), status="completed")
        repos["students"].get_recent_students.assert_awaited_once_with(NOW - timedelta(days=7), limit=5)

    async def test_unknown_timeframe_means_thirty_days(self, dashboard):
        service, repos = dashboard

        overview = await service.get_overview("fortnight", now=NOW)

        assert overview["timeframe_days"] == 30
        repos["attendance"].get_statuses.assert_awaited_once_with(start_date=date(2024, 5, 31))

    async def test_failed_count_degrades_to_zero(self, dashboard):
        service, repos = dashboard
        repos["groups"].count_groups.side_effect = StoreError("connection reset")
        repos["students"].count_students.return_value = 42

        overview = await service.get_overview(now=NOW)

        assert overview["active_groups"] == 0
        assert overview["total_students"] == 42

    async def test_failed_revenue_degrades_to_zero(self, dashboard):
        service, repos = dashboard
        repos["payments"].get_payment_facts.side_effect = StoreError("timeout")

        overview = await service.get_overview(now=NOW)

        assert overview["total_revenue"] == 0
        assert overview["completed_payments"] == 0


@pytest.mark.asyncio
class TestDashboardSeries:

    async def test_top_groups_rank_by_rate_then_size(self, dashboard):
        service, repos = dashboard
        small, large, empty = make_group("Small", 5), make_group("Large", 8), make_group("Empty", 0)
        repos["groups"].list_active_groups.return_value = [small, large, empty]
        repos["attendance"].get_statuses.return_value = ["present"] * 4 + ["absent"]

        ranked = await service.get_top_groups(today=date(2024, 6, 30))

        assert [g["name"] for g in ranked] == ["Large", "Small"]
        assert ranked[0]["attendance_rate"] == 80
        assert repos["attendance"].get_statuses.await_count == 3

    async def test_top_groups_degrade_failed_rate_to_zero(self, dashboard):
        service, repos = dashboard
        good, broken = make_group("Good", 5), make_group("Broken", 9)
        repos["groups"].list_active_groups.return_value = [good, broken]

        async def statuses(start_date=None, end_date=None, group_id=None):
            if group_id == broken.id:
                raise StoreError("timeout")
            return ["present", "present", "absent", "present"]

        repos["attendance"].get_statuses.side_effect = statuses

        ranked = await service.get_top_groups(today=date(2024, 6, 30))

        assert [(g["name"], g["attendance_rate"]) for g in ranked] == [("Good", 75), ("Broken", 0)]

    async def test_revenue_by_month_uses_trailing_year(self, dashboard):
        service, repos = dashboard
        repos["payments"].get_payment_facts.return_value = [
            {"amount": 100.0, "status": "completed", "payment_date": date(2024, 1, 5)},
            {"amount": 50.0, "status": "completed", "payment_date": date(2024, 1, 20)},
        ]

        series = await service.get_revenue_by_month(today=date(2024, 6, 30))

        assert series == [{"period": "2024-01", "revenue": 150.0, "payment_count": 2}]
        repos["payments"].get_payment_facts.assert_awaited_once_with(start_date=date(2023, 7, 1), status="completed")

    async def test_revenue_by_month_propagates_store_errors(self, dashboard):
        service, repos = dashboard
        repos["payments"].get_payment_facts.side_effect = StoreError("down")

        with pytest.raises(StoreError):
            await service.get_revenue_by_month()

    async def test_enrollment_trends(self, dashboard):
        service, repos = dashboard
        repos["students"].get_enrollments_since.return_value = [
            {"enrollment_date": date(2024, 2, 1), "status": "active"},
            {"enrollment_date": date(2024, 2, 3), "status": "dropped"},
        ]

        trends = await service.get_enrollment_trends(today=date(2024, 6, 30))

        assert trends == [{"month": "2024-02", "new_enrollments": 2, "active_enrollments": 1}]
