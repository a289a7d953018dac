# tests/modules/test_aggregates.py

import uuid
from datetime import date, datetime, timezone

import pytest

from ischoolgo.backend.models.db_models import AttendanceRecord, Student
from ischoolgo.backend.modules.aggregates import (
    BEHIND,
    UP_TO_DATE,
    attendance_rate,
    attendance_stats,
    build_roster,
    enrollment_by_month,
    is_at_risk,
    payment_stats,
    payment_status,
    rank_top_groups,
    revenue_by_month,
    risk_level,
    round_half_up,
    timeframe_days,
)


def make_student(name: str) -> Student:
    return Student(id=uuid.uuid4(), name=name, email=f"{name.lower()}@school.test", enrollment_date=date(2024, 1, 1))


# --- Rates and rounding ---

def test_ten_facts_seven_present_is_seventy_percent():
    statuses = ["present"] * 7 + ["absent", "late", "excused"]
    assert attendance_stats(statuses)["attendance_rate"] == 70.00
    assert round_half_up(attendance_rate(statuses)) == 70


def test_rate_is_zero_without_facts():
    assert attendance_rate([]) == 0.0
    stats = attendance_stats([])
    assert stats["total_records"] == 0
    assert stats["attendance_rate"] == 0


def test_stats_count_each_status():
    stats = attendance_stats(["present", "present", "absent", "late", "excused", "excused"])
    assert stats == {
        "total_records": 6,
        "present_count": 2,
        "absent_count": 1,
        "late_count": 1,
        "excused_count": 2,
        "attendance_rate": 33.33,
    }


@pytest.mark.parametrize("value, expected", [(62.5, 63), (0.5, 1), (84.4, 84), (84.5, 85), (100.0, 100)])
def test_round_half_up(value, expected):
    assert round_half_up(value) == expected


@pytest.mark.parametrize("timeframe, days", [("week", 7), ("year", 365), ("month", 30), (None, 30), ("bogus", 30)])
def test_timeframe_days(timeframe, days):
    assert timeframe_days(timeframe) == days


# --- Revenue and enrollment series ---

def test_revenue_by_month_buckets_by_year_and_month():
    payments = [
        {"amount": 100.0, "status": "completed", "payment_date": date(2024, 1, 5)},
        {"amount": 50.0, "status": "completed", "payment_date": date(2024, 1, 20)},
    ]
    assert revenue_by_month(payments) == [{"period": "2024-01", "revenue": 150.0, "payment_count": 2}]


def test_revenue_by_month_is_ascending_and_ignores_incomplete_payments():
    payments = [
        {"amount": 30.0, "status": "completed", "payment_date": date(2024, 3, 1)},
        {"amount": 999.0, "status": "pending", "payment_date": date(2024, 2, 1)},
        {"amount": 20.0, "status": "completed", "payment_date": date(2023, 12, 31)},
    ]
    assert [bucket["period"] for bucket in revenue_by_month(payments)] == ["2023-12", "2024-03"]


def test_payment_stats_average_over_completed_only():
    payments = [
        {"amount": 100.0, "status": "completed"},
        {"amount": 50.0, "status": "completed"},
        {"amount": 70.0, "status": "pending"},
        {"amount": 10.0, "status": "failed"},
    ]
    stats = payment_stats(payments)
    assert stats["total_payments"] == 4
    assert stats["completed_payments"] == 2
    assert stats["pending_payments"] == 1
    assert stats["failed_payments"] == 1
    assert stats["total_revenue"] == 150.0
    assert stats["average_payment"] == 75.0


def test_payment_stats_with_no_completed_payments():
    assert payment_stats([])["average_payment"] == 0


def test_enrollment_by_month_counts_active_separately():
    students = [
        {"enrollment_date": date(2024, 5, 2), "status": "active"},
        {"enrollment_date": date(2024, 5, 20), "status": "dropped"},
        {"enrollment_date": date(2024, 4, 9), "status": "active"},
    ]
    assert enrollment_by_month(students) == [
        {"month": "2024-04", "new_enrollments": 1, "active_enrollments": 1},
        {"month": "2024-05", "new_enrollments": 2, "active_enrollments": 1},
    ]


# --- Group ranking ---

def test_equal_rates_rank_larger_group_first():
    groups = [
        {"name": "Small", "student_count": 5, "attendance_rate": 80},
        {"name": "Large", "student_count": 8, "attendance_rate": 80},
    ]
    assert [g["name"] for g in rank_top_groups(groups)] == ["Large", "Small"]


def test_ranking_drops_empty_groups_and_keeps_ten():
    groups = [{"name": f"G{i}", "student_count": 1, "attendance_rate": i} for i in range(15)]
    groups.append({"name": "Empty", "student_count": 0, "attendance_rate": 100})
    ranked = rank_top_groups(groups)
    assert len(ranked) == 10
    assert ranked[0]["name"] == "G14"
    assert all(g["name"] != "Empty" for g in ranked)


# --- Risk ---

def test_low_attendance_is_flagged():
    assert is_at_risk(65.0, UP_TO_DATE, threshold=70) is True


def test_adequate_attendance_with_current_payments_is_not_flagged():
    assert is_at_risk(75.0, UP_TO_DATE, threshold=70) is False


def test_behind_payments_are_flagged_regardless_of_attendance():
    assert is_at_risk(95.0, BEHIND, threshold=70) is True


def test_zero_rate_is_flagged():
    assert is_at_risk(attendance_rate([]), UP_TO_DATE, threshold=70) is True


def test_payment_status():
    today = date(2024, 6, 30)
    assert payment_status(None, 200.0, today, grace_days=30) == BEHIND
    assert payment_status(date(2024, 5, 1), 200.0, today, grace_days=30) == BEHIND
    assert payment_status(date(2024, 6, 15), 200.0, today, grace_days=30) == UP_TO_DATE
    # Groups without a fee never put a student behind
    assert payment_status(None, 0, today, grace_days=30) == UP_TO_DATE
    assert payment_status(None, None, today, grace_days=30) == UP_TO_DATE


@pytest.mark.parametrize("rate, level", [(69.9, "high"), (70.0, "medium"), (84.9, "medium"), (85.0, "low")])
def test_risk_level(rate, level):
    assert risk_level(rate) == level


# --- Roster ---

def test_roster_has_one_row_per_student_with_missing_facts_not_recorded():
    ayse, omar = make_student("Ayse"), make_student("Omar")
    group_id = uuid.uuid4()
    recorded_at = datetime(2024, 3, 4, 9, 0, tzinfo=timezone.utc)
    records = [
        AttendanceRecord(
            id=uuid.uuid4(), student_id=ayse.id, group_id=group_id, date=date(2024, 3, 4),
            status="late", notes="bus", created_at=recorded_at,
        ),
        # A fact for a student who is no longer active in the group
        AttendanceRecord(
            id=uuid.uuid4(), student_id=uuid.uuid4(), group_id=group_id, date=date(2024, 3, 4), status="present",
        ),
    ]

    roster = build_roster([ayse, omar], records)

    assert [entry.student_id for entry in roster] == [ayse.id, omar.id]
    assert roster[0].status == "late"
    assert roster[0].notes == "bus"
    assert roster[0].created_at == recorded_at
    assert roster[1].status == "not_recorded"
    assert roster[1].notes == ""
