# ischoolgo/backend/modules/aggregates.py

from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Optional, Sequence

from ..models.db_models import AttendanceRecord, RosterEntry, Student

TIMEFRAME_DAYS = {"week": 7, "year": 365}
DEFAULT_TIMEFRAME_DAYS = 30
TOP_GROUPS_LIMIT = 10

BEHIND = "behind"
UP_TO_DATE = "up_to_date"


def timeframe_days(timeframe: Optional[str]) -> int:
    """week -> 7, year -> 365, anything else -> 30."""
    return TIMEFRAME_DAYS.get(timeframe, DEFAULT_TIMEFRAME_DAYS)


def round_half_up(value: float) -> int:
    """Rounds to a whole number with .5 going up (round() would go to even)."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def attendance_rate(statuses: Sequence[str]) -> float:
    """Percentage of facts marked 'present'; 0 when there are no facts."""
    if not statuses:
        return 0.0
    present = sum(1 for status in statuses if status == "present")
    return present / len(statuses) * 100


def attendance_stats(statuses: Sequence[str]) -> Dict[str, Any]:
    """Counts per status plus the attendance rate to two decimals."""
    counts = {name: 0 for name in ("present", "absent", "late", "excused")}
    for status in statuses:
        if status in counts:
            counts[status] += 1
    return {
        "total_records": len(statuses),
        "present_count": counts["present"],
        "absent_count": counts["absent"],
        "late_count": counts["late"],
        "excused_count": counts["excused"],
        "attendance_rate": round(attendance_rate(statuses), 2),
    }


def _completed(payments: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [p for p in payments if p.get("status", "completed") == "completed"]


def revenue_total(payments: Iterable[Dict[str, Any]]) -> float:
    """Sum of amounts over completed payments."""
    return sum(p["amount"] for p in _completed(payments))


def payment_stats(payments: Sequence[Dict[str, Any]]) -> Dict[str, Any]:
    completed = _completed(payments)
    total_revenue = revenue_total(completed)
    return {
        "total_payments": len(payments),
        "completed_payments": len(completed),
        "pending_payments": sum(1 for p in payments if p["status"] == "pending"),
        "failed_payments": sum(1 for p in payments if p["status"] == "failed"),
        "total_revenue": total_revenue,
        "average_payment": total_revenue / len(completed) if completed else 0,
    }


def _month_of(value: Any) -> str:
    # First seven characters of the ISO date string: YYYY-MM
    text = value.isoformat() if isinstance(value, (date, datetime)) else str(value)
    return text[:7]


def revenue_by_month(payments: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Completed revenue bucketed by payment month, oldest month first."""
    buckets: Dict[str, Dict[str, Any]] = {}
    for payment in _completed(payments):
        period = _month_of(payment["payment_date"])
        bucket = buckets.setdefault(period, {"period": period, "revenue": 0, "payment_count": 0})
        bucket["revenue"] += payment["amount"]
        bucket["payment_count"] += 1
    return [buckets[period] for period in sorted(buckets)]


def enrollment_by_month(students: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """New and still-active enrollments bucketed by enrollment month."""
    buckets: Dict[str, Dict[str, Any]] = {}
    for student in students:
        month = _month_of(student["enrollment_date"])
        bucket = buckets.setdefault(month, {"month": month, "new_enrollments": 0, "active_enrollments": 0})
        bucket["new_enrollments"] += 1
        if student.get("status") == "active":
            bucket["active_enrollments"] += 1
    return [buckets[month] for month in sorted(buckets)]


def rank_top_groups(groups: Iterable[Dict[str, Any]], limit: int = TOP_GROUPS_LIMIT) -> List[Dict[str, Any]]:
    """
    Keeps groups with at least one active student and orders them by
    attendance rate, then by student count, both descending.
    """
    qualifying = [g for g in groups if g["student_count"] > 0]
    qualifying.sort(key=lambda g: (g["attendance_rate"], g["student_count"]), reverse=True)
    return qualifying[:limit]


def payment_status(
    last_payment_date: Optional[date],
    fee_amount: Optional[float],
    today: date,
    grace_days: int,
) -> str:
    """
    'behind' when the student's group charges a fee and the latest completed
    payment is missing or older than the grace period.
    """
    if not fee_amount:
        return UP_TO_DATE
    if last_payment_date is None or (today - last_payment_date).days > grace_days:
        return BEHIND
    return UP_TO_DATE


def is_at_risk(rate: float, payment: str, threshold: float) -> bool:
    return rate < threshold or payment == BEHIND


def risk_level(rate: float) -> str:
    if rate < 70:
        return "high"
    if rate < 85:
        return "medium"
    return "low"


def build_roster(students: Iterable[Student], records: Iterable[AttendanceRecord]) -> List[RosterEntry]:
    """
    One entry per student, joined to that day's fact when there is one.
    Facts for students outside the list are ignored.
    """
    by_student = {record.student_id: record for record in records}
    roster = []
    for student in students:
        record = by_student.get(student.id)
        entry = RosterEntry(student_id=student.id, student_name=student.name, student_email=student.email)
        if record:
            entry.status = record.status
            entry.notes = record.notes or ""
            entry.recorded_by = record.recorded_by
            entry.created_at = record.created_at
        roster.append(entry)
    return roster
