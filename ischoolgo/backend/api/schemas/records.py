# ischoolgo/backend/api/schemas/records.py
from pydantic import BaseModel, Field
from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from ...models.db_models import AttendanceStatus, PaymentStatus


class DeleteStudentResponse(BaseModel):
    deleted: bool
    deactivated: bool
    message: str


class PaymentStatusUpdateRequest(BaseModel):
    status: PaymentStatus
    notes: Optional[str] = None


class PaymentStatsResponse(BaseModel):
    total_payments: int
    completed_payments: int
    pending_payments: int
    failed_payments: int
    total_revenue: float
    average_payment: float


class AttendanceRecordRequest(BaseModel):
    student_id: UUID
    group_id: UUID
    date: date
    status: AttendanceStatus
    notes: Optional[str] = None


class AttendanceStatsResponse(BaseModel):
    total_records: int
    present_count: int
    absent_count: int
    late_count: int
    excused_count: int
    attendance_rate: float = Field(..., description="Percentage of 'present' facts, two decimals.")


# --- Dashboard ---

class RecentActivity(BaseModel):
    type: str
    description: str
    timestamp: Optional[datetime] = None


class DashboardOverview(BaseModel):
    timeframe_days: int
    total_students: int
    new_students: int
    active_groups: int
    active_teachers: int
    total_revenue: float
    completed_payments: int
    attendance_rate: int
    recent_activities: List[RecentActivity]


class RevenuePoint(BaseModel):
    period: str
    revenue: float
    payment_count: int


class EnrollmentPoint(BaseModel):
    month: str
    new_enrollments: int
    active_enrollments: int


class TopGroup(BaseModel):
    id: UUID
    name: str
    level: str
    subject: str
    teacher_name: Optional[str] = None
    student_count: int
    attendance_rate: int
