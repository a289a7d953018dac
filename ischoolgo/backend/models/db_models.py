# ischoolgo/backend/models/db_models.py

from pydantic import BaseModel, ConfigDict, Field
from datetime import date, datetime
from typing import Any, Generic, List, Literal, Optional, TypeVar
from uuid import UUID

Role = Literal["admin", "director", "head_trainer", "teacher", "agent", "marketer"]
UserStatus = Literal["active", "inactive", "suspended"]
StudentStatus = Literal["active", "inactive", "graduated", "dropped"]
GroupStatus = Literal["active", "inactive", "completed"]
PaymentMethod = Literal["cash", "card", "bank_transfer", "check"]
PaymentStatus = Literal["pending", "completed", "failed", "refunded"]
AttendanceStatus = Literal["present", "absent", "late", "excused"]

NOT_RECORDED = "not_recorded"
TEACHING_ROLES = ("teacher", "head_trainer")


class User(BaseModel):
    """
    A staff profile, mapping to the 'users' table. The id is the identity
    provider's user id.
    """
    id: UUID
    email: str
    name: str
    role: Role = Field(..., description="admin, director, head_trainer, teacher, agent or marketer")
    status: UserStatus = "active"
    phone: Optional[str] = None
    address: Optional[str] = None
    hire_date: Optional[date] = None
    salary: Optional[float] = None
    avatar: Optional[str] = None
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Student(BaseModel):
    """
    A student, mapping to the 'students' table. group_name and group_level are
    joined from 'groups' when a query provides them.
    """
    id: UUID
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    date_of_birth: Optional[date] = None
    address: Optional[str] = None
    emergency_contact: Optional[Any] = None
    group_id: Optional[UUID] = Field(None, description="FK to the single group the student belongs to")
    enrollment_date: date
    status: StudentStatus = "active"
    notes: Optional[str] = None
    avatar: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    group_name: Optional[str] = None
    group_level: Optional[str] = None


class StudentDetail(Student):
    """Student enriched with counts derived from attendance and payment facts."""
    group_fee_amount: Optional[float] = None
    total_sessions: int = 0
    attended_sessions: int = 0
    missed_sessions: int = 0
    total_payments: float = 0
    last_payment_date: Optional[date] = None


class Group(BaseModel):
    """A class group, mapping to the 'groups' table."""
    id: UUID
    name: str
    level: str
    subject: str
    teacher_id: Optional[UUID] = Field(None, description="FK to the teaching user")
    schedule: Optional[Any] = None
    max_students: int = 20
    fee_amount: float = 0
    description: Optional[str] = None
    status: GroupStatus = "active"
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    teacher_name: Optional[str] = None
    student_count: int = 0
    attendance_rate: Optional[int] = None


class Payment(BaseModel):
    """A payment fact, mapping to the 'payments' table."""
    id: UUID
    student_id: UUID
    amount: float
    payment_method: PaymentMethod
    payment_date: date
    status: PaymentStatus = "completed"
    receipt_number: Optional[str] = None
    notes: Optional[str] = None
    processed_by: Optional[UUID] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    student_name: Optional[str] = None
    group_name: Optional[str] = None


class AttendanceRecord(BaseModel):
    """
    One attendance fact. (student_id, group_id, date) is unique.
    """
    id: UUID
    student_id: UUID
    group_id: UUID
    date: date
    status: AttendanceStatus
    notes: Optional[str] = None
    recorded_by: Optional[UUID] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    group_name: Optional[str] = None
    group_level: Optional[str] = None


class RosterEntry(BaseModel):
    """One row of a group's roster for a date; status is 'not_recorded' when no fact exists."""
    student_id: UUID
    student_name: str
    student_email: Optional[str] = None
    status: str = NOT_RECORDED
    notes: str = ""
    recorded_by: Optional[UUID] = None
    created_at: Optional[datetime] = None


T = TypeVar("T")


class Page(BaseModel, Generic[T]):
    """A 1-based page of list results."""
    items: List[T]
    page: int
    limit: int
    total: int
    page_count: int


# --- Writable field sets ---
# Every field is optional here; the services decide which ones are required on create.

class _Fields(BaseModel):
    model_config = ConfigDict(extra="forbid")


class UserFields(_Fields):
    email: Optional[str] = None
    name: Optional[str] = None
    role: Optional[Role] = None
    status: Optional[UserStatus] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    hire_date: Optional[date] = None
    salary: Optional[float] = Field(None, ge=0)
    avatar: Optional[str] = None


class StudentFields(_Fields):
    name: Optional[str] = Field(None, min_length=1)
    email: Optional[str] = None
    phone: Optional[str] = None
    date_of_birth: Optional[date] = None
    address: Optional[str] = None
    emergency_contact: Optional[Any] = None
    group_id: Optional[UUID] = None
    enrollment_date: Optional[date] = None
    status: Optional[StudentStatus] = None
    notes: Optional[str] = None
    avatar: Optional[str] = None


class GroupFields(_Fields):
    name: Optional[str] = Field(None, min_length=1)
    level: Optional[str] = None
    subject: Optional[str] = None
    teacher_id: Optional[UUID] = None
    schedule: Optional[Any] = None
    max_students: Optional[int] = Field(None, ge=1)
    fee_amount: Optional[float] = Field(None, ge=0)
    description: Optional[str] = None
    status: Optional[GroupStatus] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class PaymentFields(_Fields):
    student_id: Optional[UUID] = None
    amount: Optional[float] = Field(None, gt=0)
    payment_method: Optional[PaymentMethod] = None
    payment_date: Optional[date] = None
    status: Optional[PaymentStatus] = None
    receipt_number: Optional[str] = None
    notes: Optional[str] = None
    processed_by: Optional[UUID] = None
