import uuid
from datetime import date
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from ischoolgo.backend.errors import NotFoundError, ValidationError
from ischoolgo.backend.models.db_models import AttendanceRecord, Group, Payment, Student, User
from ischoolgo.backend.services.attendance_service import AttendanceService
from ischoolgo.backend.services.group_service import GroupService
from ischoolgo.backend.services.payment_service import PaymentService

# --- Sample data ---

GROUP_ID = uuid.uuid4()


def make_student(name: str = "Ada") -> Student:
    return Student(id=uuid.uuid4(), name=name, enrollment_date=date(2024, 1, 1), group_id=GROUP_ID)


def make_group(**overrides) -> Group:
    values = {"id": GROUP_ID, "name": "A1 Morning", "level": "A1", "subject": "English", "student_count": 3}
    values.update(overrides)
    return Group(**values)


# --- Fixtures ---

@pytest_asyncio.fixture
async def attendance_service():
    attendance, students, groups = AsyncMock(), AsyncMock(), AsyncMock()
    service = AttendanceService(attendance_repository=attendance, student_repository=students, group_repository=groups)
    return service, attendance, students, groups


@pytest_asyncio.fixture
async def payment_service():
    payments, students = AsyncMock(), AsyncMock()
    return PaymentService(payment_repository=payments, student_repository=students), payments, students


@pytest_asyncio.fixture
async def group_service():
    groups, students, attendance, users = AsyncMock(), AsyncMock(), AsyncMock(), AsyncMock()
    service = GroupService(
        group_repository=groups, student_repository=students, attendance_repository=attendance, user_repository=users
    )
    return service, groups, attendance, users


# --- Attendance ---

@pytest.mark.asyncio
class TestAttendanceService:

    async def test_record_attendance_is_a_single_upsert(self, attendance_service):
        service, attendance, students, groups = attendance_service
        student = make_student()
        recorder = uuid.uuid4()
        students.get_student.return_value = student
        groups.get_group.return_value = make_group()
        attendance.upsert_attendance.return_value = AttendanceRecord(
            id=uuid.uuid4(), student_id=student.id, group_id=GROUP_ID, date=date(2024, 3, 4), status="absent"
        )

        record = await service.record_attendance(student.id, GROUP_ID, date(2024, 3, 4), "absent", recorded_by=recorder)

        assert record.status == "absent"
        attendance.upsert_attendance.assert_awaited_once_with(
            student_id=student.id,
            group_id=GROUP_ID,
            attendance_date=date(2024, 3, 4),
            status="absent",
            notes=None,
            recorded_by=recorder,
        )

    async def test_record_attendance_rejects_unknown_status(self, attendance_service):
        service, attendance, _, _ = attendance_service

        with pytest.raises(ValidationError):
            await service.record_attendance(uuid.uuid4(), GROUP_ID, date(2024, 3, 4), "sleeping")
        attendance.upsert_attendance.assert_not_awaited()

    async def test_record_attendance_for_unknown_group_raises_not_found(self, attendance_service):
        service, attendance, students, groups = attendance_service
        students.get_student.return_value = make_student()
        groups.get_group.return_value = None

        with pytest.raises(NotFoundError):
            await service.record_attendance(uuid.uuid4(), GROUP_ID, date(2024, 3, 4), "present")
        attendance.upsert_attendance.assert_not_awaited()

    async def test_roster_lists_every_active_student(self, attendance_service):
        service, attendance, students, groups = attendance_service
        ada, bob, cem = make_student("Ada"), make_student("Bob"), make_student("Cem")
        groups.get_group.return_value = make_group()
        students.get_active_students_of_group.return_value = [ada, bob, cem]
        attendance.get_records_for_group_and_date.return_value = [
            AttendanceRecord(id=uuid.uuid4(), student_id=bob.id, group_id=GROUP_ID, date=date(2024, 3, 4), status="present")
        ]

        roster = await service.get_by_group_and_date(GROUP_ID, date(2024, 3, 4))

        assert [entry.student_name for entry in roster] == ["Ada", "Bob", "Cem"]
        assert [entry.status for entry in roster] == ["not_recorded", "present", "not_recorded"]

    async def test_stats_from_statuses(self, attendance_service):
        service, attendance, _, _ = attendance_service
        attendance.get_statuses.return_value = ["present"] * 7 + ["absent"] * 3

        stats = await service.get_stats(start_date=date(2024, 1, 1))

        assert stats["attendance_rate"] == 70.0
        assert stats["absent_count"] == 3
        attendance.get_statuses.assert_awaited_once_with(start_date=date(2024, 1, 1), end_date=None, group_id=None)

    async def test_history_of_unknown_student_raises_not_found(self, attendance_service):
        service, _, students, _ = attendance_service
        students.get_student.return_value = None

        with pytest.raises(NotFoundError):
            await service.get_student_history(uuid.uuid4())


# --- Payments ---

@pytest.mark.asyncio
class TestPaymentService:

    async def test_create_payment_defaults_to_completed_with_receipt(self, payment_service):
        service, payments, students = payment_service
        student = make_student()
        clerk = uuid.uuid4()
        students.get_student.return_value = student
        payments.add_payment.side_effect = lambda values: Payment(id=uuid.uuid4(), payment_date=date.today(), **values)

        payment = await service.create_payment(
            {"student_id": str(student.id), "amount": 150, "payment_method": "cash"}, processed_by=clerk
        )

        assert payment.status == "completed"
        assert payment.receipt_number.startswith("RCP-")
        assert payment.processed_by == clerk

    async def test_create_payment_keeps_given_receipt_and_status(self, payment_service):
        service, payments, students = payment_service
        student = make_student()
        students.get_student.return_value = student
        payments.add_payment.side_effect = lambda values: Payment(id=uuid.uuid4(), payment_date=date.today(), **values)

        payment = await service.create_payment({
            "student_id": str(student.id), "amount": 80, "payment_method": "card",
            "status": "pending", "receipt_number": "MANUAL-1",
        })

        assert payment.status == "pending"
        assert payment.receipt_number == "MANUAL-1"

    async def test_create_payment_for_unknown_student_raises_not_found(self, payment_service):
        service, payments, students = payment_service
        students.get_student.return_value = None

        with pytest.raises(NotFoundError):
            await service.create_payment({"student_id": str(uuid.uuid4()), "amount": 10, "payment_method": "cash"})
        payments.add_payment.assert_not_awaited()

    @pytest.mark.parametrize("fields", [
        {"amount": 10, "payment_method": "cash"},
        {"student_id": str(uuid.uuid4()), "amount": 0, "payment_method": "cash"},
        {"student_id": str(uuid.uuid4()), "amount": 10, "payment_method": "bitcoin"},
    ])
    async def test_create_payment_validation(self, payment_service, fields):
        service, _, _ = payment_service

        with pytest.raises(ValidationError):
            await service.create_payment(fields)

    @pytest.mark.parametrize("field", ["student_id", "amount", "payment_method", "payment_date", "status"])
    async def test_update_payment_cannot_null_a_required_column(self, payment_service, field):
        service, payments, _ = payment_service

        with pytest.raises(ValidationError):
            await service.update_payment(uuid.uuid4(), {field: None})
        payments.update_payment.assert_not_awaited()

    async def test_create_payment_with_null_status_is_rejected(self, payment_service):
        service, payments, _ = payment_service

        with pytest.raises(ValidationError):
            await service.create_payment({
                "student_id": str(uuid.uuid4()), "amount": 10, "payment_method": "cash", "status": None,
            })
        payments.add_payment.assert_not_awaited()

    async def test_update_status_of_unknown_payment_raises_not_found(self, payment_service):
        service, payments, _ = payment_service
        payments.update_payment.return_value = None

        with pytest.raises(NotFoundError):
            await service.update_status(uuid.uuid4(), "refunded", notes="duplicate")

    async def test_update_status_passes_status_and_notes(self, payment_service):
        service, payments, _ = payment_service
        payment_id = uuid.uuid4()

        await service.update_status(payment_id, "refunded", notes="duplicate")

        payments.update_payment.assert_awaited_once_with(payment_id, {"status": "refunded", "notes": "duplicate"})

    async def test_stats(self, payment_service):
        service, payments, _ = payment_service
        payments.get_payment_facts.return_value = [
            {"amount": 100.0, "status": "completed", "payment_date": date(2024, 1, 5)},
            {"amount": 50.0, "status": "completed", "payment_date": date(2024, 1, 20)},
            {"amount": 30.0, "status": "failed", "payment_date": date(2024, 1, 21)},
        ]

        stats = await service.get_stats()

        assert stats["total_revenue"] == 150.0
        assert stats["average_payment"] == 75.0
        assert stats["failed_payments"] == 1


# --- Groups ---

@pytest.mark.asyncio
class TestGroupService:

    async def test_get_group_carries_whole_percent_rate(self, group_service):
        service, groups, attendance, _ = group_service
        groups.get_group.return_value = make_group()
        attendance.get_statuses.return_value = ["present"] * 5 + ["absent"] * 3

        group = await service.get_group(GROUP_ID)

        # 5/8 = 62.5 rounds half up
        assert group.attendance_rate == 63

    async def test_create_group_requires_name_level_subject(self, group_service):
        service, groups, _, _ = group_service

        with pytest.raises(ValidationError):
            await service.create_group({"name": "A1 Morning", "level": "A1"})
        groups.add_group.assert_not_awaited()

    @pytest.mark.parametrize("field", ["name", "level", "subject", "max_students", "fee_amount", "status"])
    async def test_update_group_cannot_null_a_required_column(self, group_service, field):
        service, groups, _, _ = group_service

        with pytest.raises(ValidationError):
            await service.update_group(GROUP_ID, {field: None})
        groups.update_group.assert_not_awaited()

    async def test_create_group_with_unknown_teacher_raises_not_found(self, group_service):
        service, groups, _, users = group_service
        users.get_user_by_id.return_value = None

        with pytest.raises(NotFoundError):
            await service.create_group({
                "name": "A1 Morning", "level": "A1", "subject": "English", "teacher_id": str(uuid.uuid4()),
            })
        groups.add_group.assert_not_awaited()

    async def test_create_group_with_non_teaching_user_is_rejected(self, group_service):
        service, _, _, users = group_service
        agent_id = uuid.uuid4()
        users.get_user_by_id.return_value = User(id=agent_id, email="a@school.test", name="Agent", role="agent")

        with pytest.raises(ValidationError):
            await service.create_group({"name": "A1", "level": "A1", "subject": "English", "teacher_id": str(agent_id)})

    async def test_get_students_of_unknown_group_raises_not_found(self, group_service):
        service, groups, _, _ = group_service
        groups.get_group.return_value = None

        with pytest.raises(NotFoundError):
            await service.get_students(uuid.uuid4())
