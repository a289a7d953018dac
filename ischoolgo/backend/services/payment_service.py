import logging
from datetime import date
from typing import Any, Dict, Optional
from uuid import UUID

from ..db.payment_repository import PaymentRepository
from ..db.student_repository import StudentRepository
from ..errors import NotFoundError
from ..models.db_models import Page, Payment, PaymentFields
from ..modules.aggregates import payment_stats
from ..tools.receipts import generate_receipt_number
from .validation import DEFAULT_LIMIT, DEFAULT_PAGE, validate_fields, validate_page

logger = logging.getLogger(__name__)

NOT_NULL_FIELDS = ("student_id", "amount", "payment_method", "payment_date", "status")


class PaymentService:
    """Business logic for the payment ledger."""

    def __init__(self, payment_repository: PaymentRepository, student_repository: StudentRepository):
        self.payment_repository = payment_repository
        self.student_repository = student_repository

    async def list_payments(
        self,
        page: int = DEFAULT_PAGE,
        limit: int = DEFAULT_LIMIT,
        search: Optional[str] = None,
        status: Optional[str] = None,
        payment_method: Optional[str] = None,
        student_id: Optional[UUID] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Page[Payment]:
        page, limit = validate_page(page, limit)
        return await self.payment_repository.list_payments(
            page=page,
            limit=limit,
            search=search,
            status=status,
            payment_method=payment_method,
            student_id=student_id,
            start_date=start_date,
            end_date=end_date,
        )

    async def get_payment(self, payment_id: UUID) -> Payment:
        payment = await self.payment_repository.get_payment(payment_id)
        if payment is None:
            raise NotFoundError(f"Payment {payment_id} does not exist.")
        return payment

    async def create_payment(self, fields: Dict[str, Any], processed_by: Optional[UUID] = None) -> Payment:
        """
        Records a payment. Status defaults to 'completed' and a receipt number is
        generated unless one is supplied.
        """
        values = validate_fields(
            PaymentFields, fields, required=("student_id", "amount", "payment_method"), not_null=NOT_NULL_FIELDS
        )
        if await self.student_repository.get_student(values["student_id"]) is None:
            raise NotFoundError(f"Student {values['student_id']} does not exist.")

        values.setdefault("status", "completed")
        if not values.get("receipt_number"):
            values["receipt_number"] = generate_receipt_number()
        if processed_by and not values.get("processed_by"):
            values["processed_by"] = processed_by

        payment = await self.payment_repository.add_payment(values)
        logger.info(f"Payment {payment.id} ({payment.receipt_number}) of {payment.amount} recorded for student {payment.student_id}.")
        return payment

    async def update_payment(self, payment_id: UUID, fields: Dict[str, Any]) -> Payment:
        values = validate_fields(PaymentFields, fields, not_null=NOT_NULL_FIELDS)
        if "student_id" in values and await self.student_repository.get_student(values["student_id"]) is None:
            raise NotFoundError(f"Student {values['student_id']} does not exist.")
        payment = await self.payment_repository.update_payment(payment_id, values)
        if payment is None:
            raise NotFoundError(f"Payment {payment_id} does not exist.")
        logger.info(f"Payment {payment_id} updated: {sorted(values)}.")
        return payment

    async def update_status(self, payment_id: UUID, status: str, notes: Optional[str] = None) -> Payment:
        fields = {"status": status}
        if notes is not None:
            fields["notes"] = notes
        return await self.update_payment(payment_id, fields)

    async def get_stats(self, start_date: Optional[date] = None, end_date: Optional[date] = None) -> Dict[str, Any]:
        facts = await self.payment_repository.get_payment_facts(start_date=start_date, end_date=end_date)
        return payment_stats(facts)
