from datetime import date
from typing import Any, Dict, List, Optional
from uuid import UUID

from .db_client import AsyncPostgresClient, WhereClause, like_pattern
from ..models.db_models import Page, Payment

_PAYMENT_SELECT = """
    SELECT p.*, s.name AS student_name, g.name AS group_name
    FROM payments p
    LEFT JOIN students s ON s.id = p.student_id
    LEFT JOIN groups g ON g.id = s.group_id
"""


class PaymentRepository(AsyncPostgresClient):
    """Queries over the 'payments' fact table."""

    async def list_payments(
        self,
        page: int,
        limit: int,
        search: Optional[str] = None,
        status: Optional[str] = None,
        payment_method: Optional[str] = None,
        student_id: Optional[UUID] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Page[Payment]:
        where = WhereClause()
        where.add_if(like_pattern(search) if search else None, "p.receipt_number ILIKE {0} ESCAPE '\\'")
        where.add_if(status, "p.status = {0}")
        where.add_if(payment_method, "p.payment_method = {0}")
        where.add_if(student_id, "p.student_id = {0}")
        where.add_if(start_date, "p.payment_date >= {0}")
        where.add_if(end_date, "p.payment_date <= {0}")
        return await self._paginate(
            Payment,
            select_sql=_PAYMENT_SELECT,
            count_sql="SELECT COUNT(*) FROM payments p",
            where=where,
            order_by="p.payment_date DESC, p.created_at DESC, p.id",
            page=page,
            limit=limit,
        )

    async def get_payment(self, payment_id: UUID) -> Optional[Payment]:
        record = await self._fetchrow(f"{_PAYMENT_SELECT} WHERE p.id = $1;", payment_id)
        return Payment(**record) if record else None

    async def add_payment(self, fields: Dict[str, Any]) -> Payment:
        record = await self._insert("payments", fields)
        return Payment(**record)

    async def update_payment(self, payment_id: UUID, fields: Dict[str, Any]) -> Optional[Payment]:
        record = await self._update("payments", payment_id, fields)
        return Payment(**record) if record else None

    async def get_payment_facts(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        status: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Raw (amount, status, payment_date) rows for aggregation, oldest first."""
        where = WhereClause()
        where.add_if(start_date, "payment_date >= {0}")
        where.add_if(end_date, "payment_date <= {0}")
        where.add_if(status, "status = {0}")
        query = f"SELECT amount, status, payment_date FROM payments {where.sql()} ORDER BY payment_date;"
        records = await self._fetch(query, *where.args)
        return [dict(record) for record in records]
