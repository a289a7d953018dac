from fastapi import APIRouter, Depends, Query, Request, status
from datetime import date
from typing import Optional
from uuid import UUID

from ..models.db_models import Page, Payment, PaymentFields, PaymentMethod, PaymentStatus, User
from ..services.payment_service import PaymentService
from .schemas.records import PaymentStatsResponse, PaymentStatusUpdateRequest
from .auth import get_current_user
from .dependencies import get_payment_service
from .utilities.limiter import limiter
from .utilities.permissions import ensure_allowed

router = APIRouter(prefix="/payments", tags=["Payments"])


@router.get("", response_model=Page[Payment], summary="List payments, newest payment date first")
@limiter.limit("120/minute")
async def list_payments(
    request: Request,
    page: int = 1,
    limit: int = 10,
    search: Optional[str] = None,
    payment_method: Optional[PaymentMethod] = None,
    student_id: Optional[UUID] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    status_filter: Optional[PaymentStatus] = Query(None, alias="status"),
    user: User = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
):
    ensure_allowed(user, "payments")
    return await service.list_payments(
        page=page,
        limit=limit,
        search=search,
        status=status_filter,
        payment_method=payment_method,
        student_id=student_id,
        start_date=start_date,
        end_date=end_date,
    )


@router.get("/stats", response_model=PaymentStatsResponse, summary="Payment totals for a date range")
@limiter.limit("60/minute")
async def get_payment_stats(
    request: Request,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    user: User = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
):
    ensure_allowed(user, "payments")
    return await service.get_stats(start_date=start_date, end_date=end_date)


@router.get("/{payment_id}", response_model=Payment, summary="Get a payment")
@limiter.limit("120/minute")
async def get_payment(
    request: Request,
    payment_id: UUID,
    user: User = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
):
    ensure_allowed(user, "payments")
    return await service.get_payment(payment_id)


@router.post("", response_model=Payment, status_code=status.HTTP_201_CREATED, summary="Record a payment")
@limiter.limit("30/minute")
async def create_payment(
    request: Request,
    fields: PaymentFields,
    user: User = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
):
    ensure_allowed(user, "payments")
    return await service.create_payment(fields.model_dump(exclude_unset=True), processed_by=user.id)


@router.patch("/{payment_id}", response_model=Payment, summary="Update a payment")
@limiter.limit("30/minute")
async def update_payment(
    request: Request,
    payment_id: UUID,
    fields: PaymentFields,
    user: User = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
):
    ensure_allowed(user, "payments")
    return await service.update_payment(payment_id, fields.model_dump(exclude_unset=True))


@router.patch("/{payment_id}/status", response_model=Payment, summary="Change a payment's status")
@limiter.limit("30/minute")
async def update_payment_status(
    request: Request,
    payment_id: UUID,
    update_request: PaymentStatusUpdateRequest,
    user: User = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
):
    ensure_allowed(user, "payments")
    return await service.update_status(payment_id, update_request.status, notes=update_request.notes)
