from fastapi import APIRouter, Depends, Request
from typing import List, Optional

from ..models.db_models import User
from ..services.dashboard_service import DashboardService
from .schemas.records import DashboardOverview, EnrollmentPoint, RevenuePoint, TopGroup
from .auth import get_current_user
from .dependencies import get_dashboard_service
from .utilities.limiter import limiter
from .utilities.permissions import ensure_allowed

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get("/overview", response_model=DashboardOverview, summary="Headline counts for a timeframe")
@limiter.limit("60/minute")
async def get_overview(
    request: Request,
    timeframe: Optional[str] = None,
    user: User = Depends(get_current_user),
    service: DashboardService = Depends(get_dashboard_service),
):
    """timeframe: 'week' (7 days), 'year' (365 days), anything else 30 days."""
    ensure_allowed(user, "dashboard")
    return await service.get_overview(timeframe)


@router.get("/top-groups", response_model=List[TopGroup], summary="Best-attended active groups")
@limiter.limit("60/minute")
async def get_top_groups(
    request: Request,
    user: User = Depends(get_current_user),
    service: DashboardService = Depends(get_dashboard_service),
):
    ensure_allowed(user, "dashboard")
    return await service.get_top_groups()


@router.get("/revenue", response_model=List[RevenuePoint], summary="Completed revenue per month, last 365 days")
@limiter.limit("60/minute")
async def get_revenue_by_month(
    request: Request,
    user: User = Depends(get_current_user),
    service: DashboardService = Depends(get_dashboard_service),
):
    ensure_allowed(user, "analytics")
    return await service.get_revenue_by_month()


@router.get("/enrollments", response_model=List[EnrollmentPoint], summary="Enrollments per month, last 365 days")
@limiter.limit("60/minute")
async def get_enrollment_trends(
    request: Request,
    user: User = Depends(get_current_user),
    service: DashboardService = Depends(get_dashboard_service),
):
    ensure_allowed(user, "analytics")
    return await service.get_enrollment_trends()
