# ischoolgo/backend/api/dependencies.py
from typing import AsyncIterator
from fastapi import Request, Depends
import redis.asyncio as redis
import asyncpg
import httpx

from ..config.config import settings
from ..modules.identity_provider import IdentityProviderClient
from ..db.attendance_repository import AttendanceRepository
from ..db.db_client import AsyncPostgresClient
from ..db.group_repository import GroupRepository
from ..db.payment_repository import PaymentRepository
from ..db.redis_client import RedisClient
from ..db.student_repository import StudentRepository
from ..services.ai_service import AIService
from ..services.attendance_service import AttendanceService
from ..services.dashboard_service import DashboardService
from ..services.group_service import GroupService
from ..services.payment_service import PaymentService
from ..services.student_service import StudentService
from ..tools.generative_text import GenerativeTextClient


def get_redis_pool(request: Request) -> redis.ConnectionPool:
    """The shared Redis pool created at start-up."""
    return request.app.state.redis_pool


def get_postgres_pool(request: Request) -> asyncpg.Pool:
    """The shared PostgreSQL pool created at start-up."""
    return request.app.state.postgres_pool


def get_redis_client(redis_pool: redis.ConnectionPool = Depends(get_redis_pool)) -> RedisClient:
    return RedisClient(pool=redis_pool)


def get_user_repository(postgres_pool: asyncpg.Pool = Depends(get_postgres_pool)) -> AsyncPostgresClient:
    return AsyncPostgresClient(pool=postgres_pool)


def get_text_client() -> GenerativeTextClient:
    return GenerativeTextClient()


async def get_identity_provider() -> AsyncIterator[IdentityProviderClient]:
    """An identity provider client on its own short-lived HTTP client, closed after the request."""
    async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS) as http_client:
        yield IdentityProviderClient(http_client=http_client)


# --- Services ---
# A fresh service per request, built on the shared pools.

def get_student_service(postgres_pool: asyncpg.Pool = Depends(get_postgres_pool)) -> StudentService:
    return StudentService(
        student_repository=StudentRepository(pool=postgres_pool),
        group_repository=GroupRepository(pool=postgres_pool),
    )


def get_group_service(postgres_pool: asyncpg.Pool = Depends(get_postgres_pool)) -> GroupService:
    return GroupService(
        group_repository=GroupRepository(pool=postgres_pool),
        student_repository=StudentRepository(pool=postgres_pool),
        attendance_repository=AttendanceRepository(pool=postgres_pool),
        user_repository=AsyncPostgresClient(pool=postgres_pool),
    )


def get_payment_service(postgres_pool: asyncpg.Pool = Depends(get_postgres_pool)) -> PaymentService:
    return PaymentService(
        payment_repository=PaymentRepository(pool=postgres_pool),
        student_repository=StudentRepository(pool=postgres_pool),
    )


def get_attendance_service(postgres_pool: asyncpg.Pool = Depends(get_postgres_pool)) -> AttendanceService:
    return AttendanceService(
        attendance_repository=AttendanceRepository(pool=postgres_pool),
        student_repository=StudentRepository(pool=postgres_pool),
        group_repository=GroupRepository(pool=postgres_pool),
    )


def get_dashboard_service(postgres_pool: asyncpg.Pool = Depends(get_postgres_pool)) -> DashboardService:
    return DashboardService(
        student_repository=StudentRepository(pool=postgres_pool),
        group_repository=GroupRepository(pool=postgres_pool),
        payment_repository=PaymentRepository(pool=postgres_pool),
        attendance_repository=AttendanceRepository(pool=postgres_pool),
        user_repository=AsyncPostgresClient(pool=postgres_pool),
    )


def get_ai_service(
    postgres_pool: asyncpg.Pool = Depends(get_postgres_pool),
    text_client: GenerativeTextClient = Depends(get_text_client),
) -> AIService:
    return AIService(text_client=text_client, student_repository=StudentRepository(pool=postgres_pool))
