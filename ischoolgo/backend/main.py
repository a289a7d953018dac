# ischoolgo/backend/main.py
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import redis.asyncio as redis
import asyncpg
import logging

from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from .config.config import settings
from .api import ai, attendance, auth, dashboard, groups, payments, students
from .api.utilities.limiter import limiter
from .db.db_client import init_connection
from .errors import ServiceError
from .logging.logging_config import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Opens the shared PostgreSQL and Redis pools on start-up and closes them on shutdown."""
    setup_logging()
    logger.info("Application starting...")

    app.state.postgres_pool = None
    app.state.redis_pool = None
    try:
        app.state.postgres_pool = await asyncpg.create_pool(
            dsn=settings.DATABASE_URL,
            min_size=settings.DATABASE_POOL_MIN_SIZE,
            max_size=settings.DATABASE_POOL_MAX_SIZE,
            init=init_connection,
        )
        app.state.redis_pool = redis.ConnectionPool.from_url(
            settings.APPLICATION_REDIS_URL, decode_responses=True
        )
        logger.info("PostgreSQL and Redis pools created.")
    except (OSError, asyncpg.PostgresError, ValueError) as e:
        # Requests will fail with StoreError until the database is reachable
        logger.error(f"Start-up failed while creating connection pools: {e}", exc_info=True)

    yield

    logger.info("Application shutting down...")
    if app.state.postgres_pool:
        await app.state.postgres_pool.close()
        logger.info("PostgreSQL pool closed.")
    if app.state.redis_pool:
        await app.state.redis_pool.disconnect()
        logger.info("Redis pool closed.")


app = FastAPI(
    title="iSchoolGo API",
    description="School management backend: students, groups, payments, attendance and analytics.",
    version="1.0.0",
    lifespan=lifespan,
)

# Set here rather than in the lifespan so it is present when tests skip start-up
app.state.limiter = limiter

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    """Every domain error becomes {"title", "detail"} with the status its class declares."""
    return JSONResponse(status_code=exc.status_code, content={"title": exc.title, "detail": str(exc)})


app.include_router(auth.router, prefix="/api/v1")
app.include_router(students.router, prefix="/api/v1")
app.include_router(groups.router, prefix="/api/v1")
app.include_router(payments.router, prefix="/api/v1")
app.include_router(attendance.router, prefix="/api/v1")
app.include_router(dashboard.router, prefix="/api/v1")
app.include_router(ai.router, prefix="/api/v1")


@app.get("/health", tags=["System"])
def health_check():
    """Liveness probe."""
    return {"status": "ok", "message": "iSchoolGo API is running."}
