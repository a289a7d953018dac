import os
from dotenv import load_dotenv

load_dotenv()


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


class Config:
    """
    Settings read straight from the environment (or a .env file).
    """
    # Database
    DATABASE_URL: str = os.environ.get("DATABASE_URL")
    DATABASE_POOL_MIN_SIZE: int = int(os.environ.get("DATABASE_POOL_MIN_SIZE", 5))
    DATABASE_POOL_MAX_SIZE: int = int(os.environ.get("DATABASE_POOL_MAX_SIZE", 20))

    # Redis: sessions and rate limiting live in separate databases
    APPLICATION_REDIS_URL: str = os.environ.get("APPLICATION_REDIS_URL")
    RATE_LIMITER_REDIS_URL: str = os.environ.get("RATE_LIMITER_REDIS_URL")
    RATE_LIMIT_ENABLED: bool = _as_bool(os.environ.get("RATE_LIMIT_ENABLED", "true"))

    # JWT and sessions
    SECRET_KEY: str = os.environ.get("SECRET_KEY")
    ALGORITHM: str = os.environ.get("ALGORITHM", "HS256")
    SESSION_TTL_SECONDS: int = int(os.environ.get("SESSION_TTL_SECONDS", 3600))

    # Identity provider (password grant, signup, logout)
    IDENTITY_PROVIDER_URL: str = os.environ.get("IDENTITY_PROVIDER_URL")
    IDENTITY_PROVIDER_API_KEY: str = os.environ.get("IDENTITY_PROVIDER_API_KEY")

    # Generative-text service
    GENERATIVE_API_URL: str = os.environ.get("GENERATIVE_API_URL", "https://generativelanguage.googleapis.com")
    GENERATIVE_API_KEY: str = os.environ.get("GENERATIVE_API_KEY")
    GENERATIVE_MODEL: str = os.environ.get("GENERATIVE_MODEL", "gemini-pro")
    HTTP_TIMEOUT_SECONDS: float = float(os.environ.get("HTTP_TIMEOUT_SECONDS", 30))

    # Risk policy
    AT_RISK_ATTENDANCE_THRESHOLD: float = float(os.environ.get("AT_RISK_ATTENDANCE_THRESHOLD", 70))
    AT_RISK_WINDOW_DAYS: int = int(os.environ.get("AT_RISK_WINDOW_DAYS", 30))
    PAYMENT_GRACE_DAYS: int = int(os.environ.get("PAYMENT_GRACE_DAYS", 30))

    # Logging and HTTP
    LOG_DIR: str = os.environ.get("LOG_DIR", "logs")
    LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO")
    CORS_ORIGINS: list = [origin.strip() for origin in os.environ.get("CORS_ORIGINS", "*").split(",")]


# Single importable instance
settings = Config()
