import logging
from fastapi import APIRouter, Depends, HTTPException, status, Response, Request
from fastapi.security import OAuth2PasswordBearer, OAuth2PasswordRequestForm
from datetime import datetime, timedelta, timezone
from uuid import UUID, uuid4
import jwt
from pydantic import ValidationError as PydanticValidationError

from .schemas.user import Token, TokenData, LoginRequest, UserResponse, LoginResponse, RegisterRequest
from ..modules.identity_provider import IdentityProviderClient, IdentityAuthError, IdentitySessionError
from ..models.db_models import User, UserFields
from ..models.redis_models import UserSessionRedis
from ..db.db_client import AsyncPostgresClient
from ..db.redis_client import RedisClient
from ..config.config import settings
from ..errors import AuthenticationError, AuthorizationError, ConflictError, ExternalServiceError, ValidationError
from ..services.validation import validate_fields
from .dependencies import get_identity_provider, get_redis_client, get_user_repository
from .utilities.limiter import limiter
from .utilities.permissions import ensure_allowed

logger = logging.getLogger(__name__)

# --- Router and security setup ---
router = APIRouter(
    prefix="/auth",
    tags=["Authentication"]
)
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/token")


# --- Helpers ---
def create_access_token(data: dict, expires_delta: timedelta) -> str:
    """Signs a JWT carrying `data` that expires after `expires_delta`."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + expires_delta
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


# --- Dependency for protected routes ---
async def get_current_user(
    token: str = Depends(oauth2_scheme),
    redis_client: RedisClient = Depends(get_redis_client),
) -> User:
    """
    Decodes the token, checks that a live session exists in Redis and returns
    the profile stored with that session.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        token_data = TokenData.model_validate(payload)
        if token_data.sub is None:
            logger.warning(f"Token is valid but has no subject: {payload}")
            raise credentials_exception
        user_id = UUID(token_data.sub)
    except (jwt.PyJWTError, PydanticValidationError, ValueError) as e:
        logger.warning(f"Token validation error: {e}")
        raise credentials_exception

    user_session = await redis_client.get_user_session(user_id)
    if user_session is None:
        logger.warning(f"User {user_id} has a valid token but no session in Redis. Denying access.")
        raise credentials_exception
    return user_session.user_data


# --- Login flow ---

async def _perform_login(
    email: str,
    password: str,
    identity: IdentityProviderClient,
    users: AsyncPostgresClient,
    redis_client: RedisClient,
) -> LoginResponse:
    logger.info(f"Login attempt for '{email}'.")
    try:
        result = await identity.sign_in(email, password)
    except IdentityAuthError as e:
        raise AuthenticationError("Invalid email or password.") from e
    except IdentitySessionError as e:
        raise ExternalServiceError("The identity provider is currently unavailable.") from e

    user = await users.get_user_by_id(result["user_id"])
    if user is None:
        logger.warning(f"'{email}' authenticated but has no staff profile.")
        raise AuthorizationError("No staff profile is linked to this account.")
    if user.status != "active":
        logger.warning(f"'{email}' tried to sign in with a {user.status} profile.")
        raise AuthorizationError(f"This account is {user.status}.")

    await users.touch_last_login(user.id)
    now = datetime.now(timezone.utc)
    user.last_login = now

    ttl = settings.SESSION_TTL_SECONDS
    session = UserSessionRedis(
        user_data=user,
        session_id=uuid4(),
        session_start_time=now,
        session_end_time=now + timedelta(seconds=ttl),
        provider_access_token=result.get("access_token"),
    )
    await redis_client.save_user_session(session, ttl=ttl)

    access_token = create_access_token({"sub": str(user.id), "role": user.role}, expires_delta=timedelta(seconds=ttl))
    logger.info(f"User {user.id} ({user.role}) logged in; session TTL {ttl}s.")
    return LoginResponse(token=Token(access_token=access_token), user=UserResponse.model_validate(user))


# --- Endpoints ---

@router.post("/token", response_model=Token)
@limiter.limit("20/minute")
async def login_for_access_token(
    request: Request,
    form_data: OAuth2PasswordRequestForm = Depends(),
    identity: IdentityProviderClient = Depends(get_identity_provider),
    users: AsyncPostgresClient = Depends(get_user_repository),
    redis_client: RedisClient = Depends(get_redis_client),
):
    """Standard OAuth2 endpoint for Swagger UI; the username field carries the email."""
    login_response = await _perform_login(form_data.username, form_data.password, identity, users, redis_client)
    return login_response.token


@router.post("/login", response_model=LoginResponse)
@limiter.limit("20/minute")
async def login(
    request: Request,
    login_request: LoginRequest,
    identity: IdentityProviderClient = Depends(get_identity_provider),
    users: AsyncPostgresClient = Depends(get_user_repository),
    redis_client: RedisClient = Depends(get_redis_client),
):
    return await _perform_login(login_request.email, login_request.password, identity, users, redis_client)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("60/minute")
async def logout(
    request: Request,
    current_user: User = Depends(get_current_user),
    identity: IdentityProviderClient = Depends(get_identity_provider),
    redis_client: RedisClient = Depends(get_redis_client),
):
    """Deletes the Redis session and revokes the provider token."""
    session = await redis_client.get_user_session(current_user.id)
    await redis_client.delete_user_session(current_user.id)
    if session and session.provider_access_token:
        await identity.sign_out(session.provider_access_token)
    logger.info(f"User {current_user.id} logged out.")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/me", response_model=UserResponse)
@limiter.limit("120/minute")
async def me(request: Request, current_user: User = Depends(get_current_user)):
    return current_user


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("10/minute")
async def register(
    request: Request,
    register_request: RegisterRequest,
    current_user: User = Depends(get_current_user),
    identity: IdentityProviderClient = Depends(get_identity_provider),
    users: AsyncPostgresClient = Depends(get_user_repository),
):
    """Creates a staff account at the identity provider and its profile row."""
    ensure_allowed(current_user, "settings")
    fields = validate_fields(UserFields, register_request.model_dump(exclude={"password"}, exclude_none=True))

    if await users.get_user_by_email(register_request.email) is not None:
        raise ConflictError(f"A user with email '{register_request.email}' already exists.")
    try:
        user_id = await identity.sign_up(register_request.email, register_request.password)
    except IdentityAuthError as e:
        raise ValidationError(str(e)) from e
    except IdentitySessionError as e:
        raise ExternalServiceError("The identity provider is currently unavailable.") from e

    user = await users.add_user(user_id, fields)
    logger.info(f"User {user.id} ({user.role}) registered by {current_user.id}.")
    return user
