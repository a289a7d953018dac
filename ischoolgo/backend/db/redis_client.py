import logging
from typing import Optional
from uuid import UUID
import redis.asyncio as redis

from ..models.redis_models import UserSessionRedis

logger = logging.getLogger(__name__)


class RedisClient:
    """
    Session store on Redis. One key per signed-in user, expiring with the session.
    """

    def __init__(self, pool: redis.ConnectionPool):
        self._redis = redis.Redis(connection_pool=pool, decode_responses=True)

    @staticmethod
    def _session_key(user_id: UUID) -> str:
        return f"users:{user_id}"

    async def save_user_session(self, session: UserSessionRedis, ttl: int):
        """Stores the session with a TTL, replacing any earlier session of the same user."""
        await self._redis.set(self._session_key(session.user_data.id), session.model_dump_json(), ex=ttl)

    async def get_user_session(self, user_id: UUID) -> Optional[UserSessionRedis]:
        session_json = await self._redis.get(self._session_key(user_id))
        return UserSessionRedis.model_validate_json(session_json) if session_json else None

    async def delete_user_session(self, user_id: UUID) -> int:
        return await self._redis.delete(self._session_key(user_id))
