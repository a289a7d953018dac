from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional
from uuid import UUID
from .db_models import User


class UserSessionRedis(BaseModel):
    """
    A signed-in user's session as stored in Redis.
    """
    user_data: User = Field(..., description="The profile row from the 'users' table.")
    session_id: UUID = Field(..., description="Unique ID for this specific session.")
    session_start_time: datetime = Field(..., description="The time this session began.")
    session_end_time: datetime = Field(..., description="The time this session will expire.")
    provider_access_token: Optional[str] = Field(None, description="The identity provider's token, revoked on logout.")
