# ischoolgo/backend/api/schemas/user.py
from pydantic import BaseModel, ConfigDict, Field
from datetime import date, datetime
from typing import Optional
from uuid import UUID

from ...models.db_models import Role


class LoginRequest(BaseModel):
    email: str
    password: str


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserResponse(BaseModel):
    id: UUID
    email: str
    name: str
    role: str
    status: str
    phone: Optional[str] = None
    avatar: Optional[str] = None
    last_login: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class LoginResponse(BaseModel):
    token: Token
    user: UserResponse


class RegisterRequest(BaseModel):
    """A new staff account: credentials for the identity provider plus the profile."""
    email: str
    password: str = Field(..., min_length=8)
    name: str = Field(..., min_length=1)
    role: Role
    phone: Optional[str] = None
    address: Optional[str] = None
    hire_date: Optional[date] = None
    salary: Optional[float] = Field(None, ge=0)


# Internal representation of JWT data
class TokenData(BaseModel):
    sub: Optional[str] = None
    role: Optional[str] = None
