"""User & authentication schemas."""

import uuid
from datetime import datetime
from enum import Enum

from pydantic import Field

from edutest.schemas.quiz import CamelModel


class Role(str, Enum):
    USER = "user"
    ADMIN = "admin"


class UserCreate(CamelModel):
    """POST /api/auth/register"""

    full_name: str = Field(min_length=2, max_length=100)
    user_name: str = Field(min_length=3, max_length=50, pattern=r"^[a-zA-Z0-9_]+$")
    password: str = Field(min_length=6)


class UserLogin(CamelModel):
    """POST /api/auth/login"""

    user_name: str
    password: str


class UserRead(CamelModel):
    """User returned from API — never exposes password."""

    id: uuid.UUID
    user_name: str
    full_name: str
    role: Role
    is_active: bool
    created_at: datetime


class AuthResponse(CamelModel):
    """Combined auth response: token + user profile."""

    access_token: str
    token_type: str = "bearer"
    user: UserRead
