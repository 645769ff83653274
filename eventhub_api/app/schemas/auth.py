"""Request and response models for the authentication endpoints."""

from typing import Optional

from pydantic import BaseModel, Field

from .admin import AdminRead
from .user import UserRead


class PasswordChange(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6)


class UserToken(BaseModel):
    token: str
    user: UserRead


class AdminToken(BaseModel):
    token: str
    admin: AdminRead


class Me(BaseModel):
    """``GET /auth/me`` returns exactly one of ``user`` and ``admin``."""

    user: Optional[UserRead] = None
    admin: Optional[AdminRead] = None
