"""
Pydantic models for administrator accounts.

Admins authenticate with a username instead of an email address and
carry a role (``owner`` or ``user``) from which their permission flags
are derived.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, Field, field_validator

from .user import EMAIL_PATTERN, normalize_email


class AdminRole(str, Enum):
    OWNER = "owner"
    USER = "user"


class AdminLogin(BaseModel):
    username: str = Field(..., min_length=3, example="admin")
    password: str = Field(..., min_length=1)

    @field_validator("username")
    @classmethod
    def _normalize_username(cls, value: str) -> str:
        return value.strip().lower()


class AdminCreate(BaseModel):
    username: str = Field(..., min_length=3, max_length=50, example="moderator")
    email: str = Field(..., pattern=EMAIL_PATTERN, example="moderator@example.com")
    password: str = Field(..., min_length=6)
    name: str = Field(..., min_length=2, max_length=100, example="Grace Hopper")
    role: AdminRole = AdminRole.USER

    @field_validator("username")
    @classmethod
    def _normalize_username(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: str) -> str:
        return normalize_email(value)


class OwnerCreate(BaseModel):
    """Payload of the one-time owner bootstrap; the role is always ``owner``."""

    username: str = Field(..., min_length=3, max_length=50, example="admin")
    email: str = Field(..., pattern=EMAIL_PATTERN, example="owner@example.com")
    password: str = Field(..., min_length=6)
    name: str = Field(..., min_length=2, max_length=100)

    @field_validator("username")
    @classmethod
    def _normalize_username(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: str) -> str:
        return normalize_email(value)


class AdminUpdate(BaseModel):
    email: Optional[str] = Field(None, pattern=EMAIL_PATTERN)
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    role: Optional[AdminRole] = None
    is_active: Optional[bool] = None

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: Optional[str]) -> Optional[str]:
        return normalize_email(value) if value is not None else None


class AdminProfileUpdate(BaseModel):
    """What an admin may change on their own account via ``PUT /auth/me``."""

    email: Optional[str] = Field(None, pattern=EMAIL_PATTERN)
    name: Optional[str] = Field(None, min_length=2, max_length=100)

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: Optional[str]) -> Optional[str]:
        return normalize_email(value) if value is not None else None


class AdminRead(BaseModel):
    id: int
    username: str
    email: str
    name: str
    role: AdminRole
    permissions: Dict[str, bool]
    is_active: bool = True
    last_login: Optional[datetime] = None
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {
        "from_attributes": True,
    }
