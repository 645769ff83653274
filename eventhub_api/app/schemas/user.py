"""
Pydantic models for user accounts.

Defines schemas for registering and authenticating users, updating
profiles and reading user information.  Password hashes are never part
of a response model.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


EMAIL_PATTERN = r"^\S+@\S+\.\S+$"


def normalize_email(value: str) -> str:
    return value.strip().lower()


class SocialLinks(BaseModel):
    linkedin: Optional[str] = None
    twitter: Optional[str] = None
    website: Optional[str] = None


class UserRegister(BaseModel):
    email: str = Field(..., pattern=EMAIL_PATTERN, example="ada@example.com")
    password: str = Field(..., min_length=6, example="strongpassword")
    name: str = Field(..., min_length=2, max_length=100, example="Ada Lovelace")
    company: Optional[str] = Field(None, example="Analytical Engines Ltd")
    job_title: Optional[str] = Field(None, example="Engineer")

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: str) -> str:
        return normalize_email(value)

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        return value.strip()


class UserLogin(BaseModel):
    email: str = Field(..., pattern=EMAIL_PATTERN, example="ada@example.com")
    password: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: str) -> str:
        return normalize_email(value)


class ProfileUpdate(BaseModel):
    """Partial profile update; omitted fields stay unchanged."""

    name: Optional[str] = Field(None, min_length=2, max_length=100)
    company: Optional[str] = None
    job_title: Optional[str] = None
    bio: Optional[str] = Field(None, max_length=500)
    phone: Optional[str] = None
    profile_image: Optional[str] = None
    interests: Optional[List[str]] = None
    social_links: Optional[SocialLinks] = None

    @field_validator("name", "company", "job_title", "bio", "phone")
    @classmethod
    def _strip(cls, value: Optional[str]) -> Optional[str]:
        return value.strip() if value is not None else None


class UserAdminUpdate(ProfileUpdate):
    """Fields an administrator may change on a user account."""

    email: Optional[str] = Field(None, pattern=EMAIL_PATTERN)
    is_active: Optional[bool] = None

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: Optional[str]) -> Optional[str]:
        return normalize_email(value) if value is not None else None


class UserRead(BaseModel):
    """Schema for reading a user from the API."""

    id: int
    email: str
    name: str
    profile_image: Optional[str] = None
    bio: Optional[str] = None
    company: Optional[str] = None
    job_title: Optional[str] = None
    phone: Optional[str] = None
    interests: List[str] = Field(default_factory=list)
    social_links: SocialLinks = Field(default_factory=SocialLinks)
    is_active: bool = True
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    connections_count: int = 0
    events_attending_count: int = 0
    events_organized_count: int = 0

    model_config = {
        "from_attributes": True,
    }


class UserSummary(BaseModel):
    """Compact user card used in search results, suggestions and connection lists."""

    id: int
    name: str
    email: Optional[str] = None
    profile_image: Optional[str] = None
    company: Optional[str] = None
    job_title: Optional[str] = None
    bio: Optional[str] = None
    interests: List[str] = Field(default_factory=list)


class PublicProfile(BaseModel):
    id: int
    name: str
    profile_image: Optional[str] = None
    bio: Optional[str] = None
    company: Optional[str] = None
    job_title: Optional[str] = None
    interests: List[str] = Field(default_factory=list)
    social_links: SocialLinks = Field(default_factory=SocialLinks)
    created_at: Optional[datetime] = None
    is_connected: bool = False
    mutual_connections: int = 0
    events_organized_count: int = 0
