"""
Pydantic models for event data.

``EventCreate`` validates the request body for a new event,
``EventUpdate`` carries a partial update and ``EventRead`` is the
response shape with the derived ``available_spots`` and ``is_active``
values.  Nested documents (location, sessions, sponsors, settings) are
stored as JSON text in the ``events`` table and validated here.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from eventhub_api.app.core.roster import AttendeeStatus
from eventhub_api.app.core.timeutils import to_utc


class EventCategory(str, Enum):
    CONFERENCE = "conference"
    WORKSHOP = "workshop"
    NETWORKING = "networking"
    SEMINAR = "seminar"
    SOCIAL = "social"
    OTHER = "other"


class EventStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Currency(str, Enum):
    USD = "USD"
    EUR = "EUR"
    GBP = "GBP"
    CAD = "CAD"
    AUD = "AUD"


class SponsorTier(str, Enum):
    PLATINUM = "platinum"
    GOLD = "gold"
    SILVER = "silver"
    BRONZE = "bronze"


class Coordinates(BaseModel):
    lat: float = Field(..., ge=-90, le=90, example=52.52)
    lng: float = Field(..., ge=-180, le=180, example=13.405)


class Location(BaseModel):
    venue: str = Field(..., min_length=1, example="Tech Hub")
    address: str = Field(..., min_length=1, example="1 Main Street")
    city: str = Field(..., min_length=1, example="Berlin")
    state: Optional[str] = None
    country: str = Field(..., min_length=1, example="Germany")
    zip_code: Optional[str] = None
    coordinates: Optional[Coordinates] = None


class EventImage(BaseModel):
    url: str
    caption: Optional[str] = None


class EventSession(BaseModel):
    title: str = Field(..., example="Opening keynote")
    description: Optional[str] = None
    speaker: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    location: Optional[str] = None


class Sponsor(BaseModel):
    name: str
    logo: Optional[str] = None
    website: Optional[str] = None
    tier: Optional[SponsorTier] = None


class EventSettings(BaseModel):
    registration_open: bool = True
    # Stored for clients; registrations are never held for approval.
    require_approval: bool = False
    allow_waitlist: bool = True
    show_attendees_count: bool = True
    allow_cancellation: bool = True
    cancellation_deadline: Optional[datetime] = None


class EventAnalytics(BaseModel):
    views: int = 0
    shares: int = 0
    registration_conversion: float = 0


def _normalize_tags(tags: Optional[List[str]]) -> Optional[List[str]]:
    if tags is None:
        return None
    return [tag.strip().lower() for tag in tags if tag and tag.strip()]


class EventBase(BaseModel):
    title: str = Field(..., min_length=3, max_length=200, example="Python Meetup")
    description: str = Field(..., min_length=10, max_length=2000, example="Monthly meetup for Python developers")
    category: EventCategory = Field(..., example="networking")
    date_time: datetime = Field(..., example="2025-09-01T18:00:00Z")
    end_date_time: datetime = Field(..., example="2025-09-01T21:00:00Z")
    location: Location
    is_virtual: bool = False
    virtual_link: Optional[str] = None
    capacity: int = Field(..., ge=1, example=50)
    price: float = Field(0, ge=0, example=0)
    currency: Currency = Currency.USD
    images: List[EventImage] = Field(default_factory=list)
    cover_image: Optional[str] = None
    tags: List[str] = Field(default_factory=list, example=["python", "community"])
    sessions: List[EventSession] = Field(default_factory=list)
    sponsors: List[Sponsor] = Field(default_factory=list)
    settings: EventSettings = Field(default_factory=EventSettings)


class EventCreate(EventBase):
    """Schema for creating an event."""

    @field_validator("date_time", "end_date_time")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        return to_utc(value)

    @field_validator("title", "description")
    @classmethod
    def _strip(cls, value: str) -> str:
        return value.strip()

    @field_validator("tags")
    @classmethod
    def _lowercase_tags(cls, value: List[str]) -> List[str]:
        return _normalize_tags(value) or []

    @model_validator(mode="after")
    def _check_consistency(self) -> "EventCreate":
        if self.end_date_time <= self.date_time:
            raise ValueError("End date must be after start date")
        if self.is_virtual and not self.virtual_link:
            raise ValueError("virtual_link is required for virtual events")
        return self


class EventUpdate(BaseModel):
    """Schema for updating an event.

    All fields are optional; only provided fields will be updated.  The
    date ordering and virtual link rules are checked by the service
    against the merged event.
    """

    title: Optional[str] = Field(None, min_length=3, max_length=200)
    description: Optional[str] = Field(None, min_length=10, max_length=2000)
    category: Optional[EventCategory] = None
    status: Optional[EventStatus] = None
    date_time: Optional[datetime] = None
    end_date_time: Optional[datetime] = None
    location: Optional[Location] = None
    is_virtual: Optional[bool] = None
    virtual_link: Optional[str] = None
    capacity: Optional[int] = Field(None, ge=1)
    price: Optional[float] = Field(None, ge=0)
    currency: Optional[Currency] = None
    images: Optional[List[EventImage]] = None
    cover_image: Optional[str] = None
    tags: Optional[List[str]] = None
    sessions: Optional[List[EventSession]] = None
    sponsors: Optional[List[Sponsor]] = None
    settings: Optional[EventSettings] = None

    @field_validator("date_time", "end_date_time")
    @classmethod
    def _as_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_utc(value) if value is not None else None

    @field_validator("tags")
    @classmethod
    def _lowercase_tags(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        return _normalize_tags(value)


class RegistrationRequest(BaseModel):
    ticket_type: Optional[str] = Field(None, example="general")


class OrganizerSummary(BaseModel):
    id: int
    name: str
    email: Optional[str] = None
    company: Optional[str] = None
    job_title: Optional[str] = None
    profile_image: Optional[str] = None


class AttendeeRead(BaseModel):
    user_id: int
    name: Optional[str] = None
    email: Optional[str] = None
    company: Optional[str] = None
    job_title: Optional[str] = None
    profile_image: Optional[str] = None
    status: AttendeeStatus
    registered_at: datetime
    check_in_time: Optional[datetime] = None
    ticket_type: Optional[str] = None


class EventRead(EventBase):
    """Schema for reading an event from the API."""

    id: int
    organizer_id: int
    organizer: Optional[OrganizerSummary] = None
    status: EventStatus
    analytics: EventAnalytics = Field(default_factory=EventAnalytics)
    attendees_count: int = 0
    waitlist_count: int = 0
    available_spots: int
    is_active: bool
    attendees: Optional[List[AttendeeRead]] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {
        "from_attributes": True,
    }


class RegistrationResult(BaseModel):
    """Outcome of a register/unregister/check-in call."""

    event_id: int
    user_id: int
    status: Optional[AttendeeStatus] = None
    available_spots: int
    promoted_user_ids: List[int] = Field(default_factory=list)
