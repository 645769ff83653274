"""
Event endpoints for API v1.

Listing, search and single-event reads are public; an authenticated
viewer of a single event counts as a view.  Creating events and the
registration lifecycle (register, unregister, check-in) require a user
account, and only the organizer may update or delete an event.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query, status

from eventhub_api.app.core.roster import AttendeeStatus
from eventhub_api.app.core.security import (
    ACCOUNT_USER,
    get_current_account,
    get_optional_account,
    require_user,
)
from eventhub_api.app.schemas.common import PageParams, envelope, page_params
from eventhub_api.app.schemas.event import (
    EventCategory,
    EventCreate,
    EventStatus,
    EventUpdate,
    RegistrationRequest,
)
from eventhub_api.app.services.event_service import EventService
from eventhub_api.app.services.registration_service import RegistrationService


router = APIRouter()


@router.get("/")
async def list_events(
    page: PageParams = Depends(page_params),
    category: Optional[EventCategory] = Query(None),
    location: Optional[str] = Query(None, description="Matches city, country or venue"),
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    price_min: Optional[float] = Query(None, ge=0),
    price_max: Optional[float] = Query(None, ge=0),
    is_virtual: Optional[bool] = Query(None),
    event_status: EventStatus = Query(EventStatus.ACTIVE, alias="status"),
) -> dict:
    """List events, soonest first.

    - **category**, **is_virtual**: exact filters.
    - **location**: case-insensitive substring of city, country or venue.
    - **date_from**, **date_to**: bounds on the start time (ISO 8601).
    - **price_min**, **price_max**: bounds on the ticket price.
    - **status**: defaults to `active`.
    """
    events, total = await EventService.list_events(
        limit=page.limit,
        offset=page.offset,
        status=event_status.value,
        category=category.value if category else None,
        location=location,
        date_from=date_from,
        date_to=date_to,
        price_min=price_min,
        price_max=price_max,
        is_virtual=is_virtual,
    )
    return envelope(events, pagination=page.paginate(total))


@router.get("/search")
async def search_events(
    q: Optional[str] = Query(None),
    page: PageParams = Depends(page_params),
) -> dict:
    events, total = await EventService.search_events(q or "", page.limit, page.offset)
    return envelope(events, pagination=page.paginate(total))


@router.get("/category/{category}")
async def events_by_category(
    category: EventCategory,
    page: PageParams = Depends(page_params),
) -> dict:
    events, total = await EventService.events_by_category(category.value, page.limit, page.offset)
    return envelope(events, pagination=page.paginate(total))


@router.get("/user/attending")
async def attending_events(principal: dict = Depends(require_user)) -> dict:
    """Events the caller is registered, waitlisted or checked in for."""
    return envelope(await EventService.attending_events(principal["id"]))


@router.get("/user/organized")
async def organized_events(principal: dict = Depends(require_user)) -> dict:
    return envelope(await EventService.organized_events(principal["id"]))


@router.get("/{event_id}")
async def get_event(
    event_id: int,
    principal: Optional[dict] = Depends(get_optional_account),
) -> dict:
    event = await EventService.get_event(event_id, count_view=principal is not None)
    return envelope(event)


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_event(
    data: EventCreate,
    principal: dict = Depends(require_user),
) -> dict:
    """Create an event in `draft` status; the caller becomes its organizer."""
    event = await EventService.create_event(data, principal["id"])
    return envelope(event, message="Event created successfully")


@router.put("/{event_id}")
async def update_event(
    event_id: int,
    updates: EventUpdate,
    principal: dict = Depends(require_user),
) -> dict:
    """Partially update an event (organizer only).

    Raising the capacity promotes waitlisted attendees into the new seats.
    """
    event = await EventService.update_event(event_id, updates, actor_user_id=principal["id"])
    return envelope(event, message="Event updated successfully")


@router.delete("/{event_id}")
async def delete_event(
    event_id: int,
    principal: dict = Depends(require_user),
) -> dict:
    await EventService.delete_event(event_id, actor_user_id=principal["id"])
    return envelope(message="Event deleted successfully")


@router.post("/{event_id}/register")
async def register_for_event(
    event_id: int,
    data: Optional[RegistrationRequest] = Body(None),
    principal: dict = Depends(require_user),
) -> dict:
    """Register the caller.

    The caller is seated when a spot is free and waitlisted otherwise;
    a full event without a waitlist answers `EventFull`.
    """
    result = await RegistrationService.register(
        event_id, principal["id"], ticket_type=data.ticket_type if data else None
    )
    if result.status == AttendeeStatus.WAITLISTED:
        message = "Event is full; you have been added to the waitlist"
    else:
        message = "Successfully registered for event"
    return envelope(result, message=message)


@router.post("/{event_id}/unregister")
async def unregister_from_event(
    event_id: int,
    principal: dict = Depends(require_user),
) -> dict:
    result = await RegistrationService.unregister(event_id, principal["id"])
    return envelope(result, message="Successfully unregistered from event")


@router.post("/{event_id}/checkin")
async def check_in(
    event_id: int,
    principal: dict = Depends(require_user),
) -> dict:
    result = await RegistrationService.check_in(event_id, principal["id"])
    return envelope(result, message="Successfully checked in to event")


@router.get("/{event_id}/attendees")
async def event_attendees(
    event_id: int,
    principal: dict = Depends(get_current_account),
) -> dict:
    """Attendee list; only the organizer sees waitlisted users."""
    viewer_id = principal["id"] if principal["type"] == ACCOUNT_USER else None
    return envelope(await EventService.list_attendees(event_id, viewer_user_id=viewer_id))


@router.get("/{event_id}/sessions")
async def event_sessions(
    event_id: int,
    principal: dict = Depends(get_current_account),
) -> dict:
    return envelope(await EventService.list_sessions(event_id))
