"""
Business logic for events.

Events are stored in the ``events`` table with their nested documents
(location, images, tags, sessions, sponsors, settings) kept as JSON
text.  Attendee records live in ``event_attendees``; the derived
values ``available_spots`` and ``is_active`` are computed on every read
and never stored.

Organizer checks are done here rather than in the endpoints: methods
that mutate an event accept ``actor_user_id`` and raise
``AuthorizationError`` when it does not match the organizer.  Admin
endpoints pass ``None`` to skip the check.
"""

import logging
import sqlite3
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from eventhub_api.app.core.db import from_json, get_cursor, to_json, transaction
from eventhub_api.app.core.errors import AuthorizationError, NotFoundError, ValidationError
from eventhub_api.app.core.roster import SEATED_STATUSES, AttendeeStatus
from eventhub_api.app.core.timeutils import parse_iso, to_iso, utcnow
from eventhub_api.app.schemas.event import (
    AttendeeRead,
    EventAnalytics,
    EventCreate,
    EventRead,
    EventStatus,
    EventUpdate,
    OrganizerSummary,
)
from eventhub_api.app.services.registration_service import RegistrationService


logger = logging.getLogger(__name__)


_EVENT_SELECT = """
    SELECT e.*,
           u.name AS organizer_name,
           u.email AS organizer_email,
           u.company AS organizer_company,
           u.job_title AS organizer_job_title,
           u.profile_image AS organizer_profile_image
    FROM events e
    LEFT JOIN users u ON u.id = e.organizer_id
"""

# Nested documents stored as JSON text.
_JSON_FIELDS = ("location", "images", "tags", "sessions", "sponsors", "settings")

_DATETIME_FIELDS = ("date_time", "end_date_time")

# Columns an update may explicitly clear.
_NULLABLE_FIELDS = ("virtual_link", "cover_image")


def _attendee_counts(cursor: sqlite3.Cursor, event_ids: List[int]) -> Dict[int, Dict[str, int]]:
    """Return ``{event_id: {status: count}}`` for the given events."""
    counts: Dict[int, Dict[str, int]] = {event_id: {} for event_id in event_ids}
    if not event_ids:
        return counts
    placeholders = ",".join("?" for _ in event_ids)
    rows = cursor.execute(
        f"SELECT event_id, status, COUNT(*) AS total FROM event_attendees "
        f"WHERE event_id IN ({placeholders}) GROUP BY event_id, status",
        tuple(event_ids),
    ).fetchall()
    for row in rows:
        counts[row["event_id"]][row["status"]] = row["total"]
    return counts


def seated_count(counts: Dict[str, int]) -> int:
    return sum(counts.get(status.value, 0) for status in SEATED_STATUSES)


def event_from_row(
    row: sqlite3.Row,
    counts: Dict[str, int],
    attendees: Optional[List[AttendeeRead]] = None,
) -> EventRead:
    """Convert a row selected with ``_EVENT_SELECT`` into ``EventRead``."""
    keys = row.keys()
    organizer = None
    if "organizer_name" in keys and row["organizer_name"] is not None:
        organizer = OrganizerSummary(
            id=row["organizer_id"],
            name=row["organizer_name"],
            email=row["organizer_email"],
            company=row["organizer_company"],
            job_title=row["organizer_job_title"],
            profile_image=row["organizer_profile_image"],
        )
    date_time = parse_iso(row["date_time"])
    seated = seated_count(counts)
    return EventRead(
        id=row["id"],
        organizer_id=row["organizer_id"],
        organizer=organizer,
        title=row["title"],
        description=row["description"],
        category=row["category"],
        status=row["status"],
        date_time=date_time,
        end_date_time=parse_iso(row["end_date_time"]),
        location=from_json(row["location"], {}),
        is_virtual=bool(row["is_virtual"]),
        virtual_link=row["virtual_link"],
        capacity=row["capacity"],
        price=row["price"],
        currency=row["currency"],
        images=from_json(row["images"], []),
        cover_image=row["cover_image"],
        tags=from_json(row["tags"], []),
        sessions=from_json(row["sessions"], []),
        sponsors=from_json(row["sponsors"], []),
        settings=from_json(row["settings"], {}),
        analytics=EventAnalytics(
            views=row["views"],
            shares=row["shares"],
            registration_conversion=row["registration_conversion"],
        ),
        attendees_count=seated,
        waitlist_count=counts.get(AttendeeStatus.WAITLISTED.value, 0),
        available_spots=max(0, row["capacity"] - seated),
        is_active=row["status"] == EventStatus.ACTIVE.value and date_time > utcnow(),
        attendees=attendees,
        created_at=parse_iso(row["created_at"]),
        updated_at=parse_iso(row["updated_at"]),
    )


def _column_values(data: Dict[str, Any]) -> Dict[str, Any]:
    """Map validated model fields onto ``events`` column values."""
    values: Dict[str, Any] = {}
    for key, value in data.items():
        if key in _JSON_FIELDS:
            values[key] = to_json(value)
        elif key in _DATETIME_FIELDS:
            values[key] = to_iso(parse_iso(value))
        elif key == "is_virtual":
            values[key] = int(value)
        else:
            values[key] = value
    return values


def _attendees_with_profiles(
    cursor: sqlite3.Cursor,
    event_id: int,
    statuses: Optional[Tuple[str, ...]] = None,
) -> List[AttendeeRead]:
    query = (
        "SELECT a.user_id, a.status, a.registered_at, a.check_in_time, a.ticket_type, "
        "u.name, u.email, u.company, u.job_title, u.profile_image "
        "FROM event_attendees a JOIN users u ON u.id = a.user_id "
        "WHERE a.event_id = ?"
    )
    params: List[Any] = [event_id]
    if statuses:
        query += f" AND a.status IN ({','.join('?' for _ in statuses)})"
        params.extend(statuses)
    query += " ORDER BY a.id"
    return [
        AttendeeRead(
            user_id=row["user_id"],
            name=row["name"],
            email=row["email"],
            company=row["company"],
            job_title=row["job_title"],
            profile_image=row["profile_image"],
            status=row["status"],
            registered_at=parse_iso(row["registered_at"]),
            check_in_time=parse_iso(row["check_in_time"]),
            ticket_type=row["ticket_type"],
        )
        for row in cursor.execute(query, tuple(params)).fetchall()
    ]


class EventService:
    """Create, query, update and delete events."""

    @staticmethod
    def _fetch_row(cursor: sqlite3.Cursor, event_id: int) -> sqlite3.Row:
        row = cursor.execute(_EVENT_SELECT + " WHERE e.id = ?", (event_id,)).fetchone()
        if not row:
            raise NotFoundError("Event not found")
        return row

    @classmethod
    def _query_page(
        cls,
        where: List[str],
        params: List[Any],
        limit: int,
        offset: int,
        order_by: str = "e.date_time ASC",
    ) -> Tuple[List[EventRead], int]:
        where_sql = (" WHERE " + " AND ".join(where)) if where else ""
        with get_cursor() as cursor:
            total = cursor.execute(
                f"SELECT COUNT(*) FROM events e{where_sql}", tuple(params)
            ).fetchone()[0]
            rows = cursor.execute(
                f"{_EVENT_SELECT}{where_sql} ORDER BY {order_by} LIMIT ? OFFSET ?",
                tuple(params) + (limit, offset),
            ).fetchall()
            counts = _attendee_counts(cursor, [row["id"] for row in rows])
        return [event_from_row(row, counts[row["id"]]) for row in rows], total

    @classmethod
    async def create_event(cls, data: EventCreate, organizer_id: int) -> EventRead:
        """Insert a new event in ``draft`` status owned by ``organizer_id``."""
        values = _column_values(data.model_dump(mode="json"))
        now = to_iso(utcnow())
        values.update(
            organizer_id=organizer_id,
            status=EventStatus.DRAFT.value,
            created_at=now,
            updated_at=now,
        )
        columns = ", ".join(values)
        placeholders = ", ".join("?" for _ in values)
        with get_cursor() as cursor:
            cursor.execute(
                f"INSERT INTO events ({columns}) VALUES ({placeholders})",
                tuple(values.values()),
            )
            event_id = cursor.lastrowid
            row = cls._fetch_row(cursor, event_id)
        logger.info("User %s created event %s '%s'", organizer_id, event_id, data.title)
        return event_from_row(row, {})

    @classmethod
    async def list_events(
        cls,
        limit: int,
        offset: int,
        status: Optional[str] = EventStatus.ACTIVE.value,
        category: Optional[str] = None,
        location: Optional[str] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        price_min: Optional[float] = None,
        price_max: Optional[float] = None,
        is_virtual: Optional[bool] = None,
        search: Optional[str] = None,
        order_by: str = "e.date_time ASC",
    ) -> Tuple[List[EventRead], int]:
        """Return one page of events matching the filters and the total count.

        Parameters
        ----------
        status : Optional[str]
            Event status to match; ``None`` disables the filter.  Public
            listings default to ``active``.
        location : Optional[str]
            Case-insensitive substring matched against city, country and
            venue.
        search : Optional[str]
            Case-insensitive substring matched against title, description,
            tags, city and venue.
        """
        where: List[str] = []
        params: List[Any] = []
        if status:
            where.append("e.status = ?")
            params.append(status)
        if category:
            where.append("e.category = ?")
            params.append(category)
        if is_virtual is not None:
            where.append("e.is_virtual = ?")
            params.append(int(is_virtual))
        if location:
            where.append(
                "(json_extract(e.location, '$.city') LIKE ? "
                "OR json_extract(e.location, '$.country') LIKE ? "
                "OR json_extract(e.location, '$.venue') LIKE ?)"
            )
            params.extend([f"%{location}%"] * 3)
        if date_from:
            where.append("e.date_time >= ?")
            params.append(to_iso(date_from))
        if date_to:
            where.append("e.date_time <= ?")
            params.append(to_iso(date_to))
        if price_min is not None:
            where.append("e.price >= ?")
            params.append(price_min)
        if price_max is not None:
            where.append("e.price <= ?")
            params.append(price_max)
        if search:
            where.append(
                "(e.title LIKE ? OR e.description LIKE ? OR e.tags LIKE ? "
                "OR json_extract(e.location, '$.city') LIKE ? "
                "OR json_extract(e.location, '$.venue') LIKE ?)"
            )
            params.extend([f"%{search}%"] * 5)
        return cls._query_page(where, params, limit, offset, order_by)

    @classmethod
    async def search_events(cls, q: str, limit: int, offset: int) -> Tuple[List[EventRead], int]:
        if not q or not q.strip():
            raise ValidationError("Search query is required")
        return await cls.list_events(limit=limit, offset=offset, search=q.strip())

    @classmethod
    async def events_by_category(cls, category: str, limit: int, offset: int) -> Tuple[List[EventRead], int]:
        return await cls.list_events(limit=limit, offset=offset, category=category)

    @classmethod
    async def attending_events(cls, user_id: int) -> List[EventRead]:
        """Events the user holds an attendee record for, soonest first."""
        with get_cursor() as cursor:
            rows = cursor.execute(
                _EVENT_SELECT
                + " JOIN event_attendees a ON a.event_id = e.id"
                " WHERE a.user_id = ? ORDER BY e.date_time ASC",
                (user_id,),
            ).fetchall()
            counts = _attendee_counts(cursor, [row["id"] for row in rows])
        return [event_from_row(row, counts[row["id"]]) for row in rows]

    @classmethod
    async def organized_events(cls, user_id: int) -> List[EventRead]:
        """Events organized by the user, newest first."""
        with get_cursor() as cursor:
            rows = cursor.execute(
                _EVENT_SELECT + " WHERE e.organizer_id = ? ORDER BY e.created_at DESC, e.id DESC",
                (user_id,),
            ).fetchall()
            counts = _attendee_counts(cursor, [row["id"] for row in rows])
        return [event_from_row(row, counts[row["id"]]) for row in rows]

    @classmethod
    async def get_event(cls, event_id: int, count_view: bool = False) -> EventRead:
        """Return a single event including its attendee list.

        When ``count_view`` is set the ``views`` counter is incremented
        and the registration conversion (seated attendees per view, in
        percent) is refreshed, both in one write transaction.
        """
        if count_view:
            with transaction() as cursor:
                cls._fetch_row(cursor, event_id)
                seated = seated_count(_attendee_counts(cursor, [event_id])[event_id])
                cursor.execute(
                    "UPDATE events SET views = views + 1, "
                    "registration_conversion = ROUND(? * 100.0 / (views + 1), 2) WHERE id = ?",
                    (seated, event_id),
                )
        with get_cursor() as cursor:
            row = cls._fetch_row(cursor, event_id)
            counts = _attendee_counts(cursor, [event_id])[event_id]
            attendees = _attendees_with_profiles(cursor, event_id)
        return event_from_row(row, counts, attendees)

    @classmethod
    async def update_event(
        cls,
        event_id: int,
        updates: EventUpdate,
        actor_user_id: Optional[int] = None,
    ) -> EventRead:
        """Apply a partial update.

        The date ordering and virtual link rules are validated against
        the merged event.  When the capacity grows, waitlisted attendees
        are promoted into the new seats in the same transaction.
        """
        changes = {
            key: value
            for key, value in updates.model_dump(mode="json", exclude_unset=True).items()
            if value is not None or key in _NULLABLE_FIELDS
        }
        with transaction() as cursor:
            row = cls._fetch_row(cursor, event_id)
            if actor_user_id is not None and row["organizer_id"] != actor_user_id:
                raise AuthorizationError("Not authorized to update this event")

            start = parse_iso(changes.get("date_time") or row["date_time"])
            end = parse_iso(changes.get("end_date_time") or row["end_date_time"])
            if end <= start:
                raise ValidationError("End time must be after start time")
            is_virtual = changes.get("is_virtual", bool(row["is_virtual"]))
            virtual_link = changes.get("virtual_link", row["virtual_link"])
            if is_virtual and not virtual_link:
                raise ValidationError("virtual_link is required for virtual events")

            values = _column_values(changes)
            values["updated_at"] = to_iso(utcnow())
            assignments = ", ".join(f"{column} = ?" for column in values)
            cursor.execute(
                f"UPDATE events SET {assignments} WHERE id = ?",
                tuple(values.values()) + (event_id,),
            )
            if "capacity" in changes and changes["capacity"] > row["capacity"]:
                RegistrationService.fill_open_spots(cursor, event_id)
            row = cls._fetch_row(cursor, event_id)
            counts = _attendee_counts(cursor, [event_id])[event_id]
        logger.info("Event %s updated (%s)", event_id, ", ".join(sorted(changes)) or "no fields")
        return event_from_row(row, counts)

    @classmethod
    async def set_status(cls, event_id: int, status: EventStatus) -> EventRead:
        return await cls.update_event(event_id, EventUpdate(status=status))

    @classmethod
    async def delete_event(cls, event_id: int, actor_user_id: Optional[int] = None) -> None:
        """Delete an event; attendee records go with it (``ON DELETE CASCADE``)."""
        with transaction() as cursor:
            row = cursor.execute(
                "SELECT organizer_id FROM events WHERE id = ?", (event_id,)
            ).fetchone()
            if not row:
                raise NotFoundError("Event not found")
            if actor_user_id is not None and row["organizer_id"] != actor_user_id:
                raise AuthorizationError("Not authorized to delete this event")
            cursor.execute("DELETE FROM events WHERE id = ?", (event_id,))
        logger.info("Event %s deleted", event_id)

    @classmethod
    async def list_attendees(cls, event_id: int, viewer_user_id: Optional[int] = None,
                             full_list: bool = False) -> Dict[str, Any]:
        """Return the attendee list of an event.

        The organizer (or an admin, via ``full_list``) sees every record;
        everyone else only sees registered and attended users.
        """
        with get_cursor() as cursor:
            row = cursor.execute(
                "SELECT title, organizer_id FROM events WHERE id = ?", (event_id,)
            ).fetchone()
            if not row:
                raise NotFoundError("Event not found")
            if full_list or (viewer_user_id is not None and viewer_user_id == row["organizer_id"]):
                statuses = None
            else:
                statuses = tuple(status.value for status in SEATED_STATUSES)
            attendees = _attendees_with_profiles(cursor, event_id, statuses)
        return {
            "event_title": row["title"],
            "attendees": attendees,
            "total_count": len(attendees),
        }

    @classmethod
    async def list_sessions(cls, event_id: int) -> Dict[str, Any]:
        with get_cursor() as cursor:
            row = cursor.execute(
                "SELECT title, sessions FROM events WHERE id = ?", (event_id,)
            ).fetchone()
        if not row:
            raise NotFoundError("Event not found")
        return {"event_title": row["title"], "sessions": from_json(row["sessions"], [])}
