"""
Persistence for the event registration lifecycle.

Each public method loads an event and its attendee rows inside one
``BEGIN IMMEDIATE`` transaction, applies an :class:`EventRoster`
operation in memory and writes back only the rows that changed.
Because SQLite admits one writer at a time, concurrent registrations
for the same event are serialized and capacity cannot be oversold.
"""

import logging
import sqlite3
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple

from eventhub_api.app.core.db import from_json, transaction
from eventhub_api.app.core.errors import NotFoundError
from eventhub_api.app.core.roster import (
    AttendeeRecord,
    AttendeeStatus,
    EventRoster,
    RegistrationSettings,
)
from eventhub_api.app.core.timeutils import parse_iso, to_iso, utcnow
from eventhub_api.app.schemas.event import RegistrationResult


logger = logging.getLogger(__name__)


def attendee_from_row(row: sqlite3.Row) -> AttendeeRecord:
    return AttendeeRecord(
        id=row["id"],
        user_id=row["user_id"],
        registered_at=parse_iso(row["registered_at"]),
        status=AttendeeStatus(row["status"]),
        check_in_time=parse_iso(row["check_in_time"]),
        ticket_type=row["ticket_type"],
    )


def settings_from_json(raw: Optional[str]) -> RegistrationSettings:
    data = from_json(raw, {})
    deadline = data.get("cancellation_deadline")
    return RegistrationSettings(
        registration_open=data.get("registration_open", True),
        allow_waitlist=data.get("allow_waitlist", True),
        allow_cancellation=data.get("allow_cancellation", True),
        cancellation_deadline=parse_iso(deadline) if deadline else None,
    )


def build_roster(event_row: sqlite3.Row, attendee_rows: Iterable[sqlite3.Row]) -> EventRoster:
    """Assemble a roster from an ``events`` row and its ``event_attendees`` rows.

    ``attendee_rows`` must be ordered by ``id`` so that the list order
    matches registration order.
    """
    return EventRoster(
        capacity=event_row["capacity"],
        settings=settings_from_json(event_row["settings"]),
        attendees=[attendee_from_row(row) for row in attendee_rows],
    )


def load_roster(cursor: sqlite3.Cursor, event_id: int) -> Tuple[sqlite3.Row, EventRoster]:
    event_row = cursor.execute(
        "SELECT id, title, organizer_id, capacity, settings FROM events WHERE id = ?",
        (event_id,),
    ).fetchone()
    if not event_row:
        raise NotFoundError("Event not found")
    attendee_rows = cursor.execute(
        "SELECT id, user_id, registered_at, status, check_in_time, ticket_type "
        "FROM event_attendees WHERE event_id = ? ORDER BY id",
        (event_id,),
    ).fetchall()
    return event_row, build_roster(event_row, attendee_rows)


def _snapshot(roster: EventRoster) -> Dict[int, Tuple[AttendeeStatus, Optional[datetime]]]:
    return {r.id: (r.status, r.check_in_time) for r in roster.attendees if r.id is not None}


def save_roster(
    cursor: sqlite3.Cursor,
    event_id: int,
    before: Dict[int, Tuple[AttendeeStatus, Optional[datetime]]],
    roster: EventRoster,
) -> None:
    """Write the difference between ``before`` and ``roster`` to the database."""
    current_ids = {r.id for r in roster.attendees if r.id is not None}
    for removed_id in set(before) - current_ids:
        cursor.execute("DELETE FROM event_attendees WHERE id = ?", (removed_id,))

    for record in roster.attendees:
        if record.id is None:
            cursor.execute(
                "INSERT INTO event_attendees (event_id, user_id, registered_at, status, check_in_time, ticket_type) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (
                    event_id,
                    record.user_id,
                    to_iso(record.registered_at),
                    record.status.value,
                    to_iso(record.check_in_time),
                    record.ticket_type,
                ),
            )
            record.id = cursor.lastrowid
        elif before.get(record.id) != (record.status, record.check_in_time):
            cursor.execute(
                "UPDATE event_attendees SET status = ?, check_in_time = ? WHERE id = ?",
                (record.status.value, to_iso(record.check_in_time), record.id),
            )

    cursor.execute(
        "UPDATE events SET updated_at = ? WHERE id = ?",
        (to_iso(utcnow()), event_id),
    )


def _log_promotions(event_id: int, promoted: List[AttendeeRecord]) -> None:
    for record in promoted:
        logger.info("Promoted user %s from waitlist for event %s", record.user_id, event_id)


class RegistrationService:
    """Register, unregister and check in users for events."""

    @classmethod
    async def register(cls, event_id: int, user_id: int,
                       ticket_type: Optional[str] = None) -> RegistrationResult:
        with transaction() as cursor:
            _, roster = load_roster(cursor, event_id)
            before = _snapshot(roster)
            record = roster.register(user_id, ticket_type=ticket_type)
            save_roster(cursor, event_id, before, roster)
        logger.info("User %s %s for event %s", user_id, record.status.value, event_id)
        return RegistrationResult(
            event_id=event_id,
            user_id=user_id,
            status=record.status,
            available_spots=roster.available_spots,
        )

    @classmethod
    async def unregister(cls, event_id: int, user_id: int) -> RegistrationResult:
        """Remove the caller's record and promote at most one waitlisted user."""
        with transaction() as cursor:
            _, roster = load_roster(cursor, event_id)
            before = _snapshot(roster)
            _, promoted = roster.unregister(user_id)
            save_roster(cursor, event_id, before, roster)
        logger.info("User %s unregistered from event %s", user_id, event_id)
        promoted_list = [promoted] if promoted else []
        _log_promotions(event_id, promoted_list)
        return RegistrationResult(
            event_id=event_id,
            user_id=user_id,
            status=None,
            available_spots=roster.available_spots,
            promoted_user_ids=[r.user_id for r in promoted_list],
        )

    @classmethod
    async def check_in(cls, event_id: int, user_id: int) -> RegistrationResult:
        with transaction() as cursor:
            _, roster = load_roster(cursor, event_id)
            before = _snapshot(roster)
            record = roster.check_in(user_id)
            save_roster(cursor, event_id, before, roster)
        logger.info("User %s checked in to event %s", user_id, event_id)
        return RegistrationResult(
            event_id=event_id,
            user_id=user_id,
            status=record.status,
            available_spots=roster.available_spots,
        )

    @staticmethod
    def fill_open_spots(cursor: sqlite3.Cursor, event_id: int) -> List[AttendeeRecord]:
        """Promote waitlisted users into seats freed by a capacity increase.

        Runs on the caller's cursor so that it shares the transaction of
        the event update that changed the capacity.
        """
        _, roster = load_roster(cursor, event_id)
        before = _snapshot(roster)
        promoted = roster.fill_open_spots()
        if promoted:
            save_roster(cursor, event_id, before, roster)
            _log_promotions(event_id, promoted)
        return promoted
