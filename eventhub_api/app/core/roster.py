"""
Event registration and capacity lifecycle.

An :class:`EventRoster` holds an event's capacity, its registration
settings and the ordered list of attendee records.  Every method
mutates the roster in memory and either returns the affected record(s)
or raises a :class:`~eventhub_api.app.core.errors.StateConflictError`
subclass, leaving the roster unchanged.  Persistence is the caller's
job (see ``services.registration_service``).

State per (event, user)::

    unregistered -> registered | waitlisted -> attended
    registered | waitlisted -> removed (record deleted)

``attended`` is terminal: a checked-in record can no longer be removed.

The attendee list order is insertion order; it is the waitlist queue.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional, Tuple

from .errors import (
    AlreadyCheckedIn,
    AlreadyRegistered,
    CancellationNotAllowed,
    DeadlinePassed,
    EventFull,
    InvalidStateForCheckIn,
    NotRegistered,
    RegistrationClosed,
)
from .timeutils import to_utc, utcnow


class AttendeeStatus(str, Enum):
    REGISTERED = "registered"
    WAITLISTED = "waitlisted"
    ATTENDED = "attended"
    CANCELLED = "cancelled"


# Statuses that occupy a seat.
SEATED_STATUSES = frozenset({AttendeeStatus.REGISTERED, AttendeeStatus.ATTENDED})


@dataclass
class AttendeeRecord:
    user_id: int
    registered_at: datetime
    status: AttendeeStatus = AttendeeStatus.REGISTERED
    check_in_time: Optional[datetime] = None
    ticket_type: Optional[str] = None
    # Row id once persisted; None for records appended in this request.
    id: Optional[int] = None

    @property
    def is_seated(self) -> bool:
        return self.status in SEATED_STATUSES


@dataclass
class RegistrationSettings:
    registration_open: bool = True
    allow_waitlist: bool = True
    allow_cancellation: bool = True
    cancellation_deadline: Optional[datetime] = None


@dataclass
class EventRoster:
    capacity: int
    settings: RegistrationSettings = field(default_factory=RegistrationSettings)
    attendees: List[AttendeeRecord] = field(default_factory=list)

    @property
    def seated_count(self) -> int:
        return sum(1 for record in self.attendees if record.is_seated)

    @property
    def available_spots(self) -> int:
        return max(0, self.capacity - self.seated_count)

    def find(self, user_id: int) -> Optional[AttendeeRecord]:
        for record in self.attendees:
            if record.user_id == user_id:
                return record
        return None

    def waitlist(self) -> List[AttendeeRecord]:
        return [r for r in self.attendees if r.status == AttendeeStatus.WAITLISTED]

    def register(self, user_id: int, now: Optional[datetime] = None,
                 ticket_type: Optional[str] = None) -> AttendeeRecord:
        """Append a record for ``user_id``.

        The new record is ``registered`` when a seat is free (counted
        before the append) and ``waitlisted`` otherwise.
        """
        if not self.settings.registration_open:
            raise RegistrationClosed()
        if self.find(user_id) is not None:
            raise AlreadyRegistered()
        spots = self.available_spots
        if spots <= 0 and not self.settings.allow_waitlist:
            raise EventFull()

        record = AttendeeRecord(
            user_id=user_id,
            registered_at=now or utcnow(),
            status=AttendeeStatus.REGISTERED if spots > 0 else AttendeeStatus.WAITLISTED,
            ticket_type=ticket_type,
        )
        self.attendees.append(record)
        return record

    def unregister(self, user_id: int, now: Optional[datetime] = None
                   ) -> Tuple[AttendeeRecord, Optional[AttendeeRecord]]:
        """Remove ``user_id`` and promote at most one waitlisted record.

        Returns ``(removed, promoted)``; ``promoted`` is ``None`` when no
        waitlisted record exists or no seat is free after the removal.
        """
        record = self.find(user_id)
        if record is None:
            raise NotRegistered()
        if record.status == AttendeeStatus.ATTENDED:
            raise AlreadyCheckedIn()
        if not self.settings.allow_cancellation:
            raise CancellationNotAllowed()
        deadline = self.settings.cancellation_deadline
        if deadline is not None and to_utc(now or utcnow()) > to_utc(deadline):
            raise DeadlinePassed()

        self.attendees.remove(record)
        promoted = None
        if self.available_spots > 0:
            promoted = self._promote_next()
        return record, promoted

    def check_in(self, user_id: int, now: Optional[datetime] = None) -> AttendeeRecord:
        record = self.find(user_id)
        if record is None:
            raise NotRegistered()
        if record.status != AttendeeStatus.REGISTERED:
            raise InvalidStateForCheckIn()
        record.status = AttendeeStatus.ATTENDED
        record.check_in_time = now or utcnow()
        return record

    def fill_open_spots(self) -> List[AttendeeRecord]:
        """Promote waitlisted records in FIFO order until no seat is free.

        Used when capacity grows; ``unregister`` only ever frees one seat.
        """
        promoted: List[AttendeeRecord] = []
        while self.available_spots > 0:
            record = self._promote_next()
            if record is None:
                break
            promoted.append(record)
        return promoted

    def _promote_next(self) -> Optional[AttendeeRecord]:
        for record in self.attendees:
            if record.status == AttendeeStatus.WAITLISTED:
                record.status = AttendeeStatus.REGISTERED
                return record
        return None
