from datetime import datetime, timedelta, timezone

import pytest

from eventhub_api.app.core.errors import (
    AlreadyCheckedIn,
    AlreadyRegistered,
    CancellationNotAllowed,
    DeadlinePassed,
    EventFull,
    InvalidStateForCheckIn,
    NotRegistered,
    RegistrationClosed,
    StateConflictError,
)
from eventhub_api.app.core.roster import AttendeeStatus, EventRoster, RegistrationSettings


NOW = datetime(2030, 5, 1, 12, 0, tzinfo=timezone.utc)


def make_roster(capacity=1, **settings):
    return EventRoster(capacity=capacity, settings=RegistrationSettings(**settings))


def statuses(roster):
    return [(r.user_id, r.status) for r in roster.attendees]


def test_register_seats_until_full_then_waitlists():
    roster = make_roster(capacity=2)
    assert roster.register(1, NOW).status == AttendeeStatus.REGISTERED
    assert roster.register(2, NOW).status == AttendeeStatus.REGISTERED
    assert roster.register(3, NOW).status == AttendeeStatus.WAITLISTED
    assert roster.seated_count == 2
    assert roster.available_spots == 0


def test_seated_count_never_exceeds_capacity():
    roster = make_roster(capacity=3)
    for user_id in range(1, 11):
        roster.register(user_id, NOW)
        assert roster.seated_count <= roster.capacity
    assert len(roster.waitlist()) == 7


def test_full_event_without_waitlist_rejects():
    roster = make_roster(capacity=2, allow_waitlist=False)
    roster.register(1, NOW)
    roster.register(2, NOW)
    with pytest.raises(EventFull):
        roster.register(3, NOW)
    assert len(roster.attendees) == 2


def test_register_twice_fails():
    roster = make_roster(capacity=5)
    roster.register(1, NOW)
    with pytest.raises(AlreadyRegistered):
        roster.register(1, NOW)


def test_register_while_waitlisted_fails():
    roster = make_roster(capacity=1)
    roster.register(1, NOW)
    roster.register(2, NOW)
    with pytest.raises(AlreadyRegistered):
        roster.register(2, NOW)


def test_register_when_closed():
    roster = make_roster(capacity=5, registration_open=False)
    with pytest.raises(RegistrationClosed):
        roster.register(1, NOW)
    assert roster.attendees == []


def test_register_then_unregister_restores_spots():
    roster = make_roster(capacity=4)
    roster.register(1, NOW)
    before = roster.available_spots
    roster.register(2, NOW)
    removed, promoted = roster.unregister(2, NOW)
    assert removed.user_id == 2
    assert promoted is None
    assert roster.available_spots == before
    assert roster.find(2) is None


def test_unregister_promotes_single_waitlisted_user():
    roster = make_roster(capacity=1)
    roster.register(10, NOW)
    roster.register(20, NOW)
    _, promoted = roster.unregister(10, NOW)
    assert promoted.user_id == 20
    assert statuses(roster) == [(20, AttendeeStatus.REGISTERED)]
    assert roster.available_spots == 0


def test_promotion_is_first_in_first_out():
    roster = make_roster(capacity=1)
    for user_id in (1, 2, 3, 4):
        roster.register(user_id, NOW)
    _, promoted = roster.unregister(1, NOW)
    assert promoted.user_id == 2
    _, promoted = roster.unregister(2, NOW)
    assert promoted.user_id == 3
    assert [r.user_id for r in roster.waitlist()] == [4]


def test_unregister_waitlisted_user_does_not_promote():
    roster = make_roster(capacity=1)
    for user_id in (1, 2, 3):
        roster.register(user_id, NOW)
    _, promoted = roster.unregister(2, NOW)
    assert promoted is None
    assert statuses(roster) == [
        (1, AttendeeStatus.REGISTERED),
        (3, AttendeeStatus.WAITLISTED),
    ]


def test_unregister_unknown_user():
    with pytest.raises(NotRegistered):
        make_roster().unregister(99, NOW)


def test_unregister_not_allowed():
    roster = make_roster(capacity=2, allow_cancellation=False)
    roster.register(1, NOW)
    with pytest.raises(CancellationNotAllowed):
        roster.unregister(1, NOW)
    assert roster.find(1) is not None


def test_unregister_after_deadline_leaves_list_untouched():
    roster = make_roster(capacity=1, cancellation_deadline=NOW - timedelta(hours=1))
    roster.register(1, NOW)
    roster.register(2, NOW)
    snapshot = statuses(roster)
    with pytest.raises(DeadlinePassed):
        roster.unregister(1, NOW)
    assert statuses(roster) == snapshot


def test_unregister_before_deadline_is_allowed():
    roster = make_roster(capacity=1, cancellation_deadline=NOW + timedelta(days=1))
    roster.register(1, NOW)
    roster.unregister(1, NOW)
    assert roster.attendees == []


def test_naive_deadline_is_treated_as_utc():
    roster = make_roster(capacity=1, cancellation_deadline=datetime(2030, 5, 1, 11, 0))
    roster.register(1, NOW)
    with pytest.raises(DeadlinePassed):
        roster.unregister(1, NOW)


def test_check_in_only_from_registered():
    roster = make_roster(capacity=1)
    roster.register(1, NOW)
    roster.register(2, NOW)

    record = roster.check_in(1, NOW)
    assert record.status == AttendeeStatus.ATTENDED
    assert record.check_in_time == NOW

    with pytest.raises(InvalidStateForCheckIn):
        roster.check_in(1, NOW)
    with pytest.raises(InvalidStateForCheckIn):
        roster.check_in(2, NOW)
    with pytest.raises(NotRegistered):
        roster.check_in(3, NOW)


def test_attended_keeps_its_seat():
    roster = make_roster(capacity=1)
    roster.register(1, NOW)
    roster.check_in(1, NOW)
    assert roster.register(2, NOW).status == AttendeeStatus.WAITLISTED


def test_checked_in_attendee_cannot_unregister():
    roster = make_roster(capacity=1)
    roster.register(1, NOW)
    roster.register(2, NOW)
    roster.check_in(1, NOW)

    with pytest.raises(AlreadyCheckedIn):
        roster.unregister(1, NOW)
    assert statuses(roster) == [(1, AttendeeStatus.ATTENDED), (2, AttendeeStatus.WAITLISTED)]
    assert roster.available_spots == 0


def test_fill_open_spots_after_capacity_growth():
    roster = make_roster(capacity=1)
    for user_id in (1, 2, 3, 4):
        roster.register(user_id, NOW)
    roster.capacity = 3
    promoted = roster.fill_open_spots()
    assert [r.user_id for r in promoted] == [2, 3]
    assert roster.available_spots == 0
    assert [r.user_id for r in roster.waitlist()] == [4]


def test_fill_open_spots_with_empty_waitlist():
    roster = make_roster(capacity=5)
    roster.register(1, NOW)
    assert roster.fill_open_spots() == []
    assert roster.available_spots == 4


def test_lifecycle_errors_are_state_conflicts():
    for exc in (AlreadyRegistered, EventFull, DeadlinePassed, NotRegistered):
        assert issubclass(exc, StateConflictError)
        assert exc().status_code == 400
