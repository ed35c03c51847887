"""
Unit tests for SessionLifecycleManager

Tests booking, accept/decline ordering of checks, request expiry, generic
status updates and the best-effort meeting link.
"""
from datetime import datetime, timedelta

import pytest

from genconnect.exceptions import (
    BookingConflictException,
    ForbiddenException,
    InvalidTransitionException,
    NotFoundException,
    RequestExpiredException,
    SessionStatusConflictException,
    ValidationException,
)
from genconnect.models.session import Session
from genconnect.services.meeting_links import (
    GoogleMeetLinkProvider,
    MeetingLinkProvider,
    MeetingProviderError,
)
from genconnect.services.session_lifecycle import SIDE_EFFECT_MEETING_LINK
from tests.conftest import as_current

SESSION_AT = datetime(2026, 3, 9, 9, 0)


class FailingProvider(MeetingLinkProvider):
    def __init__(self):
        self.calls = 0

    async def create_meeting(self, details):
        self.calls += 1
        raise MeetingProviderError("provider unavailable")


@pytest.fixture
def provider():
    return GoogleMeetLinkProvider(base_url="https://meet.example.com")


@pytest.fixture
async def pending(db, lifecycle, tutor, tutee, reading):
    return await lifecycle.book(db, as_current(tutee), tutor.id, reading.id, SESSION_AT, 20)


class TestBooking:
    """Creating pending session requests"""

    async def test_booking_starts_pending_with_exact_expiry(self, db, lifecycle, clock, tutor, tutee, reading):
        session = await lifecycle.book(db, as_current(tutee), tutor.id, reading.id, SESSION_AT, 40)

        assert session.status == "pending"
        assert session.request_expires_at == clock.now() + timedelta(hours=24)
        assert session.duration_minutes == 40
        assert session.chat_room_id
        assert session.tutor.name == tutor.name
        assert session.reading.title == reading.title

    async def test_each_booking_gets_its_own_chat_room(self, db, lifecycle, tutor, tutee, reading):
        first = await lifecycle.book(db, as_current(tutee), tutor.id, reading.id, SESSION_AT, 20)
        second = await lifecycle.book(db, as_current(tutee), tutor.id, reading.id, SESSION_AT + timedelta(hours=1), 20)
        assert first.chat_room_id != second.chat_room_id

    async def test_only_tutees_can_book(self, db, lifecycle, tutor, other_tutor, reading):
        with pytest.raises(ForbiddenException):
            await lifecycle.book(db, as_current(other_tutor), tutor.id, reading.id, SESSION_AT, 20)

    async def test_invalid_duration(self, db, lifecycle, tutor, tutee, reading):
        with pytest.raises(ValidationException):
            await lifecycle.book(db, as_current(tutee), tutor.id, reading.id, SESSION_AT, 30)

    async def test_unknown_tutor_or_reading(self, db, lifecycle, tutor, tutee, other_tutee, reading):
        with pytest.raises(NotFoundException):
            await lifecycle.book(db, as_current(tutee), 9999, reading.id, SESSION_AT, 20)
        # A tutee id is not a tutor
        with pytest.raises(NotFoundException):
            await lifecycle.book(db, as_current(tutee), other_tutee.id, reading.id, SESSION_AT, 20)
        with pytest.raises(NotFoundException):
            await lifecycle.book(db, as_current(tutee), tutor.id, 9999, SESSION_AT, 20)

    async def test_overlapping_booking_rejected(self, db, lifecycle, tutor, tutee, other_tutee, reading, pending):
        with pytest.raises(BookingConflictException) as exc_info:
            await lifecycle.book(
                db, as_current(other_tutee), tutor.id, reading.id, SESSION_AT + timedelta(minutes=15), 20
            )
        assert exc_info.value.details["conflicting_session_id"] == pending.id

    async def test_longer_existing_session_blocks(self, db, lifecycle, tutor, tutee, other_tutee, reading):
        await lifecycle.book(db, as_current(tutee), tutor.id, reading.id, SESSION_AT, 40)
        with pytest.raises(BookingConflictException):
            await lifecycle.book(
                db, as_current(other_tutee), tutor.id, reading.id, SESSION_AT + timedelta(minutes=30), 20
            )

    async def test_adjacent_booking_allowed(self, db, lifecycle, tutor, other_tutee, reading, pending):
        session = await lifecycle.book(
            db, as_current(other_tutee), tutor.id, reading.id, SESSION_AT + timedelta(minutes=20), 20
        )
        assert session.status == "pending"

    async def test_cancelled_session_does_not_block(self, db, lifecycle, tutor, tutee, other_tutee, reading, pending, provider):
        await lifecycle.accept(db, as_current(tutor), pending.id, provider)
        await lifecycle.update_status(db, as_current(tutee), pending.id, "cancelled")

        session = await lifecycle.book(db, as_current(other_tutee), tutor.id, reading.id, SESSION_AT, 20)
        assert session.status == "pending"

    async def test_other_tutors_sessions_do_not_block(self, db, lifecycle, other_tutor, tutee, reading, pending):
        session = await lifecycle.book(db, as_current(tutee), other_tutor.id, reading.id, SESSION_AT, 20)
        assert session.tutor_id == other_tutor.id


class TestAccept:
    """Accepting pending requests"""

    async def test_accept_schedules_and_attaches_meeting(self, db, lifecycle, tutor, pending, provider):
        result = await lifecycle.accept(db, as_current(tutor), pending.id, provider)

        assert result.previous_status == "pending"
        assert result.session.status == "scheduled"
        assert result.session.meeting_join_url.startswith("https://meet.example.com/")
        assert result.session.meeting_id
        assert result.outcome(SIDE_EFFECT_MEETING_LINK).succeeded is True

    async def test_provider_failure_still_schedules(self, db, session_factory, lifecycle, tutor, pending):
        failing = FailingProvider()
        result = await lifecycle.accept(db, as_current(tutor), pending.id, failing)

        outcome = result.outcome(SIDE_EFFECT_MEETING_LINK)
        assert failing.calls == 1
        assert outcome.succeeded is False
        assert "provider unavailable" in outcome.error
        assert result.session.status == "scheduled"

        # Committed, not just changed in memory
        async with session_factory() as other:
            stored = await other.get(Session, pending.id)
            assert stored.status == "scheduled"
            assert stored.meeting_join_url is None

    async def test_accept_twice_rejected(self, db, lifecycle, tutor, pending, provider):
        await lifecycle.accept(db, as_current(tutor), pending.id, provider)

        with pytest.raises(SessionStatusConflictException) as exc_info:
            await lifecycle.accept(db, as_current(tutor), pending.id, provider)
        assert exc_info.value.details["status"] == "scheduled"

    async def test_decline_after_accept_rejected(self, db, lifecycle, tutor, pending, provider):
        await lifecycle.accept(db, as_current(tutor), pending.id, provider)
        with pytest.raises(SessionStatusConflictException):
            await lifecycle.decline(db, as_current(tutor), pending.id)

    async def test_tutee_cannot_accept(self, db, lifecycle, tutee, pending, provider):
        with pytest.raises(ForbiddenException):
            await lifecycle.accept(db, as_current(tutee), pending.id, provider)

    async def test_other_tutor_cannot_accept(self, db, lifecycle, other_tutor, pending, provider):
        with pytest.raises(ForbiddenException) as exc_info:
            await lifecycle.accept(db, as_current(other_tutor), pending.id, provider)
        assert exc_info.value.code == "NOT_SESSION_TUTOR"

    async def test_missing_session(self, db, lifecycle, tutor, provider):
        with pytest.raises(NotFoundException):
            await lifecycle.accept(db, as_current(tutor), 424242, provider)

    async def test_accept_at_expiry_instant_allowed(self, db, lifecycle, clock, tutor, pending, provider):
        clock.advance(hours=24)
        result = await lifecycle.accept(db, as_current(tutor), pending.id, provider)
        assert result.session.status == "scheduled"

    async def test_accept_after_expiry_rejected(self, db, lifecycle, clock, tutor, pending, provider):
        clock.advance(hours=24, seconds=1)
        with pytest.raises(RequestExpiredException):
            await lifecycle.accept(db, as_current(tutor), pending.id, provider)

    async def test_expiry_checked_before_stored_status(self, db, lifecycle, clock, tutor, pending, provider):
        """An already scheduled request past its expiry reports 410, not 409"""
        await lifecycle.accept(db, as_current(tutor), pending.id, provider)
        clock.advance(hours=25)

        with pytest.raises(RequestExpiredException):
            await lifecycle.accept(db, as_current(tutor), pending.id, provider)
        with pytest.raises(RequestExpiredException):
            await lifecycle.decline(db, as_current(tutor), pending.id)


class TestDecline:
    """Declining pending requests"""

    async def test_decline(self, db, lifecycle, tutor, pending):
        result = await lifecycle.decline(db, as_current(tutor), pending.id)
        assert result.previous_status == "pending"
        assert result.session.status == "declined"
        assert result.side_effects == []

    async def test_decline_twice_rejected(self, db, lifecycle, tutor, pending, provider):
        await lifecycle.decline(db, as_current(tutor), pending.id)
        with pytest.raises(SessionStatusConflictException):
            await lifecycle.decline(db, as_current(tutor), pending.id)
        with pytest.raises(SessionStatusConflictException):
            await lifecycle.accept(db, as_current(tutor), pending.id, provider)

    async def test_decline_after_expiry_rejected(self, db, lifecycle, clock, tutor, pending):
        clock.advance(days=2)
        with pytest.raises(RequestExpiredException):
            await lifecycle.decline(db, as_current(tutor), pending.id)


class TestExpirySweep:
    """Pending requests nobody answered become expired"""

    async def test_sweep_marks_only_stale_pending(self, db, lifecycle, clock, tutor, tutee, reading, pending, provider):
        accepted = await lifecycle.book(db, as_current(tutee), tutor.id, reading.id, SESSION_AT + timedelta(hours=2), 20)
        await lifecycle.accept(db, as_current(tutor), accepted.id, provider)

        clock.advance(hours=12)
        fresh = await lifecycle.book(db, as_current(tutee), tutor.id, reading.id, SESSION_AT + timedelta(hours=4), 20)

        clock.advance(hours=13)
        assert await lifecycle.expire_stale_requests(db) == 1

        statuses = {
            s.id: s.status for s in await lifecycle.my_sessions(db, as_current(tutee))
        }
        assert statuses[pending.id] == "expired"
        assert statuses[accepted.id] == "scheduled"
        assert statuses[fresh.id] == "pending"

    async def test_sweep_is_idempotent(self, db, lifecycle, clock, pending):
        clock.advance(days=2)
        assert await lifecycle.expire_stale_requests(db) == 1
        assert await lifecycle.expire_stale_requests(db) == 0

    async def test_expired_requests_hidden_from_pending_and_stats(self, db, lifecycle, clock, tutor, pending):
        assert [s.id for s in await lifecycle.list_pending(db, as_current(tutor))] == [pending.id]
        assert (await lifecycle.request_stats(db, as_current(tutor)))["pending"] == 1

        # Hidden as soon as they expire, before any sweep runs
        clock.advance(hours=24, minutes=1)
        assert await lifecycle.list_pending(db, as_current(tutor)) == []
        assert (await lifecycle.request_stats(db, as_current(tutor)))["pending"] == 0


class TestStatusUpdates:
    """Generic status changes by either participant"""

    async def test_complete_scheduled_session(self, db, lifecycle, tutor, tutee, pending, provider):
        await lifecycle.accept(db, as_current(tutor), pending.id, provider)

        result = await lifecycle.update_status(db, as_current(tutee), pending.id, "completed")
        assert result.previous_status == "scheduled"
        assert result.session.status == "completed"

    async def test_tutor_can_cancel(self, db, lifecycle, tutor, pending, provider):
        await lifecycle.accept(db, as_current(tutor), pending.id, provider)
        result = await lifecycle.update_status(db, as_current(tutor), pending.id, "cancelled")
        assert result.session.status == "cancelled"

    @pytest.mark.parametrize("target", ["scheduled", "completed", "declined", "expired"])
    async def test_pending_cannot_change_through_status_update(self, db, lifecycle, tutor, pending, target):
        with pytest.raises(InvalidTransitionException):
            await lifecycle.update_status(db, as_current(tutor), pending.id, target)

    async def test_terminal_states_are_final(self, db, lifecycle, tutor, tutee, pending, provider):
        await lifecycle.accept(db, as_current(tutor), pending.id, provider)
        await lifecycle.update_status(db, as_current(tutee), pending.id, "completed")

        with pytest.raises(InvalidTransitionException):
            await lifecycle.update_status(db, as_current(tutee), pending.id, "cancelled")

    async def test_unknown_status(self, db, lifecycle, tutor, pending):
        with pytest.raises(ValidationException):
            await lifecycle.update_status(db, as_current(tutor), pending.id, "archived")

    async def test_non_participant(self, db, lifecycle, other_tutor, pending):
        with pytest.raises(ForbiddenException):
            await lifecycle.update_status(db, as_current(other_tutor), pending.id, "cancelled")

    async def test_missing_session(self, db, lifecycle, tutor):
        with pytest.raises(NotFoundException):
            await lifecycle.update_status(db, as_current(tutor), 424242, "cancelled")


class TestMeetingRetry:
    """Creating a meeting link after a failed accept"""

    async def test_retry_after_failure(self, db, lifecycle, tutor, pending, provider):
        await lifecycle.accept(db, as_current(tutor), pending.id, FailingProvider())

        result = await lifecycle.ensure_meeting(db, as_current(tutor), pending.id, provider)
        assert result.outcome(SIDE_EFFECT_MEETING_LINK).succeeded
        assert result.session.meeting_join_url

    async def test_existing_link_is_kept(self, db, lifecycle, tutor, pending, provider):
        accepted = await lifecycle.accept(db, as_current(tutor), pending.id, provider)
        url = accepted.session.meeting_join_url

        failing = FailingProvider()
        result = await lifecycle.ensure_meeting(db, as_current(tutor), pending.id, failing)
        assert failing.calls == 0
        assert result.session.meeting_join_url == url

    async def test_requires_scheduled_session(self, db, lifecycle, tutor, pending, provider):
        with pytest.raises(SessionStatusConflictException):
            await lifecycle.ensure_meeting(db, as_current(tutor), pending.id, provider)


class TestSessionQueries:
    """Listing and reading sessions"""

    async def test_my_sessions_by_role(self, db, lifecycle, tutor, other_tutor, tutee, reading, pending):
        later = await lifecycle.book(db, as_current(tutee), other_tutor.id, reading.id, SESSION_AT + timedelta(days=1), 20)

        assert [s.id for s in await lifecycle.my_sessions(db, as_current(tutee))] == [later.id, pending.id]
        assert [s.id for s in await lifecycle.my_sessions(db, as_current(tutor))] == [pending.id]
        assert [s.id for s in await lifecycle.my_sessions(db, as_current(other_tutor))] == [later.id]

    async def test_get_session_participants_only(self, db, lifecycle, tutor, tutee, other_tutee, pending):
        assert (await lifecycle.get_session(db, as_current(tutee), pending.id)).id == pending.id
        assert (await lifecycle.get_session(db, as_current(tutor), pending.id)).id == pending.id
        with pytest.raises(ForbiddenException):
            await lifecycle.get_session(db, as_current(other_tutee), pending.id)

    async def test_pending_and_stats_are_tutor_only(self, db, lifecycle, tutee):
        with pytest.raises(ForbiddenException):
            await lifecycle.list_pending(db, as_current(tutee))
        with pytest.raises(ForbiddenException):
            await lifecycle.request_stats(db, as_current(tutee))

    async def test_stats_counts(self, db, lifecycle, tutor, tutee, reading, pending, provider):
        second = await lifecycle.book(db, as_current(tutee), tutor.id, reading.id, SESSION_AT + timedelta(hours=1), 20)
        third = await lifecycle.book(db, as_current(tutee), tutor.id, reading.id, SESSION_AT + timedelta(hours=2), 20)
        await lifecycle.accept(db, as_current(tutor), second.id, provider)
        await lifecycle.accept(db, as_current(tutor), third.id, provider)
        await lifecycle.update_status(db, as_current(tutor), third.id, "completed")

        assert await lifecycle.request_stats(db, as_current(tutor)) == {
            "pending": 1,
            "scheduled": 1,
            "completed": 1,
        }
