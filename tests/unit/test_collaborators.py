"""
Unit tests for best-effort collaborators

Meeting link derivation, SendGrid email delivery and the expiry sweep job.
"""
import re
from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest

from genconnect import config
from genconnect.services import email_notifications, scheduler
from genconnect.services.meeting_links import GoogleMeetLinkProvider, MeetingDetails
from tests.conftest import as_current


def details(session_id=1, start=datetime(2026, 3, 9, 9, 0)):
    return MeetingDetails(
        session_id=session_id,
        reading_id=3,
        topic="Online Grocery Shopping Basics",
        start_time=start,
        duration_minutes=20,
    )


class TestMeetingLinks:
    """Deterministic Meet-style links"""

    async def test_link_format(self):
        link = await GoogleMeetLinkProvider("https://meet.google.com/").create_meeting(details())

        assert re.fullmatch(r"[0-9a-f]{3}-[0-9a-f]{4}-[0-9a-f]{4}", link.meeting_id)
        assert link.join_url == f"https://meet.google.com/{link.meeting_id}"
        assert link.start_url == link.join_url

    async def test_same_session_same_link(self):
        provider = GoogleMeetLinkProvider()
        assert await provider.create_meeting(details()) == await provider.create_meeting(details())

    async def test_different_sessions_differ(self):
        provider = GoogleMeetLinkProvider()
        first = await provider.create_meeting(details(session_id=1))
        second = await provider.create_meeting(details(session_id=2))
        moved = await provider.create_meeting(details(start=datetime(2026, 3, 9, 10, 0)))

        assert len({first.meeting_id, second.meeting_id, moved.meeting_id}) == 3


class FakeSendGrid:
    """Stands in for SendGridAPIClient; records what was sent"""
    sent = []
    status_code = 202
    error = None

    def __init__(self, api_key):
        self.api_key = api_key

    def send(self, mail):
        if FakeSendGrid.error is not None:
            raise FakeSendGrid.error
        FakeSendGrid.sent.append(mail)
        return SimpleNamespace(status_code=FakeSendGrid.status_code)


@pytest.fixture
def sendgrid(monkeypatch):
    FakeSendGrid.sent = []
    FakeSendGrid.status_code = 202
    FakeSendGrid.error = None
    monkeypatch.setattr(config, "SENDGRID_API_KEY", "SG.test")
    monkeypatch.setattr(config, "SENDER_EMAIL", "noreply@genconnect.com")
    monkeypatch.setattr(email_notifications, "SendGridAPIClient", FakeSendGrid)
    return FakeSendGrid


class TestEmail:
    """SendGrid delivery never raises"""

    def test_skipped_when_not_configured(self, monkeypatch):
        monkeypatch.setattr(email_notifications, "SendGridAPIClient", None)
        assert email_notifications.send_email("a@example.com", "Hi", "<p>Hi</p>") is False

    def test_sent(self, sendgrid):
        assert email_notifications.send_email("a@example.com", "Hi", "<p>Hi</p>", "Hi") is True
        assert len(sendgrid.sent) == 1

    def test_client_error_returns_false(self, sendgrid):
        sendgrid.error = RuntimeError("connection reset")
        assert email_notifications.send_email("a@example.com", "Hi", "<p>Hi</p>") is False

    def test_rejected_returns_false(self, sendgrid):
        sendgrid.status_code = 401
        assert email_notifications.send_email("a@example.com", "Hi", "<p>Hi</p>") is False

    def test_session_confirmation(self, sendgrid):
        sent = email_notifications.send_session_confirmation(
            tutee_email="betty@example.com",
            tutee_name="Betty",
            tutor_name="Alex",
            reading_title="Video Calling With Family",
            session_date=datetime(2026, 3, 9, 9, 0),
            duration_minutes=20,
            join_url="https://meet.google.com/abc-defg-hij",
        )
        assert sent is True
        assert len(sendgrid.sent) == 1

    def test_booking_and_contact_notifications(self, sendgrid):
        assert email_notifications.send_booking_request_notification(
            tutor_email="alex@example.com",
            tutor_name="Alex",
            tutee_name="Betty",
            reading_title="Video Calling With Family",
            session_date=datetime(2026, 3, 9, 9, 0),
            duration_minutes=40,
        )
        assert email_notifications.send_contact_request_notification(
            tutor_email="alex@example.com",
            tutor_name="Alex",
            name="Ruth",
            email="ruth@example.com",
            phone="555-0100",
            preferred_topics="Email",
        )
        assert len(sendgrid.sent) == 2


class TestExpirySweepJob:
    """The scheduled job wiring"""

    def test_job_registered(self):
        scheduler.configure_scheduler()
        try:
            job = scheduler.scheduler.get_job("expire_stale_requests")
            assert job is not None
            assert job.trigger.interval == timedelta(minutes=config.EXPIRY_SWEEP_MINUTES)
        finally:
            scheduler.scheduler.remove_job("expire_stale_requests")

    async def test_job_expires_stale_requests(self, monkeypatch, db, session_factory, lifecycle, clock, tutor, tutee, reading):
        session = await lifecycle.book(db, as_current(tutee), tutor.id, reading.id, datetime(2026, 3, 9, 9, 0), 20)
        monkeypatch.setattr(scheduler, "AsyncSessionLocal", session_factory)
        clock.advance(days=2)

        await scheduler.expire_stale_requests()

        async with session_factory() as check:
            stored = await lifecycle.get_session(check, as_current(tutee), session.id)
            assert stored.status == "expired"

    async def test_job_failure_is_logged_not_raised(self, monkeypatch):
        def broken_factory():
            raise RuntimeError("database unavailable")

        monkeypatch.setattr(scheduler, "AsyncSessionLocal", broken_factory)
        await scheduler.expire_stale_requests()
