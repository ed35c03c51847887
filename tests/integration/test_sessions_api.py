"""
Integration tests for booking and session requests

Full cycle: book -> pending -> accept/decline -> complete/cancel, with the
meeting provider swapped out where its failure matters.
"""
import pytest

from genconnect.services.meeting_links import MeetingLinkProvider, MeetingProviderError, get_meeting_provider
from tests.conftest import auth_headers

SESSION_AT = "2026-03-09T09:00:00"


class FailingProvider(MeetingLinkProvider):
    async def create_meeting(self, details):
        raise MeetingProviderError("meeting service unavailable")


async def book(client, tutee, tutor, reading, when=SESSION_AT, duration=20):
    return await client.post(
        "/api/sessions/book",
        json={"tutorId": tutor.id, "readingId": reading.id, "sessionDate": when, "durationMinutes": duration},
        headers=auth_headers(tutee),
    )


@pytest.fixture
async def pending_id(client, tutee, tutor, reading):
    response = await book(client, tutee, tutor, reading)
    assert response.status_code == 201
    return response.json()["session"]["id"]


@pytest.mark.integration
class TestBookingApi:
    """POST /api/sessions/book"""

    async def test_book_creates_pending_request(self, client, tutee, tutor, reading):
        response = await book(client, tutee, tutor, reading, duration=40)

        assert response.status_code == 201
        session = response.json()["session"]
        assert session["status"] == "pending"
        assert session["duration_minutes"] == 40
        assert session["session_date"] == SESSION_AT
        # Fixed clock is 2026-03-02 08:00
        assert session["request_expires_at"] == "2026-03-03T08:00:00"
        assert session["tutor_name"] == "Alex Chen"
        assert session["reading_title"] == reading.title

    async def test_aware_datetime_stored_as_utc(self, client, tutee, tutor, reading):
        response = await book(client, tutee, tutor, reading, when="2026-03-09T10:00:00+01:00")
        assert response.json()["session"]["session_date"] == SESSION_AT

    async def test_booked_time_removed_from_slots(self, client, tutee, tutor, reading):
        await client.post(
            "/api/availability",
            json={"dayOfWeek": 1, "startTime": "09:00", "endTime": "10:00"},
            headers=auth_headers(tutor),
        )
        await book(client, tutee, tutor, reading)

        slots = (await client.get(f"/api/availability/day/{tutor.id}/2026-03-09")).json()
        assert [(s["start_time"], s["end_time"]) for s in slots] == [("09:30", "09:50")]

    async def test_conflicting_booking(self, client, tutee, other_tutee, tutor, reading, pending_id):
        response = await book(client, other_tutee, tutor, reading, when="2026-03-09T09:10:00")

        assert response.status_code == 409
        error = response.json()["error"]
        assert error["code"] == "BOOKING_CONFLICT"
        assert error["details"]["conflicting_session_id"] == pending_id

    async def test_tutor_cannot_book(self, client, tutor, other_tutor, reading):
        response = await book(client, other_tutor, tutor, reading)
        assert response.status_code == 403

    async def test_invalid_duration(self, client, tutee, tutor, reading):
        response = await book(client, tutee, tutor, reading, duration=30)
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_DURATION"

    async def test_unknown_reading(self, client, tutee, tutor, reading):
        response = await client.post(
            "/api/sessions/book",
            json={"tutorId": tutor.id, "readingId": 999, "sessionDate": SESSION_AT},
            headers=auth_headers(tutee),
        )
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "READING_NOT_FOUND"


@pytest.mark.integration
class TestRequestsApi:
    """Pending list, stats, accept and decline"""

    async def test_pending_list(self, client, tutor, tutee, pending_id):
        response = await client.get("/api/requests/pending", headers=auth_headers(tutor))

        assert response.status_code == 200
        [request] = response.json()
        assert request["id"] == pending_id
        assert request["tutee_name"] == tutee.name
        assert request["tech_comfort_level"] == "beginner"
        assert request["reading_summary"]
        assert request["expires_at"] == "2026-03-03T08:00:00"

    async def test_pending_list_is_per_tutor(self, client, other_tutor, pending_id):
        response = await client.get("/api/requests/pending", headers=auth_headers(other_tutor))
        assert response.json() == []

    async def test_pending_list_hides_expired(self, client, clock, tutor, pending_id):
        clock.advance(hours=25)
        response = await client.get("/api/requests/pending", headers=auth_headers(tutor))
        assert response.json() == []

    async def test_tutee_cannot_list_pending(self, client, tutee):
        response = await client.get("/api/requests/pending", headers=auth_headers(tutee))
        assert response.status_code == 403

    @pytest.mark.parametrize("method,url", [
        ("GET", "/api/requests/pending"),
        ("GET", "/api/requests/stats"),
        ("POST", "/api/requests/{id}/accept"),
        ("POST", "/api/requests/{id}/decline"),
        ("POST", "/api/sessions/{id}/meeting"),
    ])
    async def test_tutor_only_routes_reject_tutees(self, client, tutee, pending_id, method, url):
        response = await client.request(method, url.format(id=pending_id), headers=auth_headers(tutee))

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "TUTOR_ONLY"

    async def test_booking_rejects_tutors_with_role_code(self, client, tutor, other_tutor, reading):
        response = await book(client, other_tutor, tutor, reading)
        assert response.json()["error"]["code"] == "TUTEE_ONLY"

    async def test_accept(self, client, tutor, pending_id):
        response = await client.post(f"/api/requests/{pending_id}/accept", headers=auth_headers(tutor))

        assert response.status_code == 200
        body = response.json()
        assert body["previous_status"] == "pending"
        assert body["session"]["status"] == "scheduled"
        assert body["session"]["meeting_join_url"].startswith("https://")
        assert body["side_effects"] == [{"name": "meeting_link", "succeeded": True, "error": None}]

        stats = await client.get("/api/requests/stats", headers=auth_headers(tutor))
        assert stats.json() == {"pending": 0, "scheduled": 1, "completed": 0}

    async def test_accept_with_failing_provider(self, client, tutor, tutee, pending_id):
        from main import app

        app.dependency_overrides[get_meeting_provider] = lambda: FailingProvider()
        try:
            response = await client.post(f"/api/requests/{pending_id}/accept", headers=auth_headers(tutor))
        finally:
            app.dependency_overrides.pop(get_meeting_provider)

        assert response.status_code == 200
        body = response.json()
        assert body["session"]["status"] == "scheduled"
        assert body["session"]["meeting_join_url"] is None
        assert body["side_effects"][0]["succeeded"] is False

        stored = await client.get(f"/api/sessions/{pending_id}", headers=auth_headers(tutee))
        assert stored.json()["status"] == "scheduled"

        # Retry creates the link
        retry = await client.post(f"/api/sessions/{pending_id}/meeting", headers=auth_headers(tutor))
        assert retry.status_code == 200
        assert retry.json()["session"]["meeting_join_url"]

    async def test_accept_twice(self, client, tutor, pending_id):
        await client.post(f"/api/requests/{pending_id}/accept", headers=auth_headers(tutor))
        response = await client.post(f"/api/requests/{pending_id}/accept", headers=auth_headers(tutor))

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "INVALID_SESSION_STATUS"

    async def test_accept_expired(self, client, clock, tutor, pending_id):
        clock.advance(hours=24, seconds=1)
        response = await client.post(f"/api/requests/{pending_id}/accept", headers=auth_headers(tutor))

        assert response.status_code == 410
        assert response.json()["error"]["code"] == "REQUEST_EXPIRED"

    async def test_decline_expired_even_after_accept(self, client, clock, tutor, pending_id):
        await client.post(f"/api/requests/{pending_id}/accept", headers=auth_headers(tutor))
        clock.advance(days=2)

        response = await client.post(f"/api/requests/{pending_id}/decline", headers=auth_headers(tutor))
        assert response.status_code == 410

    async def test_other_tutor_forbidden(self, client, other_tutor, pending_id):
        response = await client.post(f"/api/requests/{pending_id}/accept", headers=auth_headers(other_tutor))
        assert response.status_code == 403

    async def test_tutee_forbidden(self, client, tutee, pending_id):
        response = await client.post(f"/api/requests/{pending_id}/decline", headers=auth_headers(tutee))
        assert response.status_code == 403

    async def test_unknown_request(self, client, tutor):
        response = await client.post("/api/requests/9999/accept", headers=auth_headers(tutor))
        assert response.status_code == 404

    async def test_decline(self, client, tutor, pending_id):
        response = await client.post(f"/api/requests/{pending_id}/decline", headers=auth_headers(tutor))

        assert response.status_code == 200
        assert response.json()["session"]["status"] == "declined"
        assert response.json()["side_effects"] == []

        again = await client.post(f"/api/requests/{pending_id}/accept", headers=auth_headers(tutor))
        assert again.status_code == 409


@pytest.mark.integration
class TestSessionsApi:
    """Session reads and generic status updates"""

    async def test_my_sessions(self, client, tutee, tutor, other_tutor, pending_id):
        tutee_view = await client.get("/api/sessions/my-sessions", headers=auth_headers(tutee))
        tutor_view = await client.get("/api/sessions/my-sessions", headers=auth_headers(tutor))
        other_view = await client.get("/api/sessions/my-sessions", headers=auth_headers(other_tutor))

        assert [s["id"] for s in tutee_view.json()] == [pending_id]
        assert [s["id"] for s in tutor_view.json()] == [pending_id]
        assert other_view.json() == []

    async def test_get_session_includes_reading(self, client, tutee, reading, pending_id):
        response = await client.get(f"/api/sessions/{pending_id}", headers=auth_headers(tutee))

        body = response.json()
        assert body["reading_content"] == reading.content
        assert body["discussion_questions"] == reading.discussion_questions

    async def test_get_session_non_participant(self, client, other_tutee, pending_id):
        response = await client.get(f"/api/sessions/{pending_id}", headers=auth_headers(other_tutee))
        assert response.status_code == 403

    async def test_complete_after_accept(self, client, tutor, tutee, pending_id):
        await client.post(f"/api/requests/{pending_id}/accept", headers=auth_headers(tutor))

        response = await client.put(
            f"/api/sessions/{pending_id}/status",
            json={"status": "completed"},
            headers=auth_headers(tutee),
        )
        assert response.status_code == 200
        assert response.json()["previous_status"] == "scheduled"
        assert response.json()["session"]["status"] == "completed"

    async def test_pending_cannot_be_completed(self, client, tutee, pending_id):
        response = await client.put(
            f"/api/sessions/{pending_id}/status",
            json={"status": "completed"},
            headers=auth_headers(tutee),
        )
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "INVALID_TRANSITION"

    async def test_unknown_status(self, client, tutee, pending_id):
        response = await client.put(
            f"/api/sessions/{pending_id}/status",
            json={"status": "paused"},
            headers=auth_headers(tutee),
        )
        assert response.status_code == 400
