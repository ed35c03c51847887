"""
Sessions API Endpoints

POST /api/sessions/book - Request a session with a tutor (tutee)
GET /api/sessions/my-sessions - Caller's sessions, newest first
GET /api/sessions/:id - One session with its reading (participants)
PUT /api/sessions/:id/status - Complete or cancel a scheduled session
POST /api/sessions/:id/meeting - Retry meeting link creation (tutor)
"""
from datetime import datetime

from fastapi import APIRouter, BackgroundTasks, Depends, status
from pydantic import Field
from sqlalchemy.ext.asyncio import AsyncSession

from genconnect.api.auth import get_current_user
from genconnect.api.schemas import RequestModel, session_to_dict
from genconnect.clock import to_naive_utc
from genconnect.database import get_db
from genconnect.models.session import DEFAULT_DURATION_MINUTES
from genconnect.services.auth_service import CurrentUser
from genconnect.services.email_notifications import send_booking_request_notification
from genconnect.services.meeting_links import MeetingLinkProvider, get_meeting_provider
from genconnect.services.session_lifecycle import get_lifecycle_manager

router = APIRouter(prefix="/api/sessions", tags=["sessions"])


class BookSessionRequest(RequestModel):
    tutor_id: int
    reading_id: int
    session_date: datetime
    duration_minutes: int = DEFAULT_DURATION_MINUTES


class StatusUpdateRequest(RequestModel):
    status: str = Field(..., description="completed or cancelled")


@router.post("/book", status_code=status.HTTP_201_CREATED)
async def book_session(
    body: BookSessionRequest,
    background_tasks: BackgroundTasks,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Request a session. The tutor has REQUEST_TTL_HOURS to accept or decline.

    Raises:
        400: Unsupported duration
        403: Caller is not a tutee
        404: Unknown tutor or reading
        409: Tutor already has an overlapping session
    """
    session = await get_lifecycle_manager().book(
        db,
        user,
        tutor_id=body.tutor_id,
        reading_id=body.reading_id,
        session_date=to_naive_utc(body.session_date),
        duration_minutes=body.duration_minutes,
    )

    background_tasks.add_task(
        send_booking_request_notification,
        tutor_email=session.tutor.email,
        tutor_name=session.tutor.name,
        tutee_name=session.tutee.name,
        reading_title=session.reading.title,
        session_date=session.session_date,
        duration_minutes=session.duration_minutes,
    )
    return {"session": session_to_dict(session), "message": "Session booked successfully"}


@router.get("/my-sessions")
async def my_sessions(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    sessions = await get_lifecycle_manager().my_sessions(db, user)
    return [session_to_dict(s) for s in sessions]


@router.get("/{session_id}")
async def get_session(
    session_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    session = await get_lifecycle_manager().get_session(db, user, session_id)
    return session_to_dict(session, include_content=True)


@router.put("/{session_id}/status")
async def update_session_status(
    session_id: int,
    body: StatusUpdateRequest,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await get_lifecycle_manager().update_status(db, user, session_id, body.status)
    return {
        "session": session_to_dict(result.session),
        "previous_status": result.previous_status,
        "message": "Session status updated successfully",
    }


@router.post("/{session_id}/meeting")
async def create_meeting(
    session_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    provider: MeetingLinkProvider = Depends(get_meeting_provider),
):
    result = await get_lifecycle_manager().ensure_meeting(db, user, session_id, provider)
    return {
        "session": session_to_dict(result.session),
        "side_effects": [effect.to_dict() for effect in result.side_effects],
    }
