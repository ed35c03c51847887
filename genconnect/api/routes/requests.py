"""
Session Request API Endpoints

GET /api/requests/pending - Unexpired pending requests for the calling tutor
GET /api/requests/stats - Pending / scheduled / completed counts
POST /api/requests/:id/accept - Accept a request and create its meeting link
POST /api/requests/:id/decline - Decline a request
"""

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from genconnect.api.auth import get_current_user
from genconnect.api.schemas import pending_request_to_dict, session_to_dict
from genconnect.database import get_db
from genconnect.services.auth_service import CurrentUser
from genconnect.services.email_notifications import send_session_confirmation
from genconnect.services.meeting_links import MeetingLinkProvider, get_meeting_provider
from genconnect.services.session_lifecycle import TransitionResult, get_lifecycle_manager

router = APIRouter(prefix="/api/requests", tags=["requests"])


def _transition_response(result: TransitionResult, message: str) -> dict:
    return {
        "session": session_to_dict(result.session),
        "previous_status": result.previous_status,
        "side_effects": [effect.to_dict() for effect in result.side_effects],
        "message": message,
    }


@router.get("/pending")
async def pending_requests(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    sessions = await get_lifecycle_manager().list_pending(db, user)
    return [pending_request_to_dict(s) for s in sessions]


@router.get("/stats")
async def request_stats(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await get_lifecycle_manager().request_stats(db, user)


@router.post("/{session_id}/accept")
async def accept_request(
    session_id: int,
    background_tasks: BackgroundTasks,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    provider: MeetingLinkProvider = Depends(get_meeting_provider),
):
    """
    Accept a pending request.

    The session is scheduled even when the meeting link cannot be created;
    ``side_effects`` reports the link outcome. The tutee's confirmation email
    is sent after the response.

    Raises:
        403: Caller is not a tutor, or not this request's tutor
        404: Session not found
        409: Request already processed
        410: Request expired
    """
    result = await get_lifecycle_manager().accept(db, user, session_id, provider)
    session = result.session

    background_tasks.add_task(
        send_session_confirmation,
        tutee_email=session.tutee.email,
        tutee_name=session.tutee.name,
        tutor_name=session.tutor.name,
        reading_title=session.reading.title,
        session_date=session.session_date,
        duration_minutes=session.duration_minutes,
        join_url=session.meeting_join_url,
    )
    return _transition_response(result, "Request accepted successfully")


@router.post("/{session_id}/decline")
async def decline_request(
    session_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await get_lifecycle_manager().decline(db, user, session_id)
    return _transition_response(result, "Request declined")
