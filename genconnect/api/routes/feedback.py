"""
Feedback API Endpoints

POST /api/feedback - Submit or update the caller's feedback for a session
GET /api/feedback/session/:id - All feedback for a session (participants)
GET /api/feedback/my-feedback - The caller's feedback history
"""
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from genconnect.api.auth import get_current_user
from genconnect.api.schemas import RequestModel
from genconnect.database import get_db
from genconnect.models.feedback import Feedback
from genconnect.services import session_workspace
from genconnect.services.auth_service import CurrentUser

router = APIRouter(prefix="/api/feedback", tags=["feedback"])


class FeedbackRequest(RequestModel):
    session_id: int
    rating: int
    comments: Optional[str] = None
    what_learned: Optional[str] = None
    follow_up_resources: Optional[str] = None


def _feedback_dict(feedback: Feedback) -> dict:
    return {
        "id": feedback.id,
        "session_id": feedback.session_id,
        "user_id": feedback.user_id,
        "rating": feedback.rating,
        "comments": feedback.comments,
        "what_learned": feedback.what_learned,
        "follow_up_resources": feedback.follow_up_resources,
        "created_at": feedback.created_at.isoformat() if feedback.created_at else None,
    }


@router.post("")
async def submit_feedback(
    body: FeedbackRequest,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Upsert feedback; 201 on first submission, 200 on update.

    Raises:
        400: Rating outside 1-5
        403: Caller is not a participant
        404: Session not found
    """
    feedback, created = await session_workspace.submit_feedback(
        db,
        user,
        body.session_id,
        body.rating,
        comments=body.comments,
        what_learned=body.what_learned,
        follow_up_resources=body.follow_up_resources,
    )
    return JSONResponse(
        status_code=201 if created else 200,
        content={
            "feedback": _feedback_dict(feedback),
            "message": "Feedback submitted successfully" if created else "Feedback updated successfully",
        },
    )


@router.get("/my-feedback")
async def my_feedback(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    rows = await session_workspace.my_feedback(db, user)
    history = []
    for feedback, session in rows:
        data = _feedback_dict(feedback)
        data.update({
            "session_date": session.session_date.isoformat(),
            "tutee_name": session.tutee.name if session.tutee else None,
            "tutor_name": session.tutor.name if session.tutor else None,
            "reading_title": session.reading.title if session.reading else None,
        })
        history.append(data)
    return history


@router.get("/session/{session_id}")
async def session_feedback(
    session_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    rows = await session_workspace.session_feedback(db, user, session_id)
    result = []
    for feedback, user_name, role in rows:
        data = _feedback_dict(feedback)
        data.update({"user_name": user_name, "role": role})
        result.append(data)
    return result
