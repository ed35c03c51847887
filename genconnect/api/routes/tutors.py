"""
Tutors API Endpoints

GET /api/tutors/browse - Tutors with their public profiles
POST /api/tutors/contact - Public contact request for a tutor
GET /api/tutors/:id/contact-requests - Contact requests addressed to the caller
PATCH /api/tutors/contact-requests/:id - Update a contact request's status
GET /api/tutors/:id/reviews - Public reviews of a tutor
POST /api/tutors/:id/reviews - Review a tutor (tutee)
"""
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, status
from pydantic import Field
from sqlalchemy.ext.asyncio import AsyncSession

from genconnect.api.auth import get_current_user
from genconnect.api.schemas import RequestModel, profile_to_dict
from genconnect.database import get_db
from genconnect.models.contact_request import ContactRequest
from genconnect.models.feedback import TutorReview
from genconnect.services import tutor_directory
from genconnect.services.auth_service import CurrentUser
from genconnect.services.email_notifications import send_contact_request_notification

router = APIRouter(prefix="/api/tutors", tags=["tutors"])


class ContactRequestBody(RequestModel):
    tutor_id: int
    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    phone: str = Field(..., min_length=1)
    preferred_topics: str = Field(..., min_length=1)
    message: Optional[str] = None


class ContactStatusBody(RequestModel):
    status: str


class ReviewBody(RequestModel):
    rating: int
    comment: Optional[str] = None
    session_id: Optional[int] = None
    session_topic: Optional[str] = None


def _contact_dict(request: ContactRequest) -> dict:
    return {
        "id": request.id,
        "tutor_id": request.tutor_id,
        "name": request.name,
        "email": request.email,
        "phone": request.phone,
        "preferred_topics": request.preferred_topics,
        "message": request.message,
        "status": request.status,
        "created_at": request.created_at.isoformat() if request.created_at else None,
    }


def _review_dict(review: TutorReview, reviewer_name: str) -> dict:
    return {
        "id": review.id,
        "tutor_id": review.tutor_id,
        "reviewer_name": reviewer_name,
        "rating": review.rating,
        "comment": review.comment,
        "session_topic": review.session_topic,
        "date": review.created_at.date().isoformat() if review.created_at else None,
    }


@router.get("/browse")
async def browse_tutors(db: AsyncSession = Depends(get_db)):
    rows = await tutor_directory.browse_tutors(db)
    tutors = []
    for user, profile in rows:
        data = {
            "id": user.id,
            "email": user.email,
            "name": user.name,
            "role": user.role,
            "college": user.college,
            "major": user.major,
            "bio": user.bio,
        }
        data.update(profile_to_dict(profile))
        tutors.append(data)
    return tutors


@router.post("/contact", status_code=status.HTTP_201_CREATED)
async def contact_tutor(
    body: ContactRequestBody,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
):
    request, tutor = await tutor_directory.create_contact_request(
        db,
        tutor_id=body.tutor_id,
        name=body.name,
        email=body.email,
        phone=body.phone,
        preferred_topics=body.preferred_topics,
        message=body.message,
    )
    background_tasks.add_task(
        send_contact_request_notification,
        tutor_email=tutor.email,
        tutor_name=tutor.name,
        name=request.name,
        email=request.email,
        phone=request.phone,
        preferred_topics=request.preferred_topics,
        message=request.message,
    )
    return {
        "success": True,
        "request_id": request.id,
        "message": "Contact request submitted successfully",
    }


@router.get("/{tutor_id}/contact-requests")
async def list_contact_requests(
    tutor_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    requests = await tutor_directory.list_contact_requests(db, user, tutor_id)
    return [_contact_dict(r) for r in requests]


@router.patch("/contact-requests/{request_id}")
async def update_contact_request(
    request_id: int,
    body: ContactStatusBody,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    request = await tutor_directory.update_contact_request_status(db, user, request_id, body.status)
    return {"success": True, "request": _contact_dict(request), "message": "Status updated"}


@router.get("/{tutor_id}/reviews")
async def list_reviews(tutor_id: int, db: AsyncSession = Depends(get_db)):
    rows = await tutor_directory.list_reviews(db, tutor_id)
    return [_review_dict(review, name) for review, name in rows]


@router.post("/{tutor_id}/reviews", status_code=status.HTTP_201_CREATED)
async def add_review(
    tutor_id: int,
    body: ReviewBody,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    review = await tutor_directory.add_review(
        db,
        user,
        tutor_id,
        rating=body.rating,
        comment=body.comment,
        session_id=body.session_id,
        session_topic=body.session_topic,
    )
    return {"review": _review_dict(review, user.name), "message": "Review posted"}
