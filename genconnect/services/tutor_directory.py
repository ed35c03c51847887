"""
Tutor Directory Service

Browsing tutors with their public profiles, public contact requests from
seniors without accounts, and tutor reviews. Posting a review recomputes the
tutor profile's ``average_rating`` and ``total_reviews``.
"""
import logging
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from genconnect.exceptions import ForbiddenException, NotFoundException, ValidationException
from genconnect.models.contact_request import ContactRequest, CONTACT_STATUSES
from genconnect.models.feedback import TutorReview
from genconnect.models.session import Session
from genconnect.models.user import User, TutorProfile, ROLE_TUTOR
from genconnect.services.auth_service import CurrentUser

logger = logging.getLogger(__name__)


async def get_tutor(db: AsyncSession, tutor_id: int) -> User:
    tutor = await db.get(User, tutor_id)
    if tutor is None or tutor.role != ROLE_TUTOR:
        raise NotFoundException(f"Tutor {tutor_id} not found", code="TUTOR_NOT_FOUND")
    return tutor


async def browse_tutors(db: AsyncSession) -> Sequence[Tuple[User, TutorProfile]]:
    """Tutors that have a profile, by name"""
    result = await db.execute(
        select(User, TutorProfile)
        .join(TutorProfile, TutorProfile.user_id == User.id)
        .where(User.role == ROLE_TUTOR)
        .order_by(User.name)
    )
    return result.all()


async def create_contact_request(
    db: AsyncSession,
    tutor_id: int,
    name: str,
    email: str,
    phone: str,
    preferred_topics: str,
    message: Optional[str] = None,
) -> Tuple[ContactRequest, User]:
    tutor = await get_tutor(db, tutor_id)
    request = ContactRequest(
        tutor_id=tutor.id,
        name=name,
        email=email,
        phone=phone,
        preferred_topics=preferred_topics,
        message=message or "",
    )
    db.add(request)
    await db.commit()
    await db.refresh(request)

    logger.info(f"Contact request {request.id} received for tutor {tutor.id}")
    return request, tutor


async def list_contact_requests(db: AsyncSession, user: CurrentUser, tutor_id: int) -> Sequence[ContactRequest]:
    if user.user_id != tutor_id:
        raise ForbiddenException("Tutors can only view their own contact requests", code="NOT_REQUEST_TUTOR")
    result = await db.execute(
        select(ContactRequest)
        .where(ContactRequest.tutor_id == tutor_id)
        .order_by(ContactRequest.created_at.desc(), ContactRequest.id.desc())
    )
    return result.scalars().all()


async def update_contact_request_status(
    db: AsyncSession, user: CurrentUser, request_id: int, status: str
) -> ContactRequest:
    if status not in CONTACT_STATUSES:
        raise ValidationException(
            f"Status must be one of {list(CONTACT_STATUSES)}",
            code="INVALID_STATUS",
            details={"status": status},
        )
    request = await db.get(ContactRequest, request_id)
    if request is None:
        raise NotFoundException(f"Contact request {request_id} not found")
    if request.tutor_id != user.user_id:
        raise ForbiddenException("This contact request belongs to another tutor", code="NOT_REQUEST_TUTOR")

    request.status = status
    await db.commit()
    await db.refresh(request)
    logger.info(f"Contact request {request_id} -> {status}")
    return request


async def list_reviews(db: AsyncSession, tutor_id: int) -> List[Tuple[TutorReview, str]]:
    """(review, reviewer name) pairs, newest first"""
    await get_tutor(db, tutor_id)
    result = await db.execute(
        select(TutorReview, User.name)
        .join(User, TutorReview.reviewer_id == User.id)
        .where(TutorReview.tutor_id == tutor_id)
        .order_by(TutorReview.created_at.desc(), TutorReview.id.desc())
    )
    return result.all()


async def add_review(
    db: AsyncSession,
    user: CurrentUser,
    tutor_id: int,
    rating: int,
    comment: Optional[str] = None,
    session_id: Optional[int] = None,
    session_topic: Optional[str] = None,
) -> TutorReview:
    """
    Post a public review of a tutor.

    Raises:
        ForbiddenException: Caller is not a tutee, or the session is not theirs with this tutor
        ValidationException: Rating outside 1-5
        NotFoundException: Unknown tutor or session
    """
    if not user.is_tutee:
        raise ForbiddenException("Only tutees can review tutors", code="TUTEE_ONLY")
    if not 1 <= rating <= 5:
        raise ValidationException(
            "Rating must be between 1 and 5",
            code="INVALID_RATING",
            details={"rating": rating},
        )
    await get_tutor(db, tutor_id)

    if session_id is not None:
        session = await db.get(Session, session_id)
        if session is None:
            raise NotFoundException(f"Session {session_id} not found")
        if session.tutee_id != user.user_id or session.tutor_id != tutor_id:
            raise ForbiddenException("You can only review tutors of your own sessions", code="NOT_PARTICIPANT")
        if session_topic is None and session.reading is not None:
            session_topic = session.reading.title

    review = TutorReview(
        tutor_id=tutor_id,
        reviewer_id=user.user_id,
        session_id=session_id,
        rating=rating,
        comment=comment,
        session_topic=session_topic,
    )
    db.add(review)
    await db.flush()
    await _refresh_rating(db, tutor_id)
    await db.commit()
    await db.refresh(review)

    logger.info(f"Review {review.id} posted for tutor {tutor_id}")
    return review


async def _refresh_rating(db: AsyncSession, tutor_id: int) -> None:
    average, count = (
        await db.execute(
            select(func.avg(TutorReview.rating), func.count(TutorReview.id))
            .where(TutorReview.tutor_id == tutor_id)
        )
    ).one()

    profile = await db.scalar(select(TutorProfile).where(TutorProfile.user_id == tutor_id))
    if profile is None:
        profile = TutorProfile(user_id=tutor_id, specialties=[])
        db.add(profile)
    profile.average_rating = round(float(average or 0.0), 2)
    profile.total_reviews = count
