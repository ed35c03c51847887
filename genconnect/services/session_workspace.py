"""
Session Workspace Service

Per-session artifacts written during and after a session: the tutee's
answers to the reading's discussion questions, the tutor's notes, and each
participant's private feedback. All writes are upserts on their natural key.
"""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from genconnect.exceptions import ForbiddenException, NotFoundException, ValidationException
from genconnect.models.discussion import DiscussionAnswer, SessionNotes
from genconnect.models.feedback import Feedback
from genconnect.models.session import Session
from genconnect.models.user import User
from genconnect.services.auth_service import CurrentUser

logger = logging.getLogger(__name__)


async def get_participant_session(db: AsyncSession, user: CurrentUser, session_id: int) -> Session:
    """
    Load a session the caller takes part in.

    Raises:
        NotFoundException: No such session
        ForbiddenException: Caller is neither its tutee nor its tutor
    """
    session = await db.get(Session, session_id)
    if session is None:
        raise NotFoundException(f"Session {session_id} not found")
    if not session.has_participant(user.user_id):
        raise ForbiddenException("You are not a participant of this session", code="NOT_PARTICIPANT")
    return session


async def list_answers(db: AsyncSession, user: CurrentUser, session_id: int) -> List[Dict[str, Any]]:
    session = await get_participant_session(db, user, session_id)
    result = await db.execute(
        select(DiscussionAnswer)
        .where(DiscussionAnswer.session_id == session_id)
        .order_by(DiscussionAnswer.question_index)
    )
    questions = (session.reading.discussion_questions or []) if session.reading else []
    answers = []
    for answer in result.scalars().all():
        index = answer.question_index
        answers.append({
            "id": answer.id,
            "session_id": answer.session_id,
            "reading_id": answer.reading_id,
            "tutee_id": answer.tutee_id,
            "question_index": index,
            "question": questions[index] if 0 <= index < len(questions) else None,
            "answer": answer.answer,
            "updated_at": answer.updated_at.isoformat() if answer.updated_at else None,
        })
    return answers


async def save_answer(
    db: AsyncSession,
    user: CurrentUser,
    session_id: int,
    question_index: int,
    answer: Optional[str],
) -> DiscussionAnswer:
    """Insert or replace the tutee's answer to one discussion question"""
    session = await get_participant_session(db, user, session_id)
    if session.tutee_id != user.user_id:
        raise ForbiddenException("Only the session's tutee can answer questions", code="NOT_SESSION_TUTEE")

    questions = (session.reading.discussion_questions or []) if session.reading else []
    if question_index < 0 or (questions and question_index >= len(questions)):
        raise ValidationException(
            "Question index out of range",
            code="INVALID_QUESTION_INDEX",
            details={"question_index": question_index, "question_count": len(questions)},
        )

    existing = await db.scalar(
        select(DiscussionAnswer).where(
            DiscussionAnswer.session_id == session_id,
            DiscussionAnswer.reading_id == session.reading_id,
            DiscussionAnswer.tutee_id == user.user_id,
            DiscussionAnswer.question_index == question_index,
        )
    )
    if existing is None:
        existing = DiscussionAnswer(
            session_id=session_id,
            reading_id=session.reading_id,
            tutee_id=user.user_id,
            question_index=question_index,
        )
        db.add(existing)
    existing.answer = answer
    await db.commit()
    await db.refresh(existing)
    return existing


async def get_notes(db: AsyncSession, user: CurrentUser, session_id: int) -> Dict[str, Any]:
    await get_participant_session(db, user, session_id)
    notes = await db.scalar(select(SessionNotes).where(SessionNotes.session_id == session_id))
    if notes is None:
        return {"session_id": session_id, "tutor_notes": "", "discussion_notes": ""}
    return {
        "session_id": session_id,
        "tutor_notes": notes.tutor_notes or "",
        "discussion_notes": notes.discussion_notes or "",
        "updated_at": notes.updated_at.isoformat() if notes.updated_at else None,
    }


async def save_notes(
    db: AsyncSession,
    user: CurrentUser,
    session_id: int,
    tutor_notes: Optional[str],
    discussion_notes: Optional[str],
) -> SessionNotes:
    session = await get_participant_session(db, user, session_id)
    if session.tutor_id != user.user_id:
        raise ForbiddenException("Only the session's tutor can write notes", code="NOT_SESSION_TUTOR")

    notes = await db.scalar(select(SessionNotes).where(SessionNotes.session_id == session_id))
    if notes is None:
        notes = SessionNotes(session_id=session_id)
        db.add(notes)
    notes.tutor_notes = tutor_notes
    notes.discussion_notes = discussion_notes
    await db.commit()
    await db.refresh(notes)
    return notes


async def submit_feedback(
    db: AsyncSession,
    user: CurrentUser,
    session_id: int,
    rating: int,
    comments: Optional[str] = None,
    what_learned: Optional[str] = None,
    follow_up_resources: Optional[str] = None,
) -> tuple:
    """
    Create or update the caller's feedback for a session.

    Returns:
        (Feedback, created) where created is False for an update
    """
    if not 1 <= rating <= 5:
        raise ValidationException(
            "Rating must be between 1 and 5",
            code="INVALID_RATING",
            details={"rating": rating},
        )
    await get_participant_session(db, user, session_id)

    feedback = await db.scalar(
        select(Feedback).where(Feedback.session_id == session_id, Feedback.user_id == user.user_id)
    )
    created = feedback is None
    if created:
        feedback = Feedback(session_id=session_id, user_id=user.user_id)
        db.add(feedback)
    feedback.rating = rating
    feedback.comments = comments
    feedback.what_learned = what_learned
    feedback.follow_up_resources = follow_up_resources
    await db.commit()
    await db.refresh(feedback)

    logger.info(f"Feedback {'submitted' if created else 'updated'} for session {session_id} by user {user.user_id}")
    return feedback, created


async def session_feedback(db: AsyncSession, user: CurrentUser, session_id: int) -> List[tuple]:
    """(Feedback, author name, author role) rows for a session"""
    await get_participant_session(db, user, session_id)
    result = await db.execute(
        select(Feedback, User.name, User.role)
        .join(User, Feedback.user_id == User.id)
        .where(Feedback.session_id == session_id)
        .order_by(Feedback.created_at, Feedback.id)
    )
    return result.all()


async def my_feedback(db: AsyncSession, user: CurrentUser) -> List[tuple]:
    """The caller's feedback joined with its session, newest first"""
    result = await db.execute(
        select(Feedback, Session)
        .join(Session, Feedback.session_id == Session.id)
        .where(Feedback.user_id == user.user_id)
        .order_by(Feedback.created_at.desc(), Feedback.id.desc())
    )
    return result.all()
