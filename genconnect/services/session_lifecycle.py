"""
Session Lifecycle Manager

Owns every status change of a tutoring session:

    pending -> scheduled | declined | expired
    scheduled -> completed | cancelled

Booking creates the pending request, tutors accept or decline it before it
expires, and a periodic sweep moves requests nobody acted on to ``expired``.
Accepting also asks the meeting provider for a video link; that call is best
effort and its outcome is reported alongside the new status.
"""
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import select, update, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from genconnect import config
from genconnect.clock import TimeProvider, default_time_provider
from genconnect.exceptions import (
    BookingConflictException,
    ForbiddenException,
    InvalidTransitionException,
    NotFoundException,
    RequestExpiredException,
    SessionStatusConflictException,
    ValidationException,
)
from genconnect.models.reading import Reading
from genconnect.models.session import (
    Session,
    DEFAULT_DURATION_MINUTES,
    SESSION_STATUSES,
    STATUS_CANCELLED,
    STATUS_COMPLETED,
    STATUS_DECLINED,
    STATUS_EXPIRED,
    STATUS_PENDING,
    STATUS_SCHEDULED,
)
from genconnect.models.user import User
from genconnect.services.auth_service import CurrentUser
from genconnect.services.availability_engine import booked_interval, overlaps, validate_duration
from genconnect.services.meeting_links import MeetingDetails, MeetingLinkProvider

logger = logging.getLogger(__name__)

# Longest allowed session; bounds the booking-conflict lookup
MAX_DURATION_MINUTES = 40

# Status changes allowed through the generic status update
ALLOWED_STATUS_UPDATES = {
    STATUS_SCHEDULED: (STATUS_COMPLETED, STATUS_CANCELLED),
}

SIDE_EFFECT_MEETING_LINK = "meeting_link"


@dataclass
class SideEffectOutcome:
    name: str
    succeeded: bool
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "succeeded": self.succeeded, "error": self.error}


@dataclass
class TransitionResult:
    """New state of a session plus how its side effects went"""
    session: Session
    previous_status: str
    side_effects: List[SideEffectOutcome] = field(default_factory=list)

    def outcome(self, name: str) -> Optional[SideEffectOutcome]:
        for effect in self.side_effects:
            if effect.name == name:
                return effect
        return None


class SessionLifecycleManager:
    """Booking, accept/decline, status updates and request expiry"""

    def __init__(
        self,
        time_provider: TimeProvider = default_time_provider,
        request_ttl_hours: int = config.REQUEST_TTL_HOURS,
    ):
        self.time_provider = time_provider
        self.request_ttl = timedelta(hours=request_ttl_hours)

    async def _fetch(self, db: AsyncSession, session_id: int) -> Optional[Session]:
        result = await db.execute(
            select(Session)
            .where(Session.id == session_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def book(
        self,
        db: AsyncSession,
        user: CurrentUser,
        tutor_id: int,
        reading_id: int,
        session_date: datetime,
        duration_minutes: int = DEFAULT_DURATION_MINUTES,
    ) -> Session:
        """
        Create a pending session request.

        Args:
            db: Database session
            user: Calling tutee
            tutor_id: Requested tutor
            reading_id: Reading to discuss
            session_date: Session start (naive UTC)
            duration_minutes: 20 or 40

        Returns:
            The new pending Session with tutee, tutor and reading loaded

        Raises:
            ForbiddenException: Caller is not a tutee
            ValidationException: Unsupported duration
            NotFoundException: Unknown tutor or reading
            BookingConflictException: Tutor already has an overlapping session
        """
        if not user.is_tutee:
            raise ForbiddenException("Only tutees can book sessions", code="TUTEE_ONLY")
        validate_duration(duration_minutes)

        # Lock the tutor row so concurrent bookings for one tutor serialize
        tutor_result = await db.execute(
            select(User).where(User.id == tutor_id).with_for_update()
        )
        tutor = tutor_result.scalar_one_or_none()
        if tutor is None or not tutor.is_tutor:
            raise NotFoundException(f"Tutor {tutor_id} not found", code="TUTOR_NOT_FOUND")

        reading = await db.get(Reading, reading_id)
        if reading is None:
            raise NotFoundException(f"Reading {reading_id} not found", code="READING_NOT_FOUND")

        new_end = session_date + timedelta(minutes=duration_minutes)
        candidates = await db.execute(
            select(Session.id, Session.session_date, Session.duration_minutes).where(
                Session.tutor_id == tutor_id,
                Session.status != STATUS_CANCELLED,
                Session.session_date < new_end,
                Session.session_date > session_date - timedelta(minutes=MAX_DURATION_MINUTES),
            )
        )
        for existing in candidates.all():
            existing_start, existing_end = booked_interval(existing)
            if overlaps(session_date, new_end, existing_start, existing_end):
                raise BookingConflictException(details={
                    "conflicting_session_id": existing.id,
                    "conflicting_start": existing_start.isoformat(),
                    "conflicting_end": existing_end.isoformat(),
                })

        session = Session(
            tutee_id=user.user_id,
            tutor_id=tutor_id,
            reading_id=reading_id,
            session_date=session_date,
            duration_minutes=duration_minutes,
            status=STATUS_PENDING,
            chat_room_id=str(uuid.uuid4()),
            request_expires_at=self.time_provider.now() + self.request_ttl,
        )
        db.add(session)
        await db.commit()

        logger.info(
            f"Session {session.id} requested: tutee {user.user_id} -> tutor {tutor_id} "
            f"at {session_date.isoformat()} ({duration_minutes} min)"
        )
        return await self._fetch(db, session.id)

    async def _load_request_for_tutor(
        self, db: AsyncSession, user: CurrentUser, session_id: int
    ) -> Session:
        # Order matters: role, existence, ownership, expiry, then stored status
        if not user.is_tutor:
            raise ForbiddenException("Only tutors can respond to requests", code="TUTOR_ONLY")

        session = await self._fetch(db, session_id)
        if session is None:
            raise NotFoundException(f"Session {session_id} not found")
        if session.tutor_id != user.user_id:
            raise ForbiddenException("This request belongs to another tutor", code="NOT_SESSION_TUTOR")

        if session.is_expired(self.time_provider.now()):
            raise RequestExpiredException(
                "This session request has expired",
                details={"expired_at": session.request_expires_at.isoformat()},
            )
        if session.status != STATUS_PENDING:
            raise SessionStatusConflictException(session.status)
        return session

    async def accept(
        self,
        db: AsyncSession,
        user: CurrentUser,
        session_id: int,
        provider: MeetingLinkProvider,
    ) -> TransitionResult:
        """
        Accept a pending request and attach a meeting link.

        The status change and the link are written in one transaction. If the
        provider fails the session is still scheduled, without link fields, and
        the failure is reported in the result.
        """
        session = await self._load_request_for_tutor(db, user, session_id)
        previous_status = session.status

        session.status = STATUS_SCHEDULED
        meeting_outcome = await self._attach_meeting(session, provider)
        await db.commit()

        logger.info(
            f"Session {session.id} accepted by tutor {user.user_id} "
            f"(meeting link: {'ok' if meeting_outcome.succeeded else 'failed'})"
        )
        return TransitionResult(
            session=session,
            previous_status=previous_status,
            side_effects=[meeting_outcome],
        )

    async def decline(self, db: AsyncSession, user: CurrentUser, session_id: int) -> TransitionResult:
        session = await self._load_request_for_tutor(db, user, session_id)
        previous_status = session.status

        session.status = STATUS_DECLINED
        await db.commit()

        logger.info(f"Session {session.id} declined by tutor {user.user_id}")
        return TransitionResult(session=session, previous_status=previous_status)

    async def _attach_meeting(self, session: Session, provider: MeetingLinkProvider) -> SideEffectOutcome:
        details = MeetingDetails(
            session_id=session.id,
            reading_id=session.reading_id,
            topic=session.reading.title if session.reading else f"Session {session.id}",
            start_time=session.session_date,
            duration_minutes=session.duration_minutes,
            tutor_email=session.tutor.email if session.tutor else None,
            tutee_email=session.tutee.email if session.tutee else None,
        )
        try:
            link = await provider.create_meeting(details)
        except Exception as e:
            logger.warning(f"Meeting link creation failed for session {session.id}: {e}")
            return SideEffectOutcome(SIDE_EFFECT_MEETING_LINK, False, str(e) or type(e).__name__)

        session.meeting_id = link.meeting_id
        session.meeting_join_url = link.join_url
        session.meeting_start_url = link.start_url
        return SideEffectOutcome(SIDE_EFFECT_MEETING_LINK, True)

    async def ensure_meeting(
        self,
        db: AsyncSession,
        user: CurrentUser,
        session_id: int,
        provider: MeetingLinkProvider,
    ) -> TransitionResult:
        """Create the meeting link for a scheduled session that has none yet"""
        if not user.is_tutor:
            raise ForbiddenException("Only tutors can create meeting links", code="TUTOR_ONLY")
        session = await self._fetch(db, session_id)
        if session is None:
            raise NotFoundException(f"Session {session_id} not found")
        if session.tutor_id != user.user_id:
            raise ForbiddenException("This session belongs to another tutor", code="NOT_SESSION_TUTOR")
        if session.status != STATUS_SCHEDULED:
            raise SessionStatusConflictException(session.status, "Meeting links can only be created for scheduled sessions")

        if session.meeting_join_url:
            outcome = SideEffectOutcome(SIDE_EFFECT_MEETING_LINK, True)
        else:
            outcome = await self._attach_meeting(session, provider)
            await db.commit()
        return TransitionResult(session=session, previous_status=session.status, side_effects=[outcome])

    async def update_status(
        self, db: AsyncSession, user: CurrentUser, session_id: int, new_status: str
    ) -> TransitionResult:
        """
        Generic status change by either participant.

        Only ``scheduled -> completed`` and ``scheduled -> cancelled`` are
        allowed here; requests move through accept/decline/expiry instead.
        """
        if new_status not in SESSION_STATUSES:
            raise ValidationException(
                f"Status must be one of {list(SESSION_STATUSES)}",
                code="INVALID_STATUS",
                details={"status": new_status},
            )

        session = await self._fetch(db, session_id)
        if session is None:
            raise NotFoundException(f"Session {session_id} not found")
        if not session.has_participant(user.user_id):
            raise ForbiddenException("You are not a participant of this session", code="NOT_PARTICIPANT")

        if new_status not in ALLOWED_STATUS_UPDATES.get(session.status, ()):
            raise InvalidTransitionException(session.status, new_status)

        previous_status = session.status
        session.status = new_status
        await db.commit()

        logger.info(f"Session {session.id} {previous_status} -> {new_status} by user {user.user_id}")
        return TransitionResult(session=session, previous_status=previous_status)

    async def expire_stale_requests(self, db: AsyncSession, now: Optional[datetime] = None) -> int:
        """Mark pending requests past their expiry as expired. Returns the count."""
        now = now or self.time_provider.now()
        result = await db.execute(
            update(Session)
            .where(
                Session.status == STATUS_PENDING,
                Session.request_expires_at < now,
            )
            .values(status=STATUS_EXPIRED)
        )
        await db.commit()
        return result.rowcount or 0

    async def list_pending(self, db: AsyncSession, user: CurrentUser) -> Sequence[Session]:
        """Unexpired pending requests addressed to the calling tutor, newest first"""
        if not user.is_tutor:
            raise ForbiddenException("Only tutors can view pending requests", code="TUTOR_ONLY")
        now = self.time_provider.now()
        result = await db.execute(
            select(Session)
            .where(
                Session.tutor_id == user.user_id,
                Session.status == STATUS_PENDING,
                or_(Session.request_expires_at.is_(None), Session.request_expires_at >= now),
            )
            .order_by(Session.created_at.desc(), Session.id.desc())
        )
        return result.scalars().all()

    async def request_stats(self, db: AsyncSession, user: CurrentUser) -> Dict[str, int]:
        if not user.is_tutor:
            raise ForbiddenException("Only tutors can view request stats", code="TUTOR_ONLY")
        now = self.time_provider.now()

        result = await db.execute(
            select(Session.status, func.count(Session.id))
            .where(
                Session.tutor_id == user.user_id,
                Session.status.in_((STATUS_SCHEDULED, STATUS_COMPLETED)),
            )
            .group_by(Session.status)
        )
        counts = dict(result.all())

        pending = await db.scalar(
            select(func.count(Session.id)).where(
                Session.tutor_id == user.user_id,
                Session.status == STATUS_PENDING,
                or_(Session.request_expires_at.is_(None), Session.request_expires_at >= now),
            )
        )
        return {
            "pending": pending or 0,
            "scheduled": counts.get(STATUS_SCHEDULED, 0),
            "completed": counts.get(STATUS_COMPLETED, 0),
        }

    async def my_sessions(self, db: AsyncSession, user: CurrentUser) -> Sequence[Session]:
        column = Session.tutor_id if user.is_tutor else Session.tutee_id
        result = await db.execute(
            select(Session)
            .where(column == user.user_id)
            .order_by(Session.session_date.desc(), Session.id.desc())
        )
        return result.scalars().all()

    async def get_session(self, db: AsyncSession, user: CurrentUser, session_id: int) -> Session:
        session = await self._fetch(db, session_id)
        if session is None:
            raise NotFoundException(f"Session {session_id} not found")
        if not session.has_participant(user.user_id):
            raise ForbiddenException("You are not a participant of this session", code="NOT_PARTICIPANT")
        return session


# Global manager instance
_manager: Optional[SessionLifecycleManager] = None


def get_lifecycle_manager() -> SessionLifecycleManager:
    """Get or create global SessionLifecycleManager instance."""
    global _manager
    if _manager is None:
        _manager = SessionLifecycleManager()
    return _manager
