"""Session model - A booking between one tutee and one tutor for one reading"""
from datetime import datetime

from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, CheckConstraint, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from genconnect.database import Base

STATUS_PENDING = "pending"
STATUS_SCHEDULED = "scheduled"
STATUS_DECLINED = "declined"
STATUS_COMPLETED = "completed"
STATUS_CANCELLED = "cancelled"
STATUS_EXPIRED = "expired"

SESSION_STATUSES = (
    STATUS_PENDING,
    STATUS_SCHEDULED,
    STATUS_DECLINED,
    STATUS_COMPLETED,
    STATUS_CANCELLED,
    STATUS_EXPIRED,
)

SESSION_DURATIONS = (20, 40)
DEFAULT_DURATION_MINUTES = 20


class Session(Base):
    """Tutoring session; the single ``status`` column is its whole state"""

    __tablename__ = "sessions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tutee_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    tutor_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    reading_id = Column(Integer, ForeignKey("readings.id"), nullable=False)
    session_date = Column(DateTime, nullable=False)
    duration_minutes = Column(
        Integer,
        CheckConstraint("duration_minutes IN (20, 40)", name="ck_sessions_duration"),
        nullable=False,
        default=DEFAULT_DURATION_MINUTES,
    )
    status = Column(
        String(20),
        CheckConstraint(
            "status IN ('pending', 'scheduled', 'declined', 'completed', 'cancelled', 'expired')",
            name="ck_sessions_status",
        ),
        nullable=False,
        default=STATUS_PENDING,
    )
    chat_room_id = Column(String(36), nullable=True)
    request_expires_at = Column(DateTime, nullable=True)
    meeting_id = Column(String(100), nullable=True)
    meeting_join_url = Column(String(500), nullable=True)
    meeting_start_url = Column(String(500), nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    tutee = relationship("User", foreign_keys=[tutee_id], lazy="joined")
    tutor = relationship("User", foreign_keys=[tutor_id], lazy="joined")
    reading = relationship("Reading", lazy="joined")

    __table_args__ = (
        Index("idx_sessions_tutor_date", "tutor_id", "session_date"),
        Index("idx_sessions_tutee", "tutee_id"),
        Index("idx_sessions_status_expiry", "status", "request_expires_at"),
    )

    def is_expired(self, now: datetime) -> bool:
        """A request is expired strictly after its expiry instant"""
        return self.request_expires_at is not None and now > self.request_expires_at

    def has_participant(self, user_id: int) -> bool:
        return user_id in (self.tutee_id, self.tutor_id)

    def __repr__(self):
        return f"<Session(id={self.id}, tutor={self.tutor_id}, tutee={self.tutee_id}, status={self.status})>"
