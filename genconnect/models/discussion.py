"""DiscussionAnswer and SessionNotes models - Per-session workspace artifacts"""
from sqlalchemy import Column, Integer, Text, DateTime, ForeignKey, UniqueConstraint, Index
from sqlalchemy.sql import func

from genconnect.database import Base


class DiscussionAnswer(Base):
    """A tutee's answer to one discussion question of the session's reading"""

    __tablename__ = "discussion_answers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(Integer, ForeignKey("sessions.id", ondelete="CASCADE"), nullable=False)
    reading_id = Column(Integer, ForeignKey("readings.id"), nullable=False)
    tutee_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    question_index = Column(Integer, nullable=False)
    answer = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "session_id", "reading_id", "tutee_id", "question_index",
            name="uq_discussion_answers_key",
        ),
        Index("idx_discussion_answers_session", "session_id"),
    )

    def __repr__(self):
        return f"<DiscussionAnswer(session={self.session_id}, question={self.question_index})>"


class SessionNotes(Base):
    """Tutor's free-text notes, one record per session"""

    __tablename__ = "session_notes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(Integer, ForeignKey("sessions.id", ondelete="CASCADE"), unique=True, nullable=False)
    tutor_notes = Column(Text, nullable=True)
    discussion_notes = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<SessionNotes(session={self.session_id})>"
