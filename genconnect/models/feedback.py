"""Feedback and TutorReview models - Post-session ratings"""
from sqlalchemy import (
    Column, String, Integer, Text, DateTime, ForeignKey, CheckConstraint, UniqueConstraint, Index,
)
from sqlalchemy.sql import func

from genconnect.database import Base


class Feedback(Base):
    """Private post-session feedback, one per (session, user)"""

    __tablename__ = "feedback"

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(Integer, ForeignKey("sessions.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    rating = Column(
        Integer,
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_feedback_rating"),
        nullable=False,
    )
    comments = Column(Text, nullable=True)
    what_learned = Column(Text, nullable=True)
    follow_up_resources = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("session_id", "user_id", name="uq_feedback_session_user"),
        Index("idx_feedback_user", "user_id"),
    )

    def __repr__(self):
        return f"<Feedback(session={self.session_id}, user={self.user_id}, rating={self.rating})>"


class TutorReview(Base):
    """Public review of a tutor shown on the browse page"""

    __tablename__ = "tutor_reviews"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tutor_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    reviewer_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    session_id = Column(Integer, ForeignKey("sessions.id", ondelete="SET NULL"), nullable=True)
    rating = Column(
        Integer,
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_tutor_reviews_rating"),
        nullable=False,
    )
    comment = Column(Text, nullable=True)
    session_topic = Column(String(255), nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    __table_args__ = (
        Index("idx_tutor_reviews_tutor", "tutor_id"),
    )

    def __repr__(self):
        return f"<TutorReview(tutor={self.tutor_id}, reviewer={self.reviewer_id}, rating={self.rating})>"
