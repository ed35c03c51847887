"""Reading model - Shared reading material discussed during sessions"""
from sqlalchemy import Column, String, Integer, Text, DateTime, JSON, CheckConstraint
from sqlalchemy.sql import func

from genconnect.database import Base

DIFFICULTY_LEVELS = ("easy", "medium", "hard")


class Reading(Base):
    """Static reference content; never mutated by the session flow"""

    __tablename__ = "readings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    summary = Column(Text, nullable=False)
    content = Column(Text, nullable=False)
    difficulty_level = Column(
        String(10),
        CheckConstraint("difficulty_level IN ('easy', 'medium', 'hard')", name="ck_readings_difficulty"),
        nullable=False,
    )
    topic_tags = Column(String(255), nullable=True)
    discussion_questions = Column(JSON, nullable=False, default=list)
    featured_image = Column(String(500), nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Reading(id={self.id}, title={self.title})>"
