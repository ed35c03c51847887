"""User and TutorProfile models - Identity, role and profile data"""
from sqlalchemy import (
    Column, String, Integer, Float, Text, DateTime, ForeignKey, JSON, CheckConstraint, Index,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from genconnect.database import Base

ROLE_TUTOR = "tutor"
ROLE_TUTEE = "tutee"
ROLES = (ROLE_TUTOR, ROLE_TUTEE)
TECH_COMFORT_LEVELS = ("beginner", "intermediate", "advanced")


class User(Base):
    """Tutor (college student) or tutee (senior) account"""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), unique=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    name = Column(String(255), nullable=False)
    role = Column(
        String(10),
        CheckConstraint("role IN ('tutee', 'tutor')", name="ck_users_role"),
        nullable=False,
    )
    tech_comfort_level = Column(
        String(20),
        CheckConstraint(
            "tech_comfort_level IN ('beginner', 'intermediate', 'advanced')",
            name="ck_users_tech_comfort_level",
        ),
        nullable=True,
    )
    college = Column(String(255), nullable=True)
    major = Column(String(255), nullable=True)
    bio = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    tutor_profile = relationship("TutorProfile", back_populates="user", uselist=False)

    __table_args__ = (
        Index("idx_users_role", "role"),
    )

    @property
    def is_tutor(self) -> bool:
        return self.role == ROLE_TUTOR

    @property
    def is_tutee(self) -> bool:
        return self.role == ROLE_TUTEE

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"


class TutorProfile(Base):
    """Extended public profile shown when tutees browse tutors"""

    __tablename__ = "tutor_profiles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    age = Column(Integer, nullable=True)
    industry = Column(String(100), nullable=True)
    specialties = Column(JSON, nullable=False, default=list)
    tutoring_style = Column(Text, nullable=True)
    availability_hours = Column(String(255), nullable=True)
    experience_years = Column(Integer, nullable=False, default=0)
    total_sessions = Column(Integer, nullable=False, default=0)
    average_rating = Column(Float, nullable=False, default=0.0)
    total_reviews = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    user = relationship("User", back_populates="tutor_profile")

    def __repr__(self):
        return f"<TutorProfile(user_id={self.user_id}, rating={self.average_rating})>"
