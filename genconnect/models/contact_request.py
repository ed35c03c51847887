"""ContactRequest model - Public "contact this tutor" submissions"""
from sqlalchemy import Column, String, Integer, Text, DateTime, ForeignKey, CheckConstraint, Index
from sqlalchemy.sql import func

from genconnect.database import Base

CONTACT_STATUSES = ("pending", "contacted", "scheduled", "completed")


class ContactRequest(Base):
    """Lead submitted by a senior (or family member) without an account"""

    __tablename__ = "contact_requests"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tutor_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=False)
    preferred_topics = Column(String(500), nullable=False)
    message = Column(Text, nullable=False, default="")
    status = Column(
        String(20),
        CheckConstraint(
            "status IN ('pending', 'contacted', 'scheduled', 'completed')",
            name="ck_contact_requests_status",
        ),
        nullable=False,
        default="pending",
    )
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    __table_args__ = (
        Index("idx_contact_requests_tutor", "tutor_id"),
    )

    def __repr__(self):
        return f"<ContactRequest(id={self.id}, tutor={self.tutor_id}, status={self.status})>"
