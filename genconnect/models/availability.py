"""AvailabilityWindow model - Recurring weekly or dated tutor availability"""
from sqlalchemy import (
    Column, String, Integer, Boolean, Date, DateTime, ForeignKey, CheckConstraint, Index,
)
from sqlalchemy.sql import func

from genconnect.database import Base

RECURRING_PATTERNS = ("weekly", "biweekly", "monthly")


class AvailabilityWindow(Base):
    """
    A time range during which a tutor accepts bookings.

    Either ``day_of_week`` (0=Sunday .. 6=Saturday, repeats every week) or
    ``date`` (one specific day) is set, never both. Times are zero-padded
    ``HH:MM`` strings.
    """

    __tablename__ = "availability_windows"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tutor_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    day_of_week = Column(
        Integer,
        CheckConstraint("day_of_week >= 0 AND day_of_week <= 6", name="ck_availability_day_of_week"),
        nullable=True,
    )
    date = Column(Date, nullable=True)
    start_time = Column(String(5), nullable=False)
    end_time = Column(String(5), nullable=False)
    topics = Column(String(500), nullable=True)
    is_recurring = Column(Boolean, nullable=False, default=False)
    recurring_pattern = Column(String(10), nullable=True)
    recurring_end_date = Column(Date, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    __table_args__ = (
        CheckConstraint(
            "(day_of_week IS NULL) <> (date IS NULL)",
            name="ck_availability_day_or_date",
        ),
        Index("idx_availability_tutor_day", "tutor_id", "day_of_week"),
        Index("idx_availability_tutor_date", "tutor_id", "date"),
    )

    def __repr__(self):
        when = self.date.isoformat() if self.date else f"dow={self.day_of_week}"
        return f"<AvailabilityWindow(id={self.id}, tutor={self.tutor_id}, {when} {self.start_time}-{self.end_time})>"
