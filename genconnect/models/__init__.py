"""SQLAlchemy ORM Models for GenConnect Database Schema"""
from genconnect.models.user import User, TutorProfile
from genconnect.models.reading import Reading
from genconnect.models.availability import AvailabilityWindow
from genconnect.models.session import Session
from genconnect.models.discussion import DiscussionAnswer, SessionNotes
from genconnect.models.feedback import Feedback, TutorReview
from genconnect.models.contact_request import ContactRequest

__all__ = [
    "User",
    "TutorProfile",
    "Reading",
    "AvailabilityWindow",
    "Session",
    "DiscussionAnswer",
    "SessionNotes",
    "Feedback",
    "TutorReview",
    "ContactRequest",
]
