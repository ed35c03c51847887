"""Request base model and response serializers shared by the routers"""
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from genconnect.models import AvailabilityWindow, Reading, Session, User, TutorProfile


class RequestModel(BaseModel):
    """Request bodies accept both camelCase and snake_case field names"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def user_to_dict(user: User) -> Dict[str, Any]:
    return {
        "id": user.id,
        "email": user.email,
        "name": user.name,
        "role": user.role,
        "tech_comfort_level": user.tech_comfort_level,
        "college": user.college,
        "major": user.major,
        "bio": user.bio,
        "created_at": _iso(user.created_at),
    }


def profile_to_dict(profile: Optional[TutorProfile]) -> Optional[Dict[str, Any]]:
    if profile is None:
        return None
    return {
        "age": profile.age,
        "industry": profile.industry,
        "specialties": profile.specialties or [],
        "tutoring_style": profile.tutoring_style,
        "availability_hours": profile.availability_hours,
        "experience_years": profile.experience_years,
        "total_sessions": profile.total_sessions,
        "average_rating": profile.average_rating,
        "total_reviews": profile.total_reviews,
    }


def reading_to_dict(reading: Reading, include_content: bool = True) -> Dict[str, Any]:
    data = {
        "id": reading.id,
        "title": reading.title,
        "summary": reading.summary,
        "difficulty_level": reading.difficulty_level,
        "topic_tags": reading.topic_tags,
        "discussion_questions": reading.discussion_questions or [],
        "featured_image": reading.featured_image,
        "created_at": _iso(reading.created_at),
    }
    if include_content:
        data["content"] = reading.content
    return data


def window_to_dict(window: AvailabilityWindow) -> Dict[str, Any]:
    return {
        "id": window.id,
        "tutor_id": window.tutor_id,
        "day_of_week": window.day_of_week,
        "date": window.date.isoformat() if window.date else None,
        "start_time": window.start_time,
        "end_time": window.end_time,
        "topics": window.topics,
        "is_recurring": window.is_recurring,
        "recurring_pattern": window.recurring_pattern,
        "recurring_end_date": window.recurring_end_date.isoformat() if window.recurring_end_date else None,
    }


def session_to_dict(session: Session, include_content: bool = False) -> Dict[str, Any]:
    data = {
        "id": session.id,
        "tutee_id": session.tutee_id,
        "tutor_id": session.tutor_id,
        "reading_id": session.reading_id,
        "session_date": _iso(session.session_date),
        "duration_minutes": session.duration_minutes,
        "status": session.status,
        "chat_room_id": session.chat_room_id,
        "request_expires_at": _iso(session.request_expires_at),
        "meeting_id": session.meeting_id,
        "meeting_join_url": session.meeting_join_url,
        "meeting_start_url": session.meeting_start_url,
        "created_at": _iso(session.created_at),
        "tutee_name": session.tutee.name if session.tutee else None,
        "tutor_name": session.tutor.name if session.tutor else None,
        "reading_title": session.reading.title if session.reading else None,
    }
    if include_content and session.reading is not None:
        data["reading_summary"] = session.reading.summary
        data["reading_content"] = session.reading.content
        data["discussion_questions"] = session.reading.discussion_questions or []
    return data


def pending_request_to_dict(session: Session) -> Dict[str, Any]:
    data = session_to_dict(session)
    data["tech_comfort_level"] = session.tutee.tech_comfort_level if session.tutee else None
    data["reading_summary"] = session.reading.summary if session.reading else None
    data["expires_at"] = data["request_expires_at"]
    return data
