"""
Users API Endpoints

GET /api/users/tutors - Public tutor list
GET /api/users/tutors/:id/availability - A tutor's availability windows
PUT /api/users/profile - Partial update of the caller's profile
GET /api/users/all - All accounts with signup stats
"""
from datetime import timedelta
from typing import Literal, Optional

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from genconnect.api.auth import get_current_user, get_current_user_record
from genconnect.api.schemas import RequestModel, user_to_dict, window_to_dict
from genconnect.clock import default_time_provider
from genconnect.database import get_db
from genconnect.models.user import User, ROLE_TUTOR, ROLE_TUTEE
from genconnect.services.auth_service import CurrentUser
from genconnect.services.availability_engine import get_availability_engine

router = APIRouter(prefix="/api/users", tags=["users"])

ROLE_DISPLAY = {
    ROLE_TUTOR: "College Student (Tutor)",
    ROLE_TUTEE: "Senior Citizen (Tutee)",
}


class ProfileUpdateRequest(RequestModel):
    """Only the fields present are changed"""
    name: Optional[str] = None
    tech_comfort_level: Optional[Literal["beginner", "intermediate", "advanced"]] = None
    college: Optional[str] = None
    major: Optional[str] = None
    bio: Optional[str] = None


@router.get("/tutors")
async def list_tutors(db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(User).where(User.role == ROLE_TUTOR).order_by(User.name))
    return [
        {"id": u.id, "name": u.name, "college": u.college, "major": u.major, "bio": u.bio}
        for u in result.scalars().all()
    ]


@router.get("/tutors/{tutor_id}/availability")
async def tutor_availability(tutor_id: int, db: AsyncSession = Depends(get_db)):
    windows = await get_availability_engine().list_windows(db, tutor_id)
    return [window_to_dict(w) for w in windows]


@router.put("/profile")
async def update_profile(
    body: ProfileUpdateRequest,
    user: User = Depends(get_current_user_record),
    db: AsyncSession = Depends(get_db),
):
    for field, value in body.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(user, field, value)
    await db.commit()
    await db.refresh(user)
    return {"user": user_to_dict(user), "message": "Profile updated successfully"}


@router.get("/all")
async def list_all_users(
    _: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(select(User).order_by(User.created_at.desc(), User.id.desc()))
    users = result.scalars().all()

    week_ago = default_time_provider.now() - timedelta(days=7)
    stats = {
        "total_users": len(users),
        "tutors": sum(1 for u in users if u.role == ROLE_TUTOR),
        "tutees": sum(1 for u in users if u.role == ROLE_TUTEE),
        "recent_signups": sum(1 for u in users if u.created_at and u.created_at > week_ago),
    }

    listed = []
    for u in users:
        data = user_to_dict(u)
        data["role_display"] = ROLE_DISPLAY.get(u.role, u.role)
        listed.append(data)
    return {"users": listed, "stats": stats}
