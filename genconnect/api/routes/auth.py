"""
Auth API Endpoints

POST /api/auth/signup - Create a tutor or tutee account
POST /api/auth/login - Exchange credentials for a bearer token
GET /api/auth/verify - Resolve the caller's token to their account
"""
import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, status
from pydantic import Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from genconnect.api.auth import get_current_user_record
from genconnect.api.schemas import RequestModel, user_to_dict
from genconnect.database import get_db
from genconnect.exceptions import ConflictException, UnauthorizedException
from genconnect.models.user import User, TutorProfile, ROLE_TUTOR
from genconnect.services.auth_service import create_access_token, hash_password, verify_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


class SignupRequest(RequestModel):
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=255)
    role: Literal["tutor", "tutee"]
    tech_comfort_level: Optional[Literal["beginner", "intermediate", "advanced"]] = None
    college: Optional[str] = None
    major: Optional[str] = None


class LoginRequest(RequestModel):
    email: str
    password: str


def _token_for(user: User) -> str:
    return create_access_token(user.id, user.email, user.role, user.name)


@router.post("/signup", status_code=status.HTTP_201_CREATED)
async def signup(body: SignupRequest, db: AsyncSession = Depends(get_db)):
    """
    Register a new account. Tutors get an empty profile to fill in later.

    Raises:
        409: Email already registered
    """
    email = body.email.strip().lower()
    existing = await db.scalar(select(User.id).where(User.email == email))
    if existing is not None:
        raise ConflictException("Email already exists", code="EMAIL_EXISTS")

    user = User(
        email=email,
        password_hash=hash_password(body.password),
        name=body.name,
        role=body.role,
        tech_comfort_level=body.tech_comfort_level,
        college=body.college,
        major=body.major,
    )
    db.add(user)
    await db.flush()
    if user.role == ROLE_TUTOR:
        db.add(TutorProfile(user_id=user.id, specialties=[]))
    await db.commit()
    await db.refresh(user)

    logger.info(f"New {user.role} account {user.id} registered")
    return {"token": _token_for(user), "user": user_to_dict(user)}


@router.post("/login")
async def login(body: LoginRequest, db: AsyncSession = Depends(get_db)):
    user = await db.scalar(select(User).where(User.email == body.email.strip().lower()))
    if user is None or not verify_password(body.password, user.password_hash):
        raise UnauthorizedException("Invalid credentials", code="INVALID_CREDENTIALS")
    return {"token": _token_for(user), "user": user_to_dict(user)}


@router.get("/verify")
async def verify(user: User = Depends(get_current_user_record)):
    return {"user": user_to_dict(user)}
