"""
Availability API Endpoints

GET /api/availability/:tutor_id - List a tutor's availability windows
POST /api/availability - Create weekly, dated or recurring windows (tutor)
PUT /api/availability/:window_id - Replace a window's day and times (owner)
DELETE /api/availability/:window_id - Remove a window (owner)
GET /api/availability/day/:tutor_id/:date - Bookable slots on a date
"""
from datetime import date as date_type
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from genconnect.api.auth import get_current_user
from genconnect.api.schemas import RequestModel, window_to_dict
from genconnect.database import get_db
from genconnect.models.session import DEFAULT_DURATION_MINUTES
from genconnect.services.auth_service import CurrentUser
from genconnect.services.availability_engine import get_availability_engine, parse_iso_date

router = APIRouter(prefix="/api/availability", tags=["availability"])


class WindowRequest(RequestModel):
    """Exactly one of day_of_week (0=Sunday) or date must be given"""
    start_time: str
    end_time: str
    day_of_week: Optional[int] = None
    date: Optional[date_type] = None
    topics: Optional[str] = None


class CreateWindowRequest(WindowRequest):
    is_recurring: bool = False
    recurring_pattern: Optional[str] = None
    recurring_end_date: Optional[date_type] = None


@router.get("/day/{tutor_id}/{on_date}")
async def get_day_slots(
    tutor_id: int = Path(..., description="Tutor user id"),
    on_date: str = Path(..., description="Date in YYYY-MM-DD format"),
    duration: int = Query(DEFAULT_DURATION_MINUTES, description="Session length: 20 or 40"),
    db: AsyncSession = Depends(get_db),
):
    """
    Bookable slots for a tutor on one calendar date.

    Returns:
        List of slots with id, start_time, end_time, duration_minutes, topics

    Raises:
        400: Malformed date or unsupported duration
    """
    day = parse_iso_date(on_date)
    slots = await get_availability_engine().get_available_slots(db, tutor_id, day, duration)
    return [slot.to_dict() for slot in slots]


@router.get("/{tutor_id}")
async def list_windows(tutor_id: int, db: AsyncSession = Depends(get_db)):
    windows = await get_availability_engine().list_windows(db, tutor_id)
    return [window_to_dict(w) for w in windows]


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_windows(
    body: CreateWindowRequest,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    windows = await get_availability_engine().create_windows(
        db,
        user,
        start_time=body.start_time,
        end_time=body.end_time,
        day_of_week=body.day_of_week,
        on_date=body.date,
        topics=body.topics,
        is_recurring=body.is_recurring,
        recurring_pattern=body.recurring_pattern,
        recurring_end_date=body.recurring_end_date,
    )
    return {
        "windows": [window_to_dict(w) for w in windows],
        "message": f"{len(windows)} availability window(s) created",
    }


@router.put("/{window_id}")
async def update_window(
    window_id: int,
    body: WindowRequest,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    window = await get_availability_engine().update_window(
        db,
        user,
        window_id,
        start_time=body.start_time,
        end_time=body.end_time,
        day_of_week=body.day_of_week,
        on_date=body.date,
        topics=body.topics,
    )
    return {"window": window_to_dict(window), "message": "Availability updated successfully"}


@router.delete("/{window_id}")
async def delete_window(
    window_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await get_availability_engine().delete_window(db, user, window_id)
    return {"message": "Availability deleted successfully"}
