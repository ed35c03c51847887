"""
Readings API Endpoints

GET /api/readings - All readings, newest first
GET /api/readings/:id - One reading with content and discussion questions
GET /api/readings/search/:query - Title or topic tag substring, or exact difficulty
"""
from fastapi import APIRouter, Depends
from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession

from genconnect.api.schemas import reading_to_dict
from genconnect.database import get_db
from genconnect.exceptions import NotFoundException
from genconnect.models.reading import Reading

router = APIRouter(prefix="/api/readings", tags=["readings"])


@router.get("")
async def list_readings(db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(Reading).order_by(Reading.created_at.desc(), Reading.id.desc()))
    return [reading_to_dict(r) for r in result.scalars().all()]


@router.get("/search/{query}")
async def search_readings(query: str, db: AsyncSession = Depends(get_db)):
    pattern = f"%{query}%"
    result = await db.execute(
        select(Reading)
        .where(
            or_(
                Reading.title.ilike(pattern),
                Reading.topic_tags.ilike(pattern),
                Reading.difficulty_level == query.lower(),
            )
        )
        .order_by(Reading.created_at.desc(), Reading.id.desc())
    )
    return [reading_to_dict(r) for r in result.scalars().all()]


@router.get("/{reading_id}")
async def get_reading(reading_id: int, db: AsyncSession = Depends(get_db)):
    reading = await db.get(Reading, reading_id)
    if reading is None:
        raise NotFoundException(f"Reading {reading_id} not found")
    return reading_to_dict(reading)
