"""
Discussions API Endpoints

GET /api/discussions/session/:id/answers - Tutee answers for a session
POST /api/discussions/session/:id/answers - Save one answer (session's tutee)
GET /api/discussions/session/:id/notes - Tutor notes (empty when none yet)
POST /api/discussions/session/:id/notes - Save notes (session's tutor)
"""
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import Field
from sqlalchemy.ext.asyncio import AsyncSession

from genconnect.api.auth import get_current_user
from genconnect.api.schemas import RequestModel
from genconnect.database import get_db
from genconnect.services import session_workspace
from genconnect.services.auth_service import CurrentUser

router = APIRouter(prefix="/api/discussions", tags=["discussions"])


class AnswerRequest(RequestModel):
    question_index: int = Field(..., ge=0)
    answer: Optional[str] = None


class NotesRequest(RequestModel):
    tutor_notes: Optional[str] = None
    discussion_notes: Optional[str] = None


@router.get("/session/{session_id}/answers")
async def list_answers(
    session_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await session_workspace.list_answers(db, user, session_id)


@router.post("/session/{session_id}/answers")
async def save_answer(
    session_id: int,
    body: AnswerRequest,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    answer = await session_workspace.save_answer(db, user, session_id, body.question_index, body.answer)
    return {"success": True, "id": answer.id, "message": "Answer saved successfully"}


@router.get("/session/{session_id}/notes")
async def get_notes(
    session_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await session_workspace.get_notes(db, user, session_id)


@router.post("/session/{session_id}/notes")
async def save_notes(
    session_id: int,
    body: NotesRequest,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    notes = await session_workspace.save_notes(db, user, session_id, body.tutor_notes, body.discussion_notes)
    return {"success": True, "id": notes.id, "message": "Notes saved successfully"}
