"""
Session Chat WebSocket

WS /ws/sessions/:session_id?token=... - Live chat between a session's tutee and tutor

Close codes: 4401 invalid or missing token, 4403 not a participant,
4404 unknown session.
"""
import json
import logging
from typing import Optional, Tuple

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect
from sqlalchemy.ext.asyncio import AsyncSession

from genconnect.database import get_db
from genconnect.exceptions import DomainException, ForbiddenException, NotFoundException, UnauthorizedException
from genconnect.models.session import Session
from genconnect.services.auth_service import CurrentUser, decode_access_token
from genconnect.services.chat import chat_payload, get_chat_manager

logger = logging.getLogger(__name__)

router = APIRouter(tags=["chat"])

CLOSE_CODES = {
    UnauthorizedException: 4401,
    ForbiddenException: 4403,
    NotFoundException: 4404,
}


async def authorize_chat(db: AsyncSession, token: Optional[str], session_id: int) -> Tuple[CurrentUser, str]:
    """
    Check the caller may join a session's chat.

    Returns:
        (caller, room name)
    """
    if not token:
        raise UnauthorizedException("Token required", code="AUTH_001")
    user = decode_access_token(token)

    session = await db.get(Session, session_id)
    if session is None:
        raise NotFoundException(f"Session {session_id} not found")
    if not session.has_participant(user.user_id):
        raise ForbiddenException("You are not a participant of this session", code="NOT_PARTICIPANT")
    return user, session.chat_room_id or f"session-{session.id}"


@router.websocket("/ws/sessions/{session_id}")
async def session_chat(
    websocket: WebSocket,
    session_id: int,
    token: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    try:
        user, room = await authorize_chat(db, token, session_id)
    except DomainException as e:
        await websocket.accept()
        await websocket.close(code=CLOSE_CODES.get(type(e), 4400), reason=e.message)
        return
    finally:
        # Release the connection; the socket may stay open for a long time
        await db.close()

    manager = get_chat_manager()
    connection_id = await manager.connect(room, websocket)
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                data = json.loads(raw)
                message = data["message"]
            except (ValueError, KeyError, TypeError):
                logger.warning(f"Ignoring malformed chat message in room {room}")
                continue
            sender = data.get("sender") or user.name or user.email
            await manager.broadcast(room, chat_payload(str(message), str(sender)), origin=connection_id)
    except WebSocketDisconnect:
        pass
    finally:
        manager.disconnect(room, connection_id)
