"""
Session Chat Fan-out

Relays chat messages between the participants of one session room. Each
message goes to every other connection in the room; nothing is stored.

Without Redis delivery stays in this process. With Redis every message is
published to ``genconnect:chat:{room}`` and a listener task delivers what
arrives to the local connections, so participants on different workers
still see each other.
"""
import asyncio
import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import WebSocket
from redis import asyncio as aioredis

logger = logging.getLogger(__name__)

CHANNEL_PREFIX = "genconnect:chat:"


def chat_payload(message: str, sender: str, timestamp: Optional[datetime] = None) -> Dict[str, Any]:
    timestamp = timestamp or datetime.now(timezone.utc)
    return {"message": message, "sender": sender, "timestamp": timestamp.isoformat()}


class ChatRoomManager:
    """Tracks open chat sockets per room and fans messages out to them"""

    def __init__(self):
        self.rooms: Dict[str, Dict[str, WebSocket]] = {}
        self.redis: Optional[aioredis.Redis] = None
        self._listener: Optional[asyncio.Task] = None

    async def connect(self, room: str, websocket: WebSocket) -> str:
        """Accept the socket and register it; returns its connection id"""
        await websocket.accept()
        connection_id = uuid.uuid4().hex
        self.rooms.setdefault(room, {})[connection_id] = websocket
        logger.info(f"Chat connection {connection_id} joined room {room}")
        return connection_id

    def disconnect(self, room: str, connection_id: str) -> None:
        connections = self.rooms.get(room)
        if not connections:
            return
        connections.pop(connection_id, None)
        if not connections:
            del self.rooms[room]
        logger.info(f"Chat connection {connection_id} left room {room}")

    def connection_count(self, room: str) -> int:
        return len(self.rooms.get(room, {}))

    async def broadcast(self, room: str, payload: Dict[str, Any], origin: Optional[str] = None) -> int:
        """
        Send a payload to every connection in the room except ``origin``.

        Returns:
            Number of local deliveries, or subscriber count when published via Redis
        """
        if self.redis is not None:
            envelope = json.dumps({"origin": origin, "payload": payload})
            try:
                return await self.redis.publish(f"{CHANNEL_PREFIX}{room}", envelope)
            except aioredis.RedisError as e:
                logger.error(f"Chat publish to room {room} failed, delivering locally: {e}")
        return await self.deliver_local(room, payload, exclude=origin)

    async def deliver_local(self, room: str, payload: Dict[str, Any], exclude: Optional[str] = None) -> int:
        delivered = 0
        for connection_id, websocket in list(self.rooms.get(room, {}).items()):
            if connection_id == exclude:
                continue
            try:
                await websocket.send_json(payload)
                delivered += 1
            except Exception as e:
                logger.warning(f"Dropping chat connection {connection_id} in room {room}: {e}")
                self.disconnect(room, connection_id)
        return delivered

    async def start_listener(self, redis: aioredis.Redis) -> None:
        """Subscribe to all chat channels and deliver incoming messages locally"""
        self.redis = redis
        pubsub = redis.pubsub()
        await pubsub.psubscribe(f"{CHANNEL_PREFIX}*")
        self._listener = asyncio.create_task(self._listen(pubsub))
        logger.info("Chat Redis listener started")

    async def _listen(self, pubsub) -> None:
        try:
            async for message in pubsub.listen():
                if message.get("type") != "pmessage":
                    continue
                await self.handle_published(message["channel"], message["data"])
        except asyncio.CancelledError:
            raise
        except aioredis.RedisError as e:
            logger.error(f"Chat Redis listener stopped: {e}", exc_info=True)
        finally:
            await pubsub.aclose()

    async def handle_published(self, channel: str, data: str) -> int:
        room = channel[len(CHANNEL_PREFIX):]
        try:
            envelope = json.loads(data)
        except (TypeError, ValueError):
            logger.warning(f"Ignoring malformed chat message on {channel}")
            return 0
        return await self.deliver_local(room, envelope.get("payload", {}), exclude=envelope.get("origin"))

    async def stop_listener(self) -> None:
        if self._listener is not None:
            self._listener.cancel()
            try:
                await self._listener
            except asyncio.CancelledError:
                pass
            self._listener = None
        self.redis = None
        logger.info("Chat Redis listener stopped")


# Global chat manager instance
_chat_manager: Optional[ChatRoomManager] = None


def get_chat_manager() -> ChatRoomManager:
    """Get or create global ChatRoomManager instance."""
    global _chat_manager
    if _chat_manager is None:
        _chat_manager = ChatRoomManager()
    return _chat_manager
