"""
PraanaCare - Real-time Event Publishing

Handlers publish dashboard events through an injected ``EventPublisher``
rather than a process-wide socket handle. The WebSocket implementation is
fire-and-forget: no acknowledgement, no replay for late joiners and no
ordering guarantee across event types.
"""

import asyncio
from typing import Any, Dict, Optional, Protocol, Set

from fastapi import WebSocket
from fastapi.encoders import jsonable_encoder

from praanacare.core.logging import logger

VITALS_UPDATE = "vitals-update"
EMERGENCY_ALERT = "emergency-alert"
ALERT_UPDATED = "alert-updated"
ALERT_RESPONSE = "alert-response"
JOIN_ROOM = "join-room"


class EventPublisher(Protocol):
    async def publish(self, event: str, payload: Dict[str, Any]) -> None:
        ...


def room_name(role: str, user_id: str) -> str:
    return f"{role}-{user_id}"


class ConnectionManager:
    """
    Tracks connected dashboard sockets and the rooms each has joined.
    """

    def __init__(self):
        self._connections: Dict[WebSocket, Set[str]] = {}
        self._lock = asyncio.Lock()

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    async def connect(self, websocket: WebSocket):
        await websocket.accept()
        async with self._lock:
            self._connections[websocket] = set()
        logger.info(f"Socket connected ({self.connection_count} open)")

    async def disconnect(self, websocket: WebSocket):
        async with self._lock:
            self._connections.pop(websocket, None)
        logger.info(f"Socket disconnected ({self.connection_count} open)")

    async def join(self, websocket: WebSocket, role: str, user_id: str) -> str:
        room = room_name(role, user_id)
        async with self._lock:
            if websocket in self._connections:
                self._connections[websocket].add(room)
        logger.info(f"User {user_id} joined {role} room")
        return room

    async def _send(self, targets, event: str, payload: Dict[str, Any]):
        message = {"event": event, "data": jsonable_encoder(payload)}
        dead = []
        for websocket in targets:
            try:
                await websocket.send_json(message)
            except Exception as e:
                logger.debug(f"Dropping socket after failed send: {e}")
                dead.append(websocket)
        for websocket in dead:
            await self.disconnect(websocket)

    async def publish(self, event: str, payload: Dict[str, Any]) -> None:
        """Broadcast to every connected socket."""
        await self._send(list(self._connections), event, payload)

    async def relay(self, sender: Optional[WebSocket], event: str, payload: Dict[str, Any]) -> None:
        """Broadcast a client-originated event to every socket except the sender."""
        targets = [ws for ws in list(self._connections) if ws is not sender]
        await self._send(targets, event, payload)


connection_manager = ConnectionManager()


def get_publisher() -> EventPublisher:
    """FastAPI dependency returning the process' event publisher."""
    return connection_manager
