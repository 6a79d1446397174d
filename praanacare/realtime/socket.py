"""
PraanaCare - Dashboard WebSocket

Messages in both directions are JSON objects ``{"event": ..., "data": ...}``.
Clients may send:
  - join-room        {"role": ..., "userId": ...}
  - vitals-update    relayed to every other socket
  - emergency-alert  broadcast to every socket
"""

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from praanacare.core.logging import logger
from praanacare.realtime.publisher import (
    connection_manager,
    JOIN_ROOM,
    VITALS_UPDATE,
    EMERGENCY_ALERT,
)

router = APIRouter()


@router.websocket("/ws")
async def dashboard_socket(websocket: WebSocket):
    manager = connection_manager
    await manager.connect(websocket)
    try:
        while True:
            message = await websocket.receive_json()
            if not isinstance(message, dict):
                continue

            event = message.get("event")
            data = message.get("data") or {}

            if event == JOIN_ROOM:
                role, user_id = data.get("role"), data.get("userId")
                if role and user_id:
                    room = await manager.join(websocket, role, user_id)
                    await websocket.send_json({"event": "joined", "data": {"room": room}})
            elif event == VITALS_UPDATE:
                await manager.relay(websocket, VITALS_UPDATE, data)
            elif event == EMERGENCY_ALERT:
                await manager.publish(EMERGENCY_ALERT, data)
            else:
                logger.debug(f"Ignoring unknown socket event: {event}")
    except WebSocketDisconnect:
        pass
    finally:
        await manager.disconnect(websocket)
