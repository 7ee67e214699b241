"""WebSocket endpoint: clients join auction and user rooms to receive live events."""
import json
import logging
from typing import Optional

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from app.services.broadcaster import auction_room, user_room

logger = logging.getLogger(__name__)
router = APIRouter(tags=["events"])


def _handshake_user(websocket: WebSocket) -> Optional[int]:
    """X-User-Id from the upgrade request, set by the same gateway as the HTTP routes."""
    raw = websocket.headers.get("x-user-id")
    try:
        return int(raw) if raw is not None else None
    except ValueError:
        return None


def _room_for(message: dict, user_id: Optional[int]) -> str:
    action = message.get("action")
    if action in ("join-auction", "leave-auction"):
        return auction_room(int(message["artworkId"]))
    if action == "join-user-room":
        requested = int(message["userId"])
        if user_id is None or requested != user_id:
            raise PermissionError("Cannot join another user's room")
        return user_room(requested)
    raise ValueError(f"Unknown action: {action}")


@router.websocket("/ws")
async def auction_events(websocket: WebSocket):
    broadcaster = websocket.app.state.broadcaster
    user_id = _handshake_user(websocket)
    await websocket.accept()
    subscriber = await broadcaster.connect(websocket)
    logger.info("Client connected: %s (user=%s)", websocket.client, user_id)
    try:
        while True:
            text = await websocket.receive_text()
            try:
                message = json.loads(text)
                if not isinstance(message, dict):
                    raise ValueError("Expected a JSON object")
                room = _room_for(message, user_id)
            except (KeyError, TypeError, ValueError, PermissionError) as e:
                await websocket.send_json({"event": "error", "data": {"detail": str(e)}})
                continue
            if message["action"] == "leave-auction":
                broadcaster.leave(subscriber, room)
                await websocket.send_json({"event": "left", "data": {"room": room}})
            else:
                broadcaster.join(subscriber, room)
                await websocket.send_json({"event": "joined", "data": {"room": room}})
            logger.debug("Client %s %s %s", websocket.client, message["action"], room)
    except WebSocketDisconnect:
        logger.info("Client disconnected: %s", websocket.client)
    finally:
        broadcaster.disconnect(subscriber)
