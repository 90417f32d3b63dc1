"""WebSocket endpoint with JWT authentication and course-channel multiplexing."""

import json
import uuid

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, Query
import jwt as pyjwt
import structlog

from homelearn.auth.jwt import verify_token
from homelearn.config import get_settings
from homelearn.ws.manager import course_channel, manager

logger = structlog.get_logger()

router = APIRouter()


async def _subscribe(websocket: WebSocket, conn_id: str, channel: str) -> None:
    if await manager.subscribe(conn_id, channel):
        await websocket.send_json({"type": "subscribed", "channel": channel})
    else:
        await websocket.send_json({"type": "error", "message": f"Invalid channel: {channel}"})


@router.websocket("/ws")
async def websocket_endpoint(
    websocket: WebSocket,
    token: str = Query(""),
) -> None:
    """Single WebSocket endpoint with JWT authentication and channel multiplexing.

    Protocol:
        Client -> Server:
            {"action": "subscribe", "channel": "course:12"}
            {"action": "unsubscribe", "channel": "course:12"}
            {"action": "join-course", "courseId": 12}
            {"action": "ping"}

        Server -> Client:
            {"channel": "course:12", "data": {"type": "level-completed", ...}}
            {"type": "pong"}
            {"type": "error", "message": "..."}
            {"type": "subscribed", "channel": "course:12"}
            {"type": "unsubscribed", "channel": "course:12"}
    """
    # Authenticate via JWT token in query param
    try:
        payload = verify_token(token, expected_type="access")
        user_id = int(payload["sub"])
    except (pyjwt.InvalidTokenError, KeyError, ValueError) as e:
        await websocket.close(code=4001, reason=f"Authentication failed: {e}")
        return

    if manager.user_connection_count(user_id) >= get_settings().ws_max_connections_per_user:
        await websocket.close(code=4008, reason="Too many connections")
        return

    conn_id = str(uuid.uuid4())
    await manager.connect(websocket, conn_id, user_id)

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                msg = json.loads(raw)
            except json.JSONDecodeError:
                await websocket.send_json({"type": "error", "message": "Invalid JSON"})
                continue
            if not isinstance(msg, dict):
                await websocket.send_json({"type": "error", "message": "Invalid message"})
                continue

            action = msg.get("action")

            if action == "subscribe":
                await _subscribe(websocket, conn_id, str(msg.get("channel", "")))

            elif action == "join-course":
                course_id = msg.get("courseId")
                if isinstance(course_id, bool) or not isinstance(course_id, (int, str)) or not str(course_id).isdigit():
                    await websocket.send_json({"type": "error", "message": "courseId is required"})
                    continue
                await _subscribe(websocket, conn_id, course_channel(int(course_id)))

            elif action == "unsubscribe":
                channel = str(msg.get("channel", ""))
                await manager.unsubscribe(conn_id, channel)
                await websocket.send_json({"type": "unsubscribed", "channel": channel})

            elif action == "ping":
                await websocket.send_json({"type": "pong"})

            else:
                await websocket.send_json({
                    "type": "error",
                    "message": f"Unknown action: {action}",
                })

    except WebSocketDisconnect:
        await manager.disconnect(conn_id)
    except Exception:
        logger.exception("ws_error", conn_id=conn_id)
        await manager.disconnect(conn_id)
