"""
WebSocket Router for real-time moderation results.

Endpoints:
- WS /ws - Stream of moderation_result events
- GET /ws/status - Number of connected clients
"""

import json
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from ..websocket_manager import EventType, WebSocketEvent, manager

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["websocket"],
)


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """
    Connect with: ws://host/ws

    Events received by client:
    - connected: Connection confirmed
    - moderation_result: {content_id, decision, final_score, new_status}
    - pong: Reply to ping

    Events client can send:
    - ping: {} - Keep-alive ping
    """
    connection = await manager.connect(websocket)

    try:
        while True:
            data = await websocket.receive_text()
            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                logger.debug("Ignoring non-JSON websocket message")
                continue

            if isinstance(message, dict) and message.get("event") == "ping":
                await manager.send(connection, WebSocketEvent(event_type=EventType.PONG, data={}))
    except WebSocketDisconnect:
        manager.disconnect(websocket)


@router.get("/ws/status")
async def websocket_status():
    return {"connections": manager.get_connection_count()}
