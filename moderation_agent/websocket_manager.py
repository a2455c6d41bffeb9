"""
WebSocket Manager for moderation result notifications.

Handles WebSocket connections for:
- Moderation results (content id, decision, final score, new status)
- Connection confirmation and keep-alive
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from fastapi import WebSocket

from .models import utcnow

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    """WebSocket event types."""
    CONNECTED = "connected"
    MODERATION_RESULT = "moderation_result"
    PONG = "pong"


@dataclass
class WebSocketEvent:
    """Structured WebSocket event."""
    event_type: EventType
    data: Dict[str, Any]
    timestamp: str = field(default_factory=lambda: utcnow().isoformat())

    def to_json(self) -> str:
        return json.dumps({
            "event": self.event_type.value,
            "data": self.data,
            "timestamp": self.timestamp,
        })


@dataclass
class ClientConnection:
    """A connected websocket client."""
    websocket: WebSocket
    connected_at: datetime = field(default_factory=utcnow)


class ConnectionManager:
    """Tracks websocket clients and broadcasts events to all of them."""

    def __init__(self):
        self.connections: List[ClientConnection] = []
        logger.info("WebSocket ConnectionManager initialized")

    async def connect(self, websocket: WebSocket) -> ClientConnection:
        await websocket.accept()
        connection = ClientConnection(websocket=websocket)
        self.connections.append(connection)
        logger.info(f"WebSocket connected ({self.get_connection_count()} active)")

        await self.send(
            connection,
            WebSocketEvent(
                event_type=EventType.CONNECTED,
                data={"message": "Connected to moderation results"},
            ),
        )
        return connection

    def disconnect(self, websocket: WebSocket) -> None:
        self.connections = [conn for conn in self.connections if conn.websocket is not websocket]
        logger.info(f"WebSocket disconnected ({self.get_connection_count()} active)")

    async def send(self, connection: ClientConnection, event: WebSocketEvent) -> None:
        try:
            await connection.websocket.send_text(event.to_json())
        except Exception as e:
            logger.error(f"Failed to send websocket event: {e}")

    async def broadcast_to_all(self, event: WebSocketEvent) -> None:
        message = event.to_json()
        for conn in list(self.connections):
            try:
                await conn.websocket.send_text(message)
            except Exception as e:
                logger.error(f"Broadcast failed: {e}")

    def get_connection_count(self) -> int:
        return len(self.connections)


# Global connection manager instance
manager = ConnectionManager()


async def broadcast_moderation_result(payload: Dict[str, Any], target: Optional[ConnectionManager] = None):
    """Relay one result notification to every connected client."""
    await (target or manager).broadcast_to_all(
        WebSocketEvent(event_type=EventType.MODERATION_RESULT, data=payload)
    )
