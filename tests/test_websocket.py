"""
Tests for websocket notifications and the result publisher.
"""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from moderation_agent.redis_client import publish_result
from moderation_agent.websocket_manager import (
    ConnectionManager,
    EventType,
    WebSocketEvent,
    broadcast_moderation_result,
)

PAYLOAD = {"content_id": "c-1", "decision": "block", "final_score": 0.82, "new_status": "blocked"}


def _socket():
    ws = MagicMock()
    ws.accept = AsyncMock()
    ws.send_text = AsyncMock()
    return ws


# =============================================================================
# Events
# =============================================================================

def test_event_serializes_type_and_data():
    event = WebSocketEvent(event_type=EventType.MODERATION_RESULT, data=PAYLOAD, timestamp="t")

    assert json.loads(event.to_json()) == {"event": "moderation_result", "data": PAYLOAD, "timestamp": "t"}


# =============================================================================
# Connection Manager
# =============================================================================

@pytest.mark.asyncio
async def test_connect_accepts_and_confirms():
    manager = ConnectionManager()
    ws = _socket()

    await manager.connect(ws)

    ws.accept.assert_awaited_once()
    sent = json.loads(ws.send_text.await_args.args[0])
    assert sent["event"] == "connected"
    assert manager.get_connection_count() == 1


@pytest.mark.asyncio
async def test_result_is_broadcast_to_every_client():
    manager = ConnectionManager()
    first, second = _socket(), _socket()
    await manager.connect(first)
    await manager.connect(second)

    await broadcast_moderation_result(PAYLOAD, target=manager)

    for ws in (first, second):
        message = json.loads(ws.send_text.await_args.args[0])
        assert message["event"] == "moderation_result"
        assert message["data"] == PAYLOAD


@pytest.mark.asyncio
async def test_failing_client_does_not_stop_broadcast():
    manager = ConnectionManager()
    broken, healthy = _socket(), _socket()
    await manager.connect(broken)
    await manager.connect(healthy)
    broken.send_text.side_effect = RuntimeError("socket closed")

    await broadcast_moderation_result(PAYLOAD, target=manager)

    assert json.loads(healthy.send_text.await_args.args[0])["data"] == PAYLOAD


@pytest.mark.asyncio
async def test_disconnect_removes_client():
    manager = ConnectionManager()
    ws = _socket()
    await manager.connect(ws)

    manager.disconnect(ws)

    assert manager.get_connection_count() == 0


# =============================================================================
# Result Publisher
# =============================================================================

def test_publish_without_redis_only_logs():
    assert publish_result(PAYLOAD) is False


def test_publish_sends_json_to_results_channel():
    client = MagicMock()

    assert publish_result(PAYLOAD, client=client) is True

    channel, message = client.publish.call_args.args
    assert channel == "moderation:results"
    assert json.loads(message) == PAYLOAD


def test_publish_failure_is_reported_not_raised():
    client = MagicMock()
    client.publish.side_effect = RedisConnectionError("down")

    assert publish_result(PAYLOAD, client=client) is False
