"""
Redis Client for the Content Moderation Agent.

Carries moderation result notifications between processes:
- The moderation worker publishes one message per scoring pass
- The API process subscribes and relays them to websocket clients

Redis is optional. Without it results are only logged.
"""

import json
import logging
from typing import Any, Callable, Dict, Optional

import redis
from redis.exceptions import RedisError, ConnectionError

from .config import settings

# Initialize logger
logger = logging.getLogger(__name__)

# =============================================================================
# Redis Connection
# =============================================================================

REDIS_URL = settings.redis_url
RESULTS_CHANNEL = settings.results_channel


def create_redis_client(url: str) -> Optional["redis.Redis"]:
    """Connect and ping; None when Redis is unreachable."""
    try:
        client = redis.from_url(
            url,
            decode_responses=True,  # Auto-decode bytes to strings
            socket_connect_timeout=5,
            socket_keepalive=True,
            health_check_interval=30
        )
        client.ping()
        logger.info(f"Redis connected: {url}")
        return client
    except (RedisError, ConnectionError) as e:
        logger.warning(f"Redis connection failed: {e}. Result notifications will only be logged.")
        return None


# Tests run without Redis
redis_client = None if settings.testing else create_redis_client(REDIS_URL)


# =============================================================================
# Result Notifications (Pub/Sub)
# =============================================================================

def publish_result(payload: Dict[str, Any], client: Optional["redis.Redis"] = None) -> bool:
    """
    Emit a moderation result notification.

    Always logged; also published to the results channel when Redis is up.
    Returns True if the message was published.
    """
    logger.info(
        f"Moderation result: content={payload.get('content_id')} decision={payload.get('decision')} "
        f"score={payload.get('final_score')} status={payload.get('new_status')}"
    )

    client = client if client is not None else redis_client
    if not client:
        return False

    try:
        client.publish(RESULTS_CHANNEL, json.dumps(payload))
        logger.debug(f"Published result for content {payload.get('content_id')}")
        return True
    except RedisError as e:
        logger.warning(f"Failed to publish moderation result: {e}")
        return False


def listen_for_results(handler: Callable[[Dict[str, Any]], None], client: Optional["redis.Redis"] = None) -> None:
    """
    Blocking loop feeding every published result to ``handler``.

    Meant for a daemon thread. Returns when Redis is unavailable or the
    connection drops.
    """
    client = client if client is not None else redis_client
    if not client:
        logger.warning("Redis not available, result relay disabled")
        return

    try:
        pubsub = client.pubsub()
        pubsub.subscribe(RESULTS_CHANNEL)
        logger.info(f"Subscribed to {RESULTS_CHANNEL}")

        for message in pubsub.listen():
            if message["type"] != "message":
                continue
            try:
                handler(json.loads(message["data"]))
            except (json.JSONDecodeError, TypeError) as e:
                logger.warning(f"Ignoring malformed result notification: {e}")
    except RedisError as e:
        logger.error(f"Result listener error: {e}")


def check_redis_health() -> Dict[str, Any]:
    """Redis connectivity for the health endpoint."""
    if not redis_client:
        return {"redis_connected": False}
    try:
        redis_client.ping()
        return {"redis_connected": True}
    except RedisError as e:
        return {"redis_connected": False, "redis_error": str(e)}
