"""
Per-user event channel over Redis pub/sub, or nothing when FF_USE_REDIS is off.

Events go to `user:{user_id}` as {"type": ..., "data": ...}. Delivery is
best effort; a lost event never fails the request that produced it.
"""

import json
import logging
from typing import Any

from .config import get_settings
from .flags import get_flags

logger = logging.getLogger(__name__)

_redis_client = None


def user_channel(user_id: str) -> str:
    return f"user:{user_id}"


async def _get_redis():
    global _redis_client
    if _redis_client is None:
        import redis.asyncio as aioredis

        _redis_client = aioredis.from_url(
            get_settings().redis_url,
            decode_responses=True,
            socket_connect_timeout=5,
        )
    return _redis_client


async def send_user_event(user_id: str, event_type: str, data: Any = None) -> None:
    if not get_flags().use_redis:
        return

    channel = user_channel(user_id)
    try:
        client = await _get_redis()
        await client.publish(channel, json.dumps({"type": event_type, "data": data}))
    except Exception as e:
        logger.warning("Dropped %s event on %s: %s", event_type, channel, e)


async def close_redis() -> None:
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None
        logger.info("Redis connection closed")
