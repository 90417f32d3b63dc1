"""Bridges Redis pub/sub to WebSocket clients.

Pattern-subscribes to the per-course channels published by
``RedisNotifier`` and fans messages out to the matching WebSocket channel.
"""

import asyncio
import json

import redis.asyncio as aioredis
import structlog

from homelearn.ws.manager import ConnectionManager, is_valid_channel, manager
from homelearn.ws.notifier import REDIS_CHANNEL_PREFIX

logger = structlog.get_logger()

COURSE_PATTERN = f"{REDIS_CHANNEL_PREFIX}course:*"


class PubSubBridge:
    """Subscribes to Redis pub/sub and pushes messages to WebSocket clients."""

    def __init__(self, redis_client: aioredis.Redis, connections: ConnectionManager | None = None) -> None:
        self.redis = redis_client
        self.connections = connections or manager
        self._running = False

    async def handle_message(self, message: dict) -> int:
        """Forward one pub/sub message. Returns the number of recipients."""
        redis_channel = message.get("channel", "")
        if isinstance(redis_channel, bytes):
            redis_channel = redis_channel.decode()
        if not redis_channel.startswith(REDIS_CHANNEL_PREFIX):
            return 0

        ws_channel = redis_channel[len(REDIS_CHANNEL_PREFIX):]
        if not is_valid_channel(ws_channel):
            logger.warning("pubsub_unknown_channel", channel=redis_channel)
            return 0

        try:
            data = message.get("data", b"")
            if isinstance(data, bytes):
                data = data.decode()
            payload = json.loads(data)
        except (json.JSONDecodeError, UnicodeDecodeError, TypeError):
            logger.warning("pubsub_invalid_message", channel=redis_channel)
            return 0

        event_type = payload.get("event", "notification")
        event_data = payload.get("data", {})
        sent = await self.connections.broadcast_to_channel(ws_channel, {"type": event_type, **event_data})
        if sent > 0:
            logger.debug("pubsub_broadcast", channel=ws_channel, event_type=event_type, recipients=sent)
        return sent

    async def start(self) -> None:
        """Start listening to Redis pub/sub channels."""
        self._running = True
        pubsub = self.redis.pubsub()
        await pubsub.psubscribe(COURSE_PATTERN)
        logger.info("pubsub_bridge_started", patterns=[COURSE_PATTERN])

        try:
            while self._running:
                message = await pubsub.get_message(
                    ignore_subscribe_messages=True,
                    timeout=1.0,
                )
                if message is None:
                    continue
                await self.handle_message(message)
        except asyncio.CancelledError:
            pass
        finally:
            await pubsub.punsubscribe()
            await pubsub.aclose()
            logger.info("pubsub_bridge_stopped")

    async def stop(self) -> None:
        """Signal the bridge to stop."""
        self._running = False
