"""Publish side of the real-time channel.

Domain code depends only on ``Notifier.publish``. Delivery is best effort:
publishing never raises, and clients that are not connected miss the event.
"""

from __future__ import annotations

import json
from typing import Any, Protocol

import structlog

from homelearn.redis_client import get_redis
from homelearn.ws.manager import ConnectionManager, manager

logger = structlog.get_logger()

REDIS_CHANNEL_PREFIX = "pubsub:"


class Notifier(Protocol):
    async def publish(self, channel: str, event: str, data: dict[str, Any]) -> None: ...


class LocalNotifier:
    """Fan out directly to this process's WebSocket clients."""

    def __init__(self, connections: ConnectionManager | None = None) -> None:
        self.connections = connections or manager

    async def publish(self, channel: str, event: str, data: dict[str, Any]) -> None:
        try:
            sent = await self.connections.broadcast_to_channel(channel, {"type": event, **data})
        except Exception:
            logger.warning("notify_failed", channel=channel, event_type=event, exc_info=True)
            return
        logger.debug("notify_local", channel=channel, event_type=event, recipients=sent)


class RedisNotifier:
    """Publish to Redis; every API process's PubSubBridge forwards to its clients."""

    async def publish(self, channel: str, event: str, data: dict[str, Any]) -> None:
        try:
            redis = get_redis()
            await redis.publish(
                f"{REDIS_CHANNEL_PREFIX}{channel}",
                json.dumps({"event": event, "data": data}),
            )
        except Exception:
            logger.warning("notify_failed", channel=channel, event_type=event, exc_info=True)


def build_notifier(backend: str) -> Notifier:
    """Notifier for the configured backend ("redis" or "local")."""
    if backend == "redis":
        return RedisNotifier()
    if backend == "local":
        return LocalNotifier()
    msg = f"Unknown notifier backend: {backend}"
    raise ValueError(msg)
