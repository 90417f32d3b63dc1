"""Live WebSocket connections grouped by course channel.

A connection joins any number of ``course:<id>`` channels; events published
for a course are pushed to every connection in that channel.
"""

import asyncio
import json
import re
from collections import defaultdict
from dataclasses import dataclass, field

import structlog
from fastapi import WebSocket

logger = structlog.get_logger()

_COURSE_CHANNEL = re.compile(r"^course:\d+$")


def course_channel(course_id: int) -> str:
    """Channel name for a course's real-time events."""
    return f"course:{course_id}"


def is_valid_channel(channel: str) -> bool:
    return bool(_COURSE_CHANNEL.match(channel))


@dataclass
class LiveConnection:
    websocket: WebSocket
    user_id: int
    channels: set[str] = field(default_factory=set)
    delivered: int = 0


class ConnectionManager:
    """In-process registry of sockets, their users and their channels.

    All mutation happens on the event loop, so no locking.
    """

    def __init__(self) -> None:
        self._live: dict[str, LiveConnection] = {}
        self._members: dict[str, set[str]] = defaultdict(set)  # channel -> conn ids
        self._by_user: dict[int, set[str]] = defaultdict(set)  # user id -> conn ids

    @property
    def connection_count(self) -> int:
        return len(self._live)

    def user_connection_count(self, user_id: int) -> int:
        return len(self._by_user.get(user_id, ()))

    async def connect(self, websocket: WebSocket, conn_id: str, user_id: int) -> None:
        await websocket.accept()
        self._live[conn_id] = LiveConnection(websocket=websocket, user_id=user_id)
        self._by_user[user_id].add(conn_id)
        logger.info("ws_connected", conn_id=conn_id, user_id=user_id)

    def _leave(self, conn_id: str, channel: str) -> None:
        members = self._members.get(channel)
        if members is None:
            return
        members.discard(conn_id)
        if not members:
            del self._members[channel]

    async def disconnect(self, conn_id: str) -> None:
        """Forget a connection and every channel it joined. Unknown ids are ignored."""
        conn = self._live.pop(conn_id, None)
        if conn is None:
            return

        for channel in conn.channels:
            self._leave(conn_id, channel)

        owned = self._by_user.get(conn.user_id)
        if owned is not None:
            owned.discard(conn_id)
            if not owned:
                del self._by_user[conn.user_id]

        logger.info("ws_disconnected", conn_id=conn_id, user_id=conn.user_id, delivered=conn.delivered)

    async def subscribe(self, conn_id: str, channel: str) -> bool:
        """Join a course channel. False for an unknown connection or a malformed channel."""
        conn = self._live.get(conn_id)
        if conn is None or not is_valid_channel(channel):
            return False
        conn.channels.add(channel)
        self._members[channel].add(conn_id)
        logger.debug("ws_subscribed", conn_id=conn_id, channel=channel)
        return True

    async def unsubscribe(self, conn_id: str, channel: str) -> bool:
        conn = self._live.get(conn_id)
        if conn is None:
            return False
        conn.channels.discard(channel)
        self._leave(conn_id, channel)
        return True

    async def broadcast_to_channel(self, channel: str, message: dict) -> int:
        """Push ``{"channel", "data"}`` to every member of a channel.

        Returns how many sockets accepted the frame. Sockets that fail are
        disconnected.
        """
        targets = [(cid, self._live[cid]) for cid in self._members.get(channel, ()) if cid in self._live]
        if not targets:
            return 0

        frame = json.dumps({"channel": channel, "data": message})
        results = await asyncio.gather(
            *(conn.websocket.send_text(frame) for _, conn in targets),
            return_exceptions=True,
        )

        sent = 0
        for (conn_id, conn), result in zip(targets, results):
            if isinstance(result, Exception):
                logger.debug("ws_send_failed", conn_id=conn_id, error=str(result))
                await self.disconnect(conn_id)
            else:
                conn.delivered += 1
                sent += 1
        return sent

    def get_stats(self) -> dict:
        return {
            "total_connections": len(self._live),
            "unique_users": len(self._by_user),
            "channels": {ch: len(members) for ch, members in self._members.items()},
        }


manager = ConnectionManager()
