"""WebSocket connection manager for the in-app notification feed.

Connections are tracked per user. ``publish`` delivers an event to every live
session of a user:

1. Local-only: only sessions connected to this instance receive the event.
2. Redis Pub/Sub: the event is published on ``{prefix}user:{user_id}`` and
   every instance holding a session for that user forwards it.
"""

from __future__ import annotations

import asyncio
from collections import defaultdict
import contextlib
from dataclasses import dataclass, field
import json
import logging
import time
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from prometheus_client import Gauge
from redis.asyncio import Redis

from notification_service.core.settings import get_realtime_settings

if TYPE_CHECKING:
    from fastapi import WebSocket
    from redis.asyncio.client import PubSub

logger = logging.getLogger(__name__)

realtime_connections = Gauge(
    "realtime_connections",
    "Open in-app feed WebSocket connections on this instance",
)


class ConnectionLimitExceeded(Exception):
    """Raised when a user already holds the maximum number of sessions."""


@dataclass
class ConnectionInfo:
    """Metadata about a WebSocket connection."""

    connection_id: str
    websocket: WebSocket
    user_id: str
    connected_at: float = field(default_factory=time.time)


class ConnectionManager:
    """Tracks in-app feed sessions and implements ``RealtimePublisher``.

    Example:
        manager = ConnectionManager()
        await manager.start()

        connection_id = await manager.connect(websocket, user_id="u1")
        try:
            async for _ in websocket.iter_text():
                pass
        finally:
            await manager.disconnect(connection_id)

        await manager.publish("u1", "notification", {"id": "..."})
    """

    def __init__(
        self,
        redis_client: Redis | None = None,
        channel_prefix: str = "ws:",
        max_connections_per_user: int = 10,
    ) -> None:
        self._redis = redis_client
        self._channel_prefix = channel_prefix
        self._max_per_user = max_connections_per_user

        # connection_id -> ConnectionInfo
        self._connections: dict[str, ConnectionInfo] = {}
        # user_id -> set of connection_ids
        self._user_connections: dict[str, set[str]] = defaultdict(set)

        self._pubsub: PubSub | None = None
        self._listener_task: asyncio.Task | None = None
        self._running = False

    def _channel_for(self, user_id: str) -> str:
        return f"{self._channel_prefix}user:{user_id}"

    async def start(self) -> None:
        """Start the Pub/Sub listener if Redis is configured."""
        if self._running:
            return
        self._running = True

        if self._redis is not None:
            self._pubsub = self._redis.pubsub()
            # redis-py's listen() returns immediately until something is subscribed
            await self._pubsub.subscribe(f"{self._channel_prefix}control")
            self._listener_task = asyncio.create_task(self._pubsub_listener())
            logger.info(
                "Connection manager started with Redis PubSub",
                extra={"channel_prefix": self._channel_prefix},
            )
        else:
            logger.info("Connection manager started in local-only mode")

    async def stop(self) -> None:
        """Stop the listener and close every connection."""
        self._running = False

        if self._listener_task:
            self._listener_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._listener_task
            self._listener_task = None

        if self._pubsub:
            await self._pubsub.aclose()
            self._pubsub = None

        closed = len(self._connections)
        for conn_info in list(self._connections.values()):
            with contextlib.suppress(Exception):
                await conn_info.websocket.close(code=1001, reason="Server shutdown")

        self._connections.clear()
        self._user_connections.clear()
        realtime_connections.set(0)

        if self._redis is not None:
            await self._redis.aclose()

        logger.info("Connection manager stopped", extra={"connections_closed": closed})

    async def connect(self, websocket: WebSocket, user_id: str) -> str:
        """Accept a WebSocket for ``user_id`` and return its connection id.

        Raises:
            ConnectionLimitExceeded: The user is at the session limit.
        """
        if len(self._user_connections.get(user_id, ())) >= self._max_per_user:
            logger.warning(
                "Connection refused: per-user limit reached",
                extra={"user_id": user_id, "max": self._max_per_user},
            )
            raise ConnectionLimitExceeded(f"Maximum connections reached for user {user_id}")

        # Reserve the slot before awaiting the handshake
        user_sessions = self._user_connections[user_id]
        connection_id = str(uuid4())
        is_first = not user_sessions
        user_sessions.add(connection_id)
        try:
            await websocket.accept()
        except BaseException:
            user_sessions.discard(connection_id)
            if not user_sessions:
                self._user_connections.pop(user_id, None)
            raise

        self._connections[connection_id] = ConnectionInfo(
            connection_id=connection_id,
            websocket=websocket,
            user_id=user_id,
        )

        if is_first and self._pubsub is not None:
            await self._pubsub.subscribe(self._channel_for(user_id))

        realtime_connections.set(len(self._connections))
        logger.info(
            "WebSocket connected",
            extra={
                "connection_id": connection_id,
                "user_id": user_id,
                "total_connections": len(self._connections),
            },
        )
        return connection_id

    async def disconnect(self, connection_id: str) -> None:
        conn_info = self._connections.pop(connection_id, None)
        if conn_info is None:
            return

        user_sessions = self._user_connections.get(conn_info.user_id)
        if user_sessions is not None:
            user_sessions.discard(connection_id)
            if not user_sessions:
                del self._user_connections[conn_info.user_id]
                if self._pubsub is not None:
                    await self._pubsub.unsubscribe(self._channel_for(conn_info.user_id))

        with contextlib.suppress(Exception):
            await conn_info.websocket.close()

        realtime_connections.set(len(self._connections))
        logger.info(
            "WebSocket disconnected",
            extra={
                "connection_id": connection_id,
                "user_id": conn_info.user_id,
                "duration_seconds": time.time() - conn_info.connected_at,
                "total_connections": len(self._connections),
            },
        )

    async def publish(self, user_id: str, event: str, payload: dict[str, Any]) -> None:
        """Deliver ``{"type": event, "data": payload}`` to the user's sessions."""
        message = {"type": event, "data": payload}

        if self._redis is not None:
            await self._redis.publish(self._channel_for(user_id), json.dumps(message, default=str))
            # Local delivery happens via the Pub/Sub listener
            return

        await self.send_to_user(user_id, message)

    async def send_to_user(self, user_id: str, message: dict[str, Any]) -> int:
        """Send to local sessions only; returns how many received it."""
        count = 0
        for connection_id in list(self._user_connections.get(user_id, ())):
            if await self.send_to_connection(connection_id, message):
                count += 1
        return count

    async def send_to_connection(self, connection_id: str, message: dict[str, Any]) -> bool:
        conn_info = self._connections.get(connection_id)
        if conn_info is None:
            return False

        try:
            await conn_info.websocket.send_json(message)
        except Exception as e:
            logger.warning(
                "Failed to send message to connection",
                extra={"connection_id": connection_id, "error": str(e)},
            )
            await self.disconnect(connection_id)
            return False
        return True

    def user_connection_count(self, user_id: str) -> int:
        return len(self._user_connections.get(user_id, ()))

    @property
    def connection_count(self) -> int:
        """Total number of active connections."""
        return len(self._connections)

    async def _pubsub_listener(self) -> None:
        """Forward Redis Pub/Sub messages to local sessions."""
        if self._pubsub is None:
            return

        user_prefix = f"{self._channel_prefix}user:"
        try:
            async for message in self._pubsub.listen():
                if not self._running:
                    break
                if message["type"] != "message":
                    continue

                try:
                    channel = message["channel"]
                    if isinstance(channel, bytes):
                        channel = channel.decode()
                    if not channel.startswith(user_prefix):
                        continue

                    data = message["data"]
                    if isinstance(data, bytes):
                        data = data.decode()
                    await self.send_to_user(channel.removeprefix(user_prefix), json.loads(data))
                except Exception as e:
                    logger.error("Error processing PubSub message", extra={"error": str(e)})
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.error("PubSub listener error", extra={"error": str(e)})


# Global manager instance
_manager: ConnectionManager | None = None


def get_connection_manager() -> ConnectionManager:
    """Get the global connection manager instance.

    Raises:
        RuntimeError: If the manager has not been started.
    """
    if _manager is None:
        raise RuntimeError("Connection manager not initialized. Call start_connection_manager() first.")
    return _manager


async def start_connection_manager() -> ConnectionManager:
    """Create and start the global connection manager.

    Uses Redis Pub/Sub when ``REALTIME_REDIS_URL`` is set and reachable,
    otherwise runs in local-only mode.
    """
    global _manager

    settings = get_realtime_settings()
    redis_client: Redis | None = None

    if settings.is_redis_configured:
        try:
            redis_client = Redis.from_url(settings.redis_url)
            await redis_client.ping()
            logger.info("Realtime feed using Redis PubSub for horizontal scaling")
        except Exception as e:
            logger.warning(
                "Failed to connect to Redis for realtime PubSub, using local-only mode",
                extra={"error": str(e)},
            )
            redis_client = None

    _manager = ConnectionManager(
        redis_client=redis_client,
        channel_prefix=settings.channel_prefix,
        max_connections_per_user=settings.max_connections_per_user,
    )
    await _manager.start()
    return _manager


async def stop_connection_manager() -> None:
    global _manager

    if _manager is not None:
        await _manager.stop()
        _manager = None
