"""Connection management helpers for notification websockets."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, DefaultDict, Set

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class NotificationConnectionManager:
    """Track the open websocket connections of each recipient."""

    def __init__(self) -> None:
        self._connections: DefaultDict[int, Set[WebSocket]] = defaultdict(set)

    async def connect(self, user_id: int, websocket: WebSocket) -> None:
        """Accept the websocket connection and register it for ``user_id``."""

        await websocket.accept()
        self._connections[user_id].add(websocket)

    def disconnect(self, user_id: int, websocket: WebSocket) -> None:
        connections = self._connections.get(user_id)
        if connections is None:
            return
        connections.discard(websocket)
        if not connections:
            self._connections.pop(user_id, None)

    def connection_count(self, user_id: int) -> int:
        return len(self._connections.get(user_id, ()))

    async def send_to_user(self, user_id: int, message: dict[str, Any]) -> int:
        """Send ``message`` to every connection of ``user_id``.

        Returns the number of connections that received it; broken sockets are
        dropped from the pool.
        """

        delivered = 0
        for connection in list(self._connections.get(user_id, set())):
            try:
                await connection.send_json(message)
            except Exception as exc:  # pragma: no cover - depends on client behaviour
                logger.debug("Dropping websocket of user %s: %s", user_id, exc)
                self.disconnect(user_id, connection)
            else:
                delivered += 1
        return delivered


notification_manager = NotificationConnectionManager()


__all__ = ["NotificationConnectionManager", "notification_manager"]
