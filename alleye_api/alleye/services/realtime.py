from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Iterable, Optional, Set
from uuid import UUID

from fastapi.encoders import jsonable_encoder
from sqlalchemy import inspect
from starlette.websockets import WebSocket, WebSocketState

from alleye.schemas.realtime import ChangePayload, WsEnvelope

logger = logging.getLogger(__name__)

# Tables streamed to the administrator dashboard
ADMIN_TABLES = (
    "profiles",
    "content",
    "playlists",
    "organizations",
    "news",
    "qanda",
    "analytics",
    "cyber_training_analytics",
)


# PUBLIC_INTERFACE
def serialize_row(entity: Any) -> Optional[Dict[str, Any]]:
    """Column values of an ORM instance as a JSON-safe dict."""
    if entity is None:
        return None
    mapper = inspect(entity).mapper
    return jsonable_encoder({attr.key: getattr(entity, attr.key) for attr in mapper.column_attrs})


class BroadcastManager:
    """
    Simple in-process pub-sub manager for WebSocket topics.

    Topics:
      - table:{name}        every change of one table
      - profile:{user_id}   updates of a single profile
    """

    def __init__(self) -> None:
        self._topics: Dict[str, Set[WebSocket]] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def _topic_lock(self, topic: str) -> asyncio.Lock:
        if topic not in self._locks:
            self._locks[topic] = asyncio.Lock()
        return self._locks[topic]

    # PUBLIC_INTERFACE
    def table_topic(self, table: str) -> str:
        """Return the topic name for a table."""
        return f"table:{table}"

    # PUBLIC_INTERFACE
    def profile_topic(self, user_id: UUID | str) -> str:
        """Return the topic name for one profile."""
        return f"profile:{user_id}"

    def subscriber_count(self, topic: str) -> int:
        return len(self._topics.get(topic, ()))

    # PUBLIC_INTERFACE
    async def connect(self, topic: str, websocket: WebSocket) -> None:
        """Add an accepted websocket to the topic subscribers."""
        async with self._topic_lock(topic):
            subscribers = self._topics.setdefault(topic, set())
            subscribers.add(websocket)
            logger.info("WebSocket connected to topic=%s; subscribers=%d", topic, len(subscribers))

    # PUBLIC_INTERFACE
    async def connect_many(self, topics: Iterable[str], websocket: WebSocket) -> None:
        for topic in topics:
            await self.connect(topic, websocket)

    # PUBLIC_INTERFACE
    async def disconnect(self, topic: str, websocket: WebSocket) -> None:
        """Remove websocket from topic subscribers; empty topics are forgotten."""
        if topic not in self._topics:
            return
        async with self._topic_lock(topic):
            subscribers = self._topics.get(topic)
            if subscribers is None:
                return
            subscribers.discard(websocket)
            remaining = len(subscribers)
            if not subscribers:
                del self._topics[topic]
        if remaining == 0:
            self._locks.pop(topic, None)
        logger.info("WebSocket disconnected from topic=%s; subscribers=%d", topic, remaining)

    # PUBLIC_INTERFACE
    async def disconnect_many(self, topics: Iterable[str], websocket: WebSocket) -> None:
        for topic in topics:
            await self.disconnect(topic, websocket)

    # PUBLIC_INTERFACE
    async def broadcast(self, topic: str, message: dict) -> None:
        """
        Broadcast a dict message to all subscribers in the topic.

        Topics without subscribers are skipped. Sockets that are closed or
        fail to receive are dropped.
        """
        if not self._topics.get(topic):
            return
        async with self._topic_lock(topic):
            subscribers = self._topics.get(topic, set())
            to_drop: list[WebSocket] = []
            for ws in list(subscribers):
                try:
                    if ws.application_state == WebSocketState.DISCONNECTED or ws.client_state == WebSocketState.DISCONNECTED:
                        to_drop.append(ws)
                        continue
                    await ws.send_json(message)
                except Exception:
                    logger.exception("Failed to send message to websocket; scheduling drop")
                    to_drop.append(ws)
            for ws in to_drop:
                subscribers.discard(ws)

    # PUBLIC_INTERFACE
    async def publish_change(
        self,
        table: str,
        event_type: str,
        new: Optional[Dict[str, Any]] = None,
        old: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Publish a row change to the table topic.

        Profile updates are also delivered to that profile's own topic.
        """
        change = ChangePayload(table=table, event_type=event_type, new=new, old=old)
        env = WsEnvelope(type="change", payload=change.model_dump(mode="json")).model_dump(mode="json")
        await self.broadcast(self.table_topic(table), env)
        if table == "profiles" and event_type == "UPDATE" and new and new.get("id"):
            await self.broadcast(self.profile_topic(new["id"]), env)


# Singleton instance
broadcast_manager = BroadcastManager()


# PUBLIC_INTERFACE
async def publish_safely(table: str, event_type: str, new: Any = None, old: Any = None) -> None:
    """
    Publish a change after a committed write; delivery errors are logged only.

    `new`/`old` may be ORM instances or already-serialized dicts.
    """
    try:
        new_row = new if isinstance(new, dict) or new is None else serialize_row(new)
        old_row = old if isinstance(old, dict) or old is None else serialize_row(old)
        await broadcast_manager.publish_change(table, event_type, new=new_row, old=old_row)
    except Exception:
        logger.exception("Failed to publish %s change for table=%s", event_type, table)
