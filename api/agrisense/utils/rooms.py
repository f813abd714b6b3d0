from __future__ import annotations
import asyncio
import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, Any, Optional, AsyncIterator
from agrisense.obs.logging_setup import get_logger
from agrisense.obs.metrics import set_gauge
from agrisense.obs.prometheus_metrics import prometheus_metrics

logger = get_logger(__name__)

TYPING_EVENT = "assistant_typing"
RESULT_EVENT = "assistant_message"

@dataclass
class RoomEvent:
    """One event pushed to the members of a room."""
    event: str
    room_id: str
    payload: Dict[str, Any]
    event_id: str = field(default_factory=lambda: f"evt_{uuid.uuid4().hex[:12]}")
    timestamp: float = field(default_factory=time.time)

@dataclass
class Subscription:
    """A live connection's membership in a single room."""
    connection_id: str
    room_id: str
    queue: asyncio.Queue
    joined_at: float = field(default_factory=time.time)

class DeliveryChannel(ABC):
    """Best-effort pub/sub keyed by room id."""

    @abstractmethod
    def join(self, connection_id: str, room_id: str) -> Subscription:
        """Add a connection to a room, leaving any room it was in."""

    @abstractmethod
    def leave(self, connection_id: str) -> None:
        """Remove a connection from its room."""

    @abstractmethod
    def publish(self, room_id: str, event: str, payload: Dict[str, Any]) -> int:
        """Deliver to every connection currently in the room; return how many."""

class RoomHub(DeliveryChannel):
    """In-process room registry.

    Nothing is buffered for rooms without members: a publish to an empty room
    is a silent no-op, and a connection joining later sees only later events.
    """

    def __init__(self, queue_size: int = 100):
        self.queue_size = queue_size
        self._rooms: Dict[str, Dict[str, Subscription]] = {}
        self._connections: Dict[str, Subscription] = {}

    def join(self, connection_id: str, room_id: str) -> Subscription:
        current = self._connections.get(connection_id)
        if current is not None:
            if current.room_id == room_id:
                return current
            self.leave(connection_id)

        subscription = Subscription(
            connection_id=connection_id,
            room_id=room_id,
            queue=asyncio.Queue(maxsize=self.queue_size),
        )
        self._connections[connection_id] = subscription
        self._rooms.setdefault(room_id, {})[connection_id] = subscription
        set_gauge("room_connections", len(self._connections))

        logger.info("Connection joined room", connection_id=connection_id, room_id=room_id)
        return subscription

    def leave(self, connection_id: str) -> None:
        subscription = self._connections.pop(connection_id, None)
        if subscription is None:
            return

        members = self._rooms.get(subscription.room_id)
        if members is not None:
            members.pop(connection_id, None)
            if not members:
                # Room lifetime ends with its last member.
                del self._rooms[subscription.room_id]

        set_gauge("room_connections", len(self._connections))
        logger.info("Connection left room", connection_id=connection_id, room_id=subscription.room_id)

    def member_count(self, room_id: str) -> int:
        return len(self._rooms.get(room_id, {}))

    def room_of(self, connection_id: str) -> Optional[str]:
        subscription = self._connections.get(connection_id)
        return subscription.room_id if subscription else None

    def publish(self, room_id: str, event: str, payload: Dict[str, Any]) -> int:
        members = list(self._rooms.get(room_id, {}).values())
        if not members:
            logger.debug("No live members for room, dropping event", room_id=room_id, event=event)
            prometheus_metrics.record_delivery(event, 0)
            return 0

        room_event = RoomEvent(event=event, room_id=room_id, payload=payload)
        delivered = 0
        for subscription in members:
            try:
                subscription.queue.put_nowait(room_event)
                delivered += 1
            except asyncio.QueueFull:
                logger.warning(
                    "Connection queue full, event dropped",
                    connection_id=subscription.connection_id,
                    room_id=room_id,
                    event=event
                )

        prometheus_metrics.record_delivery(event, delivered)
        logger.info("Event published to room", room_id=room_id, event=event, delivered=delivered)
        return delivered

    async def listen(
        self,
        subscription: Subscription,
        heartbeat_interval: float,
    ) -> AsyncIterator[Optional[RoomEvent]]:
        """Yield the subscription's events; yields None when a heartbeat is due."""
        while self._connections.get(subscription.connection_id) is subscription:
            try:
                yield await asyncio.wait_for(subscription.queue.get(), timeout=heartbeat_interval)
            except asyncio.TimeoutError:
                yield None
