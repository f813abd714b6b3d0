from __future__ import annotations
import time
import uuid
from typing import AsyncIterator, Callable, Awaitable, Optional
from fastapi import APIRouter, Depends, Request, Query as QueryParam
from fastapi.responses import StreamingResponse
from agrisense.config import HEARTBEAT_INTERVAL
from agrisense.deps.pipeline import get_room_hub
from agrisense.obs.logging_setup import get_logger
from agrisense.obs.metrics import inc_counter
from agrisense.utils.rooms import RoomHub
from agrisense.utils.sse import create_sse_message, create_sse_heartbeat

logger = get_logger(__name__)

router = APIRouter(prefix="/rooms", tags=["rooms"])

JOINED_EVENT = "joined_room"

async def room_event_stream(
    hub: RoomHub,
    room_id: str,
    connection_id: str,
    heartbeat_interval: float = HEARTBEAT_INTERVAL,
    is_disconnected: Optional[Callable[[], Awaitable[bool]]] = None,
) -> AsyncIterator[str]:
    """SSE frames for one live connection. The room is left when the stream ends."""
    subscription = hub.join(connection_id, room_id)
    inc_counter("room_connections_total")
    try:
        yield create_sse_message({
            "type": JOINED_EVENT,
            "room_id": room_id,
            "connection_id": connection_id,
            "members": hub.member_count(room_id),
            "timestamp": time.time()
        }, event_type=JOINED_EVENT)

        async for room_event in hub.listen(subscription, heartbeat_interval):
            if is_disconnected is not None and await is_disconnected():
                logger.info("Client disconnected from room", room_id=room_id, connection_id=connection_id)
                break

            if room_event is None:
                yield create_sse_heartbeat()
                continue

            yield create_sse_message(
                {**room_event.payload, "room_id": room_event.room_id, "type": room_event.event},
                event_type=room_event.event,
                event_id=room_event.event_id,
            )
    finally:
        hub.leave(connection_id)

@router.get("/{room_id}/stream")
async def stream_room(
    room_id: str,
    request: Request,
    connection_id: Optional[str] = QueryParam(default=None, description="Client connection id; generated when absent"),
    hub: RoomHub = Depends(get_room_hub),
):
    """Join a live room over Server-Sent Events."""
    connection_id = connection_id or f"conn_{uuid.uuid4().hex[:12]}"
    return StreamingResponse(
        room_event_stream(hub, room_id, connection_id, HEARTBEAT_INTERVAL, request.is_disconnected),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        }
    )
