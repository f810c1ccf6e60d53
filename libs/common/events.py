"""Real-time event publishing.

Order operations depend on the ``EventPublisher`` protocol only. The API
process wires in ``RoomBroadcaster``, which fans events out over WebSocket
connections grouped into rooms (``order_<id>`` for tracking pages; no room
means every connected client, e.g. driver and admin dashboards).

Publishing is best-effort: ``publish_safely`` never raises.
"""

from typing import Any, Optional, Protocol

from fastapi.encoders import jsonable_encoder
from starlette.websockets import WebSocket

from libs.common.logging import get_logger

logger = get_logger(__name__)

NEW_ORDER = "new_order"
ORDER_CANCELLED = "order_cancelled"
ORDER_STATUS_UPDATED = "order_status_updated"


def order_room(order_id: Any) -> str:
    return f"order_{order_id}"


class EventPublisher(Protocol):
    async def publish(
        self, event: str, payload: dict[str, Any], room: Optional[str] = None
    ) -> None: ...


class RoomBroadcaster:
    """In-process WebSocket hub with named rooms."""

    def __init__(self) -> None:
        self._connections: set[WebSocket] = set()
        self._rooms: dict[str, set[WebSocket]] = {}

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    def room_size(self, room: str) -> int:
        return len(self._rooms.get(room, ()))

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self._connections.add(websocket)

    def disconnect(self, websocket: WebSocket) -> None:
        self._connections.discard(websocket)
        for room in list(self._rooms):
            members = self._rooms[room]
            members.discard(websocket)
            if not members:
                del self._rooms[room]

    def join(self, websocket: WebSocket, room: str) -> None:
        self._rooms.setdefault(room, set()).add(websocket)

    def leave(self, websocket: WebSocket, room: str) -> None:
        members = self._rooms.get(room)
        if members is None:
            return
        members.discard(websocket)
        if not members:
            del self._rooms[room]

    async def publish(
        self, event: str, payload: dict[str, Any], room: Optional[str] = None
    ) -> None:
        targets = self._rooms.get(room, set()) if room else self._connections
        message = {"event": event, "data": jsonable_encoder(payload)}

        dead: list[WebSocket] = []
        for websocket in list(targets):
            try:
                await websocket.send_json(message)
            except Exception as e:
                logger.warning("Dropping websocket after failed send: %s", e)
                dead.append(websocket)

        for websocket in dead:
            self.disconnect(websocket)

        logger.debug(
            "Published %s to %s (%d recipients)",
            event,
            room or "all",
            len(targets),
        )


async def publish_safely(
    publisher: EventPublisher,
    event: str,
    payload: dict[str, Any],
    room: Optional[str] = None,
) -> None:
    """Publish an event; log and swallow any failure."""
    try:
        await publisher.publish(event, payload, room=room)
    except Exception:
        logger.exception("Failed to publish %s event", event)


broadcaster = RoomBroadcaster()


def get_publisher() -> EventPublisher:
    """FastAPI dependency returning the process-wide publisher."""
    return broadcaster
