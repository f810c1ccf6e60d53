"""WebSocket endpoint for live order tracking and dashboards.

Clients connect to ``/ws`` and receive every global event (``new_order``,
``order_cancelled``). To follow one order they send::

    {"action": "join", "room": "order_<id>"}

and get ``order_status_updated`` events for it until they ``leave``.
"""

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from libs.common.events import broadcaster
from libs.common.logging import get_logger

router = APIRouter(tags=["realtime"])
logger = get_logger(__name__)


@router.websocket("/ws")
async def order_events(websocket: WebSocket):
    await broadcaster.connect(websocket)
    try:
        while True:
            try:
                message = await websocket.receive_json()
            except ValueError:
                message = None
            action = message.get("action") if isinstance(message, dict) else None
            room = message.get("room") if isinstance(message, dict) else None
            if not room or action not in ("join", "leave"):
                await websocket.send_json(
                    {
                        "event": "error",
                        "data": {"detail": "Expected join or leave with a room"},
                    }
                )
                continue

            if action == "join":
                broadcaster.join(websocket, room)
            else:
                broadcaster.leave(websocket, room)
            await websocket.send_json({"event": action, "data": {"room": room}})
    except WebSocketDisconnect:
        pass
    finally:
        broadcaster.disconnect(websocket)
        logger.debug("WebSocket disconnected")
