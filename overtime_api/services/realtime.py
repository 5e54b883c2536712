import logging
from typing import Any, Dict, Set

from fastapi import WebSocket, WebSocketDisconnect

logger = logging.getLogger(__name__)

ADMIN_ROOM = "admins"


class ConnectionManager:
    """WebSocket connections grouped into named rooms."""

    def __init__(self):
        self.rooms: Dict[str, Set[WebSocket]] = {}

    def join(self, room: str, websocket: WebSocket):
        self.rooms.setdefault(room, set()).add(websocket)
        logger.info(f"WebSocket joined room '{room}' ({len(self.rooms[room])} connected)")

    def disconnect(self, websocket: WebSocket):
        for members in self.rooms.values():
            members.discard(websocket)

    def room_size(self, room: str) -> int:
        return len(self.rooms.get(room, ()))

    async def broadcast(self, room: str, event: str, data: Any = None):
        message = {"event": event, "data": data}
        stale = []
        for websocket in list(self.rooms.get(room, ())):
            try:
                await websocket.send_json(message)
            except (WebSocketDisconnect, RuntimeError) as e:
                # closed between join and send
                logger.warning(f"Dropping WebSocket from room '{room}': {e}")
                stale.append(websocket)
        for websocket in stale:
            self.disconnect(websocket)


manager = ConnectionManager()
