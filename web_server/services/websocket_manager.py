import logging

from fastapi import WebSocket, WebSocketDisconnect

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Open WebSocket connections keyed by user UID. A user may have several tabs open."""

    def __init__(self):
        self.active_connections: dict[str, list[WebSocket]] = {}

    async def connect(self, uid: str, websocket: WebSocket):
        await websocket.accept()
        self.active_connections.setdefault(uid, []).append(websocket)

    def disconnect(self, uid: str, websocket: WebSocket) -> bool:
        """Forget one socket. Returns True when the user has no sockets left."""
        sockets = self.active_connections.get(uid, [])
        if websocket in sockets:
            sockets.remove(websocket)
        if not sockets:
            self.active_connections.pop(uid, None)
            return True
        return False

    async def send_to_user(self, uid: str, data: dict) -> int:
        """Send JSON to every socket a user has open. Returns how many got it."""
        delivered = 0
        for ws in list(self.active_connections.get(uid, [])):
            try:
                await ws.send_json(data)
                delivered += 1
            except (WebSocketDisconnect, RuntimeError):
                logger.info("Dropping stale socket for %s", uid)
                self.disconnect(uid, ws)
        return delivered
