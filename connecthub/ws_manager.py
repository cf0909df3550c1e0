from typing import Dict, Set
from fastapi import WebSocket
import logging

logger = logging.getLogger(__name__)

class ConnectionManager:
    """Per-user websocket registry for realtime pushes.

    Pushes are fire-and-forget: a socket that fails to receive is dropped and
    the event is not retried.
    """

    def __init__(self):
        self.connections: Dict[int, Set[WebSocket]] = {}

    async def connect(self, user_id: int, websocket: WebSocket):
        await websocket.accept()
        self.connections.setdefault(user_id, set()).add(websocket)

    def disconnect(self, user_id: int, websocket: WebSocket):
        self.connections.get(user_id, set()).discard(websocket)
        if not self.connections.get(user_id):
            self.connections.pop(user_id, None)

    async def send_personal(self, user_id: int, event: str, data: dict):
        message = {'event': event, 'data': data}
        for ws in list(self.connections.get(user_id, set())):
            try:
                await ws.send_json(message)
            except Exception as e:
                logger.info(f"Dropping websocket for user {user_id}: {e}")
                self.disconnect(user_id, ws)

manager = ConnectionManager()
