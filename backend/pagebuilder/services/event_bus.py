from typing import Dict, Set
from fastapi import WebSocket
import json
import asyncio


class EventBus:
    """Fan agent events out to the websocket clients of one tenant."""

    def __init__(self):
        self.connections: Dict[str, Set[WebSocket]] = {}
        self._lock = asyncio.Lock()

    async def connect(self, tenant_id: str, websocket: WebSocket):
        await websocket.accept()
        async with self._lock:
            self.connections.setdefault(tenant_id, set()).add(websocket)

    async def disconnect(self, tenant_id: str, websocket: WebSocket):
        async with self._lock:
            sockets = self.connections.get(tenant_id)
            if sockets is not None:
                sockets.discard(websocket)
                if not sockets:
                    del self.connections[tenant_id]

    async def broadcast(self, tenant_id: str, event: dict):
        """Broadcast event to the tenant's connected clients only."""
        message = json.dumps(event, default=str)
        disconnected = set()

        for ws in self.connections.get(tenant_id, set()).copy():
            try:
                await ws.send_text(message)
            except Exception:
                disconnected.add(ws)

        for ws in disconnected:
            await self.disconnect(tenant_id, ws)


# Singleton instance
event_bus = EventBus()
