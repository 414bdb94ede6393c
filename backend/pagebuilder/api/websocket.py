import logging
from typing import Optional

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status

from pagebuilder.core.auth import COOKIE_NAME, require_proxy_auth, verify_session_token
from pagebuilder.core.config import settings
from pagebuilder.core.errors import Unauthorized
from pagebuilder.services.event_bus import event_bus

logger = logging.getLogger(__name__)

router = APIRouter()


def _tenant_for(websocket: WebSocket) -> Optional[str]:
    """Tenant from the session cookie, else from the gateway headers."""
    token = websocket.cookies.get(COOKIE_NAME)
    if token:
        session = verify_session_token(token, settings.jwt_secret)
        if session is not None:
            return session.tenant_id
    try:
        return require_proxy_auth(websocket.headers, settings).tenant_id
    except Unauthorized:
        return None


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    tenant_id = _tenant_for(websocket)
    if tenant_id is None:
        logger.warning("Rejected unauthenticated websocket connection")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await event_bus.connect(tenant_id, websocket)
    try:
        while True:
            # Keep connection alive; clients do not send commands
            await websocket.receive_text()
    except WebSocketDisconnect:
        await event_bus.disconnect(tenant_id, websocket)
