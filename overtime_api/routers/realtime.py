import logging
from typing import Optional

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from fastapi.concurrency import run_in_threadpool

from overtime_api.core.exceptions import AuthenticationError
from overtime_api.dependencies import get_access_checker, get_erpnext, get_oauth, store_scope
from overtime_api.schemas.auth import UserRecord
from overtime_api.services.access_control import AccessChecker
from overtime_api.services.auth import AuthService
from overtime_api.services.authorization import is_admin_viewer
from overtime_api.services.erpnext import ERPNextClient
from overtime_api.services.oauth import GoogleOAuthClient
from overtime_api.services.realtime import ADMIN_ROOM, manager

logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])


def _authenticate_join(
    token: Optional[str],
    erpnext: ERPNextClient,
    oauth: GoogleOAuthClient,
    access_checker: AccessChecker
) -> UserRecord:
    # Sockets live for hours; storage is only held for the lookup itself
    with store_scope() as store:
        return AuthService(store, erpnext, oauth, access_checker).authenticate(token)


@router.websocket("/ws")
async def admin_socket(
    websocket: WebSocket,
    erpnext: ERPNextClient = Depends(get_erpnext),
    oauth: GoogleOAuthClient = Depends(get_oauth),
    access_checker: AccessChecker = Depends(get_access_checker)
):
    """
    Admin dashboards join the admin room with {"event": "join-admin", "token": ...}
    and then receive "new-request" events as employees submit.
    """
    await websocket.accept()
    try:
        while True:
            message = await websocket.receive_json()
            if not isinstance(message, dict) or message.get("event") != "join-admin":
                continue
            try:
                user = await run_in_threadpool(
                    _authenticate_join, message.get("token"), erpnext, oauth, access_checker
                )
            except AuthenticationError as e:
                await websocket.send_json({"event": "error", "data": {"message": e.message}})
                continue
            if not is_admin_viewer(user):
                await websocket.send_json({"event": "error", "data": {"message": "Admin access required"}})
                continue
            manager.join(ADMIN_ROOM, websocket)
            await websocket.send_json({"event": "joined-admin"})
    except WebSocketDisconnect:
        logger.info("WebSocket client disconnected")
    finally:
        manager.disconnect(websocket)
