"""
Live WebSocket endpoints.

/live/notifications runs a NotificationSynchronizer for the lifetime of
the socket and pushes the unread count whenever it changes.
/live/toasts forwards the broadcast queue's message list on every change.

Both authenticate with a Firebase ID token passed as ?token=, since
browsers cannot set headers on WebSocket handshakes.
"""

import asyncio
import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status

from api.services.broadcast_queue import BroadcastQueue
from api.services.datastore import NotificationStore
from api.services.identity_provider import IdentityProvider
from api.services.notification_service import get_session_scoped_store
from api.services.notification_synchronizer import NotificationSynchronizer, UnreadSnapshot
from core.config import settings
from core.dependencies import get_identity_provider, get_websocket_broadcast_queue
from core.security import Principal, SecurityError

logger = logging.getLogger(__name__)

router = APIRouter()

# Application-defined close codes
CLOSE_INVALID_TOKEN = 4001
CLOSE_BAD_REQUEST = 4400


async def _authenticate(
    websocket: WebSocket, token: Optional[str], identity: IdentityProvider
) -> Optional[Principal]:
    if not token:
        await websocket.close(code=CLOSE_INVALID_TOKEN, reason="Token required")
        return None
    try:
        return await identity.verify_token(token)
    except SecurityError as e:
        logger.info(f"Rejected live connection: {e}")
        await websocket.close(code=CLOSE_INVALID_TOKEN, reason="Invalid token")
        return None


@router.websocket("/notifications")
async def live_notifications(
    websocket: WebSocket,
    officer_id: Optional[str] = Query(None, alias="officerId"),
    token: Optional[str] = Query(None),
    identity: IdentityProvider = Depends(get_identity_provider),
    store: NotificationStore = Depends(get_session_scoped_store),
):
    """
    Unread count stream for one officer session.

    Messages sent:
    - {"type": "unread_count", "count", "state", "error"}
    - {"type": "mark_read_result", "id", "success"}
    - {"type": "mark_all_read_result", "success"}

    Messages accepted:
    - {"action": "mark_read", "id": "<notification id>"}
    - {"action": "mark_all_read"}
    - {"action": "refresh"}
    """
    principal = await _authenticate(websocket, token, identity)
    if principal is None:
        return
    if not officer_id:
        await websocket.close(code=CLOSE_BAD_REQUEST, reason="officerId is required")
        return

    await websocket.accept()
    logger.info(f"Live notifications connected for officer {officer_id} ({principal.uid})")

    async def push_snapshot(snapshot: UnreadSnapshot) -> None:
        await websocket.send_json(snapshot.to_dict())

    synchronizer = NotificationSynchronizer(
        store,
        officer_id=officer_id,
        poll_interval=settings.notifications.poll_interval_seconds,
        fetch_limit=settings.notifications.unread_fetch_limit,
        on_change=push_snapshot,
    )

    try:
        await synchronizer.start()
        while True:
            message = await websocket.receive_json()
            action = message.get("action") if isinstance(message, dict) else None

            if action == "mark_read":
                raw_id = message.get("id")
                try:
                    notification_id = UUID(str(raw_id))
                except ValueError:
                    await websocket.send_json({"type": "error", "error": "Invalid notification id"})
                    continue
                success = await synchronizer.mark_as_read(notification_id)
                await websocket.send_json(
                    {"type": "mark_read_result", "id": str(notification_id), "success": success}
                )
            elif action == "mark_all_read":
                success = await synchronizer.mark_all_as_read()
                await websocket.send_json({"type": "mark_all_read_result", "success": success})
            elif action == "refresh":
                await synchronizer.refresh()
            else:
                await websocket.send_json({"type": "error", "error": f"Unknown action: {action}"})
    except WebSocketDisconnect:
        logger.info(f"Live notifications disconnected for officer {officer_id}")
    finally:
        await synchronizer.stop()


@router.websocket("/toasts")
async def live_toasts(
    websocket: WebSocket,
    token: Optional[str] = Query(None),
    identity: IdentityProvider = Depends(get_identity_provider),
    queue: Optional[BroadcastQueue] = Depends(get_websocket_broadcast_queue),
):
    """
    Toast stream.

    Every change sends {"type": "toasts", "toasts": [...]} with the full
    list. Accepts {"action": "dismiss", "id": <int>}.
    """
    principal = await _authenticate(websocket, token, identity)
    if principal is None:
        return
    if queue is None:
        await websocket.close(code=status.WS_1011_INTERNAL_ERROR, reason="Broadcast queue unavailable")
        return

    await websocket.accept()
    outbox: asyncio.Queue = asyncio.Queue()

    def on_change(messages) -> None:
        outbox.put_nowait([message.to_dict() for message in messages])

    async def forward() -> None:
        while True:
            toasts = await outbox.get()
            await websocket.send_json({"type": "toasts", "toasts": toasts})

    unsubscribe = queue.subscribe(on_change)
    outbox.put_nowait([message.to_dict() for message in queue.messages])
    sender = asyncio.create_task(forward())

    try:
        while True:
            message = await websocket.receive_json()
            if isinstance(message, dict) and message.get("action") == "dismiss":
                try:
                    queue.dismiss(int(message.get("id")))
                except (TypeError, ValueError):
                    await websocket.send_json({"type": "error", "error": "Invalid toast id"})
    except WebSocketDisconnect:
        logger.debug(f"Toast stream disconnected ({principal.uid})")
    finally:
        unsubscribe()
        queue.dismiss_owned(principal.uid)
        sender.cancel()
        try:
            await sender
        except (asyncio.CancelledError, WebSocketDisconnect, RuntimeError):
            pass
