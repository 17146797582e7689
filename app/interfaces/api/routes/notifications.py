"""Endpoints and websocket handler for in-app notifications."""

from __future__ import annotations

import logging

from fastapi import (
    APIRouter,
    Depends,
    HTTPException,
    Query,
    WebSocket,
    WebSocketDisconnect,
    status,
)
from sqlalchemy.orm import Session

from app.application.use_cases.notifications import (
    count_unread,
    list_notifications,
    mark_all_read,
    mark_read,
)
from app.domain.entities import (
    NotificationPriority,
    NotificationType,
    User,
    UserNotification,
)
from app.infrastructure.database import SessionLocal, get_db
from app.infrastructure.notifications import (
    notification_manager,
    serialize_user_notification,
)
from app.interfaces.api.dependencies import get_current_active_user, resolve_current_user
from app.interfaces.api.schemas import (
    MarkAllReadResponse,
    NotificationListResponse,
    NotificationRead,
    UnreadCountResponse,
)

router = APIRouter(prefix="/notifications", tags=["notifications"])
logger = logging.getLogger(__name__)


def _notification_to_schema(item: UserNotification) -> NotificationRead:
    notification = item.notification
    entity = notification.entity
    return NotificationRead(
        id=notification.id or 0,
        type=notification.type,
        title=notification.title,
        message=notification.message,
        priority=notification.priority,
        entity_type=entity.entity_type if entity else None,
        entity_id=entity.entity_id if entity else None,
        metadata=notification.metadata or {},
        action_url=notification.action_url,
        created_at=notification.created_at,
        expires_at=notification.expires_at,
        read_at=item.read_at,
        is_read=item.is_read,
    )


@router.get("/", response_model=NotificationListResponse)
def list_my_notifications(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    unread_only: bool = False,
    notification_type: NotificationType | None = Query(None, alias="type"),
    priority: NotificationPriority | None = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> NotificationListResponse:
    """Return a page of the authenticated user's notifications, newest first."""

    items = list_notifications(
        db,
        user_id=current_user.id,
        limit=limit,
        offset=offset,
        unread_only=unread_only,
        notification_type=notification_type,
        priority=priority,
    )
    return NotificationListResponse(
        items=[_notification_to_schema(item) for item in items],
        unread_count=count_unread(db, user_id=current_user.id),
        limit=limit,
        offset=offset,
    )


@router.get("/unread-count", response_model=UnreadCountResponse)
def get_unread_count(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> UnreadCountResponse:
    return UnreadCountResponse(unread_count=count_unread(db, user_id=current_user.id))


@router.post("/read-all", response_model=MarkAllReadResponse)
def mark_all_notifications_read(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> MarkAllReadResponse:
    """Mark every unread notification of the user as read."""

    return MarkAllReadResponse(updated=mark_all_read(db, user_id=current_user.id))


@router.post("/{notification_id}/read", response_model=NotificationRead)
def mark_notification_read(
    notification_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> NotificationRead:
    try:
        item = mark_read(db, notification_id=notification_id, user_id=current_user.id)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return _notification_to_schema(item)


@router.websocket("/ws")
async def notifications_websocket(websocket: WebSocket) -> None:
    """Websocket endpoint that streams new notifications to the authenticated user."""

    token = websocket.query_params.get("token")
    if not token:
        await websocket.close(code=1008)
        return

    session = SessionLocal()
    try:
        user = resolve_current_user(token, session)
        if not user.is_active:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Inactive user")
        pending = list_notifications(session, user_id=user.id, unread_only=True)
        unread = count_unread(session, user_id=user.id)
    except HTTPException:
        await websocket.close(code=1008)
        return
    finally:
        session.close()

    await notification_manager.connect(user.id, websocket)
    try:
        await websocket.send_json(
            {
                "type": "init",
                "data": [serialize_user_notification(item) for item in pending],
                "unread_count": unread,
            }
        )
        while True:
            try:
                message = await websocket.receive_json()
            except WebSocketDisconnect:
                raise
            except ValueError:
                continue

            if not isinstance(message, dict):
                continue

            message_type = message.get("type")
            if message_type == "ping":
                await websocket.send_json({"type": "pong"})
                continue

            if message_type == "ack":
                ids = message.get("ids", [])
                if isinstance(ids, list) and ids:
                    unread = _acknowledge(user.id, ids)
                    await websocket.send_json({"type": "unread_count", "unread_count": unread})
                continue
    except WebSocketDisconnect:
        notification_manager.disconnect(user.id, websocket)
    except Exception:
        notification_manager.disconnect(user.id, websocket)
        raise


def _acknowledge(user_id: int, ids: list[object]) -> int:
    session = SessionLocal()
    try:
        for raw_id in dict.fromkeys(ids):
            try:
                mark_read(session, notification_id=int(raw_id), user_id=user_id)
            except (TypeError, ValueError):
                logger.debug("Ignoring ack for notification %r from user %s", raw_id, user_id)
        return count_unread(session, user_id=user_id)
    finally:
        session.close()
