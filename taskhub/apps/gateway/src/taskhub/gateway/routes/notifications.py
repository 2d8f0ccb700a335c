"""通知路由 -- 仅能访问自己的通知

GET    /api/notifications?unreadOnly=&limit=
PUT    /api/notifications/read-all
PUT    /api/notifications/{notification_id}/read
DELETE /api/notifications/{notification_id}
"""

from fastapi import APIRouter, Depends, Query
from taskhub.core.config import NOTIFICATION_LIST_LIMIT
from taskhub.core.models import Actor

from ..deps import get_current_actor, get_dispatcher
from ..services.notification_dispatcher import NotificationDispatcher

router = APIRouter()


@router.get("/api/notifications")
async def list_notifications(
    unread_only: bool = Query(default=False, alias="unreadOnly"),
    limit: int = Query(default=NOTIFICATION_LIST_LIMIT, ge=1, le=100),
    actor: Actor = Depends(get_current_actor),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    page = await dispatcher.list_for_user(actor.user_id, unread_only, limit)
    return page.to_wire()


@router.put("/api/notifications/read-all")
async def mark_all_read(
    actor: Actor = Depends(get_current_actor),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    modified = await dispatcher.mark_all_read(actor.user_id)
    return {"modifiedCount": modified}


@router.put("/api/notifications/{notification_id}/read")
async def mark_read(
    notification_id: str,
    actor: Actor = Depends(get_current_actor),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    notification = await dispatcher.mark_read(actor.user_id, notification_id)
    return {"notification": notification.to_wire()}


@router.delete("/api/notifications/{notification_id}")
async def delete_notification(
    notification_id: str,
    actor: Actor = Depends(get_current_actor),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    await dispatcher.delete(actor.user_id, notification_id)
    return {"message": "Notification deleted"}
