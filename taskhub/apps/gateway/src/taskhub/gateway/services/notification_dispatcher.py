"""NotificationDispatcher -- 通知落盘 + 防抖实时推送

dispatch(): 先落盘（调用方 await），再调度推送（不 await，失败只记日志）。
publish(): 仅调度推送，不落盘。
其余方法为接收者对自己通知的读写操作；他人的通知一律视为不存在。
"""

from datetime import UTC, datetime

import structlog
from taskhub.core.config import NOTIFICATION_LIST_LIMIT
from taskhub.core.exceptions import NotFoundError
from taskhub.core.lifecycle import LifecycleOutcome
from taskhub.core.models import (
    BroadcastIntent,
    BroadcastKind,
    Notification,
    NotificationIntent,
    NotificationPage,
)
from taskhub.core.store import (
    StoreGroup,
    insert_notification,
    mark_all_notifications_read,
)
from ulid import ULID

from .debounce import Debouncer
from .realtime_hub import RealtimeHub

log = structlog.get_logger()


def _notification_not_found() -> NotFoundError:
    return NotFoundError("Notification not found", code="NOTIFICATION_NOT_FOUND")


class NotificationDispatcher:
    """通知派发服务（进程级，随 lifespan 创建）"""

    def __init__(
        self,
        store_group: StoreGroup,
        hub: RealtimeHub,
        debouncer: Debouncer,
    ) -> None:
        self._stores = store_group
        self._hub = hub
        self._debouncer = debouncer

    async def dispatch(self, intent: NotificationIntent) -> Notification:
        """落盘通知并调度推送给接收者"""
        notification = Notification(
            notification_id=str(ULID()),
            user_id=intent.user_id,
            message=intent.message,
            type=intent.type,
            task_id=intent.task_id,
            read=False,
            created_at=datetime.now(UTC),
        )
        await insert_notification(
            self._stores.conn, self._stores.notification_store, notification
        )
        log.info(
            "notification_created",
            notification_id=notification.notification_id,
            recipient_id=notification.user_id,
            notification_type=notification.type.value,
        )

        payload = notification.to_wire()
        recipient = notification.user_id

        async def push() -> None:
            self._hub.push_to_user(recipient, "notification", payload)

        self._debouncer.schedule(intent.debounce_key(notification.notification_id), push)
        return notification

    def publish(self, intent: BroadcastIntent) -> None:
        """调度一条实时广播；task_assigned 只推给执行者"""
        event = intent.kind.value
        payload = intent.payload()

        if intent.kind == BroadcastKind.TASK_ASSIGNED:
            target = intent.target_user_id

            async def push() -> None:
                if target:
                    self._hub.push_to_user(target, event, payload)

        else:

            async def push() -> None:
                self._hub.broadcast_all(event, payload)

        self._debouncer.schedule(intent.debounce_key, push)

    async def apply(self, outcome: LifecycleOutcome) -> list[Notification]:
        """执行生命周期操作产生的全部副作用"""
        created = [await self.dispatch(intent) for intent in outcome.notifications]
        for broadcast in outcome.broadcasts:
            self.publish(broadcast)
        return created

    async def list_for_user(
        self,
        user_id: str,
        unread_only: bool = False,
        limit: int = NOTIFICATION_LIST_LIMIT,
    ) -> NotificationPage:
        """按时间倒序列出通知，unreadCount 统计全部未读"""
        notifications = await self._stores.notification_store.list_for_user(
            user_id, unread_only, limit
        )
        unread_count = await self._stores.notification_store.count_unread(user_id)
        return NotificationPage(notifications=notifications, unread_count=unread_count)

    async def mark_read(self, user_id: str, notification_id: str) -> Notification:
        """Raises NotFoundError 当通知不存在或不属于该用户"""
        try:
            notification = await self._stores.notification_store.mark_read(
                user_id, notification_id
            )
            await self._stores.conn.commit()
        except Exception:
            await self._stores.conn.rollback()
            raise
        if notification is None:
            raise _notification_not_found()
        return notification

    async def mark_all_read(self, user_id: str) -> int:
        """幂等：重复调用返回 0"""
        return await mark_all_notifications_read(
            self._stores.conn, self._stores.notification_store, user_id
        )

    async def delete(self, user_id: str, notification_id: str) -> None:
        try:
            deleted = await self._stores.notification_store.delete_notification(
                user_id, notification_id
            )
            await self._stores.conn.commit()
        except Exception:
            await self._stores.conn.rollback()
            raise
        if not deleted:
            raise _notification_not_found()
