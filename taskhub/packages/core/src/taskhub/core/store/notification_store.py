"""NotificationStore SQLite 实现

所有修改类操作都以 (notification_id, user_id) 双条件定位，
非本人的通知与不存在的通知对调用方不可区分。
"""

from datetime import datetime

import aiosqlite

from ..models.notification import Notification

_COLUMNS = "notification_id, user_id, message, type, task_id, read, created_at"


class SqliteNotificationStore:
    """NotificationStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def create_notification(self, notification: Notification) -> None:
        """创建通知记录（不自动提交）"""
        await self._conn.execute(
            f"INSERT INTO notifications ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)",
            (
                notification.notification_id,
                notification.user_id,
                notification.message,
                notification.type.value,
                notification.task_id,
                int(notification.read),
                notification.created_at.isoformat(),
            ),
        )

    async def get_notification(self, notification_id: str) -> Notification | None:
        cursor = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM notifications WHERE notification_id = ?",
            (notification_id,),
        )
        row = await cursor.fetchone()
        return self._row_to_notification(row) if row else None

    async def list_for_user(
        self, user_id: str, unread_only: bool, limit: int
    ) -> list[Notification]:
        """按 created_at 倒序（同一时刻按 ULID 倒序）"""
        sql = f"SELECT {_COLUMNS} FROM notifications WHERE user_id = ?"
        params: list = [user_id]
        if unread_only:
            sql += " AND read = 0"
        sql += " ORDER BY created_at DESC, notification_id DESC LIMIT ?"
        params.append(limit)
        cursor = await self._conn.execute(sql, params)
        rows = await cursor.fetchall()
        return [self._row_to_notification(row) for row in rows]

    async def list_for_task(self, task_id: str) -> list[Notification]:
        cursor = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM notifications WHERE task_id = ? ORDER BY created_at ASC",
            (task_id,),
        )
        rows = await cursor.fetchall()
        return [self._row_to_notification(row) for row in rows]

    async def count_unread(self, user_id: str) -> int:
        cursor = await self._conn.execute(
            "SELECT COUNT(*) FROM notifications WHERE user_id = ? AND read = 0",
            (user_id,),
        )
        row = await cursor.fetchone()
        return row[0] if row else 0

    async def mark_read(self, user_id: str, notification_id: str) -> Notification | None:
        """标记已读（不自动提交）；不属于该用户时返回 None"""
        cursor = await self._conn.execute(
            "UPDATE notifications SET read = 1 WHERE notification_id = ? AND user_id = ?",
            (notification_id, user_id),
        )
        if cursor.rowcount == 0:
            return None
        return await self.get_notification(notification_id)

    async def mark_all_read(self, user_id: str) -> int:
        """全部标记已读（不自动提交），返回修改条数"""
        cursor = await self._conn.execute(
            "UPDATE notifications SET read = 1 WHERE user_id = ? AND read = 0",
            (user_id,),
        )
        return cursor.rowcount

    async def delete_notification(self, user_id: str, notification_id: str) -> bool:
        """删除（不自动提交）；不属于该用户时返回 False"""
        cursor = await self._conn.execute(
            "DELETE FROM notifications WHERE notification_id = ? AND user_id = ?",
            (notification_id, user_id),
        )
        return cursor.rowcount > 0

    async def delete_for_task(self, task_id: str) -> int:
        """删除引用某任务的所有通知（不自动提交）"""
        cursor = await self._conn.execute(
            "DELETE FROM notifications WHERE task_id = ?",
            (task_id,),
        )
        return cursor.rowcount

    @staticmethod
    def _row_to_notification(row: aiosqlite.Row) -> Notification:
        """将数据库行转换为 Notification 模型"""
        return Notification(
            notification_id=row[0],
            user_id=row[1],
            message=row[2],
            type=row[3],
            task_id=row[4],
            read=bool(row[5]),
            created_at=datetime.fromisoformat(row[6]),
        )
