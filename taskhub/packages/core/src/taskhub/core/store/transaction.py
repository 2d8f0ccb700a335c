"""事务封装 -- 多语句写入在同一 SQLite 事务内原子提交

失败时回滚并向上抛出，避免部分写入。
"""

import aiosqlite

from ..models.notification import Notification
from ..models.task import Task
from .notification_store import SqliteNotificationStore
from .task_store import SqliteTaskStore


async def create_task_record(
    conn: aiosqlite.Connection,
    task_store: SqliteTaskStore,
    task: Task,
) -> None:
    """写入新任务并提交"""
    try:
        await task_store.create_task(task)
        await conn.commit()
    except Exception:
        await conn.rollback()
        raise


async def save_task_record(
    conn: aiosqlite.Connection,
    task_store: SqliteTaskStore,
    task: Task,
) -> None:
    """覆盖写入任务并提交（last write wins）"""
    try:
        await task_store.save_task(task)
        await conn.commit()
    except Exception:
        await conn.rollback()
        raise


async def delete_task_cascade(
    conn: aiosqlite.Connection,
    task_store: SqliteTaskStore,
    notification_store: SqliteNotificationStore,
    task_id: str,
) -> int:
    """在同一事务内删除任务及所有引用它的通知

    Returns:
        被级联删除的通知条数
    """
    try:
        removed = await notification_store.delete_for_task(task_id)
        await task_store.delete_task(task_id)
        await conn.commit()
    except Exception:
        await conn.rollback()
        raise
    return removed


async def insert_notification(
    conn: aiosqlite.Connection,
    notification_store: SqliteNotificationStore,
    notification: Notification,
) -> None:
    """写入单条通知并提交"""
    try:
        await notification_store.create_notification(notification)
        await conn.commit()
    except Exception:
        await conn.rollback()
        raise


async def mark_all_notifications_read(
    conn: aiosqlite.Connection,
    notification_store: SqliteNotificationStore,
    user_id: str,
) -> int:
    """批量标记已读并提交，返回修改条数"""
    try:
        modified = await notification_store.mark_all_read(user_id)
        await conn.commit()
    except Exception:
        await conn.rollback()
        raise
    return modified
