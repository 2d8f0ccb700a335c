"""事务封装单元测试

测试内容：
1. 删除任务时级联删除通知（同一事务）
2. 批量标记已读的幂等性
3. 失败回滚
"""

from datetime import UTC, datetime, timedelta

import aiosqlite
import pytest
from taskhub.core.models import Notification, NotificationType, Task
from taskhub.core.store import (
    create_task_record,
    delete_task_cascade,
    insert_notification,
    mark_all_notifications_read,
)
from ulid import ULID


async def _seed_task(store_group, creator_id: str, assignee_id: str) -> Task:
    now = datetime.now(UTC)
    task = Task(
        task_id=str(ULID()),
        title="Cascade",
        description="Desc",
        due_date=now + timedelta(days=1),
        creator_id=creator_id,
        assigned_to_id=assignee_id,
        created_at=now,
        updated_at=now,
    )
    await create_task_record(store_group.conn, store_group.task_store, task)
    return task


async def _seed_notification(store_group, user_id: str, task_id: str | None) -> Notification:
    note = Notification(
        notification_id=str(ULID()),
        user_id=user_id,
        message="m",
        type=NotificationType.TASK_ASSIGNED,
        task_id=task_id,
        created_at=datetime.now(UTC),
    )
    await insert_notification(store_group.conn, store_group.notification_store, note)
    return note


class TestDeleteCascade:
    async def test_task_and_its_notifications_removed(self, store_group, make_user):
        bob = await make_user("Bob", "bob@example.com")
        carol = await make_user("Carol", "carol@example.com")
        task = await _seed_task(store_group, bob.user_id, carol.user_id)
        other = await _seed_task(store_group, carol.user_id, bob.user_id)
        await _seed_notification(store_group, carol.user_id, task.task_id)
        await _seed_notification(store_group, bob.user_id, task.task_id)
        kept = await _seed_notification(store_group, bob.user_id, other.task_id)
        unrelated = await _seed_notification(store_group, bob.user_id, None)

        removed = await delete_task_cascade(
            store_group.conn,
            store_group.task_store,
            store_group.notification_store,
            task.task_id,
        )

        assert removed == 2
        assert await store_group.task_store.get_task(task.task_id) is None
        assert await store_group.notification_store.list_for_task(task.task_id) == []
        remaining = await store_group.notification_store.list_for_user(bob.user_id, False, 10)
        assert {n.notification_id for n in remaining} == {
            kept.notification_id,
            unrelated.notification_id,
        }

    async def test_failed_insert_rolls_back(self, store_group, make_user):
        bob = await make_user("Bob", "bob@example.com")
        task = await _seed_task(store_group, bob.user_id, bob.user_id)

        with pytest.raises(aiosqlite.IntegrityError):
            await create_task_record(store_group.conn, store_group.task_store, task)

        loaded = await store_group.task_store.get_task(task.task_id)
        assert loaded.model_dump() == task.model_dump()

    async def test_notification_for_unknown_user_rejected(self, store_group):
        with pytest.raises(aiosqlite.IntegrityError):
            await _seed_notification(store_group, "no-such-user", None)
        assert not store_group.conn.in_transaction


class TestMarkAllRead:
    async def test_idempotent(self, store_group, make_user):
        bob = await make_user("Bob", "bob@example.com")
        carol = await make_user("Carol", "carol@example.com")
        for _ in range(3):
            await _seed_notification(store_group, bob.user_id, None)
        await _seed_notification(store_group, carol.user_id, None)

        first = await mark_all_notifications_read(
            store_group.conn, store_group.notification_store, bob.user_id
        )
        second = await mark_all_notifications_read(
            store_group.conn, store_group.notification_store, bob.user_id
        )

        assert first == 3
        assert second == 0
        assert await store_group.notification_store.count_unread(bob.user_id) == 0
        assert await store_group.notification_store.count_unread(carol.user_id) == 1
