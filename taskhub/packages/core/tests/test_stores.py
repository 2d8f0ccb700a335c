"""SQLite Store 单元测试

测试内容：
1. UserStore 查询（邮箱大小写、批量、管理员）
2. TaskStore 查询、排序、分页、分组计数
3. NotificationStore 的归属约束
"""

from datetime import UTC, datetime, timedelta

import pytest
import pytest_asyncio
from taskhub.core.models import (
    Notification,
    NotificationType,
    Task,
    TaskPriority,
    TaskStatus,
    UserRole,
)
from taskhub.core.store import TaskQuery, verify_wal_mode
from ulid import ULID


def _task(creator_id: str, assignee_id: str, **overrides) -> Task:
    now = datetime.now(UTC)
    fields = {
        "task_id": str(ULID()),
        "title": "Task",
        "description": "Desc",
        "due_date": now + timedelta(days=1),
        "creator_id": creator_id,
        "assigned_to_id": assignee_id,
        "created_at": now,
        "updated_at": now,
    }
    fields.update(overrides)
    return Task(**fields)


def _notification(user_id: str, task_id: str | None = None, **overrides) -> Notification:
    fields = {
        "notification_id": str(ULID()),
        "user_id": user_id,
        "message": "hello",
        "type": NotificationType.TASK_ASSIGNED,
        "task_id": task_id,
        "created_at": datetime.now(UTC),
    }
    fields.update(overrides)
    return Notification(**fields)


@pytest_asyncio.fixture
async def users(make_user):
    alice = await make_user("Alice", "Alice@Example.com", UserRole.ADMIN)
    bob = await make_user("Bob", "bob@example.com")
    carol = await make_user("Carol", "carol@example.com")
    return alice, bob, carol


class TestInit:
    async def test_wal_mode_enabled(self, store_group):
        assert await verify_wal_mode(store_group.conn)


class TestUserStore:
    async def test_email_lookup_case_insensitive(self, store_group, users):
        alice, _, _ = users
        found = await store_group.user_store.get_user_by_email("ALICE@example.com ")
        assert found is not None
        assert found.user_id == alice.user_id
        assert found.email == "alice@example.com"

    async def test_get_users_batch(self, store_group, users):
        alice, bob, _ = users
        result = await store_group.user_store.get_users(
            [alice.user_id, bob.user_id, alice.user_id, "missing"]
        )
        assert set(result) == {alice.user_id, bob.user_id}

    async def test_list_admins(self, store_group, users):
        admins = await store_group.user_store.list_admins()
        assert [a.name for a in admins] == ["Alice"]

    async def test_update_name(self, store_group, users):
        _, bob, _ = users
        await store_group.user_store.update_name(
            bob.user_id, "Robert", datetime.now(UTC).isoformat()
        )
        await store_group.conn.commit()
        updated = await store_group.user_store.get_user(bob.user_id)
        assert updated.name == "Robert"


class TestTaskStore:
    async def test_round_trip_preserves_fields(self, store_group, users):
        _, bob, carol = users
        task = _task(bob.user_id, carol.user_id, priority=TaskPriority.URGENT)
        await store_group.task_store.create_task(task)
        await store_group.conn.commit()

        loaded = await store_group.task_store.get_task(task.task_id)
        assert loaded.model_dump() == task.model_dump()

    async def test_save_task_overwrites(self, store_group, users):
        _, bob, carol = users
        task = _task(bob.user_id, carol.user_id)
        await store_group.task_store.create_task(task)
        updated = task.model_copy(update={"status": TaskStatus.REVIEW, "title": "Renamed"})
        await store_group.task_store.save_task(updated)
        await store_group.conn.commit()

        loaded = await store_group.task_store.get_task(task.task_id)
        assert loaded.status == TaskStatus.REVIEW
        assert loaded.title == "Renamed"

    async def test_active_for_pair_excludes_completed(self, store_group, users):
        _, bob, carol = users
        active = _task(bob.user_id, carol.user_id, title="A")
        done = _task(bob.user_id, carol.user_id, title="B", status=TaskStatus.COMPLETED)
        other = _task(carol.user_id, bob.user_id, title="C")
        for task in (active, done, other):
            await store_group.task_store.create_task(task)
        await store_group.conn.commit()

        result = await store_group.task_store.list_active_for_pair(bob.user_id, carol.user_id)
        assert [t.title for t in result] == ["A"]

    async def test_scope_sort_and_paging(self, store_group, users):
        alice, bob, carol = users
        now = datetime.now(UTC)
        for i in range(5):
            await store_group.task_store.create_task(
                _task(bob.user_id, carol.user_id, title=f"T{i}", due_date=now + timedelta(days=5 - i))
            )
        await store_group.task_store.create_task(_task(alice.user_id, alice.user_id, title="Mine"))
        await store_group.conn.commit()

        query = TaskQuery(scope_user_id=carol.user_id)
        assert await store_group.task_store.count_tasks(query) == 5

        page = await store_group.task_store.query_tasks(query, "due_date", False, 0, 2)
        assert [t.title for t in page] == ["T4", "T3"]
        page = await store_group.task_store.query_tasks(query, "due_date", False, 4, 2)
        assert [t.title for t in page] == ["T0"]

        assert await store_group.task_store.count_tasks(TaskQuery()) == 6

    async def test_unsupported_sort_column_rejected(self, store_group):
        with pytest.raises(ValueError):
            await store_group.task_store.query_tasks(TaskQuery(), "title; DROP", False, 0, 10)

    async def test_filters_and_group_counts(self, store_group, users):
        _, bob, carol = users
        now = datetime.now(UTC)
        rows = [
            (TaskStatus.TODO, TaskPriority.HIGH, now - timedelta(days=1)),
            (TaskStatus.COMPLETED, TaskPriority.URGENT, now - timedelta(days=1)),
            (TaskStatus.REVIEW, TaskPriority.LOW, now + timedelta(days=1)),
        ]
        for i, (status, priority, due) in enumerate(rows):
            await store_group.task_store.create_task(
                _task(bob.user_id, carol.user_id, title=f"T{i}", status=status,
                      priority=priority, due_date=due)
            )
        await store_group.conn.commit()
        store = store_group.task_store

        overdue = TaskQuery(due_before=now, status_not=TaskStatus.COMPLETED.value)
        assert await store.count_tasks(overdue) == 1
        high = TaskQuery(priorities_in=["High", "Urgent"])
        assert await store.count_tasks(high) == 2
        assert await store.count_tasks(TaskQuery(status="Review")) == 1

        by_status = dict(await store.group_counts(TaskQuery(), "status"))
        assert by_status == {"To Do": 1, "Completed": 1, "Review": 1}
        with pytest.raises(ValueError):
            await store.group_counts(TaskQuery(), "title")


class TestNotificationStore:
    async def test_list_newest_first_and_unread(self, store_group, users):
        _, bob, _ = users
        store = store_group.notification_store
        base = datetime.now(UTC)
        for i in range(3):
            await store.create_notification(
                _notification(bob.user_id, message=f"n{i}", created_at=base + timedelta(seconds=i))
            )
        await store_group.conn.commit()

        notes = await store.list_for_user(bob.user_id, unread_only=False, limit=2)
        assert [n.message for n in notes] == ["n2", "n1"]
        assert await store.count_unread(bob.user_id) == 3

    async def test_mark_read_requires_owner(self, store_group, users):
        _, bob, carol = users
        store = store_group.notification_store
        note = _notification(bob.user_id)
        await store.create_notification(note)
        await store_group.conn.commit()

        assert await store.mark_read(carol.user_id, note.notification_id) is None
        marked = await store.mark_read(bob.user_id, note.notification_id)
        assert marked is not None and marked.read is True
        assert await store.list_for_user(bob.user_id, unread_only=True, limit=10) == []

    async def test_delete_requires_owner(self, store_group, users):
        _, bob, carol = users
        store = store_group.notification_store
        note = _notification(bob.user_id)
        await store.create_notification(note)
        await store_group.conn.commit()

        assert await store.delete_notification(carol.user_id, note.notification_id) is False
        assert await store.delete_notification(bob.user_id, note.notification_id) is True
        assert await store.get_notification(note.notification_id) is None
