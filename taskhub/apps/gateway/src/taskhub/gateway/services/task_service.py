"""TaskService -- 任务查询与生命周期编排

每个写操作的顺序固定为：
1. 加载 + 授权 + 校验（失败时没有任何写入）
2. 落盘（单事务）
3. 派发副作用：通知落盘后调度推送，广播只调度推送

同一任务的读-改-写在进程内按 task 级锁串行化；跨进程无版本控制，last write wins。
"""

import asyncio
from contextlib import asynccontextmanager
from datetime import UTC, datetime

import structlog
from pydantic import BaseModel, Field
from taskhub.core.config import (
    DASHBOARD_RECENT_LIMIT,
    RECENT_TASKS_LIMIT,
    TASK_PAGE_SIZE,
    TASK_PAGE_SIZE_MAX,
)
from taskhub.core.exceptions import AuthorizationDenied, NotFoundError, ValidationFailure
from taskhub.core.lifecycle import (
    apply_patch,
    ensure_not_duplicate,
    plan_create,
    plan_delete,
    plan_status_change,
    plan_update,
    validate_new_task,
    validate_patch,
    validate_status,
)
from taskhub.core.models import (
    HIGH_PRIORITIES,
    Actor,
    Dashboard,
    DashboardCharts,
    DashboardStats,
    PriorityCount,
    StatusCount,
    Task,
    TaskCreate,
    TaskPage,
    TaskPatch,
    TaskStatus,
    TaskView,
    UserSummary,
)
from taskhub.core.policy import (
    can_change_status,
    can_delete_task,
    can_edit_task,
    can_view_task,
)
from taskhub.core.store import (
    SORTABLE_COLUMNS,
    StoreGroup,
    TaskQuery,
    create_task_record,
    delete_task_cascade,
    save_task_record,
)
from ulid import ULID

from .notification_dispatcher import NotificationDispatcher

log = structlog.get_logger()


def _task_not_found() -> NotFoundError:
    return NotFoundError("Task not found", code="TASK_NOT_FOUND")


def _user_not_found(message: str = "Assigned user not found") -> NotFoundError:
    return NotFoundError(message, code="USER_NOT_FOUND")


class TaskListParams(BaseModel):
    """GET /api/tasks 查询参数"""

    status: str | None = None
    priority: str | None = None
    sort: str = "dueDate:asc"
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=TASK_PAGE_SIZE, ge=1, le=TASK_PAGE_SIZE_MAX)
    assigned: bool = False
    created: bool = False


def parse_sort(sort: str) -> tuple[str, bool]:
    """解析 "field:asc|desc"，返回 (列名, 是否降序)

    Raises:
        ValidationFailure: 字段不可排序或方向非法
    """
    field, _, direction = sort.partition(":")
    column = SORTABLE_COLUMNS.get(field.strip())
    if column is None:
        raise ValidationFailure(f"Unsupported sort field: {field}")
    direction = (direction or "asc").strip().lower()
    if direction not in ("asc", "desc"):
        raise ValidationFailure(f"Unsupported sort direction: {direction}")
    return column, direction == "desc"


def scope_query(actor: Actor, **filters) -> TaskQuery:
    """管理员看全部任务，其他人只看自己创建或被指派的任务"""
    scope = None if actor.is_admin else actor.user_id
    return TaskQuery(scope_user_id=scope, **filters)


class TaskService:
    """任务业务服务"""

    _task_locks: dict[str, asyncio.Lock] = {}
    _task_lock_holders: dict[str, int] = {}

    def __init__(
        self,
        store_group: StoreGroup,
        dispatcher: NotificationDispatcher | None = None,
    ) -> None:
        self._stores = store_group
        self._dispatcher = dispatcher

    # ---------- 读取 ----------

    async def _to_views(self, tasks: list[Task]) -> list[TaskView]:
        """批量填充创建者与执行者摘要"""
        user_ids = [t.creator_id for t in tasks] + [t.assigned_to_id for t in tasks]
        users = await self._stores.user_store.get_users(user_ids)

        def summary(user_id: str) -> UserSummary | None:
            user = users.get(user_id)
            if user is None:
                return None
            return UserSummary(user_id=user.user_id, name=user.name, email=user.email)

        return [
            TaskView(
                **task.model_dump(),
                creator=summary(task.creator_id),
                assignee=summary(task.assigned_to_id),
            )
            for task in tasks
        ]

    async def _to_view(self, task: Task) -> TaskView:
        views = await self._to_views([task])
        return views[0]

    async def _load(self, task_id: str) -> Task:
        task = await self._stores.task_store.get_task(task_id)
        if task is None:
            raise _task_not_found()
        return task

    async def get_task(self, actor: Actor, task_id: str) -> TaskView:
        """Raises NotFoundError / AuthorizationDenied"""
        task = await self._load(task_id)
        if not can_view_task(actor, task):
            raise AuthorizationDenied("Not authorized to view this task")
        return await self._to_view(task)

    async def list_tasks(self, actor: Actor, params: TaskListParams) -> TaskPage:
        """分页列表；assigned / created 对管理员不生效"""
        sort_column, descending = parse_sort(params.sort)
        filters: dict = {"status": params.status, "priority": params.priority}
        if not actor.is_admin:
            if params.assigned:
                filters["assigned_to_id"] = actor.user_id
            if params.created:
                filters["creator_id"] = actor.user_id
        query = scope_query(actor, **filters)

        offset = (params.page - 1) * params.limit
        tasks = await self._stores.task_store.query_tasks(
            query, sort_column, descending, offset, params.limit
        )
        total = await self._stores.task_store.count_tasks(query)
        return TaskPage(
            tasks=await self._to_views(tasks),
            total=total,
            page=params.page,
            limit=params.limit,
            has_more=offset + len(tasks) < total,
        )

    async def recent_tasks(
        self, actor: Actor, limit: int = RECENT_TASKS_LIMIT
    ) -> list[TaskView]:
        """按 updatedAt 倒序的最近任务"""
        tasks = await self._stores.task_store.query_tasks(
            scope_query(actor), "updated_at", True, 0, limit
        )
        return await self._to_views(tasks)

    async def dashboard(self, actor: Actor) -> Dashboard:
        """仪表盘计数、分组统计与最近创建的任务"""
        store = self._stores.task_store
        now = datetime.now(UTC)

        total = await store.count_tasks(scope_query(actor))
        completed = await store.count_tasks(
            scope_query(actor, status=TaskStatus.COMPLETED.value)
        )
        overdue = await store.count_tasks(
            scope_query(actor, due_before=now, status_not=TaskStatus.COMPLETED.value)
        )
        high_priority = await store.count_tasks(
            scope_query(actor, priorities_in=[p.value for p in HIGH_PRIORITIES])
        )
        by_status = await store.group_counts(scope_query(actor), "status")
        by_priority = await store.group_counts(scope_query(actor), "priority")
        recent = await store.query_tasks(
            scope_query(actor), "created_at", True, 0, DASHBOARD_RECENT_LIMIT
        )

        return Dashboard(
            stats=DashboardStats(
                total_tasks=total,
                completed_tasks=completed,
                overdue_tasks=overdue,
                high_priority_tasks=high_priority,
                completion_rate=(completed / total) * 100 if total else 0.0,
            ),
            charts=DashboardCharts(
                by_status=[StatusCount(status=s, count=c) for s, c in by_status],
                by_priority=[PriorityCount(priority=p, count=c) for p, c in by_priority],
            ),
            recent_tasks=await self._to_views(recent),
        )

    # ---------- 写入 ----------

    async def create_task(self, creator: Actor, data: TaskCreate) -> TaskView:
        """创建任务

        Raises:
            ValidationFailure: 必填字段缺失 / 管理员自我指派
            NotFoundError: 执行者不存在
            ConflictError: 同一创建者对同一执行者已有同名未完成任务
        """
        cleaned = validate_new_task(creator, data)
        assignee = await self._stores.user_store.get_user(cleaned.assigned_to_id)
        if assignee is None:
            raise _user_not_found()

        candidates = await self._stores.task_store.list_active_for_pair(
            creator.user_id, assignee.user_id
        )
        ensure_not_duplicate(candidates, cleaned.title)

        now = datetime.now(UTC)
        task = Task(
            task_id=str(ULID()),
            title=cleaned.title,
            description=cleaned.description,
            due_date=cleaned.due_date,
            priority=cleaned.priority,
            status=TaskStatus.TODO,
            creator_id=creator.user_id,
            assigned_to_id=assignee.user_id,
            created_at=now,
            updated_at=now,
        )
        await create_task_record(self._stores.conn, self._stores.task_store, task)
        log.info(
            "task_created",
            task_id=task.task_id,
            creator_id=creator.user_id,
            assignee_id=assignee.user_id,
        )

        view = await self._to_view(task)
        await self._apply(plan_create(creator, view))
        return view

    async def update_status(
        self, actor: Actor, task_id: str, new_status: str | None
    ) -> TaskView:
        """推进任务状态（仅执行者）

        Raises:
            ValidationFailure: 状态值非法（在任何查询之前校验）
            NotFoundError / AuthorizationDenied
        """
        status = validate_status(new_status)

        async with self._task_lock(task_id):
            task = await self._load(task_id)
            if not can_change_status(actor, task):
                raise AuthorizationDenied("Only assigned user can update task status")

            old_status = task.status
            updated = task.model_copy(
                update={"status": status, "updated_at": datetime.now(UTC)}
            )
            await save_task_record(self._stores.conn, self._stores.task_store, updated)

        log.info(
            "task_status_changed",
            task_id=task_id,
            old_status=old_status.value,
            new_status=status.value,
            actor_id=actor.user_id,
        )

        admins = []
        if old_status != status and status == TaskStatus.COMPLETED:
            admins = await self._stores.user_store.list_admins()
        view = await self._to_view(updated)
        await self._apply(plan_status_change(actor, old_status, view, admins))
        return view

    async def update_task(self, actor: Actor, task_id: str, patch: TaskPatch) -> TaskView:
        """编辑任务（管理员或创建者）

        Raises:
            NotFoundError: 任务或新执行者不存在
            AuthorizationDenied / ValidationFailure
        """
        async with self._task_lock(task_id):
            task = await self._load(task_id)
            if not can_edit_task(actor, task):
                raise AuthorizationDenied("Not authorized to update this task")

            fields = validate_patch(actor, patch)
            if "assigned_to_id" in fields:
                assignee = await self._stores.user_store.get_user(patch.assigned_to_id)
                if assignee is None:
                    raise _user_not_found()

            previous_assignee_id = task.assigned_to_id
            updated = apply_patch(task, patch, fields, datetime.now(UTC))
            await save_task_record(self._stores.conn, self._stores.task_store, updated)

        log.info(
            "task_updated",
            task_id=task_id,
            fields=sorted(fields),
            actor_id=actor.user_id,
        )

        view = await self._to_view(updated)
        await self._apply(plan_update(actor, previous_assignee_id, view))
        return view

    async def delete_task(self, actor: Actor, task_id: str) -> None:
        """删除任务并级联删除其通知

        Raises:
            NotFoundError / AuthorizationDenied
        """
        async with self._task_lock(task_id):
            task = await self._load(task_id)
            if not can_delete_task(actor, task):
                raise AuthorizationDenied(
                    "Not authorized to delete this task. Only admins can delete any "
                    "task, creators can delete their own completed tasks."
                )
            removed = await delete_task_cascade(
                self._stores.conn,
                self._stores.task_store,
                self._stores.notification_store,
                task_id,
            )

        log.info(
            "task_deleted",
            task_id=task_id,
            actor_id=actor.user_id,
            removed_notifications=removed,
        )
        await self._apply(plan_delete(task_id))

    async def _apply(self, outcome) -> None:
        if self._dispatcher is not None:
            await self._dispatcher.apply(outcome)

    @classmethod
    @asynccontextmanager
    async def _task_lock(cls, task_id: str):
        """task 级别锁，序列化同一任务的读-改-写

        最后一个持有者退出时移除锁对象，字典大小只与在途写操作数有关。
        """
        lock = cls._task_locks.setdefault(task_id, asyncio.Lock())
        cls._task_lock_holders[task_id] = cls._task_lock_holders.get(task_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            remaining = cls._task_lock_holders[task_id] - 1
            if remaining:
                cls._task_lock_holders[task_id] = remaining
            else:
                del cls._task_lock_holders[task_id]
                del cls._task_locks[task_id]
