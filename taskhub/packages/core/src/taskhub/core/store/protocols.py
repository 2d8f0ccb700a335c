"""Store Protocol 接口定义

定义 UserStore、TaskStore、NotificationStore 的抽象接口（持久层网关），
使用 Python Protocol 实现结构化子类型（duck typing）。
"""

from datetime import datetime
from typing import Protocol

from pydantic import BaseModel, Field

from ..models.notification import Notification
from ..models.task import Task
from ..models.user import User


class TaskQuery(BaseModel):
    """任务查询条件

    scope_user_id 非空时限定为该用户创建或被指派的任务（非管理员视图）。
    """

    scope_user_id: str | None = None
    assigned_to_id: str | None = None
    creator_id: str | None = None
    status: str | None = None
    priority: str | None = None
    statuses_in: list[str] = Field(default_factory=list)
    priorities_in: list[str] = Field(default_factory=list)
    due_before: datetime | None = None
    status_not: str | None = None


class UserStore(Protocol):
    """User 存储接口"""

    async def create_user(self, user: User) -> None:
        """创建用户记录"""
        ...

    async def get_user(self, user_id: str) -> User | None:
        """根据 user_id 查询用户"""
        ...

    async def get_user_by_email(self, email: str) -> User | None:
        """根据邮箱查询用户"""
        ...

    async def get_users(self, user_ids: list[str]) -> dict[str, User]:
        """批量查询用户，返回 user_id -> User"""
        ...

    async def list_users(self) -> list[User]:
        """按名称排序的全部用户"""
        ...

    async def list_admins(self) -> list[User]:
        """全部管理员"""
        ...

    async def update_name(self, user_id: str, name: str, updated_at: str) -> None:
        """更新显示名称"""
        ...


class TaskStore(Protocol):
    """Task 存储接口"""

    async def create_task(self, task: Task) -> None:
        """创建任务记录"""
        ...

    async def get_task(self, task_id: str) -> Task | None:
        """根据 task_id 查询任务"""
        ...

    async def save_task(self, task: Task) -> None:
        """整体覆盖写入（last write wins）"""
        ...

    async def delete_task(self, task_id: str) -> None:
        """删除任务记录（不提交事务）"""
        ...

    async def list_active_for_pair(self, creator_id: str, assigned_to_id: str) -> list[Task]:
        """同一 (创建者, 执行者) 下未终结的任务，用于重复检测"""
        ...

    async def query_tasks(
        self,
        query: TaskQuery,
        sort_column: str,
        descending: bool,
        offset: int,
        limit: int,
    ) -> list[Task]:
        """按条件分页查询"""
        ...

    async def count_tasks(self, query: TaskQuery) -> int:
        """按条件计数"""
        ...

    async def group_counts(self, query: TaskQuery, column: str) -> list[tuple[str, int]]:
        """按 status / priority 分组计数"""
        ...


class NotificationStore(Protocol):
    """Notification 存储接口"""

    async def create_notification(self, notification: Notification) -> None:
        """创建通知记录"""
        ...

    async def list_for_user(
        self, user_id: str, unread_only: bool, limit: int
    ) -> list[Notification]:
        """按创建时间倒序"""
        ...

    async def count_unread(self, user_id: str) -> int:
        """未读数"""
        ...

    async def mark_read(self, user_id: str, notification_id: str) -> Notification | None:
        """标记已读；不属于该用户时返回 None"""
        ...

    async def mark_all_read(self, user_id: str) -> int:
        """全部标记已读，返回修改条数（不提交事务）"""
        ...

    async def delete_notification(self, user_id: str, notification_id: str) -> bool:
        """删除；不属于该用户时返回 False"""
        ...

    async def delete_for_task(self, task_id: str) -> int:
        """删除引用某任务的所有通知（不提交事务）"""
        ...
