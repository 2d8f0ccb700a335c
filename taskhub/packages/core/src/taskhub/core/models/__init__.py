"""TaskHub Core Domain Models -- 公共类型导出

所有公共模型类型从此入口导入。
"""

from .base import CamelModel
from .dashboard import (
    Dashboard,
    DashboardCharts,
    DashboardStats,
    PriorityCount,
    StatusCount,
    TaskPage,
)
from .enums import (
    DUPLICATE_EXEMPT_STATUSES,
    HIGH_PRIORITIES,
    BroadcastKind,
    NotificationType,
    TaskPriority,
    TaskStatus,
    UserRole,
    is_valid_status,
)
from .intents import BroadcastIntent, NotificationIntent
from .notification import Notification, NotificationPage
from .task import Task, TaskCreate, TaskPatch, TaskView, ensure_aware
from .user import Actor, User, UserSummary

__all__ = [
    # 枚举
    "TaskStatus",
    "TaskPriority",
    "UserRole",
    "NotificationType",
    "BroadcastKind",
    "DUPLICATE_EXEMPT_STATUSES",
    "HIGH_PRIORITIES",
    "is_valid_status",
    # User
    "User",
    "UserSummary",
    "Actor",
    # Task
    "CamelModel",
    "Task",
    "TaskView",
    "TaskCreate",
    "TaskPatch",
    "ensure_aware",
    # Notification
    "Notification",
    "NotificationPage",
    # 意图
    "NotificationIntent",
    "BroadcastIntent",
    # 投影
    "TaskPage",
    "Dashboard",
    "DashboardCharts",
    "DashboardStats",
    "StatusCount",
    "PriorityCount",
]
