"""枚举定义

TaskStatus / TaskPriority / UserRole / NotificationType 的取值字符串属于对外兼容面，
必须原样保留（包括 "To Do" 这类带空格的值）。
"""

from enum import StrEnum


class TaskStatus(StrEnum):
    """Task 状态 -- To Do → In Progress → Review → Completed"""

    TODO = "To Do"
    IN_PROGRESS = "In Progress"
    REVIEW = "Review"
    COMPLETED = "Completed"


class TaskPriority(StrEnum):
    """Task 优先级"""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    URGENT = "Urgent"


class UserRole(StrEnum):
    """用户角色"""

    USER = "user"
    ADMIN = "admin"


class NotificationType(StrEnum):
    """通知类型"""

    TASK_ASSIGNED = "task_assigned"
    TASK_UPDATED = "task_updated"
    TASK_STATUS_CHANGED = "task_status_changed"
    TASK_COMPLETED = "task_completed"
    SYSTEM = "system"


class BroadcastKind(StrEnum):
    """实时广播事件名"""

    TASK_CREATED = "task_created"
    TASK_UPDATED = "task_updated"
    TASK_STATUS_CHANGED = "task_status_changed"
    TASK_ASSIGNED = "task_assigned"
    TASK_DELETED = "task_deleted"


# 重复任务检测时忽略的状态（"Cancelled" 为历史数据遗留值）
DUPLICATE_EXEMPT_STATUSES: tuple[str, ...] = (TaskStatus.COMPLETED.value, "Cancelled")

HIGH_PRIORITIES: tuple[TaskPriority, ...] = (TaskPriority.HIGH, TaskPriority.URGENT)


def is_valid_status(value: str) -> bool:
    """状态字符串是否属于固定枚举

    状态流转是宽松的：任意枚举值都可以作为目标状态（包括从 Completed 重新打开）。
    """
    return value in {status.value for status in TaskStatus}
