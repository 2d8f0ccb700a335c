"""Task Domain Model

isOverdue 为派生字段：dueDate < now 且 status != Completed，只计算、不落盘。
状态只能经由生命周期引擎变更。
"""

from datetime import UTC, datetime

from pydantic import Field, computed_field, field_validator

from .base import CamelModel
from .enums import TaskPriority, TaskStatus
from .user import UserSummary


def ensure_aware(value: datetime) -> datetime:
    """统一为 UTC 时间；naive 时间按 UTC 处理"""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class Task(CamelModel):
    """Task 数据模型"""

    task_id: str = Field(alias="id", description="唯一标识，ULID 格式")
    title: str = Field(description="任务标题")
    description: str = Field(description="任务描述")
    due_date: datetime = Field(description="截止时间")
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM, description="优先级")
    status: TaskStatus = Field(default=TaskStatus.TODO, description="当前状态")
    creator_id: str = Field(description="创建者 ID")
    assigned_to_id: str = Field(description="执行者 ID")
    created_at: datetime = Field(description="创建时间")
    updated_at: datetime = Field(description="更新时间")

    @field_validator("due_date")
    @classmethod
    def normalize_due_date(cls, value: datetime) -> datetime:
        return ensure_aware(value)

    def is_overdue_at(self, now: datetime) -> bool:
        return self.due_date < now and self.status != TaskStatus.COMPLETED

    @computed_field(alias="isOverdue")  # type: ignore[prop-decorator]
    @property
    def is_overdue(self) -> bool:
        return self.is_overdue_at(datetime.now(UTC))


class TaskView(Task):
    """读取视图：附带创建者与执行者摘要"""

    creator: UserSummary | None = None
    assignee: UserSummary | None = None


class TaskCreate(CamelModel):
    """创建任务输入

    字段均为可选，缺失校验由生命周期引擎统一完成。
    """

    title: str | None = None
    description: str | None = None
    due_date: datetime | None = None
    priority: TaskPriority | None = None
    assigned_to_id: str | None = None


class TaskPatch(CamelModel):
    """更新任务输入，仅显式提供的字段会被应用

    status 仅用于识别并拒绝越权的状态修改。
    """

    title: str | None = None
    description: str | None = None
    due_date: datetime | None = None
    priority: TaskPriority | None = None
    assigned_to_id: str | None = None
    status: str | None = None

    def provided(self) -> set[str]:
        """显式提供且非空的字段名"""
        return {
            name for name in self.model_fields_set if getattr(self, name) is not None
        }
