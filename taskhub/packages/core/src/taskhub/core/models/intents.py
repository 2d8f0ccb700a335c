"""副作用意图 -- 生命周期引擎的输出

NotificationIntent: 待落盘并推送的通知（尚未持久化）。
BroadcastIntent: 待推送的实时事件，不落盘。
"""

from typing import Any

from pydantic import BaseModel, Field

from .enums import BroadcastKind, NotificationType
from .task import TaskView


class NotificationIntent(BaseModel):
    """通知意图"""

    user_id: str = Field(description="接收者 ID")
    message: str
    type: NotificationType
    task_id: str | None = None

    def debounce_key(self, notification_id: str) -> str:
        """实时推送的防抖键，同一任务同一接收者的同类通知合并推送"""
        if self.task_id:
            return f"{self.type.value}_{self.task_id}_{self.user_id}"
        return f"notification_{self.user_id}_{notification_id}"


class BroadcastIntent(BaseModel):
    """实时广播意图"""

    kind: BroadcastKind
    task_id: str
    task: TaskView | None = None
    # 仅 TASK_ASSIGNED 使用：推送目标
    target_user_id: str | None = None
    extra: dict[str, Any] = Field(default_factory=dict)

    @property
    def debounce_key(self) -> str:
        if self.kind == BroadcastKind.TASK_STATUS_CHANGED:
            return f"task_status_{self.task_id}"
        if self.kind == BroadcastKind.TASK_ASSIGNED:
            return f"task_assigned_push_{self.task_id}_{self.target_user_id}"
        return f"{self.kind.value}_{self.task_id}"

    def payload(self) -> Any:
        """线上 payload"""
        if self.kind == BroadcastKind.TASK_DELETED:
            return {"taskId": self.task_id}
        task_data = self.task.to_wire() if self.task is not None else {"id": self.task_id}
        if self.kind in (BroadcastKind.TASK_CREATED, BroadcastKind.TASK_UPDATED):
            return task_data
        return {"task": task_data, **self.extra}
