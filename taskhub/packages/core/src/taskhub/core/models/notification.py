"""Notification Domain Model

通知归接收者所有；read 标记由接收者修改；所属任务删除时级联删除。
"""

from datetime import datetime

from pydantic import Field

from .base import CamelModel
from .enums import NotificationType


class Notification(CamelModel):
    """Notification 数据模型"""

    notification_id: str = Field(alias="id", description="唯一标识，ULID 格式")
    user_id: str = Field(description="接收者 ID")
    message: str = Field(description="通知文本")
    type: NotificationType = Field(
        default=NotificationType.TASK_ASSIGNED, description="通知类型"
    )
    task_id: str | None = Field(default=None, description="关联任务 ID（可选）")
    read: bool = Field(default=False, description="是否已读")
    created_at: datetime = Field(description="创建时间")


class NotificationPage(CamelModel):
    """通知列表结果"""

    notifications: list[Notification]
    unread_count: int
