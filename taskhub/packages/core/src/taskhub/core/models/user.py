"""User Domain Model

User 由持久层拥有；Task / Notification 仅通过 id 弱引用。
"""

from datetime import datetime

from pydantic import BaseModel, Field

from .base import CamelModel
from .enums import UserRole


class User(CamelModel):
    """User 数据模型"""

    user_id: str = Field(alias="id", description="唯一标识，ULID 格式")
    name: str = Field(description="显示名称")
    email: str = Field(description="邮箱，唯一")
    role: UserRole = Field(default=UserRole.USER, description="角色")
    created_at: datetime = Field(description="创建时间")
    updated_at: datetime = Field(description="更新时间")


class UserSummary(CamelModel):
    """嵌入 Task 视图中的用户摘要"""

    user_id: str = Field(alias="id")
    name: str
    email: str


class Actor(BaseModel):
    """已认证的调用方身份（由认证协作方注入）"""

    user_id: str
    role: UserRole
    name: str
    email: str = ""

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @classmethod
    def from_user(cls, user: User) -> "Actor":
        return cls(
            user_id=user.user_id,
            role=user.role,
            name=user.name,
            email=user.email,
        )
