"""任务生命周期引擎 -- 纯规划层

负责输入校验、状态流转校验，以及决定一次变更应产生哪些通知与广播。
不做任何 I/O：由 gateway 的 TaskService 负责加载、落盘与派发。

状态流转是宽松的：任意枚举值都可作为目标状态（允许从 Completed 重新打开），
仅由授权策略限制"谁"可以推进。
"""

from datetime import datetime

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

from .config import TASK_TITLE_MAX_LENGTH
from .exceptions import ConflictError, ValidationFailure
from .models import (
    DUPLICATE_EXEMPT_STATUSES,
    Actor,
    BroadcastIntent,
    BroadcastKind,
    NotificationIntent,
    NotificationType,
    Task,
    TaskCreate,
    TaskPatch,
    TaskPriority,
    TaskStatus,
    TaskView,
    User,
    ensure_aware,
    is_valid_status,
)
from .policy import can_self_assign

_REQUIRED_CREATE_FIELDS = ("title", "description", "due_date", "assigned_to_id")


class LifecycleOutcome(BaseModel):
    """一次生命周期操作的结果：更新后的任务 + 副作用意图"""

    task: TaskView | None = None
    notifications: list[NotificationIntent] = Field(default_factory=list)
    broadcasts: list[BroadcastIntent] = Field(default_factory=list)


def title_key(title: str) -> str:
    """重复检测用的标题归一化：去首尾空白 + casefold"""
    return title.strip().casefold()


def _clean_title(title: str) -> str:
    cleaned = title.strip()
    if not cleaned:
        raise ValidationFailure("Title is required")
    if len(cleaned) > TASK_TITLE_MAX_LENGTH:
        raise ValidationFailure(
            f"Title cannot exceed {TASK_TITLE_MAX_LENGTH} characters"
        )
    return cleaned


def _clean_description(description: str) -> str:
    cleaned = description.strip()
    if not cleaned:
        raise ValidationFailure("Description is required")
    return cleaned


def validate_new_task(creator: Actor, data: TaskCreate) -> TaskCreate:
    """校验创建输入并返回归一化后的副本

    Raises:
        ValidationFailure: 必填字段缺失，或管理员给自己指派任务
    """
    missing = [
        name
        for name in _REQUIRED_CREATE_FIELDS
        if getattr(data, name) is None
        or (isinstance(getattr(data, name), str) and not getattr(data, name).strip())
    ]
    if missing:
        raise ValidationFailure(
            "Missing required fields: " + ", ".join(to_camel(name) for name in missing)
        )

    if not can_self_assign(creator, data.assigned_to_id):
        raise ValidationFailure("Admin cannot assign tasks to themselves")

    return TaskCreate(
        title=_clean_title(data.title),
        description=_clean_description(data.description),
        due_date=ensure_aware(data.due_date),
        priority=data.priority or TaskPriority.MEDIUM,
        assigned_to_id=data.assigned_to_id.strip(),
    )


def find_duplicate(candidates: list[Task], title: str) -> Task | None:
    """在同一 (创建者, 执行者) 的任务中查找标题相同的未终结任务"""
    key = title_key(title)
    for task in candidates:
        if task.status in DUPLICATE_EXEMPT_STATUSES:
            continue
        if title_key(task.title) == key:
            return task
    return None


def ensure_not_duplicate(candidates: list[Task], title: str) -> None:
    """Raises ConflictError 携带已存在任务的 id/title/status"""
    existing = find_duplicate(candidates, title)
    if existing is not None:
        raise ConflictError(
            "A similar active task already exists for this user",
            code="DUPLICATE_TASK",
            existing={
                "id": existing.task_id,
                "title": existing.title,
                "status": existing.status.value,
            },
        )


def plan_create(creator: Actor, task: TaskView) -> LifecycleOutcome:
    """新任务：通知执行者 + 全局 task_created + 推送 task_assigned 给执行者"""
    return LifecycleOutcome(
        task=task,
        notifications=[
            NotificationIntent(
                user_id=task.assigned_to_id,
                message=f'{creator.name} assigned you a new task: "{task.title}"',
                type=NotificationType.TASK_ASSIGNED,
                task_id=task.task_id,
            )
        ],
        broadcasts=[
            BroadcastIntent(
                kind=BroadcastKind.TASK_ASSIGNED,
                task_id=task.task_id,
                task=task,
                target_user_id=task.assigned_to_id,
                extra={"assignerName": creator.name},
            ),
            BroadcastIntent(
                kind=BroadcastKind.TASK_CREATED,
                task_id=task.task_id,
                task=task,
            ),
        ],
    )


def validate_status(new_status: str | None) -> TaskStatus:
    """Raises ValidationFailure 当目标状态不在固定枚举内"""
    if new_status is None or not is_valid_status(new_status):
        raise ValidationFailure("Invalid status value")
    return TaskStatus(new_status)


def status_change_message(
    actor_name: str, title: str, old_status: TaskStatus, new_status: TaskStatus
) -> str:
    """按目标状态生成发给创建者的通知文本"""
    match new_status:
        case TaskStatus.IN_PROGRESS:
            return f'{actor_name} started working on task: "{title}"'
        case TaskStatus.REVIEW:
            return f'{actor_name} sent task "{title}" for review'
        case TaskStatus.COMPLETED:
            return f'{actor_name} completed task: "{title}"'
        case _:
            return (
                f'{actor_name} changed task "{title}" status from '
                f"{old_status.value} to {new_status.value}"
            )


def plan_status_change(
    actor: Actor,
    old_status: TaskStatus,
    task: TaskView,
    admins: list[User],
) -> LifecycleOutcome:
    """状态变更的副作用

    - 状态确有变化时：通知创建者（创建者即操作者时跳过）；
      目标为 Completed 时通知除操作者外的所有管理员
    - 总是广播 task_updated；状态确有变化时再广播 task_status_changed
    """
    outcome = LifecycleOutcome(task=task)
    new_status = task.status
    changed = old_status != new_status

    if changed:
        if task.creator_id != actor.user_id:
            outcome.notifications.append(
                NotificationIntent(
                    user_id=task.creator_id,
                    message=status_change_message(
                        actor.name, task.title, old_status, new_status
                    ),
                    type=NotificationType.TASK_STATUS_CHANGED,
                    task_id=task.task_id,
                )
            )
        if new_status == TaskStatus.COMPLETED:
            for admin in admins:
                if admin.user_id == actor.user_id:
                    continue
                outcome.notifications.append(
                    NotificationIntent(
                        user_id=admin.user_id,
                        message=(
                            f'Task "{task.title}" has been completed by {actor.name}'
                        ),
                        type=NotificationType.TASK_COMPLETED,
                        task_id=task.task_id,
                    )
                )

    outcome.broadcasts.append(
        BroadcastIntent(kind=BroadcastKind.TASK_UPDATED, task_id=task.task_id, task=task)
    )
    if changed:
        outcome.broadcasts.append(
            BroadcastIntent(
                kind=BroadcastKind.TASK_STATUS_CHANGED,
                task_id=task.task_id,
                task=task,
                extra={
                    "oldStatus": old_status.value,
                    "newStatus": new_status.value,
                    "changedBy": actor.name,
                },
            )
        )
    return outcome


def validate_patch(actor: Actor, patch: TaskPatch) -> set[str]:
    """校验更新输入，返回需要应用的字段集合

    Raises:
        ValidationFailure: 空 patch、试图通过编辑修改状态、管理员自我指派
    """
    fields = patch.provided()
    if "status" in fields:
        raise ValidationFailure(
            "Status can only be changed through the status endpoint"
        )
    if not fields:
        raise ValidationFailure("No fields to update")
    if "assigned_to_id" in fields and not can_self_assign(actor, patch.assigned_to_id):
        raise ValidationFailure("Admin cannot assign tasks to themselves")
    return fields


def apply_patch(task: Task, patch: TaskPatch, fields: set[str], now: datetime) -> Task:
    """把 patch 中显式提供的字段应用到任务上，返回新对象"""
    changes: dict = {"updated_at": now}
    if "title" in fields:
        changes["title"] = _clean_title(patch.title)
    if "description" in fields:
        changes["description"] = _clean_description(patch.description)
    if "due_date" in fields:
        changes["due_date"] = ensure_aware(patch.due_date)
    if "priority" in fields:
        changes["priority"] = patch.priority
    if "assigned_to_id" in fields:
        changes["assigned_to_id"] = patch.assigned_to_id
    return task.model_copy(update=changes)


def plan_update(
    actor: Actor, previous_assignee_id: str, task: TaskView
) -> LifecycleOutcome:
    """编辑任务的副作用

    指派变化时：通知新执行者 task_assigned、旧执行者 task_updated，并推送 task_assigned；
    总是广播 task_updated。
    """
    outcome = LifecycleOutcome(task=task)
    if task.assigned_to_id != previous_assignee_id:
        outcome.notifications.extend(
            [
                NotificationIntent(
                    user_id=task.assigned_to_id,
                    message=f'{actor.name} assigned you a task: "{task.title}"',
                    type=NotificationType.TASK_ASSIGNED,
                    task_id=task.task_id,
                ),
                NotificationIntent(
                    user_id=previous_assignee_id,
                    message=f'Task "{task.title}" has been reassigned',
                    type=NotificationType.TASK_UPDATED,
                    task_id=task.task_id,
                ),
            ]
        )
        outcome.broadcasts.append(
            BroadcastIntent(
                kind=BroadcastKind.TASK_ASSIGNED,
                task_id=task.task_id,
                task=task,
                target_user_id=task.assigned_to_id,
                extra={"assignerName": actor.name},
            )
        )
    outcome.broadcasts.append(
        BroadcastIntent(kind=BroadcastKind.TASK_UPDATED, task_id=task.task_id, task=task)
    )
    return outcome


def plan_delete(task_id: str) -> LifecycleOutcome:
    """删除任务：仅广播 task_deleted（只携带 id）"""
    return LifecycleOutcome(
        broadcasts=[BroadcastIntent(kind=BroadcastKind.TASK_DELETED, task_id=task_id)]
    )
