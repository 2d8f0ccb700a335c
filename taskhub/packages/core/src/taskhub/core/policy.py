"""授权策略 -- 纯函数，无副作用

给定调用方与任务，判断操作是否允许。返回 False 时由调用方转换为
AuthorizationDenied（自我指派规则属于输入错误，转换为 ValidationFailure）。
"""

from .models import Actor, Task, TaskStatus


def is_admin(actor: Actor) -> bool:
    return actor.is_admin


def can_view_task(actor: Actor, task: Task) -> bool:
    """管理员、创建者、执行者可见"""
    return actor.is_admin or actor.user_id in (task.creator_id, task.assigned_to_id)


def can_edit_task(actor: Actor, task: Task) -> bool:
    """管理员或创建者可编辑"""
    return actor.is_admin or actor.user_id == task.creator_id


def can_change_status(actor: Actor, task: Task) -> bool:
    """只有执行者能推进状态，创建者与管理员均不可"""
    return actor.user_id == task.assigned_to_id


def can_delete_task(actor: Actor, task: Task) -> bool:
    """管理员随时可删；创建者仅可删除已完成的任务"""
    if actor.is_admin:
        return True
    return actor.user_id == task.creator_id and task.status == TaskStatus.COMPLETED


def can_self_assign(actor: Actor, assigned_to_id: str) -> bool:
    """管理员不能把任务指派给自己"""
    return not (actor.is_admin and assigned_to_id == actor.user_id)
