"""任务路由

POST   /api/tasks                 创建任务
GET    /api/tasks                 分页列表（status / priority / sort / page / limit / assigned / created）
GET    /api/tasks/recent          最近更新的任务
GET    /api/tasks/dashboard       仪表盘统计
GET    /api/tasks/{task_id}       任务详情
PUT    /api/tasks/{task_id}       编辑任务（管理员或创建者）
PATCH  /api/tasks/{task_id}/status  推进状态（仅执行者）
DELETE /api/tasks/{task_id}       删除任务（管理员；创建者仅可删已完成任务）
"""

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from taskhub.core.config import RECENT_TASKS_LIMIT, TASK_PAGE_SIZE, TASK_PAGE_SIZE_MAX
from taskhub.core.models import Actor, TaskCreate, TaskPatch

from ..deps import get_current_actor, get_task_service
from ..services.task_service import TaskListParams, TaskService

router = APIRouter()


class StatusUpdate(BaseModel):
    """状态变更请求体"""

    status: str | None = None


@router.post("/api/tasks", status_code=201)
async def create_task(
    body: TaskCreate,
    actor: Actor = Depends(get_current_actor),
    service: TaskService = Depends(get_task_service),
):
    task = await service.create_task(actor, body)
    return {"task": task.to_wire()}


@router.get("/api/tasks")
async def list_tasks(
    status: str | None = Query(default=None, description="按状态筛选"),
    priority: str | None = Query(default=None, description="按优先级筛选"),
    sort: str = Query(default="dueDate:asc", description="field:asc|desc"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=TASK_PAGE_SIZE, ge=1, le=TASK_PAGE_SIZE_MAX),
    assigned: bool = Query(default=False, description="只看指派给我的"),
    created: bool = Query(default=False, description="只看我创建的"),
    actor: Actor = Depends(get_current_actor),
    service: TaskService = Depends(get_task_service),
):
    params = TaskListParams(
        status=status,
        priority=priority,
        sort=sort,
        page=page,
        limit=limit,
        assigned=assigned,
        created=created,
    )
    result = await service.list_tasks(actor, params)
    return result.to_wire()


@router.get("/api/tasks/recent")
async def recent_tasks(
    limit: int = Query(default=RECENT_TASKS_LIMIT, ge=1, le=TASK_PAGE_SIZE_MAX),
    actor: Actor = Depends(get_current_actor),
    service: TaskService = Depends(get_task_service),
):
    tasks = await service.recent_tasks(actor, limit)
    return {"recentTasks": [t.to_wire() for t in tasks]}


@router.get("/api/tasks/dashboard")
async def dashboard(
    actor: Actor = Depends(get_current_actor),
    service: TaskService = Depends(get_task_service),
):
    result = await service.dashboard(actor)
    return result.to_wire()


@router.get("/api/tasks/{task_id}")
async def get_task(
    task_id: str,
    actor: Actor = Depends(get_current_actor),
    service: TaskService = Depends(get_task_service),
):
    task = await service.get_task(actor, task_id)
    return {"task": task.to_wire()}


@router.put("/api/tasks/{task_id}")
async def update_task(
    task_id: str,
    body: TaskPatch,
    actor: Actor = Depends(get_current_actor),
    service: TaskService = Depends(get_task_service),
):
    task = await service.update_task(actor, task_id, body)
    return {"task": task.to_wire()}


@router.patch("/api/tasks/{task_id}/status")
async def update_task_status(
    task_id: str,
    body: StatusUpdate,
    actor: Actor = Depends(get_current_actor),
    service: TaskService = Depends(get_task_service),
):
    task = await service.update_status(actor, task_id, body.status)
    return {"task": task.to_wire()}


@router.delete("/api/tasks/{task_id}")
async def delete_task(
    task_id: str,
    actor: Actor = Depends(get_current_actor),
    service: TaskService = Depends(get_task_service),
):
    await service.delete_task(actor, task_id)
    return {"message": "Task deleted successfully"}
