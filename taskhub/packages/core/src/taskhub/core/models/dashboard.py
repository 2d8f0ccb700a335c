"""列表与仪表盘的只读投影"""

from .base import CamelModel
from .task import TaskView


class TaskPage(CamelModel):
    """分页任务列表"""

    tasks: list[TaskView]
    total: int
    page: int
    limit: int
    has_more: bool


class StatusCount(CamelModel):
    status: str
    count: int


class PriorityCount(CamelModel):
    priority: str
    count: int


class DashboardStats(CamelModel):
    """仪表盘计数"""

    total_tasks: int = 0
    completed_tasks: int = 0
    overdue_tasks: int = 0
    high_priority_tasks: int = 0
    completion_rate: float = 0.0


class DashboardCharts(CamelModel):
    by_status: list[StatusCount]
    by_priority: list[PriorityCount]


class Dashboard(CamelModel):
    """GET /api/tasks/dashboard 响应体"""

    stats: DashboardStats
    charts: DashboardCharts
    recent_tasks: list[TaskView]
