"""TaskStore SQLite 实现

排序字段与筛选条件均经过白名单映射后才拼入 SQL。
"""

from datetime import datetime

import aiosqlite

from ..models.enums import DUPLICATE_EXEMPT_STATUSES
from ..models.task import Task
from .protocols import TaskQuery

_COLUMNS = (
    "task_id, title, description, due_date, priority, status, "
    "creator_id, assigned_to_id, created_at, updated_at"
)

# 线上排序字段 -> 列名
SORTABLE_COLUMNS: dict[str, str] = {
    "dueDate": "due_date",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "priority": "priority",
    "status": "status",
    "title": "title",
}

_GROUPABLE_COLUMNS = {"status", "priority"}


def _build_where(query: TaskQuery) -> tuple[str, list]:
    """把 TaskQuery 转换为 WHERE 子句与参数"""
    clauses: list[str] = []
    params: list = []

    if query.scope_user_id:
        clauses.append("(creator_id = ? OR assigned_to_id = ?)")
        params.extend([query.scope_user_id, query.scope_user_id])
    if query.assigned_to_id:
        clauses.append("assigned_to_id = ?")
        params.append(query.assigned_to_id)
    if query.creator_id:
        clauses.append("creator_id = ?")
        params.append(query.creator_id)
    if query.status:
        clauses.append("status = ?")
        params.append(query.status)
    if query.status_not:
        clauses.append("status != ?")
        params.append(query.status_not)
    if query.priority:
        clauses.append("priority = ?")
        params.append(query.priority)
    if query.statuses_in:
        clauses.append(f"status IN ({', '.join('?' for _ in query.statuses_in)})")
        params.extend(query.statuses_in)
    if query.priorities_in:
        clauses.append(f"priority IN ({', '.join('?' for _ in query.priorities_in)})")
        params.extend(query.priorities_in)
    if query.due_before is not None:
        clauses.append("due_date < ?")
        params.append(query.due_before.isoformat())

    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
    return where, params


class SqliteTaskStore:
    """TaskStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def create_task(self, task: Task) -> None:
        """创建任务记录（不自动提交）"""
        await self._conn.execute(
            f"INSERT INTO tasks ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            self._task_params(task),
        )

    async def get_task(self, task_id: str) -> Task | None:
        cursor = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM tasks WHERE task_id = ?",
            (task_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_task(row)

    async def save_task(self, task: Task) -> None:
        """整体覆盖写入可变字段（不自动提交，无版本比对）"""
        await self._conn.execute(
            """
            UPDATE tasks
            SET title = ?, description = ?, due_date = ?, priority = ?,
                status = ?, assigned_to_id = ?, updated_at = ?
            WHERE task_id = ?
            """,
            (
                task.title,
                task.description,
                task.due_date.isoformat(),
                task.priority.value,
                task.status.value,
                task.assigned_to_id,
                task.updated_at.isoformat(),
                task.task_id,
            ),
        )

    async def delete_task(self, task_id: str) -> None:
        await self._conn.execute("DELETE FROM tasks WHERE task_id = ?", (task_id,))

    async def list_active_for_pair(
        self, creator_id: str, assigned_to_id: str
    ) -> list[Task]:
        """同一 (创建者, 执行者) 下状态未终结的任务"""
        exempt = ", ".join("?" for _ in DUPLICATE_EXEMPT_STATUSES)
        cursor = await self._conn.execute(
            f"""
            SELECT {_COLUMNS} FROM tasks
            WHERE creator_id = ? AND assigned_to_id = ? AND status NOT IN ({exempt})
            """,
            (creator_id, assigned_to_id, *DUPLICATE_EXEMPT_STATUSES),
        )
        rows = await cursor.fetchall()
        return [self._row_to_task(row) for row in rows]

    async def query_tasks(
        self,
        query: TaskQuery,
        sort_column: str,
        descending: bool,
        offset: int,
        limit: int,
    ) -> list[Task]:
        """按条件分页查询；sort_column 必须来自 SORTABLE_COLUMNS"""
        if sort_column not in SORTABLE_COLUMNS.values():
            raise ValueError(f"Unsupported sort column: {sort_column}")
        where, params = _build_where(query)
        direction = "DESC" if descending else "ASC"
        cursor = await self._conn.execute(
            f"""
            SELECT {_COLUMNS} FROM tasks {where}
            ORDER BY {sort_column} {direction}, task_id {direction}
            LIMIT ? OFFSET ?
            """,
            (*params, limit, offset),
        )
        rows = await cursor.fetchall()
        return [self._row_to_task(row) for row in rows]

    async def count_tasks(self, query: TaskQuery) -> int:
        where, params = _build_where(query)
        cursor = await self._conn.execute(f"SELECT COUNT(*) FROM tasks {where}", params)
        row = await cursor.fetchone()
        return row[0] if row else 0

    async def group_counts(self, query: TaskQuery, column: str) -> list[tuple[str, int]]:
        """按 status / priority 分组计数"""
        if column not in _GROUPABLE_COLUMNS:
            raise ValueError(f"Unsupported group column: {column}")
        where, params = _build_where(query)
        cursor = await self._conn.execute(
            f"""
            SELECT {column}, COUNT(*) FROM tasks {where}
            GROUP BY {column} ORDER BY {column} ASC
            """,
            params,
        )
        rows = await cursor.fetchall()
        return [(row[0], row[1]) for row in rows]

    @staticmethod
    def _task_params(task: Task) -> tuple:
        return (
            task.task_id,
            task.title,
            task.description,
            task.due_date.isoformat(),
            task.priority.value,
            task.status.value,
            task.creator_id,
            task.assigned_to_id,
            task.created_at.isoformat(),
            task.updated_at.isoformat(),
        )

    @staticmethod
    def _row_to_task(row: aiosqlite.Row) -> Task:
        """将数据库行转换为 Task 模型"""
        return Task(
            task_id=row[0],
            title=row[1],
            description=row[2],
            due_date=datetime.fromisoformat(row[3]),
            priority=row[4],
            status=row[5],
            creator_id=row[6],
            assigned_to_id=row[7],
            created_at=datetime.fromisoformat(row[8]),
            updated_at=datetime.fromisoformat(row[9]),
        )
