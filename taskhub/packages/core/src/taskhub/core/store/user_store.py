"""UserStore SQLite 实现"""

from datetime import datetime

import aiosqlite

from ..models.enums import UserRole
from ..models.user import User

_COLUMNS = "user_id, name, email, role, created_at, updated_at"


class SqliteUserStore:
    """UserStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def create_user(self, user: User) -> None:
        """创建用户记录（不自动提交）"""
        await self._conn.execute(
            f"INSERT INTO users ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?)",
            (
                user.user_id,
                user.name,
                user.email.strip().lower(),
                user.role.value,
                user.created_at.isoformat(),
                user.updated_at.isoformat(),
            ),
        )

    async def get_user(self, user_id: str) -> User | None:
        cursor = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM users WHERE user_id = ?",
            (user_id,),
        )
        row = await cursor.fetchone()
        return self._row_to_user(row) if row else None

    async def get_user_by_email(self, email: str) -> User | None:
        cursor = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM users WHERE email = ?",
            (email.strip().lower(),),
        )
        row = await cursor.fetchone()
        return self._row_to_user(row) if row else None

    async def get_users(self, user_ids: list[str]) -> dict[str, User]:
        """批量查询，用于填充任务视图中的创建者/执行者"""
        unique_ids = sorted(set(user_ids))
        if not unique_ids:
            return {}
        placeholders = ", ".join("?" for _ in unique_ids)
        cursor = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM users WHERE user_id IN ({placeholders})",
            unique_ids,
        )
        rows = await cursor.fetchall()
        return {row[0]: self._row_to_user(row) for row in rows}

    async def list_users(self) -> list[User]:
        cursor = await self._conn.execute(f"SELECT {_COLUMNS} FROM users ORDER BY name ASC")
        rows = await cursor.fetchall()
        return [self._row_to_user(row) for row in rows]

    async def list_admins(self) -> list[User]:
        cursor = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM users WHERE role = ? ORDER BY name ASC",
            (UserRole.ADMIN.value,),
        )
        rows = await cursor.fetchall()
        return [self._row_to_user(row) for row in rows]

    async def update_name(self, user_id: str, name: str, updated_at: str) -> None:
        await self._conn.execute(
            "UPDATE users SET name = ?, updated_at = ? WHERE user_id = ?",
            (name, updated_at, user_id),
        )

    @staticmethod
    def _row_to_user(row: aiosqlite.Row) -> User:
        """将数据库行转换为 User 模型"""
        return User(
            user_id=row[0],
            name=row[1],
            email=row[2],
            role=row[3],
            created_at=datetime.fromisoformat(row[4]),
            updated_at=datetime.fromisoformat(row[5]),
        )
