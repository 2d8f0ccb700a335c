"""CLI 入口模块 -- python -m taskhub.core <command>

支持的命令：
  init-db                             初始化数据库（建表 + 索引）
  create-user <name> <email> [role]   创建用户（role: user / admin）
  list-users                          列出全部用户
  issue-token <email>                 为用户签发 Bearer token
"""

import asyncio
import sys
from datetime import UTC, datetime

from ulid import ULID

from .config import get_db_path, load_auth_config
from .models import User, UserRole

_USAGE = """用法: python -m taskhub.core <command>
命令:
  init-db                             初始化数据库
  create-user <name> <email> [role]   创建用户
  list-users                          列出全部用户
  issue-token <email>                 签发 token"""


def main(argv: list[str] | None = None) -> int:
    """CLI 主入口，返回进程退出码"""
    args = sys.argv[1:] if argv is None else argv
    if not args:
        print(_USAGE)
        return 1

    command, rest = args[0], args[1:]

    if command == "init-db":
        return asyncio.run(init_database())
    if command == "create-user" and len(rest) in (2, 3):
        role = rest[2] if len(rest) == 3 else UserRole.USER.value
        return asyncio.run(create_user(rest[0], rest[1], role))
    if command == "list-users":
        return asyncio.run(list_users())
    if command == "issue-token" and len(rest) == 1:
        return asyncio.run(issue_token(rest[0]))

    print(f"未知命令或参数错误: {' '.join(args)}")
    print(_USAGE)
    return 1


async def init_database() -> int:
    """创建数据库文件并初始化表结构"""
    from .store import create_store_group

    db_path = get_db_path()
    print(f"数据库路径: {db_path}")
    store_group = await create_store_group(db_path)
    await store_group.conn.close()
    print("初始化完成")
    return 0


async def create_user(name: str, email: str, role: str) -> int:
    """创建用户；邮箱重复或角色非法时返回 1"""
    from .store import create_store_group

    try:
        user_role = UserRole(role)
    except ValueError:
        print(f"非法角色: {role}（可选: user / admin）")
        return 1

    store_group = await create_store_group(get_db_path())
    try:
        if await store_group.user_store.get_user_by_email(email) is not None:
            print(f"邮箱已存在: {email}")
            return 1
        now = datetime.now(UTC)
        user = User(
            user_id=str(ULID()),
            name=name.strip(),
            email=email.strip().lower(),
            role=user_role,
            created_at=now,
            updated_at=now,
        )
        await store_group.user_store.create_user(user)
        await store_group.conn.commit()
        print(f"{user.user_id}\t{user.email}\t{user.role.value}")
        return 0
    finally:
        await store_group.conn.close()


async def list_users() -> int:
    from .store import create_store_group

    store_group = await create_store_group(get_db_path())
    try:
        for user in await store_group.user_store.list_users():
            print(f"{user.user_id}\t{user.name}\t{user.email}\t{user.role.value}")
        return 0
    finally:
        await store_group.conn.close()


async def issue_token(email: str) -> int:
    """按邮箱查找用户并输出 token"""
    from .store import create_store_group
    from .tokens import TokenCodec

    store_group = await create_store_group(get_db_path())
    try:
        user = await store_group.user_store.get_user_by_email(email)
        if user is None:
            print(f"用户不存在: {email}")
            return 1
        codec = TokenCodec.from_config(load_auth_config())
        print(codec.issue(user.user_id))
        return 0
    finally:
        await store_group.conn.close()


if __name__ == "__main__":
    sys.exit(main())
