"""全局 pytest 配置 -- 临时 SQLite 数据库 + 用户/Token fixture"""

from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import UTC, datetime
from pathlib import Path

import pytest
import pytest_asyncio
from taskhub.core.models import User, UserRole
from taskhub.core.store import StoreGroup, create_store_group
from taskhub.core.tokens import TokenCodec
from ulid import ULID

TEST_TOKEN_SECRET = "taskhub-test-secret"


@pytest_asyncio.fixture
async def tmp_db_path(tmp_path: Path) -> Path:
    """提供临时 SQLite 数据库路径"""
    return tmp_path / "sqlite" / "test.db"


@pytest_asyncio.fixture
async def store_group(tmp_db_path: Path) -> AsyncGenerator[StoreGroup, None]:
    """提供已初始化的 StoreGroup"""
    group = await create_store_group(str(tmp_db_path))
    yield group
    await group.conn.close()


@pytest.fixture
def token_codec() -> TokenCodec:
    return TokenCodec(TEST_TOKEN_SECRET, ttl_s=3600)


async def insert_user(
    store_group: StoreGroup,
    name: str,
    email: str,
    role: UserRole = UserRole.USER,
) -> User:
    """直接写入一个用户并提交"""
    now = datetime.now(UTC)
    user = User(
        user_id=str(ULID()),
        name=name,
        email=email,
        role=role,
        created_at=now,
        updated_at=now,
    )
    await store_group.user_store.create_user(user)
    await store_group.conn.commit()
    return user


@pytest_asyncio.fixture
async def make_user(
    store_group: StoreGroup,
) -> Callable[..., Awaitable[User]]:
    """用户工厂：await make_user("Alice", "alice@example.com", UserRole.ADMIN)"""

    async def _make(name: str, email: str, role: UserRole = UserRole.USER) -> User:
        return await insert_user(store_group, name, email, role)

    return _make
