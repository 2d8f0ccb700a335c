"""apps/gateway 测试配置 -- FastAPI app + httpx AsyncClient + 认证辅助"""

import os
from collections.abc import AsyncGenerator, Callable
from pathlib import Path

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from taskhub.core.models import User


@pytest_asyncio.fixture
async def app(tmp_path: Path, store_group, token_codec):
    """创建测试用 FastAPI app，进程级组件直接挂到 app.state（ASGITransport 不触发 lifespan）"""
    os.environ["TASKHUB_DB_PATH"] = str(tmp_path / "sqlite" / "test.db")
    os.environ["LOGFIRE_SEND_TO_LOGFIRE"] = "false"

    from taskhub.gateway.main import attach_services, create_app

    application = create_app()
    attach_services(application, store_group, token_codec)
    yield application

    # store_group 由上层 fixture 关闭，这里只收尾推送相关组件
    await application.state.debouncer.cancel_all()
    await application.state.realtime_hub.close()

    for key in ["TASKHUB_DB_PATH", "LOGFIRE_SEND_TO_LOGFIRE"]:
        os.environ.pop(key, None)


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """提供 httpx AsyncClient 用于测试"""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest_asyncio.fixture
async def auth_headers(token_codec) -> Callable[[User], dict[str, str]]:
    """为用户生成 Authorization 头"""

    def _headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {token_codec.issue(user.user_id)}"}

    return _headers
