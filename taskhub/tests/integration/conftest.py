"""集成测试共享 fixture"""

import os
from collections.abc import AsyncGenerator
from pathlib import Path

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from taskhub.core.models import UserRole


@pytest_asyncio.fixture
async def integration_app(tmp_path: Path, store_group, token_codec):
    """集成测试用 FastAPI app"""
    os.environ["TASKHUB_DB_PATH"] = str(tmp_path / "sqlite" / "test.db")
    os.environ["LOGFIRE_SEND_TO_LOGFIRE"] = "false"

    from taskhub.gateway.main import attach_services, create_app

    app = create_app()
    attach_services(app, store_group, token_codec)

    yield app

    await app.state.debouncer.cancel_all()
    await app.state.realtime_hub.close()
    os.environ.pop("TASKHUB_DB_PATH", None)
    os.environ.pop("LOGFIRE_SEND_TO_LOGFIRE", None)


@pytest_asyncio.fixture
async def client(integration_app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(
        transport=ASGITransport(app=integration_app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest_asyncio.fixture
async def team(make_user, token_codec):
    """admin / alice / bob 三人团队，附带各自的认证头"""
    admin = await make_user("Ada Admin", "ada@example.com", UserRole.ADMIN)
    alice = await make_user("Alice", "alice@example.com")
    bob = await make_user("Bob", "bob@example.com")

    def headers(user) -> dict[str, str]:
        return {"Authorization": f"Bearer {token_codec.issue(user.user_id)}"}

    return {
        "admin": (admin, headers(admin)),
        "alice": (alice, headers(alice)),
        "bob": (bob, headers(bob)),
    }
