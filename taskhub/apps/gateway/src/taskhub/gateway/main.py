"""FastAPI 应用主文件

app 创建 + lifespan 管理：
启动时初始化 Store、Token 校验器、实时 Hub、防抖器与通知派发器；
关闭时取消待执行推送、关闭 Hub、关闭数据库连接。
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from taskhub.core.config import (
    DEBOUNCE_WINDOW_MS,
    REALTIME_QUEUE_MAXSIZE,
    get_db_path,
    load_auth_config,
)
from taskhub.core.store import StoreGroup, create_store_group
from taskhub.core.tokens import TokenCodec, TokenVerifier

from .errors import register_exception_handlers
from .middleware.logging_config import setup_logfire, setup_logging
from .middleware.logging_mw import LoggingMiddleware
from .middleware.trace_mw import TraceMiddleware
from .routes import health, notifications, realtime, tasks, users
from .services.debounce import Debouncer
from .services.notification_dispatcher import NotificationDispatcher
from .services.realtime_hub import RealtimeHub

log = structlog.get_logger()


def attach_services(
    app: FastAPI,
    store_group: StoreGroup,
    token_verifier: TokenVerifier | None = None,
) -> None:
    """在 app.state 上挂载进程级组件"""
    if token_verifier is None:
        token_verifier = TokenCodec.from_config(load_auth_config())
    hub = RealtimeHub(
        token_verifier,
        store_group.user_store,
        queue_maxsize=REALTIME_QUEUE_MAXSIZE,
    )
    debouncer = Debouncer(window_ms=DEBOUNCE_WINDOW_MS)

    app.state.store_group = store_group
    app.state.token_verifier = token_verifier
    app.state.realtime_hub = hub
    app.state.debouncer = debouncer
    app.state.dispatcher = NotificationDispatcher(store_group, hub, debouncer)


async def detach_services(app: FastAPI) -> None:
    """按依赖逆序关闭进程级组件"""
    debouncer = getattr(app.state, "debouncer", None)
    if debouncer is not None:
        await debouncer.cancel_all()
    hub = getattr(app.state, "realtime_hub", None)
    if hub is not None:
        await hub.close()
    store_group = getattr(app.state, "store_group", None)
    if store_group is not None:
        await store_group.conn.close()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """应用生命周期管理"""
    db_path = get_db_path()
    store_group = await create_store_group(db_path)
    attach_services(app, store_group)
    log.info("gateway_started", db_path=db_path, debounce_ms=DEBOUNCE_WINDOW_MS)

    yield

    await detach_services(app)
    log.info("gateway_stopped")


def create_app() -> FastAPI:
    """创建 FastAPI 应用实例"""
    app = FastAPI(
        title="TaskHub Gateway",
        version="0.1.0",
        description="多用户任务指派与实时通知 API",
        lifespan=lifespan,
    )

    # 注册中间件（顺序：先 Trace 后 Logging，Logging 位于最外层）
    app.add_middleware(TraceMiddleware)
    app.add_middleware(LoggingMiddleware)

    register_exception_handlers(app)

    setup_logging()
    setup_logfire(app)

    app.include_router(tasks.router, tags=["tasks"])
    app.include_router(notifications.router, tags=["notifications"])
    app.include_router(users.router, tags=["users"])
    app.include_router(realtime.router, tags=["realtime"])
    app.include_router(health.router, tags=["health"])

    return app


# 默认 app 实例（uvicorn 入口）
app = create_app()
