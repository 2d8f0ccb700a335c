"""依赖注入模块 -- 通过 FastAPI Depends 注入进程级组件与当前调用方

所有组件在 lifespan 中初始化并挂到 app.state。
"""

from fastapi import Depends, Request
from taskhub.core.exceptions import AuthenticationRequired, AuthorizationDenied
from taskhub.core.models import Actor
from taskhub.core.store import StoreGroup
from taskhub.core.tokens import TokenVerifier

from .services.notification_dispatcher import NotificationDispatcher
from .services.realtime_hub import RealtimeHub
from .services.task_service import TaskService


def get_store_group(request: Request) -> StoreGroup:
    """从 app.state 获取 StoreGroup 实例"""
    return request.app.state.store_group


def get_realtime_hub(request: Request) -> RealtimeHub:
    return request.app.state.realtime_hub


def get_dispatcher(request: Request) -> NotificationDispatcher:
    return request.app.state.dispatcher


def get_token_verifier(request: Request) -> TokenVerifier:
    return request.app.state.token_verifier


def get_task_service(
    store_group: StoreGroup = Depends(get_store_group),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> TaskService:
    return TaskService(store_group, dispatcher)


def extract_bearer_token(authorization: str | None) -> str | None:
    """从 "Bearer <token>" 中取出 token"""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def get_current_actor(
    request: Request,
    store_group: StoreGroup = Depends(get_store_group),
    verifier: TokenVerifier = Depends(get_token_verifier),
) -> Actor:
    """解析 Authorization 头（或 token cookie）并加载当前用户

    Raises:
        AuthenticationRequired: 缺少 token、token 无效或用户已不存在
    """
    token = extract_bearer_token(request.headers.get("authorization"))
    if token is None:
        token = request.cookies.get("token")
    if not token:
        raise AuthenticationRequired()

    user_id = verifier.verify(token)
    user = await store_group.user_store.get_user(user_id)
    if user is None:
        raise AuthenticationRequired("User not found")
    return Actor.from_user(user)


async def require_admin(actor: Actor = Depends(get_current_actor)) -> Actor:
    if not actor.is_admin:
        raise AuthorizationDenied("Admin access required")
    return actor
