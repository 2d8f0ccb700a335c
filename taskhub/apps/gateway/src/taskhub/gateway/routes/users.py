"""用户路由

GET /api/auth/me         当前用户
PUT /api/users/profile   修改显示名称
GET /api/users/all       全部用户（仅管理员）
"""

from datetime import UTC, datetime

import structlog
from fastapi import APIRouter, Depends
from pydantic import BaseModel
from taskhub.core.exceptions import AuthenticationRequired, ValidationFailure
from taskhub.core.models import Actor
from taskhub.core.store import StoreGroup

from ..deps import get_current_actor, get_store_group, require_admin

log = structlog.get_logger()

router = APIRouter()

_NAME_MIN_LENGTH = 2
_NAME_MAX_LENGTH = 50


class ProfileUpdate(BaseModel):
    name: str | None = None


@router.get("/api/auth/me")
async def current_user(
    actor: Actor = Depends(get_current_actor),
    store_group: StoreGroup = Depends(get_store_group),
):
    user = await store_group.user_store.get_user(actor.user_id)
    if user is None:
        raise AuthenticationRequired("User not found")
    return {"user": user.to_wire()}


@router.put("/api/users/profile")
async def update_profile(
    body: ProfileUpdate,
    actor: Actor = Depends(get_current_actor),
    store_group: StoreGroup = Depends(get_store_group),
):
    name = (body.name or "").strip()
    if not _NAME_MIN_LENGTH <= len(name) <= _NAME_MAX_LENGTH:
        raise ValidationFailure(
            f"Name must be between {_NAME_MIN_LENGTH} and {_NAME_MAX_LENGTH} characters"
        )

    try:
        await store_group.user_store.update_name(
            actor.user_id, name, datetime.now(UTC).isoformat()
        )
        await store_group.conn.commit()
    except Exception:
        await store_group.conn.rollback()
        raise

    log.info("profile_updated", user_id=actor.user_id)
    user = await store_group.user_store.get_user(actor.user_id)
    return {"user": user.to_wire()}


@router.get("/api/users/all")
async def list_users(
    _admin: Actor = Depends(require_admin),
    store_group: StoreGroup = Depends(get_store_group),
):
    users = await store_group.user_store.list_users()
    return {"users": [u.to_wire() for u in users]}
