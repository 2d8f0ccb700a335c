"""实时通道路由

WS  /api/realtime/ws        WebSocket 主通道，握手 token 来自 ?token= 或 Authorization 头
GET /api/realtime/stream    SSE 备用通道，认证与房间规则同上（另接受 token cookie）
GET /api/realtime/presence  在线用户与连接数（仅管理员）

帧格式：{"event": <name>, "data": <payload>}。
认证失败的 WebSocket 在 accept 之前以 4401 关闭。
"""

import asyncio
import json

import structlog
from fastapi import APIRouter, Depends, Request, WebSocket, WebSocketDisconnect
from sse_starlette.sse import EventSourceResponse
from starlette.websockets import WebSocketState
from taskhub.core.config import SSE_HEARTBEAT_INTERVAL
from taskhub.core.exceptions import AuthenticationRequired
from taskhub.core.models import Actor

from ..deps import extract_bearer_token, get_realtime_hub, require_admin
from ..services.realtime_hub import (
    ConnectionState,
    RealtimeConnection,
    RealtimeHub,
    utc_timestamp,
)

log = structlog.get_logger()

router = APIRouter()

# 认证失败的 WebSocket 关闭码
WS_CLOSE_UNAUTHORIZED = 4401
# Hub 关闭或连接被移出时由服务端关闭
WS_CLOSE_GOING_AWAY = 1001


def _connected_frame(actor: Actor) -> dict:
    return {
        "event": "connected",
        "data": {"userId": actor.user_id, "timestamp": utc_timestamp()},
    }


async def _pump(websocket: WebSocket, connection: RealtimeConnection) -> None:
    """把连接队列中的帧写入 WebSocket；连接被移出 Hub 后以 1001 关闭"""
    while connection.state == ConnectionState.AUTHENTICATED:
        try:
            frame = await asyncio.wait_for(
                connection.queue.get(), timeout=SSE_HEARTBEAT_INTERVAL
            )
        except TimeoutError:
            continue
        if frame is None:
            break
        try:
            await websocket.send_json(frame)
        except (WebSocketDisconnect, RuntimeError):
            return
    if websocket.application_state == WebSocketState.CONNECTED:
        await websocket.close(code=WS_CLOSE_GOING_AWAY)


async def _receive(
    websocket: WebSocket, hub: RealtimeHub, connection: RealtimeConnection
) -> None:
    """读取客户端帧直到对端断开"""
    try:
        while True:
            raw = await websocket.receive_text()
            _handle_client_frame(hub, connection, raw)
    except WebSocketDisconnect:
        return


def _handle_client_frame(hub: RealtimeHub, connection: RealtimeConnection, raw: str) -> None:
    try:
        message = json.loads(raw)
    except ValueError:
        log.debug("realtime_invalid_frame", connection_id=connection.connection_id)
        return
    if not isinstance(message, dict):
        return
    if message.get("event") == "ping":
        data = message.get("data")
        payload = dict(data) if isinstance(data, dict) else {}
        payload["timestamp"] = utc_timestamp()
        hub.send(connection, "pong", payload)


@router.websocket("/api/realtime/ws")
async def realtime_ws(websocket: WebSocket):
    hub: RealtimeHub = websocket.app.state.realtime_hub
    token = websocket.query_params.get("token") or extract_bearer_token(
        websocket.headers.get("authorization")
    )

    connection = hub.open_connection()
    try:
        actor = await hub.authenticate(connection, token)
    except AuthenticationRequired as e:
        log.info("realtime_auth_failed", reason=e.message)
        await websocket.close(code=WS_CLOSE_UNAUTHORIZED)
        return

    await websocket.accept()
    await websocket.send_json(_connected_frame(actor))

    sender = asyncio.create_task(_pump(websocket, connection))
    try:
        await _receive(websocket, hub, connection)
    finally:
        # 会话可能正被取消，这里不再 await
        hub.disconnect(connection)
        sender.cancel()


@router.get("/api/realtime/stream")
async def realtime_stream(
    request: Request,
    hub: RealtimeHub = Depends(get_realtime_hub),
):
    """SSE 备用通道

    1. 认证并加入房间
    2. 推送 connected
    3. 实时推送队列中的帧
    4. 心跳保活
    """
    token = (
        request.query_params.get("token")
        or extract_bearer_token(request.headers.get("authorization"))
        or request.cookies.get("token")
    )
    connection = hub.open_connection()
    actor = await hub.authenticate(connection, token)

    async def event_generator():
        try:
            first = _connected_frame(actor)
            yield {"event": first["event"], "data": json.dumps(first["data"])}
            while connection.state == ConnectionState.AUTHENTICATED:
                try:
                    frame = await asyncio.wait_for(
                        connection.queue.get(), timeout=SSE_HEARTBEAT_INTERVAL
                    )
                except TimeoutError:
                    yield {"comment": "heartbeat"}
                    continue
                if frame is None:
                    return
                yield {
                    "event": frame["event"],
                    "data": json.dumps(frame["data"], ensure_ascii=False),
                }
        finally:
            hub.disconnect(connection)

    return EventSourceResponse(event_generator())


@router.get("/api/realtime/presence")
async def presence(
    _admin: Actor = Depends(require_admin),
    hub: RealtimeHub = Depends(get_realtime_hub),
):
    return hub.presence()
