"""RealtimeHub -- 进程内实时推送中心

每个连接持有一个有界 asyncio.Queue，推送即 put_nowait，永不阻塞调用方；
队列已满的连接视为失效订阅者并被移出。

房间：
  user_<id>    每个已认证用户的所有连接
  admin_room   所有管理员连接

帧格式：{"event": <name>, "data": <payload>}

Hub 在 lifespan 中创建并挂到 app.state，关闭后所有推送变为 no-op。
"""

import asyncio
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

import structlog
from taskhub.core.exceptions import AuthenticationRequired, TaskHubError
from taskhub.core.models import Actor
from taskhub.core.store.protocols import UserStore
from taskhub.core.tokens import TokenVerifier
from ulid import ULID

log = structlog.get_logger()

ADMIN_ROOM = "admin_room"


def user_room(user_id: str) -> str:
    return f"user_{user_id}"


def utc_timestamp() -> str:
    return datetime.now(UTC).isoformat()


class ConnectionState(StrEnum):
    """连接状态 -- CONNECTING → AUTHENTICATING → AUTHENTICATED → DISCONNECTED"""

    CONNECTING = "connecting"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"
    DISCONNECTED = "disconnected"


class RealtimeConnection:
    """单个实时连接（WebSocket 或 SSE）"""

    def __init__(self, queue_maxsize: int) -> None:
        self.connection_id = str(ULID())
        self.queue: asyncio.Queue[dict[str, Any] | None] = asyncio.Queue(
            maxsize=queue_maxsize
        )
        self.state = ConnectionState.CONNECTING
        self.actor: Actor | None = None
        self.rooms: set[str] = set()

    @property
    def user_id(self) -> str | None:
        return self.actor.user_id if self.actor else None

    @property
    def is_active(self) -> bool:
        return self.state == ConnectionState.AUTHENTICATED

    def wake(self) -> None:
        """投递 None 哨兵让发送循环立即退出；队列已满时丢弃最早的一帧"""
        if self.queue.full():
            self.queue.get_nowait()
        self.queue.put_nowait(None)


class RealtimeHub:
    """实时推送中心 -- 房间成员管理 + 非阻塞推送"""

    def __init__(
        self,
        token_verifier: TokenVerifier,
        user_store: UserStore,
        queue_maxsize: int = 100,
    ) -> None:
        self._verifier = token_verifier
        self._user_store = user_store
        self._queue_maxsize = queue_maxsize
        # room -> connections
        self._rooms: dict[str, set[RealtimeConnection]] = {}
        # user_id -> connections
        self._user_connections: dict[str, set[RealtimeConnection]] = {}
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def connection_count(self) -> int:
        return sum(len(conns) for conns in self._user_connections.values())

    def active_user_ids(self) -> list[str]:
        return sorted(self._user_connections)

    def is_online(self, user_id: str) -> bool:
        return bool(self._user_connections.get(user_id))

    def room_members(self, room: str) -> set[RealtimeConnection]:
        return set(self._rooms.get(room, ()))

    def open_connection(self) -> RealtimeConnection:
        """握手开始：创建处于 CONNECTING 状态的连接"""
        return RealtimeConnection(self._queue_maxsize)

    async def authenticate(
        self, connection: RealtimeConnection, token: str | None
    ) -> Actor:
        """校验握手 token 并加入房间

        Raises:
            AuthenticationRequired: token 缺失、无效，或用户不存在；连接置为 DISCONNECTED
        """
        connection.state = ConnectionState.AUTHENTICATING
        try:
            if not token:
                raise AuthenticationRequired("Authentication error: token missing")
            user_id = self._verifier.verify(token)
            user = await self._user_store.get_user(user_id)
            if user is None:
                raise AuthenticationRequired("Authentication error: user not found")
        except TaskHubError:
            connection.state = ConnectionState.DISCONNECTED
            raise

        actor = Actor.from_user(user)
        self.register(connection, actor)
        return actor

    def register(self, connection: RealtimeConnection, actor: Actor) -> None:
        """将已认证的连接加入 user_<id>（管理员再加入 admin_room）"""
        if self._closed:
            connection.state = ConnectionState.DISCONNECTED
            return
        connection.actor = actor
        connection.state = ConnectionState.AUTHENTICATED
        rooms = {user_room(actor.user_id)}
        if actor.is_admin:
            rooms.add(ADMIN_ROOM)
        for room in rooms:
            self._rooms.setdefault(room, set()).add(connection)
        connection.rooms = rooms
        self._user_connections.setdefault(actor.user_id, set()).add(connection)
        log.info(
            "realtime_connected",
            user_id=actor.user_id,
            connection_id=connection.connection_id,
            connection_count=self.connection_count,
        )

    def disconnect(self, connection: RealtimeConnection) -> None:
        """移出所有房间；无论断开原因如何都会调用"""
        was_active = connection.is_active
        connection.state = ConnectionState.DISCONNECTED
        for room in connection.rooms:
            members = self._rooms.get(room)
            if members is None:
                continue
            members.discard(connection)
            if not members:
                del self._rooms[room]
        connection.rooms = set()

        user_id = connection.user_id
        if user_id is not None:
            conns = self._user_connections.get(user_id)
            if conns is not None:
                conns.discard(connection)
                if not conns:
                    del self._user_connections[user_id]
        if was_active:
            log.info(
                "realtime_disconnected",
                user_id=user_id,
                connection_id=connection.connection_id,
                connection_count=self.connection_count,
            )

    def send(self, connection: RealtimeConnection, event: str, data: Any) -> bool:
        """向单个连接投递一帧；队列已满时移出该连接"""
        if self._closed or not connection.is_active:
            return False
        try:
            connection.queue.put_nowait({"event": event, "data": data})
        except asyncio.QueueFull:
            log.warning(
                "realtime_queue_overflow",
                user_id=connection.user_id,
                connection_id=connection.connection_id,
            )
            self.disconnect(connection)
            connection.wake()
            return False
        return True

    def _push_room(self, room: str, event: str, data: Any) -> int:
        if self._closed:
            return 0
        delivered = 0
        for connection in list(self._rooms.get(room, ())):
            if self.send(connection, event, data):
                delivered += 1
        return delivered

    def push_to_user(self, user_id: str, event: str, data: Any) -> int:
        """推送给用户的所有连接；离线时 no-op"""
        return self._push_room(user_room(user_id), event, data)

    def push_to_admins(self, event: str, data: Any) -> int:
        return self._push_room(ADMIN_ROOM, event, data)

    def broadcast_all(self, event: str, data: Any) -> int:
        """推送给所有已认证连接"""
        if self._closed:
            return 0
        delivered = 0
        for conns in list(self._user_connections.values()):
            for connection in list(conns):
                if self.send(connection, event, data):
                    delivered += 1
        return delivered

    def presence(self) -> dict[str, Any]:
        return {
            "activeUsers": self.active_user_ids(),
            "connectionCount": self.connection_count,
        }

    async def close(self) -> None:
        """关闭 Hub：唤醒所有连接的发送循环并清空房间"""
        self._closed = True
        connections = [
            connection
            for conns in self._user_connections.values()
            for connection in conns
        ]
        for connection in connections:
            connection.state = ConnectionState.DISCONNECTED
            connection.wake()
        self._rooms.clear()
        self._user_connections.clear()
        log.info("realtime_hub_closed", closed_connections=len(connections))
