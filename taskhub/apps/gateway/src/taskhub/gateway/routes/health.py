"""健康检查路由

GET /health: Liveness 检查，永远返回 200。
GET /ready:  Readiness 检查，包含 SQLite 连通性、WAL 模式、磁盘空间、实时 Hub 状态。
"""

import shutil
from pathlib import Path

import aiosqlite
import structlog
from fastapi import APIRouter, Request
from starlette.responses import JSONResponse
from taskhub.core.config import get_db_path
from taskhub.core.store import verify_wal_mode

log = structlog.get_logger()

router = APIRouter()


@router.get("/health")
async def health():
    """Liveness 检查 -- 永远返回 200"""
    return {"status": "ok"}


@router.get("/ready")
async def ready(request: Request):
    """Readiness 检查 -- 验证核心依赖可用性

    检查项：
    1. sqlite: 数据库连通性
    2. wal_mode: journal_mode 是否为 WAL
    3. disk_space_mb: 数据库所在磁盘剩余空间
    4. realtime: 实时 Hub 是否可用及当前连接数
    """
    checks: dict = {}
    all_ok = True
    store_group = request.app.state.store_group

    try:
        cursor = await store_group.conn.execute("SELECT 1")
        await cursor.fetchone()
        checks["sqlite"] = "ok"
        checks["wal_mode"] = "ok" if await verify_wal_mode(store_group.conn) else "off"
    except aiosqlite.Error as e:
        log.warning("readiness_sqlite_failed", error=str(e))
        checks["sqlite"] = f"error: {e}"
        all_ok = False

    try:
        db_dir = Path(get_db_path()).resolve().parent
        disk_usage = shutil.disk_usage(db_dir if db_dir.exists() else "/")
        checks["disk_space_mb"] = disk_usage.free // (1024 * 1024)
    except OSError:
        checks["disk_space_mb"] = 0
        all_ok = False

    hub = request.app.state.realtime_hub
    if hub.closed:
        checks["realtime"] = "closed"
        all_ok = False
    else:
        checks["realtime"] = {"connections": hub.connection_count}

    status_code = 200 if all_ok else 503
    return JSONResponse(
        status_code=status_code,
        content={
            "status": "ready" if all_ok else "not_ready",
            "checks": checks,
        },
    )
