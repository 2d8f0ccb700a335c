"""配置常量模块 -- 可通过环境变量覆盖

包含数据库路径、实时推送参数、分页默认值，以及 token 签发配置。
"""

import os
from pathlib import Path

import structlog
from pydantic import BaseModel, Field, SecretStr

log = structlog.get_logger()


def _get_base_dir() -> Path:
    """获取项目 data 基础目录"""
    return Path(os.environ.get("TASKHUB_DATA_DIR", "data"))


def get_db_path() -> str:
    """获取 SQLite 数据库路径"""
    return os.environ.get(
        "TASKHUB_DB_PATH",
        str(_get_base_dir() / "sqlite" / "taskhub.db"),
    )


def _int_from_env(name: str, default: int) -> int:
    """读取整数环境变量，非法值记录告警后回退默认值"""
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        log.warning("invalid_int_config", env_var=name, value=raw, fallback=default)
        return default


# 实时推送防抖窗口（毫秒）
DEBOUNCE_WINDOW_MS: int = _int_from_env("TASKHUB_DEBOUNCE_MS", 50)

# SSE 心跳间隔（秒）
SSE_HEARTBEAT_INTERVAL: int = _int_from_env("TASKHUB_SSE_HEARTBEAT_INTERVAL", 15)

# 每个实时连接的发送队列上限，溢出的连接视为失效
REALTIME_QUEUE_MAXSIZE: int = _int_from_env("TASKHUB_REALTIME_QUEUE_MAXSIZE", 100)

# 列表默认值
TASK_PAGE_SIZE: int = 10
TASK_PAGE_SIZE_MAX: int = 100
RECENT_TASKS_LIMIT: int = 5
DASHBOARD_RECENT_LIMIT: int = 5
NOTIFICATION_LIST_LIMIT: int = 20

# 任务标题最大长度
TASK_TITLE_MAX_LENGTH: int = 100


class AuthConfig(BaseModel):
    """Token 签发/校验配置 -- 从环境变量加载

    环境变量:
        TASKHUB_TOKEN_SECRET: HMAC 签名密钥
        TASKHUB_TOKEN_TTL_S: token 有效期（秒，默认 7 天）
    """

    token_secret: SecretStr = Field(
        default=SecretStr("taskhub-dev-secret"),
        description="token 签名密钥",
    )
    token_ttl_s: int = Field(
        default=7 * 24 * 3600,
        ge=60,
        description="token 有效期（秒）",
    )


def load_auth_config() -> AuthConfig:
    """从环境变量加载 AuthConfig"""
    kwargs: dict = {}

    if val := os.environ.get("TASKHUB_TOKEN_SECRET"):
        kwargs["token_secret"] = SecretStr(val)
    else:
        log.warning("token_secret_not_configured", env_var="TASKHUB_TOKEN_SECRET")

    if os.environ.get("TASKHUB_TOKEN_TTL_S"):
        kwargs["token_ttl_s"] = _int_from_env("TASKHUB_TOKEN_TTL_S", 7 * 24 * 3600)

    return AuthConfig(**kwargs)
