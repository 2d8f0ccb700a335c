"""structlog 配置

TASKHUB_LOG_FORMAT=json 时输出 JSON，否则输出控制台格式。
标准库 logging（uvicorn、aiosqlite）经 ProcessorFormatter 走同一条处理链。
uvicorn.access 默认静默：请求日志由 LoggingMiddleware 统一输出。
"""

import logging
import os

import structlog
from fastapi import FastAPI

_DEFAULT_LEVEL = logging.INFO

_QUIET_LOGGERS = ("uvicorn.access",)


def _resolve_level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else _DEFAULT_LEVEL


def _build_renderer(log_format: str) -> structlog.types.Processor:
    if log_format == "json":
        return structlog.processors.JSONRenderer(ensure_ascii=False)
    return structlog.dev.ConsoleRenderer()


def setup_logging() -> None:
    """初始化 structlog 与标准库 logging

    环境变量:
        TASKHUB_LOG_FORMAT: "json" | "dev"（默认）
        TASKHUB_LOG_LEVEL: 日志级别，默认 INFO；无法识别时回退 INFO
    """
    log_format = os.environ.get("TASKHUB_LOG_FORMAT", "dev").lower()
    level = _resolve_level(os.environ.get("TASKHUB_LOG_LEVEL", "INFO"))

    pre_chain: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=_build_renderer(log_format),
            foreign_pre_chain=pre_chain,
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def setup_logfire(app: FastAPI) -> bool:
    """按 LOGFIRE_SEND_TO_LOGFIRE 开启 Logfire，返回是否已启用

    需要安装 logfire extra 并配置 LOGFIRE_TOKEN；失败时只保留本地日志。
    """
    if os.environ.get("LOGFIRE_SEND_TO_LOGFIRE", "false").lower() != "true":
        return False
    try:
        import logfire

        logfire.configure()
        logfire.instrument_fastapi(app)
    except Exception as e:
        structlog.get_logger().warning(
            "logfire_init_failed",
            error_type=type(e).__name__,
            error=str(e),
        )
        return False
    return True
