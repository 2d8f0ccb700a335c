"""异常处理器 -- 统一错误响应格式 {"error": {"code": ..., "message": ...}}

TaskHubError 子类按自身 status_code / code 渲染；
请求体/参数校验失败映射为 400 VALIDATION_FAILED；
存储层异常只记录日志，对外返回 500 INTERNAL_ERROR。
"""

import aiosqlite
import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.responses import JSONResponse
from taskhub.core.exceptions import TaskHubError

log = structlog.get_logger()


def _error_response(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": {"code": code, "message": message}},
    )


async def handle_taskhub_error(request: Request, exc: TaskHubError) -> JSONResponse:
    if exc.status_code >= 500:
        log.error("request_failed", code=exc.code, error=exc.message)
    else:
        log.info("request_rejected", code=exc.code, status_code=exc.status_code)
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


async def handle_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    details = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        details.append(f"{location}: {error.get('msg')}" if location else error.get("msg"))
    message = "; ".join(details) or "Invalid request"
    return _error_response(400, "VALIDATION_FAILED", message)


async def handle_storage_error(request: Request, exc: aiosqlite.Error) -> JSONResponse:
    log.error(
        "storage_error",
        error_type=type(exc).__name__,
        error=str(exc),
    )
    return _error_response(500, "INTERNAL_ERROR", "Internal server error")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(TaskHubError, handle_taskhub_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(aiosqlite.Error, handle_storage_error)
