"""TaskHub 异常体系

每个异常携带 HTTP 状态码与错误码，由 gateway 统一渲染为
{"error": {"code": ..., "message": ...}}。
"""

from typing import Any


class TaskHubError(Exception):
    """TaskHub 基础异常"""

    status_code: int = 500
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def to_body(self) -> dict[str, Any]:
        return {"error": {"code": self.code, "message": self.message}}


class ValidationFailure(TaskHubError):
    """输入缺失或格式错误"""

    status_code = 400
    code = "VALIDATION_FAILED"


class AuthenticationRequired(TaskHubError):
    """缺少或无效的凭证"""

    status_code = 401
    code = "AUTHENTICATION_REQUIRED"

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(message)


class AuthorizationDenied(TaskHubError):
    """身份有效但权限不足"""

    status_code = 403
    code = "FORBIDDEN"


class NotFoundError(TaskHubError):
    """引用的实体不存在"""

    status_code = 404
    code = "NOT_FOUND"


class ConflictError(TaskHubError):
    """重复任务 / 唯一约束冲突

    existing 携带冲突对象的摘要，便于调用方区分。
    """

    status_code = 409
    code = "CONFLICT"

    def __init__(
        self,
        message: str,
        code: str | None = None,
        existing: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code=code)
        self.existing = existing

    def to_body(self) -> dict[str, Any]:
        body = super().to_body()
        if self.existing is not None:
            body["error"]["existingTask"] = self.existing
        return body


class TokenError(AuthenticationRequired):
    """token 无法解析、签名不符或已过期"""
