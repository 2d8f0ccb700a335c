"""Bearer token 签发与校验

token 格式: base64url(JSON claims) + "." + base64url(HMAC-SHA256 签名)。
claims 仅包含 sub(user_id)、iat、exp，不携带角色；角色以存储中的用户为准。

HTTP 认证与实时通道握手共用同一个 TokenVerifier。
"""

import base64
import hashlib
import hmac
import json
import time
from typing import Protocol

from .config import AuthConfig
from .exceptions import TokenError


class TokenVerifier(Protocol):
    """token 校验接口：成功返回 user_id，失败抛出 TokenError"""

    def verify(self, token: str) -> str: ...


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64decode(text: str) -> bytes:
    padding = "=" * (-len(text) % 4)
    return base64.urlsafe_b64decode(text + padding)


class TokenCodec:
    """HMAC-SHA256 签名的 token 编解码器"""

    def __init__(self, secret: str, ttl_s: int) -> None:
        self._secret = secret.encode("utf-8")
        self._ttl_s = ttl_s

    @classmethod
    def from_config(cls, config: AuthConfig) -> "TokenCodec":
        return cls(config.token_secret.get_secret_value(), config.token_ttl_s)

    def _sign(self, body: str) -> str:
        digest = hmac.new(self._secret, body.encode("ascii"), hashlib.sha256).digest()
        return _b64encode(digest)

    def issue(self, user_id: str, now: float | None = None) -> str:
        """为用户签发 token"""
        issued_at = int(now if now is not None else time.time())
        claims = {"sub": user_id, "iat": issued_at, "exp": issued_at + self._ttl_s}
        body = _b64encode(json.dumps(claims, separators=(",", ":")).encode("utf-8"))
        return f"{body}.{self._sign(body)}"

    def verify(self, token: str, now: float | None = None) -> str:
        """校验 token 并返回 user_id

        Raises:
            TokenError: 格式错误、签名不符或已过期
        """
        if not token or token.count(".") != 1:
            raise TokenError("Invalid token")
        body, signature = token.split(".")
        # 非 ASCII 字符、错误的 base64 或 JSON 一律视为无效 token
        try:
            expected = self._sign(body).encode("ascii")
            if not hmac.compare_digest(signature.encode("ascii"), expected):
                raise TokenError("Invalid token")
            claims = json.loads(_b64decode(body))
        except (UnicodeError, ValueError, TypeError) as e:
            raise TokenError("Invalid token") from e

        user_id = claims.get("sub") if isinstance(claims, dict) else None
        expires_at = claims.get("exp") if isinstance(claims, dict) else None
        if not isinstance(user_id, str) or not isinstance(expires_at, int):
            raise TokenError("Invalid token")

        current = now if now is not None else time.time()
        if current >= expires_at:
            raise TokenError("Token expired")
        return user_id
