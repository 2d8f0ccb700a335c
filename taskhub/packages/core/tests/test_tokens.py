"""Token 编解码单元测试"""

import pytest
from taskhub.core.config import AuthConfig, load_auth_config
from taskhub.core.exceptions import AuthenticationRequired, TokenError
from taskhub.core.tokens import TokenCodec


class TestTokenCodec:
    def test_issue_then_verify(self, token_codec):
        token = token_codec.issue("01JUSER00000000000000000001")
        assert token_codec.verify(token) == "01JUSER00000000000000000001"

    def test_expired_token_rejected(self):
        codec = TokenCodec("secret", ttl_s=60)
        token = codec.issue("u1", now=1_000)
        assert codec.verify(token, now=1_059) == "u1"
        with pytest.raises(TokenError, match="expired"):
            codec.verify(token, now=1_060)

    def test_signature_from_other_secret_rejected(self):
        token = TokenCodec("one", ttl_s=60).issue("u1")
        with pytest.raises(TokenError):
            TokenCodec("two", ttl_s=60).verify(token)

    def test_tampered_body_rejected(self, token_codec):
        token = token_codec.issue("u1")
        body, signature = token.split(".")
        forged = TokenCodec("x", ttl_s=60).issue("admin").split(".")[0]
        with pytest.raises(TokenError):
            token_codec.verify(f"{forged}.{signature}")
        assert token_codec.verify(f"{body}.{signature}") == "u1"

    @pytest.mark.parametrize(
        "token", ["", "garbage", "a.b.c", "....", "abc.", "é.abc", "abc.é", "!!.??"]
    )
    def test_malformed_rejected(self, token_codec, token):
        with pytest.raises(TokenError):
            token_codec.verify(token)

    def test_token_error_is_authentication_error(self):
        assert issubclass(TokenError, AuthenticationRequired)
        assert TokenError("x").status_code == 401


class TestAuthConfig:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("TASKHUB_TOKEN_SECRET", raising=False)
        monkeypatch.delenv("TASKHUB_TOKEN_TTL_S", raising=False)
        config = load_auth_config()
        assert config.token_ttl_s == 7 * 24 * 3600
        assert config.token_secret.get_secret_value() == "taskhub-dev-secret"

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("TASKHUB_TOKEN_SECRET", "s3cret")
        monkeypatch.setenv("TASKHUB_TOKEN_TTL_S", "120")
        config = load_auth_config()
        assert config.token_secret.get_secret_value() == "s3cret"
        assert config.token_ttl_s == 120
        assert "s3cret" not in repr(config)

    def test_codec_from_config(self):
        codec = TokenCodec.from_config(AuthConfig(token_ttl_s=60))
        assert codec.verify(codec.issue("u9")) == "u9"
