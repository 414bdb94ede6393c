"""Tests for gateway trust checks and session tokens."""

import jwt
import pytest

from pagebuilder.core.auth import (
    JWT_ALGORITHM,
    SessionPayload,
    create_session_token,
    require_proxy_auth,
    verify_session_token,
)
from pagebuilder.core.config import Settings
from pagebuilder.core.errors import Unauthorized

SECRET = "unit-test-secret-0123456789abcdef"


def make_settings(**overrides) -> Settings:
    values = {"environment": "development", "proxy_secret": "", "jwt_secret": SECRET}
    values.update(overrides)
    return Settings(**values)


def identity(**extra) -> dict:
    headers = {"x-tenant-id": "acme", "x-user-id": "u1", "x-user-role": "admin"}
    headers.update(extra)
    return headers


class TestRequireProxyAuth:
    def test_development_accepts_identity_headers(self):
        ctx = require_proxy_auth(identity(), make_settings())

        assert ctx.tenant_id == "acme"
        assert ctx.user_id == "u1"
        assert ctx.is_admin is True
        assert ctx.is_proxied is False

    def test_production_requires_gateway_marker(self):
        with pytest.raises(Unauthorized):
            require_proxy_auth(identity(), make_settings(environment="production"))

    def test_production_with_marker(self):
        headers = identity(**{"x-proxied-from": "numgate"})

        ctx = require_proxy_auth(headers, make_settings(environment="production"))

        assert ctx.is_proxied is True

    def test_proxy_secret_checked(self):
        settings = make_settings(proxy_secret="s3cret")

        with pytest.raises(Unauthorized):
            require_proxy_auth(identity(), settings)
        with pytest.raises(Unauthorized):
            require_proxy_auth(identity(**{"x-proxy-secret": "wrong"}), settings)
        ctx = require_proxy_auth(identity(**{"x-proxy-secret": "s3cret"}), settings)
        assert ctx.tenant_id == "acme"

    @pytest.mark.parametrize("missing", ["x-tenant-id", "x-user-id"])
    def test_identity_required_even_in_development(self, missing):
        headers = identity()
        del headers[missing]

        with pytest.raises(Unauthorized):
            require_proxy_auth(headers, make_settings())

    @pytest.mark.parametrize("role,expected", [("owner", True), ("ADMIN", True), ("member", False), (None, False)])
    def test_admin_roles(self, role, expected):
        headers = identity()
        headers.pop("x-user-role")
        if role:
            headers["x-user-role"] = role

        assert require_proxy_auth(headers, make_settings()).is_admin is expected


class TestSessionTokens:
    def test_round_trip(self):
        payload = SessionPayload(tenant_id="acme", user_id="u1", email="a@b.c", role="owner")

        token = create_session_token(payload, SECRET)
        verified = verify_session_token(token, SECRET)

        assert verified.tenant_id == "acme"
        assert verified.role == "owner"

    def test_wrong_secret_rejected(self):
        token = create_session_token(SessionPayload(tenant_id="acme", user_id="u1"), SECRET)

        assert verify_session_token(token, "another-secret-0123456789abcdef") is None

    def test_expired_token_rejected(self):
        token = jwt.encode(
            {"tenant_id": "acme", "user_id": "u1", "exp": 1}, SECRET, algorithm=JWT_ALGORITHM
        )

        assert verify_session_token(token, SECRET) is None

    def test_missing_claims_rejected(self):
        token = jwt.encode({"user_id": "u1"}, SECRET, algorithm=JWT_ALGORITHM)

        assert verify_session_token(token, SECRET) is None

    def test_garbage_and_empty_rejected(self):
        assert verify_session_token("not-a-token", SECRET) is None
        assert verify_session_token("", SECRET) is None
        assert verify_session_token("x", "") is None
