"""Gateway trust checks and session tokens.

Every request reaches this service through an upstream gateway that has
already authenticated the user. The gateway marks the request with
``x-proxied-from`` and forwards the identity as ``x-tenant-id`` /
``x-user-id`` / ``x-user-email`` / ``x-user-role`` headers. Browser page
loads instead carry a signed session token in the ``pb-auth-token`` cookie.
"""

from __future__ import annotations

import hmac
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import List, Mapping, Optional

import jwt
from pydantic import BaseModel, Field

from pagebuilder.core.config import Settings
from pagebuilder.core.errors import Unauthorized

logger = logging.getLogger(__name__)

# Cookie and JWT configuration
COOKIE_NAME = "pb-auth-token"
JWT_ALGORITHM = "HS256"
SESSION_MAX_AGE = 60 * 60 * 24  # 24 hours

PROXIED_FROM_HEADER = "x-proxied-from"
PROXY_SECRET_HEADER = "x-proxy-secret"
TENANT_HEADER = "x-tenant-id"
USER_ID_HEADER = "x-user-id"
USER_EMAIL_HEADER = "x-user-email"
USER_ROLE_HEADER = "x-user-role"
AUTH_TOKEN_HEADER = "x-auth-token"


@dataclass(frozen=True)
class AuthContext:
    tenant_id: str
    user_id: str
    user_email: Optional[str]
    user_role: Optional[str]
    is_proxied: bool

    @property
    def is_admin(self) -> bool:
        return (self.user_role or "").lower() in ("admin", "owner")


class SessionPayload(BaseModel):
    tenant_id: str
    user_id: str
    email: str = ""
    role: str = "user"
    permissions: List[str] = Field(default_factory=list)


def require_proxy_auth(headers: Mapping[str, str], settings: Settings) -> AuthContext:
    """
    Validate that the request came through the trusted gateway and extract
    the identity it forwarded.

    Raises:
        Unauthorized: when the trust marker, proxy secret or identity headers
            are missing or wrong. There is no fallback identity, not even in
            development.
    """
    is_proxied = headers.get(PROXIED_FROM_HEADER) == settings.trusted_proxy_name

    if not is_proxied and settings.is_production:
        raise Unauthorized(
            "Direct access not allowed. This service must be accessed through the gateway."
        )

    if settings.proxy_secret:
        supplied = headers.get(PROXY_SECRET_HEADER) or ""
        if not hmac.compare_digest(supplied.encode(), settings.proxy_secret.encode()):
            logger.warning("Rejected request with invalid proxy secret")
            raise Unauthorized("Invalid proxy authentication")

    tenant_id = (headers.get(TENANT_HEADER) or "").strip()
    user_id = (headers.get(USER_ID_HEADER) or "").strip()

    if not tenant_id or not user_id:
        if is_proxied or settings.is_production:
            raise Unauthorized("Missing required authentication headers")
        raise Unauthorized("Authentication required. Please access through the gateway.")

    return AuthContext(
        tenant_id=tenant_id,
        user_id=user_id,
        user_email=headers.get(USER_EMAIL_HEADER),
        user_role=headers.get(USER_ROLE_HEADER),
        is_proxied=is_proxied,
    )


def create_session_token(payload: SessionPayload, secret_key: str) -> str:
    """Sign a session token carrying the gateway identity."""
    now = datetime.now(timezone.utc)
    claims = payload.model_dump()
    claims["iat"] = int(now.timestamp())
    claims["exp"] = int((now + timedelta(seconds=SESSION_MAX_AGE)).timestamp())
    return jwt.encode(claims, secret_key, algorithm=JWT_ALGORITHM)


def verify_session_token(token: str, secret_key: str) -> SessionPayload | None:
    """Verify and decode a session token; ``None`` when it cannot be trusted."""
    if not token or not secret_key:
        return None
    try:
        claims = jwt.decode(token, secret_key, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        logger.debug("Session token expired")
        return None
    except jwt.InvalidTokenError as e:
        logger.debug("Invalid session token: %s", e)
        return None

    try:
        return SessionPayload.model_validate(claims)
    except ValueError as e:
        logger.debug("Session token payload rejected: %s", e)
        return None


def session_cookie_kwargs(settings: Settings) -> dict:
    """Keyword arguments for ``Response.set_cookie``."""
    return {
        "key": COOKIE_NAME,
        "httponly": True,
        "secure": settings.is_production,
        "samesite": "lax",
        "max_age": SESSION_MAX_AGE,
        "path": "/",
    }
