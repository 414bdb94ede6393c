"""Identity and browser session routes."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import RedirectResponse

from pagebuilder.api.deps import get_auth_context
from pagebuilder.core.auth import (
    AUTH_TOKEN_HEADER,
    AuthContext,
    session_cookie_kwargs,
    verify_session_token,
)
from pagebuilder.core.config import settings

logger = logging.getLogger(__name__)

# Mounted under /api
router = APIRouter(prefix="/auth", tags=["auth"])

# Mounted at the root; the gateway redirects browsers here after login
session_router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/me")
async def get_current_user(auth: AuthContext = Depends(get_auth_context)):
    """Identity forwarded by the gateway for this request."""
    return {
        "tenantId": auth.tenant_id,
        "userId": auth.user_id,
        "email": auth.user_email,
        "role": auth.user_role or "user",
        "isAdmin": auth.is_admin,
    }


@session_router.get("/session")
async def establish_session(
    request: Request,
    token: Optional[str] = Query(None),
    source: Optional[str] = Query(None, alias="from"),
):
    """
    Store a gateway-issued token in the session cookie, then go home.

    The gateway passes the token either as ``?token=...&from=gateway`` or in
    the ``x-auth-token`` header.
    """
    header_token = request.headers.get(AUTH_TOKEN_HEADER)
    if header_token:
        token, source = header_token, "gateway"

    if not token or source != "gateway":
        return RedirectResponse(url=settings.gateway_url, status_code=302)

    payload = verify_session_token(token, settings.jwt_secret)
    if payload is None:
        logger.warning("Rejected session token from gateway redirect")
        return RedirectResponse(url=settings.gateway_url, status_code=302)

    response = RedirectResponse(url="/", status_code=302)
    response.set_cookie(value=token, **session_cookie_kwargs(settings))
    logger.info("Session established for tenant %s", payload.tenant_id)
    return response
