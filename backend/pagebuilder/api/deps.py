"""Dependency injection for API routes."""
from typing import Optional

from fastapi import Depends, Request

from pagebuilder.core.auth import (
    COOKIE_NAME,
    TENANT_HEADER,
    AuthContext,
    SessionPayload,
    require_proxy_auth,
    verify_session_token,
)
from pagebuilder.core.config import settings
from pagebuilder.core.errors import Forbidden, Unauthorized
from pagebuilder.services.blob_store import BlobStore, get_blob_store
from pagebuilder.services.file_tree import VirtualFileTree


def get_store() -> BlobStore:
    return get_blob_store()


def get_file_tree(store: BlobStore = Depends(get_store)) -> VirtualFileTree:
    return VirtualFileTree(store)


def get_tenant_id(request: Request) -> str:
    """
    Tenant for the file routes, taken from ``x-tenant-id`` only.

    Runs before any storage access so a request without a tenant never
    touches the blob store. The full gateway check (user id, proxy marker
    and secret) follows in every environment.
    """
    tenant_id = (request.headers.get(TENANT_HEADER) or "").strip()
    if not tenant_id:
        raise Unauthorized("No tenant context found")
    require_proxy_auth(request.headers, settings)
    return tenant_id


def get_auth_context(request: Request) -> AuthContext:
    """Identity forwarded by the trusted gateway; 401 otherwise."""
    return require_proxy_auth(request.headers, settings)


def require_admin(auth: AuthContext = Depends(get_auth_context)) -> AuthContext:
    if not auth.is_admin:
        raise Forbidden()
    return auth


def get_session(request: Request) -> Optional[SessionPayload]:
    """Verified session from the cookie, or None."""
    token = request.cookies.get(COOKIE_NAME)
    if not token:
        return None
    return verify_session_token(token, settings.jwt_secret)
