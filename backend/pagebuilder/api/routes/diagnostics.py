"""Connectivity checks for the storage backends."""

import logging

from fastapi import APIRouter, Depends

from pagebuilder.api.deps import get_auth_context, get_store
from pagebuilder.core.auth import AuthContext
from pagebuilder.core.config import settings
from pagebuilder.core.errors import UpstreamFailure
from pagebuilder.db.database import get_database
from pagebuilder.services import tenant_paths
from pagebuilder.services.blob_store import BlobStore
from pagebuilder.services.kv_client import kv_manager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/diagnostics", tags=["diagnostics"])

SAMPLE_SIZE = 10


@router.get("/blob")
async def blob_diagnostics(
    auth: AuthContext = Depends(get_auth_context),
    store: BlobStore = Depends(get_store),
):
    """List a sample of the caller's own blobs."""
    prefix = tenant_paths.tenant_prefix(auth.tenant_id)
    blobs = await store.list(prefix, limit=SAMPLE_SIZE)
    return {
        "success": True,
        "mode": settings.blob_store_mode,
        "tenantId": auth.tenant_id,
        "sample": [
            {
                "pathname": tenant_paths.to_relative(auth.tenant_id, b.pathname),
                "size": b.size,
                "uploadedAt": b.uploaded_at,
            }
            for b in blobs
        ],
    }


@router.get("/database")
async def database_diagnostics(auth: AuthContext = Depends(get_auth_context)):
    db = await get_database()
    try:
        await db.fetch_val("SELECT 1")
    except Exception as e:
        raise UpstreamFailure(f"Database check failed: {e}") from e

    kv_status = "not_configured"
    if settings.effective_redis_url:
        try:
            kv_status = "connected" if await kv_manager.get_client() else "unavailable"
        except Exception as e:
            logger.warning("KV diagnostics failed: %s", e)
            kv_status = "unavailable"

    return {
        "success": True,
        "database": "connected",
        "kv": kv_status,
        "settings": settings.get_effective_settings(),
    }
