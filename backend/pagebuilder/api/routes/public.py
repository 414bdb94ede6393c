"""Serves published pages. Registered last so it never shadows the API."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse

from pagebuilder.api.deps import get_session, get_store
from pagebuilder.core.auth import SessionPayload
from pagebuilder.core.errors import NotFound
from pagebuilder.services.blob_store import BlobStore
from pagebuilder.services.publish_gate import render_page, resolve_public

logger = logging.getLogger(__name__)

router = APIRouter(tags=["public"])

NOT_FOUND_HTML = (
    "<!DOCTYPE html>\n<html>\n<head><title>Not found</title></head>\n"
    "<body><h1>404</h1><p>This page could not be found.</p></body>\n</html>"
)


@router.get("/{slug:path}", response_class=HTMLResponse)
async def serve_page(
    slug: str,
    session: Optional[SessionPayload] = Depends(get_session),
    store: BlobStore = Depends(get_store),
):
    # Drafts, missing pages and unknown visitors get the same response
    if session is None or not slug.strip("/"):
        return HTMLResponse(NOT_FOUND_HTML, status_code=404)

    try:
        page = await resolve_public(store, session.tenant_id, slug)
    except NotFound:
        return HTMLResponse(NOT_FOUND_HTML, status_code=404)

    return HTMLResponse(render_page(page))
