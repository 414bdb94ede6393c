"""Read-time visibility rules for anonymously served pages.

Anything under an ``unpublished`` folder is a draft and is never served,
whether or not it exists. Missing pages, blocked drafts and failed content
fetches all look the same to the visitor: not found.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING
from urllib.parse import unquote
import html
import logging
import re

from pagebuilder.core.errors import AccessDenied, NotFound, UpstreamFailure
from pagebuilder.services import tenant_paths

if TYPE_CHECKING:
    from pagebuilder.services.blob_store import BlobStore

logger = logging.getLogger(__name__)

UNPUBLISHED_SEGMENT = "unpublished"
HTML_SUFFIX = ".html"


@dataclass
class PublishedPage:
    path: str
    content: str
    title: str


def is_blocked(path: str) -> bool:
    """True when any path segment is exactly ``unpublished``."""
    segments = [s for s in unquote(path or "").split("/") if s]
    return UNPUBLISHED_SEGMENT in segments


def page_title(path: str) -> str:
    """``blog/first-post.html`` -> ``blog - first-post``."""
    return re.sub(r"\.html?$", "", path.strip("/"), flags=re.IGNORECASE).replace("/", " - ")


async def resolve_public(store: "BlobStore", tenant_id: str, requested_path: str) -> PublishedPage:
    """
    Find and fetch the published page for a request path.

    The draft check runs before any storage lookup. The exact key is tried
    first, then the same key with ``.html`` appended.

    Raises:
        NotFound: blocked, absent, outside the tenant, or the fetch failed.
    """
    if is_blocked(requested_path):
        raise NotFound()

    try:
        key = tenant_paths.resolve(tenant_id, requested_path)
    except AccessDenied:
        raise NotFound()
    if key.endswith("/"):
        raise NotFound()

    for candidate in (key, key + HTML_SUFFIX):
        blobs = await store.list(candidate, limit=1)
        if not blobs or blobs[0].pathname != candidate:
            continue

        try:
            content = await store.fetch(blobs[0].url)
        except UpstreamFailure as e:
            # Logged for operators; visitors only ever see a 404
            logger.warning("Published page fetch failed for %s: %s", candidate, e)
            raise NotFound()

        relative = tenant_paths.to_relative(tenant_id, candidate)
        return PublishedPage(path=relative, content=content, title=page_title(requested_path))

    raise NotFound()


def render_page(page: PublishedPage) -> str:
    """Wrap the stored markup with the derived title. Markup is not sanitized."""
    return (
        "<!DOCTYPE html>\n"
        "<html>\n<head>\n"
        '<meta charset="utf-8">\n'
        f"<title>{html.escape(page.title)}</title>\n"
        "</head>\n<body>\n"
        f"<div>{page.content}</div>\n"
        "</body>\n</html>"
    )
