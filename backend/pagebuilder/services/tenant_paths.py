"""Confine user-supplied paths to a tenant's key namespace.

Every storage key that belongs to a tenant starts with ``"{tenant_id}/"``.
Paths from clients (and from the AI assistant) may be relative to the tenant
root or already carry the prefix; both resolve to the same absolute key.
Traversal segments are rejected before the prefix check, so a key can never
escape into another tenant's namespace.
"""

from urllib.parse import unquote

from pagebuilder.core.errors import AccessDenied, Unauthorized

FORBIDDEN_SEGMENTS = {".", ".."}


def tenant_prefix(tenant_id: str) -> str:
    if not tenant_id or "/" in tenant_id or tenant_id in FORBIDDEN_SEGMENTS:
        raise Unauthorized("No tenant context found")
    return f"{tenant_id}/"


def normalize(path: str) -> str:
    """
    Canonicalize a relative path.

    Drops empty segments (leading, trailing and doubled slashes) and rejects
    backslashes, control characters and ``.`` / ``..`` segments, whether they
    appear literally or percent-encoded. The returned path keeps its original
    spelling, so a name that really contains ``%25`` stays addressable.
    """
    raw = path or ""
    decoded = unquote(raw)
    for candidate in (raw, decoded):
        if "\\" in candidate or any(ord(ch) < 32 for ch in candidate):
            raise AccessDenied()
        if any(s in FORBIDDEN_SEGMENTS for s in candidate.split("/")):
            raise AccessDenied()

    return "/".join(s for s in raw.split("/") if s)


def resolve(tenant_id: str, path: str) -> str:
    """Map a relative or already-prefixed path to an absolute key."""
    prefix = tenant_prefix(tenant_id)
    relative = normalize(path)

    # A leading tenant id is read as the namespace itself, so a top-level
    # folder named after the tenant needs the prefix written twice.
    if relative.startswith(prefix) or relative == tenant_id:
        key = relative if relative != tenant_id else prefix
    else:
        key = prefix + relative

    if not key.startswith(prefix):
        raise AccessDenied()
    return key


def resolve_folder(tenant_id: str, path: str) -> str:
    """Resolve a folder path to a listing prefix ending in ``/``."""
    key = resolve(tenant_id, path)
    return key if key.endswith("/") else key + "/"


def to_relative(tenant_id: str, key: str) -> str:
    """Strip the tenant namespace from an absolute key."""
    prefix = tenant_prefix(tenant_id)
    if not key.startswith(prefix):
        raise AccessDenied()
    return key[len(prefix):]


def is_within(tenant_id: str, key: str) -> bool:
    return key.startswith(tenant_prefix(tenant_id))


def join(*parts: str) -> str:
    """Join relative path parts, ignoring empty ones."""
    return "/".join(p.strip("/") for p in parts if p and p.strip("/"))


def parent_of(path: str) -> str:
    return path.rsplit("/", 1)[0] if "/" in path else ""


def basename(path: str) -> str:
    return path.rstrip("/").rsplit("/", 1)[-1]
