"""Tenant-scoped virtual file tree over the flat blob store.

Folders are never stored. They are derived from the common prefixes of blob
keys each time a listing is requested, so nothing here caches or persists
tree state. Mutations (rename, move, publish, duplicate) are expressed as
blob copies and deletes.
"""

from datetime import datetime
from typing import Dict, Iterable, List, Literal, Optional, Tuple
import logging
import re

from pydantic import BaseModel, ConfigDict, Field

from pagebuilder.core.errors import InvalidArguments, InvalidName, NotFound, UpstreamFailure
from pagebuilder.services import page_templates
from pagebuilder.services import tenant_paths
from pagebuilder.services.blob_store import BlobRecord, BlobStore
from pagebuilder.services.publish_gate import is_blocked

logger = logging.getLogger(__name__)

NodeType = Literal["file", "folder"]


class FileNode(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    type: NodeType
    path: str
    url: Optional[str] = None
    size: Optional[int] = None
    uploaded_at: Optional[datetime] = Field(default=None, alias="uploadedAt")
    children: Optional[List["FileNode"]] = None
    is_published: Optional[bool] = Field(default=None, alias="isPublished")
    public_url: Optional[str] = Field(default=None, alias="publicUrl")

    def to_dict(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


FileNode.model_rebuild()


def file_node(relative_path: str, blob: BlobRecord) -> FileNode:
    published = not is_blocked(relative_path)
    return FileNode(
        name=tenant_paths.basename(relative_path),
        type="file",
        path=relative_path,
        url=blob.url,
        size=blob.size,
        uploaded_at=blob.uploaded_at,
        is_published=published,
        public_url=f"/{relative_path}" if published else None,
    )


def build_tree(tenant_id: str, blobs: Iterable[BlobRecord]) -> FileNode:
    """
    Build the folder hierarchy for one tenant from flat blob keys.

    Keys outside the tenant namespace are ignored, as are hidden files (name
    starting with ``.``). Folder nodes are kept in an index by path; each
    key adds itself under the folder for its parent path, creating missing
    folders along the way.

    Returns:
        Synthetic root folder with path ``""``.
    """
    prefix = tenant_paths.tenant_prefix(tenant_id)
    root = FileNode(name="root", type="folder", path="", children=[])
    folders: Dict[str, FileNode] = {"": root}

    for blob in blobs:
        if not blob.pathname.startswith(prefix):
            continue
        relative = blob.pathname[len(prefix):]
        parts = [p for p in relative.split("/") if p]
        if not parts or parts[-1].startswith("."):
            continue

        parent = root
        current = ""
        for part in parts[:-1]:
            current = tenant_paths.join(current, part)
            folder = folders.get(current)
            if folder is None:
                folder = FileNode(name=part, type="folder", path=current, children=[])
                folders[current] = folder
                parent.children.append(folder)
            parent = folder

        parent.children.append(file_node("/".join(parts), blob))

    for folder in folders.values():
        folder.children.sort(key=lambda n: (n.type != "folder", n.name.lower()))
    return root


def find_node(root: FileNode, path: str) -> Optional[FileNode]:
    node = root
    for part in [p for p in path.split("/") if p]:
        match = None
        for child in node.children or []:
            if child.type == "folder" and child.name == part:
                match = child
                break
        if match is None:
            return None
        node = match
    return node


def validate_name(name: str) -> str:
    """A single path segment usable as a file or folder name."""
    cleaned = (name or "").strip()
    if (
        not cleaned
        or "/" in cleaned
        or "\\" in cleaned
        or cleaned in tenant_paths.FORBIDDEN_SEGMENTS
    ):
        raise InvalidName()
    return cleaned


def duplicate_name(name: str, counter: int, is_file: bool) -> str:
    """``page.html`` -> ``page copy.html``, ``page copy 2.html``, ..."""
    base, extension = name, ""
    dot = name.rfind(".")
    if is_file and dot > 0:
        base, extension = name[:dot], name[dot:]
    base = re.sub(r" copy( \d+)?$", "", base)
    suffix = " copy" if counter == 1 else f" copy {counter}"
    return f"{base}{suffix}{extension}"


class VirtualFileTree:
    """File operations for one store, always scoped to a tenant."""

    def __init__(self, store: BlobStore):
        self.store = store

    # ── Lookups ───────────────────────────────────────────────────────

    async def _find_blob(self, key: str) -> Optional[BlobRecord]:
        blobs = await self.store.list(key, limit=1)
        if blobs and blobs[0].pathname == key:
            return blobs[0]
        return None

    async def _folder_blobs(self, folder_key: str) -> List[BlobRecord]:
        return await self.store.list(folder_key.rstrip("/") + "/")

    def _require_not_root(self, tenant_id: str, key: str, action: str) -> None:
        if key == tenant_paths.tenant_prefix(tenant_id):
            raise InvalidArguments(f"Cannot {action} the root folder")

    async def exists(self, tenant_id: str, path: str) -> bool:
        key = tenant_paths.resolve(tenant_id, path)
        return await self._find_blob(key) is not None

    async def tree(self, tenant_id: str) -> Tuple[FileNode, int]:
        """Full tree for the tenant and the number of blobs behind it."""
        blobs = await self.store.list(tenant_paths.tenant_prefix(tenant_id))
        return build_tree(tenant_id, blobs), len(blobs)

    async def list(
        self, tenant_id: str, path_prefix: str = "", limit: Optional[int] = None
    ) -> List[FileNode]:
        """Immediate children of a folder, or the file itself for a leaf path."""
        key = tenant_paths.resolve(tenant_id, path_prefix)
        relative = tenant_paths.to_relative(tenant_id, key)

        if relative:
            blob = await self._find_blob(key)
            if blob is not None:
                return [file_node(relative, blob)]

        folder_key = tenant_paths.resolve_folder(tenant_id, path_prefix)
        blobs = await self.store.list(folder_key, limit=limit)
        node = find_node(build_tree(tenant_id, blobs), relative)
        return list(node.children) if node else []

    async def read(self, tenant_id: str, path: str) -> Tuple[str, BlobRecord]:
        key = tenant_paths.resolve(tenant_id, path)
        blob = await self._find_blob(key)
        if blob is None:
            raise NotFound("File not found")
        return await self.store.fetch(blob.url), blob

    async def read_folder_notes(self, tenant_id: str, folder: str) -> dict:
        path = folder
        if not path.rstrip("/").endswith(page_templates.FOLDER_NOTES_NAME):
            path = tenant_paths.join(folder, page_templates.FOLDER_NOTES_NAME)
        key = tenant_paths.resolve(tenant_id, path)
        blob = await self._find_blob(key)
        if blob is None:
            return {"content": "", "exists": False}
        content = await self.store.fetch(blob.url)
        return {"content": content, "exists": True, "url": blob.url}

    # ── Mutations ─────────────────────────────────────────────────────

    async def save(
        self, tenant_id: str, path: str, content: str, content_type: str = "text/html"
    ) -> BlobRecord:
        key = tenant_paths.resolve(tenant_id, path)
        self._require_not_root(tenant_id, key, "overwrite")
        blob = await self.store.put(key, content, content_type)
        logger.info("Saved %s (%d chars)", key, len(content))
        return blob

    async def delete(self, tenant_id: str, path: str, type: NodeType = "file") -> int:
        key = tenant_paths.resolve(tenant_id, path)
        self._require_not_root(tenant_id, key, "delete")

        if type == "folder":
            # Trailing slash keeps sibling folders with a similar name intact
            blobs = await self._folder_blobs(key)
        else:
            blob = await self._find_blob(key)
            blobs = [blob] if blob else []

        if blobs:
            await self.store.delete([b.url for b in blobs])
        logger.info("Deleted %s %s (%d blobs)", type, key, len(blobs))
        return len(blobs)

    async def _copy_all_then_delete(
        self, moves: List[Tuple[BlobRecord, str]]
    ) -> None:
        """
        Copy every source to its destination, then delete the sources.

        Deletion only starts once every copy has succeeded. A failed copy
        aborts with all originals intact; destinations already written are
        left in place and are overwritten on retry.
        """
        copied = 0
        for blob, target in moves:
            try:
                await self.store.copy(blob.url, target)
            except Exception as e:
                logger.error(
                    "Copy %s -> %s failed after %d of %d copies: %s",
                    blob.pathname, target, copied, len(moves), e,
                )
                raise UpstreamFailure(f"Copy failed for {blob.pathname}: {e}") from e
            copied += 1

        if copied != len(moves):
            raise UpstreamFailure("Copy pass incomplete; originals kept")

        await self.store.delete([blob.url for blob, _ in moves])

    async def rename(
        self, tenant_id: str, old_path: str, new_name: str, type: NodeType = "file"
    ) -> str:
        """
        Rename a file or folder in place and return its new relative path.

        Raises:
            AccessDenied: old_path resolves outside the tenant.
            InvalidName: new_name is not a single valid segment.
            NotFound: nothing stored at old_path.
            UpstreamFailure: a copy failed; no originals were deleted.
        """
        prefix = tenant_paths.tenant_prefix(tenant_id)
        old_key = tenant_paths.resolve(tenant_id, old_path).rstrip("/")
        self._require_not_root(tenant_id, old_key + "/", "rename")
        name = validate_name(new_name)

        parts = old_key.split("/")
        parts[-1] = name
        new_key = "/".join(parts)
        if not new_key.startswith(prefix) or new_key == prefix.rstrip("/"):
            raise InvalidName()

        if new_key != old_key:
            if type == "folder":
                old_folder = old_key + "/"
                blobs = await self.store.list(old_folder)
                if not blobs:
                    raise NotFound("Folder not found")
                moves = [
                    (b, new_key + "/" + b.pathname[len(old_folder):]) for b in blobs
                ]
            else:
                blob = await self._find_blob(old_key)
                if blob is None:
                    raise NotFound("File not found")
                moves = [(blob, new_key)]

            await self._copy_all_then_delete(moves)
            logger.info("Renamed %s %s -> %s (%d blobs)", type, old_key, new_key, len(moves))

        return tenant_paths.to_relative(tenant_id, new_key)

    async def move(self, tenant_id: str, source_path: str, target_path: str) -> Tuple[str, str]:
        """Move one file; returns (new relative path, message)."""
        source_key = tenant_paths.resolve(tenant_id, source_path)
        target_key = tenant_paths.resolve(tenant_id, target_path)
        self._require_not_root(tenant_id, source_key, "move")
        self._require_not_root(tenant_id, target_key, "move onto")

        blob = await self._find_blob(source_key)
        if blob is None:
            raise NotFound("Source file not found")

        if target_key != source_key:
            await self._copy_all_then_delete([(blob, target_key)])
            logger.info("Moved %s -> %s", source_key, target_key)

        source_rel = tenant_paths.to_relative(tenant_id, source_key)
        target_rel = tenant_paths.to_relative(tenant_id, target_key)
        if is_blocked(source_rel) and not is_blocked(target_rel):
            message = "File published successfully"
        elif not is_blocked(source_rel) and is_blocked(target_rel):
            message = "File unpublished successfully"
        else:
            message = "File moved successfully"
        return target_rel, message

    async def publish(self, tenant_id: str, path: str) -> dict:
        """Move a draft out of its ``unpublished/`` folder."""
        relative = tenant_paths.to_relative(tenant_id, tenant_paths.resolve(tenant_id, path))
        parts = relative.split("/")
        folders = parts[:-1]
        if page_templates.UNPUBLISHED_DIR not in folders:
            raise InvalidArguments("File is already published")

        # Drop the unpublished folder closest to the file
        index = len(folders) - 1 - folders[::-1].index(page_templates.UNPUBLISHED_DIR)
        del parts[index]
        new_path, message = await self.move(tenant_id, relative, "/".join(parts))
        return {
            "newPath": new_path,
            "message": message,
            "publicUrl": None if is_blocked(new_path) else f"/{new_path}",
        }

    async def unpublish(self, tenant_id: str, path: str) -> dict:
        """Move a published file into the ``unpublished/`` folder beside it."""
        relative = tenant_paths.to_relative(tenant_id, tenant_paths.resolve(tenant_id, path))
        if is_blocked(relative):
            raise InvalidArguments("File is not published")

        parts = relative.split("/")
        parts.insert(len(parts) - 1, page_templates.UNPUBLISHED_DIR)
        new_path, message = await self.move(tenant_id, relative, "/".join(parts))
        return {"newPath": new_path, "message": message, "publicUrl": None}

    async def duplicate(self, tenant_id: str, path: str, type: NodeType = "file") -> str:
        key = tenant_paths.resolve(tenant_id, path).rstrip("/")
        self._require_not_root(tenant_id, key + "/", "duplicate")
        parent, name = key.rsplit("/", 1)

        if type == "folder":
            sources = await self._folder_blobs(key)
            if not sources:
                raise NotFound("Folder not found or empty")
        else:
            blob = await self._find_blob(key)
            if blob is None:
                raise NotFound("File not found")
            sources = [blob]

        counter = 1
        while True:
            candidate = f"{parent}/{duplicate_name(name, counter, type == 'file')}"
            if type == "folder":
                taken = bool(await self.store.list(candidate + "/", limit=1))
            else:
                taken = await self._find_blob(candidate) is not None
            if not taken:
                break
            counter += 1

        for blob in sources:
            target = candidate + blob.pathname[len(key):] if type == "folder" else candidate
            await self.store.copy(blob.url, target)

        logger.info("Duplicated %s %s -> %s", type, key, candidate)
        return tenant_paths.to_relative(tenant_id, candidate)

    async def create_folder(self, tenant_id: str, path: str) -> str:
        key = tenant_paths.resolve(tenant_id, path).rstrip("/")
        self._require_not_root(tenant_id, key + "/", "create")
        relative = tenant_paths.to_relative(tenant_id, key)
        name = validate_name(tenant_paths.basename(relative))

        if await self.store.list(key + "/", limit=1):
            raise InvalidArguments(f"Folder already exists: {relative}")

        await self.store.put(
            f"{key}/index.html", page_templates.index_page(name, relative), "text/html"
        )
        await self.store.put(
            f"{key}/{page_templates.FOLDER_NOTES_NAME}",
            page_templates.folder_notes(name),
            "text/markdown",
        )
        await self.store.put(
            f"{key}/{page_templates.UNPUBLISHED_DIR}/draft.html",
            page_templates.DRAFT_PAGE,
            "text/html",
        )
        logger.info("Created folder %s", key)
        return relative
