"""File management routes over the tenant's virtual file tree."""

import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from pagebuilder.api.deps import get_file_tree, get_tenant_id
from pagebuilder.core.errors import InvalidArguments
from pagebuilder.services import tenant_paths
from pagebuilder.services.file_tree import VirtualFileTree

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/files", tags=["files"])

NodeType = Literal["file", "folder"]


class PathRequest(BaseModel):
    path: Optional[str] = None


class TypedPathRequest(BaseModel):
    path: Optional[str] = None
    type: NodeType = "file"


class SaveRequest(BaseModel):
    path: Optional[str] = None
    content: Optional[str] = None
    contentType: str = "text/html"


class RenameRequest(BaseModel):
    oldPath: Optional[str] = None
    newName: Optional[str] = None
    type: NodeType = "file"


class MoveRequest(BaseModel):
    sourcePath: Optional[str] = None
    targetPath: Optional[str] = None


class PublishRequest(BaseModel):
    path: Optional[str] = None
    action: Literal["publish", "unpublish"] = "publish"


def _required(value: Optional[str], message: str) -> str:
    if value is None or not value.strip():
        raise InvalidArguments(message)
    return value


# ── Reads ─────────────────────────────────────────────────────────────

@router.get("/list")
async def list_files(
    tenant_id: str = Depends(get_tenant_id),
    tree: VirtualFileTree = Depends(get_file_tree),
):
    """Full file tree for the tenant."""
    root, total = await tree.tree(tenant_id)
    return {"tenantId": tenant_id, "files": root.to_dict(), "totalFiles": total}


@router.get("/children")
async def list_children(
    path: str = Query(""),
    tenant_id: str = Depends(get_tenant_id),
    tree: VirtualFileTree = Depends(get_file_tree),
):
    nodes = await tree.list(tenant_id, path)
    return {"path": path, "files": [n.to_dict() for n in nodes]}


@router.post("/read")
async def read_file(
    body: PathRequest,
    tenant_id: str = Depends(get_tenant_id),
    tree: VirtualFileTree = Depends(get_file_tree),
):
    path = _required(body.path, "Path is required")
    content, blob = await tree.read(tenant_id, path)
    return {
        "content": content,
        "contentType": blob.content_type or "text/html",
        "path": tenant_paths.to_relative(tenant_id, blob.pathname),
        "url": blob.url,
    }


@router.post("/read-folder-notes")
async def read_folder_notes(
    body: PathRequest,
    tenant_id: str = Depends(get_tenant_id),
    tree: VirtualFileTree = Depends(get_file_tree),
):
    return await tree.read_folder_notes(tenant_id, body.path or "")


# ── Writes ────────────────────────────────────────────────────────────

@router.post("/save")
async def save_file(
    body: SaveRequest,
    tenant_id: str = Depends(get_tenant_id),
    tree: VirtualFileTree = Depends(get_file_tree),
):
    path = _required(body.path, "Path is required")
    if body.content is None:
        raise InvalidArguments("Content is required")

    blob = await tree.save(tenant_id, path, body.content, body.contentType)
    return {
        "success": True,
        "path": tenant_paths.to_relative(tenant_id, blob.pathname),
        "url": blob.url,
        "size": blob.size,
    }


@router.post("/delete")
async def delete_file(
    body: TypedPathRequest,
    tenant_id: str = Depends(get_tenant_id),
    tree: VirtualFileTree = Depends(get_file_tree),
):
    path = _required(body.path, "Path is required")
    deleted = await tree.delete(tenant_id, path, body.type)
    return {
        "success": True,
        "message": f"{body.type.capitalize()} deleted successfully",
        "filesDeleted": deleted,
    }


@router.post("/rename")
async def rename_file(
    body: RenameRequest,
    tenant_id: str = Depends(get_tenant_id),
    tree: VirtualFileTree = Depends(get_file_tree),
):
    """Rename a file, or a folder together with everything beneath it."""
    if not body.oldPath or not body.newName:
        raise InvalidArguments("Missing required fields: oldPath and newName")

    new_path = await tree.rename(tenant_id, body.oldPath, body.newName, body.type)
    return {
        "success": True,
        "message": f"{body.type.capitalize()} renamed successfully",
        "newPath": new_path,
    }


@router.post("/move")
async def move_file(
    body: MoveRequest,
    tenant_id: str = Depends(get_tenant_id),
    tree: VirtualFileTree = Depends(get_file_tree),
):
    if not body.sourcePath or not body.targetPath:
        raise InvalidArguments("Source and target paths are required")

    new_path, message = await tree.move(tenant_id, body.sourcePath, body.targetPath)
    return {"success": True, "message": message, "newPath": new_path}


@router.post("/duplicate")
async def duplicate_file(
    body: TypedPathRequest,
    tenant_id: str = Depends(get_tenant_id),
    tree: VirtualFileTree = Depends(get_file_tree),
):
    path = _required(body.path, "Path is required")
    new_path = await tree.duplicate(tenant_id, path, body.type)
    return {
        "success": True,
        "message": f"{body.type.capitalize()} duplicated successfully",
        "newPath": new_path,
    }


@router.post("/publish")
async def publish_file(
    body: PublishRequest,
    tenant_id: str = Depends(get_tenant_id),
    tree: VirtualFileTree = Depends(get_file_tree),
):
    """Publish a draft or move a published page back into ``unpublished/``."""
    path = _required(body.path, "Path is required")
    if body.action == "publish":
        result = await tree.publish(tenant_id, path)
    else:
        result = await tree.unpublish(tenant_id, path)
    return {"success": True, **result}


@router.post("/create-folder")
async def create_folder(
    body: PathRequest,
    tenant_id: str = Depends(get_tenant_id),
    tree: VirtualFileTree = Depends(get_file_tree),
):
    path = _required(body.path, "Folder path is required")
    relative = await tree.create_folder(tenant_id, path)
    return {
        "success": True,
        "message": "Folder created successfully",
        "path": relative,
    }
