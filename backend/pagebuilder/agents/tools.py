"""File tools exposed to the page assistant and their dispatcher."""

from dataclasses import dataclass
from typing import Iterator, Optional
import logging

from pagebuilder.core.errors import InvalidArguments, NotFound, PageBuilderError
from pagebuilder.services import tenant_paths
from pagebuilder.services.file_tree import FileNode, VirtualFileTree

logger = logging.getLogger(__name__)

DEFAULT_EXTENSION = ".html"
THIS_FILE_ALIASES = {"this", "this file", "the file", "current file", "selected file"}

# Tool definitions for OpenAI function calling
TOOLS = [
    {
        "type": "function",
        "function": {
            "name": "create_file",
            "description": "Create a new HTML file in the current folder.",
            "parameters": {
                "type": "object",
                "properties": {
                    "filename": {
                        "type": "string",
                        "description": 'File name (e.g., "about.html", "contact.html").',
                    },
                    "content": {
                        "type": "string",
                        "description": "Complete HTML content.",
                    },
                },
                "required": ["filename", "content"],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": "edit_file",
            "description": "Edit an existing file - either a find/replace partial edit or a full replacement.",
            "parameters": {
                "type": "object",
                "properties": {
                    "filename": {
                        "type": "string",
                        "description": "File to edit. Omit to edit the selected file.",
                    },
                    "find": {
                        "type": "string",
                        "description": "Text to find (partial edit). Must occur exactly once.",
                    },
                    "replace": {
                        "type": "string",
                        "description": "Text to replace it with (partial edit).",
                    },
                    "content": {
                        "type": "string",
                        "description": "New content (full replacement).",
                    },
                },
                "required": [],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": "read_file",
            "description": "Read a file's contents.",
            "parameters": {
                "type": "object",
                "properties": {
                    "filename": {"type": "string", "description": "File to read."}
                },
                "required": ["filename"],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": "delete_file",
            "description": "Delete a file or folder.",
            "parameters": {
                "type": "object",
                "properties": {
                    "path": {"type": "string", "description": "File or folder to delete."}
                },
                "required": ["path"],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": "list_files",
            "description": "List all files in the current folder.",
            "parameters": {"type": "object", "properties": {}, "required": []},
        },
    },
    {
        "type": "function",
        "function": {
            "name": "rename_file",
            "description": "Rename a file.",
            "parameters": {
                "type": "object",
                "properties": {
                    "oldName": {"type": "string", "description": "Current file name."},
                    "newName": {
                        "type": "string",
                        "description": "New file name (with or without extension).",
                    },
                },
                "required": ["oldName", "newName"],
            },
        },
    },
]

TOOL_NAMES = {t["function"]["name"] for t in TOOLS}


@dataclass(frozen=True)
class ToolContext:
    tenant_id: str
    current_folder: str = ""
    selected_file: Optional[str] = None


def normalize_filename(name: str) -> str:
    """Append ``.html`` when the last segment has no extension."""
    base = tenant_paths.basename(name)
    if base and "." not in base.lstrip("."):
        return name.rstrip("/") + DEFAULT_EXTENSION
    return name


def iter_files(nodes: list[FileNode]) -> Iterator[FileNode]:
    for node in nodes:
        if node.type == "file":
            yield node
        else:
            yield from iter_files(node.children or [])


def _optional(arguments: dict, name: str) -> Optional[str]:
    value = arguments.get(name)
    if value is not None and not isinstance(value, str):
        raise InvalidArguments(f"Argument {name} must be a string")
    return value


def _require(arguments: dict, *names: str) -> None:
    missing = [n for n in names if not _optional(arguments, n)]
    if missing:
        raise InvalidArguments(f"Missing required argument(s): {', '.join(missing)}")



class ToolDispatcher:
    """Execute assistant tool calls against one tenant's file tree."""

    def __init__(self, tree: VirtualFileTree):
        self.tree = tree

    def resolve_path(self, name: Optional[str], context: ToolContext, normalize: bool = True) -> str:
        """
        Turn a tool's file reference into a path relative to the tenant root.

        "this file" (or no name at all) means the selected file. A name with
        a slash is an explicit path from the site root; a bare name lives in
        the current folder.
        """
        reference = (name or "").strip()

        if not reference or reference.lower() in THIS_FILE_ALIASES:
            if not context.selected_file:
                raise InvalidArguments("No file specified and no file is selected")
            return context.selected_file

        if (
            context.selected_file
            and "/" not in reference
            and reference in (
                tenant_paths.basename(context.selected_file),
                tenant_paths.basename(normalize_filename(context.selected_file)),
            )
        ):
            return context.selected_file

        if normalize:
            reference = normalize_filename(reference)
        if "/" in reference:
            return reference.lstrip("/")
        return tenant_paths.join(context.current_folder, reference)

    async def run(self, name: str, arguments: dict, context: ToolContext) -> dict:
        """Run one tool call; raises on invalid arguments or failed operations."""
        if name not in TOOL_NAMES:
            raise InvalidArguments(f"Unknown tool: {name}")
        handler = getattr(self, f"_{name}")
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            raise InvalidArguments("Tool arguments must be a JSON object")
        return await handler(arguments, context)

    async def execute(self, name: str, arguments: dict, context: ToolContext) -> dict:
        """Run a tool call and report failures as a result the model can read."""
        try:
            return await self.run(name, arguments, context)
        except PageBuilderError as e:
            if e.status_code >= 500:
                logger.exception("Tool error [%s]", name)
            return {"success": False, "error": e.client_message}

    async def _create_file(self, arguments: dict, context: ToolContext) -> dict:
        _require(arguments, "filename")
        if _optional(arguments, "content") is None:
            raise InvalidArguments("Missing required argument(s): content")
        path = self.resolve_path(arguments["filename"], context)
        blob = await self.tree.save(context.tenant_id, path, arguments["content"])
        relative = tenant_paths.to_relative(context.tenant_id, blob.pathname)
        return {"success": True, "message": f"Created {relative}", "path": relative, "url": blob.url}

    async def _edit_file(self, arguments: dict, context: ToolContext) -> dict:
        path = self.resolve_path(_optional(arguments, "filename"), context)
        find = _optional(arguments, "find")
        content = _optional(arguments, "content")

        if find:
            if _optional(arguments, "replace") is None:
                raise InvalidArguments("Missing required argument(s): replace")
            current, _ = await self.tree.read(context.tenant_id, path)
            occurrences = current.count(find)
            if occurrences == 0:
                raise NotFound(f'Text not found in file: "{find}"')
            if occurrences > 1:
                raise InvalidArguments(
                    f"Text appears {occurrences} times in file; include more surrounding text"
                )
            updated = current.replace(find, arguments["replace"], 1)
            blob = await self.tree.save(context.tenant_id, path, updated)
            return {"success": True, "message": f"Updated {path} (partial edit)", "url": blob.url}

        if content is not None:
            if not await self.tree.exists(context.tenant_id, path):
                raise NotFound(f"File not found: {path}")
            blob = await self.tree.save(context.tenant_id, path, content)
            return {"success": True, "message": f"Updated {path}", "url": blob.url}

        raise InvalidArguments("Either content or find/replace must be provided")

    async def _read_file(self, arguments: dict, context: ToolContext) -> dict:
        path = self.resolve_path(_optional(arguments, "filename"), context)
        content, _ = await self.tree.read(context.tenant_id, path)
        return {"success": True, "content": content, "filename": path}

    async def _delete_file(self, arguments: dict, context: ToolContext) -> dict:
        _require(arguments, "path")
        raw = self.resolve_path(arguments["path"], context, normalize=False)

        # A bare name may be a folder; only fall back to a file when it is not
        deleted = 0
        if await self.tree.exists(context.tenant_id, raw):
            deleted = await self.tree.delete(context.tenant_id, raw, "file")
        if not deleted:
            deleted = await self.tree.delete(context.tenant_id, raw, "folder")
        if not deleted:
            deleted = await self.tree.delete(context.tenant_id, normalize_filename(raw), "file")

        if not deleted:
            return {"success": False, "message": f"Nothing found at: {arguments['path']}"}
        return {"success": True, "message": f"Deleted {raw}", "filesDeleted": deleted}

    async def _list_files(self, arguments: dict, context: ToolContext) -> dict:
        folder = tenant_paths.to_relative(
            context.tenant_id, tenant_paths.resolve_folder(context.tenant_id, context.current_folder)
        )
        nodes = await self.tree.list(context.tenant_id, folder)
        files = [
            {"name": node.path[len(folder):], "url": node.url, "size": node.size}
            for node in iter_files(nodes)
        ]
        return {"success": True, "files": files, "count": len(files)}

    async def _rename_file(self, arguments: dict, context: ToolContext) -> dict:
        _require(arguments, "oldName", "newName")
        old_path = self.resolve_path(arguments["oldName"], context)
        new_name = normalize_filename(arguments["newName"].strip())
        new_path = await self.tree.rename(context.tenant_id, old_path, new_name, "file")
        return {
            "success": True,
            "message": f"Renamed {arguments['oldName']} to {new_name}",
            "newName": new_name,
            "newPath": new_path,
        }
