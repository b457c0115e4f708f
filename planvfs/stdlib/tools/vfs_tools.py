"""Plan-callable tools over the VFS Node Store.

Every tool operates on ``context.store`` within ``context.project_id``; a
context without either raises ``ConfigurationError``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field

from planvfs.kernel.exceptions import InvalidNodeTypeError
from planvfs.kernel.logging import get_logger
from planvfs.stdlib.tools.base import BaseTool

if TYPE_CHECKING:
    from planvfs.kernel.context.execution_context import ExecutionContext

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Shared models
# ---------------------------------------------------------------------------


class PathInput(BaseModel):
    model_config = ConfigDict(extra="ignore")

    path: str = Field(description="VFS path, from the project root")


class NodeResult(BaseModel):
    """Output of tools that create or change a single node."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    path: str
    node_id: str = Field(alias="nodeId")


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------


class CreateFileInput(PathInput):
    content: str | None = Field(default=None, description="File content; omitted keeps it")


class CreateVfsFileTool(BaseTool):
    """Create the file at ``path`` (and any missing parents), then set its content."""

    name = "create_vfs_file"
    description = (
        "Creates or finds a file in the VFS, creating missing parent directories. "
        "If content is provided, it replaces the file's content."
    )
    input_model = CreateFileInput
    output_model = NodeResult

    async def arun(self, context: ExecutionContext, params: CreateFileInput) -> NodeResult:
        store, project_id = context.require_project(self.name)
        node = await store.afind_or_create(project_id, params.path)
        if not node.is_file:
            raise InvalidNodeTypeError(params.path, "a directory already exists at this path")
        if params.content is not None:
            node = await store.aupdate_content(project_id, node.id, params.content)
        logger.debug("[{tool}] Ensured file {path}", tool=self.name, path=params.path)
        return NodeResult(path=params.path, node_id=node.id)


class CreateVfsDirectoryTool(BaseTool):
    """Create the directory at ``path`` and any missing parents."""

    name = "create_vfs_directory"
    description = "Creates or finds a directory in the VFS."
    input_model = PathInput
    output_model = NodeResult

    async def arun(self, context: ExecutionContext, params: PathInput) -> NodeResult:
        store, project_id = context.require_project(self.name)
        directory_path = params.path if params.path.endswith("/") else f"{params.path}/"
        node = await store.afind_or_create(project_id, directory_path)
        if not node.is_directory:
            raise InvalidNodeTypeError(params.path, "a file already exists at this path")
        return NodeResult(path=params.path, node_id=node.id)


# ---------------------------------------------------------------------------
# Reading
# ---------------------------------------------------------------------------


class ReadFileResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    path: str
    node_id: str = Field(alias="nodeId")
    content: str


class ReadVfsFileTool(BaseTool):
    name = "read_vfs_file"
    description = "Reads the content of a file in the VFS."
    input_model = PathInput
    output_model = ReadFileResult

    async def arun(self, context: ExecutionContext, params: PathInput) -> ReadFileResult:
        store, project_id = context.require_project(self.name)
        node = await store.arequire_path(project_id, params.path)
        if not node.is_file:
            raise InvalidNodeTypeError(params.path, "not a file")
        return ReadFileResult(path=params.path, node_id=node.id, content=node.content or "")


class ListDirectoryInput(BaseModel):
    model_config = ConfigDict(extra="ignore")

    path: str = Field(default="/", description="Directory to list")
    recursive: bool = Field(default=False, description="Include all descendants")


class ListVfsDirectoryTool(BaseTool):
    """List a directory's children, or its whole subtree with ``recursive``."""

    name = "list_vfs_directory"
    description = (
        "Lists the entries of a VFS directory (directories first, then by name), "
        "or every descendant in pre-order when recursive is true."
    )
    input_model = ListDirectoryInput

    async def arun(self, context: ExecutionContext, params: ListDirectoryInput) -> dict[str, Any]:
        store, project_id = context.require_project(self.name)
        if params.recursive:
            entries = await store.alist_subtree(project_id, params.path)
        else:
            entries = await store.alist_children(project_id, params.path)
        return {"path": params.path, "entries": [entry.to_dict() for entry in entries]}


class GetProjectVersionTool(BaseTool):
    name = "get_project_version"
    description = "Returns a content hash identifying the current state of the project's files."

    async def arun(self, context: ExecutionContext, params: Any) -> dict[str, Any]:
        store, project_id = context.require_project(self.name)
        return {"version": await store.acompute_project_version(project_id)}


# ---------------------------------------------------------------------------
# Mutation
# ---------------------------------------------------------------------------


class UpdateFileInput(PathInput):
    content: str = Field(description="New file content")


class UpdateVfsFileTool(BaseTool):
    name = "update_vfs_file"
    description = "Replaces the content of an existing file in the VFS."
    input_model = UpdateFileInput
    output_model = NodeResult

    async def arun(self, context: ExecutionContext, params: UpdateFileInput) -> NodeResult:
        store, project_id = context.require_project(self.name)
        node = await store.arequire_path(project_id, params.path)
        node = await store.aupdate_content(project_id, node.id, params.content)
        return NodeResult(path=params.path, node_id=node.id)


class DeleteVfsNodeTool(BaseTool):
    name = "delete_vfs_node"
    description = "Deletes a file, or a directory together with everything below it."
    input_model = PathInput

    async def arun(self, context: ExecutionContext, params: PathInput) -> dict[str, Any]:
        store, project_id = context.require_project(self.name)
        node = await store.arequire_path(project_id, params.path)
        deleted = await store.adelete_node(project_id, node.id)
        return {"success": True, "path": params.path, "deleted": deleted}


class RenameInput(PathInput):
    new_name: str = Field(description="New name, without any '/'")


class RenameVfsNodeTool(BaseTool):
    name = "rename_vfs_node"
    description = "Renames a file or directory in place."
    input_model = RenameInput
    output_model = NodeResult

    async def arun(self, context: ExecutionContext, params: RenameInput) -> NodeResult:
        store, project_id = context.require_project(self.name)
        node = await store.arequire_path(project_id, params.path)
        node = await store.arename_node(project_id, node.id, params.new_name)
        return NodeResult(path=await store.apath_of(project_id, node.id), node_id=node.id)


class MoveInput(PathInput):
    destination: str = Field(description="Existing directory to move the node into")


class MoveVfsNodeTool(BaseTool):
    name = "move_vfs_node"
    description = "Moves a file or directory into another existing directory."
    input_model = MoveInput
    output_model = NodeResult

    async def arun(self, context: ExecutionContext, params: MoveInput) -> NodeResult:
        store, project_id = context.require_project(self.name)
        node = await store.arequire_path(project_id, params.path)
        destination = await store.arequire_path(project_id, params.destination)
        node = await store.amove_node(project_id, node.id, destination.id)
        return NodeResult(path=await store.apath_of(project_id, node.id), node_id=node.id)


VFS_TOOLS: tuple[type[BaseTool], ...] = (
    CreateVfsFileTool,
    CreateVfsDirectoryTool,
    ReadVfsFileTool,
    UpdateVfsFileTool,
    ListVfsDirectoryTool,
    DeleteVfsNodeTool,
    RenameVfsNodeTool,
    MoveVfsNodeTool,
    GetProjectVersionTool,
)

__all__ = [
    "VFS_TOOLS",
    "CreateVfsDirectoryTool",
    "CreateVfsFileTool",
    "DeleteVfsNodeTool",
    "GetProjectVersionTool",
    "ListVfsDirectoryTool",
    "MoveVfsNodeTool",
    "NodeResult",
    "ReadVfsFileTool",
    "RenameVfsNodeTool",
    "UpdateVfsFileTool",
]
