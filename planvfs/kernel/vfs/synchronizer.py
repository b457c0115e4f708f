"""Materialize an architecture blueprint into a project's VFS.

Synchronization is a full replace: every node except the root is removed and
the blueprint is inserted in its place. The whole operation runs inside one
backend transaction, so a failure part-way (an oversized file, a duplicate
name) leaves the project exactly as it was.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from planvfs.kernel.domain.blueprint import ArchitectureBlueprint, BlueprintNode
from planvfs.kernel.domain.vfs import NodeType
from planvfs.kernel.exceptions import ContentSizeExceededError
from planvfs.kernel.logging import get_logger
from planvfs.kernel.utils.timer import step_timer
from planvfs.kernel.vfs.paths import join_path
from planvfs.kernel.vfs.store import VfsNodeStore

logger = get_logger(__name__)

DEFAULT_MAX_FILE_SIZE = 1_048_576


@dataclass(frozen=True, slots=True)
class SyncResult:
    """Outcome of a synchronization."""

    root_id: str
    files: int
    directories: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": True,
            "rootId": self.root_id,
            "files": self.files,
            "directories": self.directories,
        }


class ArchitectureSynchronizer:
    """Replace a project's tree with a blueprint, atomically.

    Parameters
    ----------
    store : VfsNodeStore
        Store over a backend that supports transactions.
    max_file_size : int
        Largest accepted file content, in UTF-8 bytes.

    Examples
    --------
    Example usage::

        synchronizer = ArchitectureSynchronizer(store)
        result = await synchronizer.sync("proj-1", {
            "type": "folder", "name": "my-app", "children": [
                {"type": "file", "name": "package.json", "content": "{}"},
            ],
        })
    """

    def __init__(self, store: VfsNodeStore, max_file_size: int = DEFAULT_MAX_FILE_SIZE) -> None:
        self.store = store
        self.max_file_size = max_file_size

    async def sync(
        self, project_id: str, blueprint: ArchitectureBlueprint | dict[str, Any] | list[Any]
    ) -> SyncResult:
        """Replace the project's tree with ``blueprint``.

        Raises
        ------
        ContentSizeExceededError
            If a file's content exceeds ``max_file_size``.
        DuplicateNameError
            If the blueprint has two siblings with the same name.
        InvalidNameError
            If a blueprint name is not a valid node name.
        pydantic.ValidationError
            If ``blueprint`` is not a valid blueprint.
        """
        parsed = ArchitectureBlueprint.parse(blueprint)
        for node in parsed.nodes:
            self._check_sizes(node, [])

        with step_timer() as timer:
            async with self.store.transaction(project_id) as scoped:
                root = await scoped.aget_root(project_id)
                removed = await scoped.backend.adelete_non_root(project_id)
                files = directories = 0
                for node in parsed.nodes:
                    node_files, node_directories = await self._insert(
                        scoped, project_id, root.id, node
                    )
                    files += node_files
                    directories += node_directories

        logger.info(
            "Synchronized project {project}: removed {removed}, created {files} file(s) "
            "and {directories} director(ies) in {duration}ms",
            project=project_id,
            removed=removed,
            files=files,
            directories=directories,
            duration=timer.duration_str,
        )
        return SyncResult(root_id=root.id, files=files, directories=directories)

    async def _insert(
        self, store: VfsNodeStore, project_id: str, parent_id: str, node: BlueprintNode
    ) -> tuple[int, int]:
        if not node.is_folder:
            await store.acreate_node(
                project_id, parent_id, node.name, NodeType.FILE, content=node.content or ""
            )
            return 1, 0

        created = await store.acreate_node(project_id, parent_id, node.name, NodeType.DIRECTORY)
        files, directories = 0, 1
        for child in node.children:
            child_files, child_directories = await self._insert(
                store, project_id, created.id, child
            )
            files += child_files
            directories += child_directories
        return files, directories

    def _check_sizes(self, node: BlueprintNode, parents: list[str]) -> None:
        segments = [*parents, node.name]
        if node.is_folder:
            for child in node.children:
                self._check_sizes(child, segments)
            return
        size = len((node.content or "").encode("utf-8"))
        if size > self.max_file_size:
            raise ContentSizeExceededError(join_path(segments), size, self.max_file_size)


__all__ = ["DEFAULT_MAX_FILE_SIZE", "ArchitectureSynchronizer", "SyncResult"]
