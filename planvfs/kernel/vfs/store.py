"""VFS Node Store: a path-addressable tree over a flat parent-pointer table.

The store owns path semantics and the tree invariants (one root per project,
directories hold no content, a root that cannot be removed or moved). Row
storage and the sibling uniqueness constraint belong to the
:class:`~planvfs.kernel.ports.vfs_backend.VfsBackend`.

Examples
--------
Example usage::

    store = VfsNodeStore(InMemoryVfsBackend())
    node = await store.afind_or_create("proj-1", "/src/index.ts")
    await store.aupdate_content("proj-1", node.id, "export {}")
    version = await store.acompute_project_version("proj-1")
"""

from __future__ import annotations

import asyncio
import hashlib
import weakref
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from planvfs.kernel.domain.vfs import ROOT_NAME, NodeType, VfsEntry, VfsNode
from planvfs.kernel.exceptions import (
    ContentSizeExceededError,
    DuplicateNameError,
    InvalidMoveError,
    InvalidNodeTypeError,
    NotFoundError,
    RootNodeError,
)
from planvfs.kernel.logging import get_logger
from planvfs.kernel.ports.vfs_backend import VfsBackend, VfsTable
from planvfs.kernel.vfs.paths import (
    SEPARATOR,
    is_directory_path,
    join_path,
    split_path,
    validate_name,
)
from planvfs.kernel.vfs.tree import VfsTree, sort_key

logger = get_logger(__name__)


class VfsNodeStore:
    """Async VFS operations for any number of projects.

    Parameters
    ----------
    backend : VfsTable
        Row storage. A full :class:`VfsBackend` is needed for :meth:`transaction`.
    max_file_size : int | None
        Upper bound for file content in UTF-8 bytes; None disables the check.
    """

    def __init__(self, backend: VfsTable, *, max_file_size: int | None = None) -> None:
        self.backend = backend
        self.max_file_size = max_file_size
        # Entries disappear once no holder or waiter references the lock.
        self._locks: weakref.WeakValueDictionary[tuple[str, str], asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def _parent_lock(self, project_id: str, parent_id: str) -> asyncio.Lock:
        key = (project_id, parent_id)
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def transaction(self, project_id: str) -> AsyncIterator[VfsNodeStore]:
        """Open a backend transaction and yield a store bound to it.

        Everything done through the yielded store commits together when the
        block exits cleanly, or not at all.

        Raises
        ------
        TypeError
            If the store is already bound to a transaction.
        """
        if not isinstance(self.backend, VfsBackend):
            raise TypeError("Nested VFS transactions are not supported")
        async with self.backend.transaction(project_id) as table:
            yield VfsNodeStore(table, max_file_size=self.max_file_size)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    async def aget_root(self, project_id: str) -> VfsNode:
        """Return the project root, creating it if it does not exist yet."""
        root = await self.backend.aget_root(project_id)
        if root is not None:
            return root
        try:
            root = await self.backend.ainsert(
                VfsNode(
                    project_id=project_id,
                    parent_id=None,
                    node_type=NodeType.DIRECTORY,
                    name=ROOT_NAME,
                )
            )
            logger.debug("Created VFS root for project {project}", project=project_id)
            return root
        except DuplicateNameError:
            # Lost a creation race; the winner's root is authoritative
            existing = await self.backend.aget_root(project_id)
            if existing is None:
                raise
            return existing

    async def aget_node(self, project_id: str, node_id: str) -> VfsNode:
        """Return a node by id.

        Raises
        ------
        NotFoundError
            If the node does not exist in this project.
        """
        node = await self.backend.aget_node(project_id, node_id)
        if node is None:
            raise NotFoundError(node_id, f"no node with this id in project '{project_id}'")
        return node

    async def aresolve_path(self, project_id: str, path: str) -> VfsNode | None:
        """Walk ``path`` from the root; None if any segment is missing.

        ``""`` and ``"/"`` resolve to the root. A path that continues past a
        FILE does not resolve.

        Raises
        ------
        NotFoundError
            If ``..`` escapes the project root.
        """
        segments = split_path(path)
        node = await self.aget_root(project_id)
        for segment in segments:
            if not node.is_directory:
                return None
            child = await self.backend.aget_child(project_id, node.id, segment)
            if child is None:
                return None
            node = child
        return node

    async def arequire_path(self, project_id: str, path: str) -> VfsNode:
        """Like :meth:`aresolve_path` but raises ``NotFoundError`` on a miss."""
        node = await self.aresolve_path(project_id, path)
        if node is None:
            raise NotFoundError(path, "no such file or directory")
        return node

    async def apath_of(self, project_id: str, node_id: str) -> str:
        """Return the absolute path of a node by walking its parent links."""
        segments: list[str] = []
        node = await self.aget_node(project_id, node_id)
        while node.parent_id is not None:
            segments.append(node.name)
            node = await self.aget_node(project_id, node.parent_id)
        return join_path(segments[::-1])

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    async def afind_or_create(self, project_id: str, path: str) -> VfsNode:
        """Resolve ``path``, creating any missing segments.

        Intermediate segments are created as directories. The final segment
        is a directory when the path ends with ``/`` and a file (with empty
        content) otherwise. An existing final node is returned as is.

        Raises
        ------
        InvalidNodeTypeError
            If an intermediate segment exists as a FILE.
        InvalidNameError
            If a segment to create is not a valid name.
        """
        segments = split_path(path)
        wants_directory = is_directory_path(path)
        node = await self.aget_root(project_id)
        for index, segment in enumerate(segments):
            is_last = index == len(segments) - 1
            if not node.is_directory:
                raise InvalidNodeTypeError(
                    join_path(segments[:index]), "is a file, expected a directory"
                )
            child = await self.backend.aget_child(project_id, node.id, segment)
            if child is None:
                node_type = NodeType.FILE if is_last and not wants_directory else NodeType.DIRECTORY
                child = await self._acreate_or_get(project_id, node, segment, node_type)
            node = child
        return node

    async def _acreate_or_get(
        self, project_id: str, parent: VfsNode, name: str, node_type: NodeType
    ) -> VfsNode:
        validate_name(name)
        async with self._parent_lock(project_id, parent.id):
            existing = await self.backend.aget_child(project_id, parent.id, name)
            if existing is not None:
                return existing
            try:
                return await self.backend.ainsert(
                    VfsNode(
                        project_id=project_id,
                        parent_id=parent.id,
                        node_type=node_type,
                        name=name,
                        content="" if node_type is NodeType.FILE else None,
                    )
                )
            except DuplicateNameError:
                existing = await self.backend.aget_child(project_id, parent.id, name)
                if existing is None:
                    raise
                return existing

    async def acreate_node(
        self,
        project_id: str,
        parent_id: str,
        name: str,
        node_type: NodeType,
        content: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> VfsNode:
        """Create a single node under ``parent_id``.

        Files created without content get ``""``.

        Raises
        ------
        DuplicateNameError
            If the parent already has a child called ``name``.
        InvalidNodeTypeError
            If the parent is a file, or content is given for a directory.
        ContentSizeExceededError
            If the content is larger than ``max_file_size``.
        """
        validate_name(name)
        parent = await self.aget_node(project_id, parent_id)
        if not parent.is_directory:
            raise InvalidNodeTypeError(parent.name, "cannot create children under a file")
        if node_type is NodeType.DIRECTORY:
            if content is not None:
                raise InvalidNodeTypeError(name, "directories cannot hold content")
        else:
            content = "" if content is None else content
            self._check_size(name, content)
        node = VfsNode(
            project_id=project_id,
            parent_id=parent_id,
            node_type=node_type,
            name=name,
            content=content,
            metadata=metadata or {},
        )
        async with self._parent_lock(project_id, parent_id):
            return await self.backend.ainsert(node)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    async def aupdate_content(self, project_id: str, node_id: str, content: str) -> VfsNode:
        """Replace a file's content.

        Raises
        ------
        InvalidNodeTypeError
            If the node is a directory.
        ContentSizeExceededError
            If the content is larger than ``max_file_size``.
        """
        node = await self.aget_node(project_id, node_id)
        if not node.is_file:
            raise InvalidNodeTypeError(node.name, "directories cannot hold content")
        self._check_size(node.name, content)
        return await self.backend.aupdate(node.touched(content=content))

    async def aupdate_metadata(
        self, project_id: str, node_id: str, metadata: dict[str, Any], *, merge: bool = True
    ) -> VfsNode:
        """Merge ``metadata`` into the node's metadata, or replace it."""
        node = await self.aget_node(project_id, node_id)
        updated = {**node.metadata, **metadata} if merge else dict(metadata)
        return await self.backend.aupdate(node.touched(metadata=updated))

    async def arename_node(self, project_id: str, node_id: str, new_name: str) -> VfsNode:
        """Rename a node in place.

        Raises
        ------
        RootNodeError
            If the node is the project root.
        DuplicateNameError
            If a sibling already uses ``new_name``.
        """
        node = await self.aget_node(project_id, node_id)
        if node.parent_id is None:
            raise RootNodeError(ROOT_NAME, "the project root cannot be renamed")
        validate_name(new_name)
        if new_name == node.name:
            return node
        async with self._parent_lock(project_id, node.parent_id):
            return await self.backend.aupdate(node.touched(name=new_name))

    async def amove_node(self, project_id: str, node_id: str, new_parent_id: str) -> VfsNode:
        """Re-parent a node, keeping its name.

        Raises
        ------
        RootNodeError
            If the node is the project root.
        InvalidNodeTypeError
            If the destination is a file.
        InvalidMoveError
            If a directory would move into its own subtree.
        DuplicateNameError
            If the destination already has a child with the node's name.
        """
        node = await self.aget_node(project_id, node_id)
        if node.parent_id is None:
            raise RootNodeError(ROOT_NAME, "the project root cannot be moved")
        target = await self.aget_node(project_id, new_parent_id)
        if not target.is_directory:
            raise InvalidNodeTypeError(target.name, "destination is not a directory")
        if node.parent_id == target.id:
            return node

        cursor: VfsNode | None = target
        while cursor is not None:
            if cursor.id == node.id:
                raise InvalidMoveError(node.name, "cannot move a directory into its own subtree")
            cursor = (
                await self.backend.aget_node(project_id, cursor.parent_id)
                if cursor.parent_id is not None
                else None
            )

        async with self._parent_lock(project_id, target.id):
            return await self.backend.aupdate(node.touched(parent_id=target.id))

    async def adelete_node(self, project_id: str, node_id: str) -> int:
        """Delete a node and its whole subtree; return the number of nodes removed.

        Raises
        ------
        RootNodeError
            If the node is the project root.
        """
        node = await self.aget_node(project_id, node_id)
        if node.parent_id is None:
            raise RootNodeError(ROOT_NAME, "the project root cannot be deleted")
        removed = await self.backend.adelete_subtree(project_id, node_id)
        logger.debug(
            "Deleted {count} VFS node(s) under '{name}'", count=removed, name=node.name
        )
        return removed

    async def aclear(self, project_id: str) -> int:
        """Delete every node except the root; return the number removed."""
        await self.aget_root(project_id)
        return await self.backend.adelete_non_root(project_id)

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    async def alist_children(self, project_id: str, path: str = SEPARATOR) -> list[VfsEntry]:
        """List the direct children of a directory, directories first.

        Raises
        ------
        NotFoundError
            If the path does not resolve.
        InvalidNodeTypeError
            If the path is a file.
        """
        node = await self.arequire_path(project_id, path)
        if not node.is_directory:
            raise InvalidNodeTypeError(path, "not a directory")
        base = split_path(path)
        children = sorted(await self.backend.alist_children(project_id, node.id), key=sort_key)
        return [VfsEntry(path=join_path([*base, child.name]), node=child) for child in children]

    async def aget_tree(self, project_id: str) -> VfsTree:
        """Fetch the whole project once and index it."""
        await self.aget_root(project_id)
        return VfsTree(await self.backend.alist_nodes(project_id))

    async def alist_subtree(self, project_id: str, path: str = SEPARATOR) -> list[VfsEntry]:
        """List every transitive descendant of ``path`` in pre-order.

        Raises
        ------
        NotFoundError
            If the path does not resolve.
        """
        node = await self.arequire_path(project_id, path)
        tree = await self.aget_tree(project_id)
        return list(tree.descendants(node.id))

    async def acompute_project_version(self, project_id: str) -> str:
        """Return a content hash of the project's files.

        Each file contributes ``"<path>\\0<sha256(content)>"``; the entries are
        sorted and hashed together, so the digest is independent of listing
        order and changes when any file is added, removed, renamed or edited.
        """
        tree = await self.aget_tree(project_id)
        entries = sorted(
            f"{entry.path}\0{hashlib.sha256((entry.node.content or '').encode()).hexdigest()}"
            for entry in tree.files()
        )
        digest = hashlib.sha256()
        for entry in entries:
            digest.update(entry.encode())
            digest.update(b"\n")
        return digest.hexdigest()

    def _check_size(self, path: str, content: str) -> None:
        if self.max_file_size is None:
            return
        size = len(content.encode("utf-8"))
        if size > self.max_file_size:
            raise ContentSizeExceededError(path, size, self.max_file_size)


__all__ = ["VfsNodeStore"]
