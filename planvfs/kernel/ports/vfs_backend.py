"""VFS backend port: persistence for the flat parent-pointer node table.

The :class:`~planvfs.kernel.vfs.store.VfsNodeStore` owns path semantics and
invariant checks; a backend only stores rows and enforces the
``(project_id, parent_id, name)`` uniqueness constraint.

Drivers
-------
- ``InMemoryVfsBackend``: process-local tables, copy-on-write transactions.
- ``SQLiteVfsBackend``: aiosqlite, real BEGIN/COMMIT/ROLLBACK.
"""

from __future__ import annotations

from abc import abstractmethod
from contextlib import AbstractAsyncContextManager
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from planvfs.kernel.domain.vfs import VfsNode


@runtime_checkable
class VfsTable(Protocol):
    """Row-level operations over one backend (or one open transaction)."""

    @abstractmethod
    async def aget_node(self, project_id: str, node_id: str) -> VfsNode | None:
        """Return the node with ``node_id`` in the project, or None."""
        ...

    @abstractmethod
    async def aget_root(self, project_id: str) -> VfsNode | None:
        """Return the project's root node (``parent_id`` is None), or None."""
        ...

    @abstractmethod
    async def aget_child(self, project_id: str, parent_id: str, name: str) -> VfsNode | None:
        """Return the child of ``parent_id`` called ``name``, or None."""
        ...

    @abstractmethod
    async def alist_children(self, project_id: str, parent_id: str) -> list[VfsNode]:
        """Return the direct children of ``parent_id`` (unordered)."""
        ...

    @abstractmethod
    async def alist_nodes(self, project_id: str) -> list[VfsNode]:
        """Return every node of the project in one fetch."""
        ...

    @abstractmethod
    async def ainsert(self, node: VfsNode) -> VfsNode:
        """Insert a node.

        Raises
        ------
        DuplicateNameError
            If a sibling with the same name (or a second root) exists.
        """
        ...

    @abstractmethod
    async def aupdate(self, node: VfsNode) -> VfsNode:
        """Replace the stored row with ``node`` (matched by id).

        Raises
        ------
        DuplicateNameError
            If the new (parent_id, name) collides with a sibling.
        NotFoundError
            If no row has ``node.id``.
        """
        ...

    @abstractmethod
    async def adelete_subtree(self, project_id: str, node_id: str) -> int:
        """Delete a node and all of its descendants; return the number removed."""
        ...

    @abstractmethod
    async def adelete_non_root(self, project_id: str) -> int:
        """Delete every node of the project except the root; return the count."""
        ...


@runtime_checkable
class VfsBackend(VfsTable, Protocol):
    """A :class:`VfsTable` that can also open atomic transactions."""

    @abstractmethod
    def transaction(self, project_id: str) -> AbstractAsyncContextManager[VfsTable]:
        """Open a transaction scoped to ``project_id``.

        The yielded table sees its own writes. Changes commit when the block
        exits cleanly and are rolled back if it raises. While the transaction
        is open it has exclusive write access, and its uncommitted state is
        not visible to other callers.
        """
        ...

    async def aclose(self) -> None:
        """Release backend resources."""
        ...


__all__ = ["VfsBackend", "VfsTable"]
