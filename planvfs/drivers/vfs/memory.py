"""In-process VFS backend.

Keeps one table per project: nodes by id plus a ``parent_id -> {name: id}``
index that doubles as the sibling uniqueness constraint. Transactions work on
a copy of the project's table which replaces the live one on commit, so
uncommitted changes are never visible to other callers.

Example
-------
.. code-block:: python

    backend = InMemoryVfsBackend()
    store = VfsNodeStore(backend)
    node = await store.afind_or_create("proj-1", "/src/index.ts")
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from planvfs.kernel.domain.vfs import VfsNode
from planvfs.kernel.exceptions import DuplicateNameError, NotFoundError
from planvfs.kernel.logging import get_logger

logger = get_logger(__name__)


class _ProjectTable:
    """Rows and sibling index for a single project."""

    __slots__ = ("children", "nodes")

    def __init__(self) -> None:
        self.nodes: dict[str, VfsNode] = {}
        self.children: dict[str | None, dict[str, str]] = {}

    def copy(self) -> _ProjectTable:
        clone = _ProjectTable()
        clone.nodes = dict(self.nodes)
        clone.children = {parent: dict(names) for parent, names in self.children.items()}
        return clone

    def siblings(self, parent_id: str | None) -> dict[str, str]:
        return self.children.setdefault(parent_id, {})

    def _require_parent(self, node: VfsNode) -> None:
        if node.parent_id is not None and node.parent_id not in self.nodes:
            raise NotFoundError(node.parent_id, "parent node does not exist")

    def insert(self, node: VfsNode) -> VfsNode:
        self._require_parent(node)
        siblings = self.siblings(node.parent_id)
        if node.parent_id is None and siblings:
            raise DuplicateNameError(node.name, node.name)
        if node.name in siblings:
            raise DuplicateNameError(node.name, node.name)
        if node.id in self.nodes:
            raise DuplicateNameError(node.id, node.name)
        self.nodes[node.id] = node
        siblings[node.name] = node.id
        return node

    def update(self, node: VfsNode) -> VfsNode:
        current = self.nodes.get(node.id)
        if current is None:
            raise NotFoundError(node.id, "node does not exist")
        moved = (current.parent_id, current.name) != (node.parent_id, node.name)
        if moved:
            self._require_parent(node)
            target = self.siblings(node.parent_id)
            if node.name in target:
                raise DuplicateNameError(node.name, node.name)
            del self.siblings(current.parent_id)[current.name]
            target[node.name] = node.id
        self.nodes[node.id] = node
        return node

    def delete_subtree(self, node_id: str) -> int:
        node = self.nodes.get(node_id)
        if node is None:
            return 0
        removed = 0
        stack = [node_id]
        while stack:
            current_id = stack.pop()
            stack.extend(self.children.pop(current_id, {}).values())
            del self.nodes[current_id]
            removed += 1
        del self.siblings(node.parent_id)[node.name]
        return removed


class _MemoryTable:
    """VfsTable view over a mapping of project tables."""

    def __init__(self, tables: dict[str, _ProjectTable], scope: str | None = None) -> None:
        self._tables = tables
        self._scope = scope

    def _table(self, project_id: str) -> _ProjectTable:
        if self._scope is not None and project_id != self._scope:
            raise ValueError(
                f"Transaction is scoped to project '{self._scope}', not '{project_id}'"
            )
        table = self._tables.get(project_id)
        if table is None:
            table = self._tables[project_id] = _ProjectTable()
        return table

    async def aget_node(self, project_id: str, node_id: str) -> VfsNode | None:
        return self._table(project_id).nodes.get(node_id)

    async def aget_root(self, project_id: str) -> VfsNode | None:
        table = self._table(project_id)
        for root_id in table.siblings(None).values():
            return table.nodes[root_id]
        return None

    async def aget_child(self, project_id: str, parent_id: str, name: str) -> VfsNode | None:
        table = self._table(project_id)
        child_id = table.siblings(parent_id).get(name)
        return table.nodes[child_id] if child_id is not None else None

    async def alist_children(self, project_id: str, parent_id: str) -> list[VfsNode]:
        table = self._table(project_id)
        return [table.nodes[child_id] for child_id in table.siblings(parent_id).values()]

    async def alist_nodes(self, project_id: str) -> list[VfsNode]:
        return list(self._table(project_id).nodes.values())

    async def ainsert(self, node: VfsNode) -> VfsNode:
        return self._table(node.project_id).insert(node)

    async def aupdate(self, node: VfsNode) -> VfsNode:
        return self._table(node.project_id).update(node)

    async def adelete_subtree(self, project_id: str, node_id: str) -> int:
        return self._table(project_id).delete_subtree(node_id)

    async def adelete_non_root(self, project_id: str) -> int:
        table = self._table(project_id)
        removed = 0
        for root_id in list(table.siblings(None).values()):
            for child_id in list(table.siblings(root_id).values()):
                removed += table.delete_subtree(child_id)
        return removed


class InMemoryVfsBackend(_MemoryTable):
    """Process-local VFS backend.

    Reads run unsynchronized against committed state. Writes and transactions
    serialize on a single lock.
    """

    def __init__(self) -> None:
        self._committed: dict[str, _ProjectTable] = {}
        super().__init__(self._committed)
        self._write_lock = asyncio.Lock()

    async def ainsert(self, node: VfsNode) -> VfsNode:
        async with self._write_lock:
            return await super().ainsert(node)

    async def aupdate(self, node: VfsNode) -> VfsNode:
        async with self._write_lock:
            return await super().aupdate(node)

    async def adelete_subtree(self, project_id: str, node_id: str) -> int:
        async with self._write_lock:
            return await super().adelete_subtree(project_id, node_id)

    async def adelete_non_root(self, project_id: str) -> int:
        async with self._write_lock:
            return await super().adelete_non_root(project_id)

    @asynccontextmanager
    async def transaction(self, project_id: str) -> AsyncIterator[_MemoryTable]:
        async with self._write_lock:
            working = self._table(project_id).copy()
            yield _MemoryTable({project_id: working}, scope=project_id)
            # Only reached when the block exits cleanly
            self._committed[project_id] = working
            logger.debug("Committed VFS transaction for project {project}", project=project_id)

    async def aclose(self) -> None:
        self._committed.clear()


__all__ = ["InMemoryVfsBackend"]
