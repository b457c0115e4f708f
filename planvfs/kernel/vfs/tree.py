"""In-memory arena over one project's nodes.

Built from a single full fetch so subtree listings, exports and version hashes
never issue per-level queries.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from planvfs.kernel.domain.vfs import VfsEntry, VfsNode
from planvfs.kernel.vfs.paths import join_path


def sort_key(node: VfsNode) -> tuple[int, str]:
    """Directories first, then by name."""
    return (0 if node.is_directory else 1, node.name)


class VfsTree:
    """Id-indexed view of a project's node table.

    Examples
    --------
    >>> tree = VfsTree(await backend.alist_nodes("proj-1"))  # doctest: +SKIP
    >>> [entry.path for entry in tree.files()]  # doctest: +SKIP
    ['/src/index.ts']
    """

    def __init__(self, nodes: Iterable[VfsNode]) -> None:
        self._nodes: dict[str, VfsNode] = {}
        self._children: dict[str, list[VfsNode]] = {}
        self.root: VfsNode | None = None
        for node in nodes:
            self._nodes[node.id] = node
            if node.parent_id is None:
                self.root = node
            else:
                self._children.setdefault(node.parent_id, []).append(node)
        for siblings in self._children.values():
            siblings.sort(key=sort_key)
        self._paths: dict[str, str] = {}

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def get(self, node_id: str) -> VfsNode | None:
        return self._nodes.get(node_id)

    def children(self, node_id: str) -> list[VfsNode]:
        return list(self._children.get(node_id, ()))

    def path_of(self, node_id: str) -> str:
        """Absolute path of ``node_id``; the root is ``/``.

        Raises
        ------
        KeyError
            If the node is not part of this tree.
        """
        cached = self._paths.get(node_id)
        if cached is not None:
            return cached
        segments: list[str] = []
        node = self._nodes[node_id]
        while node.parent_id is not None:
            segments.append(node.name)
            node = self._nodes[node.parent_id]
        path = join_path(segments[::-1])
        self._paths[node_id] = path
        return path

    def descendants(self, node_id: str) -> Iterator[VfsEntry]:
        """Yield every transitive descendant of ``node_id`` in pre-order."""
        stack = list(reversed(self._children.get(node_id, ())))
        while stack:
            node = stack.pop()
            yield VfsEntry(path=self.path_of(node.id), node=node)
            stack.extend(reversed(self._children.get(node.id, ())))

    def files(self) -> Iterator[VfsEntry]:
        """Yield every FILE in the project in pre-order."""
        if self.root is None:
            return
        for entry in self.descendants(self.root.id):
            if entry.node.is_file:
                yield entry


__all__ = ["VfsTree", "sort_key"]
