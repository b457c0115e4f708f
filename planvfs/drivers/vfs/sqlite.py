"""SQLite VFS backend with async support.

Schema::

    vfs_nodes(id PK, project_id, parent_id -> vfs_nodes.id ON DELETE CASCADE,
              node_type, name, content, metadata JSON, created_at, updated_at)
    UNIQUE(project_id, parent_id, name)
    UNIQUE(project_id) WHERE parent_id IS NULL      -- one root per project
    CHECK(node_type = 'FILE' OR content IS NULL)    -- directories hold no content

The connection runs in autocommit mode; transactions issue explicit
``BEGIN IMMEDIATE`` / ``COMMIT`` / ``ROLLBACK``. One lock guards the
connection, so a transaction excludes every other reader and writer until it
finishes.
"""

from __future__ import annotations

import asyncio
import json
import sqlite3
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Literal

import aiosqlite

from planvfs.kernel.domain.vfs import NodeType, VfsNode
from planvfs.kernel.exceptions import DuplicateNameError, NotFoundError, VfsError
from planvfs.kernel.logging import get_logger

logger = get_logger(__name__)

SQLiteJournalMode = Literal["WAL", "DELETE", "TRUNCATE", "PERSIST", "MEMORY", "OFF"]

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS vfs_nodes (
        id TEXT PRIMARY KEY,
        project_id TEXT NOT NULL,
        parent_id TEXT REFERENCES vfs_nodes(id) ON DELETE CASCADE,
        node_type TEXT NOT NULL CHECK (node_type IN ('FILE', 'DIRECTORY')),
        name TEXT NOT NULL,
        content TEXT,
        metadata TEXT NOT NULL DEFAULT '{}',
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        UNIQUE (project_id, parent_id, name),
        CHECK (node_type = 'FILE' OR content IS NULL)
    )
    """,
    """
    CREATE UNIQUE INDEX IF NOT EXISTS vfs_nodes_one_root
    ON vfs_nodes (project_id) WHERE parent_id IS NULL
    """,
    "CREATE INDEX IF NOT EXISTS vfs_nodes_parent ON vfs_nodes (project_id, parent_id)",
)

_COLUMNS = "id, project_id, parent_id, node_type, name, content, metadata, created_at, updated_at"


def _row_to_node(row: aiosqlite.Row) -> VfsNode:
    return VfsNode(
        id=row["id"],
        project_id=row["project_id"],
        parent_id=row["parent_id"],
        node_type=NodeType(row["node_type"]),
        name=row["name"],
        content=row["content"],
        metadata=json.loads(row["metadata"] or "{}"),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _translate_integrity_error(error: sqlite3.IntegrityError, node: VfsNode) -> VfsError:
    if "UNIQUE" in str(error):
        return DuplicateNameError(node.name, node.name)
    if "FOREIGN KEY" in str(error) and node.parent_id is not None:
        return NotFoundError(node.parent_id, "parent node does not exist")
    return VfsError(node.name, f"constraint violated: {error}")


class _SQLiteTable:
    """VfsTable operations over an open connection. Never commits by itself."""

    def __init__(self, connection: aiosqlite.Connection) -> None:
        self._connection = connection

    async def _fetchone(self, sql: str, params: tuple[Any, ...]) -> aiosqlite.Row | None:
        async with self._connection.execute(sql, params) as cursor:
            return await cursor.fetchone()

    async def _fetchall(self, sql: str, params: tuple[Any, ...]) -> list[aiosqlite.Row]:
        async with self._connection.execute(sql, params) as cursor:
            return list(await cursor.fetchall())

    async def aget_node(self, project_id: str, node_id: str) -> VfsNode | None:
        row = await self._fetchone(
            f"SELECT {_COLUMNS} FROM vfs_nodes WHERE project_id = ? AND id = ?",  # nosec B608
            (project_id, node_id),
        )
        return _row_to_node(row) if row is not None else None

    async def aget_root(self, project_id: str) -> VfsNode | None:
        row = await self._fetchone(
            f"SELECT {_COLUMNS} FROM vfs_nodes "  # nosec B608
            "WHERE project_id = ? AND parent_id IS NULL",
            (project_id,),
        )
        return _row_to_node(row) if row is not None else None

    async def aget_child(self, project_id: str, parent_id: str, name: str) -> VfsNode | None:
        row = await self._fetchone(
            f"SELECT {_COLUMNS} FROM vfs_nodes "  # nosec B608
            "WHERE project_id = ? AND parent_id = ? AND name = ?",
            (project_id, parent_id, name),
        )
        return _row_to_node(row) if row is not None else None

    async def alist_children(self, project_id: str, parent_id: str) -> list[VfsNode]:
        rows = await self._fetchall(
            f"SELECT {_COLUMNS} FROM vfs_nodes "  # nosec B608
            "WHERE project_id = ? AND parent_id = ?",
            (project_id, parent_id),
        )
        return [_row_to_node(row) for row in rows]

    async def alist_nodes(self, project_id: str) -> list[VfsNode]:
        rows = await self._fetchall(
            f"SELECT {_COLUMNS} FROM vfs_nodes WHERE project_id = ?",  # nosec B608
            (project_id,),
        )
        return [_row_to_node(row) for row in rows]

    async def ainsert(self, node: VfsNode) -> VfsNode:
        try:
            await self._connection.execute(
                # nosec B608
                f"INSERT INTO vfs_nodes ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    node.id,
                    node.project_id,
                    node.parent_id,
                    node.node_type.value,
                    node.name,
                    node.content,
                    json.dumps(node.metadata),
                    node.created_at.isoformat(),
                    node.updated_at.isoformat(),
                ),
            )
        except sqlite3.IntegrityError as e:
            raise _translate_integrity_error(e, node) from e
        return node

    async def aupdate(self, node: VfsNode) -> VfsNode:
        try:
            cursor = await self._connection.execute(
                "UPDATE vfs_nodes SET parent_id = ?, name = ?, content = ?, metadata = ?, "
                "updated_at = ? WHERE project_id = ? AND id = ?",
                (
                    node.parent_id,
                    node.name,
                    node.content,
                    json.dumps(node.metadata),
                    node.updated_at.isoformat(),
                    node.project_id,
                    node.id,
                ),
            )
        except sqlite3.IntegrityError as e:
            raise _translate_integrity_error(e, node) from e
        if cursor.rowcount == 0:
            raise NotFoundError(node.id, "node does not exist")
        return node

    async def adelete_subtree(self, project_id: str, node_id: str) -> int:
        row = await self._fetchone(
            """
            WITH RECURSIVE subtree(id) AS (
                SELECT id FROM vfs_nodes WHERE project_id = ? AND id = ?
                UNION ALL
                SELECT n.id FROM vfs_nodes n JOIN subtree s ON n.parent_id = s.id
            )
            SELECT COUNT(*) FROM subtree
            """,
            (project_id, node_id),
        )
        removed = row[0] if row is not None else 0
        if removed:
            # Descendants go through ON DELETE CASCADE
            await self._connection.execute(
                "DELETE FROM vfs_nodes WHERE project_id = ? AND id = ?", (project_id, node_id)
            )
        return removed

    async def adelete_non_root(self, project_id: str) -> int:
        row = await self._fetchone(
            "SELECT COUNT(*) FROM vfs_nodes WHERE project_id = ? AND parent_id IS NOT NULL",
            (project_id,),
        )
        await self._connection.execute(
            "DELETE FROM vfs_nodes WHERE project_id = ? AND parent_id IS NOT NULL", (project_id,)
        )
        return row[0] if row is not None else 0


class SQLiteVfsBackend:
    """aiosqlite-backed VFS persistence.

    Parameters
    ----------
    db_path : str
        Database file, or ``":memory:"`` for a private in-memory database.
    timeout : float
        Connection busy timeout in seconds.
    journal_mode : SQLiteJournalMode
        SQLite journal mode applied on connect.

    Example
    -------
    .. code-block:: python

        backend = SQLiteVfsBackend("project.db")
        try:
            store = VfsNodeStore(backend)
            await store.afind_or_create("proj-1", "/src/")
        finally:
            await backend.aclose()
    """

    def __init__(
        self,
        db_path: str | Path = ":memory:",
        timeout: float = 5.0,
        journal_mode: SQLiteJournalMode = "WAL",
    ) -> None:
        self.db_path = str(db_path)
        self.timeout = timeout
        self.journal_mode = journal_mode
        self.connection: aiosqlite.Connection | None = None
        self._lock = asyncio.Lock()

    async def _ensure_database(self) -> aiosqlite.Connection:
        """Open the connection and create the schema on first use."""
        if self.connection is not None:
            return self.connection

        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        connection = await aiosqlite.connect(
            self.db_path, timeout=self.timeout, isolation_level=None
        )
        connection.row_factory = aiosqlite.Row
        await connection.execute(f"PRAGMA journal_mode = {self.journal_mode}")
        await connection.execute("PRAGMA foreign_keys = ON")
        for statement in _SCHEMA:
            await connection.execute(statement)
        self.connection = connection
        logger.debug("Opened SQLite VFS database at {path}", path=self.db_path)
        return connection

    @asynccontextmanager
    async def _table(self) -> AsyncIterator[_SQLiteTable]:
        async with self._lock:
            yield _SQLiteTable(await self._ensure_database())

    async def aget_node(self, project_id: str, node_id: str) -> VfsNode | None:
        async with self._table() as table:
            return await table.aget_node(project_id, node_id)

    async def aget_root(self, project_id: str) -> VfsNode | None:
        async with self._table() as table:
            return await table.aget_root(project_id)

    async def aget_child(self, project_id: str, parent_id: str, name: str) -> VfsNode | None:
        async with self._table() as table:
            return await table.aget_child(project_id, parent_id, name)

    async def alist_children(self, project_id: str, parent_id: str) -> list[VfsNode]:
        async with self._table() as table:
            return await table.alist_children(project_id, parent_id)

    async def alist_nodes(self, project_id: str) -> list[VfsNode]:
        async with self._table() as table:
            return await table.alist_nodes(project_id)

    async def ainsert(self, node: VfsNode) -> VfsNode:
        async with self._table() as table:
            return await table.ainsert(node)

    async def aupdate(self, node: VfsNode) -> VfsNode:
        async with self._table() as table:
            return await table.aupdate(node)

    async def adelete_subtree(self, project_id: str, node_id: str) -> int:
        async with self.transaction(project_id) as table:
            return await table.adelete_subtree(project_id, node_id)

    async def adelete_non_root(self, project_id: str) -> int:
        async with self.transaction(project_id) as table:
            return await table.adelete_non_root(project_id)

    @asynccontextmanager
    async def transaction(self, project_id: str) -> AsyncIterator[_SQLiteTable]:
        async with self._lock:
            connection = await self._ensure_database()
            await connection.execute("BEGIN IMMEDIATE")
            try:
                yield _SQLiteTable(connection)
            except BaseException:
                await connection.execute("ROLLBACK")
                logger.debug(
                    "Rolled back VFS transaction for project {project}", project=project_id
                )
                raise
            await connection.execute("COMMIT")

    async def aclose(self) -> None:
        """Close the database connection."""
        if self.connection is not None:
            await self.connection.close()
            self.connection = None


__all__ = ["SQLiteVfsBackend"]
