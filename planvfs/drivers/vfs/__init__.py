"""VFS persistence backends."""

from __future__ import annotations

from typing import TYPE_CHECKING

from planvfs.drivers.vfs.memory import InMemoryVfsBackend
from planvfs.drivers.vfs.sqlite import SQLiteVfsBackend

if TYPE_CHECKING:
    from planvfs.kernel.config.models import VfsConfig
    from planvfs.kernel.ports.vfs_backend import VfsBackend


def create_backend(config: VfsConfig) -> VfsBackend:
    """Build the backend selected by ``config.backend``."""
    if config.backend == "sqlite":
        return SQLiteVfsBackend(db_path=config.database_path)
    return InMemoryVfsBackend()


__all__ = ["InMemoryVfsBackend", "SQLiteVfsBackend", "create_backend"]
