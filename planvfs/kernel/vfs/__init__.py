"""Path-addressed virtual file store."""

from planvfs.kernel.vfs.paths import SEPARATOR, normalize_path, split_path
from planvfs.kernel.vfs.store import VfsNodeStore
from planvfs.kernel.vfs.synchronizer import ArchitectureSynchronizer, SyncResult
from planvfs.kernel.vfs.tree import VfsTree

__all__ = [
    "SEPARATOR",
    "ArchitectureSynchronizer",
    "SyncResult",
    "VfsNodeStore",
    "VfsTree",
    "normalize_path",
    "split_path",
]
