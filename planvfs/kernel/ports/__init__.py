"""Port interfaces for the engine."""

from planvfs.kernel.ports.architect import ArchitectService
from planvfs.kernel.ports.observer_manager import (
    AsyncObserverFunc,
    Observer,
    ObserverFunc,
    ObserverManager,
)
from planvfs.kernel.ports.tool import Tool
from planvfs.kernel.ports.vfs_backend import VfsBackend, VfsTable

__all__ = [
    "ArchitectService",
    "AsyncObserverFunc",
    "Observer",
    "ObserverFunc",
    "ObserverManager",
    "Tool",
    "VfsBackend",
    "VfsTable",
]
