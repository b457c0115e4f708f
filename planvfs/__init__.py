"""planvfs - execute tool plans against a project's virtual file store.

An external planner emits a :class:`Plan` of tool calls; the
:class:`WorkflowExecutor` runs them in dependency order against a
:class:`VfsNodeStore`, feeding each step's output into later steps.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("planvfs")
except PackageNotFoundError:
    __version__ = "0.0.0.dev0"  # Fallback for source checkouts

from planvfs.drivers.observer_manager.local import LocalObserverManager
from planvfs.drivers.vfs import InMemoryVfsBackend, SQLiteVfsBackend, create_backend
from planvfs.kernel.context import ExecutionContext
from planvfs.kernel.domain import ArchitectureBlueprint, BlueprintNode, Plan, PlanStep, VfsNode
from planvfs.kernel.exceptions import (
    CircularOrUnsatisfiedDependencyError,
    PlanVFSError,
    ToolExecutionError,
    ToolNotFoundError,
)
from planvfs.kernel.orchestration import WorkflowExecutor
from planvfs.kernel.registry import ToolRegistry
from planvfs.kernel.vfs import ArchitectureSynchronizer, VfsNodeStore
from planvfs.stdlib.tools import BaseTool, FunctionTool, register_builtin_tools, tool

__all__ = [
    "ArchitectureBlueprint",
    "ArchitectureSynchronizer",
    "BaseTool",
    "BlueprintNode",
    "CircularOrUnsatisfiedDependencyError",
    "ExecutionContext",
    "FunctionTool",
    "InMemoryVfsBackend",
    "LocalObserverManager",
    "Plan",
    "PlanStep",
    "PlanVFSError",
    "SQLiteVfsBackend",
    "ToolExecutionError",
    "ToolNotFoundError",
    "ToolRegistry",
    "VfsNode",
    "VfsNodeStore",
    "WorkflowExecutor",
    "__version__",
    "create_backend",
    "register_builtin_tools",
    "tool",
]
