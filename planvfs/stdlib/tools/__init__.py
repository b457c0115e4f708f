"""Built-in tools.

Use :func:`register_builtin_tools` to populate a registry with the tools
shipped with planvfs.
"""

from __future__ import annotations

from pathlib import Path

from planvfs.kernel.registry import ToolRegistry
from planvfs.kernel.vfs.synchronizer import DEFAULT_MAX_FILE_SIZE
from planvfs.stdlib.tools.architecture_tools import (
    CreateProjectArchitectureTool,
    SyncProjectArchitectureTool,
)
from planvfs.stdlib.tools.base import BaseTool, EmptyInput, FunctionTool, tool
from planvfs.stdlib.tools.export_tools import ExportVfsToDirectoryTool
from planvfs.stdlib.tools.vfs_tools import VFS_TOOLS


def register_builtin_tools(
    registry: ToolRegistry,
    *,
    max_file_size: int = DEFAULT_MAX_FILE_SIZE,
    export_root: str | Path | None = None,
) -> ToolRegistry:
    """Register the built-in tools on ``registry`` and return it.

    ``export_vfs_to_directory`` writes to the host file system, so it is only
    registered when ``export_root`` is given; exports are confined below it.
    """
    for tool_class in VFS_TOOLS:
        registry.register(tool_class())
    registry.register(SyncProjectArchitectureTool(max_file_size=max_file_size))
    registry.register(CreateProjectArchitectureTool())
    if export_root is not None:
        registry.register(ExportVfsToDirectoryTool(export_root))
    return registry


__all__ = [
    "BaseTool",
    "EmptyInput",
    "FunctionTool",
    "register_builtin_tools",
    "tool",
]
