"""Tool that writes the project's VFS to a directory on disk.

Plans cannot choose arbitrary host paths: the tool is bound to an export root
chosen by the operator and every ``target_dir`` must resolve inside it.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field

from planvfs.stdlib.export import aexport_to_directory
from planvfs.stdlib.tools.base import BaseTool

if TYPE_CHECKING:
    from planvfs.kernel.context.execution_context import ExecutionContext


class ExportInput(BaseModel):
    model_config = ConfigDict(extra="ignore")

    target_dir: str = Field(
        default=".", description="Directory below the export root to write the project into"
    )
    clean: bool = Field(default=False, description="Empty the directory first")


class ExportVfsToDirectoryTool(BaseTool):
    name = "export_vfs_to_directory"
    description = (
        "Writes every file and directory of the project to a directory below the "
        "configured export root."
    )
    input_model = ExportInput

    def __init__(self, export_root: str | Path) -> None:
        self.export_root = Path(export_root).resolve()

    async def arun(self, context: ExecutionContext, params: ExportInput) -> dict[str, Any]:
        store, project_id = context.require_project(self.name)
        result = await aexport_to_directory(
            store, project_id, params.target_dir, clean=params.clean, root=self.export_root
        )
        return result.to_dict()


__all__ = ["ExportVfsToDirectoryTool"]
