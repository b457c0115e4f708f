"""Tools that design a project architecture and apply it to the VFS."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field

from planvfs.kernel.domain.blueprint import ArchitectureBlueprint
from planvfs.kernel.exceptions import ConfigurationError
from planvfs.kernel.ports.architect import ArchitectService
from planvfs.kernel.vfs.synchronizer import DEFAULT_MAX_FILE_SIZE, ArchitectureSynchronizer
from planvfs.stdlib.tools.base import BaseTool

if TYPE_CHECKING:
    from planvfs.kernel.context.execution_context import ExecutionContext


class SyncArchitectureInput(BaseModel):
    model_config = ConfigDict(extra="ignore")

    blueprint: dict[str, Any] | list[Any] = Field(
        description="Blueprint folder node, node list, or architect envelope"
    )


class SyncProjectArchitectureTool(BaseTool):
    """Replace the project's whole tree with a blueprint, atomically."""

    name = "sync_project_architecture"
    description = (
        "Replaces every file and directory of the project with the given blueprint. "
        "Runs as a single transaction: on failure the project is left unchanged."
    )
    input_model = SyncArchitectureInput

    def __init__(self, max_file_size: int = DEFAULT_MAX_FILE_SIZE) -> None:
        self.max_file_size = max_file_size

    async def arun(
        self, context: ExecutionContext, params: SyncArchitectureInput
    ) -> dict[str, Any]:
        store, project_id = context.require_project(self.name)
        synchronizer = ArchitectureSynchronizer(store, max_file_size=self.max_file_size)
        result = await synchronizer.sync(project_id, params.blueprint)
        return result.to_dict()


class CreateArchitectureInput(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    name: str = Field(description="The name of the project")
    description: str = Field(description="A description of the project")
    project_type: str = Field(
        default="web-application", alias="type", description="The type of project"
    )


class CreateProjectArchitectureTool(BaseTool):
    """Ask the configured architect service to design a project.

    The result is validated as a blueprint before it is returned, so a later
    ``sync_project_architecture`` step can consume it by reference.
    """

    name = "create_project_architecture"
    description = (
        "Analyzes a project request and generates a project architecture "
        "(file structure with initial contents) using the architect service."
    )
    input_model = CreateArchitectureInput

    async def arun(
        self, context: ExecutionContext, params: CreateArchitectureInput
    ) -> dict[str, Any]:
        architect = context.require_service(self.name, "architect")
        if not isinstance(architect, ArchitectService):
            raise ConfigurationError(
                self.name, f"service 'architect' does not implement ArchitectService: {architect!r}"
            )
        result = await architect.agenerate_architecture(
            params.name, params.description, params.project_type
        )
        ArchitectureBlueprint.parse(result)
        return result


__all__ = ["CreateProjectArchitectureTool", "SyncProjectArchitectureTool"]
