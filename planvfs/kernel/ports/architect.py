"""Architect port: the generative service that designs a project tree.

The engine never generates architectures itself. An implementation (typically
backed by an LLM) is supplied through ``ExecutionContext.services["architect"]``
and its output is treated as untrusted blueprint data.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class ArchitectService(Protocol):
    """Produces a blueprint for a described project."""

    @abstractmethod
    async def agenerate_architecture(
        self, name: str, description: str, project_type: str
    ) -> dict[str, Any]:
        """Design a project.

        Args
        ----
            name: Project name
            description: What the project should do
            project_type: Kind of project, e.g. ``"web-application"``

        Returns
        -------
            Blueprint data, either a folder node or the
            ``{"project": {"file_structure": ...}}`` envelope.
        """
        ...


__all__ = ["ArchitectService"]
