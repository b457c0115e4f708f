"""Tool registry: name -> tool lookup for the workflow executor.

A registry is an explicit instance built at startup and injected into the
executor; there is no process-wide singleton.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

from planvfs.kernel.exceptions import ToolNotFoundError
from planvfs.kernel.logging import get_logger
from planvfs.kernel.ports.tool import Tool

logger = get_logger(__name__)


class ToolRegistry:
    """Mapping of tool names to tools.

    Examples
    --------
    Example usage::

        registry = ToolRegistry()
        register_builtin_tools(registry)
        registry.get("create_vfs_file")
    """

    def __init__(self, tools: list[Tool] | None = None) -> None:
        self._tools: dict[str, Tool] = {}
        for item in tools or ():
            self.register(item)

    def register(self, tool: Tool) -> Tool:
        """Register ``tool`` under its name.

        A tool already registered under that name is replaced, with a warning.

        Raises
        ------
        TypeError
            If ``tool`` does not satisfy the tool contract.
        """
        if not isinstance(tool, Tool):
            raise TypeError(f"Expected a Tool, got {type(tool).__name__}")
        if tool.name in self._tools:
            logger.warning("Tool '{name}' is already registered; overwriting", name=tool.name)
        self._tools[tool.name] = tool
        return tool

    def unregister(self, name: str) -> bool:
        """Remove a tool; True if it was registered."""
        return self._tools.pop(name, None) is not None

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def require(self, name: str, step_id: str | None = None) -> Tool:
        """Return the tool called ``name``.

        Raises
        ------
        ToolNotFoundError
            If no such tool is registered.
        """
        found = self._tools.get(name)
        if found is None:
            raise ToolNotFoundError(name, step_id=step_id, available=sorted(self._tools))
        return found

    def list(self) -> list[Tool]:
        """Return all registered tools in registration order."""
        return list(self._tools.values())

    def names(self) -> list[str]:
        return list(self._tools)

    def describe(self) -> list[dict[str, Any]]:
        """Capability descriptors for planners, JSON-ready."""
        return [
            {
                "name": item.name,
                "description": item.description,
                "input_schema": item.input_schema,
                "output_schema": item.output_schema,
            }
            for item in self._tools.values()
        ]

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def __iter__(self) -> Iterator[Tool]:
        return iter(list(self._tools.values()))


__all__ = ["ToolRegistry"]
