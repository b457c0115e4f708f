"""Architecture blueprint: a generated file/folder tree to materialize.

Wire format (recursive)::

    {"type": "folder", "name": "app", "children": [
        {"type": "file", "name": "page.tsx", "content": "..."}
    ]}

The envelope produced by the architect service,
``{"project": {"file_structure": <folder>}}``, is accepted as well.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


class BlueprintNode(BaseModel):
    """A file or folder in a blueprint."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    type: Literal["file", "folder"]
    name: str
    content: str | None = None
    children: list[BlueprintNode] = Field(default_factory=list)

    @model_validator(mode="after")
    def _only_folders_have_children(self) -> BlueprintNode:
        if self.type == "file" and self.children:
            raise ValueError(f"file '{self.name}' cannot have children")
        if self.type == "folder" and self.content is not None:
            raise ValueError(f"folder '{self.name}' cannot have content")
        return self

    @property
    def is_folder(self) -> bool:
        return self.type == "folder"

    def count(self) -> tuple[int, int]:
        """Return ``(files, folders)`` in this subtree, including this node."""
        if not self.is_folder:
            return 1, 0
        files, folders = 0, 1
        for child in self.children:
            child_files, child_folders = child.count()
            files += child_files
            folders += child_folders
        return files, folders


class ArchitectureBlueprint(BaseModel):
    """Top-level blueprint: the nodes to place under the project root.

    Every blueprint node becomes a VFS node, so a single top-level folder
    ``app`` materializes as ``/app``.
    """

    model_config = ConfigDict(frozen=True)

    nodes: list[BlueprintNode] = Field(default_factory=list)

    @classmethod
    def parse(cls, data: Any) -> ArchitectureBlueprint:
        """Build a blueprint from any accepted wire shape.

        Raises
        ------
        pydantic.ValidationError
            If ``data`` does not match the blueprint schema.
        """
        if isinstance(data, ArchitectureBlueprint):
            return data
        if isinstance(data, BlueprintNode):
            data = data.model_dump()
        if isinstance(data, dict) and "project" in data:
            data = data["project"].get("file_structure", {})
        if isinstance(data, dict) and "nodes" in data and "type" not in data:
            return cls.model_validate(data)
        if isinstance(data, dict):
            return cls(nodes=[BlueprintNode.model_validate(data)])
        return cls(nodes=[BlueprintNode.model_validate(item) for item in data])

    def count(self) -> tuple[int, int]:
        """Return ``(files, folders)`` the blueprint will create."""
        files = folders = 0
        for node in self.nodes:
            node_files, node_folders = node.count()
            files += node_files
            folders += node_folders
        return files, folders


__all__ = ["ArchitectureBlueprint", "BlueprintNode"]
