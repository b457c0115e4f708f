"""Domain models for the virtual file store (VFS).

A project's files live in a flat table of :class:`VfsNode` rows linked by
``parent_id``. The tree shape is derived: exactly one root per project (the
node whose ``parent_id`` is None), and sibling names are unique.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

ROOT_NAME = "/"


class NodeType(StrEnum):
    """Type of a VFS node."""

    FILE = "FILE"
    DIRECTORY = "DIRECTORY"


def _utcnow() -> datetime:
    return datetime.now(UTC)


def new_node_id() -> str:
    """Generate a fresh node id."""
    return str(uuid.uuid4())


class VfsNode(BaseModel):
    """A single file or directory in a project's VFS.

    Nodes are immutable; updates go through ``model_copy(update=...)`` and
    backends may share instances.

    Attributes
    ----------
    id : str
        Unique node id (uuid4).
    project_id : str
        Owning project.
    parent_id : str | None
        Parent directory id; None only for the project root.
    node_type : NodeType
        FILE or DIRECTORY.
    name : str
        Name, unique among siblings. The root is named ``/``.
    content : str | None
        File content. Always None for directories.
    metadata : dict[str, Any]
        Opaque metadata.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_node_id)
    project_id: str
    parent_id: str | None = None
    node_type: NodeType
    name: str
    content: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @model_validator(mode="after")
    def _directories_have_no_content(self) -> VfsNode:
        if self.node_type is NodeType.DIRECTORY and self.content is not None:
            raise ValueError("directories cannot hold content")
        return self

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    @property
    def is_file(self) -> bool:
        return self.node_type is NodeType.FILE

    @property
    def is_directory(self) -> bool:
        return self.node_type is NodeType.DIRECTORY

    def touched(self, **changes: Any) -> VfsNode:
        """Return a copy with ``changes`` applied and ``updated_at`` refreshed."""
        return self.model_copy(update={**changes, "updated_at": _utcnow()})


class VfsEntry(BaseModel):
    """A node together with its absolute path, as returned by listings."""

    path: str
    node: VfsNode

    @property
    def name(self) -> str:
        return self.node.name

    @property
    def node_type(self) -> NodeType:
        return self.node.node_type

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready listing entry used by tool outputs."""
        return {
            "name": self.node.name,
            "path": self.path,
            "type": self.node.node_type.value,
            "nodeId": self.node.id,
        }


__all__ = ["ROOT_NAME", "NodeType", "VfsEntry", "VfsNode", "new_node_id"]
