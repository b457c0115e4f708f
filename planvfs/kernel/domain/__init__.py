"""Domain layer exports for planvfs."""

from planvfs.kernel.domain.blueprint import ArchitectureBlueprint, BlueprintNode
from planvfs.kernel.domain.plan import Plan, PlanStep
from planvfs.kernel.domain.vfs import ROOT_NAME, NodeType, VfsEntry, VfsNode

__all__ = [
    # Plans
    "Plan",
    "PlanStep",
    # Blueprints
    "ArchitectureBlueprint",
    "BlueprintNode",
    # VFS domain models
    "ROOT_NAME",
    "NodeType",
    "VfsEntry",
    "VfsNode",
]
