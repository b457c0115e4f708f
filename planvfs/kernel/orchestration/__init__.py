"""Plan scheduling, input resolution and execution events."""

from planvfs.kernel.orchestration.input_resolver import (
    extract_step_references,
    resolve_inputs,
    resolve_value,
)
from planvfs.kernel.orchestration.plan_graph import PlanGraph
from planvfs.kernel.orchestration.workflow_executor import WorkflowExecutor, condition_holds

__all__ = [
    "PlanGraph",
    "WorkflowExecutor",
    "condition_holds",
    "extract_step_references",
    "resolve_inputs",
    "resolve_value",
]
