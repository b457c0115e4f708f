"""Execution context for plan runs."""

from planvfs.kernel.context.execution_context import (
    ExecutionContext,
    RunScope,
    clear_execution_context,
    get_current_step_id,
    get_observer_manager,
    get_run_id,
    get_services,
    set_current_step_id,
)

__all__ = [
    "ExecutionContext",
    "RunScope",
    "clear_execution_context",
    "get_current_step_id",
    "get_observer_manager",
    "get_run_id",
    "get_services",
    "set_current_step_id",
]
