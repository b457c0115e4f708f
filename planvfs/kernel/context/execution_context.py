"""Execution context for plan runs.

Two layers live here:

- :class:`ExecutionContext` is the per-run value handed to every tool call:
  which project to mutate, which store to use and which named collaborators
  (such as the architect service) are available.
- Context variables carry cross-cutting run state (run id, current step,
  observer manager) through async call chains without parameter drilling.
  :class:`RunScope` sets and clears them around a run.
"""

from __future__ import annotations

import uuid
from contextvars import ContextVar, Token
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from planvfs.kernel.exceptions import ConfigurationError
from planvfs.kernel.logging import reset_correlation_id, set_correlation_id

if TYPE_CHECKING:
    from planvfs.kernel.ports.observer_manager import ObserverManager
    from planvfs.kernel.vfs.store import VfsNodeStore


@dataclass
class ExecutionContext:
    """Per-run context passed by reference to every tool.

    Attributes
    ----------
    run_id : str
        Identifier of the run; also used as the log correlation id.
    project_id : str | None
        Project whose VFS the tools operate on.
    user_id : str | None
        Acting user, informational only.
    store : VfsNodeStore | None
        Node store the VFS tools mutate.
    services : dict[str, Any]
        Named collaborators, e.g. ``{"architect": ...}``.
    metadata : dict[str, Any]
        Free-form values shared between tools of one run.
    """

    run_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    project_id: str | None = None
    user_id: str | None = None
    store: VfsNodeStore | None = None
    services: dict[str, Any] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)

    def require_project(self, component: str) -> tuple[VfsNodeStore, str]:
        """Return ``(store, project_id)`` or fail for tools that need a VFS scope.

        Raises
        ------
        ConfigurationError
            If the context has no store or no project id.
        """
        if self.store is None:
            raise ConfigurationError(component, "execution context has no VFS store")
        if not self.project_id:
            raise ConfigurationError(component, "execution context has no project_id")
        return self.store, self.project_id

    def require_service(self, component: str, name: str) -> Any:
        """Return a named service or raise ``ConfigurationError``."""
        try:
            return self.services[name]
        except KeyError:
            raise ConfigurationError(component, f"service '{name}' is not configured") from None


# Context variables for run-wide state (async-safe)
_run_id_context: ContextVar[str | None] = ContextVar("run_id", default=None)
_current_step_context: ContextVar[str | None] = ContextVar("current_step", default=None)
_observer_manager_context: ContextVar[ObserverManager | None] = ContextVar(
    "observer_manager", default=None
)
_services_context: ContextVar[MappingProxyType[str, Any] | None] = ContextVar(
    "services", default=None
)


def set_run_id(run_id: str | None) -> None:
    _run_id_context.set(run_id)


def get_run_id() -> str | None:
    """Return the id of the run executing in this context, if any."""
    return _run_id_context.get()


def set_current_step_id(step_id: str | None) -> None:
    """Record the step being executed by the current task."""
    _current_step_context.set(step_id)


def get_current_step_id() -> str | None:
    return _current_step_context.get()


def set_observer_manager(manager: ObserverManager | None) -> None:
    _observer_manager_context.set(manager)


def get_observer_manager() -> ObserverManager | None:
    """Return the observer manager of the current run, if any."""
    return _observer_manager_context.get()


def get_services() -> MappingProxyType[str, Any]:
    """Return the read-only services mapping of the current run."""
    return _services_context.get() or MappingProxyType({})


def clear_execution_context() -> None:
    """Clear all run context variables.

    Useful for cleanup after a run or in tests.
    """
    _run_id_context.set(None)
    _current_step_context.set(None)
    _observer_manager_context.set(None)
    _services_context.set(None)


class RunScope:
    """Async context manager that publishes run state for its duration.

    Examples
    --------
    Example usage::

        async with RunScope(context, observer_manager=observers):
            await run_steps()
    """

    def __init__(
        self, context: ExecutionContext, observer_manager: ObserverManager | None = None
    ) -> None:
        self.context = context
        self.observer_manager = observer_manager
        self._cid_token: Token[str] | None = None

    async def __aenter__(self) -> RunScope:
        set_run_id(self.context.run_id)
        set_observer_manager(self.observer_manager)
        _services_context.set(MappingProxyType(dict(self.context.services)))
        self._cid_token = set_correlation_id(self.context.run_id)
        return self

    async def __aexit__(self, _exc_type: Any, _exc_val: Any, _exc_tb: Any) -> None:
        if self._cid_token is not None:
            reset_correlation_id(self._cid_token)
            self._cid_token = None
        clear_execution_context()


__all__ = [
    "ExecutionContext",
    "RunScope",
    "clear_execution_context",
    "get_current_step_id",
    "get_observer_manager",
    "get_run_id",
    "get_services",
    "set_current_step_id",
    "set_observer_manager",
    "set_run_id",
]
