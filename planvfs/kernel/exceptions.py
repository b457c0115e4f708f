"""Core exception hierarchy for planvfs.

All planvfs exceptions inherit from PlanVFSError so callers can catch the
whole family at once. Store-level errors carry the offending VFS path; executor
errors carry the step id and tool name of the failure.
"""

from __future__ import annotations

from typing import Any

# ============================================================================
# Base Exception
# ============================================================================


class PlanVFSError(Exception):
    """Base exception for all planvfs errors.

    Catch this to handle every error raised by the engine.
    """

    pass


# ============================================================================
# Configuration & Validation Errors
# ============================================================================


class ConfigurationError(PlanVFSError):
    """Raised when configuration is invalid or missing.

    Examples
    --------
    Example usage::

        raise ConfigurationError("create_vfs_file", "execution context has no project_id")
    """

    def __init__(self, component: str, reason: str) -> None:
        """Initialize configuration error.

        Args
        ----
            component: Name of the component with invalid configuration
            reason: Explanation of what's wrong
        """
        super().__init__(f"Configuration error in '{component}': {reason}")
        self.component = component
        self.reason = reason


class ValidationError(PlanVFSError):
    """Raised when data validation fails.

    Examples
    --------
    Example usage::

        raise ValidationError("path", "must be a string", value=42)
    """

    def __init__(self, field: str, constraint: str, value: object = None) -> None:
        """Initialize validation error.

        Args
        ----
            field: Name of the field that failed validation
            constraint: Description of the validation constraint
            value: The invalid value (optional)
        """
        if value is not None:
            msg = f"Validation failed for '{field}': {constraint} (got {value!r})"
        else:
            msg = f"Validation failed for '{field}': {constraint}"
        super().__init__(msg)
        self.field = field
        self.constraint = constraint
        self.value = value


class PlanValidationError(ValidationError):
    """Raised when a plan is structurally malformed (e.g. duplicate step ids)."""


# ============================================================================
# VFS Errors
# ============================================================================


class VfsError(PlanVFSError):
    """Base class for VFS node store errors.

    Examples
    --------
    Example usage::

        raise VfsError("/src/index.ts", "backend unavailable")
    """

    def __init__(self, path: str, reason: str) -> None:
        """Initialize VFS error.

        Args
        ----
            path: The VFS path (or node id) that caused the error
            reason: Explanation of what went wrong
        """
        super().__init__(f"VFS error at '{path}': {reason}")
        self.path = path
        self.reason = reason


class NotFoundError(VfsError):
    """Raised when a path or node id cannot be resolved within the project.

    Recoverable: callers typically fall back to creating the node.
    """


class DuplicateNameError(VfsError):
    """Raised when a sibling with the same name already exists.

    Recoverable: callers can re-resolve and use the existing node.
    """

    def __init__(self, path: str, name: str) -> None:
        super().__init__(path, f"a sibling named '{name}' already exists")
        self.name = name


class InvalidNodeTypeError(VfsError):
    """Raised when an operation is not valid for the node's type."""


class InvalidNameError(VfsError):
    """Raised when a node name is empty, reserved, or contains a separator."""


class RootNodeError(VfsError):
    """Raised when an operation would delete, rename or move a project root."""


class InvalidMoveError(VfsError):
    """Raised when a directory would be moved into its own subtree."""


class ContentSizeExceededError(VfsError):
    """Raised when a file's content exceeds the configured size limit."""

    def __init__(self, path: str, size: int, limit: int) -> None:
        super().__init__(path, f"content is {size} bytes, limit is {limit} bytes")
        self.size = size
        self.limit = limit


# ============================================================================
# Orchestration Errors
# ============================================================================


class CircularOrUnsatisfiedDependencyError(PlanVFSError):
    """Raised when no remaining plan step can become ready.

    Either the steps form a cycle or they depend on step ids that are not part
    of the plan. This is fatal and aborts the run before any affected step
    executes.
    """

    def __init__(
        self, remaining: list[str], unknown: dict[str, list[str]] | None = None
    ) -> None:
        self.remaining = list(remaining)
        self.unknown = dict(unknown or {})
        msg = (
            "Workflow stalled: circular or unsatisfied dependencies. "
            f"Remaining steps: {', '.join(self.remaining)}"
        )
        if self.unknown:
            details = "; ".join(
                f"{step_id} -> {', '.join(deps)}" for step_id, deps in self.unknown.items()
            )
            msg += f". Unknown dependencies: {details}"
        super().__init__(msg)


class ToolNotFoundError(PlanVFSError):
    """Raised when a plan step names a tool that is not registered."""

    def __init__(
        self, tool_name: str, step_id: str | None = None, available: list[str] | None = None
    ) -> None:
        self.tool_name = tool_name
        self.step_id = step_id
        self.available = available
        msg = f"Tool '{tool_name}' not found"
        if step_id is not None:
            msg += f" for step '{step_id}'"
        if available:
            msg += f". Available: {', '.join(available[:5])}"
            if len(available) > 5:
                msg += f" ... and {len(available) - 5} more"
        super().__init__(msg)


class ToolExecutionError(PlanVFSError):
    """Raised when a tool fails while executing a plan step.

    The original exception is kept both as ``original_error`` and as the
    ``__cause__`` of this error. ``completed_outputs`` holds the outputs of the
    steps that finished before the run was aborted.
    """

    def __init__(self, step_id: str, tool_name: str, original_error: BaseException) -> None:
        self.step_id = step_id
        self.tool_name = tool_name
        self.original_error = original_error
        self.completed_outputs: dict[str, Any] = {}
        super().__init__(f"Step '{step_id}' (tool '{tool_name}') failed: {original_error}")


__all__ = [
    # Base
    "PlanVFSError",
    # Configuration & Validation
    "ConfigurationError",
    "ValidationError",
    "PlanValidationError",
    # VFS
    "VfsError",
    "NotFoundError",
    "DuplicateNameError",
    "InvalidNodeTypeError",
    "InvalidNameError",
    "RootNodeError",
    "InvalidMoveError",
    "ContentSizeExceededError",
    # Orchestration
    "CircularOrUnsatisfiedDependencyError",
    "ToolNotFoundError",
    "ToolExecutionError",
]
