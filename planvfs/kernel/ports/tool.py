"""Tool port: the contract every plan step dispatches to.

A tool has a unique name, advisory JSON schemas for its input and output, and a
single ``execute(context, inputs)`` operation that may be synchronous or
asynchronous and may raise. Input validation is the tool's own job.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from planvfs.kernel.context.execution_context import ExecutionContext


@runtime_checkable
class Tool(Protocol):
    """A named capability the workflow executor can invoke."""

    name: str
    description: str

    @property
    @abstractmethod
    def input_schema(self) -> dict[str, Any]:
        """JSON schema describing the accepted inputs (advisory)."""
        ...

    @property
    @abstractmethod
    def output_schema(self) -> dict[str, Any]:
        """JSON schema describing the produced output (advisory)."""
        ...

    @abstractmethod
    def execute(self, context: ExecutionContext, inputs: dict[str, Any]) -> Any:
        """Run the tool.

        Args
        ----
            context: The run's execution context
            inputs: Step inputs with all references resolved

        Returns
        -------
            The output value, or an awaitable producing it.
        """
        ...


__all__ = ["Tool"]
