"""Base classes for building tools.

:class:`BaseTool` gives a tool pydantic input/output models, from which its
advisory JSON schemas are derived. :class:`FunctionTool` (and the
:func:`tool` decorator) turns a plain sync or async function into a tool,
with the schema generated from the function's signature.
"""

from __future__ import annotations

import asyncio
import inspect
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, ClassVar, overload

import pydantic
from pydantic import BaseModel, ConfigDict

from planvfs.kernel.exceptions import ValidationError

if TYPE_CHECKING:
    from planvfs.kernel.context.execution_context import ExecutionContext


class EmptyInput(BaseModel):
    """Input model for tools that take no arguments."""

    model_config = ConfigDict(extra="ignore")


class BaseTool(ABC):
    """Abstract base for class-based tools.

    Subclasses set ``name``, ``description`` and optionally ``input_model`` and
    ``output_model``, and implement :meth:`arun`.

    Examples
    --------
    Example usage::

        class EchoInput(BaseModel):
            text: str

        class EchoTool(BaseTool):
            name = "echo"
            description = "Return the given text"
            input_model = EchoInput

            async def arun(self, context, params: EchoInput) -> dict:
                return {"text": params.text}
    """

    name: ClassVar[str]
    description: ClassVar[str] = ""
    input_model: ClassVar[type[BaseModel]] = EmptyInput
    output_model: ClassVar[type[BaseModel] | None] = None

    @property
    def input_schema(self) -> dict[str, Any]:
        return self.input_model.model_json_schema()

    @property
    def output_schema(self) -> dict[str, Any]:
        if self.output_model is None:
            return {}
        return self.output_model.model_json_schema(by_alias=True)

    def parse_input(self, inputs: dict[str, Any]) -> BaseModel:
        """Validate raw step inputs against ``input_model``.

        Raises
        ------
        ValidationError
            If the inputs do not satisfy the model.
        """
        try:
            return self.input_model.model_validate(inputs)
        except pydantic.ValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(part) for part in first["loc"]) or self.name
            raise ValidationError(field, first["msg"], value=first.get("input")) from e

    async def execute(self, context: ExecutionContext, inputs: dict[str, Any]) -> Any:
        """Validate ``inputs`` and run the tool."""
        output = await self.arun(context, self.parse_input(inputs))
        if isinstance(output, BaseModel):
            return output.model_dump(by_alias=True)
        return output

    @abstractmethod
    async def arun(self, context: ExecutionContext, params: Any) -> Any:
        """Tool body, called with validated parameters."""
        ...

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"


def _schema_from_signature(fn: Callable[..., Any]) -> dict[str, Any]:
    """Build a JSON schema for the keyword parameters of ``fn``.

    The first parameter receives the execution context and is not part of the
    schema.
    """
    parameters = list(inspect.signature(fn).parameters.values())[1:]
    properties: dict[str, Any] = {}
    required: list[str] = []
    for param in parameters:
        if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
            continue
        annotation = param.annotation
        type_name = getattr(annotation, "__name__", str(annotation))
        properties[param.name] = {"type": type_name.replace("typing.", "")}
        if param.default is inspect.Parameter.empty:
            required.append(param.name)
    return {"type": "object", "properties": properties, "required": required}


class FunctionTool:
    """Adapt a plain function ``fn(context, **inputs)`` to the tool contract.

    Inputs that the function does not accept are dropped unless it takes
    ``**kwargs``.
    """

    def __init__(
        self,
        fn: Callable[..., Any],
        *,
        name: str | None = None,
        description: str | None = None,
        output_schema: dict[str, Any] | None = None,
    ) -> None:
        self.fn = fn
        self.name = name or fn.__name__
        self.description = description or (fn.__doc__ or "").strip().split("\n")[0]
        self._input_schema = _schema_from_signature(fn)
        self._output_schema = output_schema or {}
        signature = inspect.signature(fn)
        self._accepts_kwargs = any(
            p.kind is inspect.Parameter.VAR_KEYWORD for p in signature.parameters.values()
        )
        self._parameters = set(list(signature.parameters)[1:])

    @property
    def input_schema(self) -> dict[str, Any]:
        return self._input_schema

    @property
    def output_schema(self) -> dict[str, Any]:
        return self._output_schema

    async def execute(self, context: ExecutionContext, inputs: dict[str, Any]) -> Any:
        kwargs = (
            inputs
            if self._accepts_kwargs
            else {k: v for k, v in inputs.items() if k in self._parameters}
        )
        if asyncio.iscoroutinefunction(self.fn):
            return await self.fn(context, **kwargs)
        return self.fn(context, **kwargs)

    def __repr__(self) -> str:
        return f"FunctionTool(name={self.name!r})"


@overload
def tool(fn: Callable[..., Any], /) -> FunctionTool: ...


@overload
def tool(
    *, name: str | None = None, description: str | None = None
) -> Callable[[Callable[..., Any]], FunctionTool]: ...


def tool(
    fn: Callable[..., Any] | None = None,
    /,
    *,
    name: str | None = None,
    description: str | None = None,
) -> FunctionTool | Callable[[Callable[..., Any]], FunctionTool]:
    """Turn a function into a :class:`FunctionTool`.

    Examples
    --------
    >>> @tool
    ... def shout(context, text: str) -> str:
    ...     '''Upper-case the text.'''
    ...     return text.upper()
    >>> shout.name
    'shout'
    """

    def decorator(func: Callable[..., Any]) -> FunctionTool:
        return FunctionTool(func, name=name, description=description)

    if fn is not None:
        return decorator(fn)
    return decorator


__all__ = ["BaseTool", "EmptyInput", "FunctionTool", "tool"]
