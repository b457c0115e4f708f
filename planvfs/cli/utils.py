"""CLI helper utilities for planvfs commands."""

from __future__ import annotations

import json
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, Protocol

import typer
import yaml
from rich.console import Console

from planvfs.compiler.config_loader import get_default_config
from planvfs.drivers.vfs import create_backend
from planvfs.kernel.vfs.store import VfsNodeStore

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from planvfs.kernel.config.models import PlanVFSConfig


class ContextProtocol(Protocol):
    """Protocol for common interface between Click and Typer contexts."""

    @property
    def obj(self) -> dict[str, Any] | None: ...


console = Console()


def get_config(ctx: ContextProtocol | None) -> PlanVFSConfig:
    """Return the configuration loaded by the root callback."""
    obj = getattr(ctx, "obj", None)
    if isinstance(obj, dict) and obj.get("config") is not None:
        return obj["config"]
    return get_default_config()


def output_format(ctx: ContextProtocol | None) -> str | None:
    obj = getattr(ctx, "obj", None)
    if isinstance(obj, dict):
        return obj.get("output_format")
    return None


def print_output(data: Any, ctx: ContextProtocol | None = None) -> None:
    """Print ``data`` according to ``ctx.obj['output_format']``.

    If ctx is None or no format specified, pretty-print using rich.console.
    """
    fmt = output_format(ctx)
    if fmt == "json":
        typer.echo(json.dumps(data, default=str, indent=2))
    elif fmt == "yaml":
        typer.echo(yaml.safe_dump(data, sort_keys=False))
    elif isinstance(data, (str, int, float)):
        typer.echo(str(data))
    else:
        console.print(data)


@asynccontextmanager
async def open_store(config: PlanVFSConfig) -> AsyncIterator[VfsNodeStore]:
    """Open the configured backend for the duration of one command."""
    backend = create_backend(config.vfs)
    try:
        yield VfsNodeStore(backend, max_file_size=config.vfs.max_file_size)
    finally:
        await backend.aclose()
