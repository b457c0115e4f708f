"""Inspect the built-in tool registry."""

from __future__ import annotations

import json
from typing import Annotated

import typer
from rich.table import Table

from planvfs.cli.utils import console, get_config, output_format, print_output
from planvfs.kernel.registry import ToolRegistry
from planvfs.stdlib.tools import register_builtin_tools

app = typer.Typer()


def _registry(ctx: typer.Context) -> ToolRegistry:
    config = get_config(ctx)
    return register_builtin_tools(
        ToolRegistry(),
        max_file_size=config.vfs.max_file_size,
        export_root=config.vfs.export_root,
    )


@app.command("list")
def list_tools(ctx: typer.Context) -> None:
    """List every registered tool."""
    registry = _registry(ctx)
    if output_format(ctx) is not None:
        print_output(registry.describe(), ctx)
        return

    table = Table(title="Tools")
    table.add_column("Name", style="cyan")
    table.add_column("Description")
    for item in registry:
        table.add_row(item.name, item.description)
    console.print(table)


@app.command("describe")
def describe_tool(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Tool name")],
) -> None:
    """Show a tool's description and input/output schemas."""
    registry = _registry(ctx)
    found = registry.get(name)
    if found is None:
        console.print(f"[red]Error: Unknown tool '{name}'[/red]")
        console.print(f"[dim]Available: {', '.join(sorted(registry.names()))}[/dim]")
        raise typer.Exit(1)

    descriptor = next(d for d in registry.describe() if d["name"] == name)
    if output_format(ctx) is not None:
        print_output(descriptor, ctx)
        return

    console.print(f"[bold cyan]{found.name}[/bold cyan]")
    console.print(found.description)
    console.print("\n[bold]Input schema[/bold]")
    console.print_json(json.dumps(descriptor["input_schema"]))
    if descriptor["output_schema"]:
        console.print("\n[bold]Output schema[/bold]")
        console.print_json(json.dumps(descriptor["output_schema"]))
