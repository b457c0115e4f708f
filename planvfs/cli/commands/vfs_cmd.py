"""Inspect and manipulate a project's VFS from the command line."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Any

import typer
from rich.tree import Tree

from planvfs.cli.utils import console, get_config, open_store, output_format, print_output
from planvfs.compiler.plan_loader import load_blueprint
from planvfs.kernel.exceptions import PlanVFSError
from planvfs.kernel.vfs.synchronizer import ArchitectureSynchronizer
from planvfs.stdlib.export import aexport_to_directory

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from planvfs.kernel.config.models import PlanVFSConfig
    from planvfs.kernel.vfs.store import VfsNodeStore
    from planvfs.kernel.vfs.tree import VfsTree

app = typer.Typer()

ProjectOption = Annotated[
    str | None, typer.Option("--project", "-p", help="Project id (defaults to config)")
]


def _run(
    ctx: typer.Context,
    project: str | None,
    action: Callable[[VfsNodeStore, str, PlanVFSConfig], Awaitable[Any]],
) -> Any:
    """Open the configured store, run ``action`` and turn errors into exit codes."""
    config = get_config(ctx)
    project_id = project or config.vfs.default_project_id

    async def _arun() -> Any:
        async with open_store(config) as store:
            return await action(store, project_id, config)

    try:
        return asyncio.run(_arun())
    except PlanVFSError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1) from e


def _render_tree(tree: VfsTree, project_id: str) -> Tree:
    rendered = Tree(f"[bold]{project_id}[/bold] /")
    if tree.root is None:
        return rendered

    def add(branch: Tree, node_id: str) -> None:
        for child in tree.children(node_id):
            if child.is_directory:
                add(branch.add(f"[bold blue]{child.name}/[/bold blue]"), child.id)
            else:
                branch.add(child.name)

    add(rendered, tree.root.id)
    return rendered


@app.command("tree")
def show_tree(ctx: typer.Context, project: ProjectOption = None) -> None:
    """Print the project's file tree."""

    async def action(store: VfsNodeStore, project_id: str, _: PlanVFSConfig) -> VfsTree:
        return await store.aget_tree(project_id)

    tree = _run(ctx, project, action)
    if output_format(ctx) is None:
        console.print(_render_tree(tree, project or get_config(ctx).vfs.default_project_id))
        return
    entries = [] if tree.root is None else list(tree.descendants(tree.root.id))
    print_output([entry.to_dict() for entry in entries], ctx)


@app.command("cat")
def cat_file(
    ctx: typer.Context,
    path: Annotated[str, typer.Argument(help="VFS path of the file")],
    project: ProjectOption = None,
) -> None:
    """Print a file's content."""

    async def action(store: VfsNodeStore, project_id: str, _: PlanVFSConfig) -> str:
        node = await store.arequire_path(project_id, path)
        return node.content or ""

    typer.echo(_run(ctx, project, action))


@app.command("sync")
def sync_blueprint(
    ctx: typer.Context,
    blueprint_path: Annotated[Path, typer.Argument(help="Blueprint JSON or YAML file")],
    project: ProjectOption = None,
) -> None:
    """Replace the project's tree with a blueprint."""
    if not blueprint_path.exists():
        console.print(f"[red]Error: Blueprint file not found: {blueprint_path}[/red]")
        raise typer.Exit(1)

    async def action(store: VfsNodeStore, project_id: str, config: PlanVFSConfig) -> Any:
        blueprint = load_blueprint(blueprint_path)
        synchronizer = ArchitectureSynchronizer(store, max_file_size=config.vfs.max_file_size)
        return await synchronizer.sync(project_id, blueprint)

    result = _run(ctx, project, action)
    if output_format(ctx) is None:
        console.print(
            f"[green]✓ Synchronized:[/green] {result.files} file(s), "
            f"{result.directories} director(ies)"
        )
    else:
        print_output(result.to_dict(), ctx)


@app.command("export")
def export_project(
    ctx: typer.Context,
    target_dir: Annotated[Path, typer.Argument(help="Directory to write the project into")],
    project: ProjectOption = None,
    clean: Annotated[bool, typer.Option("--clean", help="Empty the directory first")] = False,
) -> None:
    """Write the project's files to a local directory."""

    async def action(store: VfsNodeStore, project_id: str, _: PlanVFSConfig) -> Any:
        return await aexport_to_directory(store, project_id, target_dir, clean=clean)

    result = _run(ctx, project, action)
    if output_format(ctx) is None:
        console.print(
            f"[green]✓ Exported[/green] {result.files} file(s) "
            f"to [cyan]{result.target_dir}[/cyan]"
        )
    else:
        print_output(result.to_dict(), ctx)


@app.command("version")
def project_version(ctx: typer.Context, project: ProjectOption = None) -> None:
    """Print the project's content version hash."""

    async def action(store: VfsNodeStore, project_id: str, _: PlanVFSConfig) -> str:
        return await store.acompute_project_version(project_id)

    version = _run(ctx, project, action)
    if output_format(ctx) is None:
        typer.echo(version)
    else:
        print_output({"version": version}, ctx)
