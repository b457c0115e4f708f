"""Run a plan against a project's VFS."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Any

import typer
from rich.table import Table

from planvfs.cli.utils import console, get_config, open_store, output_format, print_output
from planvfs.compiler.plan_loader import load_plan
from planvfs.drivers.observer_manager.local import LocalObserverManager
from planvfs.kernel.context.execution_context import ExecutionContext
from planvfs.kernel.exceptions import PlanVFSError, ToolExecutionError
from planvfs.kernel.orchestration.events import (
    Event,
    StepCompleted,
    StepFailed,
    StepSkipped,
    StepStarted,
)
from planvfs.kernel.orchestration.workflow_executor import WorkflowExecutor
from planvfs.kernel.registry import ToolRegistry
from planvfs.kernel.retry import RetryConfig, execute_with_retry
from planvfs.stdlib.tools import register_builtin_tools

if TYPE_CHECKING:
    from planvfs.kernel.config.models import PlanVFSConfig
    from planvfs.kernel.domain.plan import Plan

PROGRESS_EVENTS = (StepStarted, StepCompleted, StepSkipped, StepFailed)


async def _print_progress(event: Event) -> None:
    if isinstance(event, StepStarted):
        console.print(f"[cyan]▶[/cyan] {event.step_id} [dim]({event.tool})[/dim]")
    elif isinstance(event, StepCompleted):
        console.print(f"[green]✓[/green] {event.step_id} [dim]{event.duration_ms:.1f}ms[/dim]")
    elif isinstance(event, StepSkipped):
        console.print(f"[yellow]⏭[/yellow] {event.step_id} [dim]skipped[/dim]")
    elif isinstance(event, StepFailed):
        console.print(f"[red]✗[/red] {event.step_id}: {event.error}")


async def _arun_plan(
    plan: Plan,
    config: PlanVFSConfig,
    *,
    project_id: str,
    parallel: bool,
    max_concurrency: int,
    retries: int,
    show_progress: bool,
) -> dict[str, Any]:
    registry = register_builtin_tools(
        ToolRegistry(),
        max_file_size=config.vfs.max_file_size,
        export_root=config.vfs.export_root,
    )
    async with open_store(config) as store, LocalObserverManager() as observers:
        if show_progress:
            observers.register(
                _print_progress, observer_id="cli-progress", event_types=PROGRESS_EVENTS
            )
        executor = WorkflowExecutor(
            registry,
            observer_manager=observers,
            parallel=parallel,
            max_concurrency=max_concurrency,
        )
        retry = RetryConfig(max_retries=retries, delay=config.executor.retry_delay)
        return await execute_with_retry(
            lambda: executor.execute(plan, ExecutionContext(project_id=project_id, store=store)),
            retry,
        )


def _outputs_table(outputs: dict[str, Any]) -> Table:
    table = Table(title="Step outputs")
    table.add_column("Step", style="cyan")
    table.add_column("Output")
    for step_id, output in outputs.items():
        table.add_row(step_id, "[dim]skipped[/dim]" if output is None else repr(output))
    return table


def run_plan(
    ctx: typer.Context,
    plan_path: Annotated[Path, typer.Argument(help="Path to a plan JSON or YAML file")],
    project: Annotated[
        str | None, typer.Option("--project", "-p", help="Project id (defaults to config)")
    ] = None,
    retries: Annotated[
        int | None, typer.Option("--retries", help="Total attempts for the whole run")
    ] = None,
    sequential: Annotated[
        bool, typer.Option("--sequential", help="Run the steps of a ready set one by one")
    ] = False,
    max_concurrency: Annotated[
        int | None, typer.Option("--max-concurrency", help="Concurrent step limit")
    ] = None,
    validate_only: Annotated[
        bool, typer.Option("--validate", help="Check the plan and print its levels only")
    ] = False,
) -> None:
    """Execute a plan of tool calls against the project's VFS."""
    config = get_config(ctx)
    quiet = bool((ctx.obj or {}).get("quiet", False))
    if not plan_path.exists():
        console.print(f"[red]Error: Plan file not found: {plan_path}[/red]")
        raise typer.Exit(1)

    try:
        plan = load_plan(plan_path)
        if validate_only:
            registry = register_builtin_tools(
                ToolRegistry(), export_root=config.vfs.export_root
            )
            levels = WorkflowExecutor(registry).validate(plan).levels()
            print_output({"name": plan.name, "levels": levels}, ctx)
            return

        outputs = asyncio.run(
            _arun_plan(
                plan,
                config,
                project_id=project or config.vfs.default_project_id,
                parallel=config.executor.parallel and not sequential,
                max_concurrency=max_concurrency or config.executor.max_concurrency,
                retries=retries or config.executor.retries,
                show_progress=output_format(ctx) is None and not quiet,
            )
        )
    except ToolExecutionError as e:
        console.print(f"[red]Step '{e.step_id}' ({e.tool_name}) failed: {e.original_error}[/red]")
        console.print(f"[dim]{len(e.completed_outputs)} step(s) completed before the failure[/dim]")
        raise typer.Exit(1) from e
    except PlanVFSError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1) from e

    if output_format(ctx) is None:
        console.print(_outputs_table(outputs))
    else:
        print_output(outputs, ctx)
