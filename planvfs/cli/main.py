"""planvfs CLI - Main entrypoint."""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path

import typer
from rich.console import Console

from planvfs import __version__
from planvfs.cli.commands import run_cmd, tools_cmd, vfs_cmd
from planvfs.compiler.config_loader import load_config
from planvfs.kernel.exceptions import ConfigurationError
from planvfs.kernel.logging import configure_logging, enable_stdlib_logging_bridge

# Create the main Typer app
app = typer.Typer(
    name="planvfs",
    help="planvfs - Execute tool plans against a project's virtual file store.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    pretty_exceptions_enable=False,
)

# Create console for rich output
console = Console()

# Add subcommands
app.command("run")(run_cmd.run_plan)
app.add_typer(tools_cmd.app, name="tools", help="Inspect the tool registry")
app.add_typer(vfs_cmd.app, name="vfs", help="Inspect and modify a project's VFS")


@app.callback()
def callback(
    ctx: typer.Context,
    *,
    config_path: Path | None = typer.Option(
        None, "--config", "-c", help="Config file (planvfs.toml, pyproject.toml or YAML)"
    ),
    db: Path | None = typer.Option(
        None, "--db", help="Use the SQLite backend with this database file"
    ),
    quiet: bool = typer.Option(False, "-q", "--quiet", help="Suppress non-error output"),
    verbose: bool = typer.Option(False, "-V", "--verbose", help="Enable verbose logging"),
    json_out: bool = typer.Option(False, "--json", help="Output machine-readable JSON"),
    yaml_out: bool = typer.Option(False, "--yaml", help="Output machine-readable YAML"),
    version: bool = typer.Option(False, "--version", "-v", help="Show version and exit"),
) -> None:
    """planvfs CLI.

    Global flags are parsed here and stored on `ctx.obj` for subcommands.
    """
    if version:
        console.print(f"[bold blue]planvfs[/bold blue] version [green]{__version__}[/green]")
        raise typer.Exit()

    if ctx.obj is None:
        ctx.obj = {}

    try:
        config = load_config(config_path)
    except (FileNotFoundError, ConfigurationError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1) from e

    if db is not None:
        config = replace(config, vfs=replace(config.vfs, backend="sqlite", database_path=str(db)))

    # Normalize output format preference
    output_format = None
    if json_out:
        output_format = "json"
    elif yaml_out:
        output_format = "yaml"

    level = config.logging.level
    if quiet:
        level = "ERROR"
    elif verbose:
        level = "DEBUG"

    configure_logging(
        level=level,
        format=config.logging.format,
        output_file=config.logging.output_file,
        use_color=config.logging.use_color,
        include_timestamp=config.logging.include_timestamp,
    )
    if config.logging.enable_stdlib_bridge:
        enable_stdlib_logging_bridge()

    ctx.obj.update({
        "config": config,
        "quiet": quiet,
        "verbose": verbose,
        "output_format": output_format,
    })


def main() -> None:
    """Main CLI entrypoint."""
    app()


if __name__ == "__main__":
    main()
