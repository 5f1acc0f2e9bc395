"""
CLI module - Command line interface for Flash Workflow

Entry point for the `fwf` command using Typer.
"""

import tempfile
from pathlib import Path
from typing import Annotated

import click
import typer
import yaml
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from typer.core import TyperGroup

from . import __version__
from .config import AppConfig, load_config
from .errors import WorkflowError
from .executors import build_registry
from .log import WorkflowLogger, configure_file_logging
from .runners import RunnerCallbacks, SequentialRunner
from .workflow import ExecutionOptions, ExecutionResult, Workflow, extract_archive, parse_workflow

console = Console()

LEGACY_VAR_PREFIX = "--var:"
ROOT_OPTIONS = {"--help", "--version", "--install-completion", "--show-completion"}


class DefaultRunGroup(TyperGroup):
    """
    Command group accepting ``fwf ARCHIVE [options]`` as shorthand for ``fwf run``.

    Arguments are also normalized so ``--var:Name=Value`` works however the
    app is invoked.
    """

    def parse_args(self, ctx: click.Context, args: list[str]) -> list[str]:
        args = normalize_argv(args)
        if args and args[0] not in ROOT_OPTIONS and args[0] not in self.commands:
            args = ["run", *args]
        return super().parse_args(ctx, args)


app = typer.Typer(
    name="fwf",
    help="Flash Workflow - Run packaged automation workflows.",
    cls=DefaultRunGroup,
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def version_callback(value: bool):
    if value:
        console.print(f"fwf version {__version__}")
        raise typer.Exit()


ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", "-c", help="Path to config file", exists=True, dir_okay=False),
]


@app.callback()
def main(
    version: Annotated[
        bool, typer.Option("--version", callback=version_callback, is_eager=True, help="Show version")
    ] = False,
):
    """Flash Workflow - Run packaged automation workflows."""
    pass


def parse_var_overrides(values: list[str] | None) -> dict[str, str]:
    """
    Parse Name=Value pairs.

    Raises:
        typer.BadParameter: A value has no '=' or an empty name
    """
    overrides: dict[str, str] = {}
    for item in values or []:
        name, sep, value = item.partition("=")
        if not sep or not name:
            raise typer.BadParameter(f"Invalid variable '{item}', expected Name=Value", param_hint="--var")
        overrides[name] = value
    return overrides


def normalize_argv(argv: list[str]) -> list[str]:
    """Rewrite the legacy ``--var:Name=Value`` spelling to ``--var Name=Value``."""
    normalized = []
    for arg in argv:
        if arg.startswith(LEGACY_VAR_PREFIX):
            normalized.extend(["--var", arg[len(LEGACY_VAR_PREFIX) :]])
        else:
            normalized.append(arg)
    return normalized


def print_summary(result: ExecutionResult) -> None:
    """Print a table of step results."""
    table = Table(title=f"Workflow: {result.workflow_name or 'unknown'}")
    table.add_column("Step", style="cyan")
    table.add_column("Status")
    table.add_column("Exit Code", justify="right")
    table.add_column("Error", style="dim")

    for name, step_result in result.step_results.items():
        if step_result.success:
            status = "[green]✓ OK[/green]"
        elif step_result.error and step_result.error.timed_out:
            status = "[red]✗ TIMED OUT[/red]"
        else:
            status = "[red]✗ FAILED[/red]"
        exit_code = "" if step_result.exit_code is None else str(step_result.exit_code)
        error = escape(step_result.error.message) if step_result.error else ""
        table.add_row(escape(name), status, exit_code, error)

    if result.step_results:
        console.print(table)

    if result.interactive_wait:
        console.print("[yellow]Note:[/yellow] the workflow waited for operator confirmation")

    if result.success:
        console.print("[green]Workflow completed successfully[/green]")
    else:
        console.print(f"[red]Workflow failed:[/red] {escape(result.error_message or 'unknown error')}")


@app.command()
def run(
    archive: Annotated[Path, typer.Argument(help="Task bundle (ZIP archive) to execute")],
    output: Annotated[Path | None, typer.Option("--output", "-o", help="Output directory")] = None,
    workflow_file: Annotated[
        str | None, typer.Option("--workflow", "-w", help="Manifest file name inside the archive")
    ] = None,
    temp: Annotated[Path | None, typer.Option("--temp", "-t", help="Root for session directories")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show debug output")] = False,
    keep_temp: Annotated[bool, typer.Option("--keep-temp", help="Keep the session directory after the run")] = False,
    var: Annotated[
        list[str] | None,
        typer.Option("--var", help="Variable override Name=Value (repeatable, also --var:Name=Value)"),
    ] = None,
    config: ConfigOption = None,
):
    """
    Run a packaged workflow.

    Extracts the archive into a fresh session directory, runs its steps in
    order and removes the session directory afterwards.

    [bold]Examples:[/bold]

        fwf run firmware.zip -o ./output

        fwf run bundle.zip --var Device=COM3 --var Retries=5 --keep-temp
    """
    try:
        overrides = parse_var_overrides(var)
    except typer.BadParameter as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1) from None

    app_config = load_config(config)
    logger = WorkflowLogger(console=console, verbose=verbose or app_config.logging.verbose)
    if app_config.logging.file:
        configure_file_logging(app_config.logging.file, app_config.logging.level)

    options = ExecutionOptions(
        output_path=output or app_config.paths.output,
        temp_path=temp or app_config.paths.temp_root,
        workflow_file=workflow_file or app_config.paths.workflow_file,
        variables=overrides,
        verbose=verbose,
        keep_temp=keep_temp,
    )

    logger.info(f"fwf {__version__} starting")
    runner = SequentialRunner(logger=logger, registry=build_registry(app_config))

    def on_step_skipped(name: str, condition: str):
        logger.debug(f"Condition '{condition}' evaluated false", name)

    result = runner.run_archive(archive, options, RunnerCallbacks(on_step_skipped=on_step_skipped))

    print_summary(result)
    raise typer.Exit(0 if result.success else 1)


def _load_workflow(path: Path, workflow_file: str, logger: WorkflowLogger) -> Workflow:
    """Parse a manifest directly or from inside an archive."""
    if path.suffix.lower() != ".zip":
        return parse_workflow(path, logger)

    with tempfile.TemporaryDirectory(prefix="fwf_validate_") as tmp:
        extract_archive(path, Path(tmp), logger)
        return parse_workflow(Path(tmp) / workflow_file, logger)


@app.command()
def validate(
    path: Annotated[Path, typer.Argument(help="Task bundle (ZIP) or manifest file to check")],
    workflow_file: Annotated[
        str | None, typer.Option("--workflow", "-w", help="Manifest file name inside the archive")
    ] = None,
    config: ConfigOption = None,
):
    """
    Parse a workflow and list its steps without executing anything.
    """
    app_config = load_config(config)
    logger = WorkflowLogger(console=console)
    registry = build_registry(app_config)

    try:
        workflow = _load_workflow(path, workflow_file or app_config.paths.workflow_file, logger)
    except WorkflowError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1) from None

    table = Table(title=f"{workflow.name} v{workflow.version}")
    table.add_column("#", justify="right")
    table.add_column("Step", style="cyan")
    table.add_column("Type")
    table.add_column("Condition", style="dim")
    table.add_column("Parameters")

    unknown = []
    for index, step in enumerate(workflow.steps, start=1):
        step_type = step.type if step.type in registry else f"[red]{escape(step.type)} (unknown)[/red]"
        if step.type not in registry:
            unknown.append(step.type)
        params = ", ".join(f"{key}={value}" for key, value in step.entries)
        table.add_row(str(index), escape(step.name), step_type, escape(step.condition or ""), escape(params))

    console.print(table)

    if workflow.variables:
        console.print("\n[bold]Variables:[/bold]")
        for name, value in workflow.variables.items():
            console.print(f"  {escape(name)} = {escape(value)}")

    if unknown:
        console.print(f"\n[red]Unsupported step types:[/red] {escape(', '.join(sorted(set(unknown))))}")
        console.print(f"Supported: {', '.join(registry.step_types)}")
        raise typer.Exit(1)


@app.command("config")
def show_config(config: ConfigOption = None):
    """
    Show the effective configuration.
    """
    app_config: AppConfig = load_config(config)
    console.print(yaml.safe_dump(app_config.to_dict(), sort_keys=False), markup=False)


def run_cli() -> None:
    """Console script entry point."""
    app()


if __name__ == "__main__":
    run_cli()
