"""Command-line interface for testnow."""

import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel

from testnow import __version__
from testnow.config import TestNowConfig, create_example_config
from testnow.errors import TestNowError


console = Console()


def print_banner() -> None:
    """Print the testnow banner."""
    console.print(
        Panel.fit(
            "[bold blue]testnow[/bold blue] - unit testing by test calls",
            subtitle=f"v{__version__}",
        )
    )


def setup_logging(verbose: bool) -> None:
    """Send testnow diagnostics to the console when verbose."""
    logger = logging.getLogger("testnow")
    if verbose and not logger.handlers:
        logger.addHandler(RichHandler(console=console, show_path=False))
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)


def load_config(config_path: Optional[str]) -> TestNowConfig:
    """Load the given configuration file, or the nearest one, or the defaults."""
    if config_path:
        return TestNowConfig.from_file(config_path)
    try:
        return TestNowConfig.find_and_load()
    except FileNotFoundError:
        console.print("[dim]No configuration file found, using defaults[/dim]")
        return TestNowConfig()


@click.group()
@click.version_option(version=__version__, prog_name="testnow")
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=False),
    help="Path to configuration file (default: testnow.json)",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.pass_context
def main(ctx: click.Context, config: Optional[str], verbose: bool) -> None:
    """testnow - run the test calls registered by the files of a folder.

    Every file of the folder is executed once; its top-level code registers
    test calls through the injected ``check`` registry, which are then run
    one at a time.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["config_path"] = config
    setup_logging(verbose)


@main.command()
@click.option(
    "--output",
    "-o",
    type=click.Path(),
    default="testnow.json",
    help="Output path for configuration file",
)
@click.option("--force", "-f", is_flag=True, help="Overwrite existing configuration")
def init(output: str, force: bool) -> None:
    """Initialize a new testnow configuration file."""
    print_banner()

    output_path = Path(output)
    if output_path.exists() and not force:
        console.print(
            f"[yellow]Configuration file already exists:[/yellow] {output_path}"
        )
        console.print("Use --force to overwrite")
        sys.exit(1)

    try:
        create_example_config(output_path)
        console.print(f"[green]Created configuration file:[/green] {output_path}")
    except OSError as e:
        console.print(f"[red]Error creating configuration:[/red] {e}")
        sys.exit(1)


@main.command()
@click.argument("folder", type=click.Path(file_okay=False))
@click.option(
    "--skip-timeboxed-tests",
    is_flag=True,
    help="Skip the test calls registered with a timeout",
)
@click.option(
    "--only-last-modified",
    is_flag=True,
    help="Only run the test files modified recently",
)
@click.option(
    "--max-age",
    type=click.FloatRange(min=0, min_open=True),
    help="With --only-last-modified, how recent a file must be (seconds)",
)
@click.pass_context
def run(
    ctx: click.Context,
    folder: str,
    skip_timeboxed_tests: bool,
    only_last_modified: bool,
    max_age: Optional[float],
) -> None:
    """Run the test calls of every test file below FOLDER."""
    from testnow.core.runner import FolderRunner, as_root_folder
    from testnow.report.console import ConsoleReporter

    print_banner()

    try:
        config = load_config(ctx.obj.get("config_path"))
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error loading configuration:[/red] {e}")
        sys.exit(1)

    if skip_timeboxed_tests:
        config.execution.skip_timeboxed_tests = True
    if only_last_modified:
        config.discovery.only_last_modified = True
    if max_age is not None:
        config.discovery.max_execution_age_seconds = max_age

    root = as_root_folder(folder)
    console.print(f"Execute tests in {root.folder_pathname}")
    if ctx.obj.get("verbose"):
        console.print(f"[dim]Options: {config.model_dump()}[/dim]")

    reporter = ConsoleReporter(console)
    runner = FolderRunner(config, reporter=reporter)

    try:
        statistics = asyncio.run(runner.run(root))
    except TestNowError as e:
        console.print(f"[red]Error:[/red] {e}")
        if e.__cause__ is not None:
            console.print(f"[red]{type(e.__cause__).__name__}:[/red] {e.__cause__}")
        sys.exit(1)

    reporter.report_summary(statistics)

    if statistics.ko > 0:
        sys.exit(1)


if __name__ == "__main__":
    main()
