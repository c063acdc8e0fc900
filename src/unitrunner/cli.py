"""Command-line interface for UnitRunner."""

import logging
import sys
from pathlib import Path
from typing import Optional

import click
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from unitrunner import __version__
from unitrunner.config import RunnerConfig, create_example_config, find_config_file, get_default_config
from unitrunner.framework.exceptions import FrameworkError
from unitrunner.printer import ResultPrinter
from unitrunner.runner.runner import BaseTestRunner, TestRunner

console = Console()

logger = logging.getLogger("unitrunner")


def print_banner() -> None:
    """Print the UnitRunner banner."""
    console.print(
        Panel.fit(
            "[bold blue]UnitRunner[/bold blue] - xUnit test runner",
            subtitle=f"v{__version__}",
        )
    )


def setup_logging(verbose: bool) -> None:
    """Route the package logger through rich."""
    logger.handlers.clear()
    handler = RichHandler(console=Console(stderr=True), show_path=False, rich_tracebacks=True)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    logger.propagate = False


def load_config(config_path: Optional[str]) -> RunnerConfig:
    """Load the given config file, a discovered one, or the defaults."""
    if config_path:
        return RunnerConfig.from_file(config_path)

    found = find_config_file()
    if found is None:
        logger.debug("No configuration file found, using defaults")
        return get_default_config()

    logger.debug("Using configuration file %s", found)
    return RunnerConfig.from_file(found)


def _load_config_or_exit(ctx: click.Context) -> RunnerConfig:
    try:
        return load_config(ctx.obj.get("config_path"))
    except FileNotFoundError as e:
        console.print(f"[red]Error:[/red] {e}")
        console.print("Run [bold]unitrunner init[/bold] to create a configuration file")
        sys.exit(BaseTestRunner.EXCEPTION_EXIT)
    except (ValidationError, ValueError) as e:
        console.print(f"[red]Invalid configuration:[/red] {e}")
        sys.exit(BaseTestRunner.EXCEPTION_EXIT)


def _split_groups(values: tuple[str, ...]) -> list[str]:
    groups = []
    for value in values:
        groups.extend(g.strip() for g in value.split(",") if g.strip())
    return groups


@click.group()
@click.version_option(version=__version__, prog_name="unitrunner")
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=False),
    help="Path to configuration file (default: unitrunner.json)",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.pass_context
def main(ctx: click.Context, config: Optional[str], verbose: bool) -> None:
    """UnitRunner - run xUnit-style test suites.

    Loads TestCase classes from a directory, file or module, runs them
    with their fixtures, data sets and dependencies, and reports the
    outcome of every test.
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
    default="unitrunner.json",
    help="Output path for configuration file",
)
@click.option("--force", "-f", is_flag=True, help="Overwrite existing configuration")
@click.pass_context
def init(ctx: click.Context, output: str, force: bool) -> None:
    """Initialize a new UnitRunner configuration file."""
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
        console.print("\nNext steps:")
        console.print("  1. Point [bold]target[/bold] at your test directory")
        console.print("  2. Run [bold]unitrunner run[/bold] to execute tests")
    except OSError as e:
        console.print(f"[red]Error creating configuration:[/red] {e}")
        sys.exit(1)


@main.command()
@click.argument("target", required=False)
@click.option("--filter", "name_filter", help="Only run tests whose name matches the pattern")
@click.option("--group", "groups", multiple=True, help="Only run tests from the given group(s)")
@click.option("--exclude-group", "exclude_groups", multiple=True, help="Exclude tests from the given group(s)")
@click.option("--stop-on-error", is_flag=True, help="Stop execution upon first error")
@click.option("--stop-on-failure", is_flag=True, help="Stop execution upon first error or failure")
@click.option("--stop-on-incomplete", is_flag=True, help="Stop execution upon first incomplete test")
@click.option("--stop-on-risky", is_flag=True, help="Stop execution upon first risky test")
@click.option("--stop-on-skipped", is_flag=True, help="Stop execution upon first skipped test")
@click.option("--repeat", type=int, help="Run the test(s) repeatedly")
@click.option("--strict", is_flag=True, help="Mark tests that perform no assertions as risky")
@click.option("--disallow-test-output", is_flag=True, help="Mark tests that print output as risky")
@click.option("--disallow-todo-tests", is_flag=True, help="Mark @todo tests as risky")
@click.option("--no-convert-errors", is_flag=True, help="Do not escalate warnings into errors")
@click.pass_context
def run(
    ctx: click.Context,
    target: Optional[str],
    name_filter: Optional[str],
    groups: tuple[str, ...],
    exclude_groups: tuple[str, ...],
    stop_on_error: bool,
    stop_on_failure: bool,
    stop_on_incomplete: bool,
    stop_on_risky: bool,
    stop_on_skipped: bool,
    repeat: Optional[int],
    strict: bool,
    disallow_test_output: bool,
    disallow_todo_tests: bool,
    no_convert_errors: bool,
) -> None:
    """Run the tests in TARGET (directory, file, module, optionally ::Class)."""
    print_banner()

    verbose = ctx.obj.get("verbose", False)
    config = _load_config_or_exit(ctx)

    # Command line options override the configuration file.
    updates = {}
    if target:
        updates["target"] = target
    if repeat is not None:
        updates["repeat"] = repeat
    if no_convert_errors:
        updates["convert_errors_to_exceptions"] = False
    try:
        config = RunnerConfig.model_validate({**config.model_dump(), **updates})
    except ValidationError as e:
        console.print(f"[red]Invalid options:[/red] {e}")
        sys.exit(BaseTestRunner.EXCEPTION_EXIT)

    if name_filter:
        config.selection.filter = name_filter
    if groups:
        config.selection.groups = _split_groups(groups)
    if exclude_groups:
        config.selection.exclude_groups = _split_groups(exclude_groups)

    config.stop_on.error = config.stop_on.error or stop_on_error
    config.stop_on.failure = config.stop_on.failure or stop_on_failure
    config.stop_on.incomplete = config.stop_on.incomplete or stop_on_incomplete
    config.stop_on.risky = config.stop_on.risky or stop_on_risky
    config.stop_on.skipped = config.stop_on.skipped or stop_on_skipped
    config.strict.tests_that_do_not_test_anything = (
        config.strict.tests_that_do_not_test_anything or strict
    )
    config.strict.output_during_tests = config.strict.output_during_tests or disallow_test_output
    config.strict.todo_annotated_tests = config.strict.todo_annotated_tests or disallow_todo_tests

    console.print(f"[dim]Running tests from:[/dim] {config.target}")

    printer = ResultPrinter(console=console, verbose=verbose)
    runner = TestRunner(config, printer=printer)

    try:
        suite = runner.get_test(config.target)
    except FrameworkError as e:
        console.print(f"[red]Error loading tests:[/red] {e}")
        sys.exit(BaseTestRunner.EXCEPTION_EXIT)

    try:
        result = runner.do_run(suite)
    except FrameworkError as e:
        console.print(f"[red]Error running tests:[/red] {e}")
        sys.exit(BaseTestRunner.EXCEPTION_EXIT)

    sys.exit(runner.exit_code(result))


@main.command("list-groups")
@click.argument("target", required=False)
@click.pass_context
def list_groups(ctx: click.Context, target: Optional[str]) -> None:
    """List the test groups found in TARGET."""
    config = _load_config_or_exit(ctx)
    runner = TestRunner(config)

    try:
        suite = runner.get_test(target or config.target)
    except FrameworkError as e:
        console.print(f"[red]Error loading tests:[/red] {e}")
        sys.exit(BaseTestRunner.EXCEPTION_EXIT)

    groups: dict[str, int] = {}
    _collect_groups(suite, groups)

    if not groups:
        console.print("[yellow]No groups found[/yellow]")
        return

    table = Table(title="Available test groups")
    table.add_column("Group", style="cyan")
    table.add_column("Tests", justify="right")
    for name in sorted(groups):
        table.add_row(name, str(groups[name]))
    console.print(table)


def _collect_groups(suite, groups: dict[str, int]) -> None:
    """Count the tests registered under each group, recursively."""
    from unitrunner.framework.suite import TestSuite

    for name, members in suite.group_details().items():
        count = sum(
            member.count() for member in members if not isinstance(member, TestSuite)
        )
        if count:
            groups[name] = groups.get(name, 0) + count
    for test in suite.tests():
        if isinstance(test, TestSuite):
            _collect_groups(test, groups)


if __name__ == "__main__":
    main()
