"""Console output for a test run."""

from typing import Optional

from rich.console import Console
from rich.table import Table

from unitrunner.framework.listener import TestListener
from unitrunner.framework.models import TestFailure

# Progress marks written as each test ends.
PROGRESS_MARKS = {
    "error": "[red]E[/red]",
    "failure": "[red]F[/red]",
    "incomplete": "[yellow]I[/yellow]",
    "risky": "[yellow]R[/yellow]",
    "skipped": "[cyan]S[/cyan]",
    "passed": ".",
}

MAX_DEFECTS_SHOWN = 10


class ResultPrinter(TestListener):
    """Prints a progress line while tests run and a summary afterwards."""

    def __init__(self, console: Optional[Console] = None, verbose: bool = False, columns: int = 60):
        self.console = console or Console()
        self.verbose = verbose
        self.columns = columns
        self._column = 0
        self._outcome: Optional[str] = None

    def add_error(self, test, exc, time):
        self._outcome = "error"

    def add_failure(self, test, exc, time):
        self._outcome = "failure"

    def add_incomplete_test(self, test, exc, time):
        self._outcome = "incomplete"

    def add_risky_test(self, test, exc, time):
        self._outcome = "risky"

    def add_skipped_test(self, test, exc, time):
        self._outcome = "skipped"

    def start_test(self, test):
        self._outcome = None

    def end_test(self, test, time):
        outcome = self._outcome or "passed"

        if self.verbose:
            self.console.print(f"{PROGRESS_MARKS[outcome]} {test} [dim]({time:.3f}s)[/dim]")
            return

        self.console.print(PROGRESS_MARKS[outcome], end="")
        self._column += 1
        if self._column >= self.columns:
            self.console.print()
            self._column = 0

    def flush(self):
        if self._column:
            self.console.print()
            self._column = 0

    def print_result(self, result) -> None:
        """Print the defect lists and the summary table."""
        self._print_defects(result.errors(), "error", "red")
        self._print_defects(result.failures(), "failure", "red")
        self._print_defects(result.risky(), "risky test", "yellow")
        if self.verbose:
            self._print_defects(result.not_implemented(), "incomplete test", "yellow")
            self._print_defects(result.skipped(), "skipped test", "cyan")
        self._print_summary(result)

    def _print_defects(self, defects: list[TestFailure], kind: str, style: str) -> None:
        if not defects:
            return

        plural = "s" if len(defects) != 1 else ""
        self.console.print(f"\nThere {'were' if plural else 'was'} {len(defects)} {kind}{plural}:\n")
        for index, defect in enumerate(defects[:MAX_DEFECTS_SHOWN], start=1):
            self.console.print(f"{index}) [{style}]{defect.test_name}[/{style}]", markup=True)
            if defect.message:
                self.console.print(defect.message, markup=False, highlight=False)
            self.console.print()
        if len(defects) > MAX_DEFECTS_SHOWN:
            self.console.print(f"  ... and {len(defects) - MAX_DEFECTS_SHOWN} more")

    def _print_summary(self, result) -> None:
        summary = result.summary()
        total = summary["tests"]

        self.console.print("\n" + "=" * 50)
        self.console.print("[bold]Test Results Summary[/bold]")
        self.console.print("=" * 50)

        table = Table(show_header=False, box=None)
        table.add_column("Metric", style="bold")
        table.add_column("Value", justify="right")

        table.add_row("Tests", str(total))
        table.add_row("Passed", f"[green]{summary['passed']}[/green]")
        table.add_row("Failures", f"[red]{summary['failures']}[/red]")
        table.add_row("Errors", f"[red]{summary['errors']}[/red]")
        table.add_row("Skipped", f"[cyan]{summary['skipped']}[/cyan]")
        table.add_row("Incomplete", f"[yellow]{summary['incomplete']}[/yellow]")
        table.add_row("Risky", f"[yellow]{summary['risky']}[/yellow]")
        table.add_row("Time", f"{summary['time']:.3f}s")

        if total > 0:
            pass_rate = (summary["passed"] / total) * 100
            table.add_row("Pass Rate", f"{pass_rate:.1f}%")

        self.console.print(table)

        if total == 0:
            self.console.print("\n[yellow]No tests executed![/yellow]")
        elif not result.was_successful():
            self.console.print("\n[red]FAILURES![/red]")
        elif not (result.all_harmless() and result.all_completely_implemented() and result.none_skipped()):
            self.console.print("\n[yellow]OK, but incomplete, skipped, or risky tests![/yellow]")
        else:
            self.console.print("\n[green]OK[/green]")
