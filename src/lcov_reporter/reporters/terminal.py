"""Terminal reporter with rich output formatting."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console
from rich.table import Table

from lcov_reporter.reporters.markdown import format_delta, format_percentage

if TYPE_CHECKING:
    from collections.abc import Sequence

    from lcov_reporter.models.coverage import DiffEntry, FileStats

console = Console(stderr=True)

_GOOD_COVERAGE = 80.0
_FAIR_COVERAGE = 50.0
_MAX_FILES_DISPLAY = 20


def _coverage_color(percentage: float) -> str:
    """Return a Rich color name for a coverage percentage."""
    if percentage >= _GOOD_COVERAGE:
        return "green"
    if percentage >= _FAIR_COVERAGE:
        return "yellow"
    return "red"


class CLIReporter:
    """Rich terminal output for the command line."""

    def __init__(self, output: Console | None = None) -> None:
        """Initialize the CLI reporter."""
        self.console = output or console

    def print_success(self, message: str) -> None:
        """Print a success message."""
        self.console.print(f"[green]✓[/green] {message}")

    def print_error(self, message: str) -> None:
        """Print an error message."""
        self.console.print(f"[red]✗[/red] {message}")

    def print_warning(self, message: str) -> None:
        """Print a warning message."""
        self.console.print(f"[yellow]⚠[/yellow] {message}")

    def print_info(self, message: str) -> None:
        """Print an info message."""
        self.console.print(f"[dim]{message}[/dim]")

    def print_coverage_summary(
        self,
        entries: Sequence[DiffEntry],
        overall: FileStats,
        baseline_overall: FileStats | None = None,
    ) -> None:
        """Print a compact per-file coverage table, weakest files first."""
        table = Table(title="Coverage", show_lines=False)
        table.add_column("File", style="cyan")
        table.add_column("Lines", justify="right")
        table.add_column("Δ", justify="right")
        table.add_column("Branches", justify="right")
        table.add_column("Functions", justify="right")

        weakest = sorted(entries, key=lambda e: (e.stats.line_percentage, e.path))
        for entry in weakest[:_MAX_FILES_DISPLAY]:
            pct = entry.stats.line_percentage
            if entry.is_new and baseline_overall is not None:
                delta_cell = "new"
            else:
                delta_cell = format_delta(entry.percentage_delta)
            table.add_row(
                entry.path,
                f"[{_coverage_color(pct)}]{format_percentage(pct)}[/]",
                delta_cell,
                format_percentage(entry.stats.branch_percentage),
                format_percentage(entry.stats.function_percentage),
            )

        self.console.print(table)
        if len(entries) > _MAX_FILES_DISPLAY:
            self.print_info(f"... and {len(entries) - _MAX_FILES_DISPLAY} more files")

        delta = None
        if baseline_overall is not None:
            delta = round(overall.line_percentage - baseline_overall.line_percentage, 2)
        pct = overall.line_percentage
        self.console.print(
            f"Overall: [{_coverage_color(pct)}]{format_percentage(pct)}[/] "
            f"([dim]Δ {format_delta(delta)}[/dim])"
        )


reporter = CLIReporter()
