"""Terminal reporter with rich output formatting."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table

from nxcov.agents.reporters.markdown import badge_color, format_pct

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from nxcov.models.coverage import CoverageSummary, NodeCoverage

console = Console()


class CLIReporter:
    """Rich terminal output reporter for coverage report runs."""

    def __init__(self, output: Console | None = None) -> None:
        """Initialize the CLI reporter."""
        self.console = output or console

    def print_header(self, title: str) -> None:
        """Print a bold header."""
        self.console.print(f"\n[bold cyan]{title}[/bold cyan]\n")

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

    # ── Pipeline progress display ──────────────────────────────────────

    def print_pipeline_header(self, name: str) -> None:
        """Print a styled banner for a pipeline run."""
        self.console.print()
        self.console.print(
            Panel(
                f"[bold white]{name}[/bold white]",
                border_style="cyan",
                padding=(0, 2),
            )
        )

    def print_step_header(self, step: int, total: int, description: str) -> None:
        """Print a pipeline step header with step number."""
        self.console.print(f"\n[bold cyan]▸ Step {step}/{total}[/bold cyan]  {description}")

    def print_step_skip(self, description: str) -> None:
        """Print a skipped step."""
        self.console.print(f"  [yellow]⊘[/yellow] {description} [dim](skipped)[/dim]")

    # ── Coverage display ───────────────────────────────────────────────

    def print_coverage_summary(
        self, summary: CoverageSummary, node_coverages: Sequence[NodeCoverage]
    ) -> None:
        """Print per-project and aggregate coverage as a table."""
        table = Table(title="Coverage Summary", show_lines=False)
        table.add_column("Project", style="cyan")
        for column in ("Statements", "Branches", "Functions", "Lines"):
            table.add_column(column, justify="right")

        for nc in node_coverages:
            table.add_row(nc.name, *self._coverage_cells(nc.coverage_data))

        table.add_section()
        table.add_row("[bold]Total[/bold]", *self._coverage_cells(summary))

        self.console.print(table)

    def print_skipped(self, skipped: Mapping[str, str]) -> None:
        """Print the projects that contributed no coverage, with reasons."""
        for name, reason in skipped.items():
            self.console.print(f"  [yellow]⊘[/yellow] {name} [dim]({reason})[/dim]")

    def print_report(self, report: str) -> None:
        """Print the raw Markdown report between rules."""
        self.console.print(Rule("Coverage report"))
        self.console.print(report, markup=False, highlight=False)
        self.console.print(Rule())

    def _coverage_cells(self, summary: CoverageSummary) -> list[str]:
        cells = []
        for name in ("statements", "branches", "functions", "lines"):
            pct = summary.metric(name).pct
            cells.append(f"[{badge_color(pct)}]{format_pct(pct)}%[/{badge_color(pct)}]")
        return cells


reporter = CLIReporter()
