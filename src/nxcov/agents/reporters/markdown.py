"""Markdown coverage report rendering.

The rendered document starts with the report anchor on its own line so that
a previous instance of the report can be found and updated in place.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from nxcov.models.coverage import CoverageSummary, NodeCoverage

REPORT_TITLE = "# Jest Coverage Report 🧪📊"
NO_PROJECTS_SENTINEL = "No projects with coverage data found."

_RED_BELOW = 70.0
_YELLOW_BELOW = 80.0

_TABLE_HEADER = "| Statements | Branches | Functions | Lines |\n| --- | --- | --- | --- |"


def badge_color(percentage: float) -> str:
    """Return the shields.io color for a coverage percentage."""
    if percentage < _RED_BELOW:
        return "red"
    if percentage < _YELLOW_BELOW:
        return "yellow"
    return "green"


def format_pct(value: float) -> str:
    """Format a stored percentage without re-rounding it (85.0 -> '85')."""
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def format_timestamp(moment: datetime) -> str:
    """Format a moment as an ISO-8601 UTC timestamp with milliseconds."""
    utc = moment.astimezone(UTC)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def coverage_badge(label: str, percentage: float) -> str:
    pct = format_pct(percentage)
    color = badge_color(percentage)
    return f"![{label}: {pct}%](https://img.shields.io/badge/{label}-{pct}%25-{color})"


def coverage_row(summary: CoverageSummary) -> str:
    """Return the ``| stmt% | branch% | func% | line% |`` table row."""
    return (
        f"| {format_pct(summary.statements.pct)}% "
        f"| {format_pct(summary.branches.pct)}% "
        f"| {format_pct(summary.functions.pct)}% "
        f"| {format_pct(summary.lines.pct)}% |"
    )


def node_details(node_coverage: NodeCoverage) -> str:
    """Return the collapsible details block for one project."""
    return (
        "\n<details>\n"
        f"<summary>{node_coverage.name}</summary>\n"
        "\n"
        f"{_TABLE_HEADER}\n"
        f"{coverage_row(node_coverage.coverage_data)}\n"
        "\n"
        "</details>"
    )


def render_report(
    node_coverages: Sequence[NodeCoverage],
    summary: CoverageSummary,
    anchor: str,
    *,
    now: datetime | None = None,
) -> str:
    """Render the coverage report comment body.

    Args:
        node_coverages: Per-project coverage in display order.
        summary: Aggregate coverage across ``node_coverages``.
        anchor: Marker placed on the first line of the report.
        now: Timestamp to print. Defaults to the current UTC time.

    Returns:
        The Markdown report.
    """
    timestamp = format_timestamp(now or datetime.now(UTC))

    badges = " ".join(
        coverage_badge(name, summary.metric(name).pct)
        for name in ("statements", "branches", "functions", "lines")
    )

    sections = [
        anchor,
        REPORT_TITLE,
        "",
        badges,
        "",
        "## Coverage Summary",
        "",
        _TABLE_HEADER,
        coverage_row(summary),
        "",
        "## Project Coverage Details",
        "",
    ]
    report = "\n".join(sections)

    if not node_coverages:
        report += f"\n{NO_PROJECTS_SENTINEL}\n"
    else:
        report += "".join(node_details(nc) for nc in node_coverages)

    report += f"\n\n<sub>Last updated: {timestamp}</sub>"
    return report
