"""Tests for the Markdown coverage report (agents/reporters/markdown.py)."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone

import pytest

from nxcov.agents.reporters.markdown import (
    NO_PROJECTS_SENTINEL,
    REPORT_TITLE,
    badge_color,
    coverage_badge,
    format_pct,
    format_timestamp,
    render_report,
)
from nxcov.models.coverage import CoverageMetric, CoverageSummary, NodeCoverage, NodeDescriptor

_ANCHOR = "<!-- nx-jest-coverage-report -->"
_NOW = datetime(2023, 1, 1, 12, 0, tzinfo=UTC)


def _summary(
    statements: float, branches: float, functions: float, lines: float
) -> CoverageSummary:
    def metric(pct: float) -> CoverageMetric:
        return CoverageMetric(total=100, covered=int(pct), skipped=0, pct=pct)

    return CoverageSummary(
        lines=metric(lines),
        statements=metric(statements),
        functions=metric(functions),
        branches=metric(branches),
    )


def _node(name: str, summary: CoverageSummary) -> NodeCoverage:
    return NodeCoverage(node=NodeDescriptor(name=name, root=f"apps/{name}"), coverage_data=summary)


@pytest.fixture()
def node_coverages() -> list[NodeCoverage]:
    return [
        _node("project-a", _summary(90, 90, 93.33, 90)),
        _node("project-b", _summary(70, 70, 86.67, 80)),
    ]


# ── Helpers ──────────────────────────────────────────────────────


class TestBadgeColor:
    @pytest.mark.parametrize(
        ("pct", "color"),
        [
            (0.0, "red"),
            (69.99, "red"),
            (70.0, "yellow"),
            (79.99, "yellow"),
            (80.0, "green"),
            (100.0, "green"),
        ],
    )
    def test_thresholds(self, pct: float, color: str) -> None:
        assert badge_color(pct) == color


class TestFormatPct:
    def test_whole_numbers_drop_decimal(self) -> None:
        assert format_pct(85.0) == "85"
        assert format_pct(100) == "100"

    def test_fractions_kept_as_stored(self) -> None:
        assert format_pct(93.33) == "93.33"
        assert format_pct(12.5) == "12.5"


class TestFormatTimestamp:
    def test_utc_with_milliseconds(self) -> None:
        assert format_timestamp(_NOW) == "2023-01-01T12:00:00.000Z"

    def test_converts_to_utc(self) -> None:
        moment = datetime(2023, 1, 1, 14, 30, 0, 250000, tzinfo=timezone(timedelta(hours=2)))

        assert format_timestamp(moment) == "2023-01-01T12:30:00.250Z"


def test_coverage_badge() -> None:
    assert coverage_badge("lines", 85.0) == (
        "![lines: 85%](https://img.shields.io/badge/lines-85%25-green)"
    )


# ── render_report ────────────────────────────────────────────────


class TestRenderReport:
    def test_anchor_is_first_line(self, node_coverages: list[NodeCoverage]) -> None:
        report = render_report(node_coverages, _summary(80, 80, 90, 85), _ANCHOR, now=_NOW)

        lines = report.split("\n")
        assert lines[0] == _ANCHOR
        assert lines[1] == REPORT_TITLE

    def test_badges_in_order(self, node_coverages: list[NodeCoverage]) -> None:
        report = render_report(node_coverages, _summary(80, 69.99, 90, 75), _ANCHOR, now=_NOW)

        assert report.split("\n")[3] == (
            "![statements: 80%](https://img.shields.io/badge/statements-80%25-green) "
            "![branches: 69.99%](https://img.shields.io/badge/branches-69.99%25-red) "
            "![functions: 90%](https://img.shields.io/badge/functions-90%25-green) "
            "![lines: 75%](https://img.shields.io/badge/lines-75%25-yellow)"
        )

    def test_summary_table(self, node_coverages: list[NodeCoverage]) -> None:
        report = render_report(node_coverages, _summary(80, 80, 90, 85), _ANCHOR, now=_NOW)

        assert (
            "## Coverage Summary\n"
            "\n"
            "| Statements | Branches | Functions | Lines |\n"
            "| --- | --- | --- | --- |\n"
            "| 80% | 80% | 90% | 85% |\n"
        ) in report

    def test_project_details_in_input_order(self, node_coverages: list[NodeCoverage]) -> None:
        report = render_report(node_coverages, _summary(80, 80, 90, 85), _ANCHOR, now=_NOW)

        assert (
            "## Project Coverage Details\n"
            "\n"
            "<details>\n"
            "<summary>project-a</summary>\n"
            "\n"
            "| Statements | Branches | Functions | Lines |\n"
            "| --- | --- | --- | --- |\n"
            "| 90% | 90% | 93.33% | 90% |\n"
            "\n"
            "</details>\n"
            "<details>\n"
            "<summary>project-b</summary>\n"
        ) in report
        assert "| 70% | 70% | 86.67% | 80% |" in report
        assert NO_PROJECTS_SENTINEL not in report

    def test_ends_with_timestamp(self, node_coverages: list[NodeCoverage]) -> None:
        report = render_report(node_coverages, _summary(80, 80, 90, 85), _ANCHOR, now=_NOW)

        assert report.endswith("</details>\n\n<sub>Last updated: 2023-01-01T12:00:00.000Z</sub>")

    def test_no_projects(self) -> None:
        report = render_report([], CoverageSummary.empty(), _ANCHOR, now=_NOW)

        assert report.endswith(
            "## Project Coverage Details\n"
            "\n"
            f"{NO_PROJECTS_SENTINEL}\n"
            "\n"
            "\n"
            "<sub>Last updated: 2023-01-01T12:00:00.000Z</sub>"
        )
        assert "<details>" not in report
        assert "| 100% | 100% | 100% | 100% |" in report

    def test_custom_anchor(self) -> None:
        report = render_report([], CoverageSummary.empty(), "<!-- custom -->", now=_NOW)

        assert report.startswith("<!-- custom -->\n# Jest Coverage Report")

    def test_defaults_to_current_time(self) -> None:
        report = render_report([], CoverageSummary.empty(), _ANCHOR)

        assert "<sub>Last updated: " in report
        assert report.endswith("Z</sub>")
