"""Tests for coverage aggregation (agents/analyzers/coverage.py)."""

from __future__ import annotations

from nxcov.agents.analyzers.coverage import aggregate_coverage, combine_summaries
from nxcov.models.coverage import (
    METRIC_NAMES,
    CoverageMetric,
    CoverageSummary,
    NodeCoverage,
    NodeDescriptor,
)


def _summary(total: int, covered: int, skipped: int = 0) -> CoverageSummary:
    metric = CoverageMetric.from_counts(total, covered, skipped)
    return CoverageSummary(lines=metric, statements=metric, functions=metric, branches=metric)


def _node(name: str, summary: CoverageSummary) -> NodeCoverage:
    return NodeCoverage(node=NodeDescriptor(name=name, root=f"libs/{name}"), coverage_data=summary)


class TestAggregateCoverage:
    def test_weighted_by_totals(self) -> None:
        nodes = [_node("a", _summary(50, 45)), _node("b", _summary(50, 40))]

        result = aggregate_coverage(nodes)

        assert result.lines.total == 100
        assert result.lines.covered == 85
        assert result.lines.pct == 85.0

    def test_not_a_mean_of_percentages(self) -> None:
        # 100% of 10 plus 0% of 90 is 10%, not 50%.
        nodes = [_node("small", _summary(10, 10)), _node("large", _summary(90, 0))]

        result = aggregate_coverage(nodes)

        assert result.statements.pct == 10.0

    def test_dimensions_aggregate_independently(self) -> None:
        first = CoverageSummary(
            lines=CoverageMetric.from_counts(10, 5),
            statements=CoverageMetric.from_counts(20, 20),
            functions=CoverageMetric.from_counts(4, 1),
            branches=CoverageMetric.from_counts(0, 0),
        )
        second = CoverageSummary(
            lines=CoverageMetric.from_counts(30, 30),
            statements=CoverageMetric.from_counts(20, 0),
            functions=CoverageMetric.from_counts(4, 3),
            branches=CoverageMetric.from_counts(8, 2),
        )

        result = aggregate_coverage([_node("a", first), _node("b", second)])

        assert result.lines.pct == 87.5
        assert result.statements.pct == 50.0
        assert result.functions.pct == 50.0
        assert result.branches.pct == 25.0

    def test_skipped_counts_summed(self) -> None:
        nodes = [_node("a", _summary(10, 5, 2)), _node("b", _summary(10, 5, 3))]

        result = aggregate_coverage(nodes)

        assert result.branches.skipped == 5

    def test_empty_input(self) -> None:
        result = aggregate_coverage([])

        assert result == CoverageSummary.empty()
        for name in METRIC_NAMES:
            assert result.metric(name).pct == 100.0

    def test_zero_totals_are_fully_covered(self) -> None:
        result = aggregate_coverage([_node("a", _summary(0, 0)), _node("b", _summary(0, 0))])

        assert result.functions.pct == 100.0

    def test_order_independent(self) -> None:
        nodes = [
            _node("a", _summary(7, 3)),
            _node("b", _summary(13, 11)),
            _node("c", _summary(1, 0)),
        ]

        assert aggregate_coverage(nodes) == aggregate_coverage(list(reversed(nodes)))

    def test_recomputes_rather_than_trusting_input_pct(self) -> None:
        odd = CoverageMetric(total=3, covered=2, skipped=0, pct=66.66)
        summary = CoverageSummary(lines=odd, statements=odd, functions=odd, branches=odd)

        result = aggregate_coverage([_node("a", summary)])

        assert result.lines.pct == 66.67


class TestCombineSummaries:
    def test_additive_over_disjoint_sets(self) -> None:
        left = [_node("a", _summary(20, 10)), _node("b", _summary(5, 5))]
        right = [_node("c", _summary(75, 60))]

        combined = combine_summaries([aggregate_coverage(left), aggregate_coverage(right)])

        assert combined == aggregate_coverage(left + right)

    def test_accepts_generator(self) -> None:
        combined = combine_summaries(_summary(4, n) for n in range(3))

        assert combined.lines.total == 12
        assert combined.lines.covered == 3
        assert combined.lines.pct == 25.0
