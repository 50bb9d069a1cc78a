"""Metric aggregation across resolved node coverage results."""

from __future__ import annotations

from typing import TYPE_CHECKING

from nxcov.models.coverage import METRIC_NAMES, CoverageMetric, CoverageSummary

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from nxcov.models.coverage import NodeCoverage


def combine_summaries(summaries: Iterable[CoverageSummary]) -> CoverageSummary:
    """Sum counts per dimension and recompute each percentage.

    Percentages are always derived from the summed counts, never averaged.
    An empty input yields the empty-scope summary (all zero, 100%).
    """
    totals = {name: [0, 0, 0] for name in METRIC_NAMES}

    for summary in summaries:
        for name in METRIC_NAMES:
            metric = summary.metric(name)
            counts = totals[name]
            counts[0] += metric.total
            counts[1] += metric.covered
            counts[2] += metric.skipped

    metrics = {
        name: CoverageMetric.from_counts(total, covered, skipped)
        for name, (total, covered, skipped) in totals.items()
    }
    return CoverageSummary(**metrics)


def aggregate_coverage(node_coverages: Sequence[NodeCoverage]) -> CoverageSummary:
    """Combine per-node coverage into one weighted summary.

    Each dimension is weighted by its own ``total``, so a large project
    counts more than a small one. The result does not depend on input order.
    """
    return combine_summaries(nc.coverage_data for nc in node_coverages)
