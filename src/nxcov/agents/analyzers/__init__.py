"""Analyzers that turn raw coverage artifacts into summaries."""

from nxcov.agents.analyzers.coverage import aggregate_coverage, combine_summaries
from nxcov.agents.analyzers.node_coverage import NodeCoverageResolver, read_coverage_summary

__all__ = [
    "NodeCoverageResolver",
    "aggregate_coverage",
    "combine_summaries",
    "read_coverage_summary",
]
