"""Shared data models."""

from nxcov.models.coverage import (
    METRIC_NAMES,
    CoverageDataError,
    CoverageMetric,
    CoverageSummary,
    NodeCoverage,
    NodeDescriptor,
    calculate_percentage,
)

__all__ = [
    "METRIC_NAMES",
    "CoverageDataError",
    "CoverageMetric",
    "CoverageSummary",
    "NodeCoverage",
    "NodeDescriptor",
    "calculate_percentage",
]
