"""Coverage summary models.

These mirror the istanbul ``json-summary`` record shape that Jest writes to
``coverage-summary.json``: four metric dimensions, each with ``total``,
``covered``, ``skipped`` and ``pct`` fields.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

METRIC_NAMES = ("lines", "statements", "functions", "branches")
"""Metric dimensions carried by every coverage summary."""


class CoverageDataError(ValueError):
    """Raised when a coverage record does not have the expected shape."""


def calculate_percentage(covered: int, total: int) -> float:
    """Return ``covered / total`` as a percentage rounded to 2 decimals.

    An empty scope (``total == 0``) counts as fully covered.
    """
    if total == 0:
        return 100.0
    # Round half up so that e.g. 2/3 -> 66.67 and 1/8 -> 12.5 are stable.
    return math.floor(covered / total * 10000 + 0.5) / 100


def _non_negative_int(data: dict[str, Any], key: str, *, default: int | None = None) -> int:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int):
        raise CoverageDataError(f"'{key}' must be an integer (got: {value!r})")
    if value < 0:
        raise CoverageDataError(f"'{key}' must be non-negative (got: {value})")
    return value


@dataclass(frozen=True)
class CoverageMetric:
    """One coverage dimension (lines, statements, functions or branches)."""

    total: int
    """Number of coverable items in scope."""

    covered: int
    """Number of items that were executed."""

    skipped: int = 0
    """Number of items excluded from coverage."""

    pct: float = 100.0
    """Covered percentage (0.0 to 100.0)."""

    @classmethod
    def from_counts(cls, total: int, covered: int, skipped: int = 0) -> CoverageMetric:
        """Build a metric and derive its percentage from the counts."""
        return cls(
            total=total,
            covered=covered,
            skipped=skipped,
            pct=calculate_percentage(covered, total),
        )

    @classmethod
    def from_dict(cls, data: Any) -> CoverageMetric:
        """Validate and build a metric from a ``json-summary`` record.

        Raises:
            CoverageDataError: If counts are missing, negative, or
                ``covered`` exceeds ``total``, or ``pct`` is outside [0, 100].
        """
        if not isinstance(data, dict):
            raise CoverageDataError(f"Coverage metric must be an object (got: {data!r})")

        total = _non_negative_int(data, "total")
        covered = _non_negative_int(data, "covered")
        skipped = _non_negative_int(data, "skipped", default=0)
        if covered > total:
            raise CoverageDataError(f"'covered' ({covered}) exceeds 'total' ({total})")

        raw_pct = data.get("pct")
        if isinstance(raw_pct, bool) or not isinstance(raw_pct, (int, float)):
            # Older istanbul versions write "Unknown" for empty scopes.
            pct = calculate_percentage(covered, total)
        else:
            pct = float(raw_pct)
            # NaN fails the range check as well.
            if not 0.0 <= pct <= 100.0:
                raise CoverageDataError(f"'pct' must be between 0 and 100 (got: {raw_pct!r})")

        return cls(total=total, covered=covered, skipped=skipped, pct=pct)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the ``json-summary`` record shape."""
        return {
            "total": self.total,
            "covered": self.covered,
            "skipped": self.skipped,
            "pct": self.pct,
        }


@dataclass(frozen=True)
class CoverageSummary:
    """Coverage for one node, or the aggregate across nodes."""

    lines: CoverageMetric
    statements: CoverageMetric
    functions: CoverageMetric
    branches: CoverageMetric

    @classmethod
    def empty(cls) -> CoverageSummary:
        """Return the summary of an empty scope (all zero, 100%)."""
        zero = CoverageMetric.from_counts(0, 0)
        return cls(lines=zero, statements=zero, functions=zero, branches=zero)

    @classmethod
    def from_dict(cls, data: Any) -> CoverageSummary:
        """Validate and build a summary from a ``json-summary`` ``total`` entry.

        Extra keys (e.g. ``branchesTrue``) are ignored.

        Raises:
            CoverageDataError: If a metric is missing or malformed.
        """
        if not isinstance(data, dict):
            raise CoverageDataError(f"Coverage summary must be an object (got: {data!r})")

        metrics: dict[str, CoverageMetric] = {}
        for name in METRIC_NAMES:
            if name not in data:
                raise CoverageDataError(f"Coverage summary is missing '{name}'")
            try:
                metrics[name] = CoverageMetric.from_dict(data[name])
            except CoverageDataError as exc:
                raise CoverageDataError(f"Invalid '{name}' metric: {exc}") from exc

        return cls(**metrics)

    def metric(self, name: str) -> CoverageMetric:
        """Return the metric for a dimension name."""
        if name not in METRIC_NAMES:
            raise KeyError(name)
        metric: CoverageMetric = getattr(self, name)
        return metric

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the ``json-summary`` ``total`` shape."""
        return {name: self.metric(name).to_dict() for name in METRIC_NAMES}


@dataclass(frozen=True)
class NodeDescriptor:
    """A build-graph node in scope for this run."""

    name: str
    """Project name, unique within a run."""

    root: str
    """Project root relative to the workspace."""


@dataclass(frozen=True)
class NodeCoverage:
    """Coverage resolved for a single node."""

    node: NodeDescriptor
    coverage_data: CoverageSummary

    @property
    def name(self) -> str:
        """Name of the node this coverage belongs to."""
        return self.node.name
