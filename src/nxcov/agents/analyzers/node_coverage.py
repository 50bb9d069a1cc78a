"""Per-node coverage resolution.

For one affected project this checks that Jest is configured to write a
``json-summary`` report, that the report exists, and reads its ``total``
entry. Every problem is reported as a skipped :class:`StageResult`; a single
project never fails the run.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from nxcov.adapters.jest import COVERAGE_SUMMARY_FILENAME, JestConfig, probe_jest_config
from nxcov.agents.base import StageResult
from nxcov.models.coverage import CoverageDataError, CoverageSummary, NodeCoverage
from nxcov.utils.subprocess_runner import DEFAULT_TIMEOUT

if TYPE_CHECKING:
    from nxcov.models.coverage import NodeDescriptor

logger = logging.getLogger(__name__)

SKIP_NO_RUNNER_CONFIG = "No valid Jest config found"
SKIP_NO_SUMMARY = "No coverage summary found"
SKIP_READ_ERROR = "Error reading coverage summary"


class ConfigProbe(Protocol):
    async def __call__(self, project_root: Path, *, timeout: float) -> JestConfig | None: ...


def coverage_summary_path(coverage_directory: str | Path) -> Path:
    """Return the location of ``coverage-summary.json`` in a coverage directory."""
    return Path(coverage_directory) / COVERAGE_SUMMARY_FILENAME


def has_coverage_summary(coverage_directory: str | Path) -> bool:
    """Return True if a coverage summary file exists in ``coverage_directory``."""
    return coverage_summary_path(coverage_directory).is_file()


def read_coverage_summary(path: Path) -> CoverageSummary:
    """Read the aggregate ``total`` entry of a ``coverage-summary.json`` file.

    Raises:
        OSError: If the file cannot be read.
        json.JSONDecodeError: If the file is not valid JSON.
        CoverageDataError: If there is no usable ``total`` entry.
    """
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict) or not data.get("total"):
        raise CoverageDataError(f"No total coverage data found in {path}")
    return CoverageSummary.from_dict(data["total"])


class NodeCoverageResolver:
    """Resolve the coverage summary of individual build-graph nodes."""

    def __init__(
        self,
        workspace_root: Path,
        *,
        config_probe: ConfigProbe = probe_jest_config,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        """Initialize the resolver.

        Args:
            workspace_root: Monorepo root that node roots are relative to.
            config_probe: Callable returning the Jest config for a project root.
            timeout: Timeout for each config probe in seconds.
        """
        self._workspace_root = workspace_root
        self._config_probe = config_probe
        self._timeout = timeout

    async def resolve(self, node: NodeDescriptor) -> StageResult[NodeCoverage]:
        """Resolve coverage for ``node``.

        Returns:
            A completed result holding the node's coverage, or a skipped
            result whose reason says why the node has none.
        """
        project_root = self._workspace_root / node.root

        try:
            config = await self._config_probe(project_root, timeout=self._timeout)
        except Exception:
            logger.exception("Unexpected error probing Jest config for %s", node.name)
            config = None

        if config is None or not config.coverage_directory:
            return self._skip(node, SKIP_NO_RUNNER_CONFIG)

        if not config.writes_json_summary:
            logger.warning("json-summary reporter not found in Jest config for %s", node.root)
            return self._skip(node, SKIP_NO_RUNNER_CONFIG)

        summary_path = coverage_summary_path(config.coverage_directory)
        if not has_coverage_summary(config.coverage_directory):
            logger.warning("Coverage summary file not found at %s", summary_path)
            return self._skip(node, SKIP_NO_SUMMARY)

        try:
            summary = read_coverage_summary(summary_path)
        except (OSError, ValueError) as exc:
            # ValueError covers JSONDecodeError, UnicodeDecodeError and CoverageDataError.
            logger.warning("Error reading coverage summary for %s: %s", node.name, exc)
            return self._skip(node, f"{SKIP_READ_ERROR}: {exc}")

        return StageResult.completed(NodeCoverage(node=node, coverage_data=summary))

    def _skip(self, node: NodeDescriptor, reason: str) -> StageResult[NodeCoverage]:
        logger.info("Skipping project %s: %s", node.name, reason)
        return StageResult.skipped(reason)
