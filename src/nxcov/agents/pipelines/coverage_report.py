"""Coverage report pipeline: discover → resolve → aggregate → render → publish."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Protocol

from nxcov.agents.analyzers.coverage import aggregate_coverage
from nxcov.agents.analyzers.node_coverage import NodeCoverageResolver
from nxcov.agents.base import StageResult, StageStatus
from nxcov.agents.detectors.affected import (
    DEFAULT_AFFECTED_COMMAND,
    JEST_EXECUTORS,
    build_command,
    discover_affected_nodes,
)
from nxcov.agents.reporters.action_outputs import build_run_outputs, write_run_outputs
from nxcov.agents.reporters.github_comment import GitHubCommentReporter
from nxcov.agents.reporters.markdown import render_report
from nxcov.agents.reporters.terminal import reporter
from nxcov.utils.subprocess_runner import DEFAULT_TIMEOUT, SubprocessError, run_subprocess

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

    from nxcov.models.coverage import CoverageSummary, NodeCoverage, NodeDescriptor
    from nxcov.utils.ci_context import RunContext

logger = logging.getLogger(__name__)

DEFAULT_TEST_COMMAND = "nx affected -t=test -c=ci"

NO_AFFECTED_PROJECTS = "No affected projects found"
NO_COVERAGE_DATA = "No coverage data found for any affected projects"

_TOTAL_STEPS = 6


class PipelineState(Enum):
    DISCOVER = "discover"
    RUN_TESTS = "run_tests"
    PER_NODE_LOOP = "per_node_loop"
    AGGREGATE = "aggregate"
    RENDER = "render"
    OUTPUTS = "outputs"
    PUBLISH = "publish"
    DONE = "done"


class Discoverer(Protocol):
    async def __call__(
        self,
        command: str,
        *,
        cwd: Path | None,
        executors: Iterable[str],
        timeout: float,
    ) -> list[NodeDescriptor]: ...


class Resolver(Protocol):
    async def resolve(self, node: NodeDescriptor) -> StageResult[NodeCoverage]: ...


class Publisher(Protocol):
    def publish(self, report: str, anchor: str, run_context: RunContext) -> bool: ...


class _StepTracker:
    """Track pipeline step progress for terminal display."""

    def __init__(self, total: int, *, ci_mode: bool) -> None:
        self._total = total
        self._ci_mode = ci_mode
        self._current = 0

    def step(self, description: str) -> None:
        """Advance to the next step and print its header."""
        self._current += 1
        if not self._ci_mode:
            reporter.print_step_header(self._current, self._total, description)

    def skip(self, description: str) -> None:
        """Skip a step and print it as skipped."""
        self._current += 1
        if not self._ci_mode:
            reporter.print_step_skip(description)


@dataclass
class CoverageReportConfig:
    """Configuration for a coverage report run."""

    workspace_root: Path
    """Nx workspace root; all commands run here."""

    run_context: RunContext
    """Anchor, token and pull request identity for publishing."""

    affected_command: str = DEFAULT_AFFECTED_COMMAND
    """Command printing the affected project graph as JSON."""

    executors: tuple[str, ...] = JEST_EXECUTORS
    """Test executors identifying Jest projects."""

    run_tests: bool = False
    """Run the affected tests before collecting coverage."""

    test_command: str = DEFAULT_TEST_COMMAND
    """Command used to run the affected tests."""

    discovery_timeout: float = DEFAULT_TIMEOUT
    """Timeout for the affected projects command, in seconds."""

    probe_timeout: float = DEFAULT_TIMEOUT
    """Timeout for each ``jest --showConfig`` call, in seconds."""

    test_timeout: float = 1800.0
    """Timeout for the test run, in seconds."""

    output_file: Path | None = None
    """Step output file. Defaults to ``$GITHUB_OUTPUT``."""

    ci_mode: bool = False
    """Suppress step-by-step terminal output."""


@dataclass
class CoverageReportResult:
    """Result of a coverage report run."""

    nodes: list[NodeDescriptor] = field(default_factory=list)
    """Affected Jest projects, in discovery order."""

    node_coverages: list[NodeCoverage] = field(default_factory=list)
    """Projects that produced coverage, in discovery order."""

    skipped: dict[str, str] = field(default_factory=dict)
    """Projects without coverage, mapped to the reason."""

    summary: CoverageSummary | None = None
    report: str | None = None
    outputs: dict[str, str] = field(default_factory=dict)
    published: bool = False

    state_history: list[PipelineState] = field(default_factory=list)
    """States visited, ending with DONE."""

    message: str = ""
    """Why the run ended early, if it did."""

    success: bool = True
    errors: list[str] = field(default_factory=list)


class CoverageReportPipeline:
    """Orchestrates one coverage report run."""

    def __init__(
        self,
        config: CoverageReportConfig,
        *,
        discoverer: Discoverer = discover_affected_nodes,
        resolver: Resolver | None = None,
        publisher: Publisher | None = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            config: Run configuration.
            discoverer: Returns the affected projects for a command.
            resolver: Resolves one project's coverage. Defaults to a
                :class:`NodeCoverageResolver` rooted at the workspace.
            publisher: Publishes the report. Defaults to
                :class:`GitHubCommentReporter`.
        """
        self.config = config
        self._discoverer = discoverer
        self._resolver = resolver or NodeCoverageResolver(
            config.workspace_root, timeout=config.probe_timeout
        )
        self._publisher = publisher or GitHubCommentReporter()

    async def run(self) -> CoverageReportResult:
        """Execute the pipeline.

        Stage-level problems (no projects, missing coverage, failed publish)
        end the run or are skipped without failing it. Any other exception
        marks the result as failed.
        """
        result = CoverageReportResult()
        tracker = _StepTracker(_TOTAL_STEPS, ci_mode=self.config.ci_mode)
        start = time.monotonic()

        if not self.config.ci_mode:
            reporter.print_pipeline_header("nxcov report")

        try:
            await self._run_pipeline_steps(result, tracker)
        except Exception as e:
            logger.exception("Coverage report pipeline failed: %s", e)
            result.success = False
            result.errors.append(str(e))

        result.state_history.append(PipelineState.DONE)
        logger.debug("Pipeline finished in %.2fs", time.monotonic() - start)
        return result

    async def _run_pipeline_steps(
        self, result: CoverageReportResult, tracker: _StepTracker
    ) -> None:
        # Step 1: Run affected tests (optional)
        if self.config.run_tests:
            tracker.step("Running affected tests")
            result.state_history.append(PipelineState.RUN_TESTS)
            await self._run_tests()
        else:
            tracker.skip("Running affected tests")

        # Step 2: Discover affected Jest projects
        tracker.step("Discovering affected projects")
        result.state_history.append(PipelineState.DISCOVER)
        discovered = await self._discover()
        if not discovered.ok or not discovered.value:
            self._finish_early(result, discovered.reason or NO_AFFECTED_PROJECTS)
            return
        result.nodes = discovered.value
        logger.info("Found %d affected projects", len(result.nodes))

        # Step 3: Resolve coverage per project
        tracker.step(f"Collecting coverage for {len(result.nodes)} projects")
        result.state_history.append(PipelineState.PER_NODE_LOOP)
        await self._resolve_nodes(result)
        if not result.node_coverages:
            self._finish_early(result, NO_COVERAGE_DATA)
            return
        logger.info("Found coverage data for %d projects", len(result.node_coverages))

        # Step 4: Aggregate and render
        tracker.step("Aggregating coverage and rendering report")
        result.state_history.append(PipelineState.AGGREGATE)
        result.summary = aggregate_coverage(result.node_coverages)
        result.state_history.append(PipelineState.RENDER)
        result.report = render_report(
            result.node_coverages, result.summary, self.config.run_context.anchor
        )
        if not self.config.ci_mode:
            reporter.print_coverage_summary(result.summary, result.node_coverages)

        # Step 5: Run outputs
        tracker.step("Writing run outputs")
        result.state_history.append(PipelineState.OUTPUTS)
        result.outputs = build_run_outputs(result.summary)
        write_run_outputs(result.outputs, self.config.output_file)

        # Step 6: Publish
        if self.config.run_context.is_review_request:
            tracker.step("Publishing pull request comment")
            result.state_history.append(PipelineState.PUBLISH)
            published = self._publish(result.report)
            result.published = bool(published.value)
        else:
            tracker.skip("Publishing pull request comment")
            logger.info("Not running in a PR context, skipping PR comment creation")
            if not self.config.ci_mode:
                reporter.print_report(result.report)

    def _finish_early(self, result: CoverageReportResult, message: str) -> None:
        logger.info(message)
        result.message = message
        if not self.config.ci_mode:
            reporter.print_info(message)
            reporter.print_skipped(result.skipped)

    async def _run_tests(self) -> StageResult[None]:
        """Run the affected tests; failures are reported but never fatal."""
        try:
            argv = build_command(self.config.test_command)
            run = await run_subprocess(
                argv, cwd=self.config.workspace_root, timeout=self.config.test_timeout
            )
        except (SubprocessError, ValueError) as exc:
            logger.warning("Tests failed: %s", exc)
            logger.warning("Continuing with coverage report generation")
            return StageResult.failed(str(exc))

        if not run.success:
            logger.warning("Tests failed with exit code %d", run.returncode)
            logger.warning("Continuing with coverage report generation")
            return StageResult.failed(f"exit code {run.returncode}")

        return StageResult.completed(None)

    async def _discover(self) -> StageResult[list[NodeDescriptor]]:
        nodes = await self._discoverer(
            self.config.affected_command,
            cwd=self.config.workspace_root,
            executors=self.config.executors,
            timeout=self.config.discovery_timeout,
        )
        if not nodes:
            return StageResult.skipped(NO_AFFECTED_PROJECTS)
        return StageResult.completed(nodes)

    async def _resolve_nodes(self, result: CoverageReportResult) -> None:
        """Resolve each node in discovery order, one at a time."""
        for node in result.nodes:
            logger.info("Processing project: %s", node.name)
            try:
                outcome = await self._resolver.resolve(node)
            except Exception as exc:
                logger.exception("Unexpected error resolving coverage for %s", node.name)
                outcome = StageResult.failed(str(exc))

            if outcome.ok and outcome.value is not None:
                result.node_coverages.append(outcome.value)
                continue

            result.skipped[node.name] = outcome.reason
            if outcome.status is StageStatus.FAILED:
                logger.warning("Skipping project %s: %s", node.name, outcome.reason)

    def _publish(self, report: str) -> StageResult[bool]:
        run_context = self.config.run_context
        try:
            published = self._publisher.publish(report, run_context.anchor, run_context)
        except Exception as exc:
            logger.warning("Failed to upsert PR comment: %s", exc)
            return StageResult.failed(str(exc))

        if published:
            logger.info("PR comment created or updated successfully")
            if not self.config.ci_mode:
                reporter.print_success("PR comment created or updated successfully")
        else:
            logger.info("PR comment was not created or updated")
        return StageResult.completed(published)
