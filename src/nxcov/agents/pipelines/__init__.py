"""Pipeline orchestration modules."""

from nxcov.agents.pipelines.coverage_report import (
    CoverageReportConfig,
    CoverageReportPipeline,
    CoverageReportResult,
    PipelineState,
)

__all__ = [
    "CoverageReportConfig",
    "CoverageReportPipeline",
    "CoverageReportResult",
    "PipelineState",
]
