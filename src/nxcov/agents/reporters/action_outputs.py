"""Step outputs for the invoking CI job.

Writes the averaged coverage figures to the file named by ``GITHUB_OUTPUT``
so later workflow steps can read them.
"""

from __future__ import annotations

import json
import logging
import os
import uuid
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from nxcov.models.coverage import CoverageSummary

logger = logging.getLogger(__name__)

OUTPUT_NAMES = {
    "lines": "average_line_coverage",
    "statements": "average_statement_coverage",
    "functions": "average_function_coverage",
    "branches": "average_branch_coverage",
}
SUMMARY_OUTPUT = "coverage-summary"


def build_run_outputs(summary: CoverageSummary) -> dict[str, str]:
    """Return the step outputs for an aggregate summary."""
    outputs = {
        output: f"{summary.metric(metric).pct:.2f}" for metric, output in OUTPUT_NAMES.items()
    }
    outputs[SUMMARY_OUTPUT] = json.dumps(summary.to_dict())
    return outputs


def _format_output(name: str, value: str) -> str:
    if "\n" not in value:
        return f"{name}={value}\n"
    delimiter = f"ghadelimiter_{uuid.uuid4()}"
    return f"{name}<<{delimiter}\n{value}\n{delimiter}\n"


def write_run_outputs(outputs: dict[str, str], output_file: str | Path | None = None) -> bool:
    """Append outputs to the GitHub Actions output file.

    Args:
        outputs: Output names and values.
        output_file: Target file. Defaults to ``$GITHUB_OUTPUT``.

    Returns:
        True if the outputs were written, False when no output file is configured.
    """
    for name, value in outputs.items():
        logger.debug("Output %s=%s", name, value)

    target = output_file or os.environ.get("GITHUB_OUTPUT")
    if not target:
        logger.debug("No GITHUB_OUTPUT file configured, outputs not written")
        return False

    with Path(target).open("a", encoding="utf-8") as f:
        for name, value in outputs.items():
            f.write(_format_output(name, value))

    logger.info("Wrote %d outputs to %s", len(outputs), target)
    return True
