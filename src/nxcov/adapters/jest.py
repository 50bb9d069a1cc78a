"""Jest configuration probe.

Asks Jest itself for the resolved configuration of a project
(``jest --showConfig``) so that presets, Nx project configs and
``jest.config.*`` overrides are all taken into account.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from nxcov.utils.subprocess_runner import DEFAULT_TIMEOUT, SubprocessError, run_subprocess

logger = logging.getLogger(__name__)

JSON_SUMMARY_REPORTER = "json-summary"
"""Reporter that writes ``coverage-summary.json``."""

COVERAGE_SUMMARY_FILENAME = "coverage-summary.json"

SHOW_CONFIG_COMMAND = ("npx", "jest", "--showConfig")


@dataclass
class JestConfig:
    """The subset of Jest's global config needed to locate coverage output."""

    coverage_directory: str | None = None
    """Directory Jest writes coverage reports to."""

    coverage_reporters: list[str] = field(default_factory=list)
    """Names of the enabled coverage reporters."""

    @property
    def writes_json_summary(self) -> bool:
        """Return True if the ``json-summary`` reporter is enabled."""
        return JSON_SUMMARY_REPORTER in self.coverage_reporters


def _reporter_name(entry: Any) -> str | None:
    # Jest accepts both "json-summary" and ["json-summary", {options}].
    if isinstance(entry, str):
        return entry
    if isinstance(entry, list) and entry and isinstance(entry[0], str):
        return entry[0]
    return None


def parse_show_config(output: str) -> JestConfig:
    """Parse ``jest --showConfig`` output.

    Args:
        output: Raw stdout of the command.

    Returns:
        The parsed configuration. Missing fields are left empty.

    Raises:
        ValueError: If the output is not a JSON object with a
            ``globalConfig`` object.
    """
    data = json.loads(output)
    if not isinstance(data, dict):
        raise ValueError("Jest config output is not a JSON object")

    global_config = data.get("globalConfig")
    if not isinstance(global_config, dict):
        raise ValueError("Jest config output has no 'globalConfig' object")

    directory = global_config.get("coverageDirectory")
    reporters_raw = global_config.get("coverageReporters") or []
    if not isinstance(reporters_raw, list):
        reporters_raw = []

    reporters = [name for name in map(_reporter_name, reporters_raw) if name]

    return JestConfig(
        coverage_directory=directory if isinstance(directory, str) and directory else None,
        coverage_reporters=reporters,
    )


async def probe_jest_config(
    project_root: Path, *, timeout: float = DEFAULT_TIMEOUT
) -> JestConfig | None:
    """Return the resolved Jest config for a project, or None if unavailable.

    A relative ``coverageDirectory`` is resolved against ``project_root``.
    """
    logger.debug("Getting Jest config for project at: %s", project_root)

    try:
        result = await run_subprocess(list(SHOW_CONFIG_COMMAND), cwd=project_root, timeout=timeout)
    except (SubprocessError, ValueError) as exc:
        logger.warning("Error getting Jest config for %s: %s", project_root, exc)
        return None

    if not result.success:
        logger.warning(
            "jest --showConfig failed in %s (exit code %d): %s",
            project_root,
            result.returncode,
            result.stderr.strip(),
        )
        return None

    try:
        config = parse_show_config(result.stdout)
    except ValueError as exc:
        logger.error("Error parsing Jest config for %s: %s", project_root, exc)
        logger.debug("Output buffer: %s", result.stdout)
        return None

    if config.coverage_directory and not Path(config.coverage_directory).is_absolute():
        config.coverage_directory = str(project_root / config.coverage_directory)

    return config
