"""Configuration parsing from ``.nxcov.yml`` and GitHub Actions inputs."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

import yaml

from nxcov.agents.detectors.affected import DEFAULT_AFFECTED_COMMAND, JEST_EXECUTORS
from nxcov.agents.pipelines.coverage_report import DEFAULT_TEST_COMMAND
from nxcov.utils.subprocess_runner import DEFAULT_TIMEOUT

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".nxcov.yml"
DEFAULT_ANCHOR = "<!-- nx-jest-coverage-report -->"
DEFAULT_TEST_TIMEOUT = 1800.0

_ENV_VAR_RE = re.compile(r"\$\{(\w+)\}")
_TRUE_VALUES = frozenset({"true", "1", "yes", "on"})

# GitHub Actions exposes each ``with:`` input as ``INPUT_<NAME>`` (upper-cased,
# hyphens kept). Maps input name -> (section, key).
ACTION_INPUTS: dict[str, tuple[str, str]] = {
    "INPUT_WORKSPACE-LOCATION": ("workspace", "root"),
    "INPUT_AFFECTED-PROJECTS-COMMAND": ("discovery", "affected_command"),
    "INPUT_RUN-TESTS": ("tests", "run"),
    "INPUT_REPORT-ANCHOR": ("report", "anchor"),
    "INPUT_GITHUB-TOKEN": ("github", "token"),
}


def _resolve_env_vars(value: str) -> str:
    """Replace ``${VAR_NAME}`` placeholders with environment variable values."""

    def _replace(match: re.Match[str]) -> str:
        var = match.group(1)
        resolved = os.environ.get(var)
        if resolved is None:
            logger.warning("Environment variable %s is not set (referenced in config)", var)
            return ""
        return resolved

    return _ENV_VAR_RE.sub(_replace, value)


def _resolve_dict(data: dict[str, Any]) -> dict[str, Any]:
    """Recursively resolve environment variables in a dictionary."""
    result: dict[str, Any] = {}
    for key, value in data.items():
        if isinstance(value, str):
            result[key] = _resolve_env_vars(value)
        elif isinstance(value, dict):
            result[key] = _resolve_dict(value)
        elif isinstance(value, list):
            result[key] = [
                _resolve_env_vars(item) if isinstance(item, str) else item for item in value
            ]
        else:
            result[key] = value
    return result


def _parse_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_VALUES
    return bool(value)


@dataclass
class WorkspaceConfig:
    """Workspace location."""

    root: str
    """Nx workspace root directory."""


@dataclass
class DiscoveryConfig:
    """Affected project discovery."""

    affected_command: str = DEFAULT_AFFECTED_COMMAND
    """Command printing the affected project graph (``--graph=stdout``)."""

    executors: list[str] = field(default_factory=lambda: list(JEST_EXECUTORS))
    """Test target executors that mark a project as a Jest project."""

    timeout: float = DEFAULT_TIMEOUT
    """Timeout in seconds for the affected command and each config probe."""


@dataclass
class TestsConfig:
    """Optional test run before collecting coverage."""

    run: bool = False
    """Run the affected tests first."""

    command: str = DEFAULT_TEST_COMMAND
    """Command used to run the affected tests."""

    timeout: float = DEFAULT_TEST_TIMEOUT
    """Timeout in seconds for the test run."""


@dataclass
class ReportConfig:
    """Report rendering."""

    anchor: str = DEFAULT_ANCHOR
    """Marker identifying the sticky report comment."""


@dataclass
class GitHubConfig:
    """GitHub publishing."""

    token: str = ""
    """API token (supports ${ENV_VAR} expansion, falls back to GITHUB_TOKEN)."""

    api_url: str = ""
    """REST API base URL (empty = ``GITHUB_API_URL`` or api.github.com)."""


@dataclass
class NxCovConfig:
    """Complete nxcov configuration."""

    workspace: WorkspaceConfig
    discovery: DiscoveryConfig = field(default_factory=DiscoveryConfig)
    tests: TestsConfig = field(default_factory=TestsConfig)
    report: ReportConfig = field(default_factory=ReportConfig)
    github: GitHubConfig = field(default_factory=GitHubConfig)

    @property
    def workspace_root(self) -> Path:
        """Workspace root as a resolved path."""
        return Path(self.workspace.root).resolve()

    def to_dict(self) -> dict[str, Any]:
        """Return the configuration as a plain nested dict."""
        return asdict(self)


def _section(raw: dict[str, Any], name: str) -> dict[str, Any]:
    value = raw.get(name, {})
    return value if isinstance(value, dict) else {}


def _read_config_file(path: Path) -> dict[str, Any]:
    if not path.is_file():
        return {}
    parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
    if not isinstance(parsed, dict):
        return {}
    return _resolve_dict(parsed)


def _action_inputs() -> dict[str, dict[str, Any]]:
    """Collect non-empty GitHub Actions inputs from the environment."""
    inputs: dict[str, dict[str, Any]] = {}
    for env_name, (section, key) in ACTION_INPUTS.items():
        value = os.environ.get(env_name, "").strip()
        if value:
            inputs.setdefault(section, {})[key] = value
    return inputs


def _merge(base: dict[str, Any], updates: dict[str, Any]) -> dict[str, Any]:
    merged = {name: dict(_section(base, name)) for name in base}
    for name, values in updates.items():
        if not isinstance(values, dict):
            continue
        section = merged.setdefault(name, {})
        section.update({k: v for k, v in values.items() if v is not None})
    return merged


def load_config(
    root: str | Path = ".", overrides: dict[str, dict[str, Any]] | None = None
) -> NxCovConfig:
    """Load the nxcov configuration.

    Sources, lowest to highest precedence: built-in defaults, ``.nxcov.yml``
    in ``root``, GitHub Actions inputs and ``overrides`` (CLI options,
    ``None`` values ignored).

    Args:
        root: Directory holding ``.nxcov.yml``; also the default workspace root.
        overrides: Per-section values, e.g. ``{"report": {"anchor": "..."}}``.

    Returns:
        The parsed configuration.
    """
    root_path = Path(root).resolve()
    raw = _read_config_file(root_path / CONFIG_FILENAME)
    raw = _merge(raw, _action_inputs())
    raw = _merge(raw, overrides or {})

    workspace_raw = _section(raw, "workspace")
    workspace_root = Path(str(workspace_raw.get("root", root_path)))
    if not workspace_root.is_absolute():
        workspace_root = root_path / workspace_root
    workspace = WorkspaceConfig(root=str(workspace_root))

    discovery_raw = _section(raw, "discovery")
    executors = discovery_raw.get("executors", list(JEST_EXECUTORS))
    discovery = DiscoveryConfig(
        affected_command=str(discovery_raw.get("affected_command", DEFAULT_AFFECTED_COMMAND)),
        executors=(
            [str(executor) for executor in executors] if isinstance(executors, list) else []
        ),
        timeout=float(discovery_raw.get("timeout", DEFAULT_TIMEOUT)),
    )

    tests_raw = _section(raw, "tests")
    tests = TestsConfig(
        run=_parse_bool(tests_raw.get("run", False)),
        command=str(tests_raw.get("command", DEFAULT_TEST_COMMAND)),
        timeout=float(tests_raw.get("timeout", DEFAULT_TEST_TIMEOUT)),
    )

    report_raw = _section(raw, "report")
    report = ReportConfig(anchor=str(report_raw.get("anchor", DEFAULT_ANCHOR)))

    github_raw = _section(raw, "github")
    github = GitHubConfig(
        token=str(github_raw.get("token") or os.environ.get("GITHUB_TOKEN", "")),
        api_url=str(github_raw.get("api_url", "")),
    )

    return NxCovConfig(
        workspace=workspace,
        discovery=discovery,
        tests=tests,
        report=report,
        github=github,
    )


def validate_config(config: NxCovConfig) -> list[str]:
    """Validate the configuration and return a list of error messages.

    Returns an empty list if the configuration is valid.
    """
    errors: list[str] = []

    if not config.workspace_root.is_dir():
        errors.append(f"workspace.root does not exist: {config.workspace.root}")

    if not config.discovery.affected_command.strip():
        errors.append("discovery.affected_command must not be empty")

    if not config.discovery.executors:
        errors.append("discovery.executors must list at least one executor")

    if config.discovery.timeout <= 0:
        errors.append(f"discovery.timeout must be positive (got: {config.discovery.timeout})")

    if config.tests.run and not config.tests.command.strip():
        errors.append("tests.command is required when tests.run is true")

    if config.tests.timeout <= 0:
        errors.append(f"tests.timeout must be positive (got: {config.tests.timeout})")

    if not config.report.anchor.strip():
        errors.append("report.anchor must not be empty")

    api_url = config.github.api_url
    if api_url and not api_url.startswith(("http://", "https://")):
        errors.append(f"github.api_url must be an http(s) URL (got: {api_url})")

    return errors
