"""nxcov CLI — top-level command group."""

from __future__ import annotations

import asyncio
import copy
import json
import logging
from pathlib import Path
from typing import Any

import click
import yaml
from rich.console import Console
from rich.logging import RichHandler

from nxcov import __version__
from nxcov.agents.pipelines import (
    CoverageReportConfig,
    CoverageReportPipeline,
    CoverageReportResult,
)
from nxcov.agents.reporters.terminal import reporter
from nxcov.config import CONFIG_FILENAME, NxCovConfig, load_config, validate_config
from nxcov.utils.ci_context import RunContext, detect_ci_context

logger = logging.getLogger(__name__)
console = Console()

# Masking thresholds
_MIN_MASKED_VALUE_LENGTH = 8

_SENSITIVE_KEYS = frozenset({"token"})


def _configure_logging(*, verbose: bool) -> None:
    """Route library logging through rich."""
    root = logging.getLogger()
    for handler in list(root.handlers):
        if isinstance(handler, RichHandler):
            root.removeHandler(handler)
    root.addHandler(
        RichHandler(console=Console(stderr=True), show_path=False, rich_tracebacks=verbose)
    )
    root.setLevel(logging.DEBUG if verbose else logging.WARNING)


def _mask_sensitive_values(config_dict: dict[str, Any]) -> dict[str, Any]:
    """Recursively mask sensitive values in configuration dict."""
    result = copy.deepcopy(config_dict)

    def _mask_dict(data: dict[str, Any]) -> None:
        for key, value in data.items():
            if key in _SENSITIVE_KEYS and isinstance(value, str) and value:
                # Show first 4 chars, mask the rest
                if len(value) > _MIN_MASKED_VALUE_LENGTH:
                    data[key] = f"{value[:4]}...{value[-4:]}"
                else:
                    data[key] = "***"
            elif isinstance(value, dict):
                _mask_dict(value)

    _mask_dict(result)
    return result


def _annotate_error(message: str) -> None:
    """Emit a workflow error annotation when running under GitHub Actions."""
    if detect_ci_context().is_github_actions:
        click.echo(f"::error::{message}")


def _load_or_abort(path: str, overrides: dict[str, dict[str, Any]] | None = None) -> NxCovConfig:
    try:
        return load_config(path, overrides)
    except (OSError, ValueError, yaml.YAMLError) as e:
        reporter.print_error(f"Failed to load configuration: {e}")
        _annotate_error(f"Failed to load configuration: {e}")
        raise click.Abort from e


@click.group()
@click.option(
    "--ci",
    is_flag=True,
    help="CI mode: plain output, no step-by-step progress.",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.version_option(version=__version__, prog_name="nxcov")
@click.pass_context
def cli(ctx: click.Context, *, ci: bool, verbose: bool) -> None:
    """nxcov — Jest coverage reports for affected Nx projects."""
    ctx.ensure_object(dict)
    ctx.obj["ci"] = ci or detect_ci_context().is_ci
    _configure_logging(verbose=verbose)


@cli.command()
@click.option(
    "--path",
    default=".",
    type=click.Path(exists=True, file_okay=False, resolve_path=True),
    help=f"Directory holding {CONFIG_FILENAME}.",
)
@click.option("--workspace", default=None, help="Nx workspace root (default: --path).")
@click.option(
    "--affected-command",
    default=None,
    help="Command printing the affected project graph as JSON.",
)
@click.option(
    "--run-tests/--no-run-tests",
    default=None,
    help="Run affected tests before collecting coverage.",
)
@click.option("--anchor", default=None, help="Marker identifying the report comment.")
@click.option("--token", default=None, help="GitHub token (default: GITHUB_TOKEN).")
@click.option(
    "--output-file",
    default=None,
    type=click.Path(dir_okay=False),
    help="Write step outputs here instead of $GITHUB_OUTPUT.",
)
@click.option(
    "--json-output",
    "as_json",
    is_flag=True,
    help="Print the run result as JSON.",
)
@click.pass_context
def report(
    ctx: click.Context,
    path: str,
    workspace: str | None,
    affected_command: str | None,
    run_tests: bool | None,
    anchor: str | None,
    token: str | None,
    output_file: str | None,
    *,
    as_json: bool,
) -> None:
    """Aggregate Jest coverage of affected projects and publish the report.

    Example:
      nxcov report
      nxcov report --run-tests --anchor "<!-- my-report -->"
    """
    ci_mode = (ctx.obj.get("ci", False) if ctx.obj else False) or as_json
    overrides = {
        "workspace": {"root": workspace},
        "discovery": {"affected_command": affected_command},
        "tests": {"run": run_tests},
        "report": {"anchor": anchor},
        "github": {"token": token},
    }
    config = _load_or_abort(path, overrides)

    errors = validate_config(config)
    if errors:
        for error in errors:
            reporter.print_error(error)
        _annotate_error(f"Invalid configuration: {'; '.join(errors)}")
        raise click.Abort

    run_context = RunContext.from_env(
        config.report.anchor,
        token=config.github.token or None,
        api_url=config.github.api_url or None,
    )
    pipeline_config = CoverageReportConfig(
        workspace_root=config.workspace_root,
        run_context=run_context,
        affected_command=config.discovery.affected_command,
        executors=tuple(config.discovery.executors),
        run_tests=config.tests.run,
        test_command=config.tests.command,
        discovery_timeout=config.discovery.timeout,
        probe_timeout=config.discovery.timeout,
        test_timeout=config.tests.timeout,
        output_file=Path(output_file) if output_file else None,
        ci_mode=ci_mode,
    )

    result = asyncio.run(CoverageReportPipeline(pipeline_config).run())

    if as_json:
        click.echo(json.dumps(_result_to_dict(result), indent=2))
    elif ci_mode:
        click.echo(
            result.message
            or f"Coverage report generated for {len(result.node_coverages)} projects"
        )
        if result.report and not result.published:
            click.echo(result.report)
    else:
        _display_report_result(result)

    if not result.success:
        message = "; ".join(result.errors) or "Coverage report failed"
        reporter.print_error(message)
        _annotate_error(message)
        raise click.Abort


def _result_to_dict(result: CoverageReportResult) -> dict[str, Any]:
    return {
        "success": result.success,
        "message": result.message,
        "projects": [node.name for node in result.nodes],
        "covered_projects": [nc.name for nc in result.node_coverages],
        "skipped": result.skipped,
        "summary": result.summary.to_dict() if result.summary else None,
        "outputs": result.outputs,
        "report": result.report,
        "published": result.published,
        "states": [state.value for state in result.state_history],
        "errors": result.errors,
    }


def _display_report_result(result: CoverageReportResult) -> None:
    console.print()
    console.print("[bold cyan]── Results ─────────────────────────────────────[/bold cyan]")
    console.print()

    if result.message:
        reporter.print_info(result.message)
    else:
        reporter.print_success(
            f"Coverage collected for {len(result.node_coverages)} of {len(result.nodes)} projects"
        )
    if result.skipped:
        reporter.print_warning(f"{len(result.skipped)} project(s) skipped:")
        reporter.print_skipped(result.skipped)
    if result.published:
        reporter.print_success("Report comment published")


@cli.group("config")
def config_group() -> None:
    """Inspect `.nxcov.yml` configuration."""


@config_group.command("show")
@click.option(
    "--path",
    default=".",
    type=click.Path(exists=True, file_okay=False, resolve_path=True),
    help="Project root directory.",
)
@click.option(
    "--json-output",
    "as_json",
    is_flag=True,
    help="Output as JSON instead of YAML.",
)
@click.option(
    "--no-mask",
    is_flag=True,
    help="Show sensitive values unmasked (use with caution).",
)
def config_show(path: str, *, as_json: bool, no_mask: bool) -> None:
    """Display resolved configuration with masked sensitive values.

    Shows the configuration after ``.nxcov.yml``, action inputs and
    environment variables are applied. Tokens are masked by default.

    Example:
      nxcov config show
      nxcov config show --json-output
    """
    config_dict = _load_or_abort(path).to_dict()

    if not no_mask:
        config_dict = _mask_sensitive_values(config_dict)

    if as_json:
        click.echo(json.dumps(config_dict, indent=2))
    else:
        console.print()
        console.print("[bold cyan]Configuration:[/bold cyan]")
        console.print()
        click.echo(yaml.safe_dump(config_dict, sort_keys=False, default_flow_style=False))


@config_group.command("validate")
@click.option(
    "--path",
    default=".",
    type=click.Path(exists=True, file_okay=False, resolve_path=True),
    help="Project root directory.",
)
def config_validate(path: str) -> None:
    """Validate the resolved configuration.

    Example:
      nxcov config validate
    """
    errors = validate_config(_load_or_abort(path))

    if not errors:
        reporter.print_success("Configuration is valid!")
        return

    reporter.print_error(f"Found {len(errors)} configuration error(s):")
    console.print()

    for idx, error in enumerate(errors, start=1):
        console.print(f"  {idx}. [red]{error}[/red]")

    console.print()
    console.print(
        f"[dim]Fix these errors in {CONFIG_FILENAME} and run 'nxcov config validate' again.[/dim]"
    )
    raise click.Abort
