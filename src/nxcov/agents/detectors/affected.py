"""Affected project discovery via the Nx project graph.

Runs an ``nx affected ... --graph=stdout`` style command once and keeps the
projects whose ``test`` target uses the Jest executor.
"""

from __future__ import annotations

import json
import logging
import shlex
from typing import TYPE_CHECKING, Any

from nxcov.models.coverage import NodeDescriptor
from nxcov.utils.subprocess_runner import DEFAULT_TIMEOUT, SubprocessError, run_subprocess

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

logger = logging.getLogger(__name__)

JEST_EXECUTORS = ("@nx/jest:jest", "@nrwl/jest:jest")
"""Jest executor names under the current and legacy Nx package namespaces."""

DEFAULT_AFFECTED_COMMAND = "nx affected -t=test --graph=stdout"


class GraphParseError(ValueError):
    """Raised when the project graph payload does not have the expected shape."""


def build_command(command: str) -> list[str]:
    """Split a command string into argv, running bare ``nx`` through ``npx``."""
    parts = shlex.split(command)
    if not parts:
        raise ValueError("Affected projects command cannot be empty")
    if parts[0] == "nx":
        return ["npx", *parts]
    return parts


def _test_executor(data: dict[str, Any]) -> str | None:
    targets = data.get("targets")
    if not isinstance(targets, dict):
        return None
    test_target = targets.get("test")
    if not isinstance(test_target, dict):
        return None
    executor = test_target.get("executor")
    return executor if isinstance(executor, str) else None


def parse_affected_graph(
    payload: str, executors: Iterable[str] = JEST_EXECUTORS
) -> list[NodeDescriptor]:
    """Extract Jest projects from ``nx ... --graph=stdout`` output.

    Args:
        payload: Raw JSON printed by the Nx command.
        executors: Executor names that identify a Jest test target.

    Returns:
        Matching projects in the order they appear in the graph.

    Raises:
        GraphParseError: If the payload is not a graph with a ``nodes`` mapping.
    """
    try:
        graph = json.loads(payload)
        nodes = graph["graph"]["nodes"]
    except (json.JSONDecodeError, KeyError, TypeError) as exc:
        raise GraphParseError(f"Unexpected project graph output: {exc}") from exc

    if not isinstance(nodes, dict):
        raise GraphParseError("Project graph 'nodes' is not an object")

    allowed = frozenset(executors)
    projects: list[NodeDescriptor] = []
    seen: set[str] = set()

    for key, node in nodes.items():
        data = node.get("data") if isinstance(node, dict) else None
        if not isinstance(data, dict):
            raise GraphParseError(f"Project graph node {key!r} has no data")
        if _test_executor(data) not in allowed:
            continue

        name = node.get("name") or key
        if not isinstance(name, str):
            raise GraphParseError(f"Project graph node {key!r} has no valid name")
        root = data.get("root")
        if not isinstance(root, str):
            raise GraphParseError(f"Project {name!r} has no root")

        if name in seen:
            logger.warning("Duplicate project %s in graph output, ignoring", name)
            continue
        seen.add(name)
        projects.append(NodeDescriptor(name=name, root=root))

    return projects


async def discover_affected_nodes(
    command: str,
    *,
    cwd: Path | None = None,
    executors: Iterable[str] = JEST_EXECUTORS,
    timeout: float = DEFAULT_TIMEOUT,
) -> list[NodeDescriptor]:
    """Return the affected projects that test with Jest.

    The command is run once. Any failure to run it, or to parse its output,
    is logged and yields an empty list.
    """
    logger.debug("Using command: %s", command)

    try:
        argv = build_command(command)
        result = await run_subprocess(argv, cwd=cwd, timeout=timeout)
    except (SubprocessError, ValueError) as exc:
        logger.warning("Error executing affected projects command: %s", exc)
        return []

    if not result.success:
        logger.warning(
            "Affected projects command failed (exit code %d): %s",
            result.returncode,
            result.stderr.strip(),
        )
        return []

    try:
        projects = parse_affected_graph(result.stdout, executors)
    except GraphParseError as exc:
        logger.error("Error parsing affected projects output: %s", exc)
        logger.debug("Output buffer: %s", result.stdout)
        return []

    logger.debug("Found %d affected projects using Jest", len(projects))
    return projects
