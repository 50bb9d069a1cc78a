"""Detectors for the projects in scope of a run."""

from nxcov.agents.detectors.affected import (
    DEFAULT_AFFECTED_COMMAND,
    JEST_EXECUTORS,
    GraphParseError,
    discover_affected_nodes,
    parse_affected_graph,
)

__all__ = [
    "DEFAULT_AFFECTED_COMMAND",
    "JEST_EXECUTORS",
    "GraphParseError",
    "discover_affected_nodes",
    "parse_affected_graph",
]
