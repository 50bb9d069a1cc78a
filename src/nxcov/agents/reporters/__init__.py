"""Reporters for outputting coverage report results."""

from __future__ import annotations

from nxcov.agents.reporters.github_comment import GitHubCommentReporter
from nxcov.agents.reporters.markdown import render_report
from nxcov.agents.reporters.terminal import reporter

__all__ = [
    "GitHubCommentReporter",
    "render_report",
    "reporter",
]
