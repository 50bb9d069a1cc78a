"""CI and pull request context detection utilities."""

from __future__ import annotations

import os
from dataclasses import dataclass

from nxcov.utils.git import GitHubPRInfo, get_pr_info_from_env


@dataclass
class CIContext:
    """Detected CI execution context."""

    is_ci: bool
    """Running in a CI environment."""

    is_github_actions: bool
    """Running inside a GitHub Actions job."""


def detect_ci_context() -> CIContext:
    """Detect CI context from environment variables.

    Supports GitHub Actions, GitLab CI, CircleCI, and generic CI detection.
    """
    is_github_actions = os.getenv("GITHUB_ACTIONS") == "true"
    is_ci = is_github_actions or any(
        os.getenv(name) == "true" for name in ("GITLAB_CI", "CIRCLECI", "CI")
    )
    return CIContext(is_ci=is_ci, is_github_actions=is_github_actions)


@dataclass(frozen=True)
class RunContext:
    """Everything the publish stage needs about the current run.

    Passed explicitly into the pipeline instead of being read from the
    environment at publish time.
    """

    anchor: str
    """Marker identifying the report comment."""

    token: str | None = None
    """Credential for the review-comment API."""

    pr_info: GitHubPRInfo | None = None
    """Pull request the run belongs to, if any."""

    api_url: str | None = None
    """REST API base URL override (GitHub Enterprise)."""

    @property
    def is_review_request(self) -> bool:
        """Return True when the run is associated with a pull request."""
        return self.pr_info is not None

    @classmethod
    def from_env(
        cls, anchor: str, token: str | None = None, api_url: str | None = None
    ) -> RunContext:
        """Build a run context from the GitHub Actions environment."""
        return cls(
            anchor=anchor,
            token=token or os.environ.get("GITHUB_TOKEN") or None,
            pr_info=get_pr_info_from_env(),
            api_url=api_url,
        )
