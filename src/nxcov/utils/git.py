"""GitHub API utilities for publishing the coverage report.

Only the pieces needed to keep a single sticky report comment on a pull
request: reading the PR identity from the Actions environment and the
issue-comment endpoints of the REST API.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

import requests

logger = logging.getLogger(__name__)

# GitHub API constants
GITHUB_API_BASE = "https://api.github.com"
_GITHUB_AUTH_ENV_KEY = "GITHUB_" + "TOKEN"
_PER_PAGE = 100
_REQUEST_TIMEOUT = 30

# Expected number of parts when splitting "owner/repo"
_OWNER_REPO_PARTS = 2

PULL_REQUEST_EVENTS = frozenset({"pull_request", "pull_request_target"})


@dataclass(frozen=True)
class GitHubPRInfo:
    """Information about a GitHub pull request."""

    owner: str
    """Repository owner (username or organization)."""

    repo: str
    """Repository name."""

    pr_number: int
    """Pull request number."""


class GitHubAPIError(Exception):
    """Exception raised when GitHub API operations fail."""


class CommentAction(Enum):
    CREATED = "created"
    UPDATED = "updated"


class GitHubAPI:
    """Client for the GitHub issue-comment REST endpoints."""

    def __init__(self, token: str | None = None, api_url: str | None = None) -> None:
        """Initialize the GitHub API client.

        Args:
            token: GitHub token. Falls back to the GITHUB_TOKEN environment variable.
            api_url: REST API base URL. Falls back to GITHUB_API_URL, then
                the public github.com API.

        Raises:
            GitHubAPIError: If no token is available.
        """
        self._token = token or os.environ.get(_GITHUB_AUTH_ENV_KEY)
        if not self._token:
            raise GitHubAPIError(
                f"GitHub token required. Set {_GITHUB_AUTH_ENV_KEY} environment variable "
                "or pass token to constructor."
            )

        self._base_url = (api_url or os.environ.get("GITHUB_API_URL") or GITHUB_API_BASE).rstrip(
            "/"
        )
        self._session_headers = {
            "Authorization": f"Bearer {self._token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }

    def _comments_url(self, pr_info: GitHubPRInfo) -> str:
        return (
            f"{self._base_url}/repos/{pr_info.owner}/{pr_info.repo}/"
            f"issues/{pr_info.pr_number}/comments"
        )

    def list_comments(self, pr_info: GitHubPRInfo) -> list[dict[str, Any]]:
        """Return every comment on a pull request, following pagination.

        Raises:
            GitHubAPIError: If the API request fails.
        """
        comments: list[dict[str, Any]] = []
        url: str | None = f"{self._comments_url(pr_info)}?per_page={_PER_PAGE}"

        while url:
            response = self._request("GET", url)
            page = _json(response)
            if not isinstance(page, list):
                raise GitHubAPIError(f"Unexpected comments payload from {url}")
            comments.extend(page)
            url = response.links.get("next", {}).get("url")

        logger.debug("Total PR comments: %d", len(comments))
        return comments

    def find_comment_by_marker(self, pr_info: GitHubPRInfo, marker: str) -> dict[str, Any] | None:
        """Return the first comment whose body contains ``marker``, if any.

        Raises:
            GitHubAPIError: If the API request fails.
        """
        for comment in self.list_comments(pr_info):
            if marker in (comment.get("body") or ""):
                return comment
        return None

    def create_comment(self, pr_info: GitHubPRInfo, body: str) -> dict[str, Any]:
        """Create a new comment on a pull request.

        Raises:
            GitHubAPIError: If the API request fails.
        """
        result: dict[str, Any] = _json(
            self._request("POST", self._comments_url(pr_info), {"body": body})
        )
        return result

    def update_comment(self, pr_info: GitHubPRInfo, comment_id: int, body: str) -> dict[str, Any]:
        """Replace the body of an existing comment.

        Raises:
            GitHubAPIError: If the API request fails.
        """
        url = f"{self._base_url}/repos/{pr_info.owner}/{pr_info.repo}/issues/comments/{comment_id}"
        result: dict[str, Any] = _json(self._request("PATCH", url, {"body": body}))
        return result

    def upsert_comment(
        self, pr_info: GitHubPRInfo, body: str, marker: str
    ) -> tuple[CommentAction, dict[str, Any]]:
        """Update the comment containing ``marker``, or create one.

        Args:
            pr_info: Pull request information.
            body: Comment body. Should include the marker.
            marker: Unique marker identifying the comment.

        Returns:
            The action taken and the GitHub API response.

        Raises:
            GitHubAPIError: If an API request fails.
        """
        if marker not in body:
            logger.warning("Marker '%s' not found in comment body. Adding it.", marker)
            body = f"{marker}\n{body}"

        existing = self.find_comment_by_marker(pr_info, marker)

        if existing:
            logger.info("Updating existing comment with ID %d", existing["id"])
            return CommentAction.UPDATED, self.update_comment(pr_info, existing["id"], body)

        logger.info("Creating new comment")
        return CommentAction.CREATED, self.create_comment(pr_info, body)

    def _request(
        self, method: str, url: str, data: dict[str, Any] | None = None
    ) -> requests.Response:
        try:
            response = requests.request(
                method,
                url,
                json=data,
                headers=self._session_headers,
                timeout=_REQUEST_TIMEOUT,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            raise GitHubAPIError(f"{method} request failed: {exc}") from exc
        return response


def _json(response: requests.Response) -> Any:
    try:
        return response.json()
    except ValueError as exc:
        raise GitHubAPIError(f"Invalid JSON in response from {response.url}: {exc}") from exc


def _pr_number_from_event(event_path: str | None) -> int | None:
    if not event_path:
        return None
    try:
        payload = json.loads(Path(event_path).read_text(encoding="utf-8"))
        number = payload["pull_request"]["number"]
    except (OSError, ValueError, KeyError, TypeError):
        return None
    return number if isinstance(number, int) else None


def _pr_number_from_ref(github_ref: str | None) -> int | None:
    # Format: refs/pull/<number>/merge
    if not github_ref or not github_ref.startswith("refs/pull/"):
        return None
    try:
        return int(github_ref.split("/")[2])
    except (IndexError, ValueError):
        return None


def get_pr_info_from_env() -> GitHubPRInfo | None:
    """Get PR information from GitHub Actions environment variables.

    Returns:
        GitHubPRInfo if running for a pull request event, None otherwise.
    """
    github_repository = os.environ.get("GITHUB_REPOSITORY")
    github_event_name = os.environ.get("GITHUB_EVENT_NAME")

    if not github_repository or github_event_name not in PULL_REQUEST_EVENTS:
        return None

    parts = github_repository.split("/")
    if len(parts) != _OWNER_REPO_PARTS:
        return None

    owner, repo = parts

    pr_number = _pr_number_from_ref(os.environ.get("GITHUB_REF")) or _pr_number_from_event(
        os.environ.get("GITHUB_EVENT_PATH")
    )
    if pr_number is None:
        return None

    return GitHubPRInfo(owner=owner, repo=repo, pr_number=pr_number)
