"""GitHub comment reporter for the sticky coverage report.

Keeps at most one report comment per pull request: the comment carrying the
report anchor is updated in place, otherwise a new one is created.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from nxcov.utils.git import CommentAction, GitHubAPI, GitHubAPIError

if TYPE_CHECKING:
    from nxcov.utils.ci_context import RunContext

logger = logging.getLogger(__name__)


class GitHubCommentReporter:
    """Reporter that publishes the coverage report as a PR comment."""

    def __init__(self) -> None:
        self.last_action: CommentAction | None = None
        """What the last successful publish did (create or update)."""

        self.comment_url: str | None = None
        """URL of the last published comment."""

    def publish(self, report: str, anchor: str, run_context: RunContext) -> bool:
        """Create or update the report comment for the run's pull request.

        Args:
            report: Rendered report body. Should start with ``anchor``.
            anchor: Marker used to find a previous report comment.
            run_context: Token and pull request identity for this run.

        Returns:
            True if a comment was created or updated, False otherwise.
        """
        self.last_action = None
        self.comment_url = None

        pr_info = run_context.pr_info
        if pr_info is None:
            logger.info("Not in a PR context, skipping comment creation")
            return False

        if not run_context.token:
            logger.error("No GitHub token found, cannot create PR comment")
            return False

        logger.info(
            "Publishing coverage report to PR #%d in %s/%s",
            pr_info.pr_number,
            pr_info.owner,
            pr_info.repo,
        )

        try:
            api = GitHubAPI(token=run_context.token, api_url=run_context.api_url)
            action, response = api.upsert_comment(pr_info, report, anchor)
        except GitHubAPIError as exc:
            logger.error("Error creating/updating PR comment: %s", exc)
            return False
        except Exception:
            logger.exception("Unexpected error creating/updating PR comment")
            return False

        self.last_action = action
        self.comment_url = response.get("html_url")
        logger.info("Comment %s: %s", action.value, self.comment_url)
        return True
