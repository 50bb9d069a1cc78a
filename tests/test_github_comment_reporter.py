"""Tests for the sticky PR comment publisher (agents/reporters/github_comment.py)."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from nxcov.agents.reporters.github_comment import GitHubCommentReporter
from nxcov.utils.ci_context import RunContext
from nxcov.utils.git import CommentAction, GitHubAPIError, GitHubPRInfo

_ANCHOR = "<!-- nx-jest-coverage-report -->"
_REPORT = f"{_ANCHOR}\n# Jest Coverage Report"
_API = "nxcov.agents.reporters.github_comment.GitHubAPI"


@pytest.fixture()
def pr_info() -> GitHubPRInfo:
    return GitHubPRInfo(owner="octocat", repo="hello-world", pr_number=42)


@pytest.fixture()
def run_context(pr_info: GitHubPRInfo) -> RunContext:
    return RunContext(anchor=_ANCHOR, token="test-value", pr_info=pr_info)


class TestPublish:
    def test_not_in_pr_context(self) -> None:
        reporter = GitHubCommentReporter()

        with patch(_API) as mock_api:
            published = reporter.publish(_REPORT, _ANCHOR, RunContext(anchor=_ANCHOR, token="t"))

        assert published is False
        mock_api.assert_not_called()

    def test_missing_token(self, pr_info: GitHubPRInfo) -> None:
        reporter = GitHubCommentReporter()

        with patch(_API) as mock_api:
            published = reporter.publish(
                _REPORT, _ANCHOR, RunContext(anchor=_ANCHOR, pr_info=pr_info)
            )

        assert published is False
        mock_api.assert_not_called()

    def test_creates_comment(self, run_context: RunContext, pr_info: GitHubPRInfo) -> None:
        reporter = GitHubCommentReporter()
        api = MagicMock()
        api.upsert_comment.return_value = (
            CommentAction.CREATED,
            {"id": 1, "html_url": "https://github.com/octocat/hello-world/pull/42#c1"},
        )

        with patch(_API, return_value=api) as mock_api:
            published = reporter.publish(_REPORT, _ANCHOR, run_context)

        assert published is True
        assert reporter.last_action is CommentAction.CREATED
        assert reporter.comment_url == "https://github.com/octocat/hello-world/pull/42#c1"
        mock_api.assert_called_once_with(token="test-value", api_url=None)
        api.upsert_comment.assert_called_once_with(pr_info, _REPORT, _ANCHOR)

    def test_updates_comment(self, run_context: RunContext) -> None:
        reporter = GitHubCommentReporter()
        api = MagicMock()
        api.upsert_comment.return_value = (CommentAction.UPDATED, {"id": 7})

        with patch(_API, return_value=api):
            assert reporter.publish(_REPORT, _ANCHOR, run_context) is True

        assert reporter.last_action is CommentAction.UPDATED
        assert reporter.comment_url is None

    def test_passes_api_url(self, pr_info: GitHubPRInfo) -> None:
        context = RunContext(
            anchor=_ANCHOR, token="t", pr_info=pr_info, api_url="https://ghe.internal/api/v3"
        )
        api = MagicMock()
        api.upsert_comment.return_value = (CommentAction.CREATED, {})

        with patch(_API, return_value=api) as mock_api:
            GitHubCommentReporter().publish(_REPORT, _ANCHOR, context)

        mock_api.assert_called_once_with(token="t", api_url="https://ghe.internal/api/v3")

    def test_api_error_is_not_raised(self, run_context: RunContext) -> None:
        reporter = GitHubCommentReporter()
        api = MagicMock()
        api.upsert_comment.side_effect = GitHubAPIError("POST request failed: 403")

        with patch(_API, return_value=api):
            assert reporter.publish(_REPORT, _ANCHOR, run_context) is False

        assert reporter.last_action is None

    def test_unexpected_error_is_not_raised(self, run_context: RunContext) -> None:
        api = MagicMock()
        api.upsert_comment.side_effect = RuntimeError("boom")

        with patch(_API, return_value=api):
            assert GitHubCommentReporter().publish(_REPORT, _ANCHOR, run_context) is False
