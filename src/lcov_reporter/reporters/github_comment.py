"""GitHub reporter for posting coverage reports to pull requests and commits.

This reporter:
1. Deletes earlier reports from this tool (matched by an HTML marker)
2. Posts the size-budgeted report as a PR comment or a commit comment
3. Writes the full report to the job summary when asked to
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from lcov_reporter.utils.actions import write_job_summary
from lcov_reporter.utils.git import GitHubAPIError, GitHubPRInfo, compute_comment_marker

if TYPE_CHECKING:
    from lcov_reporter.report import ReportBodies
    from lcov_reporter.utils.ci_context import GitHubContext
    from lcov_reporter.utils.git import GitHubAPI

logger = logging.getLogger(__name__)

POST_TO_COMMENT = "comment"
POST_TO_COMMENT_AND_SUMMARY = "comment-and-job-summary"
POST_TO_SUMMARY = "job-summary"


def comment_marker(title: str) -> str:
    """Return the hidden marker identifying reports with this *title*."""
    return compute_comment_marker(f"lcov-reporter:{title}")


class GitHubCommentReporter:
    """Posts coverage reports where the triggering event lives.

    Pull request events get an issue comment; push events get a commit
    comment on the pushed head. Other events are skipped with a log message.
    """

    def __init__(self, api: GitHubAPI, context: GitHubContext, title: str) -> None:
        """Initialize the reporter.

        Args:
            api: Authenticated GitHub API client.
            context: GitHub Actions context of the current run.
            title: Report title; reports are grouped by it for deletion.
        """
        self._api = api
        self._context = context
        self._marker = comment_marker(title)

    @property
    def marker(self) -> str:
        """Hidden HTML marker prepended to every posted body."""
        return self._marker

    def _pr_info(self) -> GitHubPRInfo | None:
        owner_repo = self._context.owner_repo
        if owner_repo is None or self._context.pr_number is None:
            return None
        owner, repo = owner_repo
        return GitHubPRInfo(owner=owner, repo=repo, pr_number=self._context.pr_number)

    def delete_old_comments(self) -> int:
        """Delete comments posted by earlier runs with the same title.

        Returns:
            Number of deleted comments.

        Raises:
            GitHubAPIError: If listing or deleting fails.
        """
        owner_repo = self._context.owner_repo
        if owner_repo is None:
            return 0
        owner, repo = owner_repo

        deleted = 0
        pr_info = self._pr_info()
        if self._context.is_pull_request and pr_info is not None:
            for comment in self._api.list_comments(pr_info):
                if self._marker in comment.get("body", ""):
                    logger.debug("Deleting old comment %d", comment["id"])
                    self._api.delete_comment(owner, repo, comment["id"])
                    deleted += 1
        elif self._context.is_push and self._context.commit:
            for comment in self._api.list_commit_comments(owner, repo, self._context.commit):
                if self._marker in comment.get("body", ""):
                    logger.debug("Deleting old commit comment %d", comment["id"])
                    self._api.delete_commit_comment(owner, repo, comment["id"])
                    deleted += 1

        logger.info("Deleted %d old coverage comments", deleted)
        return deleted

    def post_comment(self, body: str) -> dict[str, str] | None:
        """Post *body* on the pull request or commit of the current event.

        Returns:
            Dict with status and comment URL, or None when the event has
            nothing to comment on.

        Raises:
            GitHubAPIError: If posting the comment fails.
        """
        owner_repo = self._context.owner_repo
        if owner_repo is None:
            logger.warning("Repository is unknown; not posting a comment")
            return None

        body = f"{self._marker}\n{body}"
        pr_info = self._pr_info()
        if self._context.is_pull_request and pr_info is not None:
            logger.info(
                "Posting coverage report to PR #%d in %s",
                pr_info.pr_number,
                self._context.repository,
            )
            result = self._api.create_comment(pr_info, body)
        elif self._context.is_push and self._context.commit:
            logger.info("Posting coverage report to commit %s", self._context.commit[:8])
            result = self._api.create_commit_comment(*owner_repo, self._context.commit, body)
        else:
            logger.info("Event '%s' has nothing to comment on", self._context.event_name)
            return None

        return {
            "status": "success",
            "comment_url": result.get("html_url", ""),
        }


def publish_report(
    bodies: ReportBodies,
    post_to: str,
    reporter: GitHubCommentReporter | None,
    *,
    delete_old: bool = False,
) -> bool:
    """Deliver a report to the configured destinations.

    Comments get the size-budgeted body; job summaries get the full one.

    Args:
        bodies: Rendered report variants.
        post_to: ``comment``, ``comment-and-job-summary``, ``job-summary`` or empty.
        reporter: Comment reporter; required for comment destinations.
        delete_old: Delete earlier reports before posting.

    Returns:
        True if every requested destination was written.
    """
    ok = True
    if delete_old and reporter is not None:
        try:
            reporter.delete_old_comments()
        except GitHubAPIError as exc:
            logger.error("Failed to delete old comments: %s", exc)
            ok = False

    if post_to in (POST_TO_COMMENT, POST_TO_COMMENT_AND_SUMMARY):
        if reporter is None:
            logger.error("Cannot post a comment without GitHub credentials")
            ok = False
        else:
            try:
                result = reporter.post_comment(bodies.comment)
                if result:
                    logger.info("Posted coverage report: %s", result.get("comment_url"))
            except GitHubAPIError as exc:
                logger.error("Failed to post coverage report: %s", exc)
                ok = False

    if post_to in (POST_TO_SUMMARY, POST_TO_COMMENT_AND_SUMMARY):
        ok = write_job_summary(bodies.full) and ok
    elif post_to and post_to != POST_TO_COMMENT:
        logger.warning("Unknown post-to value: '%s'", post_to)

    return ok
