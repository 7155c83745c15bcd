"""Git and GitHub API utilities for lcov-reporter.

Provides the GitHub REST calls the reporter needs (comments and changed
files) and a local ``git diff`` fallback for changed-file discovery.
"""

from __future__ import annotations

import hashlib
import logging
import os
import re
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import requests

logger = logging.getLogger(__name__)

# GitHub API constants
GITHUB_API_BASE = "https://api.github.com"
_GITHUB_AUTH_ENV_KEY = "GITHUB_" + "TOKEN"
_REQUEST_TIMEOUT = 30
_PER_PAGE = 100


def _git_executable() -> str:
    """Resolve the full path to the ``git`` executable."""
    return shutil.which("git") or "git"


@dataclass
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


class GitHubAPI:
    """Client for the GitHub REST API.

    Handles authentication, pagination, and comment management.
    """

    def __init__(self, token: str | None = None, api_url: str = GITHUB_API_BASE) -> None:
        """Initialize the GitHub API client.

        Args:
            token: GitHub token. If not provided, will try to read from the
                GITHUB_TOKEN environment variable.
            api_url: REST API base URL (differs on GitHub Enterprise Server).

        Raises:
            GitHubAPIError: If no token is available.
        """
        self._token = token or os.environ.get(_GITHUB_AUTH_ENV_KEY)
        if not self._token:
            raise GitHubAPIError(
                f"GitHub token required. Set {_GITHUB_AUTH_ENV_KEY} environment variable "
                "or pass token to constructor."
            )

        self._api_url = api_url.rstrip("/")
        self._session_headers = {
            "Authorization": f"Bearer {self._token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }

    # ── Comments ─────────────────────────────────────────────────

    def create_comment(self, pr_info: GitHubPRInfo, body: str) -> dict[str, Any]:
        """Create a new comment on a pull request.

        Raises:
            GitHubAPIError: If the API request fails.
        """
        url = (
            f"{self._api_url}/repos/{pr_info.owner}/{pr_info.repo}/"
            f"issues/{pr_info.pr_number}/comments"
        )
        result: dict[str, Any] = self._post(url, {"body": body})
        return result

    def create_commit_comment(self, owner: str, repo: str, sha: str, body: str) -> dict[str, Any]:
        """Create a new comment on a commit.

        Raises:
            GitHubAPIError: If the API request fails.
        """
        url = f"{self._api_url}/repos/{owner}/{repo}/commits/{sha}/comments"
        result: dict[str, Any] = self._post(url, {"body": body})
        return result

    def list_comments(self, pr_info: GitHubPRInfo) -> list[dict[str, Any]]:
        """List all comments on a pull request.

        Raises:
            GitHubAPIError: If the API request fails.
        """
        url = (
            f"{self._api_url}/repos/{pr_info.owner}/{pr_info.repo}/"
            f"issues/{pr_info.pr_number}/comments"
        )
        return self._get_paginated(url)

    def list_commit_comments(self, owner: str, repo: str, sha: str) -> list[dict[str, Any]]:
        """List all comments on a commit.

        Raises:
            GitHubAPIError: If the API request fails.
        """
        url = f"{self._api_url}/repos/{owner}/{repo}/commits/{sha}/comments"
        return self._get_paginated(url)

    def delete_comment(self, owner: str, repo: str, comment_id: int) -> None:
        """Delete a pull request (issue) comment.

        Raises:
            GitHubAPIError: If the API request fails.
        """
        self._delete(f"{self._api_url}/repos/{owner}/{repo}/issues/comments/{comment_id}")

    def delete_commit_comment(self, owner: str, repo: str, comment_id: int) -> None:
        """Delete a commit comment.

        Raises:
            GitHubAPIError: If the API request fails.
        """
        self._delete(f"{self._api_url}/repos/{owner}/{repo}/comments/{comment_id}")

    # ── Changed files ────────────────────────────────────────────

    def get_changed_files(self, owner: str, repo: str, base: str, head: str) -> set[str]:
        """Return paths added or modified between two commits.

        Uses the compare API; removed files are excluded since they cannot
        have current coverage.

        Raises:
            GitHubAPIError: If the API request fails.
        """
        url = f"{self._api_url}/repos/{owner}/{repo}/compare/{base}...{head}"
        changed: set[str] = set()
        page = 1
        while True:
            data = self._get(f"{url}?per_page={_PER_PAGE}&page={page}")
            files = data.get("files", []) if isinstance(data, dict) else []
            changed.update(
                f["filename"]
                for f in files
                if isinstance(f, dict) and f.get("filename") and f.get("status") != "removed"
            )
            if len(files) < _PER_PAGE:
                break
            page += 1

        logger.info("Found %d changed files between %s and %s", len(changed), base, head)
        return changed

    # ── Transport ────────────────────────────────────────────────

    def _get_paginated(self, url: str) -> list[dict[str, Any]]:
        items: list[dict[str, Any]] = []
        page = 1
        while True:
            batch = self._get(f"{url}?per_page={_PER_PAGE}&page={page}")
            if not isinstance(batch, list):
                break
            items.extend(batch)
            if len(batch) < _PER_PAGE:
                break
            page += 1
        return items

    def _get(self, url: str) -> Any:
        """Make a GET request to the GitHub API.

        Raises:
            GitHubAPIError: If the request fails.
        """
        try:
            response = requests.get(url, headers=self._session_headers, timeout=_REQUEST_TIMEOUT)
            response.raise_for_status()
            return response.json()
        except Exception as exc:
            raise GitHubAPIError(f"GET request failed: {exc}") from exc

    def _post(self, url: str, data: dict[str, Any]) -> Any:
        """Make a POST request to the GitHub API.

        Raises:
            GitHubAPIError: If the request fails.
        """
        try:
            response = requests.post(
                url, json=data, headers=self._session_headers, timeout=_REQUEST_TIMEOUT
            )
            response.raise_for_status()
            return response.json()
        except Exception as exc:
            raise GitHubAPIError(f"POST request failed: {exc}") from exc

    def _delete(self, url: str) -> None:
        """Make a DELETE request to the GitHub API.

        Raises:
            GitHubAPIError: If the request fails.
        """
        try:
            response = requests.delete(url, headers=self._session_headers, timeout=_REQUEST_TIMEOUT)
            response.raise_for_status()
        except Exception as exc:
            raise GitHubAPIError(f"DELETE request failed: {exc}") from exc


def compute_comment_marker(prefix: str) -> str:
    """Generate a unique marker for a GitHub comment.

    The HTML comment is invisible when rendered and lets later runs find
    (and delete) comments posted by earlier ones.

    Args:
        prefix: Prefix for the marker (e.g., "lcov-reporter:Coverage Report").

    Returns:
        HTML comment marker string.
    """
    hash_str = hashlib.sha256(prefix.encode()).hexdigest()[:8]
    return f"<!-- {prefix}:{hash_str} -->"


class GitOperationError(Exception):
    """Exception raised when git operations fail."""


_GIT_REF_MAX_LENGTH = 255
_GIT_REF_UNSAFE = re.compile(r"[\x00-\x1f\x7f \~\^:\?\*\[\]\\;|&$`()<>{}!#'\"]")


def _validate_git_ref(ref: str) -> None:
    """Validate a git ref to prevent injection and malformed inputs.

    Raises:
        GitOperationError: If the ref is invalid.
    """
    if not ref:
        raise GitOperationError("Git ref must not be empty")
    if len(ref) > _GIT_REF_MAX_LENGTH:
        raise GitOperationError(f"Git ref exceeds {_GIT_REF_MAX_LENGTH} characters")
    if _GIT_REF_UNSAFE.search(ref):
        raise GitOperationError(f"Git ref contains unsafe characters: {ref!r}")
    if ref.startswith("-"):
        raise GitOperationError("Git ref must not start with a dash")
    if ".." in ref:
        raise GitOperationError("Git ref must not contain '..'")


def get_changed_files_from_git(repo_path: Path | str, base: str, head: str = "HEAD") -> set[str]:
    """List files added, copied, modified or renamed between two refs.

    Uses ``git diff --name-only base...head`` so only changes made on the head
    side since the merge base are reported.

    Raises:
        GitOperationError: If a ref is invalid or git fails.
    """
    _validate_git_ref(base)
    _validate_git_ref(head)
    try:
        result = subprocess.run(
            [
                _git_executable(),
                "diff",
                "--name-only",
                "--diff-filter=ACMR",
                f"{base}...{head}",
            ],
            cwd=Path(repo_path),
            capture_output=True,
            text=True,
            check=True,
        )
    except subprocess.CalledProcessError as exc:
        raise GitOperationError(f"Failed to diff {base}...{head}: {exc}") from exc

    return {line.strip() for line in result.stdout.splitlines() if line.strip()}
