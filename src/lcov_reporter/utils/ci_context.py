"""GitHub Actions context detection.

Reads the ``GITHUB_*`` environment and the event payload once and hands the
result around as a plain value, so nothing downstream reaches for globals.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

# Expected number of parts when splitting "owner/repo"
_OWNER_REPO_PARTS = 2


@dataclass(frozen=True)
class GitHubContext:
    """Detected GitHub Actions execution context."""

    event_name: str = ""
    """Triggering event (``pull_request``, ``push``, ...)."""

    repository: str = ""
    """``owner/repo``."""

    workspace: str = ""
    """Checkout directory on the runner."""

    server_url: str = "https://github.com"
    """Web base URL."""

    pr_number: int | None = None
    """Pull request number for ``pull_request`` events."""

    commit: str = ""
    """Head commit SHA."""

    base_commit: str = ""
    """Base commit SHA (PR base or the ``before`` of a push)."""

    head: str = ""
    """Head ref name."""

    base: str = ""
    """Base ref name (pull requests only)."""

    @property
    def is_pull_request(self) -> bool:
        """Return True for pull request events."""
        return self.event_name == "pull_request"

    @property
    def is_push(self) -> bool:
        """Return True for push events."""
        return self.event_name == "push"

    @property
    def owner_repo(self) -> tuple[str, str] | None:
        """Split ``repository`` into ``(owner, repo)``."""
        parts = self.repository.split("/")
        if len(parts) != _OWNER_REPO_PARTS or not all(parts):
            return None
        return parts[0], parts[1]

    @property
    def prefix(self) -> str:
        """Repository-root prefix for LCOV path normalization."""
        if not self.workspace:
            return ""
        return self.workspace.replace("\\", "/").rstrip("/") + "/"


def _load_event(event_path: str | None) -> dict[str, Any]:
    if not event_path:
        return {}
    try:
        data = json.loads(Path(event_path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("Could not read GitHub event payload %s: %s", event_path, exc)
        return {}
    return data if isinstance(data, dict) else {}


def _get(data: dict[str, Any], *keys: str) -> Any:
    node: Any = data
    for key in keys:
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    return node


def detect_github_context(environ: dict[str, str] | None = None) -> GitHubContext:
    """Build a GitHubContext from environment variables and the event payload.

    Args:
        environ: Environment mapping (defaults to ``os.environ``).

    Returns:
        GitHubContext; fields stay empty outside GitHub Actions.
    """
    env = dict(os.environ) if environ is None else environ
    event_name = env.get("GITHUB_EVENT_NAME", "")
    event = _load_event(env.get("GITHUB_EVENT_PATH"))

    pr_number: int | None = None
    commit = base_commit = head = base = ""

    if event_name == "pull_request":
        number = _get(event, "pull_request", "number")
        pr_number = number if isinstance(number, int) else None
        commit = str(_get(event, "pull_request", "head", "sha") or "")
        base_commit = str(_get(event, "pull_request", "base", "sha") or "")
        head = str(_get(event, "pull_request", "head", "ref") or "")
        base = str(_get(event, "pull_request", "base", "ref") or "")
    elif event_name == "push":
        commit = str(event.get("after") or env.get("GITHUB_SHA", ""))
        base_commit = str(event.get("before") or "")
        head = str(event.get("ref") or env.get("GITHUB_REF", ""))

    repository = str(_get(event, "repository", "full_name") or env.get("GITHUB_REPOSITORY", ""))

    return GitHubContext(
        event_name=event_name,
        repository=repository,
        workspace=env.get("GITHUB_WORKSPACE", ""),
        server_url=env.get("GITHUB_SERVER_URL", "https://github.com"),
        pr_number=pr_number,
        commit=commit or env.get("GITHUB_SHA", ""),
        base_commit=base_commit,
        head=head,
        base=base,
    )
