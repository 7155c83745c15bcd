"""Tests for GitHub Actions context detection."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from lcov_reporter.utils.ci_context import GitHubContext, detect_github_context

if TYPE_CHECKING:
    from pathlib import Path


def _write_event(tmp_path: Path, payload: dict[str, Any]) -> str:
    event_path = tmp_path / "event.json"
    event_path.write_text(json.dumps(payload), encoding="utf-8")
    return str(event_path)


def test_pull_request_context(tmp_path: Path) -> None:
    """Pull request payload provides commits and refs."""
    payload = {
        "pull_request": {
            "number": 42,
            "head": {"sha": "headsha", "ref": "feature"},
            "base": {"sha": "basesha", "ref": "main"},
        },
        "repository": {"full_name": "owner/repo"},
    }
    env = {
        "GITHUB_EVENT_NAME": "pull_request",
        "GITHUB_EVENT_PATH": _write_event(tmp_path, payload),
        "GITHUB_WORKSPACE": "/home/runner/work/repo/repo",
        "GITHUB_SHA": "mergesha",
    }

    context = detect_github_context(env)

    assert context.is_pull_request
    assert not context.is_push
    assert context.pr_number == 42
    assert context.commit == "headsha"
    assert context.base_commit == "basesha"
    assert context.head == "feature"
    assert context.base == "main"
    assert context.owner_repo == ("owner", "repo")
    assert context.prefix == "/home/runner/work/repo/repo/"


def test_push_context(tmp_path: Path) -> None:
    """Push payload provides before/after commits and the pushed ref."""
    payload = {"after": "aftersha", "before": "beforesha", "ref": "refs/heads/main"}
    env = {
        "GITHUB_EVENT_NAME": "push",
        "GITHUB_EVENT_PATH": _write_event(tmp_path, payload),
        "GITHUB_REPOSITORY": "owner/repo",
    }

    context = detect_github_context(env)

    assert context.is_push
    assert context.pr_number is None
    assert context.commit == "aftersha"
    assert context.base_commit == "beforesha"
    assert context.head == "refs/heads/main"
    assert context.base == ""
    assert context.repository == "owner/repo"


def test_other_event_uses_github_sha() -> None:
    context = detect_github_context(
        {"GITHUB_EVENT_NAME": "workflow_dispatch", "GITHUB_SHA": "abc"}
    )
    assert context.commit == "abc"
    assert not context.is_pull_request
    assert not context.is_push


def test_outside_actions() -> None:
    context = detect_github_context({})
    assert context == GitHubContext()
    assert context.prefix == ""
    assert context.owner_repo is None


def test_unreadable_event_payload(tmp_path: Path) -> None:
    env = {
        "GITHUB_EVENT_NAME": "push",
        "GITHUB_EVENT_PATH": str(tmp_path / "missing.json"),
        "GITHUB_SHA": "fallback",
    }
    context = detect_github_context(env)
    assert context.commit == "fallback"


def test_invalid_json_payload(tmp_path: Path) -> None:
    event_path = tmp_path / "event.json"
    event_path.write_text("{not json", encoding="utf-8")
    context = detect_github_context(
        {"GITHUB_EVENT_NAME": "pull_request", "GITHUB_EVENT_PATH": str(event_path)}
    )
    assert context.pr_number is None


def test_windows_workspace_prefix() -> None:
    context = GitHubContext(workspace="D:\\a\\repo\\repo\\")
    assert context.prefix == "D:/a/repo/repo/"


def test_malformed_repository() -> None:
    assert GitHubContext(repository="no-slash").owner_repo is None
    assert GitHubContext(repository="a/b/c").owner_repo is None
