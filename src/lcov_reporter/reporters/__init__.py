"""Reporters for rendering and delivering coverage reports."""

from __future__ import annotations

from lcov_reporter.reporters.github_comment import GitHubCommentReporter, publish_report
from lcov_reporter.reporters.markdown import LinkMode, RenderOptions, render
from lcov_reporter.reporters.terminal import reporter

__all__ = [
    "GitHubCommentReporter",
    "LinkMode",
    "RenderOptions",
    "publish_report",
    "render",
    "reporter",
]
