"""Markdown rendering of coverage diffs for PR comments and job summaries.

The renderer is stateless and knows nothing about size limits. Callers that
must fit a budget re-render with a cheaper :class:`LinkMode` (see
:mod:`lcov_reporter.report`).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING
from urllib.parse import quote

if TYPE_CHECKING:
    from collections.abc import Sequence

    from lcov_reporter.models.coverage import DiffEntry, FileStats

DEFAULT_TITLE = "Coverage Report"
DEFAULT_SERVER_URL = "https://github.com"

_NEUTRAL_DELTA = "ø"
_NEW_FILE = "new"


class LinkMode(Enum):
    """How much hyperlinking the report embeds, richest first."""

    FILES_AND_LINES = "files-and-lines"
    FILES_ONLY = "files-only"
    NONE = "none"


@dataclass(frozen=True)
class RenderOptions:
    """Rendering configuration passed explicitly to :func:`render`."""

    title: str = DEFAULT_TITLE
    """Heading of the report."""

    link_mode: LinkMode = LinkMode.FILES_AND_LINES
    """Hyperlink verbosity."""

    changed_files_only: bool = False
    """Drop rows for files outside the changed-file set."""

    repository: str = ""
    """``owner/repo`` used to build source links."""

    commit: str = ""
    """Commit SHA the source links point at."""

    head: str = ""
    """Name of the ref under review."""

    base: str = ""
    """Name of the ref being merged into."""

    working_dir: str = ""
    """Directory (relative to the repository root) that LCOV paths are relative to."""

    server_url: str = DEFAULT_SERVER_URL
    """Base URL of the hosting platform."""

    @property
    def can_link(self) -> bool:
        """Return True when enough context is known to build source links."""
        return bool(self.repository and self.commit)


# ── Formatting helpers ───────────────────────────────────────────


def format_percentage(value: float) -> str:
    """Format a percentage with exactly two decimals."""
    return f"{value:.2f}%"


def format_delta(delta: float | None) -> str:
    """Format a signed percentage delta; zero and unknown deltas are neutral."""
    if delta is None or round(delta, 2) == 0:
        return _NEUTRAL_DELTA
    if delta > 0:
        return f"+{delta:.2f}%"
    return f"{delta:.2f}%"


def line_ranges(lines: Sequence[int]) -> list[tuple[int, int]]:
    """Collapse sorted line numbers into inclusive ``(start, end)`` ranges."""
    ranges: list[tuple[int, int]] = []
    for line in lines:
        if ranges and line == ranges[-1][1] + 1:
            ranges[-1] = (ranges[-1][0], line)
        else:
            ranges.append((line, line))
    return ranges


def _escape(text: str) -> str:
    return text.replace("|", "\\|").replace("[", "\\[").replace("]", "\\]")


def _source_url(path: str, options: RenderOptions) -> str:
    working_dir = options.working_dir.replace("\\", "/").strip("/")
    if working_dir.startswith("./"):
        working_dir = working_dir[2:]
    full_path = f"{working_dir}/{path}" if working_dir and working_dir != "." else path
    return (
        f"{options.server_url.rstrip('/')}/{options.repository}/blob/"
        f"{options.commit}/{quote(full_path, safe='/')}"
    )


def _format_file(entry: DiffEntry, options: RenderOptions) -> str:
    name = _escape(entry.path)
    if options.link_mode is LinkMode.NONE or not options.can_link:
        return name
    return f"[{name}]({_source_url(entry.path, options)})"


def _format_uncovered(entry: DiffEntry, options: RenderOptions) -> str:
    parts: list[str] = []
    link = options.link_mode is LinkMode.FILES_AND_LINES and options.can_link
    url = _source_url(entry.path, options) if link else ""
    for start, end in line_ranges(entry.uncovered_lines):
        label = str(start) if start == end else f"{start}-{end}"
        if link:
            anchor = f"#L{start}" if start == end else f"#L{start}-L{end}"
            parts.append(f"[{label}]({url}{anchor})")
        else:
            parts.append(label)
    return ", ".join(parts)


# ── Rendering ────────────────────────────────────────────────────


def _format_summary(
    overall: FileStats,
    baseline_overall: FileStats | None,
    options: RenderOptions,
) -> str:
    percentage = f"**{format_percentage(overall.line_percentage)}**"
    subject = "Coverage of changed files" if options.changed_files_only else "Coverage"
    if options.head and options.base:
        summary = (
            f"{subject} after merging **{_escape(options.head)}** into "
            f"**{_escape(options.base)}** will be {percentage}"
        )
    else:
        label = "Changed files coverage" if options.changed_files_only else "Overall coverage"
        summary = f"{label}: {percentage}"

    delta = None
    if baseline_overall is not None:
        delta = round(overall.line_percentage - baseline_overall.line_percentage, 2)
    return f"{summary} (Δ {format_delta(delta)})"


def _format_table(
    entries: Sequence[DiffEntry],
    options: RenderOptions,
    *,
    show_delta: bool,
) -> list[str]:
    if show_delta:
        lines = [
            "| File | Lines | Δ | Branches | Functions | Uncovered lines |",
            "|:-----|------:|--:|---------:|----------:|:----------------|",
        ]
    else:
        lines = [
            "| File | Lines | Branches | Functions | Uncovered lines |",
            "|:-----|------:|---------:|----------:|:----------------|",
        ]

    for entry in entries:
        cells = [
            _format_file(entry, options),
            format_percentage(entry.stats.line_percentage),
        ]
        if show_delta:
            cells.append(_NEW_FILE if entry.is_new else format_delta(entry.percentage_delta))
        cells.extend(
            [
                format_percentage(entry.stats.branch_percentage),
                format_percentage(entry.stats.function_percentage),
                _format_uncovered(entry, options),
            ]
        )
        lines.append("| " + " | ".join(cells) + " |")

    return lines


def render(
    entries: Sequence[DiffEntry],
    overall: FileStats,
    baseline_overall: FileStats | None = None,
    options: RenderOptions | None = None,
) -> str:
    """Render a coverage diff as Markdown.

    Args:
        entries: Diff entries in display order (as returned by ``build_diff``).
        overall: Aggregate statistics for the current report.
        baseline_overall: Aggregate statistics for the baseline, if any.
        options: Rendering configuration.

    Returns:
        The Markdown report.
    """
    if options is None:
        options = RenderOptions()

    rows = [e for e in entries if e.is_changed_file] if options.changed_files_only else entries

    sections: list[str] = []
    sections.append(f"## {options.title or DEFAULT_TITLE}")
    sections.append("")
    sections.append(_format_summary(overall, baseline_overall, options))
    sections.append("")

    if rows:
        sections.extend(_format_table(rows, options, show_delta=baseline_overall is not None))
    else:
        sections.append("_No covered files to report._")

    return "\n".join(sections) + "\n"
