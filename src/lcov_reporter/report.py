"""Build the full and the size-budgeted coverage report from raw LCOV text.

This is the caller side of the renderer: it owns the character budget and
downgrades the link mode (``files-and-lines`` -> ``files-only`` -> ``none``)
until the comment fits, hard-truncating as a last resort.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from lcov_reporter.adapters.lcov import LcovParser, MergePolicy
from lcov_reporter.analyzers.aggregate import aggregate
from lcov_reporter.analyzers.diff import build_diff, removed_files
from lcov_reporter.config import MAX_COMMENT_CHARS
from lcov_reporter.models.coverage import DiffEntry, FileStats
from lcov_reporter.reporters.markdown import (
    DEFAULT_SERVER_URL,
    DEFAULT_TITLE,
    LinkMode,
    RenderOptions,
    render,
)

logger = logging.getLogger(__name__)

AUTO_LINK_MODE = "auto"

_DOWNGRADE_ORDER = (LinkMode.FILES_AND_LINES, LinkMode.FILES_ONLY, LinkMode.NONE)


@dataclass(frozen=True)
class ReportSettings:
    """Everything the report needs to know about its surroundings."""

    title: str = DEFAULT_TITLE
    link_mode: str = AUTO_LINK_MODE
    """``auto`` or a :class:`LinkMode` value."""

    prefix: str = ""
    """Repository-root prefix stripped from LCOV paths."""

    filter_changed_files: bool = False
    changed_files: frozenset[str] = field(default_factory=frozenset)
    repository: str = ""
    commit: str = ""
    head: str = ""
    base: str = ""
    working_dir: str = ""
    server_url: str = DEFAULT_SERVER_URL
    merge_policy: MergePolicy = MergePolicy.MAX
    max_chars: int = MAX_COMMENT_CHARS


@dataclass(frozen=True)
class ReportBodies:
    """Rendered report variants plus the unfiltered data behind them."""

    full: str
    """Unfiltered report at the richest link mode, for archival and job summaries."""

    comment: str
    """Report meant for posting: filtered if requested and within ``max_chars``."""

    entries: tuple[DiffEntry, ...] = ()
    """Unfiltered diff entries."""

    overall: FileStats = field(default_factory=FileStats)
    """Unfiltered current totals."""

    baseline_overall: FileStats | None = None
    """Unfiltered baseline totals, if a baseline was given."""

    removed_files: tuple[str, ...] = ()
    """Files covered by the baseline but missing from the current report."""


def _render_options(
    settings: ReportSettings, link_mode: LinkMode, *, filtered: bool
) -> RenderOptions:
    return RenderOptions(
        title=settings.title or DEFAULT_TITLE,
        link_mode=link_mode,
        changed_files_only=filtered,
        repository=settings.repository,
        commit=settings.commit,
        head=settings.head,
        base=settings.base,
        working_dir=settings.working_dir,
        server_url=settings.server_url,
    )


def build_report(
    current_text: str,
    baseline_text: str | None,
    settings: ReportSettings,
) -> ReportBodies:
    """Parse, diff and render the coverage report.

    Args:
        current_text: LCOV content for the revision under review.
        baseline_text: LCOV content for the base revision, or None.
        settings: Explicit report context.

    Returns:
        The full report and the comment body.
    """
    parser = LcovParser(prefix=settings.prefix, merge_policy=settings.merge_policy)
    current = parser.parse(current_text)
    baseline = parser.parse(baseline_text) if baseline_text else None
    logger.info(
        "Parsed %d covered files%s",
        len(current),
        f" ({len(baseline)} in baseline)" if baseline is not None else "",
    )

    removed = removed_files(current, baseline)
    if removed:
        logger.info("%d files are no longer covered: %s", len(removed), ", ".join(removed))

    # Full report: every file, every link.
    full_entries = build_diff(current, baseline)
    overall = aggregate(current).overall
    baseline_overall = aggregate(baseline).overall if baseline is not None else None
    full = render(
        full_entries,
        overall,
        baseline_overall,
        _render_options(settings, LinkMode.FILES_AND_LINES, filtered=False),
    )

    filtered = settings.filter_changed_files
    if filtered:
        changed = settings.changed_files
        entries = build_diff(current, baseline, changed_files=changed)
        comment_overall = aggregate(current, changed).overall
        comment_baseline = (
            aggregate(baseline, changed).overall if baseline is not None else None
        )
    else:
        entries, comment_overall, comment_baseline = full_entries, overall, baseline_overall

    if settings.link_mode == AUTO_LINK_MODE:
        modes = _DOWNGRADE_ORDER
    else:
        modes = (LinkMode(settings.link_mode),)

    comment = ""
    for mode in modes:
        comment = render(
            entries,
            comment_overall,
            comment_baseline,
            _render_options(settings, mode, filtered=filtered),
        )
        if len(comment) <= settings.max_chars:
            break
        logger.info(
            "Report is %d characters at link mode %s (limit %d)",
            len(comment),
            mode.value,
            settings.max_chars,
        )
    else:
        logger.warning("Truncating report to %d characters", settings.max_chars)
        comment = comment[: settings.max_chars]

    return ReportBodies(
        full=full,
        comment=comment,
        entries=tuple(full_entries),
        overall=overall,
        baseline_overall=baseline_overall,
        removed_files=tuple(removed),
    )
