"""Per-file comparison of a current coverage model against a baseline."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from lcov_reporter.analyzers.aggregate import file_stats
from lcov_reporter.models.coverage import DiffEntry

if TYPE_CHECKING:
    from collections.abc import Collection

    from lcov_reporter.models.coverage import CoverageModel

logger = logging.getLogger(__name__)


def build_diff(
    current: CoverageModel,
    baseline: CoverageModel | None = None,
    *,
    changed_files: Collection[str] | None = None,
) -> list[DiffEntry]:
    """Pair every file of *current* with its baseline counterpart.

    Entries are sorted by path so the output does not depend on the order
    files appeared in either report. Files that exist only in *baseline* are
    left out; see :func:`removed_files`.

    Args:
        current: Coverage model for the revision under review.
        baseline: Optional coverage model for the base revision.
        changed_files: Optional set of changed paths. Files outside it are
            flagged ``is_changed_file=False`` and report no uncovered lines.

    Returns:
        One DiffEntry per file in *current*, ordered by path.
    """
    if current is None:
        raise TypeError("build_diff() requires a current CoverageModel, got None")

    entries: list[DiffEntry] = []
    for path in sorted(current.paths):
        record = current.files[path]
        stats = file_stats(record)
        is_changed = changed_files is None or path in changed_files

        base_record = baseline.get(path) if baseline is not None else None
        base_stats = file_stats(base_record) if base_record is not None else None
        delta = (
            round(stats.line_percentage - base_stats.line_percentage, 2)
            if base_stats is not None
            else None
        )

        entries.append(
            DiffEntry(
                path=path,
                current=record,
                stats=stats,
                baseline=base_record,
                baseline_stats=base_stats,
                percentage_delta=delta,
                uncovered_lines=record.uncovered_lines if is_changed else (),
                is_changed_file=is_changed,
            )
        )

    logger.debug("Built diff with %d entries", len(entries))
    return entries


def removed_files(current: CoverageModel, baseline: CoverageModel | None) -> list[str]:
    """Return paths covered in *baseline* but absent from *current*, sorted."""
    if baseline is None:
        return []
    return sorted(path for path in baseline.paths if path not in current)
