"""Coverage totals and percentages for a single coverage model."""

from __future__ import annotations

from typing import TYPE_CHECKING

from lcov_reporter.models.coverage import CoverageSummary, FileStats

if TYPE_CHECKING:
    from collections.abc import Collection

    from lcov_reporter.models.coverage import CoverageModel, FileRecord


def file_stats(record: FileRecord) -> FileStats:
    """Count found and hit lines, branches and functions for one file."""
    return FileStats(
        lines_found=len(record.lines),
        lines_hit=sum(1 for hits in record.lines.values() if hits > 0),
        branches_found=len(record.branches),
        branches_hit=sum(1 for hits in record.branches.values() if hits > 0),
        functions_found=len(record.functions),
        functions_hit=sum(1 for func in record.functions.values() if func.is_covered),
    )


def aggregate(model: CoverageModel, path_filter: Collection[str] | None = None) -> CoverageSummary:
    """Compute per-file statistics and an overall total.

    Args:
        model: Parsed coverage model.
        path_filter: Optional set of normalized paths. When given, only those
            files count towards ``overall``; ``per_file`` still lists every file.

    Returns:
        A CoverageSummary for the model.
    """
    if model is None:
        raise TypeError("aggregate() requires a CoverageModel, got None")

    per_file: dict[str, FileStats] = {}
    overall = FileStats()
    for record in model:
        stats = file_stats(record)
        per_file[record.path] = stats
        if path_filter is None or record.path in path_filter:
            overall += stats

    return CoverageSummary(overall=overall, per_file=per_file)
