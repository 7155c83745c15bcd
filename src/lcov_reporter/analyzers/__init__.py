"""Analyzers that derive statistics and deltas from coverage models."""

from lcov_reporter.analyzers.aggregate import aggregate, file_stats
from lcov_reporter.analyzers.diff import build_diff, removed_files

__all__ = [
    "aggregate",
    "build_diff",
    "file_stats",
    "removed_files",
]
