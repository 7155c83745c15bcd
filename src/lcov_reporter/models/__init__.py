"""Data models for lcov-reporter."""

from lcov_reporter.models.coverage import (
    BranchKey,
    CoverageModel,
    CoverageSummary,
    DiffEntry,
    FileRecord,
    FileStats,
    FunctionRecord,
)

__all__ = [
    "BranchKey",
    "CoverageModel",
    "CoverageSummary",
    "DiffEntry",
    "FileRecord",
    "FileStats",
    "FunctionRecord",
]
