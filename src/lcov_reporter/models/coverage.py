"""Coverage data models shared by the parser, analyzers and reporters."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import NamedTuple

_EMPTY: Mapping = MappingProxyType({})


def _empty() -> Mapping:
    return _EMPTY


def _percentage(hit: int, found: int) -> float:
    """Return ``hit / found`` as a percentage rounded to two decimals.

    A zero denominator counts as fully covered so that files without
    measurable units are not penalized.
    """
    if found == 0:
        return 100.0
    return round(hit / found * 100.0, 2)


class BranchKey(NamedTuple):
    """Identity of a single branch: ``(line, block, branch)``."""

    line: int
    block: str
    branch: str


@dataclass(frozen=True)
class FunctionRecord:
    """Coverage data for a single function."""

    name: str
    line: int | None
    hits: int

    @property
    def is_covered(self) -> bool:
        """Return True if this function was executed at least once."""
        return self.hits > 0


@dataclass(frozen=True)
class FileRecord:
    """Coverage data for a single source file.

    ``lines`` maps 1-based line numbers to hit counts in the order they
    appeared in the report. ``branches`` maps a :class:`BranchKey` to its hit
    count and ``functions`` maps function names to :class:`FunctionRecord`.
    """

    path: str
    lines: Mapping[int, int] = field(default_factory=_empty)
    branches: Mapping[BranchKey, int] = field(default_factory=_empty)
    functions: Mapping[str, FunctionRecord] = field(default_factory=_empty)

    @property
    def uncovered_lines(self) -> tuple[int, ...]:
        """Return the instrumented lines that were never executed, ascending."""
        return tuple(sorted(line for line, hits in self.lines.items() if hits == 0))


@dataclass(frozen=True)
class FileStats:
    """Found/hit counters for lines, branches and functions."""

    lines_found: int = 0
    lines_hit: int = 0
    branches_found: int = 0
    branches_hit: int = 0
    functions_found: int = 0
    functions_hit: int = 0

    @property
    def line_percentage(self) -> float:
        """Return line coverage percentage (0.0-100.0)."""
        return _percentage(self.lines_hit, self.lines_found)

    @property
    def branch_percentage(self) -> float:
        """Return branch coverage percentage (0.0-100.0)."""
        return _percentage(self.branches_hit, self.branches_found)

    @property
    def function_percentage(self) -> float:
        """Return function coverage percentage (0.0-100.0)."""
        return _percentage(self.functions_hit, self.functions_found)

    @property
    def has_lines(self) -> bool:
        """Return True if at least one line was instrumented."""
        return self.lines_found > 0

    def __add__(self, other: FileStats) -> FileStats:
        if not isinstance(other, FileStats):
            return NotImplemented
        return FileStats(
            lines_found=self.lines_found + other.lines_found,
            lines_hit=self.lines_hit + other.lines_hit,
            branches_found=self.branches_found + other.branches_found,
            branches_hit=self.branches_hit + other.branches_hit,
            functions_found=self.functions_found + other.functions_found,
            functions_hit=self.functions_hit + other.functions_hit,
        )


@dataclass(frozen=True)
class CoverageModel:
    """Ordered, path-keyed collection of :class:`FileRecord` objects."""

    files: Mapping[str, FileRecord] = field(default_factory=_empty)

    def __post_init__(self) -> None:
        if not isinstance(self.files, MappingProxyType):
            object.__setattr__(self, "files", MappingProxyType(dict(self.files)))

    def __iter__(self) -> Iterator[FileRecord]:
        return iter(self.files.values())

    def __len__(self) -> int:
        return len(self.files)

    def __contains__(self, path: object) -> bool:
        return path in self.files

    @property
    def paths(self) -> list[str]:
        """Return file paths in report order."""
        return list(self.files)

    def get(self, path: str) -> FileRecord | None:
        """Return the record for *path*, or None if the file is not covered."""
        return self.files.get(path)


@dataclass(frozen=True)
class CoverageSummary:
    """Aggregate statistics for a coverage model."""

    overall: FileStats
    """Totals across the files selected by the path filter (all files if none)."""

    per_file: dict[str, FileStats]
    """Statistics for every file in the model, filtered or not."""


@dataclass(frozen=True)
class DiffEntry:
    """Comparison of one file between the current and the baseline report."""

    path: str
    current: FileRecord
    stats: FileStats
    baseline: FileRecord | None = None
    baseline_stats: FileStats | None = None
    percentage_delta: float | None = None
    """Current minus baseline line percentage; None for files new in this report."""

    uncovered_lines: tuple[int, ...] = ()
    is_changed_file: bool = True

    @property
    def is_new(self) -> bool:
        """Return True if the file has no baseline counterpart."""
        return self.baseline is None
