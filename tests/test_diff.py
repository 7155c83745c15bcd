"""Tests for the current-vs-baseline coverage diff."""

from __future__ import annotations

import pytest

from lcov_reporter.adapters.lcov import parse_lcov
from lcov_reporter.analyzers.diff import build_diff, removed_files

CURRENT = """\
SF:src/b.js
DA:1,1
DA:2,0
end_of_record
SF:src/a.js
DA:1,1
DA:2,1
end_of_record
"""

BASELINE = """\
SF:src/b.js
DA:1,0
DA:2,0
end_of_record
SF:src/gone.js
DA:1,1
end_of_record
"""


class TestBuildDiff:
    def test_sorted_by_path(self) -> None:
        entries = build_diff(parse_lcov(CURRENT))
        assert [e.path for e in entries] == ["src/a.js", "src/b.js"]

    def test_deterministic(self) -> None:
        first = build_diff(parse_lcov(CURRENT), parse_lcov(BASELINE))
        second = build_diff(parse_lcov(CURRENT), parse_lcov(BASELINE))
        assert first == second

    def test_delta_against_baseline(self) -> None:
        entries = {e.path: e for e in build_diff(parse_lcov(CURRENT), parse_lcov(BASELINE))}
        b = entries["src/b.js"]
        assert b.stats.line_percentage == 50.0
        assert b.baseline_stats is not None
        assert b.baseline_stats.line_percentage == 0.0
        assert b.percentage_delta == 50.0
        assert b.uncovered_lines == (2,)
        assert not b.is_new

    def test_new_file_has_no_delta(self) -> None:
        entries = {e.path: e for e in build_diff(parse_lcov(CURRENT), parse_lcov(BASELINE))}
        a = entries["src/a.js"]
        assert a.is_new
        assert a.percentage_delta is None
        assert a.baseline_stats is None

    def test_without_baseline_every_file_is_new(self) -> None:
        entries = build_diff(parse_lcov(CURRENT))
        assert all(e.is_new and e.percentage_delta is None for e in entries)

    def test_changed_files_filter(self) -> None:
        entries = {
            e.path: e for e in build_diff(parse_lcov(CURRENT), changed_files={"src/a.js"})
        }
        assert entries["src/a.js"].is_changed_file
        assert not entries["src/b.js"].is_changed_file
        assert entries["src/b.js"].uncovered_lines == ()

    def test_all_files_changed_without_filter(self) -> None:
        assert all(e.is_changed_file for e in build_diff(parse_lcov(CURRENT)))

    def test_baseline_only_files_excluded(self) -> None:
        entries = build_diff(parse_lcov(CURRENT), parse_lcov(BASELINE))
        assert "src/gone.js" not in [e.path for e in entries]

    def test_none_current_raises(self) -> None:
        with pytest.raises(TypeError):
            build_diff(None)  # type: ignore[arg-type]


class TestRemovedFiles:
    def test_lists_baseline_only_files(self) -> None:
        assert removed_files(parse_lcov(CURRENT), parse_lcov(BASELINE)) == ["src/gone.js"]

    def test_no_baseline(self) -> None:
        assert removed_files(parse_lcov(CURRENT), None) == []
