"""Tests for the LCOV tracefile parser."""

from __future__ import annotations

from pathlib import Path

import pytest

from lcov_reporter.adapters.lcov import LcovParser, MergePolicy, normalize_path, parse_lcov
from lcov_reporter.models.coverage import BranchKey

SAMPLE_LCOV = """\
TN:
SF:/repo/src/math.js
FN:1,add
FN:5,sub
FNDA:3,add
FNDA:0,sub
FNF:2
FNH:1
DA:1,3
DA:2,3
DA:5,0
DA:6,0
LF:4
LH:2
BRDA:2,0,0,3
BRDA:2,0,1,-
BRF:2
BRH:1
end_of_record
SF:/repo/src/util.js
DA:1,1
end_of_record
"""


# ── normalize_path ───────────────────────────────────────────────


class TestNormalizePath:
    def test_strips_prefix(self) -> None:
        assert normalize_path("/repo/src/a.js", "/repo/") == "src/a.js"

    def test_prefix_without_trailing_slash(self) -> None:
        assert normalize_path("/repo/src/a.js", "/repo") == "src/a.js"

    def test_prefix_must_match_whole_segment(self) -> None:
        assert normalize_path("/repository/a.js", "/repo") == "/repository/a.js"

    def test_backslashes_become_forward_slashes(self) -> None:
        assert normalize_path("C:\\work\\src\\a.js", "C:\\work\\") == "src/a.js"

    def test_unrelated_path_unchanged(self) -> None:
        assert normalize_path("lib/a.js", "/repo/") == "lib/a.js"

    def test_no_prefix(self) -> None:
        assert normalize_path("  src/a.js ") == "src/a.js"


# ── Basic parsing ────────────────────────────────────────────────


class TestParse:
    def test_files_in_report_order(self) -> None:
        model = parse_lcov(SAMPLE_LCOV, prefix="/repo/")
        assert model.paths == ["src/math.js", "src/util.js"]
        assert len(model) == 2
        assert "src/math.js" in model

    def test_line_hits(self) -> None:
        record = parse_lcov(SAMPLE_LCOV, prefix="/repo/").files["src/math.js"]
        assert dict(record.lines) == {1: 3, 2: 3, 5: 0, 6: 0}
        assert record.uncovered_lines == (5, 6)

    def test_brda_dash_counts_as_zero(self) -> None:
        record = parse_lcov(SAMPLE_LCOV, prefix="/repo/").files["src/math.js"]
        assert record.branches[BranchKey(2, "0", "0")] == 3
        assert record.branches[BranchKey(2, "0", "1")] == 0

    def test_functions(self) -> None:
        record = parse_lcov(SAMPLE_LCOV, prefix="/repo/").files["src/math.js"]
        assert record.functions["add"].line == 1
        assert record.functions["add"].hits == 3
        assert record.functions["add"].is_covered
        assert not record.functions["sub"].is_covered

    def test_summary_records_ignored(self) -> None:
        text = "SF:a.js\nDA:1,1\nLF:99\nLH:99\nend_of_record\n"
        record = parse_lcov(text).files["a.js"]
        assert dict(record.lines) == {1: 1}

    def test_empty_input(self) -> None:
        assert len(parse_lcov("")) == 0

    def test_crlf_line_endings(self) -> None:
        text = "SF:a.js\r\nDA:1,1\r\nDA:2,0\r\nend_of_record\r\n"
        assert dict(parse_lcov(text).files["a.js"].lines) == {1: 1, 2: 0}

    def test_leading_byte_order_mark(self) -> None:
        text = "\ufeffSF:a.js\nDA:1,1\nDA:2,0\nend_of_record\n"
        model = parse_lcov(text)
        assert model.paths == ["a.js"]
        assert dict(model.files["a.js"].lines) == {1: 1, 2: 0}

    def test_byte_order_mark_in_file(self, tmp_path: Path) -> None:
        report = tmp_path / "lcov.info"
        report.write_bytes(b"\xef\xbb\xbfSF:a.js\nDA:1,1\nend_of_record\n")
        assert LcovParser().parse_file(report).paths == ["a.js"]

    def test_non_string_raises(self) -> None:
        with pytest.raises(TypeError):
            parse_lcov(None)  # type: ignore[arg-type]

    def test_records_are_read_only(self) -> None:
        model = parse_lcov(SAMPLE_LCOV)
        with pytest.raises(TypeError):
            model.files["x"] = model.files["/repo/src/util.js"]  # type: ignore[index]


# ── Robustness ───────────────────────────────────────────────────


class TestMalformedInput:
    def test_malformed_lines_skipped(self) -> None:
        text = (
            "SF:a.js\n"
            "DA:1\n"
            "DA:x,1\n"
            "DA:0,4\n"
            "BRDA:1,0\n"
            "FNDA:nope,f\n"
            "garbage line\n"
            "DA:2,1\n"
            "end_of_record\n"
        )
        record = parse_lcov(text).files["a.js"]
        assert dict(record.lines) == {2: 1}
        assert dict(record.branches) == {}
        assert dict(record.functions) == {}

    def test_directives_before_sf_discarded(self) -> None:
        text = "DA:1,1\nFN:1,f\nSF:a.js\nDA:2,0\nend_of_record\n"
        record = parse_lcov(text).files["a.js"]
        assert dict(record.lines) == {2: 0}
        assert dict(record.functions) == {}

    def test_directives_after_end_of_record_discarded(self) -> None:
        text = "SF:a.js\nDA:1,1\nend_of_record\nDA:2,1\n"
        assert dict(parse_lcov(text).files["a.js"].lines) == {1: 1}

    def test_missing_end_of_record_commits_at_next_sf(self) -> None:
        text = "SF:a.js\nDA:1,1\nSF:b.js\nDA:1,0\n"
        model = parse_lcov(text)
        assert model.paths == ["a.js", "b.js"]
        assert dict(model.files["a.js"].lines) == {1: 1}
        assert dict(model.files["b.js"].lines) == {1: 0}

    def test_empty_sf_path_dropped(self) -> None:
        text = "SF:\nDA:1,1\nend_of_record\nSF:a.js\nDA:1,1\nend_of_record\n"
        assert parse_lcov(text).paths == ["a.js"]

    def test_negative_counts_clamped(self) -> None:
        text = "SF:a.js\nDA:1,-5\nBRDA:1,0,0,-2\nend_of_record\n"
        record = parse_lcov(text).files["a.js"]
        assert record.lines[1] == 0
        assert record.branches[BranchKey(1, "0", "0")] == 0


# ── Function records ─────────────────────────────────────────────


class TestFunctions:
    def test_fn_with_end_line(self) -> None:
        text = "SF:a.js\nFN:3,9,handler\nFNDA:2,handler\nend_of_record\n"
        func = parse_lcov(text).files["a.js"].functions["handler"]
        assert func.line == 3
        assert func.hits == 2

    def test_function_name_with_comma(self) -> None:
        text = "SF:a.js\nFN:3,foo,bar\nFNDA:1,foo,bar\nend_of_record\n"
        functions = parse_lcov(text).files["a.js"].functions
        assert functions["foo,bar"].line == 3
        assert functions["foo,bar"].hits == 1

    def test_fnda_without_fn(self) -> None:
        text = "SF:a.js\nFNDA:4,orphan\nend_of_record\n"
        func = parse_lcov(text).files["a.js"].functions["orphan"]
        assert func.line is None
        assert func.hits == 4

    def test_fnl_and_fna(self) -> None:
        text = "SF:a.js\nFNL:0,12,20\nFNA:0,7,main\nend_of_record\n"
        func = parse_lcov(text).files["a.js"].functions["main"]
        assert func.line == 12
        assert func.hits == 7


# ── Merging duplicate sections ───────────────────────────────────


class TestMerge:
    TWO_SECTIONS = (
        "SF:a.js\nDA:1,1\nDA:2,0\nBRDA:1,0,0,0\nFNDA:1,f\nend_of_record\n"
        "SF:a.js\nDA:1,2\nDA:3,0\nBRDA:1,0,0,5\nFNDA:2,f\nend_of_record\n"
    )

    def test_max_is_default(self) -> None:
        record = parse_lcov(self.TWO_SECTIONS).files["a.js"]
        assert dict(record.lines) == {1: 2, 2: 0, 3: 0}
        assert record.branches[BranchKey(1, "0", "0")] == 5
        assert record.functions["f"].hits == 2

    def test_max_keeps_larger_count_from_either_section(self) -> None:
        text = (
            "SF:a.js\nDA:1,0\nDA:2,1\nBRDA:1,0,0,4\nBRDA:1,0,1,0\nFNDA:6,f\nend_of_record\n"
            "SF:a.js\nDA:1,1\nDA:2,0\nBRDA:1,0,0,1\nBRDA:1,0,1,2\nFNDA:1,f\nend_of_record\n"
        )
        record = parse_lcov(text).files["a.js"]
        assert dict(record.lines) == {1: 1, 2: 1}
        assert record.branches[BranchKey(1, "0", "0")] == 4
        assert record.branches[BranchKey(1, "0", "1")] == 2
        assert record.functions["f"].hits == 6

    def test_max_within_one_section(self) -> None:
        text = "SF:a.js\nDA:1,5\nDA:1,2\nend_of_record\n"
        assert parse_lcov(text).files["a.js"].lines[1] == 5

    def test_duplicate_section_is_idempotent_under_max(self) -> None:
        section = "SF:a.js\nDA:1,3\nDA:2,0\nend_of_record\n"
        once = parse_lcov(section).files["a.js"]
        twice = parse_lcov(section * 2).files["a.js"]
        assert dict(once.lines) == dict(twice.lines)

    def test_sum_policy(self) -> None:
        record = parse_lcov(self.TWO_SECTIONS, merge_policy=MergePolicy.SUM).files["a.js"]
        assert record.lines[1] == 3
        assert record.functions["f"].hits == 3

    def test_policy_by_name(self) -> None:
        record = parse_lcov(self.TWO_SECTIONS, merge_policy="sum").files["a.js"]
        assert record.lines[1] == 3

    def test_custom_callable(self) -> None:
        record = parse_lcov(self.TWO_SECTIONS, merge_policy=min).files["a.js"]
        assert record.lines[1] == 1

    def test_merge_uses_normalized_path(self) -> None:
        text = "SF:/repo/a.js\nDA:1,0\nend_of_record\nSF:a.js\nDA:1,1\nend_of_record\n"
        model = LcovParser(prefix="/repo/").parse(text)
        assert model.paths == ["a.js"]
        assert model.files["a.js"].lines[1] == 1

    def test_unknown_policy_raises(self) -> None:
        with pytest.raises(ValueError, match="bogus"):
            LcovParser(merge_policy="bogus")

    def test_unsupported_policy_type_raises(self) -> None:
        with pytest.raises(TypeError):
            LcovParser(merge_policy=42)  # type: ignore[arg-type]


# ── Files ────────────────────────────────────────────────────────


class TestParseFile:
    def test_reads_file(self, tmp_path: Path) -> None:
        report = tmp_path / "lcov.info"
        report.write_text(SAMPLE_LCOV, encoding="utf-8")
        model = LcovParser(prefix="/repo").parse_file(report)
        assert model.paths == ["src/math.js", "src/util.js"]

    def test_missing_file_gives_empty_model(self, tmp_path: Path) -> None:
        assert len(LcovParser().parse_file(tmp_path / "missing.info")) == 0
