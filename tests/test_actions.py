"""Tests for GitHub Actions job summary and step outputs."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from lcov_reporter.utils.actions import set_output, write_job_summary

if TYPE_CHECKING:
    from pathlib import Path


class TestWriteJobSummary:
    def test_appends(self, tmp_path: Path) -> None:
        summary = tmp_path / "summary.md"
        summary.write_text("existing\n", encoding="utf-8")
        env = {"GITHUB_STEP_SUMMARY": str(summary)}

        assert write_job_summary("## Report", env)
        assert summary.read_text(encoding="utf-8") == "existing\n## Report\n"

    def test_not_in_actions(self) -> None:
        assert not write_job_summary("## Report", {})


class TestSetOutput:
    def test_multiline_value(self, tmp_path: Path) -> None:
        output = tmp_path / "output"
        env = {"GITHUB_OUTPUT": str(output)}

        assert set_output("report", "line one\nline two", env)

        content = output.read_text(encoding="utf-8")
        match = re.fullmatch(r"report<<(\S+)\nline one\nline two\n(\S+)\n", content)
        assert match is not None
        assert match.group(1) == match.group(2)

    def test_not_in_actions(self) -> None:
        assert not set_output("report", "value", {})
