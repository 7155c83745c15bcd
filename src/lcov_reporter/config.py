"""Configuration parsing from ``.lcov-reporter.yml``."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".lcov-reporter.yml"

MAX_COMMENT_CHARS = 65536
"""Largest body the hosting platform accepts for a comment."""

LINK_MODES = ("auto", "files-and-lines", "files-only", "none")
MERGE_POLICIES = ("max", "sum")

_ENV_VAR_RE = re.compile(r"\$\{(\w+)\}")


class ConfigError(Exception):
    """Raised when the configuration file cannot be read or parsed."""


def _resolve_env_vars(value: str) -> str:
    """Replace ``${VAR_NAME}`` placeholders with environment variable values."""

    def _replace(match: re.Match[str]) -> str:
        var = match.group(1)
        resolved = os.environ.get(var)
        if resolved is None:
            logger.warning("Environment variable %s is not set (referenced in config)", var)
            return ""
        return resolved

    return _ENV_VAR_RE.sub(_replace, value)


def _resolve_dict(data: dict[str, Any]) -> dict[str, Any]:
    """Recursively resolve environment variables in a dictionary."""
    result: dict[str, Any] = {}
    for key, value in data.items():
        if isinstance(value, str):
            result[key] = _resolve_env_vars(value)
        elif isinstance(value, dict):
            result[key] = _resolve_dict(value)
        elif isinstance(value, list):
            result[key] = [
                _resolve_env_vars(item) if isinstance(item, str) else item for item in value
            ]
        else:
            result[key] = value
    return result


def _section(raw: dict[str, Any], name: str) -> dict[str, Any]:
    value = raw.get(name, {})
    return value if isinstance(value, dict) else {}


@dataclass
class ReportConfig:
    """Report rendering and posting configuration."""

    title: str = ""
    """Report heading (empty = "Coverage Report")."""

    link_mode: str = "auto"
    """Link mode: auto, files-and-lines, files-only or none."""

    post_to: str = ""
    """Where to post: comment, comment-and-job-summary, job-summary, or empty."""

    filter_changed_files: bool = False
    """Restrict the posted report to files changed in the revision range."""

    delete_old_comments: bool = False
    """Delete earlier reports posted by this tool before posting a new one."""

    max_comment_chars: int = MAX_COMMENT_CHARS
    """Character budget for posted comments."""


@dataclass
class LcovConfig:
    """Input file configuration."""

    file: str = "./coverage/lcov.info"
    """Path of the current LCOV report, relative to ``working_directory``."""

    base: str = ""
    """Path of the baseline LCOV report (empty = no baseline)."""

    working_directory: str = "./"
    """Directory the LCOV paths are relative to."""

    merge_policy: str = "max"
    """How duplicate sections for one file are merged: max or sum."""


@dataclass
class GitHubConfig:
    """GitHub API configuration."""

    token: str = ""
    """API token (supports ${ENV_VAR} expansion; defaults to GITHUB_TOKEN)."""

    api_url: str = "https://api.github.com"
    """REST API base URL."""

    server_url: str = "https://github.com"
    """Web base URL used for source links."""


@dataclass
class ReporterConfig:
    """Complete configuration from ``.lcov-reporter.yml``."""

    report: ReportConfig = field(default_factory=ReportConfig)
    """Report configuration."""

    lcov: LcovConfig = field(default_factory=LcovConfig)
    """Input configuration."""

    github: GitHubConfig = field(default_factory=GitHubConfig)
    """GitHub configuration."""

    raw: dict[str, Any] = field(default_factory=dict)
    """Raw parsed YAML for extension/debugging."""


def load_config(root: str | Path) -> ReporterConfig:
    """Load and parse ``.lcov-reporter.yml`` from *root*.

    Falls back to defaults and environment variables when the file is
    missing or incomplete.

    Raises:
        ConfigError: If the file exists but is not valid YAML, or
            ``report.max_comment_chars`` is not an integer.
    """
    config_path = Path(root).resolve() / CONFIG_FILENAME

    raw: dict[str, Any] = {}
    if config_path.is_file():
        try:
            parsed = yaml.safe_load(config_path.read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigError(f"Failed to read {config_path}: {exc}") from exc
        if isinstance(parsed, dict):
            raw = _resolve_dict(parsed)

    report_raw = _section(raw, "report")
    try:
        max_comment_chars = int(report_raw.get("max_comment_chars", MAX_COMMENT_CHARS))
    except (TypeError, ValueError) as exc:
        raise ConfigError(
            f"report.max_comment_chars must be an integer in {config_path}: {exc}"
        ) from exc
    report = ReportConfig(
        title=str(report_raw.get("title", "")),
        link_mode=str(report_raw.get("link_mode", "auto")).lower(),
        post_to=str(report_raw.get("post_to", "")).lower(),
        filter_changed_files=bool(report_raw.get("filter_changed_files", False)),
        delete_old_comments=bool(report_raw.get("delete_old_comments", False)),
        max_comment_chars=max_comment_chars,
    )

    lcov_raw = _section(raw, "lcov")
    lcov = LcovConfig(
        file=str(lcov_raw.get("file", "./coverage/lcov.info")),
        base=str(lcov_raw.get("base", "")),
        working_directory=str(lcov_raw.get("working_directory", "./")),
        merge_policy=str(lcov_raw.get("merge_policy", "max")).lower(),
    )

    github_raw = _section(raw, "github")
    github = GitHubConfig(
        token=str(github_raw.get("token", os.environ.get("GITHUB_TOKEN", ""))),
        api_url=str(
            github_raw.get("api_url", os.environ.get("GITHUB_API_URL", "https://api.github.com"))
        ),
        server_url=str(
            github_raw.get("server_url", os.environ.get("GITHUB_SERVER_URL", "https://github.com"))
        ),
    )

    return ReporterConfig(report=report, lcov=lcov, github=github, raw=raw)


def _validate_report_config(report: ReportConfig) -> list[str]:
    """Validate report settings."""
    errors: list[str] = []

    if report.link_mode not in LINK_MODES:
        errors.append(
            f"report.link_mode must be one of: {', '.join(LINK_MODES)} (got: {report.link_mode})"
        )

    if report.max_comment_chars < 1:
        errors.append(
            f"report.max_comment_chars must be positive (got: {report.max_comment_chars})"
        )

    return errors


def _validate_lcov_config(lcov: LcovConfig) -> list[str]:
    """Validate input settings."""
    errors: list[str] = []

    if not lcov.file:
        errors.append("lcov.file is required")

    if lcov.merge_policy not in MERGE_POLICIES:
        errors.append(
            f"lcov.merge_policy must be one of: {', '.join(MERGE_POLICIES)} "
            f"(got: {lcov.merge_policy})"
        )

    return errors


def validate_config(config: ReporterConfig) -> list[str]:
    """Validate the configuration and return a list of error messages.

    Returns an empty list if the configuration is valid.
    """
    errors: list[str] = []
    errors.extend(_validate_report_config(config.report))
    errors.extend(_validate_lcov_config(config.lcov))

    posts_comment = config.report.post_to.startswith("comment")
    if (posts_comment or config.report.delete_old_comments) and not config.github.token:
        errors.append("github.token is required to post or delete comments")

    return errors
