"""lcov-reporter CLI: top-level command group."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, replace
from pathlib import Path
from typing import Any

import click
import yaml
from rich.logging import RichHandler

from lcov_reporter import __version__
from lcov_reporter.adapters.lcov import MergePolicy
from lcov_reporter.config import (
    LINK_MODES,
    MERGE_POLICIES,
    ConfigError,
    ReporterConfig,
    load_config,
    validate_config,
)
from lcov_reporter.report import ReportSettings, build_report
from lcov_reporter.reporters.github_comment import (
    GitHubCommentReporter,
    comment_marker,
    publish_report,
)
from lcov_reporter.reporters.markdown import DEFAULT_TITLE
from lcov_reporter.reporters.terminal import console, reporter
from lcov_reporter.utils.actions import set_output
from lcov_reporter.utils.ci_context import GitHubContext, detect_github_context
from lcov_reporter.utils.git import (
    GitHubAPI,
    GitHubAPIError,
    GitOperationError,
    get_changed_files_from_git,
)

logger = logging.getLogger(__name__)

# Masking thresholds
_MIN_MASKED_VALUE_LENGTH = 8


def _configure_logging(*, verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _config_to_dict(config: ReporterConfig) -> dict[str, Any]:
    """Convert ReporterConfig to dictionary for display."""
    result = asdict(config)
    result.pop("raw", None)
    return result


def _mask_sensitive_values(config_dict: dict[str, Any]) -> dict[str, Any]:
    """Mask the GitHub token in a configuration dict."""
    github = dict(config_dict.get("github", {}))
    token = github.get("token")
    if isinstance(token, str) and token:
        if len(token) > _MIN_MASKED_VALUE_LENGTH:
            github["token"] = f"{token[:4]}...{token[-4:]}"
        else:
            github["token"] = "***"
    return {**config_dict, "github": github}


def _read_report(path: Path) -> str | None:
    """Read an LCOV file, returning None when it is missing or unreadable."""
    try:
        return path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        logger.debug("Could not read %s: %s", path, exc)
        return None


def _apply_overrides(
    config: ReporterConfig, overrides: dict[str, dict[str, Any]]
) -> ReporterConfig:
    """Return *config* with every non-None CLI value applied."""
    sections: dict[str, Any] = {}
    for section_name, values in overrides.items():
        given = {key: value for key, value in values.items() if value is not None}
        if given:
            sections[section_name] = replace(getattr(config, section_name), **given)
    return replace(config, **sections)


def _resolve_changed_files(
    config: ReporterConfig,
    context: GitHubContext,
    explicit: tuple[str, ...],
    base_ref: str | None,
    head_ref: str | None,
) -> frozenset[str] | None:
    """Work out which files changed, or None if that cannot be determined."""
    if explicit:
        return frozenset(path.replace("\\", "/") for path in explicit)

    owner_repo = context.owner_repo
    if config.github.token and owner_repo and context.base_commit and context.commit:
        api = GitHubAPI(token=config.github.token, api_url=config.github.api_url)
        return frozenset(
            api.get_changed_files(*owner_repo, context.base_commit, context.commit)
        )

    if base_ref:
        return frozenset(get_changed_files_from_git(Path.cwd(), base_ref, head_ref or "HEAD"))

    return None


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.version_option(version=__version__, prog_name="lcov-reporter")
@click.pass_context
def cli(ctx: click.Context, *, verbose: bool) -> None:
    """lcov-reporter: coverage reports from LCOV files for pull requests and commits."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    _configure_logging(verbose=verbose)


@cli.command("report")
@click.option(
    "--lcov-file",
    envvar="INPUT_LCOV-FILE",
    help="LCOV file for the current revision (relative to --working-directory).",
)
@click.option("--lcov-base", envvar="INPUT_LCOV-BASE", help="LCOV file for the base revision.")
@click.option(
    "--working-directory",
    envvar="INPUT_WORKING-DIRECTORY",
    help="Directory the LCOV paths are relative to.",
)
@click.option("--title", envvar="INPUT_TITLE", help="Report title.")
@click.option(
    "--create-links",
    "link_mode",
    envvar="INPUT_CREATE-LINKS",
    type=click.Choice(LINK_MODES, case_sensitive=False),
    help="Link mode; 'auto' downgrades links to fit the comment size limit.",
)
@click.option(
    "--post-to",
    envvar="INPUT_POST-TO",
    help="Where to post: comment, comment-and-job-summary, job-summary.",
)
@click.option(
    "--filter-changed-files/--no-filter-changed-files",
    default=None,
    envvar="INPUT_FILTER-CHANGED-FILES",
    help="Only report files changed in this revision range.",
)
@click.option(
    "--delete-old-comments/--keep-old-comments",
    default=None,
    envvar="INPUT_DELETE-OLD-COMMENTS",
    help="Delete earlier coverage comments before posting.",
)
@click.option(
    "--github-token",
    envvar=["INPUT_GITHUB-TOKEN", "GITHUB_TOKEN"],
    help="GitHub token used to post comments and list changed files.",
)
@click.option(
    "--merge-policy",
    type=click.Choice(MERGE_POLICIES, case_sensitive=False),
    help="How duplicate sections for one file are merged.",
)
@click.option("--prefix", help="Repository-root prefix stripped from LCOV paths.")
@click.option(
    "--changed-file",
    "changed_files",
    multiple=True,
    help="Changed file path (repeatable); skips changed-file discovery.",
)
@click.option("--base-ref", help="Base git ref for local changed-file discovery.")
@click.option("--head-ref", help="Head git ref for local changed-file discovery.")
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Write the full report to this file instead of stdout.",
)
@click.option(
    "--config-path",
    default=".",
    type=click.Path(exists=True, file_okay=False, resolve_path=True),
    help="Directory containing .lcov-reporter.yml.",
)
def report(  # noqa: PLR0913
    lcov_file: str | None,
    lcov_base: str | None,
    working_directory: str | None,
    title: str | None,
    link_mode: str | None,
    post_to: str | None,
    filter_changed_files: bool | None,
    delete_old_comments: bool | None,
    github_token: str | None,
    merge_policy: str | None,
    prefix: str | None,
    changed_files: tuple[str, ...],
    base_ref: str | None,
    head_ref: str | None,
    output: Path | None,
    config_path: str,
) -> None:
    """Render a coverage report and optionally post it.

    Example:
      lcov-reporter report --lcov-file coverage/lcov.info --lcov-base base.info
    """
    try:
        config = load_config(config_path)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    config = _apply_overrides(
        config,
        {
            "report": {
                "title": title,
                "link_mode": link_mode.lower() if link_mode else None,
                "post_to": post_to.lower() if post_to is not None else None,
                "filter_changed_files": filter_changed_files,
                "delete_old_comments": delete_old_comments,
            },
            "lcov": {
                "file": lcov_file,
                "base": lcov_base,
                "working_directory": working_directory,
                "merge_policy": merge_policy.lower() if merge_policy else None,
            },
            "github": {"token": github_token},
        },
    )

    errors = validate_config(config)
    if errors:
        for error in errors:
            reporter.print_error(error)
        raise click.Abort

    context = detect_github_context()
    working_dir = Path(config.lcov.working_directory)
    lcov_path = working_dir / config.lcov.file

    current_text = _read_report(lcov_path)
    if not current_text:
        reporter.print_warning(f"No coverage report found at '{lcov_path}', exiting...")
        return

    baseline_text: str | None = None
    if config.lcov.base:
        baseline_text = _read_report(Path(config.lcov.base))
        if not baseline_text:
            reporter.print_warning(f"No coverage report found at '{config.lcov.base}', ignoring...")

    changed: frozenset[str] = frozenset()
    should_filter = config.report.filter_changed_files
    if should_filter:
        try:
            resolved = _resolve_changed_files(config, context, changed_files, base_ref, head_ref)
        except (GitHubAPIError, GitOperationError) as exc:
            raise click.ClickException(f"Failed to list changed files: {exc}") from exc
        if resolved is None:
            reporter.print_warning("Cannot determine changed files; reporting all files")
            should_filter = False
        else:
            changed = resolved

    report_title = config.report.title or DEFAULT_TITLE
    marker = comment_marker(report_title)
    settings = ReportSettings(
        title=report_title,
        link_mode=config.report.link_mode,
        prefix=prefix if prefix is not None else context.prefix or f"{Path.cwd().as_posix()}/",
        filter_changed_files=should_filter,
        changed_files=changed,
        repository=context.repository,
        commit=context.commit,
        head=context.head,
        base=context.base,
        working_dir=config.lcov.working_directory,
        server_url=config.github.server_url,
        merge_policy=MergePolicy(config.lcov.merge_policy),
        max_chars=max(config.report.max_comment_chars - len(marker) - 1, 1),
    )

    bodies = build_report(current_text, baseline_text, settings)
    reporter.print_coverage_summary(bodies.entries, bodies.overall, bodies.baseline_overall)
    if bodies.removed_files:
        reporter.print_info(f"{len(bodies.removed_files)} files no longer have coverage data")

    if output is not None:
        output.write_text(bodies.full, encoding="utf-8")
        reporter.print_success(f"Wrote report to {output}")
    else:
        click.echo(bodies.full, nl=False)

    set_output("report", bodies.full)

    post_target = config.report.post_to
    if not post_target and not config.report.delete_old_comments:
        return

    comment_reporter: GitHubCommentReporter | None = None
    if config.github.token:
        api = GitHubAPI(token=config.github.token, api_url=config.github.api_url)
        comment_reporter = GitHubCommentReporter(api, context, report_title)

    if not publish_report(
        bodies,
        post_target,
        comment_reporter,
        delete_old=config.report.delete_old_comments,
    ):
        raise click.ClickException("Failed to publish the coverage report")
    reporter.print_success("Coverage report published")


@cli.group("config")
def config_group() -> None:
    """Inspect `.lcov-reporter.yml` configuration."""


@config_group.command("show")
@click.option(
    "--path",
    default=".",
    type=click.Path(exists=True, file_okay=False, resolve_path=True),
    help="Directory containing .lcov-reporter.yml.",
)
@click.option("--json-output", "as_json", is_flag=True, help="Output as JSON instead of YAML.")
@click.option("--no-mask", is_flag=True, help="Show the token unmasked (use with caution).")
def config_show(path: str, *, as_json: bool, no_mask: bool) -> None:
    """Display resolved configuration with the token masked.

    Example:
      lcov-reporter config show --json-output
    """
    try:
        config = load_config(path)
    except ConfigError as exc:
        reporter.print_error(f"Failed to load configuration: {exc}")
        raise click.Abort from exc

    config_dict = _config_to_dict(config)
    if not no_mask:
        config_dict = _mask_sensitive_values(config_dict)

    if as_json:
        click.echo(json.dumps(config_dict, indent=2))
    else:
        click.echo(yaml.safe_dump(config_dict, sort_keys=False, default_flow_style=False))


@config_group.command("validate")
@click.option(
    "--path",
    default=".",
    type=click.Path(exists=True, file_okay=False, resolve_path=True),
    help="Directory containing .lcov-reporter.yml.",
)
def config_validate(path: str) -> None:
    """Validate `.lcov-reporter.yml`.

    Example:
      lcov-reporter config validate
    """
    try:
        config = load_config(path)
    except ConfigError as exc:
        reporter.print_error(f"Failed to load configuration: {exc}")
        raise click.Abort from exc

    errors = validate_config(config)
    if not errors:
        reporter.print_success("Configuration is valid!")
        return

    reporter.print_error(f"Found {len(errors)} configuration error(s):")
    for idx, error in enumerate(errors, start=1):
        console.print(f"  {idx}. [red]{error}[/red]")
    raise click.Abort
