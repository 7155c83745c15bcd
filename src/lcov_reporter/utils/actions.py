"""GitHub Actions job summary and step output files."""

from __future__ import annotations

import logging
import os
import uuid
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = logging.getLogger(__name__)


def write_job_summary(markdown: str, environ: Mapping[str, str] | None = None) -> bool:
    """Append *markdown* to the job summary file.

    Returns:
        True if ``GITHUB_STEP_SUMMARY`` is set and the text was written.
    """
    env = os.environ if environ is None else environ
    summary_path = env.get("GITHUB_STEP_SUMMARY")
    if not summary_path:
        logger.warning("GITHUB_STEP_SUMMARY is not set; skipping job summary")
        return False
    with Path(summary_path).open("a", encoding="utf-8") as fh:
        fh.write(markdown)
        if not markdown.endswith("\n"):
            fh.write("\n")
    return True


def set_output(name: str, value: str, environ: Mapping[str, str] | None = None) -> bool:
    """Set a step output, using a heredoc delimiter so multi-line values survive.

    Returns:
        True if ``GITHUB_OUTPUT`` is set and the output was written.
    """
    env = os.environ if environ is None else environ
    output_path = env.get("GITHUB_OUTPUT")
    if not output_path:
        logger.debug("GITHUB_OUTPUT is not set; not exporting %s", name)
        return False
    delimiter = f"ghadelimiter_{uuid.uuid4()}"
    with Path(output_path).open("a", encoding="utf-8") as fh:
        fh.write(f"{name}<<{delimiter}\n{value}\n{delimiter}\n")
    return True
