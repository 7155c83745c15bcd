"""Input adapters that translate coverage reports into the unified model."""

from lcov_reporter.adapters.lcov import LcovParser, MergePolicy, normalize_path, parse_lcov

__all__ = [
    "LcovParser",
    "MergePolicy",
    "normalize_path",
    "parse_lcov",
]
