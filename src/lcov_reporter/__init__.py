"""lcov-reporter: LCOV coverage diffs rendered for pull requests and commits."""

__version__ = "0.1.0"
