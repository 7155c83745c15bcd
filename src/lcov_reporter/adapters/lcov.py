"""LCOV tracefile parser.

Turns the line-oriented LCOV format (as written by geninfo, c8, nyc,
cargo-llvm-cov, ``coverage lcov`` and friends) into a :class:`CoverageModel`.

The parser is deliberately permissive: producers disagree on details, so any
line it cannot interpret is skipped and parsing carries on. Summary records
(``LF``/``LH``/``BRF``/``BRH``/``FNF``/``FNH``) are ignored because every
count can be derived from the per-line data, and some generators get them
wrong.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING

from lcov_reporter.models.coverage import BranchKey, CoverageModel, FileRecord, FunctionRecord

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

# ── Constants ────────────────────────────────────────────────────

# LCOV record keys
_LCOV_SF = "SF"
_LCOV_FN = "FN"
_LCOV_FNDA = "FNDA"
_LCOV_FNL = "FNL"
_LCOV_FNA = "FNA"
_LCOV_DA = "DA"
_LCOV_BRDA = "BRDA"
_LCOV_END = "end_of_record"

_LCOV_DA_PARTS = 2
_LCOV_BRDA_PARTS = 4
_LCOV_FN_PARTS = 2
_LCOV_FN_WITH_END_PARTS = 3
_LCOV_FNDA_PARTS = 2
_LCOV_FNL_PARTS = 2
_LCOV_FNA_PARTS = 3

_NOT_INSTRUMENTED = "-"


class MergePolicy(Enum):
    """How hit counts are combined when the same key is reported twice."""

    MAX = "max"
    """Keep the largest count (lcov merge convention)."""

    SUM = "sum"
    """Add the counts together."""

    def combine(self, left: int, right: int) -> int:
        """Combine two hit counts according to this policy."""
        if self is MergePolicy.SUM:
            return left + right
        return max(left, right)


MergeFunction = Callable[[int, int], int]


def _resolve_merge(policy: MergePolicy | MergeFunction | str) -> MergeFunction:
    if isinstance(policy, MergePolicy):
        return policy.combine
    if isinstance(policy, str):
        return MergePolicy(policy.lower()).combine
    if callable(policy):
        return policy
    raise TypeError(f"Unsupported merge policy: {policy!r}")


def normalize_path(path: str, prefix: str = "") -> str:
    """Normalize a source path from an LCOV ``SF:`` record.

    Backslashes become forward slashes and the repository-root *prefix* is
    removed when the path starts with it. Nothing else is touched.
    """
    normalized = path.strip().replace("\\", "/")
    root = prefix.replace("\\", "/")
    if root and not root.endswith("/"):
        root += "/"
    if root and normalized.startswith(root):
        normalized = normalized[len(root) :]
    return normalized


def _parse_int(value: str) -> int | None:
    try:
        return int(value.strip())
    except ValueError:
        return None


# ── Parser state ─────────────────────────────────────────────────


class _State(Enum):
    OUTSIDE_RECORD = "outside_record"
    INSIDE_RECORD = "inside_record"


@dataclass
class _PendingRecord:
    """Mutable accumulator for one file while its section is being read."""

    path: str
    lines: dict[int, int] = field(default_factory=dict)
    branches: dict[BranchKey, int] = field(default_factory=dict)
    function_lines: dict[str, int | None] = field(default_factory=dict)
    function_hits: dict[str, int] = field(default_factory=dict)
    function_index: dict[str, int] = field(default_factory=dict)

    def absorb(self, other: _PendingRecord, merge: MergeFunction) -> None:
        """Merge *other* (a later section for the same path) into this record."""
        for line, hits in other.lines.items():
            self.lines[line] = merge(self.lines[line], hits) if line in self.lines else hits
        for key, hits in other.branches.items():
            self.branches[key] = merge(self.branches[key], hits) if key in self.branches else hits
        for name, line in other.function_lines.items():
            if self.function_lines.get(name) is None:
                self.function_lines[name] = line
        for name, hits in other.function_hits.items():
            if name in self.function_hits:
                self.function_hits[name] = merge(self.function_hits[name], hits)
            else:
                self.function_hits[name] = hits

    def freeze(self) -> FileRecord:
        functions: dict[str, FunctionRecord] = {}
        for name in [*self.function_lines, *self.function_hits]:
            if name not in functions:
                functions[name] = FunctionRecord(
                    name=name,
                    line=self.function_lines.get(name),
                    hits=self.function_hits.get(name, 0),
                )
        return FileRecord(
            path=self.path,
            lines=MappingProxyType(dict(self.lines)),
            branches=MappingProxyType(dict(self.branches)),
            functions=MappingProxyType(functions),
        )


# ── Parser ───────────────────────────────────────────────────────


class LcovParser:
    """Two-state LCOV parser.

    Outside a record only ``SF:`` is meaningful; every other directive is
    discarded. Inside a record, directives accumulate into a pending record
    that is committed on ``end_of_record``, on the next ``SF:`` or at the end
    of input. Sections repeating a path are merged key by key using the
    merge policy (``MergePolicy.MAX`` unless overridden).
    """

    def __init__(
        self,
        prefix: str = "",
        merge_policy: MergePolicy | MergeFunction | str = MergePolicy.MAX,
    ) -> None:
        self._prefix = prefix
        self._merge = _resolve_merge(merge_policy)

    def parse(self, text: str) -> CoverageModel:
        """Parse LCOV *text* into a :class:`CoverageModel`.

        Never raises on malformed data; unreadable lines contribute nothing.

        Raises:
            TypeError: If *text* is not a string.
        """
        if not isinstance(text, str):
            raise TypeError(f"LCOV content must be a string, got {type(text).__name__}")

        # Some Windows producers write a UTF-8 byte order mark
        text = text.removeprefix("\ufeff")

        committed: dict[str, _PendingRecord] = {}
        state = _State.OUTSIDE_RECORD
        pending: _PendingRecord | None = None

        for raw_line in text.splitlines():
            line = raw_line.strip()
            if not line:
                continue

            if line == _LCOV_END:
                if pending is not None:
                    self._commit(committed, pending)
                state, pending = _State.OUTSIDE_RECORD, None
                continue

            key, sep, value = line.partition(":")
            if not sep:
                logger.debug("Skipping unrecognized LCOV line: %r", line)
                continue

            if key == _LCOV_SF:
                if pending is not None:
                    self._commit(committed, pending)
                path = normalize_path(value, self._prefix)
                if path:
                    state, pending = _State.INSIDE_RECORD, _PendingRecord(path=path)
                else:
                    state, pending = _State.OUTSIDE_RECORD, None
                continue

            if state is _State.OUTSIDE_RECORD or pending is None:
                logger.debug("Discarding %s record outside of a file section", key)
                continue

            self._apply(key, value, pending)

        if pending is not None:
            self._commit(committed, pending)

        return CoverageModel(files={path: record.freeze() for path, record in committed.items()})

    def parse_file(self, path: Path) -> CoverageModel:
        """Parse an LCOV file; an unreadable file yields an empty model."""
        try:
            return self.parse(path.read_text(encoding="utf-8", errors="replace"))
        except OSError as e:
            logger.error("Failed to read LCOV file %s: %s", path, e)
            return CoverageModel()

    def _commit(self, committed: dict[str, _PendingRecord], pending: _PendingRecord) -> None:
        existing = committed.get(pending.path)
        if existing is None:
            committed[pending.path] = pending
        else:
            logger.debug("Merging duplicate LCOV section for %s", pending.path)
            existing.absorb(pending, self._merge)

    def _apply(self, key: str, value: str, record: _PendingRecord) -> None:
        handler = self._handlers.get(key)
        if handler is None:
            return
        if not handler(self, value, record):
            logger.debug("Skipping malformed %s record in %s: %r", key, record.path, value)

    # Each handler returns False when the record could not be interpreted.

    def _apply_da(self, value: str, record: _PendingRecord) -> bool:
        parts = value.split(",")
        if len(parts) < _LCOV_DA_PARTS:
            return False
        line, hits = _parse_int(parts[0]), _parse_int(parts[1])
        if line is None or hits is None or line < 1:
            return False
        hits = max(hits, 0)
        record.lines[line] = self._merge(record.lines[line], hits) if line in record.lines else hits
        return True

    def _apply_brda(self, value: str, record: _PendingRecord) -> bool:
        parts = value.split(",")
        if len(parts) < _LCOV_BRDA_PARTS:
            return False
        line = _parse_int(parts[0])
        taken_s = parts[3].strip()
        taken = 0 if taken_s == _NOT_INSTRUMENTED else _parse_int(taken_s)
        if line is None or taken is None or line < 1:
            return False
        key = BranchKey(line, parts[1].strip(), parts[2].strip())
        taken = max(taken, 0)
        record.branches[key] = (
            self._merge(record.branches[key], taken) if key in record.branches else taken
        )
        return True

    def _apply_fn(self, value: str, record: _PendingRecord) -> bool:
        parts = value.split(",", 2)
        if len(parts) < _LCOV_FN_PARTS:
            return False
        line = _parse_int(parts[0])
        if line is None:
            return False
        # lcov 2.x writes FN:<line>,<end_line>,<name>
        if len(parts) == _LCOV_FN_WITH_END_PARTS and _parse_int(parts[1]) is not None:
            name = parts[2].strip()
        else:
            name = value.split(",", 1)[1].strip()
        if not name:
            return False
        record.function_lines[name] = line
        return True

    def _apply_fnda(self, value: str, record: _PendingRecord) -> bool:
        parts = value.split(",", 1)
        if len(parts) < _LCOV_FNDA_PARTS:
            return False
        hits, name = _parse_int(parts[0]), parts[1].strip()
        if hits is None or not name:
            return False
        self._record_function_hits(record, name, max(hits, 0))
        return True

    def _apply_fnl(self, value: str, record: _PendingRecord) -> bool:
        parts = value.split(",")
        if len(parts) < _LCOV_FNL_PARTS:
            return False
        line = _parse_int(parts[1])
        if line is None:
            return False
        record.function_index[parts[0].strip()] = line
        return True

    def _apply_fna(self, value: str, record: _PendingRecord) -> bool:
        parts = value.split(",", 2)
        if len(parts) < _LCOV_FNA_PARTS:
            return False
        hits, name = _parse_int(parts[1]), parts[2].strip()
        if hits is None or not name:
            return False
        if record.function_lines.get(name) is None:
            record.function_lines[name] = record.function_index.get(parts[0].strip())
        self._record_function_hits(record, name, max(hits, 0))
        return True

    def _record_function_hits(self, record: _PendingRecord, name: str, hits: int) -> None:
        if name in record.function_hits:
            record.function_hits[name] = self._merge(record.function_hits[name], hits)
        else:
            record.function_hits[name] = hits

    _handlers: dict[str, Callable[[LcovParser, str, _PendingRecord], bool]] = {
        _LCOV_DA: _apply_da,
        _LCOV_BRDA: _apply_brda,
        _LCOV_FN: _apply_fn,
        _LCOV_FNDA: _apply_fnda,
        _LCOV_FNL: _apply_fnl,
        _LCOV_FNA: _apply_fna,
    }


def parse_lcov(
    text: str,
    *,
    prefix: str = "",
    merge_policy: MergePolicy | MergeFunction | str = MergePolicy.MAX,
) -> CoverageModel:
    """Parse LCOV *text* with a one-off :class:`LcovParser`."""
    return LcovParser(prefix=prefix, merge_policy=merge_policy).parse(text)
