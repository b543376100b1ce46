"""Per-file coverage models.

A :class:`CoverageFile` carries one :data:`Line` entry per line of the source
file.  Each entry is either :data:`NOT_COVERABLE` (blank lines, comments and
anything else the producer considers irrelevant) or a :class:`Hit` with the
execution count.  ``Hit(0)`` means "coverable but never executed" and is
distinct from :data:`NOT_COVERABLE`.

The length of ``coverage`` must equal the number of lines in the source file.
That is the caller's responsibility: nothing here reads the file, so a
mismatched length is submitted as-is rather than truncated or padded.
"""

from __future__ import annotations

import hashlib
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Final

from covsend.errors import ValidationError, ValidationErrorKind

_BRANCH_FIELDS = 4


@dataclass(frozen=True)
class NotCoverable:
    """A line that is not relevant to coverage."""

    def __repr__(self) -> str:
        return "NOT_COVERABLE"


NOT_COVERABLE: Final = NotCoverable()


@dataclass(frozen=True)
class Hit:
    """A coverable line and how often it was executed."""

    count: int
    """Execution count (``>= 0``)."""

    def __post_init__(self) -> None:
        if isinstance(self.count, bool) or not isinstance(self.count, int):
            raise ValidationError(
                ValidationErrorKind.NEGATIVE_HIT_COUNT,
                f"Hit count must be an integer (got: {self.count!r})",
            )
        if self.count < 0:
            raise ValidationError(
                ValidationErrorKind.NEGATIVE_HIT_COUNT,
                f"Hit count must be non-negative (got: {self.count})",
            )


Line = NotCoverable | Hit


def line_from_count(count: int | None) -> Line:
    """Map ``None`` to :data:`NOT_COVERABLE` and an int to :class:`Hit`."""
    if count is None:
        return NOT_COVERABLE
    return Hit(count)


@dataclass(frozen=True)
class BranchHit:
    """Execution count of a single conditional branch."""

    line: int
    """1-indexed line number the branch belongs to."""

    block: int
    """Block identifier within the line."""

    branch: int
    """Branch identifier within the block."""

    hits: int
    """How often the branch was taken."""

    def __post_init__(self) -> None:
        values = (self.line, self.block, self.branch, self.hits)
        if any(isinstance(v, bool) or not isinstance(v, int) for v in values):
            raise ValidationError(
                ValidationErrorKind.MALFORMED_BRANCH,
                f"Branch fields must be integers (got: {values!r})",
            )
        if self.line < 1 or min(values[1:]) < 0:
            raise ValidationError(
                ValidationErrorKind.MALFORMED_BRANCH,
                f"Branch line must be >= 1 and block/branch/hits >= 0 (got: {values!r})",
            )

    def as_tuple(self) -> tuple[int, int, int, int]:
        return (self.line, self.block, self.branch, self.hits)


def _coerce_branch(raw: BranchHit | Sequence[int]) -> BranchHit:
    if isinstance(raw, BranchHit):
        return raw
    if isinstance(raw, (str, bytes)) or not isinstance(raw, Sequence):
        raise ValidationError(
            ValidationErrorKind.MALFORMED_BRANCH,
            f"Branch must be a (line, block, branch, hits) tuple (got: {raw!r})",
        )
    if len(raw) != _BRANCH_FIELDS:
        raise ValidationError(
            ValidationErrorKind.MALFORMED_BRANCH,
            f"Branch must have exactly 4 fields (got {len(raw)}: {tuple(raw)!r})",
        )
    return BranchHit(*raw)


def source_digest(text: str) -> str:
    """Return the MD5 hex digest Coveralls expects for a file's content."""
    return hashlib.md5(text.encode("utf-8"), usedforsecurity=False).hexdigest()


@dataclass(frozen=True)
class CoverageFile:
    """Line and branch coverage for one source file."""

    path: str
    """Path relative to the repository root."""

    coverage: tuple[Line, ...]
    """One entry per source line, in line order."""

    source_digest: str | None = None
    """Optional content digest used by the service to detect stale reports."""

    branches: tuple[BranchHit, ...] = field(default_factory=tuple)
    """Optional branch coverage tuples."""

    source: str | None = None
    """Full file content (only used by manual Enterprise repositories)."""

    def __post_init__(self) -> None:
        if not isinstance(self.path, str) or not self.path.strip():
            raise ValidationError(
                ValidationErrorKind.EMPTY_PATH, "Coverage file path must not be empty"
            )

        lines: list[Line] = []
        for index, entry in enumerate(self.coverage, start=1):
            if isinstance(entry, (NotCoverable, Hit)):
                lines.append(entry)
                continue
            if entry is not None and (isinstance(entry, bool) or not isinstance(entry, int)):
                raise ValidationError(
                    ValidationErrorKind.NEGATIVE_HIT_COUNT,
                    f"{self.path}:{index}: coverage entry must be None or an int "
                    f"(got: {entry!r})",
                )
            try:
                lines.append(line_from_count(entry))
            except ValidationError as exc:
                raise ValidationError(exc.kind, f"{self.path}:{index}: {exc}") from exc

        object.__setattr__(self, "coverage", tuple(lines))
        object.__setattr__(self, "branches", tuple(_coerce_branch(b) for b in self.branches))

    @property
    def line_count(self) -> int:
        return len(self.coverage)

    @classmethod
    def from_counts(
        cls,
        path: str,
        counts: Iterable[int | None],
        *,
        source_digest: str | None = None,
        branches: Iterable[BranchHit | Sequence[int]] = (),
    ) -> CoverageFile:
        """Build a file from raw per-line counts where ``None`` marks a not-coverable line."""
        return cls(
            path=path,
            coverage=tuple(counts),  # type: ignore[arg-type]
            source_digest=source_digest,
            branches=tuple(branches),  # type: ignore[arg-type]
        )

    @classmethod
    def from_source(
        cls,
        path: str,
        text: str,
        counts: Iterable[Line | int | None],
        *,
        branches: Iterable[BranchHit | Sequence[int]] = (),
        include_source: bool = False,
    ) -> CoverageFile:
        """Build a file whose digest is computed from the given source text.

        Args:
            path: Repository-relative path.
            text: Source file content, as already read by the caller.
            counts: Per-line coverage entries.
            branches: Optional branch tuples.
            include_source: Also attach ``text`` as the ``source`` field.

        Returns:
            The validated coverage file.
        """
        return cls(
            path=path,
            coverage=tuple(counts),  # type: ignore[arg-type]
            source_digest=source_digest(text),
            branches=tuple(branches),  # type: ignore[arg-type]
            source=text if include_source else None,
        )
