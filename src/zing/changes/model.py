"""
Data models for staged changes.

A :class:`ChangeSet` is built once per invocation by the git client and
is never mutated afterwards. Totals are derived from the file entries so
they always equal the sum over the non-binary files.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple


ADDED = "Added"
MODIFIED = "Modified"
DELETED = "Deleted"
RENAMED = "Renamed"
COPIED = "Copied"
UNMERGED = "Unmerged"
UNKNOWN = "Unknown"

_STATUS_CODES = {
    "A": ADDED,
    "M": MODIFIED,
    "D": DELETED,
    "R": RENAMED,
    "C": COPIED,
    "U": UNMERGED,
}


def parse_status(code: str) -> str:
    """Map a ``git diff --name-status`` code such as ``M`` or ``R100``."""
    if not code:
        return UNKNOWN
    return _STATUS_CODES.get(code[0], UNKNOWN)


@dataclass(frozen=True)
class FileChange:
    """A single staged file.

    Attributes
    ----------
    path : str
        Path relative to the repository root.
    status : str
        One of ``Added``, ``Modified``, ``Deleted``, ``Renamed``,
        ``Copied``, ``Unmerged`` or ``Unknown``.
    additions, deletions : int
        Line counts from ``git diff --numstat``; zero for binary files.
    is_binary : bool
        True when git reports the file as binary.
    diff : str
        Unified diff text of the staged change.
    language : str
        Language detected from the file extension.
    """

    path: str
    status: str
    additions: int = 0
    deletions: int = 0
    is_binary: bool = False
    diff: str = ""
    language: str = "Unknown"

    def __post_init__(self) -> None:
        if self.additions < 0 or self.deletions < 0:
            raise ValueError("line counts must be non-negative")


@dataclass(frozen=True)
class ChangeTotals:
    additions: int = 0
    deletions: int = 0


@dataclass(frozen=True)
class ChangeSet:
    """All staged modifications for one commit."""

    files: Tuple[FileChange, ...] = field(default_factory=tuple)
    branch_name: str = ""
    ticket_id: Optional[str] = None
    last_commit_hash: Optional[str] = None

    def __post_init__(self) -> None:
        # Accept any sequence but store an immutable tuple
        object.__setattr__(self, "files", tuple(self.files))

    @property
    def totals(self) -> ChangeTotals:
        text_files = [f for f in self.files if not f.is_binary]
        return ChangeTotals(
            additions=sum(f.additions for f in text_files),
            deletions=sum(f.deletions for f in text_files),
        )

    def is_empty(self) -> bool:
        return not self.files
