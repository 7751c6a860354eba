"""
Git client implementation for zing.

This module wraps the git operations the commit assistant needs: reading
the staged changes into a :class:`~zing.changes.model.ChangeSet`, showing
the staged diff, and creating the commit. All subprocess calls go through
:meth:`GitClient._run` so unit tests can mock them easily.
"""

from __future__ import annotations

import fnmatch
import logging
import re
import subprocess
from pathlib import Path
from typing import List, Optional, Sequence

from zing.changes.language import detect_language
from zing.changes.model import ChangeSet, FileChange, parse_status


logger = logging.getLogger(__name__)
# Attach a null handler to avoid logging errors when the root logger is not
# configured. Logs will propagate to the root when configured by the CLI.
if not logger.handlers:
    logger.addHandler(logging.NullHandler())


TICKET_PATTERN = re.compile(r"[A-Z]+-\d+")

_DIFF_FORMAT_FLAGS = {
    "minimal": ["--minimal"],
    "patience": ["--patience"],
}


class GitError(Exception):
    """Raised when a Git command fails."""

    pass


def is_ignored(path: str, patterns: Sequence[str]) -> bool:
    """Return True if ``path`` matches one of the ignore ``patterns``.

    Patterns are shell globs. A pattern ending in ``/`` matches every path
    below that directory.
    """
    for pattern in patterns:
        if pattern.endswith("/"):
            if path.startswith(pattern) or f"/{pattern}" in f"/{path}":
                return True
        elif fnmatch.fnmatch(path, pattern):
            return True
    return False


def extract_ticket(branch: str) -> Optional[str]:
    """Return the first ``ABC-123`` style ticket id found in ``branch``."""
    match = TICKET_PATTERN.search(branch)
    return match.group(0) if match else None


class GitClient:
    """Client for interacting with a Git repository."""

    def __init__(self, repo_root: Path) -> None:
        self.repo_root = repo_root

    # ------------------------------------------------------------------
    # Static helpers
    # ------------------------------------------------------------------
    @staticmethod
    def find_repo_root(start: Path) -> Optional[Path]:
        """Find the root of the Git repository starting from ``start``.

        Walk upwards until a ``.git`` entry is found or the filesystem
        root is reached.
        """
        current = start.resolve()
        while True:
            if (current / ".git").exists():
                return current
            if current.parent == current:
                return None
            current = current.parent

    # ------------------------------------------------------------------
    # Basic Git commands
    # ------------------------------------------------------------------
    def _run(self, args: List[str], check: bool = True) -> subprocess.CompletedProcess:
        """Run a Git command in the repository root.

        Raises
        ------
        GitError
            If the command exits with a non-zero status when ``check`` is True,
            or if git cannot be executed.
        """
        full_cmd = ["git"] + args
        logger.debug("Executing Git command: %s", " ".join(full_cmd))
        try:
            result = subprocess.run(
                full_cmd,
                cwd=self.repo_root,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as exc:
            logger.error("Failed to execute git: %s", exc)
            raise GitError(f"Failed to execute git: {exc}") from exc

        if check and result.returncode != 0:
            logger.error(
                "Git command failed: %s\nSTDOUT: %s\nSTDERR: %s",
                " ".join(full_cmd),
                result.stdout,
                result.stderr,
            )
            raise GitError(result.stderr.strip() or result.stdout.strip())
        return result

    # ------------------------------------------------------------------
    # Repository state
    # ------------------------------------------------------------------
    def get_current_branch(self) -> str:
        """Return the current branch name, or an empty string if unknown."""
        result = self._run(["rev-parse", "--abbrev-ref", "HEAD"], check=False)
        if result.returncode != 0:
            return ""
        return result.stdout.strip()

    def get_last_commit(self) -> Optional[str]:
        """Return the hash of HEAD, or None in a repository without commits."""
        result = self._run(["rev-parse", "HEAD"], check=False)
        if result.returncode != 0:
            return None
        return result.stdout.strip() or None

    # ------------------------------------------------------------------
    # Staged change detection
    # ------------------------------------------------------------------
    def get_file_diff(self, path: str, diff_format: str = "unified") -> str:
        args = ["diff", "--cached"] + _DIFF_FORMAT_FLAGS.get(diff_format, []) + ["--", path]
        return self._run(args, check=True).stdout

    def get_file_stats(self, path: str) -> Optional[tuple]:
        """Return ``(additions, deletions)`` for ``path``, or None if binary."""
        result = self._run(["diff", "--cached", "--numstat", "--", path], check=True)
        fields = result.stdout.split()
        if len(fields) >= 2 and fields[0] == "-" and fields[1] == "-":
            return None
        if len(fields) < 2:
            return (0, 0)
        try:
            return (int(fields[0]), int(fields[1]))
        except ValueError:
            return (0, 0)

    def get_staged_changes(
        self,
        ignore_paths: Sequence[str] = (),
        diff_format: str = "unified",
    ) -> List[FileChange]:
        """List the staged files with their diffs and line counts.

        Files matching ``ignore_paths`` are left out. A file whose diff or
        statistics cannot be read is skipped with a warning.

        Raises
        ------
        GitError
            If the staged file list cannot be read.
        """
        result = self._run(["diff", "--cached", "--name-status"], check=True)
        changes: List[FileChange] = []

        for line in result.stdout.splitlines():
            if not line.strip():
                continue
            parts = line.split("\t")
            if len(parts) < 2:
                continue
            # Renames and copies list "old<TAB>new"; describe the new path
            status, path = parts[0], parts[-1]

            if is_ignored(path, ignore_paths):
                logger.debug("Ignoring staged file: %s", path)
                continue

            try:
                diff = self.get_file_diff(path, diff_format)
                stats = self.get_file_stats(path)
            except GitError as exc:
                logger.warning("Could not read staged changes for %s: %s", path, exc)
                continue

            is_binary = stats is None
            additions, deletions = stats if stats is not None else (0, 0)
            changes.append(
                FileChange(
                    path=path,
                    status=parse_status(status),
                    additions=additions,
                    deletions=deletions,
                    is_binary=is_binary,
                    diff=diff,
                    language=detect_language(path),
                )
            )

        return changes

    def collect(
        self,
        ignore_paths: Sequence[str] = (),
        diff_format: str = "unified",
        ticket_integration: bool = True,
    ) -> ChangeSet:
        """Build the :class:`ChangeSet` for the currently staged changes."""
        branch = self.get_current_branch()
        ticket = extract_ticket(branch) if ticket_integration and branch else None
        return ChangeSet(
            files=self.get_staged_changes(ignore_paths, diff_format),
            branch_name=branch,
            ticket_id=ticket,
            last_commit_hash=self.get_last_commit(),
        )

    # ------------------------------------------------------------------
    # Output and committing
    # ------------------------------------------------------------------
    def show_staged_diff(self) -> None:
        """Print the colored staged diff straight to the terminal."""
        subprocess.run(["git", "diff", "--cached", "--color"], cwd=self.repo_root, check=False)

    def commit(self, message: str, sign: bool = False) -> str:
        """Create a commit with the given message and return its hash.

        Multi-line commit messages are supported. ``sign`` adds ``-S`` for a
        GPG signed commit.

        Raises
        ------
        GitError
            If the commit fails.
        """
        args = ["commit", "-m", message]
        if sign:
            args.append("-S")
        self._run(args, check=True)
        return self.get_last_commit() or ""
