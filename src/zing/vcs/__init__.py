"""
Version control system (VCS) integration.

This package contains the git client that turns the staged changes into
a :class:`~zing.changes.model.ChangeSet` and records commits, plus the
installer for zing's git hook.
"""

from .git_client import GitClient, GitError  # noqa: F401
from .hooks import install_hook  # noqa: F401
