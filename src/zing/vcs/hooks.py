"""
Git hook installation.

The ``prepare-commit-msg`` hook asks zing for a message whenever a plain
``git commit`` is run. Commits that already carry a message (``-m``,
merges, squashes, amends) are left alone, which also keeps zing's own
``git commit -m`` from re-entering the hook.
"""

from __future__ import annotations

import logging
from pathlib import Path


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())


HOOK_NAME = "prepare-commit-msg"

HOOK_SCRIPT = """\
#!/bin/sh
# zing prepare-commit-msg hook
case "$2" in
  message|merge|squash|commit) exit 0 ;;
esac
exec zing --yes --message-file "$1"
"""


def install_hook(repo_root: Path, hooks_path: str = ".git/hooks") -> Path:
    """Write the hook script below ``repo_root`` and make it executable.

    ``hooks_path`` may be absolute or relative to the repository root. An
    existing hook of the same name is overwritten.

    Raises
    ------
    OSError
        If the hook directory or file cannot be written.
    """
    directory = Path(hooks_path)
    if not directory.is_absolute():
        directory = repo_root / directory
    directory.mkdir(parents=True, exist_ok=True)
    hook = directory / HOOK_NAME
    hook.write_text(HOOK_SCRIPT, encoding="utf-8")
    hook.chmod(0o755)
    logger.debug("Installed %s hook at %s", HOOK_NAME, hook)
    return hook
