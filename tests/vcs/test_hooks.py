import os
import stat
import tempfile
import unittest
from pathlib import Path

from zing.vcs.hooks import HOOK_NAME, install_hook


class TestInstallHook(unittest.TestCase):
    def test_installs_executable_hook(self):
        with tempfile.TemporaryDirectory() as tmp:
            repo = Path(tmp)
            hook = install_hook(repo)
            self.assertEqual(hook, repo / ".git" / "hooks" / HOOK_NAME)
            content = hook.read_text(encoding="utf-8")
            self.assertTrue(content.startswith("#!/bin/sh\n"))
            self.assertIn('zing --yes --message-file "$1"', content)
            if os.name == "posix":
                self.assertTrue(hook.stat().st_mode & stat.S_IXUSR)

    def test_absolute_hooks_path(self):
        with tempfile.TemporaryDirectory() as tmp, tempfile.TemporaryDirectory() as hooks_dir:
            hook = install_hook(Path(tmp), hooks_dir)
            self.assertEqual(hook.parent, Path(hooks_dir))

    def test_overwrites_existing_hook(self):
        with tempfile.TemporaryDirectory() as tmp:
            repo = Path(tmp)
            target = repo / ".git" / "hooks" / HOOK_NAME
            target.parent.mkdir(parents=True)
            target.write_text("old", encoding="utf-8")
            install_hook(repo)
            self.assertNotEqual(target.read_text(encoding="utf-8"), "old")


if __name__ == "__main__":
    unittest.main()
