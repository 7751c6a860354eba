"""Tests for the end-to-end commit message pipeline."""

import threading
import unittest
from unittest.mock import Mock, patch

from zing.changes.model import ChangeSet, FileChange
from zing.config.loader import Config
from zing.errors import (
    BackendError,
    Cancelled,
    EmptyChangeSet,
    ExhaustedRetries,
    FormatError,
    GenerationTimeout,
    MissingCredential,
)
from zing.llm.base import GenerationBackend
from zing.pipeline import generate_commit_message


CHANGES = ChangeSet(
    files=[FileChange("auth/login.py", "Modified", 12, 3, diff="+def login(): ...\n", language="Python")],
    branch_name="feature/JIRA-42-login",
    ticket_id="JIRA-42",
)


class ScriptedBackend(GenerationBackend):
    def __init__(self, *script):
        super().__init__(model="stub", max_tokens=100, temperature=0.5)
        self.script = list(script)
        self.prompts = []

    @property
    def name(self):
        return "stub"

    def generate(self, prompt, deadline=None):
        self.prompts.append(prompt)
        item = self.script[min(len(self.prompts), len(self.script)) - 1]
        if isinstance(item, Exception):
            raise item
        return item


def make_config(**commit):
    config = Config()
    config.system.retry_delay = 0
    config.commit.scope = False
    for key, value in commit.items():
        setattr(config.commit, key, value)
    return config


class TestGenerateCommitMessage(unittest.TestCase):
    def test_full_pipeline(self):
        backend = ScriptedBackend("feat: add login")
        config = make_config(co_authors=["A <a@x.com>"], emojis=True)

        message = generate_commit_message(CHANGES, config, backend=backend)

        self.assertEqual(message, "✨ feat: add login [JIRA-42]\n\nCo-authored-by: A <a@x.com>\n")
        self.assertEqual(len(backend.prompts), 1)
        self.assertIn("=== auth/login.py (Modified) ===", backend.prompts[0])

    def test_retries_until_success(self):
        backend = ScriptedBackend(GenerationTimeout("slow"), "fix: handle timeout", "unused")
        failures = []
        message = generate_commit_message(
            CHANGES, make_config(jira=False), backend=backend,
            on_failure=lambda attempt, error: failures.append(attempt),
        )
        self.assertEqual(message, "fix: handle timeout")
        self.assertEqual(len(backend.prompts), 2)
        self.assertEqual(failures, [1])

    def test_exhausted_retries(self):
        backend = ScriptedBackend(BackendError("down"))
        with self.assertRaises(ExhaustedRetries) as ctx:
            generate_commit_message(CHANGES, make_config(), backend=backend)
        self.assertEqual(ctx.exception.attempts, 3)
        self.assertIsInstance(ctx.exception.last_error, BackendError)
        self.assertEqual(len(backend.prompts), 3)

    def test_empty_change_set_makes_no_backend_call(self):
        backend = Mock(spec=GenerationBackend)
        with self.assertRaises(EmptyChangeSet):
            generate_commit_message(ChangeSet(), make_config(), backend=backend)
        backend.generate.assert_not_called()

    def test_empty_change_set_checked_before_backend_creation(self):
        config = make_config()
        config.ai.provider = "openai"
        with patch("zing.pipeline.create_backend") as mock_create:
            with self.assertRaises(EmptyChangeSet):
                generate_commit_message(ChangeSet(), config)
        mock_create.assert_not_called()

    def test_missing_credential_without_network(self):
        config = make_config()
        config.ai.provider = "openai"
        with patch("zing.llm.openai_backend.OpenAI") as mock_openai:
            with self.assertRaises(MissingCredential):
                generate_commit_message(CHANGES, config)
        mock_openai.assert_not_called()

    def test_non_retryable_failure_is_raised_as_is(self):
        backend = ScriptedBackend(MissingCredential("OPENAI_API_KEY"))
        with self.assertRaises(MissingCredential):
            generate_commit_message(CHANGES, make_config(), backend=backend)
        self.assertEqual(len(backend.prompts), 1)

    def test_cancelled(self):
        event = threading.Event()
        event.set()
        backend = ScriptedBackend("feat: never")
        with self.assertRaises(Cancelled):
            generate_commit_message(CHANGES, make_config(), backend=backend, cancel_event=event)
        self.assertEqual(backend.prompts, [])

    def test_format_error(self):
        backend = ScriptedBackend("Updated the login flow")
        with self.assertRaises(FormatError):
            generate_commit_message(CHANGES, make_config(), backend=backend)

    def test_scope_required_by_policy(self):
        config = make_config(scope=True, jira=False)
        with self.assertRaises(FormatError):
            generate_commit_message(CHANGES, config, backend=ScriptedBackend("feat: add login"))
        message = generate_commit_message(CHANGES, config, backend=ScriptedBackend("feat(auth): add login"))
        self.assertEqual(message, "feat(auth): add login")

    def test_validation_skipped_when_disabled_or_not_conventional(self):
        for overrides in ({"verify": False}, {"style": "detailed"}):
            with self.subTest(**overrides):
                backend = ScriptedBackend("Rework the login flow")
                message = generate_commit_message(CHANGES, make_config(jira=False, **overrides), backend=backend)
                self.assertEqual(message, "Rework the login flow")

    def test_backend_created_from_config(self):
        backend = ScriptedBackend("docs: update readme")
        with patch("zing.pipeline.create_backend", return_value=backend) as mock_create:
            config = make_config(jira=False)
            self.assertEqual(generate_commit_message(CHANGES, config), "docs: update readme")
        mock_create.assert_called_once_with(config.ai)


if __name__ == "__main__":
    unittest.main()
