"""
Commit message pipeline.

:func:`generate_commit_message` is the single entry point used by the
command layer. It builds the prompt, drives the backend through the
retry loop, post-processes the text and validates it. Failures are raised
as the typed errors from :mod:`zing.errors`; nothing here commits.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional

from zing.changes.model import ChangeSet
from zing.config.loader import Config
from zing.errors import Cancelled, EmptyChangeSet, ExhaustedRetries
from zing.llm.base import GenerationBackend, create_backend
from zing.llm.prompt_builder import build_prompt
from zing.llm.retry import FailureCallback, run_with_retries
from zing.message.postprocess import process_message
from zing.message.validator import validate_message


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())


def generate_commit_message(
    change_set: ChangeSet,
    config: Config,
    backend: Optional[GenerationBackend] = None,
    cancel_event: Optional[threading.Event] = None,
    on_failure: Optional[FailureCallback] = None,
) -> str:
    """Produce a validated commit message for ``change_set``.

    Parameters
    ----------
    change_set : ChangeSet
        The staged changes.
    config : Config
        Supplies the style policy, backend selection and retry budget.
    backend : GenerationBackend, optional
        Backend to use instead of the one selected by ``config.ai``.
    cancel_event : threading.Event, optional
        Stops the retry loop before its next attempt once set.
    on_failure : callable, optional
        Receives ``(attempt, error)`` for each failed attempt that will
        be retried.

    Returns
    -------
    str
        The final commit message.

    Raises
    ------
    EmptyChangeSet
        If there are no staged files. No backend is contacted.
    MissingCredential
        If the selected backend lacks its credential.
    Cancelled
        If ``cancel_event`` was set before an attempt could succeed.
    ExhaustedRetries
        If every attempt failed.
    FormatError
        If the message does not follow the configured grammar.
    """
    if change_set.is_empty():
        raise EmptyChangeSet()

    if backend is None:
        backend = create_backend(config.ai)

    policy = config.style_policy()
    prompt = build_prompt(change_set, policy)
    logger.debug("Generated prompt:\n%s", prompt)

    outcome = run_with_retries(
        lambda deadline: backend.generate(prompt, deadline),
        max_attempts=config.system.max_retries,
        retry_delay=config.system.retry_delay,
        timeout=config.system.timeout,
        cancel_event=cancel_event,
        on_failure=on_failure,
    )
    if outcome.cancelled:
        raise Cancelled(f"generation cancelled after {outcome.attempts} attempt(s)")
    if not outcome.ok:
        error = outcome.last_error
        if error is not None and not getattr(error, "retryable", True):
            raise error
        raise ExhaustedRetries(outcome.attempts, error)

    message = process_message(
        outcome.text or "",
        change_set,
        policy,
        co_authors=config.commit.co_authors,
        emojis_enabled=config.commit.emojis,
    )

    if policy.verify and policy.style == "conventional":
        validate_message(message, policy)

    return message
