"""
Bounded retry loop around a generation backend.

:func:`run_with_retries` calls the generation function at most
``max_attempts`` times, one after another, each under a fresh
:class:`~zing.llm.base.Deadline`. It returns a :class:`RetryOutcome`
instead of raising, so callers decide how each kind of failure surfaces.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from zing.errors import ZingError
from zing.llm.base import Deadline


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())


GenerateFn = Callable[[Deadline], str]
FailureCallback = Callable[[int, Exception], None]


@dataclass(frozen=True)
class RetryOutcome:
    """Result of a retry run.

    Attributes
    ----------
    text : str or None
        Generated text when an attempt succeeded.
    attempts : int
        Number of attempts that were started.
    last_error : Exception or None
        Failure of the last attempt when no attempt succeeded.
    cancelled : bool
        True when the run stopped because the cancel event was set.
    """

    text: Optional[str] = None
    attempts: int = 0
    last_error: Optional[Exception] = None
    cancelled: bool = False

    @property
    def ok(self) -> bool:
        return self.text is not None and self.last_error is None and not self.cancelled


def run_with_retries(
    generate_fn: GenerateFn,
    max_attempts: int,
    retry_delay: float,
    timeout: float,
    cancel_event: Optional[threading.Event] = None,
    on_failure: Optional[FailureCallback] = None,
) -> RetryOutcome:
    """Call ``generate_fn`` until it succeeds or the attempt budget runs out.

    Parameters
    ----------
    generate_fn : callable
        Receives the attempt's :class:`Deadline` and returns the text.
        Failures are signalled with :class:`~zing.errors.ZingError`
        subclasses; anything else propagates unchanged.
    max_attempts : int
        Upper bound on calls, at least 1.
    retry_delay : float
        Seconds to wait between a failed attempt and the next one.
    timeout : float
        Deadline, in seconds, given to each attempt.
    cancel_event : threading.Event, optional
        When set, no further attempt is started.
    on_failure : callable, optional
        Called with ``(attempt, error)`` after each retryable failure that
        will be followed by another attempt.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")
    if retry_delay < 0:
        raise ValueError("retry_delay must not be negative")
    if timeout <= 0:
        raise ValueError("timeout must be positive")

    last_error: Optional[Exception] = None
    for attempt in range(1, max_attempts + 1):
        if cancel_event is not None and cancel_event.is_set():
            logger.debug("Generation cancelled before attempt %d", attempt)
            return RetryOutcome(attempts=attempt - 1, last_error=last_error, cancelled=True)

        try:
            text = generate_fn(Deadline(timeout))
        except ZingError as exc:
            last_error = exc
            logger.debug("Attempt %d/%d failed: %s", attempt, max_attempts, exc)
            if not exc.retryable:
                return RetryOutcome(attempts=attempt, last_error=exc)
        else:
            logger.debug("Attempt %d/%d succeeded", attempt, max_attempts)
            return RetryOutcome(text=text, attempts=attempt)

        if attempt == max_attempts:
            break

        if on_failure is not None:
            on_failure(attempt, last_error)
        if cancel_event is not None:
            # Event.wait returns early once the event is set
            if cancel_event.wait(retry_delay):
                return RetryOutcome(attempts=attempt, last_error=last_error, cancelled=True)
        elif retry_delay:
            time.sleep(retry_delay)

    return RetryOutcome(attempts=max_attempts, last_error=last_error)
