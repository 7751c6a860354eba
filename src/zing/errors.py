"""
Error taxonomy for zing.

Every failure the message pipeline can report derives from
:class:`ZingError`. The ``retryable`` flag tells the retry orchestrator
whether another attempt may succeed; the CLI maps each class to an exit
code and a one-line diagnostic.
"""

from __future__ import annotations

from typing import Optional


class ZingError(Exception):
    """Base class for all pipeline failures."""

    retryable = False


class MissingCredential(ZingError):
    """Raised when the hosted backend's API key is not in the environment."""

    def __init__(self, variable: str) -> None:
        super().__init__(f"{variable} environment variable not set")
        self.variable = variable


class BackendError(ZingError):
    """Raised on transport, status or response-shape failures of a backend."""

    retryable = True


class GenerationTimeout(BackendError):
    """Raised when a generation attempt runs past its deadline."""


class Cancelled(ZingError):
    """Raised when generation is aborted before the next attempt starts."""


class ExhaustedRetries(ZingError):
    """Raised when every generation attempt failed.

    Attributes
    ----------
    attempts : int
        Number of attempts that were made.
    last_error : Exception or None
        The failure reported by the final attempt.
    """

    def __init__(self, attempts: int, last_error: Optional[Exception]) -> None:
        super().__init__(f"failed after {attempts} attempts: {last_error}")
        self.attempts = attempts
        self.last_error = last_error


class FormatError(ZingError):
    """Raised when a message does not follow the configured commit grammar."""


class EmptyChangeSet(ZingError):
    """Raised when there are no staged changes to describe."""

    def __init__(self, message: str = "no staged changes found") -> None:
        super().__init__(message)
