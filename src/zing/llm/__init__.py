"""
Language model integration for zing.

This package contains the prompt builder, the two interchangeable
generation backends (:class:`OpenAIBackend` for the hosted API and
:class:`LocalModelBackend` for a local chat endpoint) and the bounded
retry loop that drives them.
"""

from .base import Deadline, GenerationBackend, GenerationRequest, create_backend  # noqa: F401
from .prompt_builder import build_prompt  # noqa: F401
from .retry import RetryOutcome, run_with_retries  # noqa: F401
