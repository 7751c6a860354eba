"""
Post-processing and validation of generated commit messages.

See :mod:`zing.message.postprocess` for the decoration pipeline and
:mod:`zing.message.validator` for the conventional commit grammar check.
"""

from .postprocess import EMOJIS, process_message  # noqa: F401
from .validator import build_pattern, validate_message  # noqa: F401
