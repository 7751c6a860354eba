"""
Staged change representation.

See :mod:`zing.changes.model` for the :class:`ChangeSet` value consumed by
the message pipeline and :mod:`zing.changes.language` for the extension
based language detection.
"""

from .language import detect_language  # noqa: F401
from .model import ChangeSet, ChangeTotals, FileChange, parse_status  # noqa: F401
