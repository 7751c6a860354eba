"""
Conventional commit grammar check.

The grammar is built from the allowed type prefixes: ``type: text``, or
``type(scope): text`` when a scope is required. Without that requirement
a scoped subject is rejected. Only the type prefix is matched
case-insensitively. A leading emoji added by
:func:`zing.message.postprocess.add_emoji` is accepted.
"""

from __future__ import annotations

import re
from typing import Pattern

from zing.config.loader import StylePolicy
from zing.errors import FormatError
from zing.message.postprocess import EMOJIS


def build_pattern(policy: StylePolicy) -> Pattern[str]:
    types = "|".join(re.escape(prefix) for prefix in policy.allowed_type_prefixes)
    emojis = "|".join(re.escape(emoji) for emoji in EMOJIS.values())
    pattern = f"^(?:(?:{emojis}) )?(?i:{types})"
    if policy.scope_required:
        pattern += r"\([^)]+\)"
    pattern += r": .+"
    return re.compile(pattern)


def validate_message(message: str, policy: StylePolicy) -> None:
    """Raise :class:`FormatError` unless ``message`` follows the grammar."""
    if not build_pattern(policy).match(message):
        subject = message.split("\n", 1)[0]
        raise FormatError(f"message does not match conventional commit format: {subject!r}")
