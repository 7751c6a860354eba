"""
Deterministic post-processing of a generated commit message.

Stages run in a fixed order, and each one checks whether its decoration
is already present before applying it:

1. ticket tagging, appending ``" [TICKET-1]"`` to the message;
2. co-author trailer lines;
3. an emoji in front of the conventional commit type;
4. subject length enforcement.
"""

from __future__ import annotations

import re
from typing import Dict, Pattern, Sequence, Tuple

from zing.changes.model import ChangeSet
from zing.config.loader import StylePolicy


EMOJIS: Dict[str, str] = {
    "feat": "✨",
    "fix": "\U0001f41b",
    "docs": "\U0001f4da",
    "style": "\U0001f48e",
    "refactor": "♻️",
    "test": "\U0001f9ea",
    "chore": "\U0001f527",
}

CO_AUTHOR_TRAILER = "Co-authored-by: "

_EMOJI_PATTERNS: Tuple[Tuple[Pattern[str], str], ...] = tuple(
    (re.compile(rf"^{re.escape(prefix)}(\([^)]+\))?:"), emoji)
    for prefix, emoji in EMOJIS.items()
)


def add_ticket(message: str, ticket_id: str) -> str:
    if not ticket_id or ticket_id in message:
        return message
    return f"{message} [{ticket_id}]"


def _ends_with_trailers(message: str) -> bool:
    paragraphs = message.rstrip("\n").split("\n\n")
    if len(paragraphs) < 2:
        return False
    return all(line.startswith(CO_AUTHOR_TRAILER) for line in paragraphs[-1].split("\n"))


def add_co_authors(message: str, co_authors: Sequence[str]) -> str:
    """Append a ``Co-authored-by:`` line for each author not yet credited.

    git only reads trailers from the last paragraph, so new lines join an
    existing co-author block instead of starting a second one.
    """
    missing = [a for a in co_authors if f"{CO_AUTHOR_TRAILER}{a}" not in message]
    if not missing:
        return message
    trailer = "".join(f"{CO_AUTHOR_TRAILER}{author}\n" for author in missing)
    if _ends_with_trailers(message):
        return message.rstrip("\n") + "\n" + trailer
    return f"{message}\n\n{trailer}"


def add_emoji(message: str) -> str:
    """Prefix the leading conventional commit type with its emoji.

    Every known type is searched; a subject starts with at most one type,
    so at most one rewrite takes effect.
    """
    for pattern, emoji in _EMOJI_PATTERNS:
        message = pattern.sub(lambda match: f"{emoji} {match.group(0)}", message, count=1)
    return message


def enforce_length(message: str, max_length: int) -> str:
    """Cut the subject line to ``max_length`` when the message is too long.

    The whole message length is compared against the limit but only the
    first line is shortened; the remaining lines are kept verbatim.
    """
    if len(message) <= max_length:
        return message
    lines = message.split("\n")
    lines[0] = lines[0][:max_length]
    return "\n".join(lines)


def process_message(
    raw_text: str,
    change_set: ChangeSet,
    policy: StylePolicy,
    co_authors: Sequence[str] = (),
    emojis_enabled: bool = False,
) -> str:
    """Run every post-processing stage over ``raw_text``.

    Parameters
    ----------
    raw_text : str
        Message text as returned by the backend.
    change_set : ChangeSet
        Supplies the branch ticket id.
    policy : StylePolicy
        Supplies the ticket toggle and the subject length limit.
    co_authors : sequence of str
        Entries such as ``"Jane <jane@example.com>"``.
    emojis_enabled : bool
        Whether to decorate the commit type.

    Returns
    -------
    str
        The final commit message.
    """
    message = raw_text
    if policy.ticket_integration and change_set.ticket_id:
        message = add_ticket(message, change_set.ticket_id)
    if co_authors:
        message = add_co_authors(message, co_authors)
    if emojis_enabled:
        message = add_emoji(message)
    return enforce_length(message, policy.max_subject_length)
