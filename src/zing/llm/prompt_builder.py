"""
Prompt construction for commit message generation.

:func:`build_prompt` is a pure function of the change set and the style
policy: the same inputs always produce the same text. The prompt lists
the change totals, branch context, a per-language file count, every
staged file with its diff, and closes with rules for the configured
commit style.
"""

from __future__ import annotations

from typing import Dict, List

from zing.changes.model import ChangeSet
from zing.config.loader import StylePolicy


def _language_breakdown(change_set: ChangeSet) -> Dict[str, int]:
    # dict preserves insertion order, so languages appear as first seen
    counts: Dict[str, int] = {}
    for file in change_set.files:
        counts[file.language] = counts.get(file.language, 0) + 1
    return counts


def _style_rules(policy: StylePolicy) -> List[str]:
    if policy.style == "conventional":
        rules = [
            "1. Use conventional commit format: <type>(<scope>): <description>",
            f"2. Types should be one of: {', '.join(policy.allowed_type_prefixes)}",
            "3. Keep the description concise and clear",
            '4. Use imperative mood ("add" not "added")',
        ]
        if policy.breaking_change_allowed:
            rules.append("5. If there are breaking changes, include a BREAKING CHANGE section")
        return rules
    if policy.style == "detailed":
        return [
            "1. Start with a clear summary line",
            "2. Add a detailed body explaining the changes",
            "3. Include technical details where relevant",
            "4. Mention any potential side effects",
        ]
    return []


def build_prompt(change_set: ChangeSet, policy: StylePolicy) -> str:
    """Describe ``change_set`` for the language model.

    Parameters
    ----------
    change_set : ChangeSet
        Staged changes; callers must not pass an empty set.
    policy : StylePolicy
        Selects the trailing instruction block.

    Returns
    -------
    str
        The complete prompt text.
    """
    totals = change_set.totals
    parts: List[str] = [
        "Generate a commit message for the following changes:\n\n",
        f"Total Changes: +{totals.additions}/-{totals.deletions} lines\n",
    ]

    if change_set.branch_name:
        parts.append(f"\nBranch: {change_set.branch_name}\n")
    if change_set.ticket_id:
        parts.append(f"JIRA Ticket: {change_set.ticket_id}\n")

    parts.append("\nLanguages affected:\n")
    for language, count in _language_breakdown(change_set).items():
        parts.append(f"- {language} ({count} files)\n")

    parts.append("\nChanged files:\n")
    for file in change_set.files:
        parts.append(f"\n=== {file.path} ({file.status}) ===\n")
        if file.is_binary:
            parts.append("[Binary file]\n")
        else:
            parts.append(f"Changes: +{file.additions}/-{file.deletions} lines\n")
            parts.append(file.diff)

    parts.append("\nPlease generate a commit message following these rules:\n")
    rules = _style_rules(policy)
    if rules:
        parts.append("\n" + "\n".join(rules))

    return "".join(parts)
