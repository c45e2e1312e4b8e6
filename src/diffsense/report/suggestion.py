"""
Commit suggestion synthesis.

One conventional-commit suggestion is derived for the whole change set:
the highest-priority commit type present, an unambiguous majority scope,
a subject sentence and, for breaking sets, a ``BREAKING CHANGE:`` body.
"""

from __future__ import annotations

from collections import Counter
from typing import Dict, List, Optional, Sequence

from ..models import DEFAULT_COMMIT_TYPE, ClassifiedChange, CommitSuggestion


# Lower rank wins. docs and test share a rank; types added through the
# configuration rank just above chore.
TYPE_RANKS: Dict[str, int] = {"feat": 0, "fix": 1, "refactor": 2, "docs": 3, "test": 3, "chore": 5}
_EXTRA_TYPE_RANK = 4

MAX_TIED_SCOPES = 3

NO_CHANGES_SUBJECT = "no changes detected"


def _rank(commit_type: str) -> int:
    if commit_type in TYPE_RANKS:
        return TYPE_RANKS[commit_type]
    return _EXTRA_TYPE_RANK


def select_commit_type(changes: Sequence[ClassifiedChange]) -> str:
    """Pick the highest-priority commit type among ``changes``.

    Equal ranks are broken by frequency, then by first appearance.
    """
    if not changes:
        return DEFAULT_COMMIT_TYPE
    counts = Counter(change.commit_type for change in changes)
    first_seen: Dict[str, int] = {}
    for index, change in enumerate(changes):
        first_seen.setdefault(change.commit_type, index)
    return min(counts, key=lambda t: (_rank(t), -counts[t], first_seen[t]))


def select_scope(changes: Sequence[ClassifiedChange]) -> Optional[str]:
    """Return the majority ``commit_scope``, or ``None`` when it is ambiguous."""
    counts = Counter(change.commit_scope for change in changes if change.commit_scope)
    if not counts:
        return None
    best = max(counts.values())
    tied = [scope for scope, count in counts.items() if count == best]
    if best * 2 <= len(changes) or len(tied) > MAX_TIED_SCOPES:
        return None
    return tied[0]


def build_subject(changes: Sequence[ClassifiedChange], commit_type: str) -> str:
    if len(changes) == 1:
        return changes[0].description or "update code"
    count = len(changes)
    if commit_type == "feat":
        return f"add {count} new features"
    if commit_type == "fix":
        return f"fix {count} issues"
    if commit_type == "refactor":
        return f"refactor {count} files"
    if commit_type == "docs":
        return "update documentation"
    if commit_type == "test":
        return "add or update tests"
    return f"update {count} files"


def suggest_commit(changes: Sequence[ClassifiedChange]) -> CommitSuggestion:
    """Derive the commit suggestion for a change set.

    Parameters
    ----------
    changes : Sequence[ClassifiedChange]
        Classified (or scored) changes, in pipeline order.

    Returns
    -------
    CommitSuggestion
        ``chore: no changes detected`` for an empty set.
    """
    if not changes:
        return CommitSuggestion(type=DEFAULT_COMMIT_TYPE, subject=NO_CHANGES_SUBJECT)

    commit_type = select_commit_type(changes)
    breaking_changes: List[ClassifiedChange] = [change for change in changes if change.breaking]
    body = None
    if breaking_changes:
        body = "BREAKING CHANGE: " + "\n".join(
            change.description or change.file_path for change in breaking_changes
        )
    return CommitSuggestion(
        type=commit_type,
        subject=build_subject(changes, commit_type),
        breaking=bool(breaking_changes),
        scope=select_scope(changes),
        body=body,
    )
