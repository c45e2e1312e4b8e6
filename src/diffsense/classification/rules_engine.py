"""
Rule-based classification: the fourth pipeline stage.

Each change is matched against an ordered list of rules. Every applying
rule is recorded; the last applying rule that names a commit type
decides it. When no rule typed a change, a fixed chain of fallback
heuristics picks the type so that every change leaves this stage with a
commit type.
"""

from __future__ import annotations

import logging
import posixpath
from typing import Callable, Dict, List, Optional, Sequence

from ..globbing import glob_matches
from ..models import (
    ADDED,
    DEFAULT_COMMIT_TYPE,
    DELETED,
    IMPLEMENTATION_CHANGED,
    INTERFACE_CHANGED,
    METHOD_ADDED,
    METHOD_REMOVED,
    RENAMED,
    SCOPE_TEST,
    SCOPE_UNKNOWN,
    SEVERITY_BREAKING,
    ClassifiedChange,
    Rule,
    SemanticChange,
    promote,
)


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())


_DOC_EXTENSIONS = (".md", ".rst", ".adoc")


def _any_description(change: SemanticChange, marker: str) -> bool:
    return any(marker in delta.description for delta in change.semantic_deltas)


def contains_dto_property_removed(change: SemanticChange) -> bool:
    """A property was removed from an interface."""
    return _any_description(change, "removed from interface")


def contains_dto_added_optional(change: SemanticChange) -> bool:
    """An optional property was added to an interface."""
    return _any_description(change, "(optional)")


def contains_breaking_change(change: SemanticChange) -> bool:
    return any(delta.severity == SEVERITY_BREAKING for delta in change.semantic_deltas)


HEURISTICS: Dict[str, Callable[[SemanticChange], bool]] = {
    "containsDtoPropertyRemoved": contains_dto_property_removed,
    "containsDtoAddedOptional": contains_dto_added_optional,
    "containsBreakingChange": contains_breaking_change,
}


def infer_commit_scope(change: SemanticChange) -> Optional[str]:
    """Take the directory after ``src/`` or ``tests/``, else the correlator scope."""
    parts = change.file_path.split("/")
    for anchor in ("src", "tests"):
        if anchor in parts:
            index = parts.index(anchor)
            # The segment must be a directory, not the file itself
            if index + 2 < len(parts):
                return parts[index + 1]
    if change.scope and change.scope != SCOPE_UNKNOWN:
        return change.scope
    return None


def describe_change(change: SemanticChange) -> str:
    if len(change.semantic_deltas) == 1:
        return change.semantic_deltas[0].description
    filename = posixpath.basename(change.file_path)
    if change.scope == SCOPE_TEST:
        return f"Update tests in {filename}"
    if change.change_kind == ADDED:
        return f"Add {filename}"
    if change.change_kind == DELETED:
        return f"Remove {filename}"
    if change.change_kind == RENAMED and change.previous_path:
        return f"Rename {posixpath.basename(change.previous_path)} to {filename}"
    return f"Update {filename}"


def fallback_commit_type(change: SemanticChange) -> str:
    """Pick a commit type for a change that no rule typed."""
    if change.scope == SCOPE_TEST:
        return "test"
    if change.file_path.lower().endswith(_DOC_EXTENSIONS) or "/docs/" in "/" + change.file_path:
        return "docs"
    if change.change_kind == ADDED:
        return "feat"
    kinds = {delta.kind for delta in change.semantic_deltas}
    # Export surface changes are features, removals included
    if kinds & {METHOD_ADDED, METHOD_REMOVED, INTERFACE_CHANGED}:
        return "feat"
    if IMPLEMENTATION_CHANGED in kinds:
        return "fix"
    return DEFAULT_COMMIT_TYPE


class RulesEngine:
    """Apply an ordered rule list to semantic changes.

    Parameters
    ----------
    rules : Sequence[Rule]
        Rules in configured order. Later rules override earlier ones.
    """

    def __init__(self, rules: Sequence[Rule]) -> None:
        self.rules = tuple(rules)

    def apply(self, changes: Sequence[SemanticChange]) -> List[ClassifiedChange]:
        """Return one :class:`ClassifiedChange` per input change, in order."""
        logger.info("Applying %d rules to %d changes", len(self.rules), len(changes))
        return [self.classify(change) for change in changes]

    def classify(self, change: SemanticChange) -> ClassifiedChange:
        commit_type: Optional[str] = None
        applied: List[str] = []
        for rule in self.rules:
            if not self.rule_applies(rule, change):
                continue
            applied.append(rule.id)
            if rule.type:
                commit_type = rule.type
        if commit_type is None:
            commit_type = fallback_commit_type(change)
        logger.debug("%s classified as %s (rules: %s)", change.file_path, commit_type, ", ".join(applied) or "none")

        return promote(
            change,
            ClassifiedChange,
            commit_type=commit_type,
            commit_scope=infer_commit_scope(change),
            breaking=contains_breaking_change(change),
            applied_rule_ids=tuple(applied),
            description=describe_change(change),
        )

    @staticmethod
    def rule_applies(rule: Rule, change: SemanticChange) -> bool:
        """A rule applies when any one of its predicates holds."""
        if rule.match and glob_matches(change.file_path, rule.match):
            return True
        if rule.match_path and rule.match_path in change.file_path:
            return True
        if rule.match_ast and _any_description(change, rule.match_ast):
            return True
        for condition in rule.heuristics:
            for name, check in HEURISTICS.items():
                if name in condition and check(change):
                    return True
        return False
