"""
Semantic analysis: the third pipeline stage.

For every code file the old and new contents are parsed into module
surfaces and compared. The differences become typed
:class:`~diffsense.models.SemanticDelta` records together with an impact
level and a one-line summary. Non-code files pass through with no deltas.
"""

from __future__ import annotations

import logging
import posixpath
from typing import List, Optional, Sequence, Tuple

from ..extraction.file_types import is_test_filename
from ..models import (
    ADDED,
    DELETED,
    DEPENDENCY_ADDED,
    DEPENDENCY_REMOVED,
    FILE_ADDED,
    FILE_DELETED,
    FILE_RENAMED,
    IMPACT_MAJOR,
    IMPACT_MINOR,
    IMPACT_MODERATE,
    IMPLEMENTATION_CHANGED,
    INTERFACE_CHANGED,
    METHOD_ADDED,
    METHOD_REMOVED,
    RENAMED,
    SEVERITY_BREAKING,
    SEVERITY_HIGH,
    SEVERITY_LOW,
    SEVERITY_MEDIUM,
    ContextualizedChange,
    FileFailure,
    SemanticChange,
    SemanticDelta,
    promote,
)
from ..parsing import ModuleSurface, ParseError, is_code_path, parse_source


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())


_IMPACT_ORDER = {IMPACT_MINOR: 0, IMPACT_MODERATE: 1, IMPACT_MAJOR: 2}


def _difference(left: Sequence[str], right: Sequence[str]) -> List[str]:
    """Items of ``left`` missing from ``right``, in ``left`` order."""
    right_set = set(right)
    return [item for item in left if item not in right_set]


def describe_module(file_path: str, surface: ModuleSurface, content: str = "") -> str:
    """Label a module by the declaration categories it contains.

    Categories are tested in a fixed order; test files are recognised by
    name before anything else.
    """
    filename = posixpath.basename(file_path)
    if is_test_filename(filename):
        return "test file"
    has_code = bool(surface.classes or surface.functions)
    if surface.interfaces and not has_code:
        return "interface definition"
    if surface.type_aliases and not has_code:
        return "type definition"
    if surface.enums and not has_code:
        return "enum definition"
    if surface.classes:
        return "class module"
    if surface.functions:
        return "function module"
    if filename.lower().endswith((".tsx", ".jsx")) and (surface.has_jsx or "React" in content):
        return "React component"
    return "module"


def _merge_impact(first: str, second: str) -> str:
    return first if _IMPACT_ORDER[first] >= _IMPACT_ORDER[second] else second


class SemanticAnalyzer:
    """Compare module surfaces between the old and new version of each file.

    Parse failures are logged, recorded in :attr:`failures`, and produce a
    change with no deltas and ``analyzed=False``.
    """

    def __init__(self) -> None:
        self.failures: List[FileFailure] = []

    def analyze(self, changes: Sequence[ContextualizedChange]) -> List[SemanticChange]:
        """Return one :class:`SemanticChange` per input change, in order."""
        self.failures = []
        logger.info("Analyzing %d changes", len(changes))
        return [self._analyze_one(change) for change in changes]

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------
    def _analyze_one(self, change: ContextualizedChange) -> SemanticChange:
        filename = posixpath.basename(change.file_path)
        if not is_code_path(change.file_path):
            verb = {ADDED: "Added", DELETED: "Deleted", RENAMED: "Renamed"}.get(change.change_kind, "Modified")
            return self._result(change, (), IMPACT_MINOR, f"{verb} non-code file: {filename}")

        try:
            if change.change_kind == ADDED:
                deltas, impact, summary = self._added(change)
            elif change.change_kind == DELETED:
                deltas, impact, summary = self._deleted(change)
            elif change.change_kind == RENAMED:
                deltas, impact, summary = self._renamed(change)
            else:
                deltas, impact, summary = self._modified(change)
        except ParseError as exc:
            logger.warning("Could not parse %s: %s", change.file_path, exc.reason)
            self.failures.append(FileFailure(path=change.file_path, stage="semantic", reason=exc.reason))
            return self._result(change, (), IMPACT_MINOR, f"Could not parse {filename}", analyzed=False)
        return self._result(change, deltas, impact, summary)

    @staticmethod
    def _result(
        change: ContextualizedChange,
        deltas: Sequence[SemanticDelta],
        impact: str,
        summary: str,
        analyzed: bool = True,
    ) -> SemanticChange:
        affected: List[str] = []
        for delta in deltas:
            if delta.affected_symbol and delta.affected_symbol not in affected:
                affected.append(delta.affected_symbol)
        return promote(
            change,
            SemanticChange,
            semantic_deltas=tuple(deltas),
            affected_symbols=tuple(affected),
            impact=impact,
            summary=summary,
            analyzed=analyzed,
        )

    @staticmethod
    def _parse(path: str, content: Optional[str]) -> ModuleSurface:
        return parse_source(path, content or "")

    # ------------------------------------------------------------------
    # Change kinds
    # ------------------------------------------------------------------
    def _added(self, change: ContextualizedChange) -> Tuple[List[SemanticDelta], str, str]:
        surface = self._parse(change.file_path, change.new_content)
        label = describe_module(change.file_path, surface, change.new_content or "")
        filename = posixpath.basename(change.file_path)
        deltas = [SemanticDelta(FILE_ADDED, f"Added {label}: {filename}", SEVERITY_LOW)]
        impact = IMPACT_MODERATE if surface.exports else IMPACT_MINOR
        summary = f"Added {label} with {len(surface.declarations)} declarations and {len(surface.exports)} exports"
        return deltas, impact, summary

    def _deleted(self, change: ContextualizedChange) -> Tuple[List[SemanticDelta], str, str]:
        surface = self._parse(change.file_path, change.old_content)
        label = describe_module(change.file_path, surface, change.old_content or "")
        filename = posixpath.basename(change.file_path)
        if surface.exports:
            severity, impact = SEVERITY_BREAKING, IMPACT_MAJOR
        else:
            severity, impact = SEVERITY_MEDIUM, IMPACT_MODERATE
        deltas = [SemanticDelta(FILE_DELETED, f"Deleted file: {filename}", severity)]
        return deltas, impact, f"Deleted {label} with {len(surface.exports)} exports"

    def _renamed(self, change: ContextualizedChange) -> Tuple[List[SemanticDelta], str, str]:
        old_name = posixpath.basename(change.previous_path or change.file_path)
        new_name = posixpath.basename(change.file_path)
        rename = SemanticDelta(FILE_RENAMED, f"Renamed from {old_name} to {new_name}", SEVERITY_MEDIUM)
        if change.old_content == change.new_content or change.old_content is None or change.new_content is None:
            return [rename], IMPACT_MODERATE, f"Renamed {old_name} to {new_name}"
        deltas, impact, summary = self._modified(change)
        return [rename] + deltas, _merge_impact(impact, IMPACT_MODERATE), summary

    def _modified(self, change: ContextualizedChange) -> Tuple[List[SemanticDelta], str, str]:
        old_path = change.previous_path or change.file_path
        # A file renamed into a code language has no old surface to compare
        old = self._parse(old_path, change.old_content) if is_code_path(old_path) else ModuleSurface()
        new = self._parse(change.file_path, change.new_content)

        added_exports = _difference(new.exports, old.exports)
        removed_exports = _difference(old.exports, new.exports)
        # Declarations that are also exported are covered by the export deltas
        old_local = _difference(old.declarations, old.exports)
        new_local = _difference(new.declarations, new.exports)
        added_declarations = _difference(_difference(new_local, old.declarations), removed_exports)
        removed_declarations = _difference(_difference(old_local, new.declarations), added_exports)

        deltas: List[SemanticDelta] = []
        for name in removed_exports:
            deltas.append(SemanticDelta(METHOD_REMOVED, f"Removed export: {name}", SEVERITY_BREAKING, name))
        for name in added_exports:
            deltas.append(SemanticDelta(METHOD_ADDED, f"Added export: {name}", SEVERITY_MEDIUM, name))
        for name in removed_declarations:
            deltas.append(
                SemanticDelta(IMPLEMENTATION_CHANGED, f"Removed declaration: {name}", SEVERITY_MEDIUM, name)
            )
        for name in added_declarations:
            deltas.append(SemanticDelta(IMPLEMENTATION_CHANGED, f"Added declaration: {name}", SEVERITY_LOW, name))
        deltas.extend(self._interface_deltas(old, new))
        for module in _difference(new.imported_modules, old.imported_modules):
            deltas.append(SemanticDelta(DEPENDENCY_ADDED, f"Added import: {module}", SEVERITY_LOW))
        for module in _difference(old.imported_modules, new.imported_modules):
            deltas.append(SemanticDelta(DEPENDENCY_REMOVED, f"Removed import: {module}", SEVERITY_LOW))

        filename = posixpath.basename(change.file_path)
        if not deltas and change.old_content != change.new_content:
            deltas.append(SemanticDelta(IMPLEMENTATION_CHANGED, f"Changed implementation of {filename}", SEVERITY_LOW))

        if removed_exports:
            impact = IMPACT_MAJOR
        elif added_exports or removed_declarations:
            impact = IMPACT_MODERATE
        else:
            impact = IMPACT_MINOR

        label = describe_module(change.file_path, new, change.new_content or "")
        summary = f"Modified {label}: {filename}"
        if deltas:
            summary += f" with {len(deltas)} semantic changes"
        return deltas, impact, summary

    @staticmethod
    def _interface_deltas(old: ModuleSurface, new: ModuleSurface) -> List[SemanticDelta]:
        deltas: List[SemanticDelta] = []
        for interface, old_members in old.interface_members.items():
            if interface not in new.interface_members:
                continue
            new_members = new.interface_members[interface]
            new_names = {member.name for member in new_members}
            old_names = {member.name for member in old_members}
            for member in old_members:
                if member.name not in new_names:
                    deltas.append(
                        SemanticDelta(
                            INTERFACE_CHANGED,
                            f"Property '{member.name}' removed from interface {interface}",
                            SEVERITY_HIGH,
                            f"{interface}.{member.name}",
                        )
                    )
            for member in new_members:
                if member.name in old_names:
                    continue
                if member.optional:
                    description = f"Property '{member.name}' added to interface {interface} (optional)"
                    severity = SEVERITY_LOW
                else:
                    description = f"Property '{member.name}' added to interface {interface}"
                    severity = SEVERITY_MEDIUM
                deltas.append(SemanticDelta(INTERFACE_CHANGED, description, severity, f"{interface}.{member.name}"))
        return deltas
