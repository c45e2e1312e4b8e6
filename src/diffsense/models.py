"""
Data models shared by the DiffSense pipeline stages.

Each stage of the pipeline produces a richer, immutable record of the
same change: :class:`RawChange` → :class:`ContextualizedChange` →
:class:`SemanticChange` → :class:`ClassifiedChange` →
:class:`ScoredChange`. A later record is built from an earlier one with
:func:`promote`, so every record of stage *n* maps to exactly one record
of the extraction stage.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional, Tuple, Type, TypeVar


# ---------------------------------------------------------------------------
# Vocabularies
# ---------------------------------------------------------------------------
ADDED = "added"
MODIFIED = "modified"
DELETED = "deleted"
RENAMED = "renamed"
CHANGE_KINDS = (ADDED, MODIFIED, DELETED, RENAMED)

COMMIT_TYPES = ("feat", "fix", "docs", "refactor", "test", "chore")
DEFAULT_COMMIT_TYPE = "chore"

SEVERITY_LOW = "low"
SEVERITY_MEDIUM = "medium"
SEVERITY_HIGH = "high"
SEVERITY_BREAKING = "breaking"
SEVERITIES = (SEVERITY_LOW, SEVERITY_MEDIUM, SEVERITY_HIGH, SEVERITY_BREAKING)

IMPACT_MINOR = "minor"
IMPACT_MODERATE = "moderate"
IMPACT_MAJOR = "major"

# Semantic delta kinds
METHOD_ADDED = "method-added"
METHOD_REMOVED = "method-removed"
PARAMETER_ADDED = "parameter-added"
PARAMETER_REMOVED = "parameter-removed"
RETURN_TYPE_CHANGED = "return-type-changed"
INTERFACE_CHANGED = "interface-changed"
TYPE_CHANGED = "type-changed"
ACCESS_MODIFIER_CHANGED = "access-modifier-changed"
DEPENDENCY_ADDED = "dependency-added"
DEPENDENCY_REMOVED = "dependency-removed"
IMPLEMENTATION_CHANGED = "implementation-changed"
FILE_ADDED = "file-added"
FILE_DELETED = "file-deleted"
FILE_RENAMED = "file-renamed"

# Correlator scopes
SCOPE_TEST = "test"
SCOPE_PUBLIC = "public"
SCOPE_INTERNAL = "internal"
SCOPE_DOCUMENTATION = "documentation"
SCOPE_EXAMPLE = "example"
SCOPE_CONFIGURATION = "configuration"
SCOPE_UNKNOWN = "unknown"


# ---------------------------------------------------------------------------
# Stage 1: extraction
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class ChangeMetadata:
    """Facts derived from a changed file's path and contents."""

    lines_added: int = 0
    lines_removed: int = 0
    is_binary: bool = False
    file_type: str = "unknown"
    extension: str = ""
    filename: str = ""
    directory: str = ""


@dataclass(frozen=True)
class RawChange:
    """A single changed file between two references.

    Attributes
    ----------
    file_path : str
        Repository-relative POSIX path of the file after the change.
    change_kind : str
        One of ``added``, ``modified``, ``deleted`` or ``renamed``.
    old_content : Optional[str]
        Content at the base reference; ``None`` for added files.
    new_content : Optional[str]
        Content at the head reference (or on disk); ``None`` for deleted
        files.
    previous_path : Optional[str]
        Path before the change, set for renames only.
    metadata : ChangeMetadata
        Line counts, binary flag and file type classification.
    """

    file_path: str
    change_kind: str
    old_content: Optional[str] = None
    new_content: Optional[str] = None
    previous_path: Optional[str] = None
    metadata: ChangeMetadata = field(default_factory=ChangeMetadata)


# ---------------------------------------------------------------------------
# Stage 2: context correlation
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class Dependency:
    """A directed edge from ``source`` to ``target`` in the dependency graph."""

    source: str
    target: str
    kind: str  # 'import', 'export' or 'uses'
    symbols: Tuple[str, ...] = ()


@dataclass(frozen=True)
class CodeHunk:
    """Simplified hunk spanning the whole file."""

    old_start: int
    old_line_count: int
    new_start: int
    new_line_count: int
    added_lines: Tuple[str, ...] = ()
    removed_lines: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ContextualizedChange(RawChange):
    related_files: Tuple[str, ...] = ()
    dependencies: Tuple[Dependency, ...] = ()
    scope: str = SCOPE_UNKNOWN
    hunks: Tuple[CodeHunk, ...] = ()


# ---------------------------------------------------------------------------
# Stage 3: semantic analysis
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class SemanticDelta:
    """One atomic, typed description of what changed at the symbol level."""

    kind: str
    description: str
    severity: str = SEVERITY_LOW
    affected_symbol: Optional[str] = None


@dataclass(frozen=True)
class SemanticChange(ContextualizedChange):
    semantic_deltas: Tuple[SemanticDelta, ...] = ()
    affected_symbols: Tuple[str, ...] = ()
    impact: str = IMPACT_MINOR
    summary: str = ""
    analyzed: bool = True


# ---------------------------------------------------------------------------
# Stage 4: classification
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class ClassifiedChange(SemanticChange):
    commit_type: str = DEFAULT_COMMIT_TYPE
    commit_scope: Optional[str] = None
    breaking: bool = False
    applied_rule_ids: Tuple[str, ...] = ()
    description: str = ""


@dataclass(frozen=True)
class Rule:
    """A classification rule loaded from the rules file.

    A rule applies when any of its predicates holds. ``heuristics`` holds
    the names given under ``heuristics: [{if: name}]``.
    """

    id: str
    match: Optional[str] = None
    match_path: Optional[str] = None
    match_ast: Optional[str] = None
    type: Optional[str] = None
    reason: Optional[str] = None
    heuristics: Tuple[str, ...] = ()


# ---------------------------------------------------------------------------
# Stage 5: scoring
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class ScoreFactor:
    name: str
    value: float
    weight: float


@dataclass(frozen=True)
class ScoredChange(ClassifiedChange):
    score: float = 0.0
    score_factors: Tuple[ScoreFactor, ...] = ()


# ---------------------------------------------------------------------------
# Stage 6: reporting
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class CommitSuggestion:
    """A conventional-commit suggestion for a whole change set.

    ``breaking`` is the internal representation; the ``type!`` form only
    appears in :attr:`header`.
    """

    type: str
    subject: str
    breaking: bool = False
    scope: Optional[str] = None
    body: Optional[str] = None

    @property
    def header(self) -> str:
        scope = f"({self.scope})" if self.scope else ""
        bang = "!" if self.breaking else ""
        return f"{self.type}{scope}{bang}: {self.subject}"

    @property
    def message(self) -> str:
        if self.body:
            return f"{self.header}\n\n{self.body}"
        return self.header

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "scope": self.scope,
            "subject": self.subject,
            "body": self.body,
            "breaking": self.breaking,
        }


@dataclass(frozen=True)
class FileFailure:
    """A per-file problem that was recovered during a run."""

    path: str
    stage: str
    reason: str


@dataclass
class AnalysisResult:
    """Everything a pipeline run produces."""

    changes: List[ScoredChange]
    report: str
    suggestion: CommitSuggestion
    detected_count: int = 0
    analyzed_count: int = 0
    failures: List[FileFailure] = field(default_factory=list)


C = TypeVar("C")


def promote(change: Any, target: Type[C], **extra: Any) -> C:
    """Build a ``target`` record carrying every field of ``change``.

    ``extra`` supplies the fields that ``target`` adds (or overrides).
    """
    values = {f.name: getattr(change, f.name) for f in fields(change)}
    values.update(extra)
    return target(**values)
