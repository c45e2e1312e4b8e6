"""
Impact scoring: the fifth pipeline stage.

The score is additive, then multiplicative, then normalised to ``[0, 10]``:

1. breaking change: ``10 × breaking``
2. public scope: ``8 × public_api``
3. ``feat``: ``6 × feature``; ``fix``: ``5 × fix``
4. size: ``min(lines_added + lines_removed, 1000) × file_size``
5. semantic impact: ``impact × semantic_impact``
6. multiplied by the file-type and change-kind multipliers
7. ``score = clamp(raw / 10, 0, 10)``

Every contribution is kept as a :class:`~diffsense.models.ScoreFactor`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..models import (
    ACCESS_MODIFIER_CHANGED,
    DEPENDENCY_ADDED,
    DEPENDENCY_REMOVED,
    IMPLEMENTATION_CHANGED,
    INTERFACE_CHANGED,
    METHOD_ADDED,
    METHOD_REMOVED,
    PARAMETER_ADDED,
    PARAMETER_REMOVED,
    RETURN_TYPE_CHANGED,
    SCOPE_PUBLIC,
    SEVERITY_BREAKING,
    SEVERITY_HIGH,
    TYPE_CHANGED,
    ClassifiedChange,
    ScoredChange,
    ScoreFactor,
    promote,
)


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())


# Contribution of each delta kind to the semantic impact. File-level kinds
# contribute nothing.
DELTA_KIND_IMPACT: Dict[str, int] = {
    METHOD_REMOVED: 10,
    PARAMETER_REMOVED: 10,
    RETURN_TYPE_CHANGED: 10,
    INTERFACE_CHANGED: 7,
    ACCESS_MODIFIER_CHANGED: 7,
    METHOD_ADDED: 5,
    PARAMETER_ADDED: 5,
    TYPE_CHANGED: 4,
    DEPENDENCY_ADDED: 4,
    DEPENDENCY_REMOVED: 4,
    IMPLEMENTATION_CHANGED: 2,
}
SEVERE_DELTA_BONUS = 3
SEMANTIC_IMPACT_CAP = 20
FILE_SIZE_CAP = 1000


@dataclass(frozen=True)
class ScoringWeights:
    """Weights of the scoring formula; the defaults are the tuned values."""

    breaking: float = 10.0
    public_api: float = 8.0
    feature: float = 6.0
    fix: float = 5.0
    file_size: float = 0.01
    semantic_impact: float = 7.0
    file_type: Dict[str, float] = field(
        default_factory=lambda: {"script": 1.0, "test": 0.5, "config": 0.7, "doc": 0.3}
    )
    change_kind: Dict[str, float] = field(
        default_factory=lambda: {"added": 0.8, "modified": 1.0, "deleted": 1.2, "renamed": 0.5}
    )

    @classmethod
    def from_mapping(cls, overrides: Optional[Mapping[str, Any]] = None) -> "ScoringWeights":
        """Apply the ``scoring:`` section of the configuration to the defaults.

        Multiplier tables are merged key by key.
        """
        weights = cls()
        if not overrides:
            return weights
        values: Dict[str, Any] = {}
        for key, value in overrides.items():
            if key in ("file_type", "change_kind"):
                merged = dict(getattr(weights, key))
                merged.update(value)
                values[key] = merged
            else:
                values[key] = float(value)
        return replace(weights, **values)


def semantic_impact(change: ClassifiedChange) -> int:
    """Sum the per-kind contributions plus a bonus per severe delta, capped."""
    impact = 0
    severe = 0
    for delta in change.semantic_deltas:
        impact += DELTA_KIND_IMPACT.get(delta.kind, 0)
        if delta.severity in (SEVERITY_BREAKING, SEVERITY_HIGH):
            severe += 1
    impact += severe * SEVERE_DELTA_BONUS
    return min(impact, SEMANTIC_IMPACT_CAP)


class ScoringSystem:
    """Compute a 0-10 priority for each classified change."""

    def __init__(self, weights: Optional[ScoringWeights] = None) -> None:
        self.weights = weights or ScoringWeights()

    def score(self, changes: Sequence[ClassifiedChange]) -> List[ScoredChange]:
        """Return one :class:`ScoredChange` per input change, in order."""
        logger.info("Scoring %d changes", len(changes))
        return [self.score_change(change) for change in changes]

    def score_change(self, change: ClassifiedChange) -> ScoredChange:
        weights = self.weights
        factors: List[ScoreFactor] = []
        raw = 0.0

        def add(name: str, value: float, weight: float) -> None:
            nonlocal raw
            raw += value * weight
            factors.append(ScoreFactor(name=name, value=value, weight=weight))

        if change.breaking:
            add("breaking_change", 10, weights.breaking)
        if change.scope == SCOPE_PUBLIC:
            add("public_api", 8, weights.public_api)
        if change.commit_type == "feat":
            add("feature_addition", 6, weights.feature)
        if change.commit_type == "fix":
            add("bug_fix", 5, weights.fix)

        size = change.metadata.lines_added + change.metadata.lines_removed
        if size > 0:
            add("file_size", min(size, FILE_SIZE_CAP), weights.file_size)

        impact = semantic_impact(change)
        if impact > 0:
            add("semantic_impact", impact, weights.semantic_impact)

        file_type_multiplier = weights.file_type.get(change.metadata.file_type, 1.0)
        raw *= file_type_multiplier
        factors.append(ScoreFactor(name="file_type", value=1, weight=file_type_multiplier))

        change_kind_multiplier = weights.change_kind.get(change.change_kind, 1.0)
        raw *= change_kind_multiplier
        factors.append(ScoreFactor(name="change_kind", value=1, weight=change_kind_multiplier))

        score = min(max(raw / 10, 0.0), 10.0)
        return promote(change, ScoredChange, score=score, score_factors=tuple(factors))
