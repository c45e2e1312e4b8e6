"""
Weighted impact scoring of classified changes.
"""

from .scorer import ScoringSystem, ScoringWeights, semantic_impact  # noqa: F401
