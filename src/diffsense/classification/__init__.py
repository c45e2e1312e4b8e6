"""
Rule-based commit type classification.

The rules engine matches each change against an ordered, configurable
rule list and falls back to a heuristic chain when no rule names a type.
"""

from .rules_engine import HEURISTICS, RulesEngine, fallback_commit_type  # noqa: F401
