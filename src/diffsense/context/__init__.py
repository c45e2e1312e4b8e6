"""
Context correlation: dependency graph, related files, scope and hunks.
"""

from .correlator import ContextCorrelator, determine_scope  # noqa: F401
from .dependency_graph import DependencyGraph  # noqa: F401
