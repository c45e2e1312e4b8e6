"""
Symbol-level comparison of old and new file contents.
"""

from .analyzer import SemanticAnalyzer, describe_module  # noqa: F401
