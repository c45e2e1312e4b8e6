"""
DiffSense: semantic classification of version-control changes.

The package turns the file changes between two Git references (or the
working tree) into classified, scored changes, a report and one
conventional-commit suggestion.
"""

__version__ = "0.1.0"
