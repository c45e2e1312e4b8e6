"""
Context correlation: the second pipeline stage.

Adds cross-file relationships to each raw change: files that depend on
it, naming-convention test pairs, outgoing dependencies, a coarse scope
label and a single whole-file hunk.
"""

from __future__ import annotations

import logging
import posixpath
import re
from typing import List, Optional, Sequence

from ..extraction.file_types import is_test_filename, split_path
from ..models import (
    SCOPE_CONFIGURATION,
    SCOPE_DOCUMENTATION,
    SCOPE_EXAMPLE,
    SCOPE_INTERNAL,
    SCOPE_PUBLIC,
    SCOPE_TEST,
    SCOPE_UNKNOWN,
    CodeHunk,
    ContextualizedChange,
    RawChange,
    promote,
)
from ..parsing.surface import unique
from .dependency_graph import DependencyGraph


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())


_SCRIPT_EXTENSIONS = {".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs"}

# Test markers must be whole path tokens so that e.g. "latest" or "inspect"
# do not count.
_TEST_TOKEN = re.compile(r"(^|[/._-])(tests?|specs?|__tests__)([/._-]|$)")

# (scope, substrings) in precedence order after the test check
_SCOPE_MARKERS = (
    (SCOPE_PUBLIC, ("/src/api/", "/src/public/")),
    (SCOPE_INTERNAL, ("/src/internal/", "/src/core/")),
    (SCOPE_DOCUMENTATION, ("/docs/",)),
    (SCOPE_EXAMPLE, ("/example/", "/examples/")),
)
_CONFIG_FILENAMES = {"package.json", ".gitignore", "tsconfig.json", "pyproject.toml", "setup.cfg"}


def determine_scope(file_path: str) -> str:
    """Label a path test, public, internal, documentation, example,
    configuration or unknown. The first match wins."""
    lower = "/" + file_path.lower().lstrip("/")
    if _TEST_TOKEN.search(lower):
        return SCOPE_TEST
    for scope, markers in _SCOPE_MARKERS:
        if any(marker in lower for marker in markers):
            return scope
    if posixpath.basename(lower) in _CONFIG_FILENAMES or "/config/" in lower:
        return SCOPE_CONFIGURATION
    return SCOPE_UNKNOWN


def convention_related_files(file_path: str) -> List[str]:
    """Guess test and implementation counterparts from naming conventions.

    The guesses are not checked for existence.
    """
    directory, filename, extension = split_path(file_path)
    stem = filename[: -len(extension)] if extension else filename
    related: List[str] = []

    if is_test_filename(filename):
        if extension == ".py":
            if stem.startswith("test_"):
                impl = stem[len("test_"):]
            else:
                impl = stem[: -len("_test")]
            related.append(posixpath.join(directory, impl + extension))
        else:
            related.append(re.sub(r"\.(spec|test)\.", ".", file_path, count=1))
        return related

    if extension in _SCRIPT_EXTENSIONS:
        related.extend(
            [
                posixpath.join(directory, f"{stem}.spec{extension}"),
                posixpath.join(directory, f"{stem}.test{extension}"),
                posixpath.join("tests", "unit", f"{stem}.spec{extension}"),
                posixpath.join("tests", "unit", f"{stem}.test{extension}"),
            ]
        )
    elif extension == ".py":
        related.extend(
            [
                posixpath.join(directory, f"test_{stem}.py"),
                posixpath.join("tests", f"test_{stem}.py"),
                posixpath.join("tests", "unit", f"test_{stem}.py"),
            ]
        )
    return related


def extract_hunks(change: RawChange) -> List[CodeHunk]:
    """Return one hunk spanning the whole file, or none.

    Lines are compared by position, not aligned by a diff algorithm.
    """
    if not change.old_content or not change.new_content:
        return []
    old_lines = change.old_content.split("\n")
    new_lines = change.new_content.split("\n")
    added = tuple(line for i, line in enumerate(new_lines) if i >= len(old_lines) or line != old_lines[i])
    removed = tuple(line for i, line in enumerate(old_lines) if i >= len(new_lines) or line != new_lines[i])
    return [
        CodeHunk(
            old_start=1,
            old_line_count=len(old_lines),
            new_start=1,
            new_line_count=len(new_lines),
            added_lines=added,
            removed_lines=removed,
        )
    ]


class ContextCorrelator:
    """Enrich raw changes with context from the rest of the change set."""

    def correlate(
        self, changes: Sequence[RawChange], graph: Optional[DependencyGraph] = None
    ) -> List[ContextualizedChange]:
        """Return one :class:`ContextualizedChange` per input change, in order.

        Parameters
        ----------
        changes : Sequence[RawChange]
            Output of the change extractor.
        graph : Optional[DependencyGraph]
            A precomputed graph; built from ``changes`` when omitted.
        """
        if graph is None:
            graph = DependencyGraph.build(changes)
        logger.info("Correlating context for %d changes", len(changes))
        return [self._contextualize(change, graph) for change in changes]

    def _contextualize(self, change: RawChange, graph: DependencyGraph) -> ContextualizedChange:
        related = unique(graph.dependents(change.file_path) + convention_related_files(change.file_path))
        related = [path for path in related if path != change.file_path]
        return promote(
            change,
            ContextualizedChange,
            related_files=tuple(related),
            dependencies=tuple(graph.outgoing(change.file_path)),
            scope=determine_scope(change.file_path),
            hunks=tuple(extract_hunks(change)),
        )
