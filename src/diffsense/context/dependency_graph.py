"""
Dependency graph between the files of a change set.

The graph is an adjacency structure keyed by target path: for every file
(or package) that something depends on, the list of :class:`Dependency`
edges pointing at it. It is built once by the context correlator and only
read afterwards.
"""

from __future__ import annotations

import logging
import posixpath
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Set

from ..models import Dependency, RawChange
from ..parsing import ImportRef, ModuleSurface, ParseError, is_code_path, parse_source


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())


_TS_EXTENSIONS = (".ts", ".tsx", ".mts", ".cts")
_SCRIPT_EXTENSIONS = (".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs")


class DependencyGraph:
    """Directed dependency edges indexed by target path."""

    def __init__(self, edges: Iterable[Dependency] = ()) -> None:
        self._by_target: Dict[str, List[Dependency]] = {}
        self._by_source: Dict[str, List[Dependency]] = {}
        for edge in edges:
            self.add(edge)

    def add(self, edge: Dependency) -> None:
        incoming = self._by_target.setdefault(edge.target, [])
        if edge not in incoming:
            incoming.append(edge)
            self._by_source.setdefault(edge.source, []).append(edge)

    def incoming(self, target: str) -> List[Dependency]:
        """Edges pointing at ``target``."""
        return list(self._by_target.get(target, []))

    def outgoing(self, source: str) -> List[Dependency]:
        """Edges starting at ``source``."""
        return list(self._by_source.get(source, []))

    def dependents(self, target: str) -> List[str]:
        """Files that depend on ``target``, in insertion order."""
        seen: List[str] = []
        for edge in self._by_target.get(target, []):
            if edge.source not in seen:
                seen.append(edge.source)
        return seen

    def targets(self) -> List[str]:
        return list(self._by_target)

    def __iter__(self) -> Iterator[Dependency]:
        for edges in self._by_target.values():
            yield from edges

    def __len__(self) -> int:
        return sum(len(edges) for edges in self._by_target.values())

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------
    @classmethod
    def build(cls, changes: Sequence[RawChange]) -> "DependencyGraph":
        """Build the graph from the new content of every changed code file.

        Files that fail to parse contribute no edges; the semantic
        analyzer reports them.
        """
        known = {change.file_path for change in changes}
        graph = cls()
        for change in changes:
            if not change.new_content or not is_code_path(change.file_path):
                continue
            try:
                surface = parse_source(change.file_path, change.new_content)
            except ParseError as exc:
                logger.debug("No dependencies for %s: %s", change.file_path, exc.reason)
                continue
            for edge in edges_for(change.file_path, surface, known):
                graph.add(edge)
        logger.debug("Dependency graph has %d edges", len(graph))
        return graph


def edges_for(source: str, surface: ModuleSurface, known: Set[str]) -> List[Dependency]:
    """Return the import, export and uses edges declared by ``source``."""
    edges: List[Dependency] = []
    imported_from: Dict[str, str] = {}
    for ref in surface.imports:
        target = resolve_specifier(source, ref, known)
        edges.append(Dependency(source=source, target=target, kind="import", symbols=ref.symbols))
        for symbol in ref.symbols:
            imported_from.setdefault(symbol, target)
    for ref in surface.reexports:
        target = resolve_specifier(source, ref, known)
        edges.append(Dependency(source=source, target=target, kind="export", symbols=ref.symbols))

    local = set(surface.declarations)
    extension = posixpath.splitext(source)[1]
    for class_name, base in surface.heritage:
        if base in local:
            continue
        target = imported_from.get(base)
        if target is None:
            if extension == ".py":
                continue
            target = posixpath.join(posixpath.dirname(source), base + extension)
        edges.append(Dependency(source=source, target=target, kind="uses", symbols=(base,)))
    return edges


def resolve_specifier(source: str, ref: ImportRef, known: Set[str]) -> str:
    """Map an import specifier to a repository-relative path when possible.

    Package imports are returned unchanged.
    """
    if source.endswith(".py"):
        return _resolve_python(source, ref, known)
    specifier = ref.specifier
    if not specifier.startswith("."):
        return specifier
    base = posixpath.normpath(posixpath.join(posixpath.dirname(source), specifier))
    return _infer_script_path(base, posixpath.splitext(source)[1], known)


def _infer_script_path(base: str, importer_ext: str, known: Set[str]) -> str:
    stem, ext = posixpath.splitext(base)
    if ext in _SCRIPT_EXTENSIONS:
        if base in known:
            return base
        # TypeScript sources are imported with a .js suffix under ESM
        for candidate in (stem + ".ts", stem + ".tsx"):
            if candidate in known:
                return candidate
        return base
    candidates = [base + importer_ext] + [base + e for e in _SCRIPT_EXTENSIONS]
    candidates += [base + "/index.ts", base + "/index.js"]
    for candidate in candidates:
        if candidate in known:
            return candidate
    return base + (".ts" if importer_ext in _TS_EXTENSIONS else ".js")


def _resolve_python(source: str, ref: ImportRef, known: Set[str]) -> str:
    specifier = ref.specifier
    level = len(specifier) - len(specifier.lstrip("."))
    module = specifier[level:]
    if level == 0:
        relative = module.replace(".", "/")
        for candidate in (relative + ".py", relative + "/__init__.py"):
            match = _known_suffix(candidate, known)
            if match:
                return match
        return module

    package = posixpath.dirname(source)
    for _ in range(level - 1):
        package = posixpath.dirname(package)
    if module:
        base = posixpath.join(package, module.replace(".", "/"))
        for candidate in (base + ".py", base + "/__init__.py"):
            if candidate in known:
                return candidate
        return base + ".py"
    for symbol in ref.symbols:
        candidate = posixpath.join(package, symbol + ".py")
        if candidate in known:
            return candidate
    return posixpath.join(package, "__init__.py")


def _known_suffix(candidate: str, known: Set[str]) -> Optional[str]:
    for path in sorted(known):
        if path == candidate or path.endswith("/" + candidate):
            return path
    return None
